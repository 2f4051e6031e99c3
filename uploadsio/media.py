"""
ffmpeg based transforms.  Commands are compiled with ffmpeg-python and run through
the CommandExecutor so they share its timeout and cleanup guarantees.
"""
from typing import List, Optional

import ffmpeg

from .commands import CommandExecutor, Placeholder
from .errors import ValidationError
from .schemas import FileHandle


def thumbnail_command(width: int = 250, offset: float = 0.0) -> List[str]:
    """Single frame at offset seconds, scaled to width keeping aspect ratio"""
    stream = ffmpeg.input(Placeholder.INPUT.value, ss=offset)
    stream = ffmpeg.filter(stream, "scale", width, -2)
    stream = ffmpeg.output(stream, Placeholder.OUTPUT.value, vframes=1)
    return ffmpeg.compile(ffmpeg.overwrite_output(stream))


def encode_command(
    vcodec: str = "libx264",
    acodec: str = "aac",
    crf: Optional[int] = 23,
    width: Optional[int] = None,
    audio: bool = True,
) -> List[str]:
    stream = ffmpeg.input(Placeholder.INPUT.value)
    video = stream.video
    if width is not None:
        video = ffmpeg.filter(video, "scale", width, -2)
    kwargs = {"vcodec": vcodec}
    streams = [video]
    if audio:
        streams.append(stream.audio)
        kwargs["acodec"] = acodec
    if crf is not None:
        kwargs["crf"] = crf
    out = ffmpeg.output(*streams, Placeholder.OUTPUT.value, **kwargs)
    return ffmpeg.compile(ffmpeg.overwrite_output(out))


def thumbnail(
    executor: CommandExecutor,
    source: FileHandle,
    target: FileHandle,
    width: int = 250,
    offset: float = 0.0,
    timeout: Optional[float] = None,
) -> FileHandle:
    return executor.exec(
        source, target, thumbnail_command(width=width, offset=offset), timeout=timeout
    )


def encode(
    executor: CommandExecutor,
    source: FileHandle,
    target: FileHandle,
    timeout: Optional[float] = None,
    **kwargs,
) -> FileHandle:
    return executor.exec(source, target, encode_command(**kwargs), timeout=timeout)


def probe(file: FileHandle) -> dict:
    """
    ffprobe metadata of the first stream and the container

    :raises ValidationError: ffprobe cannot read the file
    """
    if file.location is None:
        raise ValidationError(f"{file.name} has no location", reason="no_location")
    try:
        data = ffmpeg.probe(file.location)
    except (ffmpeg.Error, OSError) as e:
        raise ValidationError(f"{file.name} is not readable media", reason=e) from e
    info = {
        "duration_sec": data["format"].get("duration"),
        "format_name": data["format"].get("format_name"),
    }
    if len(data["streams"]):
        streams = data["streams"][0]
        info["codec_tag_string"] = streams.get("codec_tag_string")
        info["width"] = streams.get("width")
        info["height"] = streams.get("height")
        info["r_frame_rate"] = streams.get("r_frame_rate")
        try:
            info["bit_rate"] = int(streams["bit_rate"])
        except (KeyError, ValueError):
            info["bit_rate"] = streams.get("bit_rate")
    return info
