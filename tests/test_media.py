import pytest

from uploadsio import INPUT, OUTPUT, FileHandle, ValidationError
from uploadsio.commands import build_argv
from uploadsio.media import encode_command, probe, thumbnail, thumbnail_command


class RecordingExecutor:
    def __init__(self):
        self.calls = []

    def exec(self, source, target, argv, timeout=None):
        self.calls.append((source, target, argv, timeout))
        return target.replace(location="/tmp/out")


def test_thumbnail_command():
    argv = thumbnail_command(width=320, offset=1.5)
    assert argv[0] == "ffmpeg"
    assert INPUT.value in argv
    assert OUTPUT.value in argv
    assert "-y" in argv
    assert any("scale=320:-2" in arg for arg in argv)
    assert argv[argv.index("-vframes") + 1] == "1"
    assert argv[argv.index("-ss") + 1] == "1.5"


def test_thumbnail_command_substitutes_paths():
    argv = build_argv(thumbnail_command(), "in put.mp4", "thumb.jpg")
    assert "in put.mp4" in argv
    assert argv[-2:] == ["thumb.jpg", "-y"]
    assert not any("${" in arg for arg in argv)


def test_encode_command():
    argv = encode_command(width=640)
    assert argv[argv.index("-vcodec") + 1] == "libx264"
    assert argv[argv.index("-acodec") + 1] == "aac"
    assert argv[argv.index("-crf") + 1] == "23"
    assert any("scale=640:-2" in arg for arg in argv)


def test_encode_command_without_audio():
    argv = encode_command(audio=False, crf=None)
    assert "-acodec" not in argv
    assert "-crf" not in argv
    assert OUTPUT.value in argv


def test_thumbnail_runs_through_executor(cat_file):
    executor = RecordingExecutor()
    source = FileHandle.new(location=cat_file)
    target = source.replace(name="thumb_cat.jpg", location=None)

    result = thumbnail(executor, source, target, width=100, timeout=3)
    assert result.location == "/tmp/out"
    (_, called_target, argv, timeout), = executor.calls
    assert called_target == target
    assert timeout == 3
    assert any("scale=100:-2" in arg for arg in argv)


def test_probe_unreadable_file(tmp_path):
    path = tmp_path / "fake.mp4"
    path.write_bytes(b"not a video")
    with pytest.raises(ValidationError):
        probe(FileHandle.new(location=str(path)))


def test_probe_without_location():
    with pytest.raises(ValidationError):
        probe(FileHandle.new(name="movie.mp4"))
