"""
Uploaders describe how one kind of upload is processed: which versions to derive,
how each version is named and transformed, and where it is stored.

Minimal uploader:

    class AvatarUploader(Uploader):
        def store_dir(self, file):
            return f"avatars/{file.scope['id']}"

Full example:

    class AttachmentUploader(Uploader):
        def versions(self, file):
            return ["original", "thumb"]

        def filename(self, file, version):
            if version == "original":
                return file.name
            return f"thumb_{file.rootname}.png"

        def transform(self, source, target, version):
            if version == "thumb":
                return Transformed(target=self.executor.exec(
                    source, target, ["convert", "${input}[0]", "-resize", "250x175", OUTPUT]
                ))
            return transform_original(source, target)

        def store_dir(self, file):
            return f"attachments/{file.scope['id']}"

        def store_options(self, file):
            return {"ACL": "private"}
"""
import abc
from typing import Any, Dict, List, Optional

from .commands import CommandExecutor
from .errors import ValidationError
from .schemas import FileHandle, Transformed, TransformResult
from .settings import Settings


def transform_original(source: FileHandle, target: FileHandle) -> Transformed:
    """Keep the source bytes as they are, under the target name"""
    return Transformed(target=target.replace(location=source.location))


class Uploader(abc.ABC):
    # Set to serve unsigned URLs for this uploader from another host, e.g. a CDN
    assets_host: Optional[str] = None

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.executor = CommandExecutor.from_settings(self.settings)

    @property
    def identity(self) -> str:
        cls = type(self)
        return f"{cls.__module__}.{cls.__qualname__}"

    def new(
        self,
        location: Optional[str] = None,
        name: Optional[str] = None,
        scope: Any = None,
    ) -> FileHandle:
        return FileHandle.new(location=location, name=name, scope=scope, uploader=self)

    @abc.abstractmethod
    def store_dir(self, file: FileHandle) -> str:
        """Storage directory for file, usually computed from file.scope"""

    def store_options(self, file: FileHandle) -> Dict[str, Any]:
        return {}

    def versions(self, file: FileHandle) -> List[str]:
        return ["original"]

    def filename(self, file: FileHandle, version: str) -> str:
        """
        Name of the given version of file.

        Used both when storing and when generating URLs, so it must be a
        pure function of (file, version).
        """
        if version == "original":
            return file.name
        return f"{version}_{file.name}"

    def transform(
        self, source: FileHandle, target: FileHandle, version: str
    ) -> TransformResult:
        return transform_original(source, target)

    def validate(self, file: FileHandle) -> Optional[Any]:
        """Return None for an acceptable file, or a reason for rejecting it"""
        return None

    def check(self, file: FileHandle):
        reason = self.validate(file)
        if reason is not None:
            raise ValidationError(f"{file.name} rejected: {reason}", reason=reason)
