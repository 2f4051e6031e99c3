import abc
import posixpath
from typing import Any, Dict, Optional

Options = Dict[str, Any]


def object_key(dir: str, name: str) -> str:
    return posixpath.join(dir, name).lstrip("/")


class Storage(abc.ABC):
    """
    Persistence backend.  Every backend must behave the same way for the same
    calls so uploaders can move between them without changes.

    Failures are raised as PersistenceError, FileNotFound for missing keys.
    """

    @abc.abstractmethod
    def store(self, path: str, dir: str, name: str, opts: Optional[Options] = None):
        """Copy bytes at local path into (dir, name), overwriting what is there"""

    @abc.abstractmethod
    def load(self, dir: str, name: str, opts: Optional[Options] = None) -> str:
        """Return a local path holding the bytes stored at (dir, name)"""

    def release(self, path: str):
        """Give back a path returned by load once the caller is done with it"""

    @abc.abstractmethod
    def delete(self, dir: str, name: str, opts: Optional[Options] = None):
        """Remove (dir, name).  Deleting a missing key succeeds."""

    @abc.abstractmethod
    def copy(
        self,
        src_dir: str,
        src_name: str,
        dst_dir: str,
        dst_name: str,
        opts: Optional[Options] = None,
    ):
        pass

    @abc.abstractmethod
    def url(self, dir: str, name: str, opts: Optional[Options] = None) -> str:
        pass
