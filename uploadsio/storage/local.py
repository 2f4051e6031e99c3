import logging
import os
import posixpath
import shutil
from typing import Optional

from ..errors import FileNotFound, PersistenceError
from ..settings import Settings
from .base import Options, Storage, object_key

logger = logging.getLogger(__name__)


class LocalStorage(Storage):
    """Plain files under <prefix>/<dir>/<name>"""

    def __init__(self, prefix: str = "tmp/uploads", assets_host: Optional[str] = None):
        self.prefix = prefix
        self.assets_host = assets_host

    @classmethod
    def from_settings(cls, settings: Settings) -> "LocalStorage":
        return cls(prefix=settings.storage_prefix, assets_host=settings.assets_host)

    def path(self, dir: str, name: str) -> str:
        return os.path.join(self.prefix, object_key(dir, name))

    def store(self, path: str, dir: str, name: str, opts: Optional[Options] = None):
        dest = self.path(dir, name)
        try:
            os.makedirs(os.path.dirname(dest), exist_ok=True)
            if os.path.exists(dest) and os.path.samefile(path, dest):
                # regenerating the original from its stored copy
                return
            shutil.copyfile(path, dest)
        except OSError as e:
            raise PersistenceError(f"Could not store {dest}: {e}", reason=e) from e
        logger.info("stored %s", dest)

    def load(self, dir: str, name: str, opts: Optional[Options] = None) -> str:
        # no need to copy, point at the stored file directly
        path = self.path(dir, name)
        if not os.path.isfile(path):
            raise FileNotFound(f"File not found: {path}", reason="file_not_found")
        return path

    def delete(self, dir: str, name: str, opts: Optional[Options] = None):
        path = self.path(dir, name)
        try:
            os.remove(path)
        except FileNotFoundError:
            return
        except OSError as e:
            raise PersistenceError(f"Could not delete {path}: {e}", reason=e) from e
        logger.info("deleted %s", path)

    def copy(
        self,
        src_dir: str,
        src_name: str,
        dst_dir: str,
        dst_name: str,
        opts: Optional[Options] = None,
    ):
        self.store(self.load(src_dir, src_name), dst_dir, dst_name, opts)

    def url(self, dir: str, name: str, opts: Optional[Options] = None) -> str:
        opts = opts or {}
        key = posixpath.join(self.prefix, object_key(dir, name))
        assets_host = opts.get("assets_host") or self.assets_host
        if assets_host:
            return f"{assets_host.rstrip('/')}/{key.lstrip('/')}"
        return key

    def reset(self):
        """Remove everything under the prefix"""
        shutil.rmtree(self.prefix, ignore_errors=True)
