import logging
import os
import tempfile
from typing import Optional

from boto3.exceptions import S3UploadFailedError
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import FileNotFound, PersistenceError
from ..s3utils import clientCache
from ..settings import Settings
from .base import Options, Storage, object_key

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def _error_code(e: ClientError) -> Optional[str]:
    return e.response.get("Error", {}).get("Code")


class S3Storage(Storage):
    """Objects at key <dir>/<name> inside one bucket"""

    def __init__(
        self,
        bucket: str,
        client: BaseClient,
        assets_host: Optional[str] = None,
        expire_in: int = 24 * 60 * 60,
        endpoint_url: Optional[str] = None,
    ):
        if not bucket:
            raise ValueError("S3 bucket name is not set")
        self.bucket = bucket
        self.client = client
        self.assets_host = assets_host
        self.expire_in = expire_in
        self.endpoint_url = endpoint_url

    @classmethod
    def from_settings(
        cls, settings: Settings, client: Optional[BaseClient] = None
    ) -> "S3Storage":
        return cls(
            bucket=settings.bucket,
            client=client or clientCache.get_client(settings),
            assets_host=settings.assets_host,
            expire_in=settings.expire_in,
            endpoint_url=settings.endpoint_url,
        )

    def _fail(self, action: str, key: str, e: Exception):
        if isinstance(e, ClientError) and _error_code(e) in NOT_FOUND_CODES:
            raise FileNotFound(
                f"{key} not found in bucket {self.bucket}", reason="file_not_found"
            ) from e
        logger.warning("s3 %s failed for %s: %s", action, key, e)
        raise PersistenceError(f"Could not {action} {key}: {e}", reason=e) from e

    def store(self, path: str, dir: str, name: str, opts: Optional[Options] = None):
        key = object_key(dir, name)
        extra = dict(opts or {})
        try:
            if os.path.getsize(path) == 0:
                # multipart and streaming uploads reject empty bodies
                self.client.put_object(Bucket=self.bucket, Key=key, Body=b"", **extra)
            else:
                self.client.upload_file(path, self.bucket, key, ExtraArgs=extra or None)
        except (
            ClientError,
            BotoCoreError,
            S3UploadFailedError,
            OSError,
            ValueError,
        ) as e:
            # ValueError: ExtraArgs outside what boto3 accepts
            self._fail("store", key, e)
        logger.info("stored s3://%s/%s", self.bucket, key)

    def load(self, dir: str, name: str, opts: Optional[Options] = None) -> str:
        key = object_key(dir, name)
        fd, path = tempfile.mkstemp(prefix="uio-s3-", suffix=os.path.splitext(name)[1])
        os.close(fd)
        try:
            self.client.download_file(self.bucket, key, path)
        except (ClientError, BotoCoreError, OSError) as e:
            os.remove(path)
            self._fail("load", key, e)
        return path

    def release(self, path: str):
        try:
            os.remove(path)
        except FileNotFoundError:
            pass

    def delete(self, dir: str, name: str, opts: Optional[Options] = None):
        key = object_key(dir, name)
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_CODES:
                return
            self._fail("delete", key, e)
        except BotoCoreError as e:
            self._fail("delete", key, e)
        logger.info("deleted s3://%s/%s", self.bucket, key)

    def copy(
        self,
        src_dir: str,
        src_name: str,
        dst_dir: str,
        dst_name: str,
        opts: Optional[Options] = None,
    ):
        src_key = object_key(src_dir, src_name)
        dst_key = object_key(dst_dir, dst_name)
        try:
            # server side; managed copy switches to multipart for large objects
            self.client.copy(
                {"Bucket": self.bucket, "Key": src_key},
                self.bucket,
                dst_key,
                ExtraArgs=dict(opts or {}) or None,
            )
        except (ClientError, BotoCoreError, ValueError) as e:
            self._fail("copy", src_key, e)
        logger.info("copied s3://%s/%s to %s", self.bucket, src_key, dst_key)

    def url(self, dir: str, name: str, opts: Optional[Options] = None) -> str:
        opts = dict(opts or {})
        key = object_key(dir, name)
        if opts.get("signed"):
            # the signature covers the host, so assets_host does not apply
            url = self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=opts.get("expire_in", self.expire_in),
            )
            logger.debug("signed url for %s", key)
            return url
        assets_host = opts.get("assets_host") or self.assets_host
        return f"{(assets_host or self.default_host).rstrip('/')}/{key}"

    @property
    def default_host(self) -> str:
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}"
        return f"https://{self.bucket}.s3.amazonaws.com"
