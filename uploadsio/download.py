"""
Turn a remote URL into a local FileHandle ready to be stored.
"""
import logging
import mimetypes
import os
import posixpath
import tempfile
import urllib.parse
import uuid
from typing import Optional

import requests
from requests.utils import requote_uri

from .errors import DownloadError
from .schemas import FileHandle

logger = logging.getLogger(__name__)

GENERIC_CONTENT_TYPES = {"application/octet-stream", "binary/octet-stream"}


def guess_name(url: str, content_type: Optional[str] = None) -> str:
    """
    Name the download after the last segment of the URL path, with the extension
    implied by content_type when it is known.  Falls back to a generated name
    when the path has no usable segment.
    """
    base = posixpath.basename(urllib.parse.unquote(urllib.parse.urlparse(url).path))
    root, ext = posixpath.splitext(base)
    if not root:
        root = uuid.uuid4().hex
    if content_type:
        mime = content_type.split(";")[0].strip().lower()
        if mime not in GENERIC_CONTENT_TYPES:
            ext = mimetypes.guess_extension(mime) or ext
    return root + ext


def download(
    url: str,
    session: Optional[requests.Session] = None,
    max_redirects: int = 10,
    timeout: float = 30.0,
) -> FileHandle:
    """
    Download url to a private temporary file, following up to max_redirects redirects

    :raises DownloadError: on connection failures and non-200 responses
    """
    session = session or requests.Session()
    session.max_redirects = max_redirects
    try:
        r = session.get(requote_uri(url), timeout=timeout, stream=True)
    except requests.RequestException as e:
        raise DownloadError(f"Could not download {url}: {e}", reason=e) from e

    with r:
        if r.status_code != 200:
            raise DownloadError(
                f"Could not download {url}: HTTP {r.status_code}", reason=r.status_code
            )
        name = guess_name(r.url or url, r.headers.get("Content-Type"))
        fd, path = tempfile.mkstemp(
            prefix="uio-download-", suffix=posixpath.splitext(name)[1]
        )
        try:
            with os.fdopen(fd, "wb") as out:
                for chunk in r.iter_content(chunk_size=64 * 1024):
                    out.write(chunk)
        except (requests.RequestException, OSError) as e:
            os.remove(path)
            raise DownloadError(f"Could not download {url}: {e}", reason=e) from e

    logger.info("downloaded %s to %s", url, path)
    return FileHandle.new(name=name, location=path)
