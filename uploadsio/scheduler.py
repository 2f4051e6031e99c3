"""
Derive, store, load, copy and delete every version of an uploaded file.

Each requested version runs as its own branch on a worker thread.  A transform may
name further versions to derive from its output; those branches start as soon as
the parent transform returns and run alongside the parent's own upload.  A failing
or timed out branch only ever marks its own versions as errors.
"""
import concurrent.futures
import logging
import time
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

from .commands import CommandExecutor
from .errors import (
    PersistenceError,
    ProcessingTimeout,
    TransformError,
    UploadError,
    UploaderMismatchError,
)
from .results import combine
from .schemas import (
    Failed,
    FileHandle,
    Report,
    Skipped,
    Transformed,
    TransformedWithChildren,
    TransformResult,
    VersionOutcome,
)
from .settings import Settings
from .storage import Storage, get_storage
from .uploader import Uploader

logger = logging.getLogger(__name__)

Pair = Tuple[str, VersionOutcome]


class TransformScheduler:
    def __init__(
        self, storage: Optional[Storage] = None, settings: Optional[Settings] = None
    ):
        self.settings = settings or Settings()
        self.storage = storage or get_storage(self.settings)

    ###########################################################
    # Public operations
    ###########################################################

    def store(self, file: FileHandle) -> Report:
        """Process and store every version of file"""
        uploader = _uploader(file)
        versions = uploader.versions(file)
        logger.info("storing %s versions=%s", file.name, versions)
        report = combine(self._process(uploader, file, file, versions))
        if not report.ok:
            logger.warning("storing %s failed for %s", file.name, list(report.errors))
        return report

    def store_or_raise(self, file: FileHandle) -> Report:
        report = self.store(file)
        if not report.ok:
            raise UploadError(
                f"Could not store {', '.join(report.errors)} of {file.name}",
                reason=report,
            )
        return report

    def load(self, file: FileHandle) -> FileHandle:
        """
        Locate the stored bytes of exactly the version named by file.name

        :raises FileNotFound: nothing is stored under that name
        """
        uploader = _uploader(file)
        path = self.storage.load(uploader.store_dir(file), file.name)
        return file.replace(location=path)

    def delete(self, file: FileHandle) -> Report:
        """Delete every version of file"""
        uploader = _uploader(file)

        def delete_version(version: str) -> List[Pair]:
            versioned = file.replace(name=uploader.filename(file, version))
            try:
                self.storage.delete(uploader.store_dir(versioned), versioned.name)
            except Exception as e:
                logger.warning("deleting %s failed: %s", versioned.name, e)
                return [(version, VersionOutcome.error(e))]
            return [(version, VersionOutcome.deleted())]

        return combine(
            self._fan_out(
                uploader.versions(file), delete_version, self.settings.version_timeout
            )
        )

    def regenerate(self, file: FileHandle) -> Report:
        """Derive every version again from the stored original"""
        loaded = self.load(file)
        try:
            return self.store(loaded)
        finally:
            self.storage.release(loaded.location)

    def copy(self, src: FileHandle, dst: FileHandle) -> Report:
        """
        Copy every stored version of src to the names and directory of dst.

        :raises UploaderMismatchError: src and dst belong to different uploaders
        """
        uploader = _uploader(src)
        if dst.uploader is None or dst.uploader.identity != uploader.identity:
            raise UploaderMismatchError(
                f"Cannot copy {src.name} to a file of another uploader",
                reason="uploader_mismatch",
            )

        def copy_version(version: str) -> List[Pair]:
            source = src.replace(name=uploader.filename(src, version))
            target = dst.replace(name=uploader.filename(dst, version))
            try:
                self.storage.copy(
                    uploader.store_dir(source),
                    source.name,
                    uploader.store_dir(target),
                    target.name,
                    uploader.store_options(target),
                )
            except Exception as e:
                logger.warning("copying %s failed: %s", source.name, e)
                return [(version, VersionOutcome.error(e))]
            return [(version, VersionOutcome.stored())]

        return combine(
            self._fan_out(
                uploader.versions(src), copy_version, self.settings.version_timeout
            )
        )

    def url(
        self,
        file: Union[FileHandle, Tuple[FileHandle, Any], None],
        version: str = "original",
        signed: bool = False,
        **opts,
    ) -> Optional[str]:
        if file is None:
            return None
        if isinstance(file, tuple):
            file, scope = file
            file = file.replace(scope=scope)
        uploader = _uploader(file)
        versioned = file.replace(name=uploader.filename(file, version))
        if signed:
            opts["signed"] = True
        if uploader.assets_host:
            opts.setdefault("assets_host", uploader.assets_host)
        return self.storage.url(uploader.store_dir(versioned), versioned.name, opts)

    ###########################################################
    # Processing
    ###########################################################

    def _process(
        self,
        uploader: Uploader,
        original: FileHandle,
        current: FileHandle,
        versions: Sequence[str],
    ) -> List[Pair]:
        return self._fan_out(
            versions,
            lambda version: self._process_version(uploader, original, current, version),
            self.settings.version_timeout,
        )

    def _process_version(
        self,
        uploader: Uploader,
        original: FileHandle,
        current: FileHandle,
        version: str,
    ) -> List[Pair]:
        # names always come from the original, bytes from the current file
        target = current.replace(
            name=uploader.filename(original, version), location=None
        )
        result = _transform(uploader, current, target, version)
        try:
            return self._complete(uploader, original, version, result)
        finally:
            # children have finished reading it by now
            if (
                isinstance(result, (Transformed, TransformedWithChildren))
                and result.target.location != current.location
            ):
                CommandExecutor.discard(result.target)

    def _complete(
        self,
        uploader: Uploader,
        original: FileHandle,
        version: str,
        result: TransformResult,
    ) -> List[Pair]:
        if isinstance(result, TransformedWithChildren):
            pool = concurrent.futures.ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="uio-store"
            )
            try:
                deadline = time.monotonic() + self.settings.store_timeout
                storing = pool.submit(self._persist, uploader, result.target)
                children = self._process(
                    uploader, original, result.target, result.versions
                )
                try:
                    outcome = storing.result(
                        timeout=max(0.0, deadline - time.monotonic())
                    )
                except concurrent.futures.TimeoutError:
                    logger.warning("storing %s timed out", result.target.name)
                    outcome = VersionOutcome.error(
                        ProcessingTimeout(
                            f"Storing {version} took longer than "
                            f"{self.settings.store_timeout}s",
                            reason="timeout",
                        )
                    )
            finally:
                pool.shutdown(wait=False)
            return [(version, outcome)] + children

        if isinstance(result, Transformed):
            return [(version, self._persist(uploader, result.target))]

        if isinstance(result, Skipped):
            return [(version, VersionOutcome.no_store())]

        if isinstance(result, Failed):
            reason = result.reason
        else:
            reason = TransformError(f"Transform {version} returned {result!r}")
        logger.warning("transform %s of %s failed: %s", version, original.name, reason)
        return [(version, VersionOutcome.error(reason))]

    def _persist(self, uploader: Uploader, file: FileHandle) -> VersionOutcome:
        if file.location is None:
            return VersionOutcome.error(
                PersistenceError(f"{file.name} has no location to store from")
            )
        try:
            self.storage.store(
                file.location,
                uploader.store_dir(file),
                file.name,
                uploader.store_options(file),
            )
        except Exception as e:
            logger.warning("storing %s failed: %s", file.name, e)
            return VersionOutcome.error(e)
        return VersionOutcome.stored()

    def _fan_out(
        self,
        versions: Sequence[str],
        work: Callable[[str], List[Pair]],
        timeout: float,
    ) -> List[Pair]:
        """
        Run work(version) for every version concurrently and flatten the results.
        A version that outlives timeout is abandoned and reported as an error.
        """
        if not versions:
            return []
        pool = concurrent.futures.ThreadPoolExecutor(
            max_workers=len(versions), thread_name_prefix="uio-version"
        )
        try:
            deadline = time.monotonic() + timeout
            futures = [(version, pool.submit(work, version)) for version in versions]
            pairs: List[Pair] = []
            for version, future in futures:
                try:
                    pairs.extend(
                        future.result(timeout=max(0.0, deadline - time.monotonic()))
                    )
                except concurrent.futures.TimeoutError:
                    future.cancel()
                    logger.warning("version %s timed out after %ss", version, timeout)
                    pairs.append(
                        (
                            version,
                            VersionOutcome.error(
                                ProcessingTimeout(
                                    f"Version {version} took longer than {timeout}s",
                                    reason="timeout",
                                )
                            ),
                        )
                    )
                except Exception as e:
                    logger.warning("version %s failed: %s", version, e)
                    pairs.append((version, VersionOutcome.error(e)))
        finally:
            pool.shutdown(wait=False)
        return pairs


def _uploader(file: FileHandle) -> Uploader:
    if file.uploader is None:
        raise UploadError(f"{file.name} has no uploader", reason="no_uploader")
    return file.uploader


def _transform(
    uploader: Uploader, source: FileHandle, target: FileHandle, version: str
) -> TransformResult:
    """Run a user transform; faults become Failed results instead of escaping"""
    try:
        result = uploader.transform(source, target, version)
    except UploadError as e:
        return Failed(reason=e)
    except Exception as e:
        return Failed(
            reason=TransformError(f"Transform {version} raised {e!r}", reason=e)
        )
    if not isinstance(result, TransformResult):
        return Failed(
            reason=TransformError(
                f"Transform {version} returned {result!r}", reason=result
            )
        )
    return result
