from typing import Any, List, Optional, Union


class UploadError(Exception):
    """Base class for everything raised by uploadsio"""

    def __init__(self, message: str = "", reason: Any = None):
        super().__init__(message)
        self.reason = reason


class ConstructionError(UploadError):
    pass


class ValidationError(UploadError):
    pass


class TransformError(UploadError):
    pass


class CommandError(TransformError):
    """
    An external command did not produce its output file.

    exit_code is the process return code, "timeout" when the command was killed,
    or None when the command could not be launched at all.
    """

    def __init__(
        self,
        message: str,
        exit_code: Union[int, str, None] = None,
        output: str = "",
        argv: Optional[List[str]] = None,
        reason: Any = None,
    ):
        super().__init__(message, reason=reason)
        self.exit_code = exit_code
        self.output = output
        self.argv = argv or []


class CommandTimeout(CommandError, TimeoutError):
    pass


class PersistenceError(UploadError):
    pass


class FileNotFound(PersistenceError):
    pass


class ProcessingTimeout(UploadError, TimeoutError):
    pass


class UploaderMismatchError(UploadError):
    pass


class DownloadError(UploadError):
    pass
