"""
uploadsio turns one uploaded file into a set of versions (thumbnails, conversions,
re-encodings) described by an Uploader, derives them concurrently, and stores
them in a local directory or an S3 bucket.
"""

from .commands import INPUT, OUTPUT, CommandExecutor
from .errors import (
    CommandError,
    CommandTimeout,
    ConstructionError,
    DownloadError,
    FileNotFound,
    PersistenceError,
    ProcessingTimeout,
    TransformError,
    UploadError,
    UploaderMismatchError,
    ValidationError,
)
from .results import combine
from .scheduler import TransformScheduler
from .schemas import (
    Failed,
    FileHandle,
    OutcomeStatus,
    Report,
    Skipped,
    Transformed,
    TransformedWithChildren,
    TransformResult,
    VersionOutcome,
)
from .settings import Settings
from .uploader import Uploader, transform_original
