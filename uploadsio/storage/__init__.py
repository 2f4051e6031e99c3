"""
Storage backends.  LocalStorage and S3Storage implement the same Storage contract
and are interchangeable from an uploader's point of view.
"""
from ..settings import Settings
from .base import Storage
from .local import LocalStorage
from .s3 import S3Storage


def get_storage(settings: Settings) -> Storage:
    if settings.storage == "s3":
        return S3Storage.from_settings(settings)
    return LocalStorage.from_settings(settings)
