"""
Helper functions for working with S3
"""
import hashlib
from typing import Dict

import boto3
from botocore.client import BaseClient, Config

from .settings import Settings


class Boto3ClientCache:
    """
    Several storages may share one set of credentials.  Once a client has been
    established, cache it for future use.  boto3 clients are thread safe, so one
    client serves every concurrent version branch.
    """

    def __init__(self):
        self.cache: Dict[str, BaseClient] = {}

    @staticmethod
    def _get_primary_key(settings: Settings) -> str:
        primary_key = (
            (
                f"s3{settings.region_name}{settings.endpoint_url}"
                f"{settings.access_key_id}{settings.secret_access_key}"
            )
            .lower()
            .encode("utf-8")
        )
        return hashlib.sha256(primary_key).hexdigest()

    def get_client(self, settings: Settings) -> BaseClient:
        primary_key_short_sha256 = Boto3ClientCache._get_primary_key(settings)
        client = self.cache.get(primary_key_short_sha256, None)
        if client is None:
            client = boto3.client(
                "s3",
                region_name=settings.region_name,
                endpoint_url=settings.endpoint_url,
                aws_access_key_id=settings.access_key_id,
                aws_secret_access_key=settings.secret_access_key,
                config=Config(signature_version="s3v4"),
            )
            self.cache[primary_key_short_sha256] = client
        return client


clientCache = Boto3ClientCache()
