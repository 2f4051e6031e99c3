import os
import urllib.parse

import pytest

from uploadsio import FileNotFound, PersistenceError
from uploadsio.s3utils import Boto3ClientCache
from uploadsio.settings import Settings
from uploadsio.storage import S3Storage, get_storage

from .consts import CAT_BYTES, TEST_BUCKET_NAME


def read(path):
    with open(path, "rb") as f:
        return f.read()


def test_store_and_load(s3_storage, mocked_aws, cat_file):
    s3_storage.store(cat_file, "mydir", "cat.jpg")
    obj = mocked_aws.get_object(Bucket=TEST_BUCKET_NAME, Key="mydir/cat.jpg")
    assert obj["Body"].read() == CAT_BYTES

    path = s3_storage.load("mydir", "cat.jpg")
    assert path != cat_file
    assert read(path) == CAT_BYTES


def test_load_downloads_to_fresh_paths(s3_storage, cat_file):
    s3_storage.store(cat_file, "mydir", "cat.jpg")
    assert s3_storage.load("mydir", "cat.jpg") != s3_storage.load("mydir", "cat.jpg")


def test_store_and_load_empty_file(s3_storage, tmp_path):
    empty = tmp_path / "empty-file.txt"
    empty.write_bytes(b"")
    s3_storage.store(str(empty), "mydir", "empty-file.txt")
    assert read(s3_storage.load("mydir", "empty-file.txt")) == b""


def test_store_with_options(s3_storage, mocked_aws, cat_file):
    s3_storage.store(
        cat_file, "mydir", "cat.jpg", {"ACL": "private", "ContentType": "image/jpeg"}
    )
    head = mocked_aws.head_object(Bucket=TEST_BUCKET_NAME, Key="mydir/cat.jpg")
    assert head["ContentType"] == "image/jpeg"
    assert read(s3_storage.load("mydir", "cat.jpg")) == CAT_BYTES


def test_store_missing_bucket(mocked_aws, cat_file):
    storage = S3Storage(bucket="no-such-bucket", client=mocked_aws)
    with pytest.raises(PersistenceError):
        storage.store(cat_file, "mydir", "cat.jpg")


def test_load_missing(s3_storage):
    with pytest.raises(FileNotFound):
        s3_storage.load("mydir", "nope.png")


def test_delete(s3_storage, cat_file):
    s3_storage.store(cat_file, "mydir", "cat.jpg")
    s3_storage.delete("mydir", "cat.jpg")
    with pytest.raises(FileNotFound):
        s3_storage.load("mydir", "cat.jpg")


def test_delete_missing_succeeds(s3_storage):
    s3_storage.delete("mydir", "nope.png")


def test_copy(s3_storage, cat_file):
    s3_storage.store(cat_file, "mydir", "cat.jpg")
    s3_storage.copy("mydir", "cat.jpg", "otherdir", "kitten.jpg")
    assert read(s3_storage.load("mydir", "cat.jpg")) == CAT_BYTES
    assert read(s3_storage.load("otherdir", "kitten.jpg")) == CAT_BYTES


def test_copy_missing(s3_storage):
    with pytest.raises(FileNotFound):
        s3_storage.copy("mydir", "nope.jpg", "otherdir", "nope.jpg")


def test_unsigned_url(s3_storage):
    assert (
        s3_storage.url("mydir", "cat.jpg")
        == f"https://{TEST_BUCKET_NAME}.s3.amazonaws.com/mydir/cat.jpg"
    )


def test_unsigned_url_with_assets_host(mocked_aws):
    storage = S3Storage(
        bucket=TEST_BUCKET_NAME,
        client=mocked_aws,
        assets_host="https://cdn.example.com",
    )
    assert storage.url("mydir", "cat.jpg") == "https://cdn.example.com/mydir/cat.jpg"


def test_unsigned_url_with_endpoint(mocked_aws):
    storage = S3Storage(
        bucket=TEST_BUCKET_NAME,
        client=mocked_aws,
        endpoint_url="http://localhost:9000",
    )
    assert (
        storage.url("mydir", "cat.jpg")
        == f"http://localhost:9000/{TEST_BUCKET_NAME}/mydir/cat.jpg"
    )


def test_signed_url(s3_storage):
    url = s3_storage.url("mydir", "cat.jpg", {"signed": True})
    query = urllib.parse.parse_qs(urllib.parse.urlparse(url).query)
    assert "mydir/cat.jpg" in url
    assert "X-Amz-Signature" in query or "Signature" in query


def test_signed_url_expiry(mocked_aws):
    settings = Settings(
        _env_file=None, storage="s3", bucket=TEST_BUCKET_NAME, expire_in=60
    )
    client = Boto3ClientCache().get_client(settings)
    storage = S3Storage.from_settings(settings, client=client)
    url = storage.url("mydir", "cat.jpg", {"signed": True})
    assert "X-Amz-Expires=60" in url
    url = storage.url("mydir", "cat.jpg", {"signed": True, "expire_in": 120})
    assert "X-Amz-Expires=120" in url


def test_signed_url_ignores_assets_host(mocked_aws):
    settings = Settings(
        _env_file=None,
        storage="s3",
        bucket=TEST_BUCKET_NAME,
        assets_host="https://cdn.example.com",
    )
    client = Boto3ClientCache().get_client(settings)
    storage = S3Storage.from_settings(settings, client=client)

    signed = urllib.parse.urlparse(storage.url("mydir", "cat.jpg", {"signed": True}))
    assert signed.netloc != "cdn.example.com"
    assert TEST_BUCKET_NAME in signed.netloc + signed.path
    assert "host" in urllib.parse.parse_qs(signed.query)["X-Amz-SignedHeaders"][0]

    assert storage.url("mydir", "cat.jpg").startswith("https://cdn.example.com/")


def test_client_cache_reuses_clients(aws_credentials):
    cache = Boto3ClientCache()
    settings = Settings(_env_file=None, storage="s3", bucket=TEST_BUCKET_NAME)
    assert cache.get_client(settings) is cache.get_client(settings)
    other = Settings(
        _env_file=None,
        storage="s3",
        bucket=TEST_BUCKET_NAME,
        region_name="eu-central-1",
    )
    assert cache.get_client(settings) is not cache.get_client(other)


def test_get_storage(mocked_aws):
    settings = Settings(_env_file=None, storage="s3", bucket=TEST_BUCKET_NAME)
    storage = get_storage(settings)
    assert isinstance(storage, S3Storage)
    assert storage.bucket == TEST_BUCKET_NAME


def test_bucket_required(mocked_aws):
    with pytest.raises(ValueError):
        S3Storage(bucket="", client=mocked_aws)


def test_store_with_unknown_options(s3_storage, cat_file):
    with pytest.raises(PersistenceError):
        s3_storage.store(cat_file, "mydir", "cat.jpg", {"NotAnUploadArg": "x"})


def test_copy_with_unknown_options(s3_storage, cat_file):
    s3_storage.store(cat_file, "mydir", "cat.jpg")
    with pytest.raises(PersistenceError):
        s3_storage.copy("mydir", "cat.jpg", "other", "cat.jpg", {"NotACopyArg": "x"})


def test_release_removes_loaded_copy(s3_storage, cat_file):
    s3_storage.store(cat_file, "mydir", "cat.jpg")
    path = s3_storage.load("mydir", "cat.jpg")
    s3_storage.release(path)
    assert not os.path.exists(path)
    s3_storage.release(path)
    assert os.path.exists(cat_file)
