import boto3
import pytest
from moto import mock_aws

from uploadsio.settings import Settings
from uploadsio.storage import LocalStorage, S3Storage
from uploadsio.scheduler import TransformScheduler

from .consts import CAT_BYTES, REPORT_BYTES, TEST_BUCKET_NAME


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        storage="local",
        storage_prefix=str(tmp_path / "uploads"),
        exec_timeout=5.0,
        exec_grace_period=0.5,
        store_timeout=5.0,
        version_timeout=5.0,
    )


@pytest.fixture
def local_storage(settings) -> LocalStorage:
    return LocalStorage.from_settings(settings)


@pytest.fixture
def scheduler(settings, local_storage) -> TransformScheduler:
    return TransformScheduler(storage=local_storage, settings=settings)


@pytest.fixture
def cat_file(tmp_path) -> str:
    path = tmp_path / "files" / "cat.jpg"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(CAT_BYTES)
    return str(path)


@pytest.fixture
def roomba_file(tmp_path) -> str:
    path = tmp_path / "files" / "roomba.gif"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"GIF89a roomba")
    return str(path)


@pytest.fixture
def report_file(tmp_path) -> str:
    path = tmp_path / "files" / "report.doc"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(REPORT_BYTES)
    return str(path)


@pytest.fixture
def aws_credentials(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def mocked_aws(aws_credentials):
    with mock_aws():
        s3_client = boto3.client("s3", region_name="us-east-1")
        s3_client.create_bucket(Bucket=TEST_BUCKET_NAME)
        yield s3_client


@pytest.fixture
def s3_storage(mocked_aws) -> S3Storage:
    return S3Storage(bucket=TEST_BUCKET_NAME, client=mocked_aws)
