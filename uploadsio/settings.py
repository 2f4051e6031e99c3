import os
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    storage: Literal["local", "s3"] = "local"
    storage_prefix: str = "tmp/uploads"

    bucket: Optional[str] = None
    region_name: str = "us-east-1"
    endpoint_url: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None

    assets_host: Optional[str] = None
    expire_in: int = 24 * 60 * 60

    # seconds
    exec_timeout: float = 15.0
    exec_grace_period: float = 2.0
    store_timeout: float = 30.0
    version_timeout: float = 60.0

    model_config = SettingsConfigDict(
        env_prefix="uio_",
        env_file=os.getenv("DOTENV_PATH", ".env"),
        extra="ignore",
    )
