from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8')

    app_name: str = 'bucketfs'
    storage_backend: str = Field(default='s3', pattern='^(s3|memory)$')
    s3_bucket: str = ''
    s3_root: str = '/'
    s3_endpoint_url: str = ''
    s3_region: str = ''
    s3_access_key: str = ''
    s3_secret_key: str = ''
    s3_addressing_style: str = Field(default='auto', pattern='^(auto|virtual|path)$')
    storage_timeout_sec: int = Field(default=30, ge=1, le=300)
    storage_max_attempts: int = Field(default=3, ge=1, le=10)
    max_upload_bytes: int = Field(default=256 * 1024 * 1024, ge=1)
    log_level: str = 'info'
    cors_origins: str = ''


settings = Settings()
