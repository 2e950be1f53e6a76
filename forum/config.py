"""
Configuration and settings for the forum backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")

    # Database (any SQLAlchemy URL; Postgres or SQLite)
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")

    # S3-compatible blob storage for uploads
    s3_endpoint: Optional[str] = Field(default=None, alias="S3_ENDPOINT")
    s3_region: Optional[str] = Field(default=None, alias="S3_REGION")
    s3_bucket: Optional[str] = Field(default=None, alias="S3_BUCKET")
    aws_access_key_id: Optional[str] = Field(
        default=None, alias="AWS_ACCESS_KEY_ID"
    )
    aws_secret_access_key: Optional[str] = Field(
        default=None, alias="AWS_SECRET_ACCESS_KEY"
    )
    upload_key_prefix: str = Field(default="uploads/", alias="UPLOAD_KEY_PREFIX")
    public_url_prefix: str = Field(default="/r2-assets/", alias="PUBLIC_URL_PREFIX")

    # Static assets served for everything outside the API prefix
    static_dir: Optional[str] = Field(default=None, alias="FORUM_STATIC_DIR")

    # Credentials
    jwt_secret_key: str = Field(
        default="change-me-in-production", alias="JWT_SECRET_KEY"
    )
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60, alias="ACCESS_TOKEN_EXPIRE_MINUTES"
    )
    password_pepper: str = Field(default="", alias="PASSWORD_PEPPER")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, alias="FORUM_USE_IN_MEMORY_BACKENDS"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
