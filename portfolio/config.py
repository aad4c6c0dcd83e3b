"""
Configuration and settings for the portfolio backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings, resolved once at process start."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", frozen=True
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Auth
    jwt_secret: str = Field(default="change-me-in-production")
    jwt_expiration_minutes: int = Field(default=15, ge=1)

    # Which content store backs the API
    content_backend: Literal["sql", "mongo"] = Field(default="sql")

    # Relational metadata store
    database_url: Optional[str] = Field(default=None)
    metadata_db_name: str = Field(default="portfolio-db")

    # Document store
    mongodb_uri: str = Field(default="mongodb://localhost:27017")
    mongodb_database: str = Field(default="portfolio")

    # S3-compatible blob storage for image bytes
    images_bucket: Optional[str] = Field(default=None)
    s3_endpoint: Optional[str] = Field(default=None)
    s3_region: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    # Per-project mutation lock
    redis_url: Optional[str] = Field(default=None)

    # Comma-separated list of origins allowed to call the API
    allowed_origins: str = Field(
        default="http://localhost:5173,http://localhost:5174"
    )

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def sql_url(self) -> str:
        """SQLAlchemy URL for the relational store."""
        if self.use_in_memory_backends:
            return "sqlite+pysqlite:///:memory:"
        if self.database_url:
            return self.database_url
        return f"sqlite+pysqlite:///./{self.metadata_db_name}.db"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
