"""Application settings loaded from environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when the run is missing a site or usable service account keys."""


class Settings(BaseSettings):
    """Runtime configuration sourced from environment variables and .env."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    GIS_CLIENT_EMAIL: str | None = None
    GIS_PRIVATE_KEY: SecretStr | None = None
    GIS_PATH: Path | None = None
    GIS_URLS: str | None = None
    GIS_QUOTA_RPM_RETRY: bool = False
    GIS_QUOTA_RPM_RETRIES: int = Field(default=3, ge=0)
    GIS_QUOTA_RPM_WAIT_SECONDS: float = Field(default=60.0, ge=0)
    GIS_CACHE_DIR: Path = Path(".cache")
    GIS_BATCH_CONCURRENCY: int = Field(default=50, ge=1)
    GIS_REQUEST_TIMEOUT_SECONDS: float = Field(default=60.0, gt=0)
    GIS_SITEMAP_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)
    OUTBOUND_HTTP_USER_AGENT: str = "gsc-indexer"
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    LOG_FORMAT: Literal["json", "text"] = "text"
    LOG_FILE: Path | None = None
    LOG_FILE_MAX_BYTES: int = Field(default=10_485_760, ge=1)
    LOG_FILE_BACKUP_COUNT: int = Field(default=5, ge=1)

    @field_validator("LOG_FILE", "GIS_PATH", mode="before")
    @classmethod
    def parse_optional_path(cls, value: object) -> object:
        if value in (None, ""):
            return None
        return value

    @property
    def custom_urls(self) -> list[str] | None:
        """Explicit page list from GIS_URLS, or None when unset."""

        if not self.GIS_URLS:
            return None
        urls = [url.strip() for url in self.GIS_URLS.split(",")]
        return [url for url in urls if url]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()


__all__ = ["ConfigurationError", "Settings", "get_settings"]
