"""
Configuration management for bucketfs.

Non-secret configuration loaded from a YAML file, overridden by
environment variables (BUCKETFS_ prefix, ``__`` for nesting).
"""

import os
from enum import StrEnum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_FILE = "/etc/bucketfs/config.yaml"


def yaml_config_settings_source() -> dict[str, Any]:
    """Load configuration from YAML file."""
    config_path = Path(os.environ.get("BUCKETFS_CONFIG_FILE", DEFAULT_CONFIG_FILE))
    if config_path.exists():
        with open(config_path) as f:
            return yaml.safe_load(f) or {}
    return {}


# --- Storage Configuration Models ---


class StorageBackend(StrEnum):
    """Supported remote clients."""

    GCS = "gcs"
    FILESYSTEM = "filesystem"
    MEMORY = "memory"


class RetryConfig(BaseModel):
    """Bounded retry with exponential backoff for remote calls."""

    attempts: int = Field(default=5, ge=1, description="Attempts per remote call, first included")
    base_delay: float = Field(default=0.1, ge=0, description="Wait before the first retry (s)")
    multiplier: float = Field(default=2.0, ge=1, description="Growth factor between retries")
    max_delay: float = Field(default=10.0, ge=0, description="Upper bound on a single wait (s)")
    jitter: bool = Field(
        default=True,
        description="Draw each wait between the previous and current step",
    )


class GCSConfig(BaseModel):
    """Google Cloud Storage configuration."""

    prefix: str = Field(default="", description="Key prefix within the bucket")
    project_id: str = Field(default="", description="GCP project ID (ADC default if empty)")


class FilesystemConfig(BaseModel):
    """Local filesystem storage configuration."""

    root_dir: str = Field(
        default="/var/lib/bucketfs",
        description="Directory holding one sub-directory per bucket",
    )


class StorageConfig(BaseModel):
    """Storage configuration."""

    backend: StorageBackend = Field(
        default=StorageBackend.FILESYSTEM,
        description="Remote client: gcs, filesystem, or memory",
    )
    bucket: str = Field(default="", description="Bucket name")
    page_size: int = Field(default=1000, ge=1, description="Default listing page size")
    retry: RetryConfig = Field(default_factory=RetryConfig)
    gcs: GCSConfig = Field(default_factory=GCSConfig)
    filesystem: FilesystemConfig = Field(default_factory=FilesystemConfig)


# --- Main Settings ---


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="BUCKETFS_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=True, description="JSON logging in production")

    storage: StorageConfig = Field(default_factory=StorageConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Customize settings sources: env vars override YAML config."""
        return (
            init_settings,
            env_settings,
            yaml_config_settings_source,
            dotenv_settings,
            file_secret_settings,
        )


# Global settings instance
settings = Settings()
