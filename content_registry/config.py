"""
Configuration management for the Content Registry.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = Field(default="Content Registry")
    debug: bool = Field(default=False)
    environment: str = Field(default="development")

    # API
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8989)
    api_workers: int = Field(default=1)

    # Database
    database_url: str = Field(default="sqlite:///./content_registry.db")

    # Storage
    blob_storage_uri: str = Field(
        default="file://./data/blobs",
        description="Where encrypted artifacts live. file:// only for now.",
    )
    master_repository: str = Field(
        default="./data/master",
        description="Directory holding the unencrypted master files of publications.",
    )
    work_directory: Optional[str] = Field(
        default=None,
        description="Scratch directory for encrypter output. Defaults to the system temp dir.",
    )

    # Encryption collaborator
    encrypter: str = Field(default="stub", description="'stub' or 'command'")
    encrypt_command: str = Field(
        default="",
        description="External packaging tool invoked by the 'command' encrypter.",
    )
    encrypt_timeout_seconds: int = Field(default=300)

    # Content delivery
    content_type: str = Field(default="application/epub+zip")

    # Pagination
    default_per_page: int = Field(default=30)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings
