"""
Centralized configuration for the content access core.

Configuration is read from environment variables through pydantic models,
so every value is validated once when the config is constructed.
"""

import os
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .constants import (
    ALLOWED_ATTACHMENT_TYPES,
    DEFAULT_TICKET_TTL_SECONDS,
    MAX_ATTACHMENT_SIZE_BYTES,
    EnvironmentVariable,
    LogLevel,
)


class DatabaseConfig(BaseModel):
    """Row store connection configuration."""

    connection_string: str = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.DATABASE_URL.value, "sqlite:///./content_access.db"
        ),
        description="SQLAlchemy database URL",
    )
    pool_size: int = Field(default=5, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum overflow connections")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    echo: bool = Field(default=False, description="Echo SQL statements")


class StorageConfig(BaseModel):
    """Blob storage configuration for attachment signing."""

    connection_string: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.AZURE_STORAGE_CONNECTION.value, ""),
        description="Azure Storage connection string",
    )
    container_name: str = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.ATTACHMENT_CONTAINER.value, "attachments"
        ),
        description="Blob container holding attachments",
    )
    upload_ticket_ttl: int = Field(
        default=DEFAULT_TICKET_TTL_SECONDS, gt=0, description="Signed PUT URL lifetime in seconds"
    )
    download_ticket_ttl: int = Field(
        default=DEFAULT_TICKET_TTL_SECONDS, gt=0, description="Signed GET URL lifetime in seconds"
    )


class TransferConfig(BaseModel):
    """Limits and client behaviour for attachment transfers."""

    max_attachment_size: int = Field(
        default=MAX_ATTACHMENT_SIZE_BYTES, gt=0, description="Largest accepted upload in bytes"
    )
    allowed_content_types: List[str] = Field(
        default_factory=lambda: list(ALLOWED_ATTACHMENT_TYPES),
        description="Content types accepted for upload",
    )
    ticket_retry_attempts: int = Field(
        default=1, ge=0, description="Extra ticket requests after a storage failure"
    )
    http_timeout: float = Field(default=30.0, gt=0, description="PUT/GET timeout in seconds")
    download_dir: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.DOWNLOAD_DIR.value, "downloads"),
        description="Directory downloaded attachments are saved into",
    )


class SecurityConfig(BaseModel):
    """Password hashing and session token settings."""

    password_hash_iterations: int = Field(
        default=390_000, ge=1, description="PBKDF2 iterations for grant passwords"
    )
    salt_bytes: int = Field(default=16, ge=8, description="Random salt length")
    session_token_bytes: int = Field(
        default=32, ge=16, description="Entropy of minted session tokens"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.LOG_LEVEL.value, LogLevel.INFO.value),
        description="Logging level",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )

    @field_validator("level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {level.value for level in LogLevel}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class OrphanReportingConfig(BaseModel):
    """Where orphaned-blob candidates are reported besides the log."""

    queue_name: Optional[str] = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.ORPHAN_QUEUE_NAME.value) or None,
        description="Azure Storage queue receiving orphaned blob candidates",
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    environment: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.APP_ENV.value, "development"),
        description="Application environment",
    )
    debug: bool = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.DEBUG.value, "false").lower()
        == "true",
        description="Debug mode",
    )

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    transfer: TransferConfig = Field(default_factory=TransferConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    orphans: OrphanReportingConfig = Field(default_factory=OrphanReportingConfig)

    custom: Dict[str, Any] = Field(default_factory=dict, description="Custom configuration values")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        return cls()


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None
