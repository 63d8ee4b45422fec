"""
Configuration management for LocalBase.

All configuration is done via environment variables prefixed with
``LOCALBASE_`` (for example ``LOCALBASE_STORAGE_BACKEND=sqlite``).
Values are loaded and validated by pydantic-settings.

Invariants:
    - All settings have defaults suitable for local development
    - Latency defaults approximate a hosted round trip (200ms reads,
      300ms writes, 100ms subscribe confirmation)
    - Tests use Settings.for_tests(): in-memory storage, zero latency

How to change safely:
    - Add new settings with defaults that keep existing behavior
    - Keep env variable names stable, app configs depend on them
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class StorageBackend(str, Enum):
    """Supported durable key-value backends."""

    MEMORY = "memory"
    SQLITE = "sqlite"


class Settings(BaseSettings):
    """Emulator configuration."""

    # Durable storage
    storage_backend: StorageBackend = Field(default=StorageBackend.MEMORY)
    data_dir: str = Field(default=".localbase")
    sqlite_filename: str = Field(default="localbase.db")

    # Simulated latency (milliseconds)
    select_delay_ms: int = Field(default=200, ge=0)
    mutation_delay_ms: int = Field(default=300, ge=0)
    rpc_delay_ms: int = Field(default=300, ge=0)
    subscribe_confirm_ms: int = Field(default=100, ge=0)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="text", pattern="^(text|json)$")

    model_config = {"env_prefix": "LOCALBASE_"}

    @classmethod
    def for_tests(cls, **overrides) -> Settings:
        """Zero-latency, in-memory settings for test suites."""
        values = {
            "storage_backend": StorageBackend.MEMORY,
            "select_delay_ms": 0,
            "mutation_delay_ms": 0,
            "rpc_delay_ms": 0,
            "subscribe_confirm_ms": 0,
        }
        values.update(overrides)
        return cls(**values)

    def validate_config(self) -> None:
        """Validate cross-field configuration.

        Raises:
            ValueError: If the configuration is invalid
        """
        if self.storage_backend == StorageBackend.SQLITE and not self.data_dir:
            raise ValueError("LOCALBASE_DATA_DIR is required when LOCALBASE_STORAGE_BACKEND=sqlite")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Invalid LOCALBASE_LOG_LEVEL '{self.log_level}'")

    @property
    def sqlite_path(self) -> Path:
        """Path of the SQLite file used by the sqlite backend."""
        return Path(self.data_dir) / self.sqlite_filename

    def log_config(self) -> None:
        """Log the effective configuration."""
        logger.info(
            "LocalBase configuration loaded",
            extra={
                "storage_backend": self.storage_backend.value,
                "data_dir": self.data_dir
                if self.storage_backend == StorageBackend.SQLITE
                else None,
                "select_delay_ms": self.select_delay_ms,
                "mutation_delay_ms": self.mutation_delay_ms,
                "subscribe_confirm_ms": self.subscribe_confirm_ms,
                "log_level": self.log_level,
            },
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the process-wide settings, loading them from the environment once."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
