"""Configuration for osquery-client.

Values come from environment variables prefixed with ``OSQUERY_`` (or a
``.env`` file), e.g. ``OSQUERY_SOCKET_PATH=/var/osquery/osquery.em``.
"""

import sys
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if sys.platform == "win32":
    DEFAULT_SOCKET_PATH = r"\\.\pipe\osquery-client"
else:
    DEFAULT_SOCKET_PATH = "/tmp/osquery-client"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_LOG_FORMATS = ("console", "json")


class Settings(BaseSettings):
    """Client settings with environment overrides."""

    model_config = SettingsConfigDict(
        env_prefix="OSQUERY_",
        env_file=".env",
        extra="ignore",
    )

    socket_path: str = Field(
        default=DEFAULT_SOCKET_PATH,
        description="Extensions socket (or named pipe) of the daemon",
    )
    executable: Optional[str] = Field(
        default=None,
        description="Daemon binary the CLI spawns when --spawn is not given",
    )
    spawn_timeout: Optional[float] = Field(
        default=None,
        description="Seconds to wait for a spawned daemon; None waits forever",
    )
    poll_interval: float = Field(
        default=0.0,
        ge=0.0,
        description="Sleep between readiness probes; 0 busy-waits",
    )
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {_LOG_LEVELS}, got {v!r}")
        return level

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, v: str) -> str:
        fmt = v.lower()
        if fmt not in _LOG_FORMATS:
            raise ValueError(f"log_format must be one of {_LOG_FORMATS}, got {v!r}")
        return fmt

    @field_validator("spawn_timeout")
    @classmethod
    def _check_spawn_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("spawn_timeout must be positive")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
