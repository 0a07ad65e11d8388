"""
Logger configuration, built in code or from env.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional

_TRUTHY = ("1", "true", "yes")


@dataclass(frozen=True)
class LoggerConfig:
    """
    Configuration for the engine logger.

    Use LoggerConfig.from_env() for env-based config, or build explicitly.
    """

    # DEBUG, INFO, WARNING, ERROR, CRITICAL
    level: str = "INFO"
    # Directory for the rotating JSON file; None disables the file handler
    log_dir: Optional[str] = None
    log_file_basename: str = "bulkorder"
    max_bytes: int = 5 * 1024 * 1024  # 5 MB
    backup_count: int = 5
    # Handlers are attached here; module loggers under it inherit them
    root_name: str = "bulkorder"
    console: bool = True
    file_rotating: bool = True

    @classmethod
    def from_env(cls) -> "LoggerConfig":
        """
        Env:
            LOG_LEVEL, LOG_DIR, LOG_FILE_BASENAME, LOG_MAX_BYTES,
            LOG_BACKUP_COUNT, LOG_ROOT_NAME, LOG_CONSOLE, LOG_FILE_ROTATING
        """
        env = os.environ
        return cls(
            level=env.get("LOG_LEVEL", "INFO").upper(),
            log_dir=env.get("LOG_DIR") or None,
            log_file_basename=env.get("LOG_FILE_BASENAME", "bulkorder"),
            max_bytes=int(env.get("LOG_MAX_BYTES", str(5 * 1024 * 1024))),
            backup_count=int(env.get("LOG_BACKUP_COUNT", "5")),
            root_name=env.get("LOG_ROOT_NAME", "bulkorder"),
            console=env.get("LOG_CONSOLE", "true").lower() in _TRUTHY,
            file_rotating=env.get("LOG_FILE_ROTATING", "true").lower() in _TRUTHY,
        )

    def with_overrides(self, **changes: object) -> "LoggerConfig":
        """Return a copy with the given fields replaced (None values are ignored)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
