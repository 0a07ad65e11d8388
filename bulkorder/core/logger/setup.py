"""
Logger setup: console and rotating JSON file handlers from LoggerConfig.
"""
from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import List, Optional

from bulkorder.core.logger.config import LoggerConfig
from bulkorder.core.logger.formatters import JsonFormatter, PlainConsoleFormatter

_configured: Optional[LoggerConfig] = None


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def _file_handler(config: LoggerConfig, root: logging.Logger) -> Optional[logging.Handler]:
    log_dir = (config.log_dir or "").strip()
    if not (config.file_rotating and log_dir):
        return None
    try:
        os.makedirs(log_dir, exist_ok=True)
    except OSError:
        root.warning("Could not create log dir %s, order log file disabled", log_dir)
        return None
    handler = RotatingFileHandler(
        os.path.join(log_dir, f"{config.log_file_basename}.log"),
        maxBytes=config.max_bytes,
        backupCount=config.backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(JsonFormatter())
    return handler


def _handlers(config: LoggerConfig, root: logging.Logger) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if config.console:
        console = logging.StreamHandler()
        console.setFormatter(PlainConsoleFormatter())
        handlers.append(console)
    file_handler = _file_handler(config, root)
    if file_handler is not None:
        handlers.append(file_handler)
    return handlers


def configure(config: Optional[LoggerConfig] = None) -> LoggerConfig:
    """
    Attach handlers to the engine root logger and return the config in use.

    Calling it again replaces the handlers, so tests and the API lifespan can
    both call it.
    """
    global _configured
    config = config or LoggerConfig.from_env()
    _configured = config

    level = _level(config.level)
    root = logging.getLogger(config.root_name)
    root.setLevel(level)
    root.handlers.clear()
    for handler in _handlers(config, root):
        handler.setLevel(level)
        root.addHandler(handler)
    root.propagate = False
    return config


def get_logger(name: str) -> logging.Logger:
    """Return a logger, configuring the root from env on first use."""
    if _configured is None:
        configure()
    return logging.getLogger(name)
