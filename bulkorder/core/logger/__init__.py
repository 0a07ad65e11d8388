"""
Engine logger: console + rotating JSON file.

Usage:
    from bulkorder.core.logger import configure, get_logger, LoggerConfig

    configure(LoggerConfig(level="DEBUG", log_dir="/var/log/bulkorder"))
    logger = get_logger(__name__)
    logger.info("Edit submitted", extra={"order_id": 42, "po_number": "PO-1042"})
"""
from bulkorder.core.logger.config import LoggerConfig
from bulkorder.core.logger.formatters import ORDER_CONTEXT_KEYS, JsonFormatter, PlainConsoleFormatter
from bulkorder.core.logger.setup import configure, get_logger

__all__ = [
    "LoggerConfig",
    "JsonFormatter",
    "PlainConsoleFormatter",
    "ORDER_CONTEXT_KEYS",
    "configure",
    "get_logger",
]
