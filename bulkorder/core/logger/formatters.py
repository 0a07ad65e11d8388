"""
Formatters: JSON lines for the rotating file, plain text for the console.
"""
from __future__ import annotations

import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Optional, Tuple

# Attributes passed via ``extra=`` that are lifted to top-level JSON keys.
ORDER_CONTEXT_KEYS: Tuple[str, ...] = ("order_id", "po_number", "role", "action")


class JsonFormatter(logging.Formatter):
    """One JSON object per line, with order context promoted to top-level keys."""

    def __init__(self, *, context_keys: Tuple[str, ...] = ORDER_CONTEXT_KEYS) -> None:
        super().__init__()
        self.context_keys = context_keys

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in self.context_keys:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exception"] = "".join(
                traceback.format_exception(*record.exc_info)
            ).strip()
        payload["location"] = f"{record.pathname}:{record.lineno}"
        return json.dumps(payload, default=str, ensure_ascii=False)


class PlainConsoleFormatter(logging.Formatter):
    """Human-readable console format; appends ``[order=...]`` when present."""

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None) -> None:
        super().__init__(
            fmt=fmt or "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt=datefmt or "%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        order_id = getattr(record, "order_id", None)
        if order_id is not None:
            line = f"{line} [order={order_id}]"
        return line
