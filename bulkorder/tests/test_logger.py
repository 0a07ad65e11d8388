"""Tests for the engine logger setup and formatters."""
from __future__ import annotations

import json
import logging
import sys

import pytest

from bulkorder.core.logger import JsonFormatter, LoggerConfig, PlainConsoleFormatter, configure, get_logger


def _record(msg="Edit submitted", exc_info=None, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="bulkorder.services", level=logging.INFO, pathname="svc.py", lineno=7,
        msg=msg, args=(), exc_info=exc_info,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def isolated_root():
    name = "bulkorder_test_logger"
    yield name
    root = logging.getLogger(name)
    for handler in list(root.handlers):
        handler.close()
    root.handlers.clear()


def test_from_env(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("LOG_CONSOLE", "no")
    monkeypatch.delenv("LOG_DIR", raising=False)
    config = LoggerConfig.from_env()
    assert config.level == "DEBUG"
    assert config.console is False
    assert config.log_dir is None


def test_with_overrides_ignores_none():
    config = LoggerConfig().with_overrides(level="WARNING", log_dir=None)
    assert config.level == "WARNING"
    assert config.log_dir is None


def test_json_formatter_lifts_order_context():
    line = JsonFormatter().format(_record(order_id=42, po_number="PO-1042", action="edit", other="x"))
    data = json.loads(line)
    assert data["message"] == "Edit submitted"
    assert data["order_id"] == 42
    assert data["po_number"] == "PO-1042"
    assert data["action"] == "edit"
    assert "other" not in data
    assert data["location"] == "svc.py:7"


def test_json_formatter_exception():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record(exc_info=sys.exc_info())
    data = json.loads(JsonFormatter().format(record))
    assert "RuntimeError: boom" in data["exception"]


def test_console_formatter_appends_order():
    assert PlainConsoleFormatter().format(_record(order_id=7)).endswith("[order=7]")


def test_configure_is_idempotent_and_writes_file(tmp_path, isolated_root):
    config = LoggerConfig(root_name=isolated_root, log_dir=str(tmp_path), console=False)
    configure(config)
    configure(config)
    root = logging.getLogger(isolated_root)
    assert len(root.handlers) == 1
    assert root.propagate is False

    logging.getLogger(f"{isolated_root}.orders").info("Order saved", extra={"order_id": 5})
    for handler in root.handlers:
        handler.flush()
    lines = (tmp_path / "bulkorder.log").read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[-1])["order_id"] == 5


def test_configure_without_log_dir(isolated_root):
    configure(LoggerConfig(root_name=isolated_root))
    handlers = logging.getLogger(isolated_root).handlers
    assert len(handlers) == 1
    assert isinstance(handlers[0].formatter, PlainConsoleFormatter)


def test_get_logger_is_named():
    assert get_logger("bulkorder.orders.pricing").name == "bulkorder.orders.pricing"
