"""
Base exception type for the ordering engine.

Every engine error carries a machine-readable code and a suggested HTTP
status, so the preview API renders it without a lookup table and the
service layer can tell retryable failures from final ones.
"""
from __future__ import annotations

import traceback
from typing import Any, Dict, Optional

# ``details`` keys that are also logger context keys (see core.logger).
_LOG_CONTEXT_KEYS = ("order_id", "po_number")


class ProjectError(Exception):
    """
    Base exception for all engine errors.

    Subclasses set ``default_code``, ``default_http_status`` and, for
    transport failures, ``retryable``. ``details`` holds whatever the caller
    needs to render or log the error: validation messages, field errors,
    the order id.
    """

    default_code: str = "ERROR"
    default_http_status: int = 500
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        http_status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.http_status = http_status or self.default_http_status
        self.details: Dict[str, Any] = dict(details or {})
        self.cause = cause

    @property
    def is_client_error(self) -> bool:
        return self.http_status < 500

    def log_extra(self) -> Dict[str, Any]:
        """Order context from ``details`` for ``logger.*(..., extra=...)``."""
        return {k: self.details[k] for k in _LOG_CONTEXT_KEYS if k in self.details}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, http_status={self.http_status}, message={self.message!r})"

    def __str__(self) -> str:
        return self.message

    def to_dict(self, *, include_traceback: bool = False) -> Dict[str, Any]:
        """Serialize for logging or API responses."""
        out: Dict[str, Any] = {"message": self.message, "code": self.code, "http_status": self.http_status}
        if self.details:
            out["details"] = self.details
        if self.cause is None:
            return out
        out["cause"] = str(self.cause)
        if include_traceback:
            out["cause_traceback"] = traceback.format_exception(
                type(self.cause), self.cause, self.cause.__traceback__
            )
        return out
