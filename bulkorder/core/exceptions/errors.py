"""
Engine exception types.

Local validation and workflow errors are raised before any network call;
submission and transport errors come back from the platform API.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from bulkorder.core.exceptions.base import ProjectError


class ConfigurationError(ProjectError):
    """Invalid or missing configuration."""

    default_code = "CONFIGURATION_ERROR"
    default_http_status = 500


class LocalValidationError(ProjectError):
    """Edit state failed local validation. Carries every violation found."""

    default_code = "LOCAL_VALIDATION_ERROR"
    default_http_status = 400

    def __init__(
        self,
        messages: Iterable[str],
        *,
        message: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        **kwargs: Any,
    ) -> None:
        self.messages: List[str] = list(messages)
        merged = dict(details or {})
        merged["errors"] = list(self.messages)
        super().__init__(
            message or _summarize(self.messages),
            details=merged,
            **kwargs,
        )


class DeliveryLockedError(LocalValidationError):
    """A confirmed or delivered slot would be removed or re-quantified."""

    default_code = "DELIVERY_LOCKED"
    default_http_status = 409


class WorkflowViolationError(ProjectError):
    """Action is not legal for the order's current status."""

    default_code = "WORKFLOW_VIOLATION"
    default_http_status = 409


class ForbiddenError(ProjectError):
    """The caller's role lacks the capability for this action."""

    default_code = "FORBIDDEN"
    default_http_status = 403


class ConflictError(ProjectError):
    """Another submission for the same order is still in flight."""

    default_code = "CONFLICT"
    default_http_status = 409


class NotFoundError(ProjectError):
    """Referenced order, item or slot does not exist in the baseline."""

    default_code = "NOT_FOUND"
    default_http_status = 404


class SubmissionError(ProjectError):
    """The platform rejected a payload."""

    default_code = "SUBMISSION_ERROR"
    default_http_status = 422

    def __init__(
        self,
        message: str,
        *,
        field_errors: Optional[Dict[str, List[str]]] = None,
        **kwargs: Any,
    ) -> None:
        self.field_errors: Dict[str, List[str]] = {
            k: list(v) if isinstance(v, (list, tuple)) else [str(v)]
            for k, v in (field_errors or {}).items()
        }
        details = dict(kwargs.pop("details", None) or {})
        if self.field_errors:
            details["field_errors"] = self.field_errors
        super().__init__(message, details=details, **kwargs)


class TransportError(ProjectError):
    """Timeout, connection failure or 5xx from the platform. Safe to retry."""

    default_code = "TRANSPORT_ERROR"
    default_http_status = 502
    retryable = True


def _summarize(messages: List[str]) -> str:
    if not messages:
        return "Validation failed"
    if len(messages) == 1:
        return messages[0]
    return f"{messages[0]} (and {len(messages) - 1} more)"
