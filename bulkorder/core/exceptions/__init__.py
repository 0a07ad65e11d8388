"""
Engine exception system.

Usage:
    from bulkorder.core.exceptions import LocalValidationError, WorkflowViolationError

    raise LocalValidationError(["All delivery slots must have a delivery date."])
    raise WorkflowViolationError("Order PO-1001 cannot be cancelled", details={"status": "Delivered"})
"""
from bulkorder.core.exceptions.base import ProjectError
from bulkorder.core.exceptions.errors import (
    ConfigurationError,
    ConflictError,
    DeliveryLockedError,
    ForbiddenError,
    LocalValidationError,
    NotFoundError,
    SubmissionError,
    TransportError,
    WorkflowViolationError,
)
from bulkorder.core.exceptions.report import ErrorReport

__all__ = [
    "ProjectError",
    "ConfigurationError",
    "LocalValidationError",
    "DeliveryLockedError",
    "WorkflowViolationError",
    "ForbiddenError",
    "ConflictError",
    "NotFoundError",
    "SubmissionError",
    "TransportError",
    "ErrorReport",
]
