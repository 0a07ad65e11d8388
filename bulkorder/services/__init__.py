"""Service layer: order edits and one-shot order actions against the platform API."""
from bulkorder.services.order_action_service import OrderActionService
from bulkorder.services.order_edit_service import OrderEditService, SubmitResult, SubmitStatus

__all__ = [
    "OrderEditService",
    "OrderActionService",
    "SubmitResult",
    "SubmitStatus",
]
