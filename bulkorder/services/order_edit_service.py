"""OrderEditService: validate, submit and track one order's edits."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence

from bulkorder.clients.platform.base import BasePlatformClient
from bulkorder.core.exceptions import (
    ConflictError,
    ErrorReport,
    LocalValidationError,
    SubmissionError,
    TransportError,
)
from bulkorder.orders.item_editor import EditPayload, OrderItemEditor
from bulkorder.orders.permissions import ActorContext
from bulkorder.orders.types import Order, OrderItem
from bulkorder.orders.workflow import ensure_can_edit

logger = logging.getLogger(__name__)


class SubmitStatus(str, Enum):
    OK = "ok"
    NOOP = "noop"
    LOCAL_VALIDATION_FAILED = "local_validation_failed"
    SUBMISSION_FAILED = "submission_failed"
    NETWORK_FAILED = "network_failed"


@dataclass
class SubmitResult:
    status: SubmitStatus
    payload: Optional[EditPayload] = None
    order: Optional[Order] = None
    errors: ErrorReport = field(default_factory=ErrorReport)
    retryable: bool = False

    @property
    def ok(self) -> bool:
        return self.status in (SubmitStatus.OK, SubmitStatus.NOOP)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "payload": self.payload.to_dict() if self.payload else None,
            "retryable": self.retryable,
            **self.errors.to_dict(),
        }


def order_from_response(body: Mapping[str, Any]) -> Optional[Order]:
    """Read the updated order out of an order-edit response, if it has one."""
    data = body.get("data", body)
    if not isinstance(data, Mapping):
        return None
    order = data.get("order", data)
    if not isinstance(order, Mapping) or order.get("id") is None:
        return None
    items = data.get("items")
    return Order.from_dict(dict(order), items=items if isinstance(items, list) else None)


class OrderEditService:
    """Holds the last server-confirmed state of one order.

    Payloads are always diffed against that baseline, and only a successful
    submission replaces it. One submission at a time.
    """

    def __init__(
        self,
        client: BasePlatformClient,
        order: Order,
        ctx: ActorContext,
        *,
        editor: Optional[OrderItemEditor] = None,
    ) -> None:
        self._client = client
        self._baseline = order
        self._ctx = ctx
        self._editor = editor or OrderItemEditor()
        self._in_flight = False

    @property
    def baseline(self) -> Order:
        return self._baseline

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def refresh(self, order: Order) -> None:
        """Adopt a freshly fetched order as the new baseline. Local drafts are stale after this."""
        if self._in_flight:
            raise ConflictError(f"Order {order.po_number} has a submission in flight")
        self._baseline = order

    def preview(
        self,
        desired_items: Sequence[OrderItem],
        *,
        order_fields: Optional[Mapping[str, Optional[str]]] = None,
    ) -> EditPayload:
        """The payload a submit would send now. Raises on local validation failure."""
        ensure_can_edit(self._baseline, self._ctx)
        return self._editor.build_payload(
            self._baseline, desired_items, order_fields=order_fields, ctx=self._ctx
        )

    async def submit(
        self,
        desired_items: Sequence[OrderItem],
        *,
        order_fields: Optional[Mapping[str, Optional[str]]] = None,
    ) -> SubmitResult:
        """Validate against the baseline and send. ``WorkflowViolationError`` propagates."""
        self._guard()
        ensure_can_edit(self._baseline, self._ctx)
        try:
            payload = self._editor.build_payload(
                self._baseline, desired_items, order_fields=order_fields, ctx=self._ctx
            )
        except LocalValidationError as exc:
            return SubmitResult(SubmitStatus.LOCAL_VALIDATION_FAILED, errors=ErrorReport().merge_local(exc))
        return await self._send(payload, payload.to_dict())

    async def update_contact(self, fields: Mapping[str, Optional[str]]) -> SubmitResult:
        """Contact-only edit. Item groups are sent empty."""
        self._guard()
        ensure_can_edit(self._baseline, self._ctx)
        try:
            payload = self._editor.contact_update_payload(self._baseline, fields)
        except LocalValidationError as exc:
            return SubmitResult(SubmitStatus.LOCAL_VALIDATION_FAILED, errors=ErrorReport().merge_local(exc))
        return await self._send(payload, payload.to_dict(include_empty=True))

    def _guard(self) -> None:
        if self._in_flight:
            raise ConflictError(
                f"Order {self._baseline.po_number} already has a submission in flight",
                details={"order_id": self._baseline.id},
            )

    async def _send(self, payload: EditPayload, body: Dict[str, Any]) -> SubmitResult:
        order = self._baseline
        log_extra = {
            "order_id": order.id,
            "po_number": order.po_number,
            "role": self._ctx.role.value,
            "action": "edit",
        }
        if payload.is_empty:
            return SubmitResult(SubmitStatus.NOOP, payload=payload, order=order)

        self._in_flight = True
        try:
            response = await self._client.edit_order(order.id, body)
        except SubmissionError as exc:
            logger.info("Order %s edit rejected: %s", order.po_number, exc.message, extra=log_extra)
            return SubmitResult(
                SubmitStatus.SUBMISSION_FAILED, payload=payload, errors=ErrorReport().merge_submission(exc)
            )
        except TransportError as exc:
            logger.warning("Order %s edit not delivered: %s", order.po_number, exc.message, extra=log_extra)
            report = ErrorReport()
            report.add("", exc.message)
            return SubmitResult(SubmitStatus.NETWORK_FAILED, payload=payload, errors=report, retryable=True)
        finally:
            self._in_flight = False

        updated = order_from_response(response)
        if updated is None:
            logger.warning(
                "Order %s edit accepted but response carried no order; baseline kept",
                order.po_number, extra=log_extra,
            )
        else:
            self._baseline = updated
        logger.info(
            "Order %s edited: +%d ~%d -%d items",
            order.po_number, len(payload.items_add), len(payload.items_update), len(payload.items_remove),
            extra=log_extra,
        )
        return SubmitResult(SubmitStatus.OK, payload=payload, order=self._baseline)
