"""OrderActionService: gated one-shot actions on an order."""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from bulkorder.clients.platform.base import BasePlatformClient
from bulkorder.core.exceptions import (
    ForbiddenError,
    LocalValidationError,
    NotFoundError,
    WorkflowViolationError,
)
from bulkorder.orders.permissions import ActorContext, Permission
from bulkorder.orders.pricing import admin_update_payload, quoted_price_payload
from bulkorder.orders.repeat import RepeatComposer, RepeatDraft, RepeatOverride
from bulkorder.orders.types import Order, OrderStatus, PaymentStatus
from bulkorder.orders.values import Number
from bulkorder.orders.workflow import (
    ensure_can_archive,
    ensure_can_cancel,
    ensure_can_mark_repeat,
    ensure_can_repeat,
)

logger = logging.getLogger(__name__)

_SETTLED = frozenset({PaymentStatus.PAID, PaymentStatus.REFUNDED, PaymentStatus.PARTIAL_REFUNDED})


class OrderActionService:
    def __init__(
        self,
        client: BasePlatformClient,
        ctx: ActorContext,
        *,
        composer: Optional[RepeatComposer] = None,
    ) -> None:
        self._client = client
        self._ctx = ctx
        self._composer = composer or RepeatComposer()

    def _extra(self, order: Order, action: str) -> Dict[str, Any]:
        return {"order_id": order.id, "po_number": order.po_number, "role": self._ctx.role.value, "action": action}

    async def cancel(self, order: Order) -> Dict[str, Any]:
        ensure_can_cancel(order, self._ctx)
        result = await self._client.set_order_status(order.id, OrderStatus.CANCELLED.value)
        logger.info("Order %s cancelled", order.po_number, extra=self._extra(order, "cancel"))
        return result

    async def archive(self, order: Order) -> Dict[str, Any]:
        ensure_can_archive(order, self._ctx)
        result = await self._client.archive_order(order.id)
        logger.info("Order %s archived", order.po_number, extra=self._extra(order, "archive"))
        return result

    def preview_repeat(
        self, order: Order, overrides: Optional[Mapping[int, RepeatOverride]] = None
    ) -> RepeatDraft:
        ensure_can_repeat(order, self._ctx)
        return self._composer.compose(order, overrides)

    async def repeat(
        self, order: Order, overrides: Optional[Mapping[int, RepeatOverride]] = None
    ) -> Dict[str, Any]:
        draft = self.preview_repeat(order, overrides)
        result = await self._client.repeat_order(order.id, draft.to_payload()["items"])
        logger.info(
            "Order %s repeated with %d items", order.po_number, len(draft.lines),
            extra=self._extra(order, "repeat"),
        )
        return result

    async def mark_repeat(self, order: Order) -> Dict[str, Any]:
        """Flag only; does not create an order. Calling it again is harmless."""
        ensure_can_mark_repeat(order, self._ctx)
        result = await self._client.mark_repeat_order(order.id)
        logger.info("Order %s marked as repeat", order.po_number, extra=self._extra(order, "mark_repeat"))
        return result

    async def pay(self, order: Order, payment_method_id: str) -> Dict[str, Any]:
        """Forward an opaque payment-method token. Card details never pass through here."""
        if not self._ctx.is_client and not self._ctx.has(Permission.PAYMENTS_PROCESS):
            raise ForbiddenError(f"Role {self._ctx.role.value} may not process payments.")
        if not (payment_method_id or "").strip():
            raise LocalValidationError(["A payment method is required."])
        if order.order_status == OrderStatus.CANCELLED:
            raise WorkflowViolationError(
                f"Order {order.po_number} is cancelled and cannot be paid.",
                details={"order_id": order.id, "status": order.order_status.value},
            )
        if order.payment_status in _SETTLED:
            raise WorkflowViolationError(
                f"Order {order.po_number} is already {order.payment_status.value}.",
                details={"order_id": order.id, "payment_status": order.payment_status.value},
            )
        result = await self._client.process_payment(order.id, payment_method_id.strip())
        logger.info("Payment submitted for order %s", order.po_number, extra=self._extra(order, "pay"))
        return result

    async def update_pricing(
        self,
        order: Order,
        *,
        discount: Optional[Number] = None,
        other_charges: Optional[Number] = None,
    ) -> Dict[str, Any]:
        payload = admin_update_payload(self._ctx, discount=discount, other_charges=other_charges)
        result = await self._client.admin_update_order(order.id, payload)
        logger.info("Order %s pricing updated: %s", order.po_number, payload, extra=self._extra(order, "pricing"))
        return result

    async def set_quoted_price(self, order: Order, item_id: int, quoted_price: Number) -> Dict[str, Any]:
        item = order.item_by_id(item_id)
        if item is None:
            raise NotFoundError(
                f"Item {item_id} is not part of order {order.po_number}",
                details={"order_id": order.id, "order_item_id": item_id},
            )
        payload = quoted_price_payload(self._ctx, item, quoted_price)
        result = await self._client.set_quoted_price(order.id, item_id, payload)
        logger.info(
            "Order %s item %s quoted at %s", order.po_number, item_id, payload["quoted_price"],
            extra=self._extra(order, "quote"),
        )
        return result
