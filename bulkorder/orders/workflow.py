"""Order workflow gates.

The engine never moves an order between statuses; the platform does. These
functions only answer whether an action is legal for the order's current
status and the acting role. ``ensure_*`` variants raise instead of
returning False.
"""
from __future__ import annotations

import logging
from typing import Dict, FrozenSet, List, Optional

from bulkorder.core.exceptions import DeliveryLockedError, ForbiddenError, WorkflowViolationError
from bulkorder.orders.permissions import ActorContext, Permission, Role
from bulkorder.orders.types import Order, OrderItem, OrderStatus, WorkflowStatus
from bulkorder.orders.values import format_quantity

logger = logging.getLogger(__name__)

S = OrderStatus

TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    S.DRAFT: frozenset({S.CONFIRMED, S.CANCELLED}),
    S.CONFIRMED: frozenset({S.SCHEDULED, S.CANCELLED}),
    S.SCHEDULED: frozenset({S.IN_TRANSIT, S.CANCELLED}),
    S.IN_TRANSIT: frozenset({S.DELIVERED, S.CANCELLED}),
    S.DELIVERED: frozenset({S.COMPLETED}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
}

CANCELLABLE: FrozenSet[OrderStatus] = frozenset({S.DRAFT, S.CONFIRMED, S.SCHEDULED, S.IN_TRANSIT})
TERMINAL: FrozenSet[OrderStatus] = frozenset({S.COMPLETED, S.CANCELLED})

# Workflows in which amounts are final enough to show the client.
PRICING_VISIBLE: FrozenSet[WorkflowStatus] = frozenset({
    WorkflowStatus.PAYMENT_REQUESTED,
    WorkflowStatus.DELIVERED,
})


def _status(status: "OrderStatus | str") -> OrderStatus:
    return status if isinstance(status, OrderStatus) else OrderStatus(status)


def _actor_allows(ctx: Optional[ActorContext], permission: Permission, *, client_ok: bool = False) -> bool:
    if ctx is None:
        return True
    if client_ok and ctx.role == Role.CLIENT:
        return True
    return ctx.has(permission)


def can_transition(current: "OrderStatus | str", target: "OrderStatus | str") -> bool:
    return _status(target) in TRANSITIONS[_status(current)]


def can_cancel(status: "OrderStatus | str", ctx: Optional[ActorContext] = None) -> bool:
    """Cancellable before delivery. Clients cancel their own orders; staff need ``orders.cancel``."""
    if _status(status) not in CANCELLABLE:
        return False
    return _actor_allows(ctx, Permission.ORDERS_CANCEL, client_ok=True)


def can_edit(status: "OrderStatus | str", ctx: Optional[ActorContext] = None) -> bool:
    if _status(status) in TERMINAL:
        return False
    return _actor_allows(ctx, Permission.ORDERS_EDIT, client_ok=True)


def can_archive(status: "OrderStatus | str", ctx: Optional[ActorContext] = None) -> bool:
    """Archiving only hides the order from its client, so status never matters."""
    _status(status)
    return ctx is None or ctx.role == Role.CLIENT


def removal_blockers(item: OrderItem) -> List[str]:
    """Reasons *item* cannot be dropped from its order. Empty means removable."""
    label = item.product_name or f"Item {item.id}"
    reasons: List[str] = []
    if item.has_confirmed_slot:
        reasons.append(f"{label} has deliveries confirmed by the supplier and cannot be removed.")
    if item.has_delivered_slot:
        reasons.append(
            f"{label} has {format_quantity(item.delivered_quantity)} already delivered and cannot be removed."
        )
    return reasons


def can_remove_item(item: OrderItem, ctx: Optional[ActorContext] = None) -> bool:
    if removal_blockers(item):
        return False
    return _actor_allows(ctx, Permission.ORDERS_EDIT, client_ok=True)


def can_repeat(status: "OrderStatus | str", ctx: Optional[ActorContext] = None) -> bool:
    """Repeating only reads the source order, so any status will do."""
    _status(status)
    return _actor_allows(ctx, Permission.ORDERS_CREATE)


def can_mark_repeat(status: "OrderStatus | str", ctx: Optional[ActorContext] = None) -> bool:
    _status(status)
    return _actor_allows(ctx, Permission.ORDERS_VIEW_OWN)


def can_show_pricing(workflow: "WorkflowStatus | str | None") -> bool:
    if workflow is None:
        return False
    try:
        return WorkflowStatus(workflow) in PRICING_VISIBLE
    except ValueError:
        return False


def allowed_actions(status: "OrderStatus | str", ctx: Optional[ActorContext] = None) -> Dict[str, bool]:
    """Every status-level gate at once, for display."""
    current = _status(status)
    return {
        "cancel": can_cancel(current, ctx),
        "edit": can_edit(current, ctx),
        "archive": can_archive(current, ctx),
        "repeat": can_repeat(current, ctx),
        "mark_repeat": can_mark_repeat(current, ctx),
    }


# ── Raising variants ──────────────────────────────────────────────────


def _refuse(order: Order, action: str, ctx: Optional[ActorContext], reason: str) -> None:
    logger.warning(
        "Refused %s on order %s: %s",
        action, order.po_number, reason,
        extra={
            "order_id": order.id,
            "po_number": order.po_number,
            "action": action,
            "role": ctx.role.value if ctx else None,
        },
    )


def _ensure(order: Order, action: str, ctx: Optional[ActorContext], status_ok: bool, role_ok: bool) -> None:
    details = {"order_id": order.id, "status": order.order_status.value, "action": action}
    if not status_ok:
        reason = f"Order {order.po_number} cannot {action.replace('_', ' ')} while {order.order_status.value}."
        _refuse(order, action, ctx, reason)
        raise WorkflowViolationError(reason, details=details)
    if not role_ok:
        reason = f"Role {ctx.role.value if ctx else 'unknown'} may not {action.replace('_', ' ')} orders."
        _refuse(order, action, ctx, reason)
        raise ForbiddenError(reason, details=details)


def ensure_can_cancel(order: Order, ctx: Optional[ActorContext] = None) -> None:
    _ensure(
        order, "cancel", ctx,
        status_ok=order.order_status in CANCELLABLE,
        role_ok=can_cancel(S.DRAFT, ctx),
    )


def ensure_can_edit(order: Order, ctx: Optional[ActorContext] = None) -> None:
    _ensure(
        order, "edit", ctx,
        status_ok=order.order_status not in TERMINAL,
        role_ok=can_edit(S.DRAFT, ctx),
    )


def ensure_can_archive(order: Order, ctx: Optional[ActorContext] = None) -> None:
    _ensure(order, "archive", ctx, status_ok=True, role_ok=can_archive(order.order_status, ctx))


def ensure_can_repeat(order: Order, ctx: Optional[ActorContext] = None) -> None:
    _ensure(order, "repeat", ctx, status_ok=True, role_ok=can_repeat(order.order_status, ctx))


def ensure_can_mark_repeat(order: Order, ctx: Optional[ActorContext] = None) -> None:
    _ensure(order, "mark_repeat", ctx, status_ok=True, role_ok=can_mark_repeat(order.order_status, ctx))


def ensure_can_remove_item(item: OrderItem, ctx: Optional[ActorContext] = None) -> None:
    blockers = removal_blockers(item)
    if blockers:
        raise DeliveryLockedError(blockers, details={"order_item_id": item.id})
    if not can_remove_item(item, ctx):
        raise ForbiddenError(
            f"Role {ctx.role.value if ctx else 'unknown'} may not remove order items.",
            details={"order_item_id": item.id},
        )


def ensure_can_transition(order: Order, target: "OrderStatus | str") -> None:
    target = _status(target)
    if not can_transition(order.order_status, target):
        raise WorkflowViolationError(
            f"Order {order.po_number} cannot move from {order.order_status.value} to {target.value}.",
            details={"order_id": order.id, "status": order.order_status.value, "target": target.value},
        )
