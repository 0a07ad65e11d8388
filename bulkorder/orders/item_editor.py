"""Order item editor: diff desired items against the persisted order.

The editor is pure. It either returns an ``EditPayload`` ready for the
order-edit endpoint or raises ``LocalValidationError`` carrying every
violation found across all items. Lock violations (confirmed or delivered
slots) raise ``DeliveryLockedError``, which still carries the full list.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from bulkorder.config.engine import EngineConfig
from bulkorder.core.exceptions import DeliveryLockedError, LocalValidationError
from bulkorder.orders.allocation import QuantityAllocator
from bulkorder.orders.permissions import ActorContext
from bulkorder.orders.slot_editor import DeliverySlotEditor, SlotDiff, slot_payload
from bulkorder.orders.types import CONTACT_FIELDS, DeliverySlot, Order, OrderItem, TruckType
from bulkorder.orders.values import format_quantity, to_json_number
from bulkorder.orders.workflow import removal_blockers

logger = logging.getLogger(__name__)

_TRUCK_TYPES = frozenset(t.value for t in TruckType)


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip() or None


@dataclass(frozen=True)
class ItemAdd:
    item: OrderItem
    include_cost: bool = False

    def to_payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "product_id": self.item.product_id,
            "quantity": to_json_number(self.item.quantity),
            "deliveries": [
                slot_payload(s, include_id=False, include_cost=self.include_cost) for s in self.item.slots
            ],
        }
        if self.item.custom_blend_mix:
            body["custom_blend_mix"] = self.item.custom_blend_mix
        return body


@dataclass(frozen=True)
class ItemUpdate:
    before: OrderItem
    item: OrderItem
    slot_diff: SlotDiff
    changed_fields: Tuple[str, ...]

    def to_payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "order_item_id": self.item.id,
            "quantity": to_json_number(self.item.quantity),
            "deliveries": self.slot_diff.deliveries(),
        }
        if "custom_blend_mix" in self.changed_fields:
            body["custom_blend_mix"] = self.item.custom_blend_mix
        return body


@dataclass
class EditPayload:
    """Instruction set for ``POST /order-edit/{order_id}``."""

    order_id: int
    order: Dict[str, Optional[str]] = field(default_factory=dict)
    items_add: List[ItemAdd] = field(default_factory=list)
    items_update: List[ItemUpdate] = field(default_factory=list)
    items_remove: List[int] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.order or self.items_add or self.items_update or self.items_remove)

    def to_dict(self, *, include_empty: bool = False) -> Dict[str, Any]:
        body: Dict[str, Any] = {}
        if self.order or include_empty:
            body["order"] = dict(self.order)
        if self.items_add or include_empty:
            body["items_add"] = [a.to_payload() for a in self.items_add]
        if self.items_update or include_empty:
            body["items_update"] = [u.to_payload() for u in self.items_update]
        if self.items_remove or include_empty:
            body["items_remove"] = list(self.items_remove)
        return body

    def slot_changes(self) -> Dict[int, Dict[str, Any]]:
        """Per updated item: the ``deliveries_add/update/remove`` split."""
        return {u.item.id: u.slot_diff.to_payload() for u in self.items_update}


class OrderItemEditor:
    """Builds validated edit payloads from a persisted order and a desired item list."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        allocator: Optional[QuantityAllocator] = None,
        slot_editor: Optional[DeliverySlotEditor] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.allocator = allocator or QuantityAllocator(self.config)
        self.slot_editor = slot_editor or DeliverySlotEditor(self.config)

    # ── Public API ────────────────────────────────────────────────

    def build_payload(
        self,
        order: Order,
        desired_items: Sequence[OrderItem],
        *,
        order_fields: Optional[Mapping[str, Optional[str]]] = None,
        ctx: Optional[ActorContext] = None,
    ) -> EditPayload:
        """Diff *desired_items* (and contact *order_fields*) against *order*.

        Raises ``DeliveryLockedError`` when any lock is violated, else
        ``LocalValidationError`` when anything else is wrong. Both carry the
        complete message list.
        """
        payload, errors, lock_errors = self._build(order, desired_items, order_fields, ctx)
        if lock_errors:
            logger.warning(
                "Order %s edit blocked by locked deliveries",
                order.po_number,
                extra={"order_id": order.id, "po_number": order.po_number, "action": "edit"},
            )
            raise DeliveryLockedError([*lock_errors, *errors], details={"order_id": order.id})
        if errors:
            logger.info(
                "Order %s edit failed local validation (%d errors)",
                order.po_number, len(errors),
                extra={"order_id": order.id, "po_number": order.po_number, "action": "edit"},
            )
            raise LocalValidationError(errors, details={"order_id": order.id})
        return payload

    def validate(
        self,
        order: Order,
        desired_items: Sequence[OrderItem],
        *,
        order_fields: Optional[Mapping[str, Optional[str]]] = None,
        ctx: Optional[ActorContext] = None,
    ) -> List[str]:
        """Every violation, lock violations first. Empty means the edit is submittable."""
        _, errors, lock_errors = self._build(order, desired_items, order_fields, ctx)
        return [*lock_errors, *errors]

    def contact_update_payload(self, order: Order, fields: Mapping[str, Optional[str]]) -> EditPayload:
        """Edit payload that only touches contact fields; item groups stay empty."""
        errors: List[str] = []
        changes = self._diff_order_fields(order, fields, errors)
        if errors:
            raise LocalValidationError(errors, details={"order_id": order.id})
        return EditPayload(order_id=order.id, order=changes)

    # ── Internals ─────────────────────────────────────────────────

    def _build(
        self,
        order: Order,
        desired_items: Sequence[OrderItem],
        order_fields: Optional[Mapping[str, Optional[str]]],
        ctx: Optional[ActorContext],
    ) -> Tuple[EditPayload, List[str], List[str]]:
        include_cost = bool(ctx and ctx.can_edit_delivery_cost)
        errors: List[str] = []
        lock_errors: List[str] = []
        payload = EditPayload(order_id=order.id)

        persisted = {item.id: item for item in order.items if item.id is not None}
        seen: set = set()

        for position, item in enumerate(desired_items, start=1):
            label = item.product_name or f"Item {position}"
            if item.id is None:
                added = self._check_new_item(item, label, errors)
                if added is not None:
                    payload.items_add.append(ItemAdd(item=added, include_cost=include_cost))
                continue
            if item.id in seen:
                errors.append(f"{label}: appears more than once.")
                continue
            seen.add(item.id)
            before = persisted.get(item.id)
            if before is None:
                errors.append(f"{label}: item {item.id} is not part of order {order.po_number}.")
                continue
            label = item.product_name or before.product_name or label
            update = self._check_existing_item(before, item, label, include_cost, errors, lock_errors)
            if update is not None:
                payload.items_update.append(update)

        for item_id, before in persisted.items():
            if item_id in seen:
                continue
            blockers = removal_blockers(before)
            if blockers:
                lock_errors.extend(blockers)
            else:
                payload.items_remove.append(item_id)

        if not desired_items:
            errors.append("An order must keep at least one item.")

        if order_fields:
            payload.order = self._diff_order_fields(order, order_fields, errors)
        return payload, errors, lock_errors

    def _check_slots(self, slots: Sequence[DeliverySlot], label: str, errors: List[str]) -> None:
        """Rules that every editable slot must pass; one message per rule per item."""
        if any(not (s.delivery_date or "").strip() for s in slots):
            errors.append(f"{label}: All delivery slots must have a delivery date.")
        if any(s.quantity is None or s.quantity <= 0 for s in slots):
            errors.append(f"{label}: All delivery quantities must be greater than 0.")
        if any(not (s.truck_type or "").strip() for s in slots):
            errors.append(f"{label}: All delivery slots must have a truck type.")
        for position, slot in enumerate(slots, start=1):
            truck = (slot.truck_type or "").strip()
            if truck and truck not in _TRUCK_TYPES:
                errors.append(f"{label}: Delivery {position} has an unknown truck type ({truck}).")
            errors.extend(f"{label}: {msg}" for msg in self.allocator.validate_load_plan(slot, position))

    def _check_quantity(self, item: OrderItem, label: str, errors: List[str]) -> None:
        if item.quantity < self.config.min_quantity:
            errors.append(
                f"{label}: Quantity must be at least {format_quantity(self.config.min_quantity)}."
            )

    def _check_new_item(self, item: OrderItem, label: str, errors: List[str]) -> Optional[OrderItem]:
        start = len(errors)
        self._check_quantity(item, label, errors)
        if not item.slots:
            errors.append(f"{label}: Add at least one delivery slot.")
        if any(s.id is not None for s in item.slots):
            errors.append(f"{label}: A new item cannot reuse existing deliveries.")
        normalized: List[DeliverySlot] = []
        for position, slot in enumerate(item.slots, start=1):
            try:
                normalized.append(self.slot_editor.normalize(slot))
            except ValueError:
                errors.append(f"{label}: Delivery {position} has an invalid time ({slot.delivery_time}).")
                normalized.append(slot.with_changes(delivery_time=None))
        self._check_slots(normalized, label, errors)
        if item.slots:
            report = self.allocator.report(item.quantity, normalized)
            if not report.is_valid:
                errors.append(f"{label}: {report.message()}")
        if len(errors) != start:
            return None
        # Load plans are sent as one slot per trip.
        trips = [trip for slot in normalized for trip in self.allocator.expand_load_plan(slot)]
        return item.with_changes(slots=trips, custom_blend_mix=_clean_text(item.custom_blend_mix))

    def _check_existing_item(
        self,
        before: OrderItem,
        item: OrderItem,
        label: str,
        include_cost: bool,
        errors: List[str],
        lock_errors: List[str],
    ) -> Optional[ItemUpdate]:
        start = len(errors) + len(lock_errors)
        if item.product_id != before.product_id:
            errors.append(f"{label}: Product cannot be changed on an existing line; remove it and add a new one.")
        self._check_quantity(item, label, errors)
        delivered = before.delivered_quantity
        if delivered > 0 and item.quantity < delivered:
            errors.append(
                f"{label}: Quantity cannot be less than the delivered amount ({format_quantity(delivered)})."
            )

        diff = self.slot_editor.classify(before.slots, item.slots, include_cost=include_cost, label=label)
        errors.extend(diff.errors)
        lock_errors.extend(diff.lock_errors)

        editable = diff.slots
        if not editable and not before.delivered_slots:
            errors.append(f"{label}: Add at least one delivery slot.")
        self._check_slots(editable, label, errors)
        report = self.allocator.report(item.quantity, editable, already_delivered=delivered)
        if not report.is_valid:
            errors.append(f"{label}: {report.message()}")

        if len(errors) + len(lock_errors) != start:
            return None

        changed: List[str] = []
        if item.quantity != before.quantity:
            changed.append("quantity")
        if _clean_text(item.custom_blend_mix) != _clean_text(before.custom_blend_mix):
            changed.append("custom_blend_mix")
        if diff.has_changes:
            changed.append("deliveries")
        if not changed:
            return None
        updated = item.with_changes(
            custom_blend_mix=_clean_text(item.custom_blend_mix),
            slots=[*diff.kept_delivered, *editable],
        )
        return ItemUpdate(before=before, item=updated, slot_diff=diff, changed_fields=tuple(changed))

    def _diff_order_fields(
        self,
        order: Order,
        fields: Mapping[str, Optional[str]],
        errors: List[str],
    ) -> Dict[str, Optional[str]]:
        changes: Dict[str, Optional[str]] = {}
        current = order.contact_fields()
        for name, value in fields.items():
            if name not in CONTACT_FIELDS:
                errors.append(f"Field {name} cannot be edited on an order.")
                continue
            if _clean_text(value) != _clean_text(current.get(name)):
                changes[name] = _clean_text(value)
        return changes
