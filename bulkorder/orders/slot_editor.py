"""Delivery slot reconciliation against the persisted state of one item.

Every edited slot ends up as exactly one variant: ``SlotAdded``,
``SlotUpdated``, ``SlotRemoved`` or ``SlotUnchanged``. The diff is total;
violations are collected on the result and raised by ``diff()`` or read by
callers that aggregate errors across items.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple, Union

from bulkorder.config.engine import EngineConfig
from bulkorder.core.exceptions import DeliveryLockedError, LocalValidationError
from bulkorder.orders.types import DeliverySlot
from bulkorder.orders.values import format_quantity, normalize_date, normalize_time, to_json_number

logger = logging.getLogger(__name__)


class SlotChangeKind(str, Enum):
    ADDED = "added"
    UPDATED = "updated"
    REMOVED = "removed"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class SlotAdded:
    slot: DeliverySlot
    kind: ClassVar[SlotChangeKind] = SlotChangeKind.ADDED


@dataclass(frozen=True)
class SlotUpdated:
    before: DeliverySlot
    slot: DeliverySlot
    changed_fields: Tuple[str, ...]
    kind: ClassVar[SlotChangeKind] = SlotChangeKind.UPDATED


@dataclass(frozen=True)
class SlotRemoved:
    slot: DeliverySlot
    kind: ClassVar[SlotChangeKind] = SlotChangeKind.REMOVED


@dataclass(frozen=True)
class SlotUnchanged:
    slot: DeliverySlot
    kind: ClassVar[SlotChangeKind] = SlotChangeKind.UNCHANGED


SlotChange = Union[SlotAdded, SlotUpdated, SlotRemoved, SlotUnchanged]

# Fields that may still change once the supplier has confirmed a slot.
CONFIRMED_EDITABLE_FIELDS = frozenset({"delivery_date", "delivery_time"})


def slot_payload(slot: DeliverySlot, *, include_id: bool = True, include_cost: bool = False) -> Dict[str, Any]:
    """JSON body for one slot. Time is ``HH:MM`` or null, never blank."""
    body: Dict[str, Any] = {}
    if include_id:
        body["id"] = slot.id
    body.update(
        quantity=to_json_number(slot.quantity),
        delivery_date=slot.delivery_date,
        delivery_time=slot.delivery_time,
        truck_type=slot.truck_type,
    )
    if slot.load_size is not None and slot.time_interval:
        body["load_size"] = to_json_number(slot.load_size)
        body["time_interval"] = slot.time_interval
    if include_cost:
        body["delivery_cost"] = to_json_number(slot.delivery_cost)
    return body


@dataclass(frozen=True)
class SlotDiff:
    """Result of reconciling one item's slots.

    ``changes`` follows the edited order, with removals appended.
    ``slots`` is the resulting editable slot list (delivered slots excluded).
    """

    changes: Tuple[SlotChange, ...] = ()
    include_cost: bool = False
    errors: Tuple[str, ...] = ()
    lock_errors: Tuple[str, ...] = ()
    kept_delivered: Tuple[DeliverySlot, ...] = field(default=())

    @property
    def added(self) -> List[SlotAdded]:
        return [c for c in self.changes if isinstance(c, SlotAdded)]

    @property
    def updated(self) -> List[SlotUpdated]:
        return [c for c in self.changes if isinstance(c, SlotUpdated)]

    @property
    def removed(self) -> List[SlotRemoved]:
        return [c for c in self.changes if isinstance(c, SlotRemoved)]

    @property
    def unchanged(self) -> List[SlotUnchanged]:
        return [c for c in self.changes if isinstance(c, SlotUnchanged)]

    @property
    def slots(self) -> List[DeliverySlot]:
        return [c.slot for c in self.changes if not isinstance(c, SlotRemoved)]

    @property
    def has_changes(self) -> bool:
        return any(not isinstance(c, SlotUnchanged) for c in self.changes)

    @property
    def is_valid(self) -> bool:
        return not self.errors and not self.lock_errors

    def raise_for_violations(self) -> None:
        if self.lock_errors:
            raise DeliveryLockedError([*self.lock_errors, *self.errors])
        if self.errors:
            raise LocalValidationError(list(self.errors))

    def deliveries_add(self) -> List[Dict[str, Any]]:
        return [slot_payload(c.slot, include_cost=self.include_cost) for c in self.added]

    def deliveries_update(self) -> List[Dict[str, Any]]:
        return [slot_payload(c.slot, include_cost=self.include_cost) for c in self.updated]

    def deliveries_remove(self) -> List[int]:
        return [c.slot.id for c in self.removed]

    def deliveries(self) -> List[Dict[str, Any]]:
        """Full desired slot list for an ``items_update`` entry, new slots with a null id."""
        return [slot_payload(s, include_cost=self.include_cost) for s in self.slots]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "deliveries_add": self.deliveries_add(),
            "deliveries_update": self.deliveries_update(),
            "deliveries_remove": self.deliveries_remove(),
        }


class DeliverySlotEditor:
    """Classifies edited slots against persisted ones and enforces slot locks."""

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config or EngineConfig()

    def normalize(self, slot: DeliverySlot) -> DeliverySlot:
        """Canonical form used for comparison and submission. Raises ValueError on a bad time."""
        return slot.with_changes(
            delivery_date=normalize_date(slot.delivery_date),
            delivery_time=normalize_time(slot.delivery_time),
            truck_type=(slot.truck_type or "").strip() or None,
        )

    def changed_fields(self, before: DeliverySlot, after: DeliverySlot, *, include_cost: bool = False) -> Tuple[str, ...]:
        fields: List[str] = []
        if Decimal(before.quantity) != Decimal(after.quantity):
            fields.append("quantity")
        if normalize_date(before.delivery_date) != after.delivery_date:
            fields.append("delivery_date")
        try:
            before_time = normalize_time(before.delivery_time)
        except ValueError:
            before_time = before.delivery_time
        if before_time != after.delivery_time:
            fields.append("delivery_time")
        if (before.truck_type or None) != after.truck_type:
            fields.append("truck_type")
        if include_cost and Decimal(before.delivery_cost) != Decimal(after.delivery_cost):
            fields.append("delivery_cost")
        return tuple(fields)

    def classify(
        self,
        persisted: Sequence[DeliverySlot],
        edited: Sequence[DeliverySlot],
        *,
        include_cost: bool = False,
        label: str = "",
    ) -> SlotDiff:
        """Diff *edited* against *persisted* without raising.

        Slot-level problems (unknown ids, bad times, lock violations) are
        collected on the returned ``SlotDiff``.
        """
        prefix = f"{label}: " if label else ""
        by_id = {s.id: s for s in persisted if s.id is not None}
        seen: set = set()
        changes: List[SlotChange] = []
        errors: List[str] = []
        lock_errors: List[str] = []

        for position, raw in enumerate(edited, start=1):
            try:
                slot = self.normalize(raw)
            except ValueError:
                errors.append(f"{prefix}Delivery {position} has an invalid time ({raw.delivery_time}).")
                slot = raw.with_changes(delivery_time=None)

            if slot.id is None:
                changes.append(SlotAdded(slot=slot))
                continue
            if slot.id in seen:
                errors.append(f"{prefix}Delivery {slot.id} appears more than once.")
                continue
            seen.add(slot.id)
            before = by_id.get(slot.id)
            if before is None:
                errors.append(f"{prefix}Delivery {slot.id} is not part of this item.")
                continue
            # Server-owned flags always come from the baseline.
            slot = slot.with_changes(supplier_confirms=before.supplier_confirms, status=before.status)
            if not include_cost:
                slot = slot.with_changes(delivery_cost=before.delivery_cost)
            changed = self.changed_fields(before, slot, include_cost=include_cost)
            if before.is_delivered:
                if changed:
                    lock_errors.append(
                        f"{prefix}Delivery on {before.delivery_date} has been delivered and cannot be changed."
                    )
                continue
            if before.supplier_confirms:
                locked = [f for f in changed if f not in CONFIRMED_EDITABLE_FIELDS]
                if locked:
                    lock_errors.append(
                        f"{prefix}Delivery on {before.delivery_date} is confirmed by the supplier; "
                        f"only date and time can change (tried {', '.join(locked)})."
                    )
            if changed:
                changes.append(SlotUpdated(before=before, slot=slot, changed_fields=changed))
            else:
                changes.append(SlotUnchanged(slot=slot))

        kept_delivered: List[DeliverySlot] = []
        for before in persisted:
            if before.id is None or before.id in seen:
                continue
            if before.is_delivered:
                # Delivered slots are not edited through this list; omission keeps them.
                kept_delivered.append(before)
            elif before.supplier_confirms:
                lock_errors.append(
                    f"{prefix}Delivery on {before.delivery_date} "
                    f"({format_quantity(before.quantity)}) is confirmed by the supplier and cannot be removed."
                )
            else:
                changes.append(SlotRemoved(slot=before))

        kept_delivered.extend(s for s in persisted if s.is_delivered and s.id in seen)
        return SlotDiff(
            changes=tuple(changes),
            include_cost=include_cost,
            errors=tuple(errors),
            lock_errors=tuple(lock_errors),
            kept_delivered=tuple(kept_delivered),
        )

    def diff(
        self,
        persisted: Sequence[DeliverySlot],
        edited: Sequence[DeliverySlot],
        *,
        include_cost: bool = False,
    ) -> SlotDiff:
        """Like ``classify`` but raises ``DeliveryLockedError`` / ``LocalValidationError``."""
        result = self.classify(persisted, edited, include_cost=include_cost)
        if result.lock_errors:
            logger.warning("Refused slot edit: %s", "; ".join(result.lock_errors))
        result.raise_for_violations()
        return result
