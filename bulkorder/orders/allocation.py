"""Quantity allocation: how an item's total quantity is split across delivery slots.

The allocator reports, it never rebalances. Adding, removing and resizing
slots is always explicit; callers read ``AllocationReport.remaining`` and
decide what to do with it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_CEILING, Decimal
from typing import Iterable, List, Optional, Sequence

from bulkorder.config.engine import EngineConfig
from bulkorder.core.exceptions import DeliveryLockedError, LocalValidationError, NotFoundError
from bulkorder.orders.types import DeliverySlot, OrderItem
from bulkorder.orders.values import (
    ZERO,
    Number,
    add_minutes,
    format_quantity,
    normalize_time,
    round_half_up,
    to_decimal,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AllocationReport:
    quantity: Decimal
    allocated: Decimal
    remaining: Decimal
    is_valid: bool

    def message(self) -> Optional[str]:
        """User-facing description of the imbalance, None when valid."""
        if self.is_valid:
            return None
        if self.remaining > 0:
            return (
                f"You have {format_quantity(self.remaining)} unallocated. "
                "Please distribute all quantity across deliveries."
            )
        return (
            f"Over-allocated by {format_quantity(abs(self.remaining))}. "
            "Please reduce delivery quantities."
        )


@dataclass(frozen=True)
class Trip:
    """One truck run inside a load plan."""
    time: str
    quantity: Decimal


class QuantityAllocator:
    """Splits and checks an item's quantity against its delivery slots."""

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config or EngineConfig()

    # ── Reporting ─────────────────────────────────────────────────

    def report(
        self,
        quantity: Number,
        slots: Iterable[DeliverySlot],
        *,
        already_delivered: Number = ZERO,
    ) -> AllocationReport:
        """Compare *quantity* with the slot total.

        *already_delivered* is quantity that left in delivered slots which are
        not part of *slots*; it counts as allocated.
        """
        total = to_decimal(quantity)
        allocated = sum((to_decimal(s.quantity) for s in slots), ZERO) + to_decimal(already_delivered)
        remaining = round_half_up(total - allocated, self.config.remaining_quantum)
        return AllocationReport(
            quantity=total,
            allocated=allocated,
            remaining=remaining,
            is_valid=abs(remaining) < self.config.allocation_epsilon,
        )

    def report_for_item(self, item: OrderItem) -> AllocationReport:
        return self.report(
            item.quantity,
            item.editable_slots,
            already_delivered=item.delivered_quantity,
        )

    # ── Slot list edits ───────────────────────────────────────────

    def default_slot_quantity(self, quantity: Number, slots: Sequence[DeliverySlot]) -> Decimal:
        """Quantity for a freshly added slot: what is left, or 1 when nothing is."""
        remaining = self.report(quantity, slots).remaining
        if remaining > 0:
            return max(self.config.min_quantity, remaining)
        return Decimal("1")

    def add_slot(
        self,
        quantity: Number,
        slots: Sequence[DeliverySlot],
        *,
        delivery_date: str = "",
        delivery_time: Optional[str] = None,
        truck_type: Optional[str] = None,
    ) -> List[DeliverySlot]:
        """Return *slots* plus one new unpersisted slot."""
        new_slot = DeliverySlot(
            quantity=self.default_slot_quantity(quantity, slots),
            delivery_date=delivery_date,
            delivery_time=normalize_time(delivery_time or self.config.default_delivery_time),
            truck_type=truck_type or self.config.default_truck_type,
        )
        return [*slots, new_slot]

    def remove_slot(self, slots: Sequence[DeliverySlot], key: str) -> List[DeliverySlot]:
        """Return *slots* without the slot whose ``key`` matches.

        An item always keeps at least one slot, and locked slots stay.
        """
        target = next((s for s in slots if s.key == key), None)
        if target is None:
            raise NotFoundError(f"Delivery slot {key} not found", details={"slot": key})
        if target.is_locked:
            raise DeliveryLockedError(
                [f"Delivery on {target.delivery_date or 'unscheduled date'} is locked and cannot be removed."],
                details={"slot": key},
            )
        if len(slots) <= 1:
            raise LocalValidationError(["An item must keep at least one delivery slot."])
        return [s for s in slots if s.key != key]

    # ── Load plans ────────────────────────────────────────────────

    def validate_load_plan(self, slot: DeliverySlot, position: int = 1) -> List[str]:
        """Load size and interval go together, and a load may not exceed the slot."""
        has_load = slot.load_size is not None and slot.load_size > 0
        has_interval = slot.time_interval is not None and slot.time_interval > 0
        errors: List[str] = []
        if has_load != has_interval:
            errors.append(
                f"Delivery {position}: Set both load size and time interval, or leave both empty."
            )
        if has_load and slot.load_size > slot.quantity:
            errors.append(
                f"Delivery {position}: Load size cannot exceed slot quantity "
                f"({format_quantity(slot.quantity)})."
            )
        return errors

    def trip_breakdown(
        self,
        quantity: Number,
        start_time: Optional[str],
        load_size: Number,
        interval_minutes: int,
    ) -> List[Trip]:
        """Trips of at most *load_size*, *interval_minutes* apart from *start_time*."""
        total = to_decimal(quantity)
        load = to_decimal(load_size)
        if load <= 0 or not interval_minutes or interval_minutes <= 0 or total <= 0:
            return []
        time = normalize_time(start_time) or self.config.default_delivery_time
        count = int((total / load).to_integral_value(rounding=ROUND_CEILING))
        trips: List[Trip] = []
        remaining = total
        for _ in range(count):
            qty = min(load, remaining)
            trips.append(Trip(time=time, quantity=qty))
            remaining -= qty
            time = add_minutes(time, interval_minutes)
        return trips

    def expand_load_plan(self, slot: DeliverySlot) -> List[DeliverySlot]:
        """Turn one slot with a load plan into one slot per trip.

        Date and truck type carry over; the plan itself is consumed and not
        sent to the backend. Slots without a plan come back unchanged.
        """
        if not slot.load_size or not slot.time_interval:
            if slot.load_size or slot.time_interval:
                raise LocalValidationError(self.validate_load_plan(slot))
            return [slot]
        errors = self.validate_load_plan(slot)
        if errors:
            raise LocalValidationError(errors)
        trips = self.trip_breakdown(slot.quantity, slot.delivery_time, slot.load_size, slot.time_interval)
        logger.debug(
            "Expanded load plan: %s at %s every %s min into %d trips",
            slot.quantity, slot.load_size, slot.time_interval, len(trips),
        )
        return [
            DeliverySlot(
                quantity=trip.quantity,
                delivery_date=slot.delivery_date,
                delivery_time=trip.time,
                truck_type=slot.truck_type,
            )
            for trip in trips
        ]

    # ── New items ─────────────────────────────────────────────────

    def draft_item(
        self,
        product_id: int,
        quantity: Number,
        slots: Optional[Sequence[DeliverySlot]] = None,
        *,
        delivery_date: str = "",
        custom_blend_mix: Optional[str] = None,
        product_name: Optional[str] = None,
    ) -> OrderItem:
        """Build a new, unpersisted item.

        Without *slots* the item gets one slot carrying the whole quantity.
        Slots with a load plan are expanded here, once; later edits work on
        the expanded slots.
        """
        total = to_decimal(quantity)
        if total < self.config.min_quantity:
            raise LocalValidationError(
                [f"Quantity must be at least {format_quantity(self.config.min_quantity)}."]
            )
        if not slots:
            slots = [
                DeliverySlot(
                    quantity=total,
                    delivery_date=delivery_date,
                    delivery_time=self.config.default_delivery_time,
                    truck_type=self.config.default_truck_type,
                )
            ]
        expanded: List[DeliverySlot] = []
        errors: List[str] = []
        for position, slot in enumerate(slots, start=1):
            plan_errors = self.validate_load_plan(slot, position)
            if plan_errors:
                errors.extend(plan_errors)
                continue
            expanded.extend(self.expand_load_plan(slot))
        if errors:
            raise LocalValidationError(errors)
        return OrderItem(
            product_id=product_id,
            product_name=product_name,
            quantity=total,
            slots=tuple(expanded),
            custom_blend_mix=(custom_blend_mix or "").strip() or None,
        )
