"""Tests for QuantityAllocator: conservation, slot add/remove, load plans."""
from __future__ import annotations

import unittest
from decimal import Decimal

import pytest

from bulkorder.config.engine import EngineConfig
from bulkorder.core.exceptions import DeliveryLockedError, LocalValidationError, NotFoundError
from bulkorder.orders.allocation import QuantityAllocator
from bulkorder.orders.types import DeliverySlot, DeliveryStatus, OrderItem


def _slot(qty, **kwargs) -> DeliverySlot:
    defaults = {"delivery_date": "2025-03-01", "delivery_time": "08:00", "truck_type": "tipper_light"}
    defaults.update(kwargs)
    return DeliverySlot(quantity=Decimal(str(qty)), **defaults)


# ─── Conservation ─────────────────────────────────────────────────────────────

class TestAllocationReport:
    def setup_method(self):
        self.allocator = QuantityAllocator()

    def test_three_way_split_is_valid(self):
        report = self.allocator.report(10, [_slot("3.33"), _slot("3.33"), _slot("3.34")])
        assert report.is_valid
        assert report.remaining == Decimal("0")
        assert report.message() is None

    def test_under_allocation_reports_remaining(self):
        report = self.allocator.report(10, [_slot(4), _slot(5)])
        assert not report.is_valid
        assert report.remaining == Decimal("1")
        assert report.message() == (
            "You have 1 unallocated. Please distribute all quantity across deliveries."
        )

    def test_over_allocation_message(self):
        report = self.allocator.report(10, [_slot(6), _slot("5.5")])
        assert not report.is_valid
        assert report.remaining == Decimal("-1.5")
        assert report.message().startswith("Over-allocated by 1.5")

    def test_difference_below_epsilon_is_valid(self):
        report = self.allocator.report("10", [_slot("9.995")])
        assert report.is_valid

    def test_difference_at_epsilon_is_invalid(self):
        report = self.allocator.report("10", [_slot("9.99")])
        assert not report.is_valid
        assert report.remaining == Decimal("0.01")

    def test_remaining_rounded_to_four_places(self):
        report = self.allocator.report(1, [_slot("0.33333")])
        assert report.remaining == Decimal("0.6667")

    def test_delivered_quantity_counts_as_allocated(self):
        report = self.allocator.report(10, [_slot(4)], already_delivered=6)
        assert report.is_valid

    def test_report_for_item_uses_delivered_slots(self):
        item = OrderItem(
            product_id=1,
            quantity=Decimal("10"),
            slots=(_slot(6, id=1, status=DeliveryStatus.DELIVERED), _slot(4, id=2)),
        )
        report = self.allocator.report_for_item(item)
        assert report.is_valid
        assert report.allocated == Decimal("10")

    def test_custom_epsilon(self):
        allocator = QuantityAllocator(EngineConfig(allocation_epsilon=Decimal("0.5")))
        assert allocator.report(10, [_slot("9.6")]).is_valid


# ─── Slot list edits ──────────────────────────────────────────────────────────

class TestSlotListEdits(unittest.TestCase):
    def setUp(self):
        self.allocator = QuantityAllocator()

    def test_added_slot_takes_remaining(self):
        slots = self.allocator.add_slot(10, [_slot(4)], delivery_date="2025-03-02")
        self.assertEqual(len(slots), 2)
        self.assertEqual(slots[-1].quantity, Decimal("6"))
        self.assertIsNone(slots[-1].id)
        self.assertEqual(slots[-1].truck_type, "tipper_light")
        self.assertEqual(slots[-1].delivery_time, "08:00")

    def test_added_slot_defaults_to_one_when_fully_allocated(self):
        slots = self.allocator.add_slot(10, [_slot(10)])
        self.assertEqual(slots[-1].quantity, Decimal("1"))
        self.assertFalse(self.allocator.report(10, slots).is_valid)

    def test_added_slot_never_below_minimum(self):
        slots = self.allocator.add_slot("10", [_slot("9.995")])
        self.assertEqual(slots[-1].quantity, Decimal("0.01"))

    def test_add_does_not_touch_existing_slots(self):
        existing = [_slot(3), _slot(3)]
        slots = self.allocator.add_slot(10, existing)
        self.assertEqual([s.quantity for s in slots[:2]], [Decimal("3"), Decimal("3")])

    def test_remove_only_slot_rejected(self):
        only = _slot(10)
        with self.assertRaises(LocalValidationError):
            self.allocator.remove_slot([only], only.key)

    def test_remove_slot(self):
        a, b = _slot(5), _slot(5)
        self.assertEqual(self.allocator.remove_slot([a, b], b.key), [a])

    def test_remove_confirmed_slot_rejected(self):
        a, b = _slot(5, id=1, supplier_confirms=True), _slot(5, id=2)
        with self.assertRaises(DeliveryLockedError):
            self.allocator.remove_slot([a, b], "id:1")

    def test_remove_unknown_slot(self):
        with self.assertRaises(NotFoundError):
            self.allocator.remove_slot([_slot(5), _slot(5)], "id:99")


# ─── Load plans ───────────────────────────────────────────────────────────────

class TestLoadPlan:
    def setup_method(self):
        self.allocator = QuantityAllocator()

    def test_expansion_into_trips(self):
        slot = _slot(10, load_size=Decimal("3"), time_interval=60)
        expanded = self.allocator.expand_load_plan(slot)
        assert [s.quantity for s in expanded] == [Decimal("3"), Decimal("3"), Decimal("3"), Decimal("1")]
        assert [s.delivery_time for s in expanded] == ["08:00", "09:00", "10:00", "11:00"]
        assert {s.delivery_date for s in expanded} == {"2025-03-01"}
        assert all(s.load_size is None and s.time_interval is None for s in expanded)
        assert sum(s.quantity for s in expanded) == Decimal("10")

    def test_exact_multiple(self):
        expanded = self.allocator.expand_load_plan(_slot(9, load_size=Decimal("3"), time_interval=30))
        assert [s.delivery_time for s in expanded] == ["08:00", "08:30", "09:00"]

    def test_slot_without_plan_unchanged(self):
        slot = _slot(10)
        assert self.allocator.expand_load_plan(slot) == [slot]

    def test_trip_times_wrap_past_midnight(self):
        trips = self.allocator.trip_breakdown(6, "23:00", 2, 45)
        assert [t.time for t in trips] == ["23:00", "23:45", "00:30"]

    def test_trip_breakdown_defaults_start_time(self):
        trips = self.allocator.trip_breakdown(4, None, 2, 60)
        assert [t.time for t in trips] == ["08:00", "09:00"]

    def test_half_plan_rejected(self):
        errors = self.allocator.validate_load_plan(_slot(10, load_size=Decimal("3")))
        assert errors == ["Delivery 1: Set both load size and time interval, or leave both empty."]
        with pytest.raises(LocalValidationError):
            self.allocator.expand_load_plan(_slot(10, time_interval=60))

    def test_load_larger_than_slot_rejected(self):
        errors = self.allocator.validate_load_plan(_slot(2, load_size=Decimal("3"), time_interval=60), 2)
        assert errors == ["Delivery 2: Load size cannot exceed slot quantity (2)."]


class TestDraftItem:
    def setup_method(self):
        self.allocator = QuantityAllocator()

    def test_default_single_slot(self):
        item = self.allocator.draft_item(7, "12.5", delivery_date="2025-04-01")
        assert item.id is None
        assert len(item.slots) == 1
        assert item.slots[0].quantity == Decimal("12.5")
        assert item.slots[0].delivery_date == "2025-04-01"
        assert self.allocator.report_for_item(item).is_valid

    def test_slots_expanded_once(self):
        item = self.allocator.draft_item(
            7, 10, [_slot(10, load_size=Decimal("3"), time_interval=60)], custom_blend_mix="  20MPa  "
        )
        assert len(item.slots) == 4
        assert item.custom_blend_mix == "20MPa"

    def test_quantity_below_minimum(self):
        with pytest.raises(LocalValidationError):
            self.allocator.draft_item(7, 0)

    def test_errors_from_every_slot_collected(self):
        with pytest.raises(LocalValidationError) as exc_info:
            self.allocator.draft_item(
                7, 10,
                [_slot(5, load_size=Decimal("3")), _slot(5, time_interval=60)],
            )
        assert len(exc_info.value.messages) == 2
