"""Tests for RepeatComposer."""
from __future__ import annotations

import unittest
from decimal import Decimal

from bulkorder.core.exceptions import LocalValidationError
from bulkorder.orders.repeat import RepeatComposer, RepeatOverride
from bulkorder.orders.types import DeliverySlot, Order, OrderItem, OrderStatus


def _order() -> Order:
    return Order(
        id=9,
        po_number="PO-9",
        order_status=OrderStatus.COMPLETED,
        items=(
            OrderItem(
                id=1, product_id=11, product_name="Concrete", quantity=Decimal("6.5"),
                supplier_id=3, supplier_unit_cost=Decimal("210"), is_quoted=True,
                quoted_price=Decimal("250"), custom_blend_mix="32MPa",
                slots=(DeliverySlot(quantity=Decimal("6.5"), id=5, delivery_date="2025-01-02"),),
            ),
            OrderItem(id=2, product_id=12, product_name="Sand", quantity=Decimal("4")),
        ),
    )


class TestRepeatComposer(unittest.TestCase):
    def setUp(self):
        self.composer = RepeatComposer()

    def test_copies_only_product_quantity_and_blend(self):
        payload = self.composer.compose(_order()).to_payload()
        self.assertEqual(payload, {"items": [
            {"product_id": 11, "quantity": 6.5, "custom_blend_mix": "32MPa"},
            {"product_id": 12, "quantity": 4},
        ]})

    def test_overrides(self):
        draft = self.composer.compose(_order(), {
            1: RepeatOverride(quantity="8", custom_blend_mix="40MPa"),
            2: RepeatOverride(exclude=True),
        })
        self.assertEqual(draft.to_payload(), {"items": [
            {"product_id": 11, "quantity": 8, "custom_blend_mix": "40MPa"},
        ]})

    def test_blank_blend_override_clears_it(self):
        draft = self.composer.compose(_order(), {1: RepeatOverride(custom_blend_mix="  ")})
        self.assertNotIn("custom_blend_mix", draft.to_payload()["items"][0])

    def test_invalid_quantity_and_unknown_item(self):
        with self.assertRaises(LocalValidationError) as ctx:
            self.composer.compose(_order(), {1: RepeatOverride(quantity=0), 99: RepeatOverride(quantity=1)})
        self.assertEqual(ctx.exception.messages, [
            "Item 99 is not part of the source order.",
            "Concrete: Quantity must be at least 0.01.",
        ])

    def test_everything_excluded(self):
        with self.assertRaises(LocalValidationError):
            self.composer.compose(_order(), {1: RepeatOverride(exclude=True), 2: RepeatOverride(exclude=True)})
