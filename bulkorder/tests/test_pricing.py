"""Tests for PricingCalculator, its role projections and admin pricing payloads."""
from __future__ import annotations

from decimal import Decimal
from unittest.mock import patch

import pytest

from bulkorder.config.engine import EngineConfig
from bulkorder.core.exceptions import ForbiddenError, LocalValidationError
from bulkorder.orders.permissions import ActorContext, Role
from bulkorder.orders.pricing import PricingCalculator, admin_update_payload, quoted_price_payload
from bulkorder.orders.types import DeliverySlot, DeliveryType, Order, OrderItem, WorkflowStatus


def _item(**kwargs) -> OrderItem:
    defaults = {
        "id": 1,
        "product_id": 1,
        "product_name": "Road Base",
        "quantity": Decimal("10"),
        "supplier_id": 5,
        "supplier_unit_cost": Decimal("100"),
        "delivery_type": DeliveryType.SUPPLIER,
        "slots": (DeliverySlot(quantity=Decimal("10"), id=1, delivery_cost=Decimal("100")),),
    }
    defaults.update(kwargs)
    return OrderItem(**defaults)


@pytest.fixture
def calc():
    return PricingCalculator()


class TestBreakdown:
    def test_reference_order(self, calc):
        result = calc.breakdown([_item()], discount=50, other_charges=20)
        assert result.customer_item_cost == Decimal("1000.00")
        assert result.customer_delivery_cost == Decimal("100.00")
        assert result.gst_tax == Decimal("105.00")
        assert result.total_price == Decimal("1175.00")

    def test_quoted_price_wins(self, calc):
        item = _item(is_quoted=True, quoted_price=Decimal("120"))
        result = calc.breakdown([item])
        assert result.customer_item_cost == Decimal("1200.00")
        assert result.items[0].unit_price == Decimal("120")

    def test_supplier_discount_reduces_subtotal(self, calc):
        result = calc.breakdown([_item(supplier_discount=Decimal("25"))])
        assert result.customer_item_cost == Decimal("975.00")

    def test_unpriced_item_contributes_nothing(self, calc):
        unpriced = _item(id=2, supplier_id=None, supplier_unit_cost=None, slots=())
        result = calc.breakdown([_item(), unpriced])
        assert result.customer_item_cost == Decimal("1000.00")
        assert result.items[1].is_available is False
        assert result.items[0].is_available is True

    def test_included_delivery_not_charged(self, calc):
        result = calc.breakdown([_item(delivery_type=DeliveryType.INCLUDED)])
        assert result.customer_delivery_cost == Decimal("0.00")

    def test_gst_rounds_half_up(self, calc):
        assert calc.gst(Decimal("0.05"), 0) == Decimal("0.01")
        assert calc.gst(Decimal("10.25"), 0) == Decimal("1.03")

    def test_total_clamped_at_zero(self, calc):
        result = calc.breakdown([_item()], discount=5000)
        assert result.total_price == Decimal("0.00")

    def test_gst_taken_from_unrounded_subtotal(self, calc):
        item = _item(
            quantity=Decimal("0.5"),
            supplier_unit_cost=Decimal("89.89"),
            slots=(DeliverySlot(quantity=Decimal("0.5"), id=1),),
        )
        result = calc.breakdown([item])
        assert result.customer_item_cost == Decimal("44.95")
        assert result.gst_tax == Decimal("4.49")
        assert result.total_price == Decimal("49.44")

    def test_gst_never_negative(self, calc):
        assert calc.gst(Decimal("100"), 0, discount=Decimal("500")) == Decimal("0.00")
        result = calc.breakdown([_item()], discount=5000)
        assert result.gst_tax == Decimal("0.00")

    def test_negative_inputs_rejected(self, calc):
        with pytest.raises(LocalValidationError):
            calc.breakdown([_item()], discount=-1)

    def test_configured_gst_rate(self):
        calc = PricingCalculator(EngineConfig(gst_rate=Decimal("0.15")))
        assert calc.breakdown([_item()]).gst_tax == Decimal("165.00")

    def test_margin(self, calc):
        item = _item(is_quoted=True, quoted_price=Decimal("130"), delivery_cost=Decimal("80"))
        result = calc.breakdown([item], discount=50, other_charges=20)
        assert result.supplier_cost == Decimal("1080.00")
        # Revenue 1300 + 100 - 50 + 20
        assert result.margin == Decimal("290.00")
        assert result.margin_percent == Decimal("21.17")

    def test_breakdown_for_order_uses_order_adjustments(self, calc):
        order = Order(id=42, po_number="PO-1042", items=(_item(),), discount=Decimal("50"),
                      other_charges=Decimal("20"), total_price=Decimal("1175.00"))
        with patch("bulkorder.orders.pricing.logger") as log:
            result = calc.breakdown_for_order(order)
        assert result.total_price == Decimal("1175.00")
        log.info.assert_not_called()

    def test_breakdown_for_order_logs_platform_mismatch(self, calc):
        order = Order(id=42, po_number="PO-1042", items=(_item(),), total_price=Decimal("999"))
        with patch("bulkorder.orders.pricing.logger") as log:
            result = calc.breakdown_for_order(order)
        assert result.total_price == Decimal("1210.00")
        log.info.assert_called_once()
        assert log.info.call_args.kwargs["extra"]["order_id"] == 42


class TestProjections:
    def test_client_view_hides_cost_and_margin(self, calc):
        view = calc.breakdown([_item()], discount=50, other_charges=20).client_view()
        assert view["total_price"] == 1175
        assert "margin" not in view
        assert "supplier_cost" not in view
        assert "delivery_cost" not in view["items"][0]
        assert "supplier_unit_cost" not in view["items"][0]

    def test_views_share_numbers(self, calc):
        result = calc.breakdown([_item()], discount=50, other_charges=20)
        admin, client = result.admin_view(), result.client_view()
        for key in ("customer_item_cost", "customer_delivery_cost", "gst_tax", "total_price"):
            assert admin[key] == client[key]
        assert admin["items"][0]["delivery_cost"] == 100

    def test_view_for_role(self, calc):
        result = calc.breakdown([_item()])
        assert "margin" in result.view_for(ActorContext(role=Role.ADMIN))
        assert "margin" in result.view_for(ActorContext(role=Role.ACCOUNTANT))
        assert "margin" not in result.view_for(ActorContext(role=Role.SUPPORT))

    def test_client_sees_amounts_only_once_payment_requested(self, calc):
        result = calc.breakdown([_item()])
        client = ActorContext(role=Role.CLIENT)
        hidden = result.view_for(client, WorkflowStatus.SUPPLIER_ASSIGNED)
        assert hidden["pricing_available"] is False
        assert "total_price" not in hidden
        shown = result.view_for(client, WorkflowStatus.PAYMENT_REQUESTED)
        assert shown["total_price"] == 1210


class TestAdminPricingPayloads:
    def test_admin_update(self):
        body = admin_update_payload(ActorContext(role=Role.ADMIN), discount="50", other_charges=Decimal("12.5"))
        assert body == {"discount": 50, "other_charges": 12.5}

    def test_only_given_fields_sent(self):
        assert admin_update_payload(ActorContext(role=Role.SUPPORT), other_charges=0) == {"other_charges": 0}

    def test_negative_amounts_rejected(self):
        with pytest.raises(LocalValidationError) as exc_info:
            admin_update_payload(ActorContext(role=Role.ADMIN), discount=-1, other_charges=-2)
        assert len(exc_info.value.messages) == 2

    def test_requires_pricing_permission(self):
        with pytest.raises(ForbiddenError):
            admin_update_payload(ActorContext(role=Role.CLIENT), discount=5)
        with pytest.raises(ForbiddenError):
            quoted_price_payload(ActorContext(role=Role.ACCOUNTANT), _item(), 10)

    def test_quoted_price(self):
        assert quoted_price_payload(ActorContext(role=Role.ADMIN), _item(), "99.90") == {"quoted_price": 99.9}
