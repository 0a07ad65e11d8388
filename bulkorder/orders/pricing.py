"""Pricing calculator.

One ``PricingBreakdown`` is computed per order; the admin and client views
are projections of it, never separate calculations.

    customer_item_cost     = sum(unit price * quantity - supplier_discount)
    customer_delivery_cost = sum(slot delivery_cost) for items not "Included"
    gst_tax                = round_half_up(rate * (item + delivery - discount), 2)
    total_price            = max(0, item + delivery + gst - discount + other_charges)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Tuple

from bulkorder.config.engine import EngineConfig
from bulkorder.core.exceptions import ForbiddenError, LocalValidationError
from bulkorder.orders.permissions import ActorContext, Permission
from bulkorder.orders.types import DeliveryType, Order, OrderItem, WorkflowStatus
from bulkorder.orders.values import ZERO, Number, round_half_up, to_decimal, to_json_number
from bulkorder.orders.workflow import can_show_pricing

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class ItemPricing:
    item_id: Optional[int]
    product_id: int
    product_name: Optional[str]
    quantity: Decimal
    is_quoted: bool
    unit_price: Optional[Decimal]
    supplier_discount: Decimal
    subtotal: Decimal
    delivery_type: Optional[DeliveryType]
    delivery_cost: Decimal
    supplier_unit_cost: Optional[Decimal]
    supplier_item_cost: Decimal
    supplier_delivery_cost: Decimal

    @property
    def is_available(self) -> bool:
        """False when the item has neither a supplier price nor a quote."""
        return self.unit_price is not None


@dataclass(frozen=True)
class PricingBreakdown:
    items: Tuple[ItemPricing, ...]
    customer_item_cost: Decimal
    customer_delivery_cost: Decimal
    discount: Decimal
    other_charges: Decimal
    gst_tax: Decimal
    total_price: Decimal
    supplier_item_cost: Decimal
    supplier_delivery_cost: Decimal
    supplier_discount: Decimal
    supplier_cost: Decimal
    margin: Decimal
    margin_percent: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.customer_item_cost + self.customer_delivery_cost

    def admin_view(self) -> Dict[str, Any]:
        """Every figure, including per-slot delivery cost and margin."""
        return {
            "items": [_item_view(p, admin=True) for p in self.items],
            "customer_item_cost": to_json_number(self.customer_item_cost),
            "customer_delivery_cost": to_json_number(self.customer_delivery_cost),
            "discount": to_json_number(self.discount),
            "other_charges": to_json_number(self.other_charges),
            "gst_tax": to_json_number(self.gst_tax),
            "total_price": to_json_number(self.total_price),
            "supplier_item_cost": to_json_number(self.supplier_item_cost),
            "supplier_delivery_cost": to_json_number(self.supplier_delivery_cost),
            "supplier_discount": to_json_number(self.supplier_discount),
            "supplier_cost": to_json_number(self.supplier_cost),
            "margin": to_json_number(self.margin),
            "margin_percent": to_json_number(self.margin_percent),
        }

    def client_view(self, *, show_amounts: bool = True) -> Dict[str, Any]:
        """Cost fields only. Without *show_amounts* prices are withheld entirely."""
        if not show_amounts:
            return {
                "items": [
                    {"item_id": p.item_id, "product_id": p.product_id, "product_name": p.product_name,
                     "quantity": to_json_number(p.quantity), "is_available": p.is_available}
                    for p in self.items
                ],
                "pricing_available": False,
            }
        return {
            "items": [_item_view(p, admin=False) for p in self.items],
            "customer_item_cost": to_json_number(self.customer_item_cost),
            "customer_delivery_cost": to_json_number(self.customer_delivery_cost),
            "discount": to_json_number(self.discount),
            "other_charges": to_json_number(self.other_charges),
            "gst_tax": to_json_number(self.gst_tax),
            "total_price": to_json_number(self.total_price),
            "pricing_available": True,
        }

    def view_for(self, ctx: ActorContext, workflow: "WorkflowStatus | str | None" = None) -> Dict[str, Any]:
        if ctx.sees_supplier_costing:
            return self.admin_view()
        if ctx.is_staff:
            return self.client_view()
        return self.client_view(show_amounts=can_show_pricing(workflow))


def _item_view(p: ItemPricing, *, admin: bool) -> Dict[str, Any]:
    view: Dict[str, Any] = {
        "item_id": p.item_id,
        "product_id": p.product_id,
        "product_name": p.product_name,
        "quantity": to_json_number(p.quantity),
        "is_available": p.is_available,
        "is_quoted": p.is_quoted,
        "unit_price": to_json_number(p.unit_price),
        "supplier_discount": to_json_number(p.supplier_discount),
        "subtotal": to_json_number(p.subtotal),
    }
    if admin:
        view.update(
            delivery_type=p.delivery_type.value if p.delivery_type else None,
            delivery_cost=to_json_number(p.delivery_cost),
            supplier_unit_cost=to_json_number(p.supplier_unit_cost),
            supplier_item_cost=to_json_number(p.supplier_item_cost),
            supplier_delivery_cost=to_json_number(p.supplier_delivery_cost),
        )
    return view


class PricingCalculator:
    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config or EngineConfig()

    def _money(self, value: Decimal) -> Decimal:
        return round_half_up(value, self.config.money_quantum)

    def effective_unit_price(self, item: OrderItem) -> Optional[Decimal]:
        if item.is_quoted and item.quoted_price is not None:
            return item.quoted_price
        if item.is_quoted:
            return None
        return item.supplier_unit_cost

    def price_item(self, item: OrderItem) -> ItemPricing:
        unit_price = self.effective_unit_price(item)
        discount = to_decimal(item.supplier_discount)
        subtotal = ZERO if unit_price is None else unit_price * item.quantity - discount
        if item.delivery_type == DeliveryType.INCLUDED:
            delivery = ZERO
        else:
            delivery = sum((to_decimal(s.delivery_cost) for s in item.slots), ZERO)
        supplier_unit = item.supplier_unit_cost
        return ItemPricing(
            item_id=item.id,
            product_id=item.product_id,
            product_name=item.product_name,
            quantity=item.quantity,
            is_quoted=item.is_quoted,
            unit_price=unit_price,
            supplier_discount=discount if unit_price is not None else ZERO,
            subtotal=subtotal,
            delivery_type=item.delivery_type,
            delivery_cost=delivery,
            supplier_unit_cost=supplier_unit,
            supplier_item_cost=(supplier_unit or ZERO) * item.quantity,
            supplier_delivery_cost=to_decimal(item.delivery_cost),
        )

    def gst(self, item_cost: Number, delivery_cost: Number, discount: Number = ZERO) -> Decimal:
        base = max(ZERO, to_decimal(item_cost) + to_decimal(delivery_cost) - to_decimal(discount))
        return self._money(self.config.gst_rate * base)

    def total(
        self,
        item_cost: Number,
        delivery_cost: Number,
        gst_tax: Number,
        discount: Number = ZERO,
        other_charges: Number = ZERO,
    ) -> Decimal:
        raw = (
            to_decimal(item_cost) + to_decimal(delivery_cost) + to_decimal(gst_tax)
            - to_decimal(discount) + to_decimal(other_charges)
        )
        return self._money(max(ZERO, raw))

    def breakdown(
        self,
        items: Iterable[OrderItem],
        *,
        discount: Number = ZERO,
        other_charges: Number = ZERO,
    ) -> PricingBreakdown:
        discount = to_decimal(discount)
        other_charges = to_decimal(other_charges)
        if discount < 0 or other_charges < 0:
            raise LocalValidationError(["Discount and other charges cannot be negative."])

        priced = tuple(self.price_item(item) for item in items)
        # Sums stay unrounded until GST and the total are derived from them.
        raw_items = sum((p.subtotal for p in priced), ZERO)
        raw_delivery = sum((p.delivery_cost for p in priced), ZERO)
        gst_tax = self.gst(raw_items, raw_delivery, discount)
        total = self.total(raw_items, raw_delivery, gst_tax, discount, other_charges)
        item_cost = self._money(raw_items)
        delivery_cost = self._money(raw_delivery)

        raw_supplier_items = sum((p.supplier_item_cost for p in priced), ZERO)
        raw_supplier_delivery = sum((p.supplier_delivery_cost for p in priced), ZERO)
        raw_supplier_discount = sum((p.supplier_discount for p in priced), ZERO)
        raw_supplier_cost = raw_supplier_items + raw_supplier_delivery - raw_supplier_discount
        revenue = raw_items + raw_delivery - discount + other_charges
        margin = revenue - raw_supplier_cost
        margin_percent = self._money(margin / revenue * HUNDRED) if revenue > 0 else ZERO

        return PricingBreakdown(
            items=priced,
            customer_item_cost=item_cost,
            customer_delivery_cost=delivery_cost,
            discount=self._money(discount),
            other_charges=self._money(other_charges),
            gst_tax=gst_tax,
            total_price=total,
            supplier_item_cost=self._money(raw_supplier_items),
            supplier_delivery_cost=self._money(raw_supplier_delivery),
            supplier_discount=self._money(raw_supplier_discount),
            supplier_cost=self._money(raw_supplier_cost),
            margin=self._money(margin),
            margin_percent=margin_percent,
        )

    def breakdown_for_order(self, order: Order) -> PricingBreakdown:
        result = self.breakdown(order.items, discount=order.discount, other_charges=order.other_charges)
        if order.total_price and result.total_price != order.total_price:
            logger.info(
                "Order %s total %s differs from platform total %s",
                order.po_number, result.total_price, order.total_price,
                extra={"order_id": order.id, "po_number": order.po_number, "action": "pricing"},
            )
        return result


# ── Admin pricing inputs ──────────────────────────────────────────────


def _require_pricing_staff(ctx: ActorContext) -> None:
    if not ctx.has(Permission.PRICING_ENTER_QUOTED_RATES):
        raise ForbiddenError(f"Role {ctx.role.value} may not change order pricing.")


def _non_negative(value: Number, label: str, errors: list) -> Optional[Decimal]:
    amount = to_decimal(value, None)
    if amount is None:
        errors.append(f"{label} must be a number.")
    elif amount < 0:
        errors.append(f"{label} cannot be negative.")
    return amount


def admin_update_payload(
    ctx: ActorContext,
    *,
    discount: Optional[Number] = None,
    other_charges: Optional[Number] = None,
) -> Dict[str, Any]:
    """Body for ``POST /admin/orders/{id}/admin-update``. Only given fields are sent."""
    _require_pricing_staff(ctx)
    errors: list = []
    body: Dict[str, Any] = {}
    if discount is not None:
        amount = _non_negative(discount, "Discount", errors)
        body["discount"] = to_json_number(amount) if amount is not None else None
    if other_charges is not None:
        amount = _non_negative(other_charges, "Other charges", errors)
        body["other_charges"] = to_json_number(amount) if amount is not None else None
    if not body and not errors:
        errors.append("Nothing to update: give a discount or other charges.")
    if errors:
        raise LocalValidationError(errors)
    return body


def quoted_price_payload(ctx: ActorContext, item: OrderItem, quoted_price: Number) -> Dict[str, Any]:
    """Body for ``POST /admin/orders/{id}/items/{item_id}/quoted-price``."""
    _require_pricing_staff(ctx)
    if item.id is None:
        raise LocalValidationError(["Save the item before entering a quoted price."])
    errors: list = []
    amount = _non_negative(quoted_price, "Quoted price", errors)
    if errors:
        raise LocalValidationError(errors, details={"order_item_id": item.id})
    return {"quoted_price": to_json_number(amount)}
