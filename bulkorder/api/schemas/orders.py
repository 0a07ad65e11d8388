"""Pydantic v2 schemas for order state sent to the preview API."""
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from bulkorder.orders.types import (
    DeliverySlot,
    DeliveryStatus,
    DeliveryType,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
    WorkflowStatus,
)
from bulkorder.orders.values import ZERO


class SlotSchema(BaseModel):
    id: Optional[int] = None
    quantity: Decimal
    delivery_date: str = ""
    delivery_time: Optional[str] = None
    truck_type: Optional[str] = None
    delivery_cost: Decimal = ZERO
    supplier_confirms: bool = False
    status: DeliveryStatus = DeliveryStatus.SCHEDULED
    load_size: Optional[Decimal] = None
    time_interval: Optional[int] = Field(default=None, ge=0)

    def to_slot(self) -> DeliverySlot:
        # Times stay raw here; the slot editor normalizes and reports bad ones.
        return DeliverySlot(
            id=self.id,
            quantity=self.quantity,
            delivery_date=self.delivery_date,
            delivery_time=self.delivery_time,
            truck_type=self.truck_type,
            delivery_cost=self.delivery_cost,
            supplier_confirms=self.supplier_confirms,
            status=self.status,
            load_size=self.load_size,
            time_interval=self.time_interval,
        )


class ItemSchema(BaseModel):
    id: Optional[int] = None
    product_id: int
    product_name: Optional[str] = None
    quantity: Decimal
    deliveries: List[SlotSchema] = Field(default_factory=list)
    supplier_id: Optional[int] = None
    is_quoted: bool = False
    quoted_price: Optional[Decimal] = None
    supplier_unit_cost: Optional[Decimal] = None
    supplier_discount: Optional[Decimal] = None
    delivery_cost: Optional[Decimal] = None
    delivery_type: Optional[DeliveryType] = None
    supplier_confirms: Optional[bool] = None
    custom_blend_mix: Optional[str] = None

    def to_item(self) -> OrderItem:
        return OrderItem(
            id=self.id,
            product_id=self.product_id,
            product_name=self.product_name,
            quantity=self.quantity,
            slots=tuple(s.to_slot() for s in self.deliveries),
            supplier_id=self.supplier_id,
            is_quoted=self.is_quoted,
            quoted_price=self.quoted_price,
            supplier_unit_cost=self.supplier_unit_cost,
            supplier_discount=self.supplier_discount,
            delivery_cost=self.delivery_cost,
            delivery_type=self.delivery_type,
            supplier_confirms=self.supplier_confirms if self.supplier_id is not None else None,
            custom_blend_mix=self.custom_blend_mix,
        )


class OrderSchema(BaseModel):
    id: int
    po_number: str = ""
    order_status: OrderStatus = OrderStatus.DRAFT
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    workflow: Optional[WorkflowStatus] = None
    contact_person_name: Optional[str] = None
    contact_person_number: Optional[str] = None
    site_instructions: Optional[str] = None
    repeat_order: bool = False
    discount: Decimal = ZERO
    other_charges: Decimal = ZERO
    items: List[ItemSchema] = Field(default_factory=list)

    def to_order(self) -> Order:
        return Order(
            id=self.id,
            po_number=self.po_number or f"#{self.id}",
            order_status=self.order_status,
            payment_status=self.payment_status,
            workflow=self.workflow,
            contact_person_name=self.contact_person_name,
            contact_person_number=self.contact_person_number,
            site_instructions=self.site_instructions,
            repeat_order=self.repeat_order,
            discount=self.discount,
            other_charges=self.other_charges,
            items=tuple(i.to_item() for i in self.items),
        )
