"""Core data structures for orders, line items and delivery slots."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from bulkorder.orders.values import ZERO, normalize_date, normalize_time, to_decimal


class OrderStatus(str, Enum):
    """Operational lifecycle of an order."""
    DRAFT = "Draft"
    CONFIRMED = "Confirmed"
    SCHEDULED = "Scheduled"
    IN_TRANSIT = "In Transit"
    DELIVERED = "Delivered"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class PaymentStatus(str, Enum):
    UNPAID = "Unpaid"
    PENDING = "Pending"
    PARTIALLY_PAID = "Partially Paid"
    PAID = "Paid"
    PARTIAL_REFUNDED = "Partial Refunded"
    REFUNDED = "Refunded"
    REQUESTED = "Requested"


class WorkflowStatus(str, Enum):
    """Admin-facing workflow, derived by the backend from status and assignments."""
    REQUESTED = "Requested"
    SUPPLIER_MISSING = "Supplier Missing"
    SUPPLIER_ASSIGNED = "Supplier Assigned"
    PAYMENT_REQUESTED = "Payment Requested"
    ON_HOLD = "On Hold"
    DELIVERED = "Delivered"


class DeliveryType(str, Enum):
    INCLUDED = "Included"
    SUPPLIER = "Supplier"
    THIRD_PARTY = "ThirdParty"
    FLEET = "Fleet"
    NONE = "None"


class DeliveryStatus(str, Enum):
    SCHEDULED = "scheduled"
    PENDING = "pending"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TruckType(str, Enum):
    TIPPER_LIGHT = "tipper_light"
    TIPPER_MEDIUM = "tipper_medium"
    TIPPER_HEAVY = "tipper_heavy"
    LIGHT_RIGID = "light_rigid"
    MEDIUM_RIGID = "medium_rigid"
    HEAVY_RIGID = "heavy_rigid"
    MINI_BODY = "mini_body"
    BODY_TRUCK = "body_truck"
    EIGHT_WHEELER = "eight_wheeler"
    SEMI = "semi"
    TRUCK_DOG = "truck_dog"


# Editable order-level fields; monetary fields are backend-derived.
CONTACT_FIELDS: Tuple[str, ...] = (
    "contact_person_name",
    "contact_person_number",
    "site_instructions",
)


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


def _optional_flag(value: Any) -> Optional[bool]:
    return None if value is None else _flag(value)


def _optional_int(value: Any) -> Optional[int]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return int(value)


def _enum(enum_cls, value: Any, default=None):
    if value is None or value == "":
        return default
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return default


def _new_local_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class DeliverySlot:
    """One scheduled delivery of part of an item's quantity.

    ``id`` is None until the backend persists the slot; until then the slot is
    identified by ``local_id``. ``load_size`` and ``time_interval`` are only
    meaningful while a new item is being drafted (see ``allocation``).
    """

    quantity: Decimal
    delivery_date: str = ""
    delivery_time: Optional[str] = None
    truck_type: Optional[str] = None
    delivery_cost: Decimal = ZERO
    supplier_confirms: bool = False
    status: DeliveryStatus = DeliveryStatus.SCHEDULED
    id: Optional[int] = None
    load_size: Optional[Decimal] = None
    time_interval: Optional[int] = None
    local_id: str = field(default_factory=_new_local_id, compare=False)

    @property
    def is_persisted(self) -> bool:
        return self.id is not None

    @property
    def is_delivered(self) -> bool:
        return self.status == DeliveryStatus.DELIVERED

    @property
    def is_locked(self) -> bool:
        """Confirmed or delivered slots may not be removed or re-quantified."""
        return self.supplier_confirms or self.is_delivered

    @property
    def key(self) -> str:
        return f"id:{self.id}" if self.id is not None else f"local:{self.local_id}"

    def with_changes(self, **changes: Any) -> "DeliverySlot":
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DeliverySlot":
        raw_time = d.get("delivery_time")
        try:
            time = normalize_time(raw_time)
        except ValueError:
            time = None
        return cls(
            id=_optional_int(d.get("id")),
            quantity=to_decimal(d.get("quantity", d.get("qty"))),
            delivery_date=normalize_date(d.get("delivery_date")),
            delivery_time=time,
            truck_type=d.get("truck_type") or None,
            delivery_cost=to_decimal(d.get("delivery_cost")),
            supplier_confirms=_flag(d.get("supplier_confirms")),
            status=_enum(DeliveryStatus, d.get("status"), DeliveryStatus.SCHEDULED),
            load_size=to_decimal(d.get("load_size"), None),
            time_interval=_optional_int(d.get("time_interval")),
            local_id=str(d.get("local_id") or _new_local_id()),
        )


@dataclass(frozen=True)
class OrderItem:
    """A product line on an order. ``id`` is None for items not yet persisted."""

    product_id: int
    quantity: Decimal
    slots: Tuple[DeliverySlot, ...] = ()
    id: Optional[int] = None
    product_name: Optional[str] = None
    supplier_id: Optional[int] = None
    supplier_offer_id: Optional[int] = None
    is_quoted: bool = False
    quoted_price: Optional[Decimal] = None
    supplier_unit_cost: Optional[Decimal] = None
    supplier_discount: Optional[Decimal] = None
    delivery_cost: Optional[Decimal] = None
    delivery_type: Optional[DeliveryType] = None
    supplier_confirms: Optional[bool] = None
    custom_blend_mix: Optional[str] = None

    @property
    def delivered_slots(self) -> List[DeliverySlot]:
        return [s for s in self.slots if s.is_delivered]

    @property
    def editable_slots(self) -> List[DeliverySlot]:
        return [s for s in self.slots if not s.is_delivered]

    @property
    def delivered_quantity(self) -> Decimal:
        return sum((s.quantity for s in self.delivered_slots), ZERO)

    @property
    def has_confirmed_slot(self) -> bool:
        return any(s.supplier_confirms for s in self.slots)

    @property
    def has_delivered_slot(self) -> bool:
        return any(s.is_delivered for s in self.slots)

    def with_changes(self, **changes: Any) -> "OrderItem":
        if "slots" in changes:
            changes["slots"] = tuple(changes["slots"])
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "OrderItem":
        product = d.get("product") or {}
        deliveries = d.get("deliveries") or d.get("delivery_slots") or []
        supplier_id = _optional_int(d.get("supplier_id"))
        raw_confirms = d.get("supplier_confirms")
        return cls(
            id=_optional_int(d.get("id")),
            product_id=int(d.get("product_id") or product.get("id")),
            product_name=product.get("product_name") or d.get("product_name"),
            quantity=to_decimal(d.get("quantity")),
            slots=tuple(DeliverySlot.from_dict(x) for x in deliveries),
            supplier_id=supplier_id,
            supplier_offer_id=_optional_int(d.get("supplier_offer_id") or d.get("offer_id")),
            is_quoted=_flag(d.get("is_quoted")),
            quoted_price=to_decimal(d.get("quoted_price"), None),
            supplier_unit_cost=to_decimal(d.get("supplier_unit_cost"), None),
            supplier_discount=to_decimal(d.get("supplier_discount"), None),
            delivery_cost=to_decimal(d.get("delivery_cost"), None),
            delivery_type=_enum(DeliveryType, d.get("delivery_type")),
            # No supplier assigned means "not applicable", not "pending".
            supplier_confirms=None if supplier_id is None else _optional_flag(raw_confirms),
            custom_blend_mix=d.get("custom_blend_mix") or None,
        )


@dataclass(frozen=True)
class Project:
    """A client's delivery site. Read-only to the engine."""

    id: int
    name: str
    delivery_address: Optional[str] = None
    delivery_lat: Optional[float] = None
    delivery_long: Optional[float] = None
    site_contact_name: Optional[str] = None
    site_contact_phone: Optional[str] = None
    site_instructions: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Project":
        lat, lng = d.get("delivery_lat"), d.get("delivery_long")
        return cls(
            id=int(d["id"]),
            name=str(d.get("name") or ""),
            delivery_address=d.get("delivery_address"),
            delivery_lat=float(lat) if lat is not None else None,
            delivery_long=float(lng) if lng is not None else None,
            site_contact_name=d.get("site_contact_name"),
            site_contact_phone=d.get("site_contact_phone"),
            site_instructions=d.get("site_instructions"),
        )


@dataclass(frozen=True)
class Order:
    """An order with its items, as last confirmed by the backend."""

    id: int
    po_number: str
    order_status: OrderStatus = OrderStatus.DRAFT
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    workflow: Optional[WorkflowStatus] = None
    client_id: Optional[int] = None
    project: Optional[Project] = None
    delivery_address: Optional[str] = None
    delivery_date: Optional[str] = None
    delivery_time: Optional[str] = None
    delivery_method: Optional[str] = None
    contact_person_name: Optional[str] = None
    contact_person_number: Optional[str] = None
    site_instructions: Optional[str] = None
    repeat_order: bool = False
    is_archived: bool = False
    customer_item_cost: Decimal = ZERO
    customer_delivery_cost: Decimal = ZERO
    gst_tax: Decimal = ZERO
    discount: Decimal = ZERO
    other_charges: Decimal = ZERO
    total_price: Decimal = ZERO
    items: Tuple[OrderItem, ...] = ()

    def contact_fields(self) -> Dict[str, Optional[str]]:
        return {name: getattr(self, name) for name in CONTACT_FIELDS}

    def item_by_id(self, item_id: int) -> Optional[OrderItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def with_changes(self, **changes: Any) -> "Order":
        if "items" in changes:
            changes["items"] = tuple(changes["items"])
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, d: Dict[str, Any], items: Optional[List[Dict[str, Any]]] = None) -> "Order":
        """Build from an order payload. Items come from *items* or ``d["items"]``."""
        raw_items = items if items is not None else d.get("items") or []
        project = d.get("project")
        return cls(
            id=int(d["id"]),
            po_number=str(d.get("po_number") or ""),
            order_status=_enum(OrderStatus, d.get("order_status"), OrderStatus.DRAFT),
            payment_status=_enum(PaymentStatus, d.get("payment_status"), PaymentStatus.UNPAID),
            workflow=_enum(WorkflowStatus, d.get("workflow")),
            client_id=_optional_int(d.get("client_id")),
            project=Project.from_dict(project) if project else None,
            delivery_address=d.get("delivery_address"),
            delivery_date=normalize_date(d.get("delivery_date")) or None,
            delivery_time=d.get("delivery_time"),
            delivery_method=d.get("delivery_method"),
            contact_person_name=d.get("contact_person_name"),
            contact_person_number=d.get("contact_person_number"),
            site_instructions=d.get("site_instructions"),
            repeat_order=_flag(d.get("repeat_order")),
            is_archived=_flag(d.get("is_archived")),
            customer_item_cost=to_decimal(d.get("customer_item_cost")),
            customer_delivery_cost=to_decimal(d.get("customer_delivery_cost")),
            gst_tax=to_decimal(d.get("gst_tax")),
            discount=to_decimal(d.get("discount")),
            other_charges=to_decimal(d.get("other_charges")),
            total_price=to_decimal(d.get("total_price")),
            items=tuple(OrderItem.from_dict(x) for x in raw_items),
        )
