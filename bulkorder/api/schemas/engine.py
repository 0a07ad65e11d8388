"""Pydantic v2 request/response schemas for the engine preview routes."""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from bulkorder.api.schemas.orders import ItemSchema, OrderSchema, SlotSchema
from bulkorder.orders.types import WorkflowStatus
from bulkorder.orders.values import ZERO


class AllocationCheckRequest(BaseModel):
    quantity: Decimal
    deliveries: List[SlotSchema] = Field(default_factory=list)
    already_delivered: Decimal = ZERO


class AllocationCheckResponse(BaseModel):
    quantity: float
    allocated: float
    remaining: float
    is_valid: bool
    message: Optional[str] = None


class LoadPlanRequest(BaseModel):
    delivery: SlotSchema


class TripSchema(BaseModel):
    time: str
    quantity: float


class LoadPlanResponse(BaseModel):
    trips: List[TripSchema]
    deliveries: List[Dict[str, Any]]


class OrderEditPreviewRequest(BaseModel):
    order: OrderSchema
    items: List[ItemSchema]
    order_fields: Optional[Dict[str, Optional[str]]] = None


class OrderEditPreviewResponse(BaseModel):
    is_empty: bool
    payload: Dict[str, Any]
    slot_changes: Dict[str, Dict[str, Any]]


class PricingRequest(BaseModel):
    items: List[ItemSchema]
    discount: Decimal = Field(default=ZERO, ge=0)
    other_charges: Decimal = Field(default=ZERO, ge=0)
    workflow: Optional[WorkflowStatus] = None


class WorkflowResponse(BaseModel):
    status: str
    transitions: List[str]
    actions: Dict[str, bool]


class RepeatOverrideSchema(BaseModel):
    quantity: Optional[Decimal] = None
    custom_blend_mix: Optional[str] = None
    exclude: bool = False


class RepeatPreviewRequest(BaseModel):
    order: OrderSchema
    overrides: Dict[int, RepeatOverrideSchema] = Field(default_factory=dict)
