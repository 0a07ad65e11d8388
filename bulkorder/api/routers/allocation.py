"""Allocation router: conservation check and load-plan expansion."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from bulkorder.api.dependencies import get_engine_config
from bulkorder.api.schemas.engine import (
    AllocationCheckRequest,
    AllocationCheckResponse,
    LoadPlanRequest,
    LoadPlanResponse,
    TripSchema,
)
from bulkorder.config.engine import EngineConfig
from bulkorder.core.exceptions import LocalValidationError
from bulkorder.orders.allocation import QuantityAllocator
from bulkorder.orders.slot_editor import slot_payload
from bulkorder.orders.values import normalize_time

router = APIRouter(prefix="/allocation", tags=["allocation"])


@router.post("/check", response_model=AllocationCheckResponse)
async def check_allocation(
    body: AllocationCheckRequest,
    config: EngineConfig = Depends(get_engine_config),
):
    report = QuantityAllocator(config).report(
        body.quantity,
        [s.to_slot() for s in body.deliveries],
        already_delivered=body.already_delivered,
    )
    return AllocationCheckResponse(
        quantity=float(report.quantity),
        allocated=float(report.allocated),
        remaining=float(report.remaining),
        is_valid=report.is_valid,
        message=report.message(),
    )


@router.post("/expand", response_model=LoadPlanResponse)
async def expand_load_plan(
    body: LoadPlanRequest,
    config: EngineConfig = Depends(get_engine_config),
):
    """Preview the trips of a load plan and the slots it expands into."""
    slot = body.delivery.to_slot()
    try:
        slot = slot.with_changes(delivery_time=normalize_time(slot.delivery_time))
    except ValueError as exc:
        raise LocalValidationError([str(exc)]) from exc
    allocator = QuantityAllocator(config)
    expanded = allocator.expand_load_plan(slot)
    trips = []
    if slot.load_size and slot.time_interval:
        trips = allocator.trip_breakdown(slot.quantity, slot.delivery_time, slot.load_size, slot.time_interval)
    return LoadPlanResponse(
        trips=[TripSchema(time=t.time, quantity=float(t.quantity)) for t in trips],
        deliveries=[slot_payload(s, include_id=False) for s in expanded],
    )
