"""Pricing router: breakdown projected for the calling role."""
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from bulkorder.api.dependencies import get_actor, get_engine_config
from bulkorder.api.schemas.engine import PricingRequest
from bulkorder.config.engine import EngineConfig
from bulkorder.orders.permissions import ActorContext
from bulkorder.orders.pricing import PricingCalculator

router = APIRouter(prefix="/pricing", tags=["pricing"])


@router.post("/breakdown")
async def pricing_breakdown(
    body: PricingRequest,
    config: EngineConfig = Depends(get_engine_config),
    actor: ActorContext = Depends(get_actor),
) -> Dict[str, Any]:
    breakdown = PricingCalculator(config).breakdown(
        [i.to_item() for i in body.items],
        discount=body.discount,
        other_charges=body.other_charges,
    )
    return breakdown.view_for(actor, body.workflow)
