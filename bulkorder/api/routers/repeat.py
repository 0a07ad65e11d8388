"""Repeat-order router: preview the resubmission payload."""
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from bulkorder.api.dependencies import get_actor, get_engine_config
from bulkorder.api.schemas.engine import RepeatPreviewRequest
from bulkorder.config.engine import EngineConfig
from bulkorder.orders.permissions import ActorContext
from bulkorder.orders.repeat import RepeatComposer, RepeatOverride
from bulkorder.orders.workflow import ensure_can_repeat

router = APIRouter(prefix="/repeat-order", tags=["repeat-order"])


@router.post("/preview")
async def preview_repeat_order(
    body: RepeatPreviewRequest,
    config: EngineConfig = Depends(get_engine_config),
    actor: ActorContext = Depends(get_actor),
) -> Dict[str, Any]:
    order = body.order.to_order()
    ensure_can_repeat(order, actor)
    overrides = {
        item_id: RepeatOverride(quantity=o.quantity, custom_blend_mix=o.custom_blend_mix, exclude=o.exclude)
        for item_id, o in body.overrides.items()
    }
    return RepeatComposer(config).compose(order, overrides).to_payload()
