"""Order-edit router: build the edit payload without submitting it."""
import logging

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from bulkorder.api.dependencies import get_actor, get_engine_config
from bulkorder.api.schemas.engine import OrderEditPreviewRequest, OrderEditPreviewResponse
from bulkorder.config.engine import EngineConfig
from bulkorder.orders.item_editor import OrderItemEditor
from bulkorder.orders.permissions import ActorContext
from bulkorder.orders.workflow import ensure_can_edit

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/order-edit", tags=["order-edit"])
limiter = Limiter(key_func=get_remote_address)


@router.post("/preview", response_model=OrderEditPreviewResponse)
@limiter.limit("60/minute")
async def preview_order_edit(
    request: Request,
    body: OrderEditPreviewRequest,
    config: EngineConfig = Depends(get_engine_config),
    actor: ActorContext = Depends(get_actor),
):
    order = body.order.to_order()
    ensure_can_edit(order, actor)
    payload = OrderItemEditor(config).build_payload(
        order,
        [i.to_item() for i in body.items],
        order_fields=body.order_fields,
        ctx=actor,
    )
    return OrderEditPreviewResponse(
        is_empty=payload.is_empty,
        payload=payload.to_dict(),
        slot_changes={str(k): v for k, v in payload.slot_changes().items()},
    )
