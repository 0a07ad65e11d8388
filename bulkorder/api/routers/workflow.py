"""Workflow router: which actions a status allows for the caller."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from bulkorder.api.dependencies import get_actor
from bulkorder.api.schemas.engine import WorkflowResponse
from bulkorder.core.exceptions import NotFoundError
from bulkorder.orders.permissions import ActorContext
from bulkorder.orders.types import OrderStatus
from bulkorder.orders.workflow import TRANSITIONS, allowed_actions

router = APIRouter(prefix="/workflow", tags=["workflow"])

_ORDER = list(OrderStatus)


@router.get("/{status}", response_model=WorkflowResponse)
async def workflow_for_status(status: str, actor: ActorContext = Depends(get_actor)):
    match = next((s for s in OrderStatus if s.value.lower() == status.strip().lower()), None)
    if match is None:
        raise NotFoundError(f"Unknown order status {status!r}", details={"status": status})
    return WorkflowResponse(
        status=match.value,
        transitions=[s.value for s in sorted(TRANSITIONS[match], key=_ORDER.index)],
        actions=allowed_actions(match, actor),
    )
