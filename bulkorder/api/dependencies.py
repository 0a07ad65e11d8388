"""FastAPI dependency providers."""
from __future__ import annotations

from typing import Optional

from fastapi import Header, Request

from bulkorder.config.engine import EngineConfig
from bulkorder.core.exceptions import ForbiddenError
from bulkorder.orders.permissions import ActorContext, Role


def get_engine_config(request: Request) -> EngineConfig:
    """Engine constants loaded once at startup."""
    config = getattr(request.app.state, "engine_config", None)
    return config or EngineConfig()


def get_actor(
    x_actor_role: Optional[str] = Header(default=None),
    x_actor_id: Optional[int] = Header(default=None),
) -> ActorContext:
    """Capability context supplied by the caller's session layer. Defaults to a client."""
    role = (x_actor_role or Role.CLIENT.value).strip().lower()
    try:
        return ActorContext.for_role(role, user_id=x_actor_id)
    except ValueError as exc:
        raise ForbiddenError(f"Unknown role {role!r}", details={"role": role}) from exc
