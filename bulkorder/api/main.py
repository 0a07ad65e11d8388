"""Bulk order engine preview API: entry point.

Start with:
    uvicorn bulkorder.api.main:app --reload --host 0.0.0.0 --port 8000

Every route is a pure engine call: payloads are built and checked, never
submitted or stored.
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from bulkorder.config.engine import load_engine_config
from bulkorder.core.exceptions import ConfigurationError, ProjectError
from bulkorder.core.logger import configure

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ── Startup ──────────────────────────────────────────────────
    configure()
    try:
        app.state.engine_config = load_engine_config()
    except ValueError as exc:
        raise ConfigurationError(f"Invalid engine config: {exc}", cause=exc) from exc
    logger.info("API: engine config loaded (%s)", app.state.engine_config)

    yield

    # ── Shutdown ─────────────────────────────────────────────────
    logger.info("API: shutting down")


app = FastAPI(
    title="Bulk Order Engine API",
    version="1.0.0",
    description="Allocation, order-edit, pricing and workflow previews for bulk material orders.",
    lifespan=lifespan,
)

# Rate limiter: default limit via API_RATE_LIMIT (default 120/minute)
_rate_limit = os.environ.get("API_RATE_LIMIT", "120/minute")
limiter = Limiter(key_func=get_remote_address, default_limits=[_rate_limit])
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

_allowed_origins = os.environ.get(
    "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
).split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ProjectError)
async def project_error_handler(request: Request, exc: ProjectError):
    if exc.is_client_error:
        logger.info("API: %s on %s: %s", exc.code, request.url.path, exc.message, extra=exc.log_extra())
    else:
        logger.error("API: %s on %s: %s", exc.code, request.url.path, exc.message, extra=exc.log_extra())
    return JSONResponse(status_code=exc.http_status, content={"error": exc.to_dict()})


# ── Routers ───────────────────────────────────────────────────────
from bulkorder.api.routers import allocation, order_edit, pricing, repeat, workflow  # noqa: E402

app.include_router(allocation.router, prefix="/api/v1")
app.include_router(order_edit.router, prefix="/api/v1")
app.include_router(pricing.router, prefix="/api/v1")
app.include_router(workflow.router, prefix="/api/v1")
app.include_router(repeat.router, prefix="/api/v1")


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
