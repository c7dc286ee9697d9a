"""Service index, health and readiness endpoints."""

from __future__ import annotations

import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from chromabase.dependencies import get_dispatcher, get_store
from chromabase.models.health import HealthResponse, HealthStats, ReadyResponse
from chromabase.services.events import utc_now_iso

router = APIRouter(tags=["health"])


@router.get("/")
async def index(request: Request) -> dict:
    collections = request.app.state.gateway.collections
    endpoints = ["GET /api/health", "GET /api/ready"]
    for name in collections:
        endpoints += [
            f"GET /api/{name}",
            f"POST /api/{name}",
            f"GET /api/{name}/:id",
            f"PUT /api/{name}/:id",
            f"DELETE /api/{name}/:id",
        ]
    endpoints += ["POST /api/webhooks", "GET /api/webhooks", "DELETE /api/webhooks", "GET /api/stream"]
    return {"service": request.app.state.settings.service_name, "endpoints": endpoints}


@router.get("/api/health", response_model=HealthResponse)
async def health(request: Request, dispatcher=Depends(get_dispatcher)) -> HealthResponse:
    state = request.app.state

    return HealthResponse(
        status="ok",
        service=state.settings.service_name,
        version=state.version,
        timestamp=utc_now_iso(),
        uptime=int(time.monotonic() - state.started_at),
        stats=HealthStats(
            sseClients=state.broadcaster.subscriber_count,
            webhooks=state.registry.counts(),
            webhookDeliveries={
                "delivered": dispatcher.delivered,
                "failed": dispatcher.failed,
                "pending": dispatcher.pending,
            },
        ),
    )


@router.get("/api/ready")
async def ready(store=Depends(get_store)) -> JSONResponse:
    if not await store.ping():
        body = ReadyResponse(ready=False, reason="document store unreachable")
        return JSONResponse(status_code=503, content=body.model_dump())

    return JSONResponse(status_code=200, content=ReadyResponse(ready=True).model_dump())
