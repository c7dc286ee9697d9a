"""Webhook registration endpoints."""

from __future__ import annotations

import httpx
from fastapi import APIRouter, Depends

from chromabase.dependencies import get_registry
from chromabase.exceptions import ValidationError
from chromabase.models.webhook import (
    WebhookListResponse,
    WebhookRegisteredResponse,
    WebhookRegistration,
    WebhookRemovedResponse,
    WebhookRemoval,
)

router = APIRouter(prefix="/api", tags=["webhooks"])


def _check_url(url: str) -> None:
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL:
        raise ValidationError(f"Invalid URL: {url}") from None
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ValidationError(f"Invalid URL: {url}")


@router.post("/webhooks", response_model=WebhookRegisteredResponse)
async def register_webhook(
    body: WebhookRegistration | None = None,
    registry=Depends(get_registry),
) -> WebhookRegisteredResponse:
    if body is None or not body.url:
        raise ValidationError("URL required")
    _check_url(body.url)

    count = registry.register(body.collection, body.url)
    return WebhookRegisteredResponse(
        message=f"Webhook registered for {body.collection}",
        count=count,
    )


@router.get("/webhooks", response_model=WebhookListResponse)
async def list_webhooks(registry=Depends(get_registry)) -> WebhookListResponse:
    return WebhookListResponse(webhooks=registry.list())


@router.delete("/webhooks", response_model=WebhookRemovedResponse)
async def remove_webhook(
    body: WebhookRemoval | None = None,
    registry=Depends(get_registry),
) -> WebhookRemovedResponse:
    if body is None or not body.url or not body.collection or not registry.has(body.collection):
        raise ValidationError("URL and collection required")

    registry.unregister(body.collection, body.url)
    return WebhookRemovedResponse(message="Webhook removed")
