"""Webhook registration models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class WebhookRegistration(BaseModel):
    url: str | None = None
    collection: str = "clients"


class WebhookRemoval(BaseModel):
    url: str | None = None
    collection: str | None = None


class WebhookRegisteredResponse(BaseModel):
    status: Literal["success"] = "success"
    message: str
    count: int


class WebhookListResponse(BaseModel):
    status: Literal["success"] = "success"
    webhooks: dict[str, list[str]]


class WebhookRemovedResponse(BaseModel):
    status: Literal["success"] = "success"
    message: str
