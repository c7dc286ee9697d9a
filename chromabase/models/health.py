"""Health and readiness response models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class HealthStats(BaseModel):
    sseClients: int
    webhooks: dict[str, int]
    webhookDeliveries: dict[str, int]


class HealthResponse(BaseModel):
    status: Literal["ok"]
    service: str
    version: str
    timestamp: str
    uptime: int
    stats: HealthStats


class ReadyResponse(BaseModel):
    ready: bool
    reason: str | None = None
