"""FastAPI dependency injection via Depends()."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request

if TYPE_CHECKING:
    from chromabase.config import Settings
    from chromabase.services.broadcaster import LiveBroadcaster
    from chromabase.services.dispatcher import WebhookDispatcher
    from chromabase.services.gateway import MutationGateway
    from chromabase.services.registry import WebhookRegistry
    from chromabase.store.base import DocumentStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_gateway(request: Request) -> MutationGateway:
    return request.app.state.gateway


def get_registry(request: Request) -> WebhookRegistry:
    return request.app.state.registry


def get_dispatcher(request: Request) -> WebhookDispatcher:
    return request.app.state.dispatcher


def get_broadcaster(request: Request) -> LiveBroadcaster:
    return request.app.state.broadcaster
