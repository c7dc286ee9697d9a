"""Shared test fixtures for ChromaBase API."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from chromabase.config import Settings


class WebhookReceiver:
    """Stands in for external webhook endpoints behind httpx.MockTransport."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.failing: set[str] = set()
        self.unreachable: set[str] = set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url in self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)
        self.requests.append(request)
        if url in self.failing:
            return httpx.Response(500, text="boom")
        return httpx.Response(200, json={"ok": True})

    def payloads(self, url: str | None = None) -> list[dict]:
        return [
            json.loads(r.content)
            for r in self.requests
            if url is None or str(r.url) == url
        ]


@pytest.fixture
def tmp_settings(tmp_path: Path) -> Settings:
    """Settings pointing to tmp_path for the document store."""
    return Settings(
        db_path=tmp_path / "chromabase.db",
        webhook_timeout_s=1.0,
        webhook_drain_timeout_s=1.0,
        stream_keepalive_s=0.2,
        stream_queue_size=10,
        log_level="WARNING",
    )


@pytest.fixture
def receiver() -> WebhookReceiver:
    return WebhookReceiver()


@pytest_asyncio.fixture
async def app(tmp_settings: Settings, receiver: WebhookReceiver):
    """The real FastAPI app with test settings, lifespan entered."""
    from chromabase.main import create_app

    app = create_app(
        settings=tmp_settings,
        webhook_transport=httpx.MockTransport(receiver.handler),
    )
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def app_client(app):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def wait_for():
    """Async poller: ``await wait_for(lambda: cond)``."""
    return _wait_for


@pytest.fixture
def sample_lead() -> dict:
    return {"name": "Ann", "email": "ann@x.com", "pipeline_stage": "New"}


@pytest.fixture
def sample_records() -> dict[str, dict]:
    """One valid create payload per default collection."""
    return {
        "clients": {"name": "Acme", "email": "ops@acme.io", "status": "active", "company": "Acme Inc"},
        "leads": {"name": "Ann", "email": "ann@x.com", "pipeline_stage": "New", "source": "Referral", "value": 1200},
        "campaigns": {"name": "Spring Launch", "status": "planning", "budget": 5000},
        "content": {"title": "Launch post", "content_type": "Blog Post", "status": "Draft"},
        "deliverables": {"name": "Brand kit", "client_id": "c-1", "status": "Pending"},
    }
