"""FastAPI application factory with lifespan context manager."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chromabase import __version__
from chromabase.config import Settings
from chromabase.exceptions import register_exception_handlers

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: open the store, start fan-out services."""
    app.state.started_at = time.monotonic()

    settings: Settings = app.state.settings

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    from chromabase.collections import load_rules
    from chromabase.services.broadcaster import LiveBroadcaster
    from chromabase.services.dispatcher import WebhookDispatcher
    from chromabase.services.gateway import MutationGateway
    from chromabase.services.notifier import ChangeNotifier
    from chromabase.services.registry import WebhookRegistry
    from chromabase.store.sqlite import SQLiteDocumentStore

    rules = load_rules(settings.collections_file)

    # --- Document store ---
    store = SQLiteDocumentStore(settings.db_path)
    await store.start()
    app.state.store = store

    # --- Fan-out ---
    registry = WebhookRegistry(rules.keys())
    app.state.registry = registry

    dispatcher = WebhookDispatcher(
        registry,
        timeout_s=settings.webhook_timeout_s,
        transport=app.state.webhook_transport,
        max_queued=settings.webhook_queue_size,
    )
    await dispatcher.start()
    app.state.dispatcher = dispatcher

    broadcaster = LiveBroadcaster(max_queued=settings.stream_queue_size)
    app.state.broadcaster = broadcaster

    notifier = ChangeNotifier(broadcaster, dispatcher)
    app.state.gateway = MutationGateway(store, rules, notifier)

    logger.info(
        "%s started: %d collection(s) [%s]",
        settings.service_name,
        len(rules),
        ", ".join(rules),
    )

    yield

    # --- Shutdown ---
    broadcaster.close_all()
    await dispatcher.stop(grace_s=settings.webhook_drain_timeout_s)
    await store.stop()
    logger.info("%s stopped", settings.service_name)


def create_app(
    settings: Settings | None = None,
    webhook_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``webhook_transport`` replaces the network transport used for webhook
    deliveries (e.g. ``httpx.MockTransport``).
    """
    if settings is None:
        settings = Settings()

    from chromabase.models.envelope import ErrorResponse

    app = FastAPI(
        title=settings.service_name,
        version=__version__,
        summary="ChromaBase CRM records with webhook and live-stream change notifications",
        lifespan=lifespan,
        responses={
            400: {"model": ErrorResponse},
            404: {"model": ErrorResponse},
            502: {"model": ErrorResponse},
        },
    )

    app.state.settings = settings
    app.state.version = __version__
    app.state.webhook_transport = webhook_transport

    register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parse_cors_origins(),
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # Fixed /api paths must be registered before the /api/{collection} catch-all
    from chromabase.routers import health, records, stream, webhooks

    app.include_router(health.router)
    app.include_router(webhooks.router)
    app.include_router(stream.router)
    app.include_router(records.router)

    return app


# Default app instance for uvicorn
app = create_app()
