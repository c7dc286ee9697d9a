"""Deliver change events to registered webhook URLs over HTTP."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from chromabase.exceptions import DeliveryError
from chromabase.services.events import ChangeEvent
from chromabase.services.registry import WebhookRegistry

logger = logging.getLogger(__name__)


class WebhookDispatcher:
    """Fire-and-forget webhook delivery.

    Every URL gets its own lane: a FIFO queue drained by one task that exists
    only while the queue has work. A slow or failing URL therefore only delays
    its own later deliveries, and events dispatched in sequence reach each URL
    in that sequence. A lane holds at most ``max_queued`` attempts; further
    attempts for that URL are dropped. Failed attempts are logged and not retried.
    """

    def __init__(
        self,
        registry: WebhookRegistry,
        timeout_s: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
        max_queued: int = 1000,
    ):
        self._registry = registry
        self._timeout_s = timeout_s
        self._max_queued = max_queued
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._lanes: dict[str, asyncio.Queue[tuple[ChangeEvent, dict[str, Any]]]] = {}
        self._workers: dict[str, asyncio.Task] = {}
        self._pending = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self.delivered = 0
        self.failed = 0

    async def start(self) -> None:
        self._client = httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport)
        logger.info("WebhookDispatcher started (timeout=%.1fs)", self._timeout_s)

    async def stop(self, grace_s: float = 10.0) -> None:
        """Let queued deliveries finish for up to ``grace_s``, then cancel the rest."""
        try:
            await asyncio.wait_for(self.drain(), timeout=grace_s)
        except asyncio.TimeoutError:
            logger.warning("Cancelling %d undelivered webhook attempt(s) at shutdown", self._pending)

        for task in list(self._workers.values()):
            task.cancel()
        for task in list(self._workers.values()):
            try:
                await task
            except asyncio.CancelledError:
                pass

        if self._client:
            await self._client.aclose()
            self._client = None
        logger.info("WebhookDispatcher stopped")

    @property
    def pending(self) -> int:
        return self._pending

    async def drain(self) -> None:
        """Wait until every queued delivery attempt has finished."""
        await self._idle.wait()

    def dispatch(self, event: ChangeEvent) -> int:
        """Queue one attempt per URL registered for the event's collection right now.

        Returns the number of attempts queued. Never blocks.
        """
        if not self._client:
            raise RuntimeError("WebhookDispatcher not started")

        urls = self._registry.urls_for(event.collection)
        if not urls:
            return 0

        payload = event.to_webhook_payload()
        queued = 0
        for url in urls:
            try:
                self._enqueue(url, event, payload)
            except DeliveryError as exc:
                self.failed += 1
                logger.warning(
                    "Webhook delivery dropped for %s.%s: %s",
                    event.collection,
                    event.event.value,
                    exc,
                )
                continue
            queued += 1
        logger.debug(
            "Queued %s.%s for %d of %d webhook(s)", event.collection, event.event.value, queued, len(urls)
        )
        return queued

    def _enqueue(self, url: str, event: ChangeEvent, payload: dict[str, Any]) -> None:
        queue = self._lanes.get(url)
        if queue is None:
            queue = asyncio.Queue(maxsize=self._max_queued)
            self._lanes[url] = queue
            self._workers[url] = asyncio.create_task(
                self._run_lane(url, queue), name=f"webhook-lane:{url}"
            )
        try:
            queue.put_nowait((event, payload))
        except asyncio.QueueFull:
            raise DeliveryError(url, f"lane full ({self._max_queued} queued)") from None
        self._pending += 1
        self._idle.clear()

    async def _run_lane(self, url: str, queue: asyncio.Queue) -> None:
        try:
            while not queue.empty():
                event, payload = queue.get_nowait()
                try:
                    await self._deliver(url, event, payload)
                    self.delivered += 1
                except DeliveryError as exc:
                    self.failed += 1
                    logger.warning(
                        "Webhook delivery failed for %s.%s: %s",
                        event.collection,
                        event.event.value,
                        exc,
                    )
                except Exception:
                    self.failed += 1
                    logger.exception("Unexpected error delivering webhook to %s", url)
                finally:
                    self._pending -= 1
                    if self._pending == 0:
                        self._idle.set()
        finally:
            self._lanes.pop(url, None)
            self._workers.pop(url, None)

    async def _deliver(self, url: str, event: ChangeEvent, payload: dict[str, Any]) -> None:
        if not self._client:
            raise DeliveryError(url, "dispatcher stopped")
        # The client timeout bounds each network step; wait_for bounds the whole attempt.
        try:
            resp = await asyncio.wait_for(
                self._client.post(
                    url,
                    json=payload,
                    headers={"X-Webhook-Event": f"{event.collection}.{event.event.value}"},
                ),
                timeout=self._timeout_s,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError):
            raise DeliveryError(url, f"timed out after {self._timeout_s}s") from None
        except httpx.HTTPError as exc:
            raise DeliveryError(url, f"{type(exc).__name__}: {exc}") from exc

        if not resp.is_success:
            raise DeliveryError(url, f"HTTP {resp.status_code}")
