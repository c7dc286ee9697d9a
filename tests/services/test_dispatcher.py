"""Tests for WebhookDispatcher."""

from __future__ import annotations

import asyncio
import json
import logging

import httpx
import pytest

from chromabase.services.dispatcher import WebhookDispatcher
from chromabase.services.events import ChangeEvent, EventType
from chromabase.services.registry import WebhookRegistry

FAST = "http://fast.example/hook"
SLOW = "http://slow.example/hook"
BROKEN = "http://broken.example/hook"


class Recorder:
    def __init__(self):
        self.seen: list[tuple[str, dict, httpx.Headers]] = []
        self.gate = asyncio.Event()
        self.gate.set()
        self.status: dict[str, int] = {}
        self.errors: dict[str, Exception] = {}

    async def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url == SLOW:
            await self.gate.wait()
        if url in self.errors:
            raise self.errors[url]
        self.seen.append((url, json.loads(request.content), request.headers))
        return httpx.Response(self.status.get(url, 204))

    def payloads(self, url: str) -> list[dict]:
        return [payload for u, payload, _ in self.seen if u == url]


@pytest.fixture
def registry() -> WebhookRegistry:
    return WebhookRegistry(["clients", "leads"])


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
async def dispatcher(registry, recorder):
    svc = WebhookDispatcher(registry, timeout_s=1.0, transport=httpx.MockTransport(recorder.handler))
    await svc.start()
    yield svc
    await svc.stop(grace_s=0.5)


def _event(collection: str = "clients", n: int = 1, kind: EventType = EventType.CREATED) -> ChangeEvent:
    return ChangeEvent(collection, kind, {"id": f"doc-{n}", "n": n})


# -- Delivery ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_one_attempt_per_registered_url(dispatcher, registry, recorder):
    registry.register("clients", FAST)
    registry.register("clients", "http://other.example/hook")
    registry.register("leads", "http://leads.example/hook")

    event = _event()
    assert dispatcher.dispatch(event) == 2
    await dispatcher.drain()

    assert sorted(u for u, _, _ in recorder.seen) == sorted([FAST, "http://other.example/hook"])
    url, payload, headers = recorder.seen[0]
    assert payload == {
        "event": "created",
        "collection": "clients",
        "data": {"id": "doc-1", "n": 1},
        "timestamp": event.timestamp,
    }
    assert headers["X-Webhook-Event"] == "clients.created"
    assert dispatcher.delivered == 2
    assert dispatcher.failed == 0


@pytest.mark.asyncio
async def test_no_registrations_is_noop(dispatcher, recorder):
    assert dispatcher.dispatch(_event()) == 0
    await dispatcher.drain()
    assert recorder.seen == []


@pytest.mark.asyncio
async def test_duplicate_registration_delivers_twice(dispatcher, registry, recorder):
    registry.register("clients", FAST)
    registry.register("clients", FAST)

    dispatcher.dispatch(_event())
    await dispatcher.drain()

    assert len(recorder.payloads(FAST)) == 2


@pytest.mark.asyncio
async def test_url_registered_after_dispatch_does_not_receive(dispatcher, registry, recorder):
    registry.register("clients", FAST)

    dispatcher.dispatch(_event())
    registry.register("clients", "http://late.example/hook")
    await dispatcher.drain()

    assert recorder.payloads("http://late.example/hook") == []
    assert len(recorder.payloads(FAST)) == 1


# -- Failure isolation ---------------------------------------------------------


@pytest.mark.asyncio
async def test_failing_url_does_not_affect_others(dispatcher, registry, recorder, caplog):
    recorder.status[BROKEN] = 500
    registry.register("clients", BROKEN)
    registry.register("clients", FAST)

    with caplog.at_level(logging.WARNING, logger="chromabase.services.dispatcher"):
        dispatcher.dispatch(_event())
        await dispatcher.drain()

    assert len(recorder.payloads(FAST)) == 1
    assert dispatcher.delivered == 1
    assert dispatcher.failed == 1
    assert "HTTP 500" in caplog.text


@pytest.mark.asyncio
async def test_transport_error_and_timeout_are_reported(dispatcher, registry, recorder, caplog):
    recorder.errors[BROKEN] = httpx.ConnectError("connection refused")
    recorder.errors[SLOW] = httpx.ReadTimeout("slow")
    registry.register("clients", BROKEN)
    registry.register("clients", SLOW)
    registry.register("clients", FAST)

    with caplog.at_level(logging.WARNING, logger="chromabase.services.dispatcher"):
        dispatcher.dispatch(_event())
        await dispatcher.drain()

    assert dispatcher.failed == 2
    assert dispatcher.delivered == 1
    assert "ConnectError" in caplog.text
    assert "timed out" in caplog.text


@pytest.mark.asyncio
async def test_slow_url_does_not_delay_other_urls(dispatcher, registry, recorder):
    recorder.gate.clear()
    registry.register("clients", SLOW)
    registry.register("clients", FAST)

    dispatcher.dispatch(_event(n=1))
    dispatcher.dispatch(_event(n=2))

    for _ in range(50):
        if len(recorder.payloads(FAST)) == 2:
            break
        await asyncio.sleep(0.01)

    assert [p["data"]["n"] for p in recorder.payloads(FAST)] == [1, 2]
    assert recorder.payloads(SLOW) == []
    assert dispatcher.pending == 2

    recorder.gate.set()
    await dispatcher.drain()
    assert [p["data"]["n"] for p in recorder.payloads(SLOW)] == [1, 2]


# -- Ordering ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_sequential_events_arrive_in_order_per_url(dispatcher, registry, recorder):
    registry.register("leads", FAST)

    for n in range(5):
        dispatcher.dispatch(_event("leads", n, EventType.UPDATED))
    await dispatcher.drain()

    assert [p["data"]["n"] for p in recorder.payloads(FAST)] == [0, 1, 2, 3, 4]


# -- Lifecycle -----------------------------------------------------------------


@pytest.mark.asyncio
async def test_dispatch_before_start_raises(registry):
    svc = WebhookDispatcher(registry)
    with pytest.raises(RuntimeError):
        svc.dispatch(_event())


@pytest.mark.asyncio
async def test_stop_cancels_stuck_deliveries(registry, recorder):
    recorder.gate.clear()
    registry.register("clients", SLOW)
    svc = WebhookDispatcher(registry, transport=httpx.MockTransport(recorder.handler))
    await svc.start()

    svc.dispatch(_event())
    await asyncio.sleep(0.01)
    await svc.stop(grace_s=0.05)

    assert recorder.seen == []
    with pytest.raises(RuntimeError):
        svc.dispatch(_event())


@pytest.mark.asyncio
async def test_full_lane_drops_new_attempts(registry, recorder, caplog):
    recorder.gate.clear()
    registry.register("clients", SLOW)
    svc = WebhookDispatcher(registry, transport=httpx.MockTransport(recorder.handler), max_queued=2)
    await svc.start()
    try:
        with caplog.at_level(logging.WARNING, logger="chromabase.services.dispatcher"):
            queued = [svc.dispatch(_event(n=n)) for n in range(1, 5)]

        assert queued == [1, 1, 0, 0]
        assert svc.pending == 2
        assert svc.failed == 2
        assert "lane full" in caplog.text

        recorder.gate.set()
        await svc.drain()
        assert [p["data"]["n"] for p in recorder.payloads(SLOW)] == [1, 2]
        assert svc.delivered == 2
    finally:
        await svc.stop(grace_s=0.5)


# -- Real sockets --------------------------------------------------------------


@pytest.fixture
async def trickling_endpoint():
    """Local HTTP endpoint that sends its response body one byte at a time."""
    handlers: set[asyncio.Task] = set()

    async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        handlers.add(asyncio.current_task())
        try:
            await reader.readuntil(b"\r\n\r\n")
            writer.write(b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\nContent-Length: 50\r\n\r\n")
            await writer.drain()
            for _ in range(50):
                await asyncio.sleep(0.2)
                writer.write(b"x")
                await writer.drain()
        except (ConnectionError, asyncio.IncompleteReadError):
            pass
        finally:
            writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    yield f"http://127.0.0.1:{port}/hook"

    for task in handlers:
        task.cancel()
    server.close()
    await server.wait_closed()


@pytest.mark.asyncio
async def test_attempt_is_bounded_even_when_body_trickles(registry, trickling_endpoint, caplog):
    registry.register("clients", trickling_endpoint)
    svc = WebhookDispatcher(registry, timeout_s=0.5, transport=httpx.AsyncHTTPTransport())
    await svc.start()
    loop = asyncio.get_running_loop()
    try:
        with caplog.at_level(logging.WARNING, logger="chromabase.services.dispatcher"):
            started = loop.time()
            svc.dispatch(_event())
            await svc.drain()
            elapsed = loop.time() - started
    finally:
        await svc.stop(grace_s=0.5)

    assert elapsed < 1.5
    assert svc.delivered == 0
    assert svc.failed == 1
    assert "timed out after 0.5s" in caplog.text
