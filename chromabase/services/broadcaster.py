"""Push change events to every open live-update connection."""

from __future__ import annotations

import asyncio
import logging
import uuid
from enum import Enum

from chromabase.exceptions import BroadcastError
from chromabase.services.events import ChangeEvent

logger = logging.getLogger(__name__)

CONNECTED_FRAME = 'event: connected\ndata: {"status":"connected"}\n\n'


class SubscriberState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class SubscriberHandle:
    """One live-update channel backed by a bounded frame queue.

    ``next_frame()`` returns None once the handle is closed and drained.
    """

    def __init__(self, max_queued: int = 100):
        self.id = uuid.uuid4().hex[:12]
        self.state = SubscriberState.CONNECTING
        self._queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize=max_queued + 1)
        self._max_queued = max_queued

    @property
    def is_open(self) -> bool:
        return self.state is SubscriberState.OPEN

    def open(self) -> None:
        if self.state is not SubscriberState.CONNECTING:
            raise BroadcastError(f"subscriber {self.id} cannot open from {self.state.value}")
        self._queue.put_nowait(CONNECTED_FRAME)
        self.state = SubscriberState.OPEN

    def push(self, frame: str) -> None:
        if not self.is_open:
            raise BroadcastError(f"subscriber {self.id} is {self.state.value}")
        # One slot is held back for the close sentinel.
        if self._queue.qsize() >= self._max_queued:
            raise BroadcastError(f"subscriber {self.id} queue is full")
        self._queue.put_nowait(frame)

    def close(self) -> None:
        if self.state is SubscriberState.CLOSED:
            return
        self.state = SubscriberState.CLOSED
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            pass

    async def next_frame(self, timeout: float | None = None) -> str | None:
        """Wait for the next frame. Raises asyncio.TimeoutError after ``timeout``."""
        if self.state is SubscriberState.CLOSED and self._queue.empty():
            return None
        if timeout is None:
            return await self._queue.get()
        return await asyncio.wait_for(self._queue.get(), timeout=timeout)


class LiveBroadcaster:
    """Set of open live-update subscribers, confined to the event loop."""

    def __init__(self, max_queued: int = 100):
        self._max_queued = max_queued
        self._subscribers: dict[str, SubscriberHandle] = {}

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> SubscriberHandle:
        handle = SubscriberHandle(self._max_queued)
        handle.open()
        self._subscribers[handle.id] = handle
        logger.info("Live subscriber %s connected (%d open)", handle.id, len(self._subscribers))
        return handle

    def unsubscribe(self, handle: SubscriberHandle) -> None:
        handle.close()
        if self._subscribers.pop(handle.id, None) is not None:
            logger.info("Live subscriber %s disconnected (%d open)", handle.id, len(self._subscribers))

    def broadcast(self, event: ChangeEvent) -> int:
        """Queue the event for every open subscriber. Returns the number reached."""
        frame = event.to_sse_frame()
        delivered = 0
        for handle in list(self._subscribers.values()):
            try:
                handle.push(frame)
            except BroadcastError as exc:
                logger.warning("Dropping live subscriber: %s", exc)
                self.unsubscribe(handle)
                continue
            delivered += 1
        return delivered

    def close_all(self) -> None:
        for handle in list(self._subscribers.values()):
            self.unsubscribe(handle)
