"""Server-Sent Events stream of change events."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from chromabase.dependencies import get_broadcaster, get_settings
from chromabase.services.broadcaster import LiveBroadcaster

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["stream"])

KEEPALIVE_FRAME = ": ping\n\n"


async def event_frames(broadcaster: LiveBroadcaster, keepalive_s: float) -> AsyncIterator[str]:
    """Subscribe and yield SSE frames until the subscriber is closed.

    The subscriber is removed when the generator is closed, which is how a
    client disconnect (failed write or cancelled response) is detected.
    """
    handle = broadcaster.subscribe()
    try:
        while True:
            try:
                frame = await handle.next_frame(timeout=keepalive_s)
            except asyncio.TimeoutError:
                yield KEEPALIVE_FRAME
                continue
            if frame is None:
                break
            yield frame
    finally:
        broadcaster.unsubscribe(handle)


@router.get("/stream")
async def stream(
    broadcaster=Depends(get_broadcaster),
    settings=Depends(get_settings),
) -> StreamingResponse:
    headers = {"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"}
    return StreamingResponse(
        event_frames(broadcaster, settings.stream_keepalive_s),
        media_type="text/event-stream",
        headers=headers,
    )
