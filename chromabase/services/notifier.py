"""Hand change events to the live stream and the webhook dispatcher."""

from __future__ import annotations

import logging

from chromabase.services.broadcaster import LiveBroadcaster
from chromabase.services.dispatcher import WebhookDispatcher
from chromabase.services.events import ChangeEvent

logger = logging.getLogger(__name__)


class ChangeNotifier:
    def __init__(self, broadcaster: LiveBroadcaster, dispatcher: WebhookDispatcher):
        self._broadcaster = broadcaster
        self._dispatcher = dispatcher

    def publish(self, event: ChangeEvent) -> None:
        """Fan the event out. Never raises; the mutation already succeeded."""
        try:
            self._broadcaster.broadcast(event)
        except Exception:
            logger.exception("Live broadcast failed for %s.%s", event.collection, event.event.value)

        try:
            self._dispatcher.dispatch(event)
        except Exception:
            logger.exception("Webhook dispatch failed for %s.%s", event.collection, event.event.value)
