"""In-memory webhook registry: collection name -> ordered subscriber URLs."""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from chromabase.exceptions import ValidationError

logger = logging.getLogger(__name__)


class WebhookRegistry:
    """Ordered URL lists per collection.

    Duplicate registrations are kept; each one produces its own delivery.
    Nothing is persisted across restarts.
    """

    def __init__(self, collections: Iterable[str]):
        self._lock = threading.Lock()
        self._hooks: dict[str, list[str]] = {name: [] for name in collections}

    def register(self, collection: str, url: str) -> int:
        """Append ``url`` for ``collection``. Returns the new subscriber count."""
        with self._lock:
            if collection not in self._hooks:
                raise ValidationError(f"Unknown collection: {collection}")
            hooks = self._hooks[collection]
            hooks.append(url)
            count = len(hooks)
        logger.info("Webhook registered: collection=%s url=%s (count=%d)", collection, url, count)
        return count

    def unregister(self, collection: str, url: str) -> int:
        """Remove every exact occurrence of ``url``. Returns how many were removed."""
        with self._lock:
            hooks = self._hooks.get(collection)
            if not hooks:
                return 0
            kept = [u for u in hooks if u != url]
            removed = len(hooks) - len(kept)
            self._hooks[collection] = kept
        if removed:
            logger.info("Webhook removed: collection=%s url=%s (x%d)", collection, url, removed)
        return removed

    def list(self) -> dict[str, list[str]]:
        """Snapshot of the whole registry."""
        with self._lock:
            return {name: list(urls) for name, urls in self._hooks.items()}

    def has(self, collection: str) -> bool:
        with self._lock:
            return collection in self._hooks

    def urls_for(self, collection: str) -> list[str]:
        with self._lock:
            return list(self._hooks.get(collection, ()))

    def counts(self) -> dict[str, int]:
        with self._lock:
            return {name: len(urls) for name, urls in self._hooks.items()}
