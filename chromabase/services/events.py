"""Immutable change events produced by successful mutations."""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class EventType(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


def utc_now_iso(after: str | None = None) -> str:
    """ISO-8601 UTC timestamp, strictly later than ``after`` when given."""
    now = datetime.now(timezone.utc)
    if after:
        try:
            previous = datetime.fromisoformat(after.replace("Z", "+00:00"))
        except ValueError:
            previous = None
        if previous is not None and now <= previous:
            now = previous + timedelta(microseconds=1)
    return now.isoformat(timespec="microseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class ChangeEvent:
    collection: str
    event: EventType
    data: Mapping[str, Any]
    timestamp: str = field(default_factory=utc_now_iso)

    def __post_init__(self) -> None:
        object.__setattr__(self, "event", EventType(self.event))
        object.__setattr__(self, "data", MappingProxyType(copy.deepcopy(dict(self.data))))

    def to_webhook_payload(self) -> dict[str, Any]:
        return {
            "event": self.event.value,
            "collection": self.collection,
            "data": copy.deepcopy(dict(self.data)),
            "timestamp": self.timestamp,
        }

    def to_sse_frame(self) -> str:
        body = json.dumps(
            {"collection": self.collection, "data": dict(self.data), "timestamp": self.timestamp}
        )
        return f"event: {self.event.value}\ndata: {body}\n\n"
