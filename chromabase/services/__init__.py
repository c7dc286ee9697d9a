"""Mutation gateway and change fan-out services."""

from chromabase.services.broadcaster import LiveBroadcaster, SubscriberHandle, SubscriberState
from chromabase.services.dispatcher import WebhookDispatcher
from chromabase.services.events import ChangeEvent, EventType
from chromabase.services.gateway import MutationGateway
from chromabase.services.notifier import ChangeNotifier
from chromabase.services.registry import WebhookRegistry

__all__ = [
    "ChangeEvent",
    "ChangeNotifier",
    "EventType",
    "LiveBroadcaster",
    "MutationGateway",
    "SubscriberHandle",
    "SubscriberState",
    "WebhookDispatcher",
    "WebhookRegistry",
]
