"""Reaction relay: charges reactions before broadcasting them."""
from .models import NotificationType, PrivateNotification, SongEvent, SongEventType
from .relay import (
    Broadcaster,
    InMemoryBroadcaster,
    ListenerRegistry,
    ReactionOutcome,
    ReactionRelay,
)

__all__ = [
    "Broadcaster",
    "InMemoryBroadcaster",
    "ListenerRegistry",
    "NotificationType",
    "PrivateNotification",
    "ReactionOutcome",
    "ReactionRelay",
    "SongEvent",
    "SongEventType",
]
