"""
Reaction relay: the broadcast side of the charge protocol.

A reaction is only relayed to the song channel once its charge is accepted.
Any other outcome reaches the originating listener as a private
notification, never as silence and never as a raw transport error.
"""
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Set, Union

import structlog

from reaction_payments.client.orchestrator import RetryOrchestrator
from reaction_payments.core.models import ChargeResult, ChargeStatus

from .models import NotificationType, PrivateNotification, SongEvent

logger = structlog.get_logger(__name__)

BROADCAST = "broadcast"
PRIVATE = "private"

UNAVAILABLE_MESSAGE = "Your reaction could not be processed right now. Please try again later."


class Broadcaster(Protocol):
    """Delivery channel owned by the real-time session layer."""

    async def broadcast(self, channel: str, event: SongEvent) -> None:
        """Deliver an event to every subscriber of a channel."""
        ...

    async def notify(self, identity: str, notification: PrivateNotification) -> None:
        """Deliver a notification to one identity only."""
        ...


@dataclass
class Delivery:
    """A message handed to the broadcaster."""

    kind: str
    target: str
    payload: Union[SongEvent, PrivateNotification]


class InMemoryBroadcaster:
    """Broadcaster that records deliveries instead of pushing them to sockets."""

    def __init__(self) -> None:
        self.deliveries: List[Delivery] = []
        self._lock = threading.Lock()

    async def broadcast(self, channel: str, event: SongEvent) -> None:
        logger.info("event_broadcast", channel=channel, event_type=event.event_type.value)
        with self._lock:
            self.deliveries.append(Delivery(BROADCAST, channel, event))

    async def notify(self, identity: str, notification: PrivateNotification) -> None:
        logger.info(
            "private_notification_sent",
            identity=identity,
            notification_type=notification.type.value,
        )
        with self._lock:
            self.deliveries.append(Delivery(PRIVATE, identity, notification))

    def broadcasts_to(self, channel: str) -> List[SongEvent]:
        with self._lock:
            return [d.payload for d in self.deliveries if d.kind == BROADCAST and d.target == channel]

    def notifications_for(self, identity: str) -> List[PrivateNotification]:
        with self._lock:
            return [d.payload for d in self.deliveries if d.kind == PRIVATE and d.target == identity]


class ListenerRegistry:
    """Concurrency-safe map of song channel -> listening nicknames."""

    def __init__(self) -> None:
        self._listeners: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()

    def add(self, song_id: str, nickname: str) -> None:
        with self._lock:
            self._listeners.setdefault(song_id, set()).add(nickname)

    def remove(self, song_id: str, nickname: str) -> None:
        with self._lock:
            listeners = self._listeners.get(song_id)
            if listeners is None:
                return
            listeners.discard(nickname)
            if not listeners:
                del self._listeners[song_id]

    def listeners(self, song_id: str) -> Set[str]:
        with self._lock:
            return set(self._listeners.get(song_id, ()))


@dataclass
class ReactionOutcome:
    """What happened to a reaction event."""

    delivery: str
    result: Optional[ChargeResult] = None
    notification: Optional[PrivateNotification] = None


class ReactionRelay:
    """Routes song events, charging reactions before relaying them."""

    def __init__(
        self,
        orchestrator: RetryOrchestrator,
        broadcaster: Broadcaster,
        registry: Optional[ListenerRegistry] = None,
    ):
        self.orchestrator = orchestrator
        self.broadcaster = broadcaster
        self.registry = registry or ListenerRegistry()

    async def on_play(self, event: SongEvent) -> None:
        """Register a listener on a song and tell the channel."""
        self.registry.add(event.song_id, event.nickname)
        logger.info(
            "listener_joined",
            song_id=event.song_id,
            nickname=event.nickname,
            listeners=len(self.registry.listeners(event.song_id)),
        )
        await self.broadcaster.broadcast(event.channel, event)

    async def on_stop(self, event: SongEvent) -> None:
        """Unregister a listener from a song and tell the channel."""
        self.registry.remove(event.song_id, event.nickname)
        logger.info("listener_left", song_id=event.song_id, nickname=event.nickname)
        await self.broadcaster.broadcast(event.channel, event)

    @staticmethod
    def _notification_for(result: ChargeResult) -> PrivateNotification:
        if result.status is ChargeStatus.LIMIT_EXCEEDED:
            return PrivateNotification(
                type=NotificationType.LIMIT_REACHED,
                title="Insufficient balance",
                message=result.message,
                status=result.status.value,
            )
        return PrivateNotification(
            type=NotificationType.PAYMENT_ERROR,
            title="Reaction failed",
            message=result.message,
            status=result.status.value,
        )

    async def on_reaction(self, event: SongEvent) -> ReactionOutcome:
        """
        Charge a reaction, then broadcast it or notify its sender.

        Args:
            event: Reaction event from a listener

        Returns:
            ReactionOutcome: Delivery kind plus the charge result
        """
        try:
            result = await self.orchestrator.charge(event.nickname, event.song_id)
        except Exception as e:
            logger.error(
                "reaction_charge_failed",
                nickname=event.nickname,
                song_id=event.song_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            notification = PrivateNotification(
                type=NotificationType.PAYMENT_ERROR,
                title="Server error",
                message=UNAVAILABLE_MESSAGE,
            )
            await self.broadcaster.notify(event.nickname, notification)
            return ReactionOutcome(delivery=PRIVATE, notification=notification)

        if result.accepted:
            await self.broadcaster.broadcast(event.channel, event)
            return ReactionOutcome(delivery=BROADCAST, result=result)

        notification = self._notification_for(result)
        await self.broadcaster.notify(event.nickname, notification)
        return ReactionOutcome(delivery=PRIVATE, result=result, notification=notification)
