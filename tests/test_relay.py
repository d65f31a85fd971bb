"""
Unit tests for the reaction relay.
"""
from typing import Any
from unittest.mock import AsyncMock

import pytest

from reaction_payments.client.orchestrator import UNEXPECTED_FAILURE_MESSAGE, RetryOrchestrator
from reaction_payments.core.models import ChargeResult, ChargeStatus
from reaction_payments.reactions.models import NotificationType, SongEvent, SongEventType
from reaction_payments.reactions.relay import (
    BROADCAST,
    PRIVATE,
    UNAVAILABLE_MESSAGE,
    InMemoryBroadcaster,
    ListenerRegistry,
    ReactionRelay,
)


def reaction(nickname: str = "ana", song_id: str = "song-1") -> SongEvent:
    return SongEvent(
        nickname=nickname, song_id=song_id, event_type=SongEventType.REACTION, content="heart"
    )


@pytest.fixture
def broadcaster() -> InMemoryBroadcaster:
    return InMemoryBroadcaster()


@pytest.fixture
def relay(orchestrator: RetryOrchestrator, broadcaster: InMemoryBroadcaster) -> ReactionRelay:
    return ReactionRelay(orchestrator, broadcaster)


class TestListenerRegistry:
    """Test suite for ListenerRegistry."""

    @pytest.mark.unit
    def test_add_and_remove(self) -> None:
        registry = ListenerRegistry()
        registry.add("song-1", "ana")
        registry.add("song-1", "luis")
        registry.remove("song-1", "ana")

        assert registry.listeners("song-1") == {"luis"}

    @pytest.mark.unit
    def test_empty_song_is_dropped(self) -> None:
        registry = ListenerRegistry()
        registry.add("song-1", "ana")
        registry.remove("song-1", "ana")

        assert registry.listeners("song-1") == set()
        assert "song-1" not in registry._listeners

    @pytest.mark.unit
    def test_remove_unknown_is_noop(self) -> None:
        registry = ListenerRegistry()
        registry.remove("song-1", "ana")

        assert registry.listeners("song-1") == set()


class TestReactionRelay:
    """Test suite for ReactionRelay."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_play_and_stop_are_broadcast(
        self, relay: ReactionRelay, broadcaster: InMemoryBroadcaster
    ) -> None:
        play = SongEvent(nickname="ana", song_id="song-1", event_type=SongEventType.PLAY)
        pause = SongEvent(nickname="ana", song_id="song-1", event_type=SongEventType.PAUSE)

        await relay.on_play(play)
        assert relay.registry.listeners("song-1") == {"ana"}

        await relay.on_stop(pause)
        assert relay.registry.listeners("song-1") == set()
        assert broadcaster.broadcasts_to("/songs/song-1") == [play, pause]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_accepted_reaction_is_broadcast(
        self, relay: ReactionRelay, broadcaster: InMemoryBroadcaster
    ) -> None:
        event = reaction()

        outcome = await relay.on_reaction(event)

        assert outcome.delivery == BROADCAST
        assert outcome.result is not None and outcome.result.accepted
        assert broadcaster.broadcasts_to("/songs/song-1") == [event]
        assert broadcaster.notifications_for("ana") == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_limit_reached_is_private(
        self, relay: ReactionRelay, broadcaster: InMemoryBroadcaster
    ) -> None:
        for _ in range(5):
            await relay.on_reaction(reaction())

        outcome = await relay.on_reaction(reaction())

        assert outcome.delivery == PRIVATE
        assert outcome.notification is not None
        assert outcome.notification.type == NotificationType.LIMIT_REACHED
        assert outcome.notification.status == "LIMIT_EXCEEDED"
        assert len(broadcaster.broadcasts_to("/songs/song-1")) == 5
        assert broadcaster.notifications_for("ana") == [outcome.notification]
        assert broadcaster.notifications_for("luis") == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_exhausted_charge_is_private_error(
        self, broadcaster: InMemoryBroadcaster
    ) -> None:
        orchestrator = AsyncMock()
        orchestrator.charge.return_value = ChargeResult(
            status=ChargeStatus.SIMULATED_FAILURE,
            message="Payment could not be completed after 4 attempts.",
            cumulative_total=0,
        )
        relay = ReactionRelay(orchestrator, broadcaster)

        outcome = await relay.on_reaction(reaction())

        assert outcome.delivery == PRIVATE
        assert outcome.notification.type == NotificationType.PAYMENT_ERROR
        assert outcome.notification.message == "Payment could not be completed after 4 attempts."
        assert broadcaster.broadcasts_to("/songs/song-1") == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unexpected_error_is_private_error(
        self, broadcaster: InMemoryBroadcaster
    ) -> None:
        orchestrator = AsyncMock()
        orchestrator.charge.side_effect = RuntimeError("boom")
        relay = ReactionRelay(orchestrator, broadcaster)

        outcome = await relay.on_reaction(reaction())

        assert outcome.delivery == PRIVATE
        assert outcome.result is None
        assert outcome.notification.type == NotificationType.PAYMENT_ERROR
        assert outcome.notification.message == UNAVAILABLE_MESSAGE
        assert "boom" not in outcome.notification.message

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_gateway_fault_reaches_sender_as_failure_result(
        self, broadcaster: InMemoryBroadcaster, recording_sleep: Any
    ) -> None:
        gateway = AsyncMock()
        gateway.request_token.side_effect = RuntimeError("boom")
        relay = ReactionRelay(RetryOrchestrator(gateway, sleep=recording_sleep), broadcaster)

        outcome = await relay.on_reaction(reaction())

        assert outcome.delivery == PRIVATE
        assert outcome.result.status == ChargeStatus.SIMULATED_FAILURE
        assert outcome.notification.type == NotificationType.PAYMENT_ERROR
        assert outcome.notification.message == UNEXPECTED_FAILURE_MESSAGE
        assert broadcaster.broadcasts_to("/songs/song-1") == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_charge_uses_nickname_and_song(
        self, broadcaster: InMemoryBroadcaster
    ) -> None:
        orchestrator: Any = AsyncMock()
        orchestrator.charge.return_value = ChargeResult(
            status=ChargeStatus.ACCEPTED, message="ok", cumulative_total=10
        )

        await ReactionRelay(orchestrator, broadcaster).on_reaction(reaction("luis", "song-9"))

        orchestrator.charge.assert_awaited_once_with("luis", "song-9")
