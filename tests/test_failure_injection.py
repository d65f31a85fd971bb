"""
Unit tests for failure injection strategies.
"""
from unittest.mock import AsyncMock, patch

import pytest

from reaction_payments.core.failure_injection import (
    AFTER_CHECKS,
    BEFORE_CHECKS,
    ContentFailureInjector,
    NoFailureInjector,
    RateFailureInjector,
    build_failure_injector,
)
from reaction_payments.core.models import ChargeRequest


def make_request(subject_id: str = "song-1") -> ChargeRequest:
    return ChargeRequest(token="tok", identity="ana", subject_id=subject_id, amount=10)


class TestContentFailureInjector:
    """Test suite for the subject-id marker policy."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fails_on_marker_suffix(self) -> None:
        injector = ContentFailureInjector(marker="X")

        assert await injector.should_fail(make_request("song-7X")) is True
        assert await injector.should_fail(make_request("song-7")) is False
        assert await injector.should_fail(make_request("X-song")) is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_is_deterministic(self) -> None:
        """The same request always gets the same answer."""
        injector = ContentFailureInjector()
        answers = [await injector.should_fail(make_request("hitX")) for _ in range(5)]

        assert answers == [True] * 5

    @pytest.mark.unit
    def test_rejects_empty_marker(self) -> None:
        with pytest.raises(ValueError):
            ContentFailureInjector(marker="")


class TestRateFailureInjector:
    """Test suite for the every-Nth-attempt policy."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_every_nth_attempt_fails(self) -> None:
        injector = RateFailureInjector(modulo=4)
        answers = [await injector.should_fail(make_request()) for _ in range(8)]

        assert answers == [False, False, False, True, False, False, False, True]
        assert injector.attempts == 8

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_delay_is_awaited_before_failing(self) -> None:
        injector = RateFailureInjector(modulo=1, delay=0.25)

        with patch(
            "reaction_payments.core.failure_injection.asyncio.sleep", new_callable=AsyncMock
        ) as mock_sleep:
            assert await injector.should_fail(make_request()) is True

        mock_sleep.assert_awaited_once_with(0.25)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_delay_on_success(self) -> None:
        injector = RateFailureInjector(modulo=2, delay=1.0)

        with patch(
            "reaction_payments.core.failure_injection.asyncio.sleep", new_callable=AsyncMock
        ) as mock_sleep:
            assert await injector.should_fail(make_request()) is False

        mock_sleep.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.parametrize("modulo,delay", [(0, 0.0), (-1, 0.0), (4, -0.5)])
    def test_rejects_invalid_parameters(self, modulo: int, delay: float) -> None:
        with pytest.raises(ValueError):
            RateFailureInjector(modulo=modulo, delay=delay)


class TestBuildFailureInjector:
    """Test suite for the injector factory."""

    @pytest.mark.unit
    def test_builds_each_policy(self) -> None:
        assert isinstance(build_failure_injector("content"), ContentFailureInjector)
        assert isinstance(build_failure_injector("RATE", modulo=3), RateFailureInjector)
        assert isinstance(build_failure_injector("none"), NoFailureInjector)

    @pytest.mark.unit
    def test_passes_phase_through(self) -> None:
        injector = build_failure_injector("content", phase=BEFORE_CHECKS)

        assert injector.phase == BEFORE_CHECKS
        assert build_failure_injector("none").phase == AFTER_CHECKS

    @pytest.mark.unit
    def test_unknown_policy(self) -> None:
        with pytest.raises(ValueError, match="Unknown failure policy"):
            build_failure_injector("chaos")

    @pytest.mark.unit
    def test_unknown_phase(self) -> None:
        with pytest.raises(ValueError, match="Unknown injection phase"):
            build_failure_injector("none", phase="sometimes")
