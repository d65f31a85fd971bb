"""
Failure injection strategies for resilience testing.

Two interchangeable policies sit behind one interface:
- Content-based: deterministic on the request's subject id (repeatable tests)
- Rate-based: every Nth authorization attempt fails, optionally after a delay
  (exercises caller backoff under latency)
"""
import asyncio
import itertools
import threading
from abc import ABC, abstractmethod

import structlog

from .models import ChargeRequest

logger = structlog.get_logger(__name__)

BEFORE_CHECKS = "before_checks"
AFTER_CHECKS = "after_checks"


class FailureInjector(ABC):
    """Decides whether an authorization attempt is forced to fail."""

    policy = "abstract"

    def __init__(self, phase: str = AFTER_CHECKS):
        if phase not in (BEFORE_CHECKS, AFTER_CHECKS):
            raise ValueError(f"Unknown injection phase: {phase}")
        self.phase = phase

    @abstractmethod
    async def should_fail(self, request: ChargeRequest) -> bool:
        """Return True if this attempt must end in a simulated failure."""


class NoFailureInjector(FailureInjector):
    """Never injects failures."""

    policy = "none"

    async def should_fail(self, request: ChargeRequest) -> bool:
        return False


class ContentFailureInjector(FailureInjector):
    """
    Fails every request whose subject id ends with a marker.

    Example:
        >>> injector = ContentFailureInjector(marker="X")
        >>> # subject "song-7X" always fails, "song-7" never does
    """

    policy = "content"

    def __init__(self, marker: str = "X", phase: str = AFTER_CHECKS):
        super().__init__(phase)
        if not marker:
            raise ValueError("Failure marker must not be empty")
        self.marker = marker

    async def should_fail(self, request: ChargeRequest) -> bool:
        return request.subject_id.endswith(self.marker)


class RateFailureInjector(FailureInjector):
    """
    Fails every Nth authorization attempt seen by this instance.

    The attempt counter is shared by every caller of the owning authorizer
    and only resets when the instance is recreated (process restart).
    """

    policy = "rate"

    def __init__(self, modulo: int = 4, delay: float = 0.0, phase: str = AFTER_CHECKS):
        super().__init__(phase)
        if modulo <= 0:
            raise ValueError("Failure modulo must be positive")
        if delay < 0:
            raise ValueError("Failure delay must not be negative")
        self.modulo = modulo
        self.delay = delay
        self._counter = itertools.count(1)
        self._lock = threading.Lock()
        self._attempts = 0

    def next_attempt(self) -> int:
        """Advance the global attempt counter and return the new value."""
        with self._lock:
            self._attempts = next(self._counter)
            return self._attempts

    @property
    def attempts(self) -> int:
        return self._attempts

    async def should_fail(self, request: ChargeRequest) -> bool:
        attempt = self.next_attempt()
        if attempt % self.modulo != 0:
            return False

        logger.info(
            "rate_failure_injected",
            attempt=attempt,
            modulo=self.modulo,
            delay_seconds=self.delay,
        )
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        return True


def build_failure_injector(
    policy: str,
    marker: str = "X",
    modulo: int = 4,
    delay: float = 0.0,
    phase: str = AFTER_CHECKS,
) -> FailureInjector:
    """
    Create a failure injector from configuration values.

    Args:
        policy: content, rate or none
        marker: Subject-id suffix for the content policy
        modulo: Failure period for the rate policy
        delay: Delay before a rate-based failure (seconds)
        phase: before_checks or after_checks

    Returns:
        FailureInjector: Configured strategy
    """
    policy = policy.lower()
    if policy == "content":
        return ContentFailureInjector(marker=marker, phase=phase)
    if policy == "rate":
        return RateFailureInjector(modulo=modulo, delay=delay, phase=phase)
    if policy == "none":
        return NoFailureInjector(phase=phase)
    raise ValueError(f"Unknown failure policy: {policy}")
