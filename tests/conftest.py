"""
Pytest configuration and fixtures.
"""
from typing import Any, AsyncGenerator, List

import httpx
import pytest
import pytest_asyncio

from reaction_payments.api.main import create_app
from reaction_payments.client.gateway import LocalPaymentGateway
from reaction_payments.client.orchestrator import RetryOrchestrator
from reaction_payments.config import Settings
from reaction_payments.core.authorizer import PaymentAuthorizer
from reaction_payments.core.failure_injection import NoFailureInjector
from reaction_payments.core.ledger import PaymentLedger


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        spending_cap=50,
        unit_charge=10,
        max_attempts=4,
        backoff_initial_delay=0.0,
        failure_policy="none",
        app_name="reaction-payments-test",
        app_env="test",
        log_level="DEBUG",
        log_format="console",
    )


@pytest.fixture
def ledger() -> PaymentLedger:
    """Fresh in-memory ledger."""
    return PaymentLedger()


@pytest.fixture
def authorizer(ledger: PaymentLedger) -> PaymentAuthorizer:
    """Authorizer with the reference cap and no failure injection."""
    return PaymentAuthorizer(ledger=ledger, injector=NoFailureInjector(), cap=50)


@pytest.fixture
def gateway(authorizer: PaymentAuthorizer) -> LocalPaymentGateway:
    """In-process gateway to the authorizer."""
    return LocalPaymentGateway(authorizer)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    """Sleep that returns immediately and records delays."""
    return RecordingSleep()


@pytest.fixture
def orchestrator(
    gateway: LocalPaymentGateway, recording_sleep: RecordingSleep
) -> RetryOrchestrator:
    """Orchestrator with the reference budget and no real waiting."""
    return RetryOrchestrator(gateway, unit_charge=10, max_attempts=4, sleep=recording_sleep)


@pytest_asyncio.fixture
async def client(
    test_settings: Settings, authorizer: PaymentAuthorizer
) -> AsyncGenerator[httpx.AsyncClient, Any]:
    """HTTP client bound to an in-process payment authority app."""
    app = create_app(settings=test_settings, authorizer=authorizer)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://authority") as ac:
        yield ac


@pytest.fixture
def sample_charge() -> dict[str, Any]:
    """Sample charge request data (token filled in by the test)."""
    return {
        "identity": "ana",
        "subject_id": "song-42",
        "amount": 10,
    }
