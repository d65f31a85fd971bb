"""
Caller-side view of the payment authority.

The orchestrator only needs the two authority RPCs. They are reachable over
HTTP (see http_client) or in-process through LocalPaymentGateway.
"""
from typing import Protocol

from reaction_payments.core.authorizer import PaymentAuthorizer
from reaction_payments.core.models import ChargeRequest, ChargeResult


class PaymentGateway(Protocol):
    """The two RPCs exposed by the payment authority."""

    async def request_token(self) -> str:
        """Fetch a fresh single-use token."""
        ...

    async def submit_charge(self, request: ChargeRequest) -> ChargeResult:
        """Redeem a token for a charge."""
        ...


class LocalPaymentGateway:
    """Gateway calling an in-process authorizer directly."""

    def __init__(self, authorizer: PaymentAuthorizer):
        self.authorizer = authorizer

    async def request_token(self) -> str:
        return self.authorizer.issue_token()

    async def submit_charge(self, request: ChargeRequest) -> ChargeResult:
        return await self.authorizer.authorize(request)
