"""
Server-side charge authorization.

Evaluation order (first match wins):
1. Failure injection, when the injector runs before the ledger checks
2. Token already used -> TOKEN_REUSED
3. Cap would be exceeded -> LIMIT_EXCEEDED
   (injection runs here when configured after the ledger checks)
4. Atomic commit -> ACCEPTED

The authorizer never retries; retry is exclusively the caller's concern.
"""
from typing import Optional

import structlog

from reaction_payments.config import Settings, get_settings
from reaction_payments.monitoring.metrics import metrics

from .failure_injection import (
    BEFORE_CHECKS,
    FailureInjector,
    NoFailureInjector,
    build_failure_injector,
)
from .ledger import PaymentLedger
from .models import ChargeRequest, ChargeResult, ChargeStatus
from .tokens import TokenIssuer

logger = structlog.get_logger(__name__)

SIMULATED_FAILURE_MESSAGE = "Simulated failure in the payment authority"
TOKEN_REUSED_MESSAGE = "Token was already used"


class PaymentAuthorizer:
    """
    Payment authority: issues tokens and decides redemptions.

    Owns the ledger, the token issuer and the failure injector (and with it
    the process-wide attempt counter of the rate-based policy).
    """

    def __init__(
        self,
        ledger: Optional[PaymentLedger] = None,
        issuer: Optional[TokenIssuer] = None,
        injector: Optional[FailureInjector] = None,
        cap: int = 50,
    ):
        """
        Initialize payment authorizer.

        Args:
            ledger: Ledger to read and mutate
            issuer: Token issuer
            injector: Failure injection strategy (none by default)
            cap: Maximum cumulative amount per identity
        """
        if cap <= 0:
            raise ValueError("Spending cap must be positive")
        self.ledger = ledger or PaymentLedger()
        self.issuer = issuer or TokenIssuer()
        self.injector = injector or NoFailureInjector()
        self.cap = cap

        logger.info(
            "payment_authorizer_initialized",
            cap=cap,
            failure_policy=self.injector.policy,
            failure_phase=self.injector.phase,
        )

    def issue_token(self) -> str:
        """Issue a fresh single-use token."""
        token = self.issuer.issue()
        metrics.record_token_issued()
        return token

    async def _inject(self, request: ChargeRequest) -> Optional[ChargeResult]:
        if not await self.injector.should_fail(request):
            return None

        metrics.record_injected_failure(self.injector.policy)
        logger.warning(
            "simulated_failure",
            identity=request.identity,
            subject_id=request.subject_id,
            policy=self.injector.policy,
        )
        return ChargeResult(
            status=ChargeStatus.SIMULATED_FAILURE,
            message=SIMULATED_FAILURE_MESSAGE,
            cumulative_total=self.ledger.total_for(request.identity),
        )

    def _limit_message(self) -> str:
        return f"Identity reached the spending cap of {self.cap}"

    def _rejection(self, request: ChargeRequest, status: ChargeStatus, total: int) -> ChargeResult:
        message = TOKEN_REUSED_MESSAGE if status is ChargeStatus.TOKEN_REUSED else self._limit_message()
        logger.info(
            "payment_rejected",
            identity=request.identity,
            subject_id=request.subject_id,
            status=status.value,
            cumulative_total=total,
        )
        return ChargeResult(status=status, message=message, cumulative_total=total)

    async def authorize(self, request: ChargeRequest) -> ChargeResult:
        """
        Decide a redemption request.

        Args:
            request: Token plus charge details

        Returns:
            ChargeResult: Terminal or retryable verdict
        """
        if request.amount <= 0:
            raise ValueError("Charge amount must be positive")

        result = await self._authorize(request)
        metrics.record_authorization(result.status.value)
        return result

    async def _authorize(self, request: ChargeRequest) -> ChargeResult:
        identity = request.identity

        if self.injector.phase == BEFORE_CHECKS:
            injected = await self._inject(request)
            if injected is not None:
                return injected
        else:
            # Read-only pre-checks so injection never masks a terminal verdict
            current = self.ledger.total_for(identity)
            if self.ledger.is_used(request.token):
                return self._rejection(request, ChargeStatus.TOKEN_REUSED, current)
            if current + request.amount > self.cap:
                return self._rejection(request, ChargeStatus.LIMIT_EXCEEDED, current)

            injected = await self._inject(request)
            if injected is not None:
                return injected

        status, total = self.ledger.redeem(request.token, identity, request.amount, self.cap)
        if status is not ChargeStatus.ACCEPTED:
            return self._rejection(request, status, total)

        message = (
            f"Payment accepted. Identity={identity}, Subject={request.subject_id}, "
            f"Amount={request.amount}, Total={total}"
        )
        logger.info(
            "payment_accepted",
            identity=identity,
            subject_id=request.subject_id,
            amount=request.amount,
            cumulative_total=total,
        )
        return ChargeResult(status=ChargeStatus.ACCEPTED, message=message, cumulative_total=total)


def build_authorizer(
    settings: Optional[Settings] = None,
    ledger: Optional[PaymentLedger] = None,
) -> PaymentAuthorizer:
    """Create an authorizer wired from settings."""
    settings = settings or get_settings()
    injector = build_failure_injector(
        settings.failure_policy,
        marker=settings.failure_marker,
        modulo=settings.failure_rate_modulo,
        delay=settings.failure_delay,
        phase=settings.failure_phase,
    )
    return PaymentAuthorizer(ledger=ledger, injector=injector, cap=settings.spending_cap)
