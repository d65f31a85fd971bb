"""
Caller-side charge orchestration with retries.

Each logical charge runs its own loop:
1. Request a fresh token
2. Submit the redemption with that token
3. Classify the verdict:
   - ACCEPTED: done
   - TOKEN_REUSED / LIMIT_EXCEEDED: done, never retried
   - SIMULATED_FAILURE / communication error: wait, then go back to 1
4. Once the attempt budget is spent, synthesize a failure result

The loop always ends in a ChargeResult. Transient failures are retried, and
any other fault ends the charge with a failure result instead of an exception.
"""
import time
import uuid
from typing import Any, Awaitable, Callable, Optional

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
    wait_fixed,
)
from tenacity.stop import stop_base
from tenacity.wait import wait_base

from reaction_payments.config import Settings, get_settings
from reaction_payments.core.exceptions import (
    CommunicationError,
    ErrorClass,
    RetriesExhausted,
    SimulatedFailure,
    TerminalRejection,
    TransientFailure,
    classify,
)
from reaction_payments.core.models import ChargeRequest, ChargeResult, ChargeStatus
from reaction_payments.monitoring.metrics import metrics

from .gateway import PaymentGateway

logger = structlog.get_logger(__name__)

UNEXPECTED_FAILURE_MESSAGE = "Payment could not be completed due to an unexpected error."


class RetryOrchestrator:
    """
    Drives the token-fetch -> redeem loop for one charge at a time.

    Backoff waits are awaited, so concurrent charges never block each other.
    """

    def __init__(
        self,
        gateway: PaymentGateway,
        unit_charge: int = 10,
        max_attempts: int = 4,
        backoff_strategy: str = "exponential",
        initial_delay: float = 1.5,
        multiplier: float = 1.5,
        max_delay: float = 30.0,
        overall_timeout: Optional[float] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        """
        Initialize retry orchestrator.

        Args:
            gateway: Payment authority RPCs
            unit_charge: Amount charged when the caller gives none
            max_attempts: Attempts per charge, including the first one
            backoff_strategy: fixed or exponential
            initial_delay: Delay before the first retry (seconds)
            multiplier: Growth factor for exponential backoff
            max_delay: Upper bound for a single delay (seconds)
            overall_timeout: Optional wall-clock ceiling across attempts (seconds)
            sleep: Optional async sleep function (tests record delays with it)
        """
        if max_attempts <= 0:
            raise ValueError("At least one attempt is required")
        if unit_charge <= 0:
            raise ValueError("Unit charge must be positive")
        if backoff_strategy not in ("fixed", "exponential"):
            raise ValueError(f"Unknown backoff strategy: {backoff_strategy}")

        self.gateway = gateway
        self.unit_charge = unit_charge
        self.max_attempts = max_attempts
        self.backoff_strategy = backoff_strategy
        self.initial_delay = initial_delay
        self.multiplier = multiplier
        self.max_delay = max_delay
        self.overall_timeout = overall_timeout
        self._sleep = sleep

    def _wait(self) -> wait_base:
        if self.backoff_strategy == "fixed":
            return wait_fixed(self.initial_delay)
        # initial_delay * multiplier ** (attempt - 1)
        return wait_exponential(
            multiplier=self.initial_delay,
            exp_base=self.multiplier,
            max=self.max_delay,
        )

    def _stop(self) -> stop_base:
        stop: stop_base = stop_after_attempt(self.max_attempts)
        if self.overall_timeout is not None:
            stop = stop | stop_after_delay(self.overall_timeout)
        return stop

    def _retrying(self, on_exhausted: Callable[[RetryCallState], ChargeResult]) -> AsyncRetrying:
        kwargs: dict[str, Any] = {}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        return AsyncRetrying(
            retry=retry_if_exception_type(TransientFailure),
            stop=self._stop(),
            wait=self._wait(),
            before=self._log_attempt,
            before_sleep=self._log_retry,
            retry_error_callback=on_exhausted,
            **kwargs,
        )

    @staticmethod
    def _log_attempt(retry_state: RetryCallState) -> None:
        logger.info("charge_attempt_started", attempt=retry_state.attempt_number)

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "charge_attempt_failed",
            attempt=retry_state.attempt_number,
            error=str(error),
            error_type=type(error).__name__,
            next_delay_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
        )

    async def _attempt(self, identity: str, subject_id: str, amount: int) -> ChargeResult:
        """
        Run one token-fetch -> redeem round trip.

        Raises:
            SimulatedFailure: If the authority injected a failure
            CommunicationError: If the authority could not be reached
            TerminalRejection: If the authority refused the charge for good
        """
        try:
            token = await self.gateway.request_token()
            if not token:
                raise CommunicationError("Payment authority returned an empty token")

            request = ChargeRequest(
                token=token, identity=identity, subject_id=subject_id, amount=amount
            )
            result = await self.gateway.submit_charge(request)
        except CommunicationError:
            metrics.record_charge_attempt(ErrorClass.TRANSIENT.value)
            raise

        error_class = classify(result)
        metrics.record_charge_attempt(error_class.value)
        if error_class is ErrorClass.TRANSIENT:
            raise SimulatedFailure(result)
        if error_class is ErrorClass.TERMINAL:
            raise TerminalRejection(result)
        return result

    def _exhausted_result(self, retry_state: RetryCallState) -> ChargeResult:
        last_error = retry_state.outcome.exception() if retry_state.outcome else None
        exhausted = RetriesExhausted(retry_state.attempt_number, last_error)
        logger.error(
            "charge_retries_exhausted",
            attempts=exhausted.attempts,
            last_error=str(last_error),
        )
        return ChargeResult(
            status=ChargeStatus.SIMULATED_FAILURE,
            message=str(exhausted),
            cumulative_total=0,
        )

    async def charge(
        self, identity: str, subject_id: str, amount: Optional[int] = None
    ) -> ChargeResult:
        """
        Charge an identity, retrying transient failures.

        Args:
            identity: Identity to charge
            subject_id: Charged subject (e.g. a song)
            amount: Charge amount (unit charge if omitted)

        Returns:
            ChargeResult: Accepted, terminal rejection, exhausted or unexpected failure.
                Never raises.
        """
        amount = self.unit_charge if amount is None else amount
        exhausted = False

        def on_exhausted(retry_state: RetryCallState) -> ChargeResult:
            nonlocal exhausted
            exhausted = True
            return self._exhausted_result(retry_state)

        start_time = time.time()
        with structlog.contextvars.bound_contextvars(
            charge_id=str(uuid.uuid4()), identity=identity, subject_id=subject_id
        ):
            logger.info("charge_started", amount=amount, max_attempts=self.max_attempts)

            try:
                if amount <= 0:
                    raise ValueError("Charge amount must be positive")
                result = await self._retrying(on_exhausted)(
                    self._attempt, identity, subject_id, amount
                )
            except TerminalRejection as e:
                result = e.result
            except Exception as e:
                # Non-transient faults end the charge on the spot
                logger.error(
                    "charge_failed_unexpectedly",
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
                result = ChargeResult(
                    status=ChargeStatus.SIMULATED_FAILURE,
                    message=UNEXPECTED_FAILURE_MESSAGE,
                    cumulative_total=0,
                )

            duration = time.time() - start_time
            metrics.record_charge_result(result.status.value, exhausted, duration)
            logger.info(
                "charge_finished",
                status=result.status.value,
                cumulative_total=result.cumulative_total,
                exhausted=exhausted,
                duration_seconds=duration,
            )
        return result


def build_orchestrator(
    gateway: PaymentGateway, settings: Optional[Settings] = None
) -> RetryOrchestrator:
    """Create an orchestrator wired from settings."""
    settings = settings or get_settings()
    return RetryOrchestrator(
        gateway,
        unit_charge=settings.unit_charge,
        max_attempts=settings.max_attempts,
        backoff_strategy=settings.backoff_strategy,
        initial_delay=settings.backoff_initial_delay,
        multiplier=settings.backoff_multiplier,
        max_delay=settings.backoff_max_delay,
        overall_timeout=settings.overall_timeout,
    )
