"""
Error taxonomy for the charge protocol.

Outcomes are classified for retry logic:
- TERMINAL: business-rule rejections, never retried
- TRANSIENT: simulated failures and transport errors, retried with backoff
"""
from enum import Enum
from typing import Optional

from .models import ChargeResult, ChargeStatus


class ErrorClass(Enum):
    """Classification of a redemption outcome for retry logic."""

    ACCEPTED = "accepted"
    TERMINAL = "terminal"  # Don't retry these
    TRANSIENT = "transient"  # Retry these


class PaymentError(Exception):
    """Base exception for charge protocol errors."""

    pass


class TerminalRejection(PaymentError):
    """Raised when the authority rejects a charge for a business reason."""

    def __init__(self, result: ChargeResult):
        super().__init__(result.message)
        self.result = result


class TransientFailure(PaymentError):
    """Base class for failures a later attempt may overturn."""

    pass


class SimulatedFailure(TransientFailure):
    """Raised when the authority answers with SIMULATED_FAILURE."""

    def __init__(self, result: ChargeResult):
        super().__init__(result.message)
        self.result = result


class CommunicationError(TransientFailure):
    """Raised when the authority cannot be reached or answers garbage."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        """
        Initialize communication error.

        Args:
            message: Error message
            original_error: Underlying transport exception
        """
        super().__init__(message)
        self.original_error = original_error


class RetriesExhausted(PaymentError):
    """Attempt budget spent while only transient failures occurred."""

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None):
        super().__init__(f"Payment could not be completed after {attempts} attempts.")
        self.attempts = attempts
        self.last_error = last_error


_STATUS_CLASSES = {
    ChargeStatus.ACCEPTED: ErrorClass.ACCEPTED,
    ChargeStatus.TOKEN_REUSED: ErrorClass.TERMINAL,
    ChargeStatus.LIMIT_EXCEEDED: ErrorClass.TERMINAL,
    ChargeStatus.SIMULATED_FAILURE: ErrorClass.TRANSIENT,
}


def classify(result: ChargeResult) -> ErrorClass:
    """
    Classify an authority verdict for retry logic.

    Args:
        result: Verdict returned by the authority

    Returns:
        ErrorClass: Retry classification
    """
    return _STATUS_CLASSES[result.status]
