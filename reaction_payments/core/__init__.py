"""Core payment authorization logic."""
from .authorizer import PaymentAuthorizer, build_authorizer
from .exceptions import (
    CommunicationError,
    ErrorClass,
    PaymentError,
    RetriesExhausted,
    SimulatedFailure,
    TerminalRejection,
    TransientFailure,
    classify,
)
from .failure_injection import (
    ContentFailureInjector,
    FailureInjector,
    NoFailureInjector,
    RateFailureInjector,
    build_failure_injector,
)
from .ledger import PaymentLedger
from .models import ChargeRequest, ChargeResult, ChargeStatus, TokenResponse
from .tokens import TokenIssuer

__all__ = [
    "ChargeRequest",
    "ChargeResult",
    "ChargeStatus",
    "CommunicationError",
    "ContentFailureInjector",
    "ErrorClass",
    "FailureInjector",
    "NoFailureInjector",
    "PaymentAuthorizer",
    "PaymentError",
    "PaymentLedger",
    "RateFailureInjector",
    "RetriesExhausted",
    "SimulatedFailure",
    "TerminalRejection",
    "TokenIssuer",
    "TokenResponse",
    "TransientFailure",
    "build_authorizer",
    "build_failure_injector",
    "classify",
]
