"""Caller-side access to the payment authority."""
from .gateway import LocalPaymentGateway, PaymentGateway
from .http_client import PaymentAuthorityClient
from .orchestrator import RetryOrchestrator, build_orchestrator

__all__ = [
    "LocalPaymentGateway",
    "PaymentAuthorityClient",
    "PaymentGateway",
    "RetryOrchestrator",
    "build_orchestrator",
]
