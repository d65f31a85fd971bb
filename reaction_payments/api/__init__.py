"""FastAPI applications and routes."""
from .schemas import (
    IdentityTotalResponse,
    IssueTokenResponse,
    ReactionResponse,
    SubmitChargeRequest,
    SubmitChargeResponse,
)

__all__ = [
    "IdentityTotalResponse",
    "IssueTokenResponse",
    "ReactionResponse",
    "SubmitChargeRequest",
    "SubmitChargeResponse",
]
