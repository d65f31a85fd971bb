"""
Domain models shared by the payment authority and its callers.

These are the payloads of the two authority RPCs: token issuance and
charge redemption.
"""
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ChargeStatus(str, Enum):
    """Verdict of a single redemption attempt."""

    ACCEPTED = "ACCEPTED"
    TOKEN_REUSED = "TOKEN_REUSED"
    LIMIT_EXCEEDED = "LIMIT_EXCEEDED"
    SIMULATED_FAILURE = "SIMULATED_FAILURE"


class TokenResponse(BaseModel):
    """Freshly issued single-use token."""

    token: str = Field(..., min_length=1, description="Opaque single-use token")


class ChargeRequest(BaseModel):
    """Redemption of a token for one charge against an identity."""

    model_config = ConfigDict(frozen=True)

    token: str = Field(..., min_length=1, description="Token obtained from the authority")
    identity: str = Field(..., min_length=1, description="Identity the charge is billed to")
    subject_id: str = Field(..., description="Identifier of the charged subject (e.g. a song)")
    amount: int = Field(..., gt=0, description="Charge amount in whole units")


class ChargeResult(BaseModel):
    """Outcome of a redemption, or the final outcome of an orchestrated charge."""

    model_config = ConfigDict(frozen=True)

    status: ChargeStatus
    message: str
    cumulative_total: int = Field(
        ..., ge=0, description="Identity total after this attempt (unchanged on rejection)"
    )

    @property
    def accepted(self) -> bool:
        return self.status is ChargeStatus.ACCEPTED
