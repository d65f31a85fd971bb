"""
Pydantic schemas for API request/response models.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from reaction_payments.core.models import ChargeRequest, ChargeResult, TokenResponse
from reaction_payments.reactions.models import PrivateNotification


class SubmitChargeRequest(ChargeRequest):
    """Request schema for redeeming a token."""

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {
                    "token": "q3Jt0nG9w1vZ5mM2yXc8Ag",
                    "identity": "ana",
                    "subject_id": "song-42",
                    "amount": 10,
                }
            ]
        },
    }


class SubmitChargeResponse(ChargeResult):
    """Response schema for a redemption verdict."""

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {
                    "status": "ACCEPTED",
                    "message": "Payment accepted. Identity=ana, Subject=song-42, Amount=10, Total=10",
                    "cumulative_total": 10,
                },
                {
                    "status": "LIMIT_EXCEEDED",
                    "message": "Identity reached the spending cap of 50",
                    "cumulative_total": 50,
                },
            ]
        },
    }


class IssueTokenResponse(TokenResponse):
    """Response schema for token issuance."""


class IdentityTotalResponse(BaseModel):
    """Response schema for an identity's cumulative total."""

    identity: str = Field(..., description="Identity")
    cumulative_total: int = Field(..., description="Accepted amount so far")
    cap: int = Field(..., description="Spending cap")
    remaining: int = Field(..., description="Amount still chargeable")


class HealthCheckResponse(BaseModel):
    """Response schema for health checks."""

    status: str = Field(..., description="Overall health status (healthy/unhealthy)")
    checks: Optional[Dict[str, Any]] = Field(default=None, description="Individual checks")
    message: Optional[str] = Field(default=None, description="Status message")


class ReactionResponse(BaseModel):
    """Response schema for a processed reaction."""

    delivery: str = Field(..., description="broadcast or private")
    result: Optional[ChargeResult] = Field(default=None, description="Final charge result")
    notification: Optional[PrivateNotification] = Field(
        default=None, description="Private notification sent to the listener"
    )


class ListenersResponse(BaseModel):
    """Response schema for the listeners of a song."""

    song_id: str = Field(..., description="Song channel identifier")
    listeners: List[str] = Field(..., description="Nicknames currently listening")
