"""
API routes for the payment authority.
"""
import time
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from reaction_payments.core.authorizer import PaymentAuthorizer
from reaction_payments.monitoring.health import HealthCheck

from .schemas import (
    HealthCheckResponse,
    IdentityTotalResponse,
    IssueTokenResponse,
    SubmitChargeRequest,
    SubmitChargeResponse,
)

logger = structlog.get_logger(__name__)

# Create routers
payment_router = APIRouter(prefix="/api/payments", tags=["payments"])
monitoring_router = APIRouter(tags=["monitoring"])


def get_authorizer(request: Request) -> PaymentAuthorizer:
    """Authorizer owned by the running application."""
    return request.app.state.authorizer


def get_health_check(request: Request) -> HealthCheck:
    """Health check service owned by the running application."""
    return request.app.state.health_check


@payment_router.post(
    "/token",
    response_model=IssueTokenResponse,
    summary="Issue a token",
    description="Generate a fresh single-use payment token",
)
async def issue_token(
    authorizer: PaymentAuthorizer = Depends(get_authorizer),
) -> Dict[str, Any]:
    """Issue a new token. Takes no input and has no business failure mode."""
    return {"token": authorizer.issue_token()}


@payment_router.post(
    "",
    response_model=SubmitChargeResponse,
    summary="Submit a charge",
    description="Redeem a token for a charge against an identity's spending cap",
)
async def submit_charge(
    request: SubmitChargeRequest,
    authorizer: PaymentAuthorizer = Depends(get_authorizer),
) -> Dict[str, Any]:
    """
    Redeem a token.

    Every verdict, including rejections and simulated failures, is a 200.
    """
    start_time = time.time()

    logger.info(
        "api_submit_charge_request",
        identity=request.identity,
        subject_id=request.subject_id,
        amount=request.amount,
    )

    result = await authorizer.authorize(request)

    logger.info(
        "api_submit_charge_result",
        identity=request.identity,
        status=result.status.value,
        cumulative_total=result.cumulative_total,
        duration_seconds=time.time() - start_time,
    )

    return result.model_dump()


@payment_router.get(
    "/totals/{identity}",
    response_model=IdentityTotalResponse,
    summary="Get identity total",
    description="Cumulative accepted amount for an identity",
)
async def get_identity_total(
    identity: str,
    authorizer: PaymentAuthorizer = Depends(get_authorizer),
) -> Dict[str, Any]:
    """Get an identity's cumulative total (0 when unknown)."""
    total = authorizer.ledger.total_for(identity)
    return {
        "identity": identity,
        "cumulative_total": total,
        "cap": authorizer.cap,
        "remaining": max(authorizer.cap - total, 0),
    }


@monitoring_router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health check",
    description="Check overall system health",
)
async def health(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    """Health check endpoint for monitoring."""
    try:
        return await health_check.check_all()
    except Exception as e:
        logger.error("health_check_error", error=str(e))
        return {
            "status": "unhealthy",
            "checks": {"error": str(e)},
        }


@monitoring_router.get(
    "/health/live",
    response_model=HealthCheckResponse,
    summary="Liveness probe",
    description="Kubernetes liveness probe endpoint",
)
async def liveness(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    """Liveness probe endpoint."""
    return await health_check.liveness()


@monitoring_router.get(
    "/health/ready",
    response_model=HealthCheckResponse,
    summary="Readiness probe",
    description="Kubernetes readiness probe endpoint",
)
async def readiness(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    """Readiness probe endpoint."""
    result = await health_check.readiness()
    if result["status"] != "healthy":
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result)
    return result


@monitoring_router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics",
    include_in_schema=False,
)
async def prometheus_metrics() -> Response:
    """Expose Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
