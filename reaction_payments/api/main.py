"""
Payment authority FastAPI application.

Serves token issuance and charge redemption with:
- Request ID tracking
- Structured logging
- Error handling
- Prometheus metrics
"""
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse

from reaction_payments import __version__
from reaction_payments.config import Settings, get_settings
from reaction_payments.core.authorizer import PaymentAuthorizer, build_authorizer
from reaction_payments.monitoring.health import HealthCheck
from reaction_payments.monitoring.logging import setup_logging

from .routes import monitoring_router, payment_router

logger = structlog.get_logger(__name__)


async def add_request_id_middleware(request: Request, call_next: Any) -> Response:
    """
    Add request ID to all requests for tracing.

    Also adds timing information and structured logging context.
    """
    request_id = str(uuid.uuid4())
    start_time = time.time()

    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )

    logger.info(
        "request_started",
        client_host=request.client.host if request.client else None,
    )

    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        logger.info(
            "request_completed",
            status_code=response.status_code,
            duration_seconds=time.time() - start_time,
        )
        return response

    except Exception as e:
        logger.error(
            "request_failed",
            error=str(e),
            duration_seconds=time.time() - start_time,
        )
        raise

    finally:
        structlog.contextvars.clear_contextvars()


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.
    """
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later.",
        },
    )


def install_common_handlers(app: FastAPI) -> None:
    """Attach request tracing and the global exception handler."""
    app.middleware("http")(add_request_id_middleware)
    app.add_exception_handler(Exception, global_exception_handler)


def create_app(
    settings: Optional[Settings] = None,
    authorizer: Optional[PaymentAuthorizer] = None,
) -> FastAPI:
    """
    Build the payment authority application.

    Args:
        settings: Settings (cached environment settings if omitted)
        authorizer: Authorizer to serve (built from settings if omitted)

    Returns:
        FastAPI: Configured application
    """
    settings = settings or get_settings()
    setup_logging(settings)
    authorizer = authorizer or build_authorizer(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, Any]:
        logger.info(
            "application_startup",
            app_name=settings.app_name,
            env=settings.app_env,
            cap=authorizer.cap,
            failure_policy=authorizer.injector.policy,
        )
        yield
        snapshot = authorizer.ledger.snapshot()
        logger.info(
            "application_shutdown",
            identities=len(snapshot["totals"]),
            used_tokens=snapshot["used_tokens"],
        )

    app = FastAPI(
        title="Payment Authority",
        description=(
            "In-memory payment authority for reaction micro-charges. "
            "Features: single-use tokens, per-identity spending cap, "
            "and failure injection for resilience testing."
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings
    app.state.authorizer = authorizer
    app.state.health_check = HealthCheck(authorizer)

    install_common_handlers(app)
    app.include_router(payment_router)
    app.include_router(monitoring_router)

    @app.get("/", tags=["root"])
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "service": "payment-authority",
            "version": __version__,
            "status": "operational",
            "environment": settings.app_env,
            "docs": "/docs",
            "health": "/health",
            "metrics": "/metrics",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "reaction_payments.api.main:app",
        host=settings.api_host,
        port=settings.payments_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
