"""
Health checks for liveness/readiness probes.

Checks:
- Ledger responsiveness
- Policy configuration sanity
"""
import time
from typing import Any, Dict

import structlog

from reaction_payments.config import get_settings

logger = structlog.get_logger(__name__)


class HealthCheckError(Exception):
    """Raised when health check fails."""

    pass


class HealthCheck:
    """
    Health check service for the payment authority.

    Provides:
    - Ledger check
    - Configuration check
    - Overall system health status
    """

    def __init__(self, authorizer: Any) -> None:
        """
        Initialize health check service.

        Args:
            authorizer: Payment authorizer whose ledger is probed
        """
        self.settings = get_settings()
        self.authorizer = authorizer
        self.started_at = time.time()

    async def check_ledger(self) -> Dict[str, Any]:
        """
        Check that the ledger answers reads.

        Raises:
            HealthCheckError: If the ledger cannot be read
        """
        try:
            snapshot = self.authorizer.ledger.snapshot()
            return {
                "status": "healthy",
                "service": "ledger",
                "identities": len(snapshot["totals"]),
                "used_tokens": snapshot["used_tokens"],
            }
        except Exception as e:
            logger.error("ledger_health_check_failed", error=str(e))
            raise HealthCheckError(f"Ledger health check failed: {str(e)}")

    async def check_config(self) -> Dict[str, Any]:
        """
        Check that the spending policy is coherent.

        Raises:
            HealthCheckError: If the cap cannot fit a single unit charge
        """
        cap = self.authorizer.cap
        if cap < self.settings.unit_charge:
            raise HealthCheckError(
                f"Spending cap {cap} is below the unit charge {self.settings.unit_charge}"
            )
        return {
            "status": "healthy",
            "service": "config",
            "cap": cap,
            "unit_charge": self.settings.unit_charge,
            "failure_policy": self.authorizer.injector.policy,
        }

    async def check_all(self) -> Dict[str, Any]:
        """Run every check and aggregate the result."""
        checks: Dict[str, Any] = {}
        healthy = True

        for name, check in (("ledger", self.check_ledger), ("config", self.check_config)):
            try:
                checks[name] = await check()
            except HealthCheckError as e:
                healthy = False
                checks[name] = {"status": "unhealthy", "service": name, "message": str(e)}

        return {
            "status": "healthy" if healthy else "unhealthy",
            "checks": checks,
        }

    async def liveness(self) -> Dict[str, Any]:
        """Liveness probe: the process is up."""
        return {
            "status": "healthy",
            "message": f"Alive for {time.time() - self.started_at:.0f}s",
        }

    async def readiness(self) -> Dict[str, Any]:
        """Readiness probe: dependencies are usable."""
        return await self.check_all()
