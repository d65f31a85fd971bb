"""
HTTP client for the payment authority.

Every transport-level problem (connection failure, timeout, non-2xx status,
malformed body, missing token) is raised as CommunicationError so the
orchestrator can treat it as a transient failure. The client itself never
retries.
"""
from typing import Any, Optional

import httpx
import structlog
from pydantic import ValidationError

from reaction_payments.config import get_settings
from reaction_payments.core.exceptions import CommunicationError
from reaction_payments.core.models import ChargeRequest, ChargeResult, TokenResponse

logger = structlog.get_logger(__name__)


class PaymentAuthorityClient:
    """
    Async HTTP client implementing the PaymentGateway protocol.

    Example:
        >>> async with PaymentAuthorityClient("http://localhost:6000/api/payments") as client:
        ...     token = await client.request_token()
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize payment authority client.

        Args:
            base_url: Authority base URL (settings value if omitted)
            timeout: Request timeout in seconds (settings value if omitted)
            http_client: Optional preconfigured httpx client (tests inject an ASGI transport)
        """
        settings = get_settings()
        self.base_url = (base_url or settings.payment_authority_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.http_timeout
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=self.timeout)

    async def __aenter__(self) -> "PaymentAuthorityClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self.http_client.aclose()

    async def _post(self, url: str, **kwargs: Any) -> Any:
        try:
            response = await self.http_client.post(url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "payment_authority_http_error",
                url=url,
                status_code=e.response.status_code,
            )
            raise CommunicationError(
                f"Payment authority answered HTTP {e.response.status_code}", e
            ) from e
        except httpx.HTTPError as e:
            logger.warning("payment_authority_unreachable", url=url, error=str(e))
            raise CommunicationError(f"Payment authority unreachable: {e}", e) from e
        except ValueError as e:
            logger.warning("payment_authority_malformed_body", url=url, error=str(e))
            raise CommunicationError("Payment authority returned a malformed body", e) from e

    async def request_token(self) -> str:
        """
        Request a fresh token.

        Raises:
            CommunicationError: If no token could be obtained
        """
        body = await self._post(f"{self.base_url}/token")
        try:
            return TokenResponse.model_validate(body).token
        except ValidationError as e:
            raise CommunicationError("Payment authority returned no token", e) from e

    async def submit_charge(self, request: ChargeRequest) -> ChargeResult:
        """
        Submit a redemption.

        Raises:
            CommunicationError: If the verdict could not be obtained
        """
        body = await self._post(self.base_url, json=request.model_dump(mode="json"))
        try:
            return ChargeResult.model_validate(body)
        except ValidationError as e:
            raise CommunicationError("Payment authority returned an invalid verdict", e) from e
