"""Single-use token issuance."""
import secrets
import threading

import structlog

logger = structlog.get_logger(__name__)

# 16 bytes = 128 bits of entropy, URL-safe base64 without padding
TOKEN_BYTES = 16


class TokenIssuer:
    """
    Produces unique, unguessable single-use tokens.

    Issuance never consults the ledger: collisions are cryptographically
    negligible rather than structurally prevented.
    """

    def __init__(self, nbytes: int = TOKEN_BYTES):
        if nbytes < TOKEN_BYTES:
            raise ValueError(f"Tokens need at least {TOKEN_BYTES} bytes of entropy")
        self.nbytes = nbytes
        self._issued = 0
        self._lock = threading.Lock()

    def issue(self) -> str:
        """Generate a fresh token."""
        token = secrets.token_urlsafe(self.nbytes)
        with self._lock:
            self._issued += 1
        logger.debug("token_issued")
        return token

    @property
    def issued_count(self) -> int:
        return self._issued
