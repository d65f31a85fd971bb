"""
In-memory payment ledger.

Owns the set of used tokens and the cumulative total per identity, and is
the single source of truth for the spending-cap invariant.

Concurrency model:
- Identity totals are guarded by lock stripes keyed by identity, so charges
  for unrelated identities do not contend on one global lock.
- The used-token set has its own short-held lock, used only for
  check-and-add. It is always acquired last, never while waiting on a stripe.
- Locks are plain threading locks and are never held across an await, so
  the ledger is safe for asyncio tasks and OS threads alike.
"""
import threading
from typing import Dict, List, Set, Tuple

import structlog

from .models import ChargeStatus

logger = structlog.get_logger(__name__)

DEFAULT_STRIPES = 64


class PaymentLedger:
    """Concurrency-safe store of used tokens and per-identity totals."""

    def __init__(self, stripes: int = DEFAULT_STRIPES):
        if stripes <= 0:
            raise ValueError("Ledger needs at least one lock stripe")
        self._stripes: List[threading.Lock] = [threading.Lock() for _ in range(stripes)]
        self._totals: Dict[str, int] = {}
        self._used_tokens: Set[str] = set()
        self._token_lock = threading.Lock()

    def _stripe_for(self, identity: str) -> threading.Lock:
        return self._stripes[hash(identity) % len(self._stripes)]

    def is_used(self, token: str) -> bool:
        """Check whether a token has already been redeemed."""
        return token in self._used_tokens

    def mark_used(self, token: str) -> bool:
        """
        Mark a token as used.

        Idempotent: once set, a token is never unset.

        Returns:
            bool: True if this call marked the token, False if it was already used
        """
        with self._token_lock:
            if token in self._used_tokens:
                return False
            self._used_tokens.add(token)
            return True

    def total_for(self, identity: str) -> int:
        """Cumulative accepted amount for an identity (0 if unknown)."""
        return self._totals.get(identity, 0)

    def try_accumulate(self, identity: str, amount: int, cap: int) -> Tuple[bool, int]:
        """
        Atomically add an amount to an identity's total if the cap allows it.

        Read, compare and commit happen under the identity's lock.

        Args:
            identity: Identity to charge
            amount: Amount to add
            cap: Maximum cumulative total

        Returns:
            Tuple[bool, int]: (accepted, total after the operation)
        """
        with self._stripe_for(identity):
            current = self._totals.get(identity, 0)
            candidate = current + amount
            if candidate > cap:
                return False, current
            self._totals[identity] = candidate
            return True, candidate

    def redeem(self, token: str, identity: str, amount: int, cap: int) -> Tuple[ChargeStatus, int]:
        """
        Redeem a token for a charge in one atomic step.

        Fuses the reuse check, the cap check, the total commit and the token
        marking. The token is only claimed once the cap check has passed
        under the identity's lock, so a claimed token always ends ACCEPTED.

        Returns:
            Tuple[ChargeStatus, int]: (ACCEPTED, TOKEN_REUSED or LIMIT_EXCEEDED, total)
        """
        with self._stripe_for(identity):
            current = self._totals.get(identity, 0)
            if self.is_used(token):
                return ChargeStatus.TOKEN_REUSED, current

            candidate = current + amount
            if candidate > cap:
                return ChargeStatus.LIMIT_EXCEEDED, current

            # Lost a race with a concurrent redemption of the same token
            if not self.mark_used(token):
                return ChargeStatus.TOKEN_REUSED, current

            self._totals[identity] = candidate
            return ChargeStatus.ACCEPTED, candidate

    def snapshot(self) -> Dict[str, object]:
        """Point-in-time copy of identity totals and the used-token count."""
        with self._token_lock:
            used = len(self._used_tokens)
        return {"totals": dict(self._totals), "used_tokens": used}
