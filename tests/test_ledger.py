"""
Unit tests for the payment ledger.
"""
import pytest

from reaction_payments.core.ledger import PaymentLedger
from reaction_payments.core.models import ChargeStatus


class TestPaymentLedger:
    """Test suite for PaymentLedger."""

    @pytest.mark.unit
    def test_unknown_identity_total_is_zero(self, ledger: PaymentLedger) -> None:
        assert ledger.total_for("nobody") == 0

    @pytest.mark.unit
    def test_try_accumulate_commits_within_cap(self, ledger: PaymentLedger) -> None:
        assert ledger.try_accumulate("ana", 10, 50) == (True, 10)
        assert ledger.try_accumulate("ana", 40, 50) == (True, 50)
        assert ledger.total_for("ana") == 50

    @pytest.mark.unit
    def test_try_accumulate_rejects_without_mutating(self, ledger: PaymentLedger) -> None:
        ledger.try_accumulate("ana", 45, 50)

        assert ledger.try_accumulate("ana", 10, 50) == (False, 45)
        assert ledger.total_for("ana") == 45

    @pytest.mark.unit
    def test_mark_used_is_idempotent(self, ledger: PaymentLedger) -> None:
        assert ledger.is_used("tok") is False
        assert ledger.mark_used("tok") is True
        assert ledger.mark_used("tok") is False
        assert ledger.is_used("tok") is True

    @pytest.mark.unit
    def test_identities_are_independent(self, ledger: PaymentLedger) -> None:
        ledger.try_accumulate("ana", 50, 50)

        assert ledger.try_accumulate("luis", 10, 50) == (True, 10)
        assert ledger.total_for("ana") == 50

    @pytest.mark.unit
    def test_redeem_accepts_and_marks_token(self, ledger: PaymentLedger) -> None:
        assert ledger.redeem("tok-1", "ana", 10, 50) == (ChargeStatus.ACCEPTED, 10)
        assert ledger.is_used("tok-1")

    @pytest.mark.unit
    def test_redeem_reused_token(self, ledger: PaymentLedger) -> None:
        ledger.redeem("tok-1", "ana", 10, 50)

        assert ledger.redeem("tok-1", "ana", 10, 50) == (ChargeStatus.TOKEN_REUSED, 10)
        assert ledger.total_for("ana") == 10

    @pytest.mark.unit
    def test_redeem_reuse_wins_over_cap(self, ledger: PaymentLedger) -> None:
        """A reused token reports TOKEN_REUSED even when the cap is also hit."""
        for i in range(5):
            ledger.redeem(f"tok-{i}", "ana", 10, 50)

        assert ledger.redeem("tok-0", "ana", 10, 50) == (ChargeStatus.TOKEN_REUSED, 50)

    @pytest.mark.unit
    def test_redeem_over_cap_leaves_token_unused(self, ledger: PaymentLedger) -> None:
        ledger.try_accumulate("ana", 50, 50)

        assert ledger.redeem("tok-x", "ana", 10, 50) == (ChargeStatus.LIMIT_EXCEEDED, 50)
        assert not ledger.is_used("tok-x")

    @pytest.mark.unit
    def test_snapshot(self, ledger: PaymentLedger) -> None:
        ledger.redeem("tok-1", "ana", 10, 50)
        ledger.redeem("tok-2", "luis", 20, 50)

        assert ledger.snapshot() == {"totals": {"ana": 10, "luis": 20}, "used_tokens": 2}

    @pytest.mark.unit
    def test_requires_a_stripe(self) -> None:
        with pytest.raises(ValueError):
            PaymentLedger(stripes=0)
