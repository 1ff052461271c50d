"""Tests for the custody ledger — proves transfers are all-or-nothing."""

import pytest

from agora.custody.ledger import CustodyLedger, CustodySnapshot, TransferError


@pytest.fixture
def ledger() -> CustodyLedger:
    ledger = CustodyLedger()
    ledger.deposit("alice", 5_000)
    return ledger


class TestDeposit:
    def test_deposit_credits_account(self, ledger: CustodyLedger) -> None:
        assert ledger.balance_of("alice") == 5_000
        assert ledger.deposit("alice", 500) == 5_500

    def test_deposit_canonicalises_account(self, ledger: CustodyLedger) -> None:
        ledger.deposit("  bob ", 10)
        assert ledger.balance_of("bob") == 10

    def test_rejects_non_positive(self, ledger: CustodyLedger) -> None:
        with pytest.raises(ValueError, match="positive"):
            ledger.deposit("alice", 0)

    def test_rejects_blank_account(self, ledger: CustodyLedger) -> None:
        with pytest.raises(ValueError, match="blank"):
            ledger.deposit("  ", 10)


class TestTransfer:
    def test_transfer_moves_full_amount(self, ledger: CustodyLedger) -> None:
        ledger.transfer(2_000, "alice")
        assert ledger.balance_of("alice") == 3_000
        assert ledger.custody_balance == 2_000

    def test_exact_balance_transfer(self, ledger: CustodyLedger) -> None:
        ledger.transfer(5_000, "alice")
        assert ledger.balance_of("alice") == 0
        assert ledger.custody_balance == 5_000

    def test_insufficient_balance_moves_nothing(self, ledger: CustodyLedger) -> None:
        with pytest.raises(TransferError, match="Insufficient"):
            ledger.transfer(5_001, "alice")
        assert ledger.balance_of("alice") == 5_000
        assert ledger.custody_balance == 0

    def test_unknown_account_fails(self, ledger: CustodyLedger) -> None:
        with pytest.raises(TransferError):
            ledger.transfer(1, "nobody")

    def test_zero_amount_fails(self, ledger: CustodyLedger) -> None:
        with pytest.raises(TransferError, match="positive"):
            ledger.transfer(0, "alice")
        assert ledger.custody_balance == 0


class TestRefund:
    def test_refund_returns_stake(self, ledger: CustodyLedger) -> None:
        ledger.transfer(1_000, "alice")
        ledger.refund(1_000, "alice")
        assert ledger.balance_of("alice") == 5_000
        assert ledger.custody_balance == 0

    def test_refund_above_custody_fails(self, ledger: CustodyLedger) -> None:
        ledger.transfer(1_000, "alice")
        with pytest.raises(TransferError):
            ledger.refund(1_001, "alice")
        assert ledger.custody_balance == 1_000


class TestSnapshot:
    def test_snapshot_and_restore(self, ledger: CustodyLedger) -> None:
        ledger.transfer(1_500, "alice")
        snap = ledger.snapshot()
        other = CustodyLedger()
        other.restore(snap)
        assert other.balance_of("alice") == 3_500
        assert other.custody_balance == 1_500

    def test_restore_rejects_negative(self) -> None:
        with pytest.raises(ValueError, match="negative"):
            CustodyLedger().restore(CustodySnapshot(balances={"a": -1}, custody_balance=0))

    def test_total_value_conserved(self, ledger: CustodyLedger) -> None:
        ledger.deposit("bob", 700)
        ledger.transfer(300, "bob")
        ledger.transfer(1_000, "alice")
        snap = ledger.snapshot()
        assert sum(snap.balances.values()) + snap.custody_balance == 5_700
