"""Stake custody — atomic transfer of stake from a submitter to the engine.

The engine depends only on the StakeCustody protocol: a single
transfer(amount, sender) call that either moves the full amount into
engine custody or raises TransferError and moves nothing.

CustodyLedger is the in-memory implementation used by the service,
the CLI, and the tests. A deployment backed by a real ledger supplies
its own StakeCustody implementation.

Invariants:
- sum(account balances) + custody balance is conserved by transfers.
- A failed transfer leaves every balance unchanged.
- Balances are never negative.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Protocol


class TransferError(Exception):
    """Raised when custody cannot move the requested amount."""


class StakeCustody(Protocol):
    """Boundary contract for the stake custody collaborator."""

    def transfer(self, amount: int, sender: str) -> None:
        """Move amount from sender into engine custody, or raise TransferError."""
        ...

    def refund(self, amount: int, recipient: str) -> None:
        """Return amount from custody to recipient, or raise TransferError.

        Only used to compensate an intake whose state or audit write
        failed after the stake had already moved.
        """
        ...


@dataclass(frozen=True)
class CustodySnapshot:
    """Serializable custody state."""
    balances: Dict[str, int]
    custody_balance: int


class CustodyLedger:
    """In-memory account balances plus the engine's custody pool.

    Usage:
        ledger = CustodyLedger()
        ledger.deposit("alice", 5_000_000)
        ledger.transfer(1_000_000, "alice")
        ledger.custody_balance  # 1_000_000

    Thread-safety: this class is not thread-safe. The service
    serialises access.
    """

    def __init__(self) -> None:
        self._balances: Dict[str, int] = {}
        self._custody = 0

    def deposit(self, account: str, amount: int) -> int:
        """Credit an external account. Returns the new balance."""
        canonical = account.strip()
        if not canonical:
            raise ValueError("Cannot deposit to blank account")
        if not isinstance(amount, int) or amount <= 0:
            raise ValueError(f"Deposit amount must be a positive int, got {amount!r}")
        self._balances[canonical] = self._balances.get(canonical, 0) + amount
        return self._balances[canonical]

    def transfer(self, amount: int, sender: str) -> None:
        """Move amount from sender into custody. All-or-nothing."""
        canonical = sender.strip()
        if not isinstance(amount, int) or amount <= 0:
            raise TransferError(f"Transfer amount must be a positive int, got {amount!r}")
        balance = self._balances.get(canonical, 0)
        if balance < amount:
            raise TransferError(
                f"Insufficient balance for {canonical or '<blank>'}: "
                f"has {balance}, needs {amount}"
            )
        self._balances[canonical] = balance - amount
        self._custody += amount

    def refund(self, amount: int, recipient: str) -> None:
        """Move amount from custody back to recipient. All-or-nothing."""
        canonical = recipient.strip()
        if not isinstance(amount, int) or amount <= 0:
            raise TransferError(f"Refund amount must be a positive int, got {amount!r}")
        if self._custody < amount:
            raise TransferError(
                f"Custody holds {self._custody}, cannot refund {amount}"
            )
        self._custody -= amount
        self._balances[canonical] = self._balances.get(canonical, 0) + amount

    def balance_of(self, account: str) -> int:
        return self._balances.get(account.strip(), 0)

    @property
    def custody_balance(self) -> int:
        return self._custody

    def snapshot(self) -> CustodySnapshot:
        return CustodySnapshot(balances=dict(self._balances), custody_balance=self._custody)

    def restore(self, snapshot: CustodySnapshot) -> None:
        """Replace ledger contents with a snapshot."""
        if snapshot.custody_balance < 0 or any(v < 0 for v in snapshot.balances.values()):
            raise ValueError("Custody snapshot contains negative balances")
        self._balances = dict(snapshot.balances)
        self._custody = snapshot.custody_balance
