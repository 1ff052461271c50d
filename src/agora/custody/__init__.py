"""Stake custody boundary and in-memory ledger."""

from agora.custody.ledger import (
    CustodyLedger,
    CustodySnapshot,
    StakeCustody,
    TransferError,
)

__all__ = [
    "CustodyLedger",
    "CustodySnapshot",
    "StakeCustody",
    "TransferError",
]
