"""
Ledger entry types.

A ledger row is exactly one of:
    ManualTransaction  payment, charge or adjustment entered by hand
    FlightCharge       debit produced by charging a flight
    Reversal           equal-and-opposite entry cancelling another row

Each carries only the fields relevant to its kind. Rows of both ledgers
(member accounts and cost centers) map onto the same types; the Owner
says which ledger a row belongs to.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from backend.app.models.billing_enums import TargetType


@dataclass(frozen=True)
class Owner:
    kind: TargetType
    id: int


@dataclass(frozen=True)
class ReversalMark:
    """Present on an original once it has been reversed."""
    reversed_at: datetime
    reversed_by: Optional[int]
    reversal_transaction_id: int


@dataclass(frozen=True)
class _EntryBase:
    id: int
    owner: Owner
    amount: float
    description: str
    created_at: datetime
    inserted_at: datetime
    created_by: Optional[int]


@dataclass(frozen=True)
class ManualTransaction(_EntryBase):
    reversal: Optional[ReversalMark] = None

    @property
    def is_reversed(self) -> bool:
        return self.reversal is not None


@dataclass(frozen=True)
class FlightCharge(_EntryBase):
    flightlog_id: int = 0
    reversal: Optional[ReversalMark] = None

    @property
    def is_reversed(self) -> bool:
        return self.reversal is not None


@dataclass(frozen=True)
class Reversal(_EntryBase):
    reverses_transaction_id: int = 0
    flightlog_id: Optional[int] = None

    @property
    def is_reversed(self) -> bool:
        # A reversal is never reversed itself
        return False


LedgerEntry = Union[ManualTransaction, FlightCharge, Reversal]


def entry_from_row(row, owner_kind: TargetType) -> LedgerEntry:
    """Classify a ledger row (UserTransaction / CostCenterTransaction) into its entry type."""
    common = dict(
        id=row.id,
        owner=Owner(kind=owner_kind, id=row.owner_id),
        amount=row.amount,
        description=row.description,
        created_at=row.created_at,
        inserted_at=row.inserted_at,
        created_by=row.created_by,
    )

    if row.reverses_transaction_id is not None:
        return Reversal(
            **common,
            reverses_transaction_id=row.reverses_transaction_id,
            flightlog_id=row.flightlog_id,
        )

    mark = None
    if row.reversed_at is not None:
        mark = ReversalMark(
            reversed_at=row.reversed_at,
            reversed_by=row.reversed_by,
            reversal_transaction_id=row.reversal_transaction_id,
        )

    if row.flightlog_id is not None:
        return FlightCharge(**common, flightlog_id=row.flightlog_id, reversal=mark)

    return ManualTransaction(**common, reversal=mark)
