"""
Ledger Balance Projector.

Running balances over a newest-first transaction history. Both ledgers use
the same policy; the default includes every row so a reversal pair nets to
zero on its own.
"""

from enum import Enum
from typing import List, Sequence

from backend.app.domain.billing.rates import to_cents
from backend.app.domain.ledger.entries import LedgerEntry, Reversal


class BalancePolicy(str, Enum):
    INCLUDE_ALL = "include_all"
    # Drops the reversed original and its reversal together
    EXCLUDE_REVERSAL_PAIRS = "exclude_reversal_pairs"


def _counted_amount(entry: LedgerEntry, policy: BalancePolicy) -> float:
    if policy == BalancePolicy.EXCLUDE_REVERSAL_PAIRS:
        if isinstance(entry, Reversal) or entry.is_reversed:
            return 0.0
    return entry.amount


def running_balances(
    entries_newest_first: Sequence[LedgerEntry],
    policy: BalancePolicy = BalancePolicy.INCLUDE_ALL,
) -> List[float]:
    """
    Balance as of (and including) each entry, aligned with the input order.

    The history is walked oldest first, so result[0] is the current balance.
    """
    balances: List[float] = []
    total = 0.0
    for entry in reversed(entries_newest_first):
        total += _counted_amount(entry, policy)
        balances.append(to_cents(total))
    balances.reverse()
    return balances


def running_balance_at(
    entries_newest_first: Sequence[LedgerEntry],
    index: int,
    policy: BalancePolicy = BalancePolicy.INCLUDE_ALL,
) -> float:
    """Sum of everything from the oldest entry up through position ``index``."""
    if index < 0 or index >= len(entries_newest_first):
        raise IndexError(f"No ledger entry at position {index}")
    oldest_first = list(reversed(entries_newest_first))
    upto = len(entries_newest_first) - index
    return to_cents(sum(_counted_amount(e, policy) for e in oldest_first[:upto]))


def total_balance(
    entries: Sequence[LedgerEntry],
    policy: BalancePolicy = BalancePolicy.INCLUDE_ALL,
) -> float:
    """Current balance of an owner; order of ``entries`` does not matter."""
    return to_cents(sum(_counted_amount(e, policy) for e in entries))
