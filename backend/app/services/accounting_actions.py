"""
Accounting actions.

Manual entries, reversals, edits and the balance views for member accounts
and cost centers. Each write takes the acting member explicitly and answers
with an ActionResult.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.clock import to_naive_utc
from backend.app.core.exceptions import BillingValidationError
from backend.app.db.session import unit_of_work
from backend.app.domain.billing.rates import to_cents
from backend.app.domain.ledger.balance import running_balances
from backend.app.domain.ledger.entries import FlightCharge, Reversal, entry_from_row
from backend.app.domain.ledger.repository import COST_CENTER_LEDGER, USER_LEDGER, LedgerRepository
from backend.app.domain.ledger.reversal_service import ReversalService
from backend.app.models.billing_enums import TargetType
from backend.app.models.cost_center import CostCenter
from backend.app.models.ledger_entry import CostCenterTransaction, UserTransaction
from backend.app.models.user import User
from backend.app.schemas.accounting import (
    CostCenterTotalResponse,
    TransactionResponse,
    UserBalanceResponse,
)
from backend.app.schemas.auth import Actor
from backend.app.schemas.billing import ActionResult
from backend.app.services.action_result import run_action
from backend.app.services.audit import AuditAction, log_event

logger = logging.getLogger(__name__)


class EntryKind(str, Enum):
    """Kind of a manual ledger entry; decides the stored sign."""
    PAYMENT = "payment"  # credit for cost centers
    CHARGE = "charge"
    ADJUSTMENT = "adjustment"


def signed_amount(kind: EntryKind, amount: float) -> float:
    """
    Payments/credits and charges take a positive amount and get their sign
    from the kind. Adjustments keep the sign as entered.

    Raises:
        BillingValidationError: zero, negative (where not allowed) or non-numeric amount
    """
    if amount is None or amount != amount:
        raise BillingValidationError("Amount must be a number")

    if kind == EntryKind.ADJUSTMENT:
        if amount == 0:
            raise BillingValidationError("Adjustment amount cannot be zero")
        return amount

    if amount <= 0:
        raise BillingValidationError("Amount must be greater than zero")
    return abs(amount) if kind == EntryKind.PAYMENT else -abs(amount)


async def _add_manual_transaction(
    db: AsyncSession,
    actor: Actor,
    ledger: LedgerRepository,
    kind: EntryKind,
    owner_id: int,
    amount: float,
    description: str,
    created_at: Optional[datetime] = None,
):
    value = signed_amount(kind, amount)
    description = (description or "").strip()
    if not description:
        raise BillingValidationError("Description is required")

    async with unit_of_work(db):
        if ledger.kind == TargetType.COST_CENTER:
            await ledger.ensure_chargeable(db, owner_id)
        else:
            # Payments from members who left the club still have to be booked
            await ledger.get_owner(db, owner_id)

        row = await ledger.insert(
            db,
            owner_id=owner_id,
            amount=value,
            description=description,
            created_by=actor.user_id,
            created_at=to_naive_utc(created_at),
        )
        await log_event(
            db,
            action=AuditAction.TRANSACTION_CREATED,
            actor=actor,
            entity_type=ledger.entity_type,
            entity_id=row.id,
            metadata={"kind": kind.value, "owner_id": owner_id, "amount": row.amount},
            commit=False,
        )

    logger.info("%s %s created for owner %s: %.2f", kind.value, ledger.entity_type, owner_id, row.amount)
    return row


def _created_row(row) -> dict:
    return {"transaction_id": row.id, "amount": row.amount}


async def _manual(db, actor, ledger, kind, owner_id, amount, description, created_at, message) -> ActionResult:
    return await run_action(
        lambda: _add_manual_transaction(db, actor, ledger, kind, owner_id, amount, description, created_at),
        message=message,
        serialize=_created_row,
    )


# ---------------------------------------------------------------------------
# Member accounts
# ---------------------------------------------------------------------------

async def add_payment(db, actor: Actor, user_id: int, amount: float, description: str, created_at=None) -> ActionResult:
    return await _manual(db, actor, USER_LEDGER, EntryKind.PAYMENT, user_id, amount, description, created_at,
                         "Payment recorded successfully")


async def add_charge(db, actor: Actor, user_id: int, amount: float, description: str, created_at=None) -> ActionResult:
    return await _manual(db, actor, USER_LEDGER, EntryKind.CHARGE, user_id, amount, description, created_at,
                         "Charge recorded successfully")


async def add_adjustment(db, actor: Actor, user_id: int, amount: float, description: str, created_at=None) -> ActionResult:
    return await _manual(db, actor, USER_LEDGER, EntryKind.ADJUSTMENT, user_id, amount, description, created_at,
                         "Adjustment recorded successfully")


# ---------------------------------------------------------------------------
# Cost centers
# ---------------------------------------------------------------------------

async def add_cost_center_credit(db, actor: Actor, cost_center_id: int, amount: float, description: str,
                                 created_at=None) -> ActionResult:
    return await _manual(db, actor, COST_CENTER_LEDGER, EntryKind.PAYMENT, cost_center_id, amount, description,
                         created_at, "Credit recorded successfully")


async def add_cost_center_charge(db, actor: Actor, cost_center_id: int, amount: float, description: str,
                                 created_at=None) -> ActionResult:
    return await _manual(db, actor, COST_CENTER_LEDGER, EntryKind.CHARGE, cost_center_id, amount, description,
                         created_at, "Charge recorded successfully")


async def add_cost_center_adjustment(db, actor: Actor, cost_center_id: int, amount: float, description: str,
                                     created_at=None) -> ActionResult:
    return await _manual(db, actor, COST_CENTER_LEDGER, EntryKind.ADJUSTMENT, cost_center_id, amount, description,
                         created_at, "Adjustment recorded successfully")


# ---------------------------------------------------------------------------
# Reversals and edits
# ---------------------------------------------------------------------------

def _reversal_row(row) -> dict:
    return {"reversal_transaction_id": row.id, "amount": row.amount}


async def reverse_user_transaction(db: AsyncSession, actor: Actor, transaction_id: int) -> ActionResult:
    return await run_action(
        lambda: ReversalService.reverse(db, actor, USER_LEDGER, transaction_id),
        message="Transaction reversed successfully",
        serialize=_reversal_row,
    )


async def reverse_cost_center_transaction(db: AsyncSession, actor: Actor, transaction_id: int) -> ActionResult:
    return await run_action(
        lambda: ReversalService.reverse(db, actor, COST_CENTER_LEDGER, transaction_id),
        message="Transaction reversed successfully",
        serialize=_reversal_row,
    )


def _flight_reversal_result(rows) -> dict:
    return {"reversed_count": len(rows), "reversals": [_reversal_row(r) for r in rows]}


async def reverse_flight_charge(db: AsyncSession, actor: Actor, transaction_id: int) -> ActionResult:
    return await run_action(
        lambda: ReversalService.reverse_flight_charge(db, actor, USER_LEDGER, transaction_id),
        message="Flight charges reversed and flight unlocked for re-charging",
        serialize=_flight_reversal_result,
    )


async def reverse_cost_center_flight_charge(db: AsyncSession, actor: Actor, transaction_id: int) -> ActionResult:
    return await run_action(
        lambda: ReversalService.reverse_flight_charge(db, actor, COST_CENTER_LEDGER, transaction_id),
        message="Flight charges reversed and flight unlocked for re-charging",
        serialize=_flight_reversal_result,
    )


async def edit_user_transaction(
    db: AsyncSession, actor: Actor, transaction_id: int,
    description: Optional[str] = None, created_at: Optional[datetime] = None,
) -> ActionResult:
    return await run_action(
        lambda: ReversalService.edit_transaction(db, actor, USER_LEDGER, transaction_id, description, created_at),
        message="Transaction updated successfully",
    )


async def edit_cost_center_transaction(
    db: AsyncSession, actor: Actor, transaction_id: int,
    description: Optional[str] = None, created_at: Optional[datetime] = None,
) -> ActionResult:
    return await run_action(
        lambda: ReversalService.edit_transaction(db, actor, COST_CENTER_LEDGER, transaction_id, description, created_at),
        message="Transaction updated successfully",
    )


# ---------------------------------------------------------------------------
# Read queries
# ---------------------------------------------------------------------------

def _entry_kind(entry) -> str:
    if isinstance(entry, Reversal):
        return "reversal"
    if isinstance(entry, FlightCharge):
        return "flight_charge"
    return "manual"


async def _transactions_with_balances(db: AsyncSession, ledger: LedgerRepository, owner_id: int) -> List[TransactionResponse]:
    await ledger.get_owner(db, owner_id)
    rows = await ledger.list_for_owner(db, owner_id)
    entries = [entry_from_row(row, ledger.kind) for row in rows]
    balances = running_balances(entries)

    return [
        TransactionResponse(
            id=row.id,
            kind=_entry_kind(entry),
            owner_id=row.owner_id,
            amount=row.amount,
            description=row.description,
            created_at=row.created_at,
            inserted_at=row.inserted_at,
            created_by=row.created_by,
            flightlog_id=row.flightlog_id,
            reversed_at=row.reversed_at,
            reversed_by=row.reversed_by,
            reversal_transaction_id=row.reversal_transaction_id,
            reverses_transaction_id=row.reverses_transaction_id,
            running_balance=balance,
        )
        for row, entry, balance in zip(rows, entries, balances)
    ]


async def get_user_transactions(db: AsyncSession, user_id: int) -> List[TransactionResponse]:
    """A member's ledger, newest first, each row with the balance as of that row."""
    return await _transactions_with_balances(db, USER_LEDGER, user_id)


async def get_cost_center_transactions(db: AsyncSession, cost_center_id: int) -> List[TransactionResponse]:
    """A cost center's ledger, newest first, each row with the running total as of that row."""
    return await _transactions_with_balances(db, COST_CENTER_LEDGER, cost_center_id)


async def get_user_balances(db: AsyncSession, include_inactive: bool = False) -> List[UserBalanceResponse]:
    """
    Balance of every member account.

    Members with recent activity come first; members without any
    transactions follow in alphabetical order.
    """
    totals = (
        select(
            UserTransaction.user_id.label("user_id"),
            func.sum(UserTransaction.amount).label("balance"),
            func.count(UserTransaction.id).label("transaction_count"),
            func.max(UserTransaction.created_at).label("last_transaction_at"),
        )
        .group_by(UserTransaction.user_id)
        .subquery()
    )
    query = select(User, totals.c.balance, totals.c.transaction_count, totals.c.last_transaction_at).outerjoin(
        totals, totals.c.user_id == User.id
    )
    if not include_inactive:
        query = query.where(User.is_active.is_(True))

    result = await db.execute(query)
    balances = [
        UserBalanceResponse(
            user_id=user.id,
            username=user.username,
            name=user.name,
            surname=user.surname,
            is_active=user.is_active,
            balance=to_cents(balance or 0.0),
            transaction_count=count or 0,
            last_transaction_at=last_at,
        )
        for user, balance, count, last_at in result.all()
    ]

    with_activity = sorted(
        (b for b in balances if b.last_transaction_at is not None),
        key=lambda b: b.last_transaction_at,
        reverse=True,
    )
    without_activity = sorted(
        (b for b in balances if b.last_transaction_at is None),
        key=lambda b: f"{b.surname} {b.name}".lower(),
    )
    return with_activity + without_activity


async def get_cost_centers_with_totals(db: AsyncSession, include_inactive: bool = True) -> List[CostCenterTotalResponse]:
    """Every cost center with the sum of its ledger, by name."""
    totals = (
        select(
            CostCenterTransaction.cost_center_id.label("cost_center_id"),
            func.sum(CostCenterTransaction.amount).label("total_amount"),
            func.count(CostCenterTransaction.id).label("transaction_count"),
        )
        .group_by(CostCenterTransaction.cost_center_id)
        .subquery()
    )
    query = (
        select(CostCenter, totals.c.total_amount, totals.c.transaction_count)
        .outerjoin(totals, totals.c.cost_center_id == CostCenter.id)
        .order_by(CostCenter.name)
    )
    if not include_inactive:
        query = query.where(CostCenter.active.is_(True))

    result = await db.execute(query)
    return [
        CostCenterTotalResponse(
            id=cost_center.id,
            name=cost_center.name,
            description=cost_center.description,
            active=cost_center.active,
            total_amount=to_cents(total or 0.0),
            transaction_count=count or 0,
        )
        for cost_center, total, count in result.all()
    ]
