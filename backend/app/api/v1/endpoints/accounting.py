"""
Accounting API Endpoints.

Member accounts and cost center ledgers: manual entries, reversals, edits,
balances and transaction lists. Open to board and treasurer; flight charge
reversals put a flight back into billing and are board only.
"""

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from backend.app.db.session import get_db
from backend.app.schemas.auth import Actor
from backend.app.schemas.billing import ActionResult
from backend.app.schemas.accounting import (
    AuditLogResponse,
    CostCenterTotalResponse,
    ManualTransactionCreate,
    TransactionEdit,
    TransactionResponse,
    UserBalanceResponse,
)
from backend.app.core.guards import require_accounting_access, require_billing_manager
from backend.app.services import accounting_actions
from backend.app.services.audit import get_audit_trail

router = APIRouter(prefix="/accounting", tags=["Accounting"])


# ============================================================================
# Member accounts
# ============================================================================

@router.get("/users/balances", response_model=List[UserBalanceResponse])
async def list_user_balances(
    include_inactive: bool = Query(False),
    actor: Actor = Depends(require_accounting_access),
    db: AsyncSession = Depends(get_db)
):
    """
    Balance of every member account, most recently active first.
    """
    return await accounting_actions.get_user_balances(db, include_inactive=include_inactive)


@router.get("/users/{user_id}/transactions", response_model=List[TransactionResponse])
async def list_user_transactions(
    user_id: int = Path(..., description="Member ID"),
    actor: Actor = Depends(require_accounting_access),
    db: AsyncSession = Depends(get_db)
):
    """
    A member's transactions, newest first, with running balances.
    """
    return await accounting_actions.get_user_transactions(db, user_id)


@router.post("/users/{user_id}/payments", response_model=ActionResult)
async def add_payment(
    entry: ManualTransactionCreate,
    user_id: int = Path(..., description="Member ID"),
    actor: Actor = Depends(require_accounting_access),
    db: AsyncSession = Depends(get_db)
):
    """Book a payment (credit) to a member account."""
    return await accounting_actions.add_payment(db, actor, user_id, entry.amount, entry.description, entry.created_at)


@router.post("/users/{user_id}/charges", response_model=ActionResult)
async def add_charge(
    entry: ManualTransactionCreate,
    user_id: int = Path(..., description="Member ID"),
    actor: Actor = Depends(require_accounting_access),
    db: AsyncSession = Depends(get_db)
):
    """Book a manual charge (debit) to a member account."""
    return await accounting_actions.add_charge(db, actor, user_id, entry.amount, entry.description, entry.created_at)


@router.post("/users/{user_id}/adjustments", response_model=ActionResult)
async def add_adjustment(
    entry: ManualTransactionCreate,
    user_id: int = Path(..., description="Member ID"),
    actor: Actor = Depends(require_accounting_access),
    db: AsyncSession = Depends(get_db)
):
    """Book a signed adjustment to a member account."""
    return await accounting_actions.add_adjustment(db, actor, user_id, entry.amount, entry.description, entry.created_at)


@router.post("/user-transactions/{transaction_id}/reverse", response_model=ActionResult)
async def reverse_user_transaction(
    transaction_id: int = Path(..., description="Transaction ID"),
    actor: Actor = Depends(require_accounting_access),
    db: AsyncSession = Depends(get_db)
):
    """Reverse a member account transaction."""
    return await accounting_actions.reverse_user_transaction(db, actor, transaction_id)


@router.post("/user-transactions/{transaction_id}/reverse-flight-charge", response_model=ActionResult)
async def reverse_flight_charge(
    transaction_id: int = Path(..., description="Transaction ID"),
    actor: Actor = Depends(require_billing_manager),
    db: AsyncSession = Depends(get_db)
):
    """
    Reverse every leg of the flight charge this transaction belongs to and
    return the flight to the uncharged pool.
    """
    return await accounting_actions.reverse_flight_charge(db, actor, transaction_id)


@router.patch("/user-transactions/{transaction_id}", response_model=ActionResult)
async def edit_user_transaction(
    edit: TransactionEdit,
    transaction_id: int = Path(..., description="Transaction ID"),
    actor: Actor = Depends(require_accounting_access),
    db: AsyncSession = Depends(get_db)
):
    """Edit description and (within the edit window) the date of a member transaction."""
    return await accounting_actions.edit_user_transaction(
        db, actor, transaction_id, description=edit.description, created_at=edit.created_at
    )


# ============================================================================
# Cost centers
# ============================================================================

@router.get("/cost-centers", response_model=List[CostCenterTotalResponse])
async def list_cost_centers(
    include_inactive: bool = Query(True),
    actor: Actor = Depends(require_accounting_access),
    db: AsyncSession = Depends(get_db)
):
    """
    Cost centers with the total of their ledgers.
    """
    return await accounting_actions.get_cost_centers_with_totals(db, include_inactive=include_inactive)


@router.get("/cost-centers/{cost_center_id}/transactions", response_model=List[TransactionResponse])
async def list_cost_center_transactions(
    cost_center_id: int = Path(..., description="Cost center ID"),
    actor: Actor = Depends(require_accounting_access),
    db: AsyncSession = Depends(get_db)
):
    """
    A cost center's transactions, newest first, with running totals.
    """
    return await accounting_actions.get_cost_center_transactions(db, cost_center_id)


@router.post("/cost-centers/{cost_center_id}/credits", response_model=ActionResult)
async def add_cost_center_credit(
    entry: ManualTransactionCreate,
    cost_center_id: int = Path(..., description="Cost center ID"),
    actor: Actor = Depends(require_accounting_access),
    db: AsyncSession = Depends(get_db)
):
    """Book a credit to a cost center."""
    return await accounting_actions.add_cost_center_credit(
        db, actor, cost_center_id, entry.amount, entry.description, entry.created_at
    )


@router.post("/cost-centers/{cost_center_id}/charges", response_model=ActionResult)
async def add_cost_center_charge(
    entry: ManualTransactionCreate,
    cost_center_id: int = Path(..., description="Cost center ID"),
    actor: Actor = Depends(require_accounting_access),
    db: AsyncSession = Depends(get_db)
):
    """Book a charge to a cost center."""
    return await accounting_actions.add_cost_center_charge(
        db, actor, cost_center_id, entry.amount, entry.description, entry.created_at
    )


@router.post("/cost-centers/{cost_center_id}/adjustments", response_model=ActionResult)
async def add_cost_center_adjustment(
    entry: ManualTransactionCreate,
    cost_center_id: int = Path(..., description="Cost center ID"),
    actor: Actor = Depends(require_accounting_access),
    db: AsyncSession = Depends(get_db)
):
    """Book a signed adjustment to a cost center."""
    return await accounting_actions.add_cost_center_adjustment(
        db, actor, cost_center_id, entry.amount, entry.description, entry.created_at
    )


@router.post("/cost-center-transactions/{transaction_id}/reverse", response_model=ActionResult)
async def reverse_cost_center_transaction(
    transaction_id: int = Path(..., description="Transaction ID"),
    actor: Actor = Depends(require_accounting_access),
    db: AsyncSession = Depends(get_db)
):
    """Reverse a cost center transaction."""
    return await accounting_actions.reverse_cost_center_transaction(db, actor, transaction_id)


@router.post("/cost-center-transactions/{transaction_id}/reverse-flight-charge", response_model=ActionResult)
async def reverse_cost_center_flight_charge(
    transaction_id: int = Path(..., description="Transaction ID"),
    actor: Actor = Depends(require_billing_manager),
    db: AsyncSession = Depends(get_db)
):
    """Reverse a flight charge starting from one of its cost center legs."""
    return await accounting_actions.reverse_cost_center_flight_charge(db, actor, transaction_id)


@router.patch("/cost-center-transactions/{transaction_id}", response_model=ActionResult)
async def edit_cost_center_transaction(
    edit: TransactionEdit,
    transaction_id: int = Path(..., description="Transaction ID"),
    actor: Actor = Depends(require_accounting_access),
    db: AsyncSession = Depends(get_db)
):
    """Edit description and (within the edit window) the date of a cost center transaction."""
    return await accounting_actions.edit_cost_center_transaction(
        db, actor, transaction_id, description=edit.description, created_at=edit.created_at
    )


# ============================================================================
# Audit trail
# ============================================================================

@router.get("/audit-log", response_model=List[AuditLogResponse])
async def list_audit_log(
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[int] = Query(None),
    action: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    actor: Actor = Depends(require_accounting_access),
    db: AsyncSession = Depends(get_db)
):
    """
    Recent billing and accounting events, newest first.
    """
    return await get_audit_trail(db, entity_type=entity_type, entity_id=entity_id, action=action, limit=limit)
