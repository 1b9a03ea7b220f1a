"""
Ledger persistence adapters.

One LedgerRepository per ledger table. The billing engine only talks to
these adapters, so split, reversal and balance logic exist once for both
member accounts and cost centers.
"""

from datetime import datetime
from typing import Optional, Type

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.clock import utcnow
from backend.app.core.exceptions import BillingValidationError, ResourceNotFoundError
from backend.app.domain.billing.rates import to_cents
from backend.app.models.billing_enums import TargetType
from backend.app.models.cost_center import CostCenter
from backend.app.models.ledger_entry import CostCenterTransaction, LedgerColumnsMixin, UserTransaction
from backend.app.models.user import User


class LedgerRepository:

    def __init__(self, kind: TargetType, model: Type[LedgerColumnsMixin], owner_model, entity_type: str):
        self.kind = kind
        self.model = model
        self.owner_model = owner_model
        self.entity_type = entity_type

    @property
    def owner_column(self):
        return getattr(self.model, self.model.owner_column)

    @property
    def owner_label(self) -> str:
        return "User" if self.kind == TargetType.USER else "Cost center"

    # -- owners -------------------------------------------------------------

    async def get_owner(self, db: AsyncSession, owner_id: int):
        owner = await db.get(self.owner_model, owner_id)
        if owner is None:
            raise ResourceNotFoundError(self.owner_label, owner_id)
        return owner

    async def ensure_chargeable(self, db: AsyncSession, owner_id: int):
        """
        Owner must exist and be able to receive new entries.

        Raises:
            ResourceNotFoundError: unknown owner
            BillingValidationError: inactive cost center / member
        """
        owner = await self.get_owner(db, owner_id)
        if self.kind == TargetType.COST_CENTER and not owner.active:
            raise BillingValidationError(f'Cost center "{owner.name}" is not active')
        if self.kind == TargetType.USER and not owner.is_active:
            raise BillingValidationError(f"Member {owner.display_name} is not active")
        return owner

    # -- rows ---------------------------------------------------------------

    async def get(self, db: AsyncSession, transaction_id: int):
        return await db.get(self.model, transaction_id)

    async def get_or_404(self, db: AsyncSession, transaction_id: int):
        row = await self.get(db, transaction_id)
        if row is None:
            raise ResourceNotFoundError("Transaction", transaction_id)
        return row

    async def insert(
        self,
        db: AsyncSession,
        owner_id: int,
        amount: float,
        description: str,
        created_by: Optional[int],
        flightlog_id: Optional[int] = None,
        reverses_transaction_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
    ):
        """Add a row and flush it so its id is available. Amounts are stored in cents precision."""
        now = utcnow()
        row = self.model(
            amount=to_cents(amount) or 0.0,
            description=description,
            created_by=created_by,
            flightlog_id=flightlog_id,
            reverses_transaction_id=reverses_transaction_id,
            created_at=created_at or now,
            inserted_at=now,
        )
        setattr(row, self.model.owner_column, owner_id)
        db.add(row)
        await db.flush()
        return row

    async def mark_reversed(self, db: AsyncSession, original, reversal, reversed_by: Optional[int], when: datetime):
        original.reversed_at = when
        original.reversed_by = reversed_by
        original.reversal_transaction_id = reversal.id
        await db.flush()

    async def list_for_owner(self, db: AsyncSession, owner_id: int) -> list:
        """All rows of an owner, newest first (business date, then insert order)."""
        result = await db.execute(
            select(self.model)
            .where(self.owner_column == owner_id)
            .order_by(self.model.created_at.desc(), self.model.id.desc())
        )
        return list(result.scalars().all())

    async def list_open_flight_charges(self, db: AsyncSession, flightlog_id: int) -> list:
        """Original (non-reversal), not yet reversed rows of a flight."""
        result = await db.execute(
            select(self.model)
            .where(
                self.model.flightlog_id == flightlog_id,
                self.model.reverses_transaction_id.is_(None),
                self.model.reversed_at.is_(None),
            )
            .order_by(self.model.id)
        )
        return list(result.scalars().all())


USER_LEDGER = LedgerRepository(TargetType.USER, UserTransaction, User, "user_transaction")
COST_CENTER_LEDGER = LedgerRepository(TargetType.COST_CENTER, CostCenterTransaction, CostCenter, "cost_center_transaction")

LEDGERS = {
    TargetType.USER: USER_LEDGER,
    TargetType.COST_CENTER: COST_CENTER_LEDGER,
}


def ledger_for(kind: TargetType) -> LedgerRepository:
    return LEDGERS[TargetType(kind)]
