"""
Ledger transaction database models.

Member accounts and cost centers keep structurally identical ledgers.
The shared columns live in LedgerColumnsMixin; only the owner column differs.
"""

from sqlalchemy import Column, Integer, Float, ForeignKey, DateTime, String
from sqlalchemy.orm import declared_attr
from backend.app.core.clock import utcnow
from backend.app.db.session import Base


class LedgerColumnsMixin:
    """
    Columns shared by both ledgers.

    Sign convention: positive = credit (payment), negative = debit (charge).
    `amount` is never updated after insert; corrections are reversals.

    Reversal links:
        original.reversal_transaction_id -> reversal.id
        reversal.reverses_transaction_id -> original.id
    """

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    amount = Column(Float, nullable=False)
    description = Column(String(500), nullable=False)

    # Business date (editable within the grace window) vs. system insert time (immutable)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    inserted_at = Column(DateTime, default=utcnow, nullable=False)

    @declared_attr
    def created_by(cls):
        return Column(Integer, ForeignKey('users.id'), nullable=True)

    @declared_attr
    def flightlog_id(cls):
        return Column(Integer, ForeignKey('flight_logs.id'), nullable=True, index=True)

    # Set on the original when it is reversed
    reversed_at = Column(DateTime, nullable=True)

    @declared_attr
    def reversed_by(cls):
        return Column(Integer, ForeignKey('users.id'), nullable=True)

    @declared_attr
    def reversal_transaction_id(cls):
        return Column(Integer, ForeignKey(f'{cls.__tablename__}.id'), nullable=True)

    @declared_attr
    def reverses_transaction_id(cls):
        return Column(Integer, ForeignKey(f'{cls.__tablename__}.id'), nullable=True, index=True)

    @property
    def owner_id(self) -> int:
        return getattr(self, self.owner_column)

    def __repr__(self):
        return f"<{type(self).__name__}(id={self.id}, owner={self.owner_id}, amount={self.amount})>"


class UserTransaction(LedgerColumnsMixin, Base):
    """Member account transaction."""
    __tablename__ = "user_transactions"
    owner_column = "user_id"

    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)


class CostCenterTransaction(LedgerColumnsMixin, Base):
    """Cost center transaction."""
    __tablename__ = "cost_center_transactions"
    owner_column = "cost_center_id"

    cost_center_id = Column(Integer, ForeignKey('cost_centers.id'), nullable=False, index=True)
