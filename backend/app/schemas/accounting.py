"""
Accounting schemas.

Manual ledger entries, corrections and balance views for member accounts
and cost centers.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class ManualTransactionCreate(BaseModel):
    """
    Manual payment, charge, credit or adjustment.

    For payments, credits and charges the sign comes from the kind of entry;
    adjustments keep the sign given here.
    """
    amount: float
    description: str = Field(..., max_length=500)
    created_at: Optional[datetime] = None


class TransactionEdit(BaseModel):
    """Editable fields of a ledger row. The amount is not one of them."""
    description: Optional[str] = Field(None, max_length=500)
    created_at: Optional[datetime] = None


class TransactionResponse(BaseModel):
    """Ledger row with the owner's balance as of this row."""
    id: int
    kind: str  # manual, flight_charge or reversal
    owner_id: int
    amount: float
    description: str
    created_at: datetime
    inserted_at: datetime
    created_by: Optional[int]
    flightlog_id: Optional[int]
    reversed_at: Optional[datetime]
    reversed_by: Optional[int]
    reversal_transaction_id: Optional[int]
    reverses_transaction_id: Optional[int]
    running_balance: float


class UserBalanceResponse(BaseModel):
    """Member account balance."""
    user_id: int
    username: str
    name: Optional[str]
    surname: Optional[str]
    is_active: bool
    balance: float
    transaction_count: int
    last_transaction_at: Optional[datetime]


class CostCenterTotalResponse(BaseModel):
    """Cost center with the sum of its ledger."""
    id: int
    name: str
    description: Optional[str]
    active: bool
    total_amount: float
    transaction_count: int


class AuditLogResponse(BaseModel):
    """Audit trail entry."""
    id: int
    actor_id: Optional[int]
    actor_username: Optional[str]
    action: str
    entity_type: Optional[str]
    entity_id: Optional[int]
    meta_data: Optional[dict]
    timestamp: datetime

    class Config:
        from_attributes = True
