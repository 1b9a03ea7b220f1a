"""
Aircraft and operation type models.

An aircraft carries a default rate and billing unit; operation types
(training, towing, private...) may override the rate per aircraft.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, ForeignKey, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.billing_enums import BillingUnit

class Aircraft(Base):
    __tablename__ = "aircraft"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    tail_number = Column(String(20), nullable=False, unique=True, index=True)
    aircraft_type = Column(String(100), nullable=True)

    # Billing configuration
    billing_unit = Column(Enum(BillingUnit), default=BillingUnit.HOUR, nullable=False)
    default_rate = Column(Float, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Aircraft(id={self.id}, tail_number='{self.tail_number}', unit='{self.billing_unit.value}')>"


class OperationType(Base):
    __tablename__ = "operation_types"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    aircraft_id = Column(Integer, ForeignKey('aircraft.id'), nullable=False, index=True)
    name = Column(String(100), nullable=False)

    # Null means "use the aircraft default rate"
    rate = Column(Float, nullable=True)
    default_cost_center_id = Column(Integer, ForeignKey('cost_centers.id'), nullable=True)
    is_default = Column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<OperationType(id={self.id}, name='{self.name}', rate={self.rate})>"
