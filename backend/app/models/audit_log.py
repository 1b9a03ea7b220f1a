"""
Audit Log Database Model.

Tracks every money movement and correction made through the billing engine.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from backend.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model for billing and accounting actions.

    Events logged:
    - FLIGHT_CHARGED / FLIGHT_SPLIT_CHARGED / BATCH_CHARGE_COMPLETED
    - TRANSACTION_CREATED / TRANSACTION_EDITED
    - TRANSACTION_REVERSED / FLIGHT_CHARGE_REVERSED
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for system actions)
    actor_id = Column(Integer, index=True, nullable=True)
    actor_username = Column(String(100), nullable=True)

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # What it was performed on (flight_log, user_transaction, cost_center_transaction...)
    entity_type = Column(String(50), nullable=True, index=True)
    entity_id = Column(Integer, nullable=True, index=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_username}, entity={self.entity_type}:{self.entity_id})>"
