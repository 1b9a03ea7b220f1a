"""
Cost Center database model.

Cost centers absorb charges that are not paid by a member
(e.g. training, maintenance ferry flights, marketing flights).
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func
from backend.app.db.session import Base


class CostCenter(Base):
    __tablename__ = "cost_centers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), nullable=False, unique=True)
    description = Column(String(500), nullable=True)

    # Inactive cost centers cannot receive new charges
    active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<CostCenter(id={self.id}, name='{self.name}', active={self.active})>"
