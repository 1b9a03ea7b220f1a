"""
Flight log database model.

A logged flight is the billable unit. Charging a flight locks it;
only reversing its charge unlocks it again.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, ForeignKey
from sqlalchemy.sql import func
from backend.app.db.session import Base


class FlightLog(Base):
    """
    Flight log entry.

    Lifecycle:
        created (charged=False, locked=False)
        -> charged (charged=True, locked=True) by the charge executor
        -> uncharged again only by reversing its flight charge
    """
    __tablename__ = "flight_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    aircraft_id = Column(Integer, ForeignKey('aircraft.id'), nullable=False, index=True)
    pilot_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    copilot_id = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)
    operation_type_id = Column(Integer, ForeignKey('operation_types.id'), nullable=True)

    # Times (naive UTC)
    block_off = Column(DateTime, nullable=False)
    takeoff = Column(DateTime, nullable=False)
    landing = Column(DateTime, nullable=False)
    block_on = Column(DateTime, nullable=False)

    # Route
    icao_departure = Column(String(4), nullable=True)
    icao_destination = Column(String(4), nullable=True)
    landings = Column(Integer, default=1, nullable=False)
    passengers = Column(Integer, default=0, nullable=False)

    # Billing state
    charged = Column(Boolean, default=False, nullable=False, index=True)
    locked = Column(Boolean, default=False, nullable=False)
    needs_board_review = Column(Boolean, default=False, nullable=False)
    charged_by = Column(Integer, ForeignKey('users.id'), nullable=True)
    charged_at = Column(DateTime, nullable=True)

    # Billing hints entered with the flight
    default_cost_center_id = Column(Integer, ForeignKey('cost_centers.id'), nullable=True)
    split_cost_with_copilot = Column(Boolean, default=False, nullable=False)
    pilot_cost_percentage = Column(Float, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def flight_time_hours(self) -> float:
        """Landing minus takeoff, in hours."""
        return (self.landing - self.takeoff).total_seconds() / 3600

    @property
    def block_time_hours(self) -> float:
        """Block-on minus block-off, in hours."""
        return (self.block_on - self.block_off).total_seconds() / 3600

    @property
    def flight_time_minutes(self) -> int:
        return round(self.flight_time_hours * 60)

    def __repr__(self):
        return f"<FlightLog(id={self.id}, aircraft_id={self.aircraft_id}, charged={self.charged}, locked={self.locked})>"
