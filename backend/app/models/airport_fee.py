"""
Airport and per-aircraft airport fee models.
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from backend.app.db.session import Base


class Airport(Base):
    __tablename__ = "airports"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    icao_code = Column(String(4), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)

    def __repr__(self):
        return f"<Airport(icao='{self.icao_code}', name='{self.name}')>"


class AircraftAirportFee(Base):
    """
    Fees an airport charges a specific aircraft.

    Landing fees are per landing, passenger fees per passenger,
    everything else per flight.
    """
    __tablename__ = "aircraft_airport_fees"
    __table_args__ = (
        UniqueConstraint('aircraft_id', 'airport_id', name='uq_aircraft_airport_fee'),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    aircraft_id = Column(Integer, ForeignKey('aircraft.id'), nullable=False, index=True)
    airport_id = Column(Integer, ForeignKey('airports.id'), nullable=False, index=True)

    landing_fee = Column(Float, default=0.0, nullable=False)
    approach_fee = Column(Float, default=0.0, nullable=False)
    parking_fee = Column(Float, default=0.0, nullable=False)
    noise_fee = Column(Float, default=0.0, nullable=False)
    passenger_fee = Column(Float, default=0.0, nullable=False)

    airport = relationship("Airport", lazy="joined")

    def __repr__(self):
        return f"<AircraftAirportFee(aircraft_id={self.aircraft_id}, airport_id={self.airport_id})>"
