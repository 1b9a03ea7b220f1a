"""
Database seeding script for a development club.

Creates a board member, a treasurer, two members, cost centers and one
aircraft with a few uncharged flights, so the billing page has something
to charge. Run this script after the database is set up.
"""

import asyncio
import sys
from datetime import timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.app.core.clock import utcnow
from backend.app.db.session import AsyncSessionLocal, engine, Base
from backend.app.models.aircraft import Aircraft, OperationType
from backend.app.models.airport_fee import Airport, AircraftAirportFee
from backend.app.models.billing_enums import BillingUnit
from backend.app.models.cost_center import CostCenter
from backend.app.models.enums import UserRole
from backend.app.models.flight_log import FlightLog
from backend.app.models.user import User
from backend.app.models.ledger_entry import UserTransaction, CostCenterTransaction  # noqa: F401
from backend.app.models.audit_log import AuditLog  # noqa: F401
from sqlalchemy import select


async def seed_data():
    """
    Seed a small club.

    Creates:
    - 1 BOARD member, 1 TREASURER, 2 MEMBERs
    - 2 cost centers (Training, Ferry flights)
    - 1 aircraft D-EABC at 150 EUR/h with a training operation type
    - Airport fees for EDNY and EDDS
    - 3 uncharged flights
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("Starting club seeding...")

        result = await db.execute(select(User).where(User.username == "board"))
        if result.scalar_one_or_none():
            print("Club data already exists, skipping seeding")
            return

        board = User(email="board@club.local", username="board", name="Anna", surname="Berger", role=UserRole.BOARD)
        treasurer = User(email="treasurer@club.local", username="treasurer", name="Tom", surname="Kern",
                         role=UserRole.TREASURER)
        pilot = User(email="paul@club.local", username="paul", name="Paul", surname="Meier", role=UserRole.MEMBER)
        student = User(email="lena@club.local", username="lena", name="Lena", surname="Vogt", role=UserRole.MEMBER)
        training = CostCenter(name="Training", description="Instruction flights")
        ferry = CostCenter(name="Ferry flights", description="Maintenance transfers")
        aircraft = Aircraft(tail_number="D-EABC", aircraft_type="C172", billing_unit=BillingUnit.HOUR,
                            default_rate=150.0)
        home = Airport(icao_code="EDNY", name="Friedrichshafen")
        away = Airport(icao_code="EDDS", name="Stuttgart")
        db.add_all([board, treasurer, pilot, student, training, ferry, aircraft, home, away])
        await db.flush()
        print("Created members: board, treasurer, paul, lena")

        db.add(OperationType(aircraft_id=aircraft.id, name="Training", rate=135.0,
                             default_cost_center_id=training.id))
        db.add_all([
            AircraftAirportFee(aircraft_id=aircraft.id, airport_id=home.id, approach_fee=5.0, landing_fee=12.0),
            AircraftAirportFee(aircraft_id=aircraft.id, airport_id=away.id, approach_fee=8.0, landing_fee=20.0,
                               noise_fee=2.5, passenger_fee=4.0),
        ])

        takeoff = utcnow().replace(hour=9, minute=0, second=0, microsecond=0) - timedelta(days=3)
        for minutes, copilot_id, destination in ((90, student.id, "EDDS"), (45, None, "EDNY"), (60, None, "EDNY")):
            db.add(FlightLog(
                aircraft_id=aircraft.id,
                pilot_id=pilot.id,
                copilot_id=copilot_id,
                block_off=takeoff - timedelta(minutes=5),
                takeoff=takeoff,
                landing=takeoff + timedelta(minutes=minutes),
                block_on=takeoff + timedelta(minutes=minutes + 5),
                icao_departure="EDNY",
                icao_destination=destination,
                split_cost_with_copilot=copilot_id is not None,
                pilot_cost_percentage=50.0 if copilot_id else None,
            ))
            takeoff += timedelta(days=1)

        await db.commit()
        print("Created aircraft D-EABC with 3 uncharged flights")
        print("Seeding complete")


if __name__ == "__main__":
    asyncio.run(seed_data())
