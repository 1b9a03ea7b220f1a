"""
Centralized Test Configuration.
"""

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from backend.app.main import app
from backend.app.db.session import get_db, Base
from backend.app.core.jwt import create_access_token
from backend.app.models.aircraft import Aircraft, OperationType
from backend.app.models.airport_fee import Airport, AircraftAirportFee
from backend.app.models.billing_enums import BillingUnit
from backend.app.models.cost_center import CostCenter
from backend.app.models.enums import UserRole
from backend.app.models.flight_log import FlightLog
from backend.app.models.user import User
from backend.app.schemas.auth import Actor

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Event handler to enable foreign keys for SQLite
from sqlalchemy import event
from sqlalchemy.pool import Pool


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


@pytest.fixture(scope="session", autouse=True)
def apply_overrides():
    """Route every request's session to the in-memory database."""

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides = {}


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def session_factory():
    """Factory for a second, independent session (concurrent writers)."""
    return TestingSessionLocal


# ---------------------------------------------------------------------------
# Club data
# ---------------------------------------------------------------------------

TAKEOFF = datetime(2026, 3, 12, 14, 10)


def actor_for(user: User) -> Actor:
    return Actor(user_id=user.id, username=user.username, role=user.role)


def auth_headers(user: User) -> dict:
    token = create_access_token(data={"sub": user.username, "user_id": user.id, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_flight(db_session):
    """Factory for logged flights of the seeded aircraft."""

    async def _make_flight(aircraft_id, pilot_id, minutes=90, **overrides):
        takeoff = overrides.pop("takeoff", TAKEOFF)
        flight = FlightLog(
            aircraft_id=aircraft_id,
            pilot_id=pilot_id,
            block_off=takeoff - timedelta(minutes=5),
            takeoff=takeoff,
            landing=takeoff + timedelta(minutes=minutes),
            block_on=takeoff + timedelta(minutes=minutes + 5),
            **overrides,
        )
        db_session.add(flight)
        await db_session.commit()
        return flight

    return _make_flight


@pytest.fixture
async def club(db_session, make_flight):
    """
    A small club: board member, treasurer, two pilots, one aircraft at
    150 EUR/h, an active and an inactive cost center, and one 1:30 h flight.
    """
    board = User(email="board@club.test", username="board", name="Anna", surname="Vorstand", role=UserRole.BOARD)
    treasurer = User(email="kasse@club.test", username="treasurer", name="Tom", surname="Kasse", role=UserRole.TREASURER)
    pilot = User(email="pilot@club.test", username="pilot", name="Paul", surname="Pilot", role=UserRole.MEMBER)
    copilot = User(email="copilot@club.test", username="copilot", name="Clara", surname="Copilot", role=UserRole.MEMBER)
    training = CostCenter(name="Training", description="Instruction flights")
    ferry = CostCenter(name="Ferry", active=False)
    aircraft = Aircraft(tail_number="D-EABC", aircraft_type="C172", billing_unit=BillingUnit.HOUR, default_rate=150.0)
    db_session.add_all([board, treasurer, pilot, copilot, training, ferry, aircraft])
    await db_session.commit()

    flight = await make_flight(aircraft.id, pilot.id, copilot_id=copilot.id)

    # A rollback expires every loaded object; tests that provoke one use
    # these plain ids instead of touching expired attributes.
    return SimpleNamespace(
        board_id=board.id,
        pilot_id=pilot.id,
        copilot_id=copilot.id,
        training_id=training.id,
        ferry_id=ferry.id,
        aircraft_id=aircraft.id,
        flight_id=flight.id,
        board=board,
        treasurer=treasurer,
        pilot=pilot,
        copilot=copilot,
        training=training,
        ferry=ferry,
        aircraft=aircraft,
        flight=flight,
        actor=actor_for(board),
    )


@pytest.fixture
async def airport_fees(db_session, club):
    """Fee configuration for D-EABC at EDNY (home) and EDDS."""
    home = Airport(icao_code="EDNY", name="Friedrichshafen")
    away = Airport(icao_code="EDDS", name="Stuttgart")
    db_session.add_all([home, away])
    await db_session.commit()

    db_session.add_all([
        AircraftAirportFee(aircraft_id=club.aircraft.id, airport_id=home.id, approach_fee=5.0, landing_fee=12.0),
        AircraftAirportFee(
            aircraft_id=club.aircraft.id, airport_id=away.id,
            landing_fee=20.0, approach_fee=8.0, noise_fee=2.5, passenger_fee=4.0,
        ),
    ])
    await db_session.commit()
    return SimpleNamespace(home=home, away=away)


@pytest.fixture
async def operation_type(db_session, club):
    op = OperationType(aircraft_id=club.aircraft.id, name="Training", rate=120.0, default_cost_center_id=club.training.id)
    db_session.add(op)
    await db_session.commit()
    return op


@pytest.fixture
def headers_for():
    """Bearer headers for a member, as issued by the identity provider."""
    return auth_headers
