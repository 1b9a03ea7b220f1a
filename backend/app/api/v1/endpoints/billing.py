"""
Billing API Endpoints.

Charging logged flights to member accounts and cost centers. Board only.

Business failures (already charged, bad split, board review...) come back
as HTTP 200 with success=false, the same result value the actions return.
"""

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from backend.app.db.session import get_db
from backend.app.schemas.auth import Actor
from backend.app.schemas.billing import (
    ActionResult,
    BatchChargeRequest,
    ChargeFlightRequest,
    FlightQuoteResponse,
    FlightResponse,
    SplitChargeFlightRequest,
)
from backend.app.core.guards import require_billing_manager
from backend.app.services import billing_actions

router = APIRouter(prefix="/billing", tags=["Billing"])


@router.get("/flights/uncharged", response_model=List[FlightResponse])
async def list_uncharged_flights(
    include_board_review: bool = Query(False, description="Also list flights waiting for board review"),
    actor: Actor = Depends(require_billing_manager),
    db: AsyncSession = Depends(get_db)
):
    """
    List flights that have not been charged yet, oldest first.
    """
    return await billing_actions.get_uncharged_flights(db, include_board_review=include_board_review)


@router.get("/flights/{flight_id}/quote", response_model=FlightQuoteResponse)
async def quote_flight(
    flight_id: int = Path(..., description="Flight ID"),
    override_rate: Optional[float] = Query(None, description="Custom rate"),
    override_enabled: bool = Query(False, description="Apply the custom rate"),
    actor: Actor = Depends(require_billing_manager),
    db: AsyncSession = Depends(get_db)
):
    """
    Price a flight: rate, amount, airport fees and the default split with
    generated descriptions. Nothing is written.
    """
    return await billing_actions.quote_flight(db, flight_id, override_rate, override_enabled)


@router.post("/flights/{flight_id}/charge/user", response_model=ActionResult)
async def charge_flight_to_user(
    request: ChargeFlightRequest,
    flight_id: int = Path(..., description="Flight ID"),
    actor: Actor = Depends(require_billing_manager),
    db: AsyncSession = Depends(get_db)
):
    """
    Charge a flight to a member account.
    """
    return await billing_actions.charge_flight_to_user(
        db, actor, flight_id, request.target_id, request.amount, request.description
    )


@router.post("/flights/{flight_id}/charge/cost-center", response_model=ActionResult)
async def charge_flight_to_cost_center(
    request: ChargeFlightRequest,
    flight_id: int = Path(..., description="Flight ID"),
    actor: Actor = Depends(require_billing_manager),
    db: AsyncSession = Depends(get_db)
):
    """
    Charge a flight to a cost center. The cost center must be active.
    """
    return await billing_actions.charge_flight_to_cost_center(
        db, actor, flight_id, request.target_id, request.amount, request.description
    )


@router.post("/flights/{flight_id}/split-charge", response_model=ActionResult)
async def split_charge_flight(
    request: SplitChargeFlightRequest,
    flight_id: int = Path(..., description="Flight ID"),
    actor: Actor = Depends(require_billing_manager),
    db: AsyncSession = Depends(get_db)
):
    """
    Charge a flight to several payers by percentage or flight minutes.

    Either every leg is posted and the flight is charged, or nothing is.
    """
    return await billing_actions.split_charge_flight(db, actor, flight_id, request)


@router.post("/batch-charge", response_model=ActionResult)
async def batch_charge_flights(
    request: BatchChargeRequest,
    actor: Actor = Depends(require_billing_manager),
    db: AsyncSession = Depends(get_db)
):
    """
    Charge many flights at once. Each flight succeeds or fails on its own;
    the result lists the failures by position and flight.
    """
    return await billing_actions.batch_charge_flights(db, actor, request.charges)
