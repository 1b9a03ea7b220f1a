"""
Billing actions.

Entry points for the billing page: list uncharged flights, quote a flight,
and charge it to one payer, to several payers, or in bulk.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import ResourceNotFoundError
from backend.app.domain.billing.charge_service import (
    ChargeRequest,
    ChargeService,
    SplitChargeRequest,
)
from backend.app.domain.billing.rates import flight_amount, to_cents
from backend.app.domain.billing.splits import (
    AutoDescription,
    ManualDescription,
    SplitTarget,
    TargetRef,
    allocate,
    default_splits_for_flight,
    minutes_to_percentage,
    percentage_to_minutes,
    resolve_description,
)
from backend.app.models.billing_enums import FeeAllocation, SplitMode, TargetType
from backend.app.models.flight_log import FlightLog
from backend.app.schemas.auth import Actor
from backend.app.schemas.billing import (
    ActionResult,
    BatchChargeItem,
    BatchChargeResultResponse,
    FeeItemResponse,
    FlightQuoteResponse,
    SplitChargeFlightRequest,
    SplitPreview,
    SplitTargetIn,
)
from backend.app.services.action_result import run_action

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Read queries
# ---------------------------------------------------------------------------

async def get_uncharged_flights(db: AsyncSession, include_board_review: bool = False) -> List[FlightLog]:
    """
    Flights waiting to be charged, oldest first.

    Flights flagged for board review are left out unless asked for; they
    can't be charged until the board clears them.
    """
    query = select(FlightLog).where(FlightLog.charged.is_(False))
    if not include_board_review:
        query = query.where(FlightLog.needs_board_review.is_(False))
    query = query.order_by(FlightLog.block_off, FlightLog.id)

    result = await db.execute(query)
    return list(result.scalars().all())


async def quote_flight(
    db: AsyncSession,
    flight_id: int,
    override_rate: Optional[float] = None,
    override_enabled: bool = False,
) -> FlightQuoteResponse:
    """
    Price a flight and propose its default split with generated descriptions.

    Raises:
        ResourceNotFoundError: unknown flight or aircraft
    """
    flight = await db.get(FlightLog, flight_id)
    if not flight:
        raise ResourceNotFoundError("Flight", flight_id)

    context = await ChargeService.build_context(db, flight, override_rate, override_enabled)
    base_amount = flight_amount(context.flight_time_hours, context.billing_unit, context.rate.rate)

    targets = default_splits_for_flight(flight)
    allocations = allocate(base_amount, context.fee_total, targets, FeeAllocation.SPLIT)

    splits = [
        SplitPreview(
            target_type=a.target.target_type,
            target_id=a.target.target_id,
            percentage=a.target.percentage,
            minutes=percentage_to_minutes(context.flight_minutes, a.target.percentage),
            amount=to_cents(a.amount),
            description=resolve_description(context, a, split_count=len(allocations)),
        )
        for a in allocations
    ]

    return FlightQuoteResponse(
        flight_id=flight.id,
        tail_number=context.tail_number,
        billing_unit=context.billing_unit,
        rate=context.rate.rate,
        rate_source=context.rate.source,
        flight_time_hours=flight.flight_time_hours,
        flight_minutes=context.flight_minutes,
        flight_amount=to_cents(base_amount),
        fee_items=[
            FeeItemResponse(airport=i.airport, icao_code=i.icao_code, fee_type=i.fee_type, amount=i.amount)
            for i in context.fee_items
        ],
        fee_total=to_cents(context.fee_total),
        total=to_cents(base_amount + context.fee_total),
        currency=context.currency,
        splits=splits,
    )


# ---------------------------------------------------------------------------
# Charging
# ---------------------------------------------------------------------------

def _charged_row(row) -> dict:
    return {"transaction_id": row.id, "amount": row.amount}


async def _charge_flight(
    db: AsyncSession,
    actor: Actor,
    target_type: TargetType,
    flight_id: int,
    target_id: Optional[int],
    amount: float,
    description: str,
) -> ActionResult:
    request = ChargeRequest(
        flight_id=flight_id,
        target_type=target_type,
        target_id=target_id,
        amount=amount,
        description=description,
    )
    return await run_action(
        lambda: ChargeService.charge_flight(db, actor, request),
        message="Flight charged successfully",
        serialize=_charged_row,
    )


async def charge_flight_to_user(
    db: AsyncSession, actor: Actor, flight_id: int, user_id: Optional[int], amount: float, description: str
) -> ActionResult:
    return await _charge_flight(db, actor, TargetType.USER, flight_id, user_id, amount, description)


async def charge_flight_to_cost_center(
    db: AsyncSession, actor: Actor, flight_id: int, cost_center_id: Optional[int], amount: float, description: str
) -> ActionResult:
    return await _charge_flight(db, actor, TargetType.COST_CENTER, flight_id, cost_center_id, amount, description)


def _split_target(split: SplitTargetIn, mode: SplitMode, flight_minutes: int) -> SplitTarget:
    if mode == SplitMode.TIME:
        percentage = minutes_to_percentage(flight_minutes, split.minutes or 0)
    else:
        percentage = split.percentage or 0.0

    if split.description is not None and split.description.strip():
        description = ManualDescription(split.description.strip())
    else:
        description = AutoDescription()

    return SplitTarget(split.target_type, split.target_id, percentage, description)


async def split_charge_flight(
    db: AsyncSession, actor: Actor, flight_id: int, request: SplitChargeFlightRequest
) -> ActionResult:
    """
    Charge a flight to several payers.

    In time mode each target's minutes are turned into its percentage of the
    flight time before validation.
    """
    async def operation():
        flight = await db.get(FlightLog, flight_id)
        if not flight:
            raise ResourceNotFoundError("Flight", flight_id)

        mode = SplitMode(request.mode)
        fee_target = None
        if request.airport_fee_target_id is not None:
            fee_target = TargetRef(
                request.airport_fee_target_type or TargetType.USER,
                request.airport_fee_target_id,
            )

        split_request = SplitChargeRequest(
            flight_id=flight_id,
            splits=[_split_target(s, mode, flight.flight_time_minutes) for s in request.splits],
            flight_amount=request.flight_amount,
            fee_amount=request.airport_fees_amount,
            mode=mode,
            fee_allocation=request.airport_fee_allocation,
            fee_target=fee_target,
            override_rate=request.override_rate,
            override_enabled=request.override_enabled,
        )
        return await ChargeService.split_charge(db, actor, split_request)

    return await run_action(
        operation,
        message="Flight charged successfully",
        serialize=lambda rows: {"transactions": [_charged_row(r) for r in rows]},
    )


async def batch_charge_flights(db: AsyncSession, actor: Actor, charges: List[BatchChargeItem]) -> ActionResult:
    """
    Charge many flights at once.

    Always succeeds as a whole; per-flight failures are counted and listed
    in the result data.
    """
    requests = [
        ChargeRequest(
            flight_id=item.flight_id,
            target_type=item.target_type,
            target_id=item.target_id,
            amount=item.amount,
            description=item.description,
        )
        for item in charges
    ]
    result = await ChargeService.batch_charge(db, actor, requests)

    logger.info(
        "Batch charge by %s: %d charged, %d failed",
        actor.username, result.success_count, result.failed_count,
    )
    return ActionResult(
        success=True,
        message=f"{result.success_count} flight(s) charged, {result.failed_count} failed",
        data=BatchChargeResultResponse(
            success_count=result.success_count,
            failed_count=result.failed_count,
            errors=result.errors,
        ),
    )
