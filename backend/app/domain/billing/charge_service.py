"""
Charge Executor (Domain Logic).

Turns priced flights into ledger debits and marks the flight charged.

Every charge runs as one database transaction:
    1. Check the flight can be charged (exists, not under board review, not charged)
    2. Check every payer exists and is active
    3. Insert the debit(s), linked to the flight
    4. Flip charged/locked with a conditional update (WHERE charged = false)
    5. Audit
A failure at any step rolls the whole unit back, so a flight is never left
charged with only some legs posted.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.clock import utcnow
from backend.app.core.exceptions import (
    AppException,
    BillingConflictError,
    BillingValidationError,
    ResourceNotFoundError,
)
from backend.app.db.session import unit_of_work
from backend.app.domain.billing.airport_fees import calculate_airport_fees_for_flight, total_fees
from backend.app.domain.billing.pricing_resolver import PricingResolver
from backend.app.domain.billing.splits import (
    AutoDescription,
    ChargeContext,
    SplitTarget,
    TargetRef,
    allocate,
    resolve_description,
    validate_splits,
)
from backend.app.domain.ledger.repository import ledger_for
from backend.app.models.billing_enums import FeeAllocation, SplitMode, TargetType
from backend.app.models.flight_log import FlightLog
from backend.app.schemas.auth import Actor
from backend.app.services.audit import AuditAction, log_event

logger = logging.getLogger(__name__)


@dataclass
class ChargeRequest:
    """Charge a whole flight to one payer."""
    flight_id: int
    target_type: TargetType
    target_id: Optional[int]
    amount: float
    description: str


@dataclass
class SplitChargeRequest:
    """Charge a flight to several payers."""
    flight_id: int
    splits: List[SplitTarget]
    flight_amount: float
    fee_amount: float = 0.0
    mode: SplitMode = SplitMode.PERCENTAGE
    fee_allocation: FeeAllocation = FeeAllocation.SPLIT
    fee_target: Optional[TargetRef] = None
    # Only used to regenerate auto descriptions
    override_rate: Optional[float] = None
    override_enabled: bool = False


@dataclass
class BatchChargeResult:
    success_count: int = 0
    failed_count: int = 0
    errors: List[str] = field(default_factory=list)
    charged_flight_ids: List[int] = field(default_factory=list)


class ChargeService:

    @staticmethod
    async def _get_chargeable_flight(db: AsyncSession, flight_id: int) -> FlightLog:
        flight = await db.get(FlightLog, flight_id)
        if not flight:
            raise ResourceNotFoundError("Flight", flight_id)

        if flight.needs_board_review:
            raise BillingValidationError(
                "Flight requires board review before it can be charged",
                details={"flight_id": flight_id},
            )

        if flight.charged:
            raise BillingConflictError("Flight has already been charged", details={"flight_id": flight_id})

        return flight

    @staticmethod
    async def _mark_charged(db: AsyncSession, flight: FlightLog, actor: Actor) -> None:
        """
        Flip charged/locked only if the flight is still uncharged.

        A concurrent charge that got there first leaves rowcount at 0.
        """
        result = await db.execute(
            update(FlightLog)
            .where(FlightLog.id == flight.id, FlightLog.charged.is_(False))
            .values(charged=True, locked=True, charged_by=actor.user_id, charged_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise BillingConflictError("Flight has already been charged", details={"flight_id": flight.id})
        await db.refresh(flight)

    @staticmethod
    async def build_context(
        db: AsyncSession,
        flight: FlightLog,
        override_rate: Optional[float] = None,
        override_enabled: bool = False,
    ) -> ChargeContext:
        """Price the flight and itemize its fees, as shown when charging it."""
        price = await PricingResolver.resolve_flight_price(db, flight, override_rate, override_enabled)
        fee_items = await calculate_airport_fees_for_flight(
            db,
            aircraft_id=flight.aircraft_id,
            icao_departure=flight.icao_departure,
            icao_destination=flight.icao_destination,
            landings=flight.landings,
            passengers=flight.passengers,
        )
        return ChargeContext(
            tail_number=price.aircraft.tail_number,
            block_off=flight.block_off,
            flight_time_hours=flight.flight_time_hours,
            billing_unit=price.billing_unit,
            rate=price.rate,
            fee_items=tuple(fee_items),
            fee_total=total_fees(fee_items),
        )

    @staticmethod
    async def charge_flight(db: AsyncSession, actor: Actor, request: ChargeRequest):
        """
        Charge a flight to a single member account or cost center.

        The stored amount is always a debit: -|amount|.

        Returns:
            The created ledger row

        Raises:
            BillingValidationError: missing payer, empty description, board review
            BillingConflictError: flight already charged
            ResourceNotFoundError: unknown flight or payer
            LedgerPersistenceError: the store rejected a write
        """
        description = (request.description or "").strip()
        if not request.target_id:
            kind = "member" if TargetType(request.target_type) == TargetType.USER else "cost center"
            raise BillingValidationError(f"No {kind} selected")
        if not description:
            raise BillingValidationError("Description is required")

        ledger = ledger_for(request.target_type)

        async with unit_of_work(db):
            flight = await ChargeService._get_chargeable_flight(db, request.flight_id)
            await ledger.ensure_chargeable(db, request.target_id)

            row = await ledger.insert(
                db,
                owner_id=request.target_id,
                amount=-abs(request.amount) or 0.0,
                description=description,
                created_by=actor.user_id,
                flightlog_id=flight.id,
            )
            await ChargeService._mark_charged(db, flight, actor)

            await log_event(
                db,
                action=AuditAction.FLIGHT_CHARGED,
                actor=actor,
                entity_type="flight_log",
                entity_id=flight.id,
                metadata={
                    "target_type": ledger.kind.value,
                    "target_id": request.target_id,
                    "transaction_id": row.id,
                    "amount": row.amount,
                },
                commit=False,
            )

        logger.info(
            "Flight %s charged to %s %s: %.2f",
            flight.id, ledger.kind.value, request.target_id, row.amount,
        )
        return row

    @staticmethod
    async def split_charge(db: AsyncSession, actor: Actor, request: SplitChargeRequest) -> list:
        """
        Charge a flight to several payers in one unit of work.

        Validation happens before anything is written. One debit per split
        target is inserted, then the flight is flagged. If any leg fails the
        whole unit is rolled back.

        Returns:
            The created ledger rows, in split order
        """
        async with unit_of_work(db):
            flight = await ChargeService._get_chargeable_flight(db, request.flight_id)
            validate_splits(request.splits, request.mode, flight.flight_time_minutes)

            allocations = allocate(
                request.flight_amount,
                request.fee_amount,
                request.splits,
                fee_allocation=request.fee_allocation,
                fee_target=request.fee_target,
            )

            context = None
            if any(isinstance(t.description, AutoDescription) for t in request.splits):
                context = await ChargeService.build_context(
                    db, flight, request.override_rate, request.override_enabled
                )

            rows = []
            for allocation in allocations:
                target = allocation.target
                ledger = ledger_for(target.target_type)
                await ledger.ensure_chargeable(db, target.target_id)

                description = resolve_description(
                    context,
                    allocation,
                    mode=request.mode,
                    fee_allocation=request.fee_allocation,
                    split_count=len(allocations),
                ).strip()
                if not description:
                    raise BillingValidationError("Description is required for every split target")

                rows.append(await ledger.insert(
                    db,
                    owner_id=target.target_id,
                    amount=-abs(allocation.amount) or 0.0,
                    description=description,
                    created_by=actor.user_id,
                    flightlog_id=flight.id,
                ))

            await ChargeService._mark_charged(db, flight, actor)

            await log_event(
                db,
                action=AuditAction.FLIGHT_SPLIT_CHARGED,
                actor=actor,
                entity_type="flight_log",
                entity_id=flight.id,
                metadata={
                    "mode": SplitMode(request.mode).value,
                    "fee_allocation": FeeAllocation(request.fee_allocation).value,
                    "legs": [
                        {
                            "target_type": TargetType(a.target.target_type).value,
                            "target_id": a.target.target_id,
                            "percentage": a.target.percentage,
                            "transaction_id": row.id,
                            "amount": row.amount,
                        }
                        for a, row in zip(allocations, rows)
                    ],
                },
                commit=False,
            )

        logger.info("Flight %s split-charged across %d payers", flight.id, len(rows))
        return rows

    @staticmethod
    async def batch_charge(db: AsyncSession, actor: Actor, charges: Sequence[ChargeRequest]) -> BatchChargeResult:
        """
        Charge many flights, each on its own.

        Every item commits or rolls back independently; a failing item never
        affects the others. Errors keep the input order and name the item.
        """
        result = BatchChargeResult()

        for position, charge in enumerate(charges, start=1):
            try:
                await ChargeService.charge_flight(db, actor, charge)
            except AppException as exc:
                result.failed_count += 1
                result.errors.append(f"Item {position} (flight {charge.flight_id}): {exc.message}")
                logger.warning("Batch item %d (flight %s) failed: %s", position, charge.flight_id, exc.message)
                continue

            result.success_count += 1
            result.charged_flight_ids.append(charge.flight_id)

        await log_event(
            db,
            action=AuditAction.BATCH_CHARGE_COMPLETED,
            actor=actor,
            entity_type="flight_log",
            metadata={
                "success_count": result.success_count,
                "failed_count": result.failed_count,
                "charged_flight_ids": result.charged_flight_ids,
            },
        )
        return result
