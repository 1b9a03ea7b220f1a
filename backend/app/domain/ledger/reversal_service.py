"""
Reversal & Audit Engine (Domain Logic).

Ledger rows are never deleted and their amounts never change. A mistake is
corrected by a reversal: a new row with the negated amount, linked both ways
to the row it cancels. Flight charges are reversed as a whole (every leg of a
split, in both ledgers) and the flight returns to the uncharged pool.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.clock import to_naive_utc, utcnow
from backend.app.core.config import settings
from backend.app.core.exceptions import BillingConflictError, BillingValidationError
from backend.app.db.session import unit_of_work
from backend.app.domain.ledger.repository import LEDGERS, LedgerRepository
from backend.app.models.flight_log import FlightLog
from backend.app.schemas.auth import Actor
from backend.app.services.audit import AuditAction, log_event

logger = logging.getLogger(__name__)

REVERSAL_PREFIX = "REVERSAL: "


def _edit_window_label() -> str:
    minutes = settings.transaction_date_edit_window_minutes
    if minutes % 60 == 0:
        hours = minutes // 60
        return "1 hour" if hours == 1 else f"{hours} hours"
    return f"{minutes} minutes"


def _check_reversible(original) -> None:
    if original.reverses_transaction_id is not None:
        raise BillingConflictError(
            "Cannot reverse a reversal transaction",
            details={"transaction_id": original.id},
        )
    if original.reversed_at is not None:
        raise BillingConflictError(
            "Transaction has already been reversed",
            details={"transaction_id": original.id},
        )


class ReversalService:

    @staticmethod
    async def _post_reversal(
        db: AsyncSession,
        actor: Actor,
        ledger: LedgerRepository,
        original,
        when: datetime,
    ):
        reversal = await ledger.insert(
            db,
            owner_id=original.owner_id,
            amount=-original.amount,
            description=f"{REVERSAL_PREFIX}{original.description}",
            created_by=actor.user_id,
            flightlog_id=original.flightlog_id,
            reverses_transaction_id=original.id,
            created_at=when,
        )
        await ledger.mark_reversed(db, original, reversal, actor.user_id, when)
        return reversal

    @staticmethod
    async def reverse(db: AsyncSession, actor: Actor, ledger: LedgerRepository, transaction_id: int):
        """
        Reverse a single ledger row.

        Returns:
            The reversal row

        Raises:
            ResourceNotFoundError: unknown transaction
            BillingConflictError: already reversed, or itself a reversal
        """
        async with unit_of_work(db):
            original = await ledger.get_or_404(db, transaction_id)
            _check_reversible(original)

            reversal = await ReversalService._post_reversal(db, actor, ledger, original, utcnow())

            await log_event(
                db,
                action=AuditAction.TRANSACTION_REVERSED,
                actor=actor,
                entity_type=ledger.entity_type,
                entity_id=original.id,
                metadata={"reversal_transaction_id": reversal.id, "amount": reversal.amount},
                commit=False,
            )

        logger.info("%s %s reversed by %s", ledger.entity_type, original.id, reversal.id)
        return reversal

    @staticmethod
    async def reverse_flight_charge(
        db: AsyncSession,
        actor: Actor,
        ledger: LedgerRepository,
        transaction_id: int,
    ) -> List:
        """
        Reverse every open leg of a flight charge and un-charge the flight.

        The given row only identifies the flight. All original, unreversed
        rows for that flight are reversed in both ledgers, so a split charge
        can't end up half reversed. The flight flags flip back with a
        conditional update (WHERE charged = true).

        Returns:
            The reversal rows that were created
        """
        async with unit_of_work(db):
            original = await ledger.get_or_404(db, transaction_id)
            _check_reversible(original)
            if original.flightlog_id is None:
                raise BillingValidationError(
                    "This transaction is not linked to a flight",
                    details={"transaction_id": original.id},
                )

            flight_id = original.flightlog_id
            when = utcnow()
            reversals = []
            for leg_ledger in LEDGERS.values():
                for leg in await leg_ledger.list_open_flight_charges(db, flight_id):
                    reversal = await ReversalService._post_reversal(db, actor, leg_ledger, leg, when)
                    reversals.append((leg_ledger, leg, reversal))

            result = await db.execute(
                update(FlightLog)
                .where(FlightLog.id == flight_id, FlightLog.charged.is_(True))
                .values(charged=False, locked=False, charged_by=None, charged_at=None)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise BillingConflictError("Flight is not charged", details={"flight_id": flight_id})

            flight = await db.get(FlightLog, flight_id)
            if flight is not None:
                await db.refresh(flight)

            await log_event(
                db,
                action=AuditAction.FLIGHT_CHARGE_REVERSED,
                actor=actor,
                entity_type="flight_log",
                entity_id=flight_id,
                metadata={
                    "reversed": [
                        {
                            "entity_type": leg_ledger.entity_type,
                            "transaction_id": leg.id,
                            "reversal_transaction_id": reversal.id,
                            "amount": reversal.amount,
                        }
                        for leg_ledger, leg, reversal in reversals
                    ],
                },
                commit=False,
            )

        logger.info("Flight %s charge reversed (%d transaction(s)), flight unlocked", flight_id, len(reversals))
        return [reversal for _, _, reversal in reversals]

    @staticmethod
    async def edit_transaction(
        db: AsyncSession,
        actor: Actor,
        ledger: LedgerRepository,
        transaction_id: int,
        description: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ):
        """
        Edit the description and/or business date of a ledger row.

        The description can always be changed. The business date only within
        the edit window after the row was inserted. The amount is never
        editable; reverse and re-enter instead.
        """
        if description is None and created_at is None:
            raise BillingValidationError("Nothing to update")
        if description is not None and not description.strip():
            raise BillingValidationError("Description is required")

        async with unit_of_work(db):
            row = await ledger.get_or_404(db, transaction_id)

            changes = {}
            if created_at is not None:
                window = timedelta(minutes=settings.transaction_date_edit_window_minutes)
                if utcnow() - row.inserted_at >= window:
                    raise BillingValidationError(
                        f"Date can only be edited within {_edit_window_label()} of transaction creation",
                        details={"inserted_at": row.inserted_at.isoformat()},
                    )
                row.created_at = to_naive_utc(created_at)
                changes["created_at"] = row.created_at.isoformat()

            if description is not None:
                row.description = description.strip()
                changes["description"] = row.description

            await db.flush()
            await log_event(
                db,
                action=AuditAction.TRANSACTION_EDITED,
                actor=actor,
                entity_type=ledger.entity_type,
                entity_id=row.id,
                metadata=changes,
                commit=False,
            )

        return row
