"""
Split Allocator.

Distributes a flight amount and its airport fees across one or more payers
(member accounts or cost centers) and composes the transaction description
each payer sees.

Shares are always held as percentages. In time mode the operator enters
minutes; minutes and percentage convert through
    minutes = round(flight_minutes * pct / 100)
The percentage derived from minutes is kept unrounded; it is only rounded
to 2 decimals when shown.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, NamedTuple, Optional, Sequence, Union

from backend.app.core.config import settings
from backend.app.core.exceptions import BillingValidationError
from backend.app.domain.billing.airport_fees import FeeItem
from backend.app.domain.billing.rates import EffectiveRate, to_cents
from backend.app.models.billing_enums import BillingUnit, FeeAllocation, SplitMode, TargetType
from backend.app.models.flight_log import FlightLog


class TargetRef(NamedTuple):
    target_type: TargetType
    target_id: Optional[int]


@dataclass(frozen=True)
class AutoDescription:
    """Description is regenerated from the charge inputs."""


@dataclass(frozen=True)
class ManualDescription:
    """Operator-written description; kept until reset to auto."""
    text: str


DescriptionState = Union[AutoDescription, ManualDescription]


@dataclass
class SplitTarget:
    target_type: TargetType
    target_id: Optional[int]
    percentage: float
    description: DescriptionState = field(default_factory=AutoDescription)

    @property
    def ref(self) -> TargetRef:
        return TargetRef(TargetType(self.target_type), self.target_id)


@dataclass(frozen=True)
class Allocation:
    """A split target with its resolved share of flight amount and fees."""
    target: SplitTarget
    flight_share: float
    fee_share: float

    @property
    def amount(self) -> float:
        return self.flight_share + self.fee_share


@dataclass(frozen=True)
class ChargeContext:
    """Everything a generated description is derived from."""
    tail_number: str
    block_off: Optional[datetime]
    flight_time_hours: float
    billing_unit: BillingUnit
    rate: EffectiveRate
    fee_items: Sequence[FeeItem] = ()
    fee_total: float = 0.0
    currency: str = settings.currency

    @property
    def flight_minutes(self) -> int:
        return round(self.flight_time_hours * 60)


# ---------------------------------------------------------------------------
# Time / percentage conversion
# ---------------------------------------------------------------------------

def percentage_to_minutes(flight_minutes: int, percentage: float) -> int:
    return round(flight_minutes * percentage / 100)


def minutes_to_percentage(flight_minutes: int, minutes: float) -> float:
    """Exact percentage of the flight time. 0 for flights without time."""
    if flight_minutes <= 0:
        return 0.0
    return minutes / flight_minutes * 100


def display_percentage(percentage: float) -> float:
    """33.3333.. -> 33.33"""
    return round(percentage, 2)


# ---------------------------------------------------------------------------
# Validation and allocation
# ---------------------------------------------------------------------------

def validate_splits(targets: Sequence[SplitTarget], mode: SplitMode, flight_minutes: int) -> None:
    """
    Fail fast on split input. Nothing has been written when this raises.

    Raises:
        BillingValidationError: no targets, a target without a payer, or
            shares that don't add up to the whole flight.
    """
    if not targets:
        raise BillingValidationError("At least one split target is required")

    for position, target in enumerate(targets, start=1):
        if target.target_id in (None, "", 0):
            kind = "member" if TargetType(target.target_type) == TargetType.USER else "cost center"
            raise BillingValidationError(f"Split target {position} has no {kind} selected")

    if SplitMode(mode) == SplitMode.TIME:
        if flight_minutes <= 0:
            raise BillingValidationError(
                "Flight has no flight time; split by percentage",
                details={"flight_minutes": flight_minutes},
            )
        total_minutes = sum(percentage_to_minutes(flight_minutes, t.percentage) for t in targets)
        if total_minutes != flight_minutes:
            raise BillingValidationError(
                f"Split minutes must add up to the flight time: "
                f"{total_minutes} min assigned, flight time is {flight_minutes} min",
                details={"assigned_minutes": total_minutes, "flight_minutes": flight_minutes},
            )
        return

    total_percentage = sum(t.percentage for t in targets)
    if abs(total_percentage - 100) > settings.split_percentage_tolerance:
        raise BillingValidationError(
            f"Split percentages must sum to 100% (currently {round(total_percentage, 2):g}%)",
            details={"total_percentage": total_percentage},
        )


def allocate(
    flight_amount: float,
    fee_amount: float,
    targets: Sequence[SplitTarget],
    fee_allocation: FeeAllocation = FeeAllocation.SPLIT,
    fee_target: Optional[TargetRef] = None,
) -> List[Allocation]:
    """
    Resolve each target's amount.

    split:  (flight_amount + fee_amount) * pct / 100
    assign: flight_amount * pct / 100, plus the whole fee_amount for the
            fee target (first match only)

    Shares are rounded to cents and the last target takes the remainder,
    so the legs always add up to flight_amount + fee_amount.

    Raises:
        BillingValidationError: fees are assigned to a payer that is not a split target.
    """
    fee_allocation = FeeAllocation(fee_allocation)
    refs = [t.ref for t in targets]

    if fee_allocation == FeeAllocation.ASSIGN and fee_amount:
        if fee_target is None or TargetRef(TargetType(fee_target[0]), fee_target[1]) not in refs:
            raise BillingValidationError("Airport fees must be assigned to one of the split targets")
        fee_target = TargetRef(TargetType(fee_target[0]), fee_target[1])

    total_flight = to_cents(flight_amount)
    total_fee = to_cents(fee_amount)
    posted_flight = posted_fee = 0.0

    allocations: List[Allocation] = []
    fee_assigned = False
    for position, target in enumerate(targets, start=1):
        last = position == len(targets)

        if last:
            flight_share = to_cents(total_flight - posted_flight)
        else:
            flight_share = to_cents(total_flight * target.percentage / 100)

        if fee_allocation == FeeAllocation.SPLIT:
            if last:
                fee_share = to_cents(total_fee - posted_fee)
            else:
                fee_share = to_cents(total_fee * target.percentage / 100)
        elif not fee_assigned and target.ref == fee_target:
            fee_share = total_fee
            fee_assigned = True
        else:
            fee_share = 0.0

        posted_flight += flight_share
        posted_fee += fee_share
        allocations.append(Allocation(target=target, flight_share=flight_share, fee_share=fee_share))

    return allocations


def default_splits_for_flight(flight: FlightLog) -> List[SplitTarget]:
    """
    Initial payers as entered with the flight.

    Copilot split request -> pilot / copilot by pilot_cost_percentage.
    Default cost center   -> whole flight to the cost center.
    Otherwise             -> whole flight to the pilot.
    """
    if flight.split_cost_with_copilot and flight.copilot_id and flight.pilot_cost_percentage is not None:
        pilot_share = float(flight.pilot_cost_percentage)
        return [
            SplitTarget(TargetType.USER, flight.pilot_id, pilot_share),
            SplitTarget(TargetType.USER, flight.copilot_id, 100 - pilot_share),
        ]

    if flight.default_cost_center_id:
        return [SplitTarget(TargetType.COST_CENTER, flight.default_cost_center_id, 100.0)]

    return [SplitTarget(TargetType.USER, flight.pilot_id, 100.0)]


# ---------------------------------------------------------------------------
# Descriptions
# ---------------------------------------------------------------------------

def format_duration(hours: float) -> str:
    """1.5 -> '1:30'."""
    total_minutes = round(hours * 60)
    return f"{total_minutes // 60}:{total_minutes % 60:02d}"


def _money(amount: float, currency: str) -> str:
    return f"{to_cents(amount):.2f} {currency}"


def build_description(
    context: ChargeContext,
    allocation: Allocation,
    mode: SplitMode = SplitMode.PERCENTAGE,
    fee_allocation: FeeAllocation = FeeAllocation.SPLIT,
    split_count: int = 1,
) -> str:
    """
    Compose a payer's transaction description.

    Example:
        Flight D-EABC 12.03.2026 14:05 (1:30 h) @ 150.00 EUR/h (custom rate)
        | share 60% | airport fees 60% of 30.00 EUR | total 153.00 EUR
    """
    unit = "min" if BillingUnit(context.billing_unit) == BillingUnit.MINUTE else "h"
    parts = ["Flight", context.tail_number]
    if context.block_off is not None:
        parts.append(context.block_off.strftime("%d.%m.%Y %H:%M"))
    parts.append(f"({format_duration(context.flight_time_hours)} h)")
    parts.append(f"@ {_money(context.rate.rate, context.currency)}/{unit}")
    if context.rate.is_custom:
        parts.append("(custom rate)")
    segments = [" ".join(parts)]

    if split_count > 1:
        if SplitMode(mode) == SplitMode.TIME:
            minutes = percentage_to_minutes(context.flight_minutes, allocation.target.percentage)
            segments.append(f"share {minutes} of {context.flight_minutes} min")
        else:
            segments.append(f"share {display_percentage(allocation.target.percentage):g}%")

    if allocation.fee_share:
        if FeeAllocation(fee_allocation) == FeeAllocation.SPLIT and split_count > 1:
            share = display_percentage(allocation.target.percentage)
            segments.append(f"airport fees {share:g}% of {_money(context.fee_total, context.currency)}")
        elif context.fee_items:
            itemized = ", ".join(
                f"{item.icao_code} {item.fee_type} {to_cents(item.amount):.2f}" for item in context.fee_items
            )
            segments.append(f"airport fees: {itemized}")
        else:
            segments.append(f"airport fees {_money(allocation.fee_share, context.currency)}")

    segments.append(f"total {_money(allocation.amount, context.currency)}")
    return " | ".join(segments)


def resolve_description(
    context: ChargeContext,
    allocation: Allocation,
    mode: SplitMode = SplitMode.PERCENTAGE,
    fee_allocation: FeeAllocation = FeeAllocation.SPLIT,
    split_count: int = 1,
) -> str:
    """Manual text wins; auto descriptions are regenerated from the current inputs."""
    state = allocation.target.description
    if isinstance(state, ManualDescription):
        return state.text
    return build_description(context, allocation, mode, fee_allocation, split_count)
