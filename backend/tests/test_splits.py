"""
Split allocator tests: validation, allocation and generated descriptions.
"""

from datetime import datetime

import pytest

from backend.app.core.exceptions import BillingValidationError
from backend.app.domain.billing.airport_fees import FeeItem
from backend.app.domain.billing.rates import EffectiveRate
from backend.app.domain.billing.splits import (
    Allocation,
    AutoDescription,
    ChargeContext,
    ManualDescription,
    SplitTarget,
    TargetRef,
    allocate,
    build_description,
    default_splits_for_flight,
    display_percentage,
    format_duration,
    minutes_to_percentage,
    percentage_to_minutes,
    resolve_description,
    validate_splits,
)
from backend.app.models.billing_enums import BillingUnit, FeeAllocation, RateSource, SplitMode, TargetType
from backend.app.models.flight_log import FlightLog


def _targets(*shares):
    return [SplitTarget(TargetType.USER, i + 1, share) for i, share in enumerate(shares)]


# ---------------------------------------------------------------------------
# Time / percentage
# ---------------------------------------------------------------------------

def test_time_mode_scenario():
    """30 and 60 minutes of a 90 minute flight."""
    assert display_percentage(minutes_to_percentage(90, 30)) == 33.33
    assert display_percentage(minutes_to_percentage(90, 60)) == 66.67

    targets = _targets(minutes_to_percentage(90, 30), minutes_to_percentage(90, 60))
    validate_splits(targets, SplitMode.TIME, 90)
    assert [percentage_to_minutes(90, t.percentage) for t in targets] == [30, 60]
    assert sum(t.percentage for t in targets) == pytest.approx(100.0)


def test_time_mode_without_flight_time_is_rejected():
    with pytest.raises(BillingValidationError, match="split by percentage"):
        validate_splits(_targets(minutes_to_percentage(0, 0)), SplitMode.TIME, 0)


def test_time_mode_rejects_missing_minutes():
    targets = _targets(minutes_to_percentage(90, 30), minutes_to_percentage(90, 45))
    with pytest.raises(BillingValidationError) as exc:
        validate_splits(targets, SplitMode.TIME, 90)
    assert "75 min assigned" in exc.value.message
    assert "90 min" in exc.value.message


@pytest.mark.parametrize("flight_minutes", [1, 37, 90, 125, 600])
@pytest.mark.parametrize("percentage", [0, 12.5, 33.33, 50, 100])
def test_time_percentage_duality(flight_minutes, percentage):
    minutes = percentage_to_minutes(flight_minutes, percentage)
    assert abs(percentage_to_minutes(flight_minutes, minutes_to_percentage(flight_minutes, minutes)) - minutes) <= 1
    assert abs(minutes_to_percentage(flight_minutes, minutes) - percentage) <= 100 / flight_minutes


def test_minutes_to_percentage_without_flight_time():
    assert minutes_to_percentage(0, 30) == 0


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def test_percentages_must_sum_to_100():
    validate_splits(_targets(60, 40), SplitMode.PERCENTAGE, 90)
    validate_splits(_targets(33.33, 33.33, 33.34), SplitMode.PERCENTAGE, 90)
    validate_splits(_targets(50, 49.995), SplitMode.PERCENTAGE, 90)

    with pytest.raises(BillingValidationError) as exc:
        validate_splits(_targets(60, 30), SplitMode.PERCENTAGE, 90)
    assert exc.value.message == "Split percentages must sum to 100% (currently 90%)"


def test_split_needs_targets():
    with pytest.raises(BillingValidationError, match="At least one split target"):
        validate_splits([], SplitMode.PERCENTAGE, 90)


def test_split_target_needs_payer():
    targets = [SplitTarget(TargetType.USER, 1, 50), SplitTarget(TargetType.COST_CENTER, None, 50)]
    with pytest.raises(BillingValidationError) as exc:
        validate_splits(targets, SplitMode.PERCENTAGE, 90)
    assert exc.value.message == "Split target 2 has no cost center selected"


# ---------------------------------------------------------------------------
# Allocation
# ---------------------------------------------------------------------------

def test_scenario_b_sixty_forty():
    allocations = allocate(225.0, 0.0, _targets(60, 40))
    assert [a.amount for a in allocations] == pytest.approx([135.0, 90.0])


@pytest.mark.parametrize("shares", [(100,), (60, 40), (33.33, 33.33, 33.34), (10, 20, 30, 40), (12.5,) * 8])
def test_split_sum_invariant(shares):
    allocations = allocate(187.37, 42.5, _targets(*shares), FeeAllocation.SPLIT)
    assert sum(a.flight_share for a in allocations) == pytest.approx(187.37, abs=1e-9)
    assert sum(a.fee_share for a in allocations) == pytest.approx(42.5, abs=1e-9)


def test_cent_remainder_goes_to_the_last_target():
    third = minutes_to_percentage(90, 30)
    allocations = allocate(1000.0, 50.0, _targets(third, third, third), FeeAllocation.SPLIT)

    assert [a.flight_share for a in allocations] == [333.33, 333.33, 333.34]
    assert [a.fee_share for a in allocations] == [16.67, 16.67, 16.66]
    assert sum(a.amount for a in allocations) == pytest.approx(1050.0, abs=1e-9)


def test_fees_assigned_to_one_target():
    targets = [SplitTarget(TargetType.USER, 1, 50), SplitTarget(TargetType.COST_CENTER, 1, 50)]

    allocations = allocate(200.0, 30.0, targets, FeeAllocation.ASSIGN, fee_target=TargetRef(TargetType.COST_CENTER, 1))

    assert [a.flight_share for a in allocations] == [100.0, 100.0]
    assert [a.fee_share for a in allocations] == [0.0, 30.0]
    assert sum(a.amount for a in allocations) == pytest.approx(230.0)


def test_assigned_fees_go_to_first_matching_target_only():
    targets = [SplitTarget(TargetType.USER, 7, 50), SplitTarget(TargetType.USER, 7, 50)]
    allocations = allocate(100.0, 10.0, targets, FeeAllocation.ASSIGN, fee_target=(TargetType.USER, 7))
    assert [a.fee_share for a in allocations] == [10.0, 0.0]


def test_assigned_fee_target_must_be_a_split_target():
    with pytest.raises(BillingValidationError, match="one of the split targets"):
        allocate(100.0, 10.0, _targets(100), FeeAllocation.ASSIGN, fee_target=TargetRef(TargetType.USER, 99))


def test_assign_without_fees_needs_no_fee_target():
    allocations = allocate(100.0, 0.0, _targets(100), FeeAllocation.ASSIGN)
    assert allocations[0].amount == 100.0


# ---------------------------------------------------------------------------
# Default splits
# ---------------------------------------------------------------------------

def test_default_split_with_copilot():
    flight = FlightLog(pilot_id=1, copilot_id=2, split_cost_with_copilot=True, pilot_cost_percentage=70)
    targets = default_splits_for_flight(flight)
    assert [(t.target_id, t.percentage) for t in targets] == [(1, 70.0), (2, 30.0)]


def test_default_split_cost_center_then_pilot():
    flight = FlightLog(pilot_id=1, default_cost_center_id=4, split_cost_with_copilot=False)
    assert [t.ref for t in default_splits_for_flight(flight)] == [TargetRef(TargetType.COST_CENTER, 4)]

    flight = FlightLog(pilot_id=1, split_cost_with_copilot=False)
    assert [t.ref for t in default_splits_for_flight(flight)] == [TargetRef(TargetType.USER, 1)]


# ---------------------------------------------------------------------------
# Descriptions
# ---------------------------------------------------------------------------

def _context(**overrides):
    values = dict(
        tail_number="D-EABC",
        block_off=datetime(2026, 3, 12, 14, 5),
        flight_time_hours=1.5,
        billing_unit=BillingUnit.HOUR,
        rate=EffectiveRate(150.0, RateSource.AIRCRAFT),
        currency="EUR",
    )
    values.update(overrides)
    return ChargeContext(**values)


def test_format_duration():
    assert format_duration(1.5) == "1:30"
    assert format_duration(0.25) == "0:15"
    assert format_duration(2) == "2:00"


def test_single_target_description():
    allocation = Allocation(SplitTarget(TargetType.USER, 1, 100), 225.0, 0.0)
    assert build_description(_context(), allocation) == (
        "Flight D-EABC 12.03.2026 14:05 (1:30 h) @ 150.00 EUR/h | total 225.00 EUR"
    )


def test_split_description_with_custom_rate_and_fees():
    context = _context(rate=EffectiveRate(100.0, RateSource.OVERRIDE), fee_total=30.0)
    allocation = Allocation(SplitTarget(TargetType.USER, 1, 60), 90.0, 18.0)

    text = build_description(context, allocation, SplitMode.PERCENTAGE, FeeAllocation.SPLIT, split_count=2)

    assert "(custom rate)" in text
    assert "share 60%" in text
    assert "airport fees 60% of 30.00 EUR" in text
    assert text.endswith("total 108.00 EUR")


def test_time_mode_description_shows_minutes():
    allocation = Allocation(SplitTarget(TargetType.USER, 1, 33.33), 75.0, 0.0)
    text = build_description(_context(), allocation, SplitMode.TIME, split_count=2)
    assert "share 30 of 90 min" in text


def test_assigned_fees_are_itemized():
    items = (FeeItem("Stuttgart", "EDDS", "Landing (1x)", 20.0), FeeItem("Stuttgart", "EDDS", "Noise", 2.5))
    context = _context(fee_items=items, fee_total=22.5)
    allocation = Allocation(SplitTarget(TargetType.USER, 1, 50), 112.5, 22.5)

    text = build_description(context, allocation, fee_allocation=FeeAllocation.ASSIGN, split_count=2)

    assert "airport fees: EDDS Landing (1x) 20.00, EDDS Noise 2.50" in text


def test_manual_description_survives_regeneration():
    manual = SplitTarget(TargetType.USER, 1, 100, ManualDescription("Checkride, paid by club"))
    auto = SplitTarget(TargetType.USER, 1, 100, AutoDescription())

    for rate in (150.0, 175.0):
        context = _context(rate=EffectiveRate(rate, RateSource.OVERRIDE))
        assert resolve_description(context, Allocation(manual, 225.0, 0.0)) == "Checkride, paid by club"
        assert f"@ {rate:.2f} EUR/h" in resolve_description(context, Allocation(auto, 225.0, 0.0))
