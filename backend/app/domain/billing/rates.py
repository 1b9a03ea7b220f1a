"""
Rate & Amount Calculator.

Pure functions: the effective rate of a flight and the amount it costs.
Nothing is rounded here; rounding to cents happens when a transaction is
written and when values are displayed.
"""

from dataclasses import dataclass
from numbers import Real
from typing import Optional

from backend.app.models.billing_enums import BillingUnit, RateSource


@dataclass(frozen=True)
class EffectiveRate:
    """Rate applied to a flight and where it came from."""
    rate: float
    source: RateSource

    @property
    def is_custom(self) -> bool:
        return self.source == RateSource.OVERRIDE


def _is_number(value) -> bool:
    # bool is an int subclass; a checkbox value must not pass as a rate
    return isinstance(value, Real) and not isinstance(value, bool) and value == value


def effective_rate(
    operation_type_rate: Optional[float],
    aircraft_default_rate: Optional[float],
    override_rate: Optional[float] = None,
    override_enabled: bool = False,
) -> EffectiveRate:
    """
    Pick the rate for a flight.

    Priority:
    1. Operator override, if enabled and numeric
    2. Operation type rate
    3. Aircraft default rate
    4. 0 (free flight)

    Zero and negative rates are accepted as given.
    """
    if override_enabled and _is_number(override_rate):
        return EffectiveRate(float(override_rate), RateSource.OVERRIDE)

    if operation_type_rate is not None:
        return EffectiveRate(float(operation_type_rate), RateSource.OPERATION_TYPE)

    if aircraft_default_rate is not None:
        return EffectiveRate(float(aircraft_default_rate), RateSource.AIRCRAFT)

    return EffectiveRate(0.0, RateSource.NONE)


def flight_amount(flight_time_hours: float, billing_unit: BillingUnit, rate: float) -> float:
    """
    Amount for a flight.

    minute: hours * 60 * rate
    hour:   hours * rate
    """
    if BillingUnit(billing_unit) == BillingUnit.MINUTE:
        return flight_time_hours * 60 * rate
    return flight_time_hours * rate


def to_cents(amount: float) -> float:
    """Round to 2 decimals for storage and display."""
    return round(amount, 2)
