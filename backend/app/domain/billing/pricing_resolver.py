"""
Pricing Resolver.

Loads what a flight's price depends on and applies the rate rules.
Follows priority:
1. Operator override (custom rate)
2. Operation type rate
3. Aircraft default rate
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import ResourceNotFoundError
from backend.app.domain.billing.rates import EffectiveRate, effective_rate, flight_amount
from backend.app.models.aircraft import Aircraft, OperationType
from backend.app.models.billing_enums import BillingUnit
from backend.app.models.flight_log import FlightLog


@dataclass(frozen=True)
class FlightPrice:
    """Priced flight, before fees and splits."""
    aircraft: Aircraft
    billing_unit: BillingUnit
    rate: EffectiveRate
    amount: float


class PricingResolver:

    @staticmethod
    async def resolve_flight_price(
        db: AsyncSession,
        flight: FlightLog,
        override_rate: Optional[float] = None,
        override_enabled: bool = False,
    ) -> FlightPrice:
        """
        Price a flight.

        Raises:
            ResourceNotFoundError: If the flight's aircraft no longer exists.
        """
        aircraft = await db.get(Aircraft, flight.aircraft_id)
        if not aircraft:
            raise ResourceNotFoundError("Aircraft", flight.aircraft_id)

        operation_type_rate = None
        if flight.operation_type_id is not None:
            operation_type = await db.get(OperationType, flight.operation_type_id)
            if operation_type is not None:
                operation_type_rate = operation_type.rate

        rate = effective_rate(
            operation_type_rate=operation_type_rate,
            aircraft_default_rate=aircraft.default_rate,
            override_rate=override_rate,
            override_enabled=override_enabled,
        )
        amount = flight_amount(flight.flight_time_hours, aircraft.billing_unit, rate.rate)

        return FlightPrice(
            aircraft=aircraft,
            billing_unit=aircraft.billing_unit,
            rate=rate,
            amount=amount,
        )
