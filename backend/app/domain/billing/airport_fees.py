"""
Airport fee calculation.

Departure airport: approach fee.
Destination airport: landing fee per landing, approach fee (only when it
differs from the departure), parking, noise, and passenger fee per passenger.
Zero fees are left out of the itemization.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.airport_fee import AircraftAirportFee, Airport


@dataclass(frozen=True)
class FeeItem:
    """One itemized airport fee."""
    airport: str
    icao_code: str
    fee_type: str
    amount: float


def itemize_fees(
    departure_fee: Optional[AircraftAirportFee],
    destination_fee: Optional[AircraftAirportFee],
    same_airport: bool,
    landings: int,
    passengers: int,
) -> List[FeeItem]:
    """Build the itemized fee list from the fee configurations of both airports."""
    items: List[FeeItem] = []

    if departure_fee is not None and departure_fee.approach_fee > 0:
        items.append(_item(departure_fee, "Approach", departure_fee.approach_fee))

    if destination_fee is not None:
        fee = destination_fee
        if fee.landing_fee > 0:
            items.append(_item(fee, f"Landing ({landings}x)", fee.landing_fee * landings))
        if fee.approach_fee > 0 and not same_airport:
            items.append(_item(fee, "Approach", fee.approach_fee))
        if fee.parking_fee > 0:
            items.append(_item(fee, "Parking", fee.parking_fee))
        if fee.noise_fee > 0:
            items.append(_item(fee, "Noise", fee.noise_fee))
        if fee.passenger_fee > 0 and passengers > 0:
            items.append(_item(fee, f"Passenger ({passengers}x)", fee.passenger_fee * passengers))

    return items


def total_fees(items: Iterable[FeeItem]) -> float:
    return sum(item.amount for item in items)


def _item(fee: AircraftAirportFee, fee_type: str, amount: float) -> FeeItem:
    return FeeItem(
        airport=fee.airport.name,
        icao_code=fee.airport.icao_code,
        fee_type=fee_type,
        amount=amount,
    )


async def _fee_config(db: AsyncSession, icao_code: Optional[str], aircraft_id: int) -> Optional[AircraftAirportFee]:
    if not icao_code:
        return None
    result = await db.execute(
        select(AircraftAirportFee)
        .join(Airport, AircraftAirportFee.airport_id == Airport.id)
        .where(
            Airport.icao_code == icao_code.upper(),
            AircraftAirportFee.aircraft_id == aircraft_id,
        )
    )
    return result.unique().scalar_one_or_none()


async def calculate_airport_fees_for_flight(
    db: AsyncSession,
    aircraft_id: int,
    icao_departure: Optional[str],
    icao_destination: Optional[str],
    landings: int,
    passengers: int,
) -> List[FeeItem]:
    """
    Itemized airport fees for a flight of the given aircraft.

    Airports without a fee configuration for the aircraft contribute nothing.
    """
    departure_fee = await _fee_config(db, icao_departure, aircraft_id)
    destination_fee = await _fee_config(db, icao_destination, aircraft_id)
    same_airport = bool(icao_departure) and (icao_departure or "").upper() == (icao_destination or "").upper()

    return itemize_fees(
        departure_fee=departure_fee,
        destination_fee=destination_fee,
        same_airport=same_airport,
        landings=landings,
        passengers=passengers,
    )
