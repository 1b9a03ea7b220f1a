"""
Rate & amount calculation tests.
"""

import pytest

from backend.app.domain.billing.airport_fees import calculate_airport_fees_for_flight, total_fees
from backend.app.domain.billing.pricing_resolver import PricingResolver
from backend.app.domain.billing.rates import effective_rate, flight_amount, to_cents
from backend.app.models.billing_enums import BillingUnit, RateSource


def test_override_wins_when_enabled():
    rate = effective_rate(operation_type_rate=120, aircraft_default_rate=150, override_rate=99, override_enabled=True)
    assert rate.rate == 99
    assert rate.source == RateSource.OVERRIDE
    assert rate.is_custom


def test_override_ignored_when_disabled_or_not_numeric():
    assert effective_rate(120, 150, override_rate=99, override_enabled=False).source == RateSource.OPERATION_TYPE
    assert effective_rate(120, 150, override_rate=None, override_enabled=True).source == RateSource.OPERATION_TYPE
    assert effective_rate(120, 150, override_rate=float("nan"), override_enabled=True).rate == 120


def test_rate_fallback_chain():
    assert effective_rate(None, 150).rate == 150
    assert effective_rate(None, 150).source == RateSource.AIRCRAFT
    assert effective_rate(None, None).rate == 0
    assert effective_rate(None, None).source == RateSource.NONE


def test_zero_rate_is_kept():
    """A zero operation-type rate is a free flight, not a missing rate."""
    rate = effective_rate(0, 150)
    assert rate.rate == 0
    assert rate.source == RateSource.OPERATION_TYPE


def test_flight_amount_per_hour_and_per_minute():
    assert flight_amount(1.5, BillingUnit.HOUR, 150) == pytest.approx(225.0)
    assert flight_amount(1.5, BillingUnit.MINUTE, 2.5) == pytest.approx(225.0)
    assert flight_amount(1.5, "minute", 2.5) == pytest.approx(225.0)


def test_flight_amount_is_not_rounded():
    amount = flight_amount(1 / 3, BillingUnit.HOUR, 100)
    assert amount != to_cents(amount)
    assert to_cents(amount) == 33.33


@pytest.mark.asyncio
async def test_pricing_resolver_uses_operation_type(db_session, club, operation_type):
    club.flight.operation_type_id = operation_type.id
    await db_session.commit()

    price = await PricingResolver.resolve_flight_price(db_session, club.flight)

    assert price.rate.rate == 120
    assert price.rate.source == RateSource.OPERATION_TYPE
    assert price.amount == pytest.approx(180.0)


@pytest.mark.asyncio
async def test_pricing_resolver_override(db_session, club):
    price = await PricingResolver.resolve_flight_price(db_session, club.flight, override_rate=100, override_enabled=True)
    assert price.amount == pytest.approx(150.0)
    assert price.rate.is_custom


@pytest.mark.asyncio
async def test_airport_fees_cross_country(db_session, club, airport_fees):
    items = await calculate_airport_fees_for_flight(
        db_session, club.aircraft.id, "EDNY", "EDDS", landings=2, passengers=3,
    )

    itemized = {(i.icao_code, i.fee_type): i.amount for i in items}
    assert itemized == {
        ("EDNY", "Approach"): 5.0,
        ("EDDS", "Landing (2x)"): 40.0,
        ("EDDS", "Approach"): 8.0,
        ("EDDS", "Noise"): 2.5,
        ("EDDS", "Passenger (3x)"): 12.0,
    }
    assert total_fees(items) == pytest.approx(67.5)


@pytest.mark.asyncio
async def test_airport_fees_local_flight_charges_approach_once(db_session, club, airport_fees):
    items = await calculate_airport_fees_for_flight(
        db_session, club.aircraft.id, "EDNY", "edny", landings=3, passengers=0,
    )

    assert [(i.fee_type, i.amount) for i in items] == [("Approach", 5.0), ("Landing (3x)", 36.0)]


@pytest.mark.asyncio
async def test_airport_fees_unknown_airport(db_session, club, airport_fees):
    items = await calculate_airport_fees_for_flight(db_session, club.aircraft.id, "LSZH", None, 1, 0)
    assert items == []
