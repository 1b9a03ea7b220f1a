"""
Billing schemas.

Request and response models for charging flights.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, List, Optional
from backend.app.models.billing_enums import BillingUnit, FeeAllocation, RateSource, SplitMode, TargetType


class ActionResult(BaseModel):
    """
    Outcome of a billing or accounting action.

    Business failures come back as success=False with an error message,
    never as an exception.
    """
    success: bool
    error: Optional[str] = None
    error_code: Optional[str] = None
    message: Optional[str] = None
    data: Optional[Any] = None


class FlightResponse(BaseModel):
    """Schema for a logged flight as shown on the billing page."""
    id: int
    aircraft_id: int
    pilot_id: int
    copilot_id: Optional[int]
    operation_type_id: Optional[int]
    block_off: datetime
    takeoff: datetime
    landing: datetime
    block_on: datetime
    flight_time_hours: float
    block_time_hours: float
    icao_departure: Optional[str]
    icao_destination: Optional[str]
    landings: int
    passengers: int
    charged: bool
    locked: bool
    needs_board_review: bool
    default_cost_center_id: Optional[int]
    split_cost_with_copilot: bool
    pilot_cost_percentage: Optional[float]

    class Config:
        from_attributes = True


class FeeItemResponse(BaseModel):
    """One itemized airport fee."""
    airport: str
    icao_code: str
    fee_type: str
    amount: float


class SplitPreview(BaseModel):
    """A default split target with its resolved amount and generated description."""
    target_type: TargetType
    target_id: int
    percentage: float
    minutes: int
    amount: float
    description: str


class FlightQuoteResponse(BaseModel):
    """What charging a flight would cost, before anything is written."""
    flight_id: int
    tail_number: str
    billing_unit: BillingUnit
    rate: float
    rate_source: RateSource
    flight_time_hours: float
    flight_minutes: int
    flight_amount: float
    fee_items: List[FeeItemResponse] = []
    fee_total: float
    total: float
    currency: str
    splits: List[SplitPreview] = []


class ChargeFlightRequest(BaseModel):
    """Charge a whole flight to one member or cost center."""
    target_id: Optional[int] = None
    amount: float
    description: str = Field(..., max_length=500)


class SplitTargetIn(BaseModel):
    """
    One payer of a split charge.

    percentage is used in percentage mode, minutes in time mode. A
    description marks the target's text as manually written; leave it out
    to have it generated.
    """
    target_type: TargetType
    target_id: Optional[int] = None
    percentage: Optional[float] = Field(None, ge=0, le=100)
    minutes: Optional[int] = Field(None, ge=0)
    description: Optional[str] = Field(None, max_length=500)


class SplitChargeFlightRequest(BaseModel):
    """Charge a flight to several payers."""
    splits: List[SplitTargetIn]
    flight_amount: float
    airport_fees_amount: float = 0.0
    mode: SplitMode = SplitMode.PERCENTAGE
    airport_fee_allocation: FeeAllocation = FeeAllocation.SPLIT
    airport_fee_target_type: Optional[TargetType] = None
    airport_fee_target_id: Optional[int] = None
    override_rate: Optional[float] = None
    override_enabled: bool = False


class BatchChargeItem(BaseModel):
    """One flight of a batch charge."""
    flight_id: int
    target_type: TargetType = TargetType.USER
    target_id: Optional[int] = None
    amount: float
    description: str = Field("", max_length=500)


class BatchChargeRequest(BaseModel):
    charges: List[BatchChargeItem]


class BatchChargeResultResponse(BaseModel):
    """Aggregate outcome of a batch charge; errors keep the input order."""
    success_count: int
    failed_count: int
    errors: List[str] = []
