"""
Billing enumerations.
"""

import enum


class BillingUnit(str, enum.Enum):
    """How an aircraft's rate is applied to flight time."""
    HOUR = "hour"
    MINUTE = "minute"


class TargetType(str, enum.Enum):
    """Who pays for a charge."""
    USER = "user"  # Member account
    COST_CENTER = "cost_center"


class SplitMode(str, enum.Enum):
    """How split shares are entered."""
    PERCENTAGE = "percentage"
    TIME = "time"  # Shares entered as flight minutes


class FeeAllocation(str, enum.Enum):
    """How airport fees are distributed across split targets."""
    SPLIT = "split"  # Same share as the flight amount
    ASSIGN = "assign"  # Whole fee total to one target


class RateSource(str, enum.Enum):
    """Where the effective rate of a flight came from."""
    OVERRIDE = "override"
    OPERATION_TYPE = "operation_type"
    AIRCRAFT = "aircraft"
    NONE = "none"
