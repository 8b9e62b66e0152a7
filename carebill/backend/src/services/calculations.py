"""Calculation helpers."""

from __future__ import annotations

import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: object | None) -> Decimal | None:
    """Convert value to Decimal."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Decimal) -> Decimal:
    """Round to pence, halves away from zero."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def billing_duration_minutes(
    start: datetime,
    end: datetime,
    minimum_minutes: int = 0,
    rounding_increment_minutes: int = 0,
) -> int:
    """Return the billable minutes between ``start`` and ``end``.

    The raw duration is raised to ``minimum_minutes`` and then rounded up to the
    next multiple of ``rounding_increment_minutes``; an increment of zero rounds
    up to whole minutes.
    """
    raw_minutes = max(0.0, (end - start).total_seconds() / 60)
    after_minimum = max(raw_minutes, float(minimum_minutes or 0))
    if not rounding_increment_minutes or rounding_increment_minutes <= 0:
        return math.ceil(after_minimum)
    increments = math.ceil(after_minimum / rounding_increment_minutes)
    return increments * rounding_increment_minutes


def care_total(rate_per_hour: Decimal, duration_minutes: int) -> Decimal:
    """Compute the care charge for a duration at an hourly rate."""
    return round_money(rate_per_hour * Decimal(duration_minutes) / Decimal(60))


def mileage_total(miles: Decimal | None, rate_per_mile: Decimal | None) -> Decimal:
    """Compute the mileage charge; zero when either input is missing."""
    if not miles or rate_per_mile is None:
        return ZERO
    return round_money(miles * rate_per_mile)


def minutes_to_hours(minutes: int) -> Decimal:
    """Convert minutes to hours with two decimal places."""
    return round_money(Decimal(minutes) / Decimal(60))


__all__ = [
    "CENT",
    "ZERO",
    "billing_duration_minutes",
    "care_total",
    "mileage_total",
    "minutes_to_hours",
    "round_money",
    "to_decimal",
]
