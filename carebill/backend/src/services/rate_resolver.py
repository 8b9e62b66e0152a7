"""Rate resolution for billable visits.

Given a funder's rate cards, a visit date, the billing-window start time and
the number of carers, pick exactly one hourly rate:

1. the active card with the latest ``effective_from`` on or before the date;
2. lines of the date's day type;
3. whose time band contains the start time (no band means all day);
4. whose ``carers_required`` equals the carer count;
5. the narrowest band among what is left; a remaining tie is an error.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from carebill.backend.src.core.errors import (
    AmbiguousRateError,
    NoMatchingRateError,
    NoRateCardError,
    RateResolutionError,
)
from carebill.backend.src.models import DayType, RateCard, RateLine
from carebill.backend.src.services.holiday_calendar import (
    HolidayCalendar,
    classify_day_type,
)

LOGGER = structlog.get_logger(__name__)

MINUTES_PER_DAY = 24 * 60


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


@dataclass(frozen=True)
class RateRule:
    """A validated rate line, detached from the ORM session."""

    line_id: int
    day_type: DayType
    band_start: time | None
    band_end: time | None
    rate_per_hour: Decimal
    carers_required: int

    @classmethod
    def from_line(cls, line: RateLine) -> "RateRule":
        if (line.time_band_start is None) != (line.time_band_end is None):
            raise RateResolutionError(
                f"Rate line {line.id} has only one end of its time band"
            )
        if line.carers_required is None or line.carers_required < 1:
            raise RateResolutionError(f"Rate line {line.id} requires no carers")
        if line.rate_per_hour is None or line.rate_per_hour < 0:
            raise RateResolutionError(f"Rate line {line.id} has no valid hourly rate")
        return cls(
            line_id=line.id,
            day_type=DayType(line.day_type),
            band_start=line.time_band_start,
            band_end=line.time_band_end,
            rate_per_hour=Decimal(line.rate_per_hour),
            carers_required=int(line.carers_required),
        )

    @property
    def is_all_day(self) -> bool:
        return (
            self.band_start is None
            or self.band_end is None
            or _minutes(self.band_start) == _minutes(self.band_end)
        )

    @property
    def band_minutes(self) -> int:
        """Width of the band; all-day lines are the widest possible."""

        if self.is_all_day:
            return MINUTES_PER_DAY
        assert self.band_start is not None and self.band_end is not None
        return (_minutes(self.band_end) - _minutes(self.band_start)) % MINUTES_PER_DAY

    def covers(self, at: time) -> bool:
        """Return True when ``at`` falls in ``[band_start, band_end)``.

        Bands whose start is after their end wrap past midnight.
        """

        if self.is_all_day:
            return True
        assert self.band_start is not None and self.band_end is not None
        moment = _minutes(at)
        start = _minutes(self.band_start)
        end = _minutes(self.band_end)
        if start < end:
            return start <= moment < end
        return moment >= start or moment < end

    def describe_band(self) -> str:
        if self.is_all_day:
            return "all day"
        assert self.band_start is not None and self.band_end is not None
        return f"{self.band_start:%H:%M}-{self.band_end:%H:%M}"


def band_specificity(rule: RateRule) -> int:
    """Sort key for the tie-break: narrower bands come first."""

    return rule.band_minutes


@dataclass(frozen=True)
class ResolvedRate:
    rate_per_hour: Decimal
    mileage_rate_per_mile: Decimal | None
    rate_line_id: int
    rate_card_id: int
    day_type: DayType


def select_rate_card(cards: Iterable[RateCard], visit_date: date) -> RateCard:
    """Return the active card in force on ``visit_date``."""

    in_force = [
        card
        for card in cards
        if card.is_active and card.effective_from <= visit_date
    ]
    if not in_force:
        raise NoRateCardError(f"No active rate card in force on {visit_date:%Y-%m-%d}")
    latest = max(card.effective_from for card in in_force)
    current = [card for card in in_force if card.effective_from == latest]
    if len(current) > 1:
        names = ", ".join(sorted(card.name for card in current))
        raise AmbiguousRateError(
            f"Several active rate cards take effect on {latest:%Y-%m-%d}: {names}"
        )
    return current[0]


def pick_rate_rule(
    rules: Sequence[RateRule], day_type: DayType, start_time: time, carers: int
) -> RateRule:
    """Apply the matching and tie-break rules to a card's lines."""

    day_rules = [rule for rule in rules if rule.day_type == day_type]
    if not day_rules:
        raise NoMatchingRateError(f"No rate line for {day_type.value}")

    in_band = [rule for rule in day_rules if rule.covers(start_time)]
    if not in_band:
        raise NoMatchingRateError(
            f"No {day_type.value} rate line covers {start_time:%H:%M}"
        )

    headcount = [rule for rule in in_band if rule.carers_required == carers]
    if not headcount:
        raise NoMatchingRateError(
            f"No rate found for {day_type.value}, {start_time:%H:%M}, {carers} carer(s)"
        )

    ranked = sorted(headcount, key=band_specificity)
    narrowest = band_specificity(ranked[0])
    tied = [rule for rule in ranked if band_specificity(rule) == narrowest]
    if len(tied) > 1:
        ids = ", ".join(str(rule.line_id) for rule in tied)
        raise AmbiguousRateError(
            f"Rate lines {ids} all match {day_type.value}, {start_time:%H:%M}, "
            f"{carers} carer(s) with the same {tied[0].describe_band()} band"
        )
    return ranked[0]


class RateResolver:
    """Resolves rates for one funder from a preloaded set of rate cards."""

    def __init__(self, rate_cards: Sequence[RateCard], calendar: HolidayCalendar) -> None:
        self._cards = list(rate_cards)
        self._calendar = calendar
        self._rules: dict[int, list[RateRule]] = {}

    @classmethod
    def for_funder(
        cls, session: Session, funder_id: int, calendar: HolidayCalendar
    ) -> "RateResolver":
        cards = session.scalars(
            select(RateCard)
            .where(RateCard.funder_id == funder_id)
            .options(selectinload(RateCard.lines), selectinload(RateCard.mileage_rate))
        ).all()
        return cls(cards, calendar)

    def _rules_for(self, card: RateCard) -> list[RateRule]:
        if card.id not in self._rules:
            self._rules[card.id] = [RateRule.from_line(line) for line in card.lines]
        return self._rules[card.id]

    def resolve(self, visit_date: date, start_time: time, carers: int) -> ResolvedRate:
        card = select_rate_card(self._cards, visit_date)
        day_type = classify_day_type(visit_date, self._calendar)
        rule = pick_rate_rule(self._rules_for(card), day_type, start_time, carers)
        mileage = card.mileage_rate.rate_per_mile if card.mileage_rate else None
        return ResolvedRate(
            rate_per_hour=rule.rate_per_hour,
            mileage_rate_per_mile=mileage,
            rate_line_id=rule.line_id,
            rate_card_id=card.id,
            day_type=day_type,
        )


__all__ = [
    "RateResolver",
    "RateRule",
    "ResolvedRate",
    "band_specificity",
    "pick_rate_rule",
    "select_rate_card",
]
