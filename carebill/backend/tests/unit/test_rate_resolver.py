from __future__ import annotations

from datetime import date, time
from decimal import Decimal

import pytest

from carebill.backend.src.core.errors import (
    AmbiguousRateError,
    HolidayCalendarUnavailableError,
    NoMatchingRateError,
    NoRateCardError,
    RateResolutionError,
)
from carebill.backend.src.models import DayType, RateCard, RateLine
from carebill.backend.src.services.holiday_calendar import (
    HolidayCalendar,
    classify_day_type,
)
from carebill.backend.src.services.rate_resolver import (
    RateRule,
    band_specificity,
    pick_rate_rule,
    select_rate_card,
)

CALENDAR = HolidayCalendar(
    region="SCOTLAND",
    holidays=frozenset({date(2026, 4, 3), date(2026, 12, 25)}),
    available_years=frozenset({2026}),
)


def _rule(
    line_id: int,
    rate: str,
    start: time | None = None,
    end: time | None = None,
    *,
    day_type: DayType = DayType.WEEKDAY,
    carers: int = 1,
) -> RateRule:
    return RateRule(
        line_id=line_id,
        day_type=day_type,
        band_start=start,
        band_end=end,
        rate_per_hour=Decimal(rate),
        carers_required=carers,
    )


def _card(name: str, effective_from: date, *, active: bool = True) -> RateCard:
    return RateCard(name=name, effective_from=effective_from, is_active=active)


def test_classify_day_type_prefers_bank_holiday_over_weekday() -> None:
    assert classify_day_type(date(2026, 4, 3), CALENDAR) == DayType.BANK_HOLIDAY
    assert classify_day_type(date(2026, 3, 2), CALENDAR) == DayType.WEEKDAY
    assert classify_day_type(date(2026, 3, 7), CALENDAR) == DayType.SATURDAY
    assert classify_day_type(date(2026, 3, 8), CALENDAR) == DayType.SUNDAY


def test_classify_day_type_fails_closed_for_unloaded_year() -> None:
    with pytest.raises(HolidayCalendarUnavailableError) as excinfo:
        classify_day_type(date(2027, 3, 1), CALENDAR)
    assert excinfo.value.year == 2027


def test_select_rate_card_picks_latest_in_force_and_ignores_future() -> None:
    old = _card("2025", date(2025, 4, 1))
    current = _card("2026", date(2026, 1, 1))
    future = _card("2027", date(2027, 1, 1))
    inactive = _card("draft", date(2026, 2, 1), active=False)

    chosen = select_rate_card([old, current, future, inactive], date(2026, 3, 2))

    assert chosen is current
    assert select_rate_card([old, current], date(2025, 12, 31)) is old


def test_select_rate_card_without_card_in_force() -> None:
    with pytest.raises(NoRateCardError):
        select_rate_card([_card("2027", date(2027, 1, 1))], date(2026, 3, 2))


def test_select_rate_card_same_effective_date_is_ambiguous() -> None:
    cards = [_card("A", date(2026, 1, 1)), _card("B", date(2026, 1, 1))]
    with pytest.raises(AmbiguousRateError):
        select_rate_card(cards, date(2026, 3, 2))


def test_pick_rate_rule_narrowest_band_wins_over_all_day() -> None:
    all_day = _rule(1, "19.00")
    daytime = _rule(2, "18.50", time(8, 0), time(18, 0))
    morning = _rule(3, "20.00", time(7, 0), time(10, 0))

    assert pick_rate_rule([all_day, daytime, morning], DayType.WEEKDAY, time(9, 0), 1) is morning
    assert pick_rate_rule([all_day, daytime, morning], DayType.WEEKDAY, time(12, 0), 1) is daytime
    assert pick_rate_rule([all_day, daytime, morning], DayType.WEEKDAY, time(19, 0), 1) is all_day


def test_pick_rate_rule_band_end_is_exclusive_and_overnight_wraps() -> None:
    daytime = _rule(1, "18.50", time(8, 0), time(18, 0))
    night = _rule(2, "21.00", time(18, 0), time(8, 0))
    rules = [daytime, night]

    assert pick_rate_rule(rules, DayType.WEEKDAY, time(18, 0), 1) is night
    assert pick_rate_rule(rules, DayType.WEEKDAY, time(23, 30), 1) is night
    assert pick_rate_rule(rules, DayType.WEEKDAY, time(7, 59), 1) is night
    assert pick_rate_rule(rules, DayType.WEEKDAY, time(8, 0), 1) is daytime


def test_pick_rate_rule_requires_exact_carer_count() -> None:
    single = _rule(1, "18.50", time(8, 0), time(18, 0))
    double = _rule(2, "37.00", carers=2)

    assert pick_rate_rule([single, double], DayType.WEEKDAY, time(9, 0), 2) is double
    with pytest.raises(NoMatchingRateError) as excinfo:
        pick_rate_rule([single, double], DayType.WEEKDAY, time(9, 0), 3)
    assert "3 carer(s)" in str(excinfo.value)


def test_pick_rate_rule_equal_bands_are_ambiguous() -> None:
    first = _rule(1, "18.50", time(8, 0), time(18, 0))
    second = _rule(2, "19.50", time(9, 0), time(19, 0))

    with pytest.raises(AmbiguousRateError):
        pick_rate_rule([first, second], DayType.WEEKDAY, time(10, 0), 1)


def test_pick_rate_rule_reports_missing_day_type() -> None:
    with pytest.raises(NoMatchingRateError):
        pick_rate_rule([_rule(1, "18.50")], DayType.SUNDAY, time(10, 0), 1)


def test_band_specificity_orders_narrow_before_wide() -> None:
    rules = [
        _rule(1, "1.00"),
        _rule(2, "1.00", time(22, 0), time(6, 0)),
        _rule(3, "1.00", time(8, 0), time(9, 0)),
    ]
    assert [rule.line_id for rule in sorted(rules, key=band_specificity)] == [3, 2, 1]


def test_rate_rule_rejects_half_open_band() -> None:
    line = RateLine(
        id=7,
        day_type=DayType.WEEKDAY,
        time_band_start=time(8, 0),
        time_band_end=None,
        rate_per_hour=Decimal("18.50"),
        carers_required=1,
    )
    with pytest.raises(RateResolutionError):
        RateRule.from_line(line)
