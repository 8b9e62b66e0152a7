"""Bank holiday calendar and day-type classification."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

import structlog
from sqlalchemy import extract, select
from sqlalchemy.orm import Session

from carebill.backend.src.core.errors import HolidayCalendarUnavailableError
from carebill.backend.src.models import BankHoliday, DayType

LOGGER = structlog.get_logger(__name__)


@dataclass(frozen=True)
class HolidayCalendar:
    """Holiday dates for one region, restricted to the years that were loaded.

    A year is available when the region has at least one holiday recorded in it;
    asking about any other year fails closed.
    """

    region: str
    holidays: frozenset[date] = field(default_factory=frozenset)
    available_years: frozenset[int] = field(default_factory=frozenset)

    def is_holiday(self, day: date) -> bool:
        if day.year not in self.available_years:
            raise HolidayCalendarUnavailableError(self.region, day.year)
        return day in self.holidays


def classify_day_type(day: date, calendar: HolidayCalendar) -> DayType:
    """Classify ``day``; bank holidays win over the day of the week."""

    if calendar.is_holiday(day):
        return DayType.BANK_HOLIDAY
    weekday = day.weekday()
    if weekday == 5:
        return DayType.SATURDAY
    if weekday == 6:
        return DayType.SUNDAY
    return DayType.WEEKDAY


def load_holiday_calendar(
    session: Session, region: str, years: Iterable[int]
) -> HolidayCalendar:
    """Load the holidays of ``region`` for ``years`` from the database."""

    wanted = sorted(set(years))
    if not wanted:
        return HolidayCalendar(region=region)

    rows = session.scalars(
        select(BankHoliday.holiday_date).where(
            BankHoliday.region == region,
            extract("year", BankHoliday.holiday_date).in_(wanted),
        )
    ).all()
    holidays = frozenset(rows)
    available = frozenset(day.year for day in holidays)
    missing = [year for year in wanted if year not in available]
    if missing:
        LOGGER.warning("holiday_calendar_years_missing", region=region, years=missing)
    return HolidayCalendar(region=region, holidays=holidays, available_years=available)


def list_bank_holidays(
    session: Session, *, year: int | None = None, region: str | None = None
) -> list[BankHoliday]:
    """Return bank holidays ordered by date, optionally filtered."""

    statement = select(BankHoliday).order_by(BankHoliday.holiday_date.asc())
    if year is not None:
        statement = statement.where(
            BankHoliday.holiday_date >= date(year, 1, 1),
            BankHoliday.holiday_date <= date(year, 12, 31),
        )
    if region:
        statement = statement.where(BankHoliday.region == region)
    return list(session.scalars(statement).all())


def import_bank_holidays(
    session: Session, holidays: Iterable[tuple[date, str, str]]
) -> int:
    """Insert ``(date, name, region)`` rows, skipping ones already present.

    Returns the number of rows created.
    """

    incoming = {(day, region): name for day, name, region in holidays}
    if not incoming:
        return 0

    existing = {
        (holiday_date, region)
        for holiday_date, region in session.execute(
            select(BankHoliday.holiday_date, BankHoliday.region).where(
                BankHoliday.holiday_date.in_({day for day, _ in incoming})
            )
        )
    }
    created = 0
    for (day, region), name in sorted(incoming.items()):
        if (day, region) in existing:
            continue
        session.add(BankHoliday(holiday_date=day, name=name, region=region))
        created += 1
    session.commit()
    LOGGER.info("bank_holidays_imported", created=created, received=len(incoming))
    return created


__all__ = [
    "HolidayCalendar",
    "classify_day_type",
    "import_bank_holidays",
    "list_bank_holidays",
    "load_holiday_calendar",
]
