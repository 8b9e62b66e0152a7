"""Utilities for seeding development data."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from carebill.backend.src.models import (
    CarePackage,
    CareVisit,
    DayType,
    Funder,
    MileageRate,
    RateCard,
    RateLine,
    ServiceUser,
)
from carebill.backend.src.services.holiday_calendar import import_bank_holidays

DEFAULT_FUNDER_NAME = "Demo City Council"
DEFAULT_REGION = "SCOTLAND"

SCOTLAND_2026 = [
    (date(2026, 1, 1), "New Year's Day"),
    (date(2026, 1, 2), "2nd January"),
    (date(2026, 4, 3), "Good Friday"),
    (date(2026, 5, 4), "Early May bank holiday"),
    (date(2026, 5, 25), "Spring bank holiday"),
    (date(2026, 8, 3), "Summer bank holiday"),
    (date(2026, 11, 30), "St Andrew's Day"),
    (date(2026, 12, 25), "Christmas Day"),
    (date(2026, 12, 28), "Boxing Day (substitute day)"),
]

DEMO_RATES = [
    (DayType.WEEKDAY, time(7, 0), time(20, 0), "24.50", 1),
    (DayType.WEEKDAY, time(20, 0), time(7, 0), "27.00", 1),
    (DayType.WEEKDAY, None, None, "46.00", 2),
    (DayType.SATURDAY, None, None, "28.00", 1),
    (DayType.SUNDAY, None, None, "30.00", 1),
    (DayType.BANK_HOLIDAY, None, None, "36.75", 1),
]


@dataclass
class SeedResult:
    """Information about the seeded funder and care records."""

    funder: Funder
    service_user: ServiceUser
    funder_created: bool
    holidays_created: int
    visits_created: int


def _demo_rate_card(funder: Funder, effective_from: date) -> RateCard:
    card = RateCard(
        funder_id=funder.id,
        name=f"{funder.name} {effective_from.year} rates",
        effective_from=effective_from,
        is_active=True,
    )
    for day_type, start, end, rate, carers in DEMO_RATES:
        card.lines.append(
            RateLine(
                day_type=day_type,
                time_band_start=start,
                time_band_end=end,
                rate_per_hour=Decimal(rate),
                carers_required=carers,
            )
        )
    card.mileage_rate = MileageRate(rate_per_mile=Decimal("0.45"), description="HMRC rate")
    return card


def seed_development_data(
    session: Session,
    *,
    funder_name: str = DEFAULT_FUNDER_NAME,
    month: date = date(2026, 3, 1),
) -> SeedResult:
    """Ensure a demo funder, rate card, holiday calendar and a month of visits exist.

    Visits are only added the first time the funder is created, so re-running
    leaves existing data alone.
    """

    holidays_created = import_bank_holidays(
        session, [(day, name, DEFAULT_REGION) for day, name in SCOTLAND_2026]
    )

    funder = session.scalar(select(Funder).where(Funder.name == funder_name))
    if funder is not None:
        service_user = session.scalar(
            select(ServiceUser)
            .join(CarePackage, CarePackage.service_user_id == ServiceUser.id)
            .where(CarePackage.funder_id == funder.id)
        )
        assert service_user is not None
        return SeedResult(
            funder=funder,
            service_user=service_user,
            funder_created=False,
            holidays_created=holidays_created,
            visits_created=0,
        )

    funder = Funder(name=funder_name, payment_terms_days=30, holiday_region=DEFAULT_REGION)
    session.add(funder)
    session.flush()
    session.add(_demo_rate_card(funder, date(month.year, 1, 1)))

    service_user = ServiceUser(first_name="Margaret", last_name="Brown")
    session.add(service_user)
    session.flush()
    package = CarePackage(
        service_user_id=service_user.id,
        funder_id=funder.id,
        package_name="Personal care",
        minimum_billable_minutes=30,
        rounding_increment_minutes=15,
    )
    session.add(package)
    session.flush()

    visits_created = 0
    day = month
    while day.month == month.month:
        for hour in (8, 18):
            start = datetime.combine(day, time(hour, 0))
            session.add(
                CareVisit(
                    service_user_id=service_user.id,
                    care_package_id=package.id,
                    scheduled_start=start,
                    scheduled_end=start + timedelta(minutes=45),
                    carers_assigned=1,
                    mileage_miles=Decimal("3.2"),
                )
            )
            visits_created += 1
        day += timedelta(days=1)
    session.flush()

    return SeedResult(
        funder=funder,
        service_user=service_user,
        funder_created=True,
        holidays_created=holidays_created,
        visits_created=visits_created,
    )
