"""Shared fixtures: a fresh SQLite schema per test and a priced demo funder."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_carebill.db")

from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from decimal import Decimal

import pytest

from carebill.backend.src.db import get_engine, session_scope
from carebill.backend.src.models import (
    BankHoliday,
    CarePackage,
    CareVisit,
    DayType,
    Funder,
    MileageRate,
    RateCard,
    RateLine,
    ServiceUser,
)
from carebill.backend.src.models.base import Base

HOLIDAYS_2026 = [
    (date(2026, 1, 1), "New Year's Day"),
    (date(2026, 1, 2), "2nd January"),
    (date(2026, 4, 3), "Good Friday"),
    (date(2026, 5, 4), "Early May bank holiday"),
    (date(2026, 12, 25), "Christmas Day"),
]


@dataclass
class BillingWorld:
    funder_id: int
    service_user_id: int
    package_id: int
    rate_card_id: int


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def billing_world() -> BillingWorld:
    """A funder with a 2026 rate card, one client on one package and holidays."""

    with session_scope() as session:
        for day, name in HOLIDAYS_2026:
            session.add(BankHoliday(holiday_date=day, name=name, region="SCOTLAND"))

        funder = Funder(name="Northshire Council", payment_terms_days=30)
        session.add(funder)
        session.flush()

        card = RateCard(
            funder_id=funder.id, name="Northshire 2026", effective_from=date(2026, 1, 1)
        )
        card.lines.extend(
            [
                RateLine(
                    day_type=DayType.WEEKDAY,
                    time_band_start=time(8, 0),
                    time_band_end=time(18, 0),
                    rate_per_hour=Decimal("18.50"),
                    carers_required=1,
                ),
                RateLine(
                    day_type=DayType.WEEKDAY,
                    time_band_start=time(18, 0),
                    time_band_end=time(8, 0),
                    rate_per_hour=Decimal("21.00"),
                    carers_required=1,
                ),
                RateLine(
                    day_type=DayType.WEEKDAY,
                    rate_per_hour=Decimal("37.00"),
                    carers_required=2,
                ),
                RateLine(
                    day_type=DayType.SATURDAY,
                    rate_per_hour=Decimal("20.00"),
                    carers_required=1,
                ),
                RateLine(
                    day_type=DayType.SUNDAY,
                    rate_per_hour=Decimal("22.00"),
                    carers_required=1,
                ),
                RateLine(
                    day_type=DayType.BANK_HOLIDAY,
                    rate_per_hour=Decimal("30.00"),
                    carers_required=1,
                ),
            ]
        )
        card.mileage_rate = MileageRate(rate_per_mile=Decimal("0.45"))
        session.add(card)

        user = ServiceUser(first_name="Agnes", last_name="Fraser")
        session.add(user)
        session.flush()
        package = CarePackage(
            service_user_id=user.id, funder_id=funder.id, package_name="Personal care"
        )
        session.add(package)
        session.flush()

        return BillingWorld(
            funder_id=funder.id,
            service_user_id=user.id,
            package_id=package.id,
            rate_card_id=card.id,
        )


@pytest.fixture()
def make_visit(billing_world: BillingWorld) -> Callable[..., int]:
    """Return a factory that logs a care visit and returns its id."""

    def _make(
        start: datetime,
        minutes: int = 60,
        *,
        carers: int = 1,
        miles: str | None = None,
        actual_start: datetime | None = None,
        actual_end: datetime | None = None,
        package_id: int | None = None,
        service_user_id: int | None = None,
    ) -> int:
        with session_scope() as session:
            visit = CareVisit(
                service_user_id=service_user_id or billing_world.service_user_id,
                care_package_id=package_id or billing_world.package_id,
                scheduled_start=start,
                scheduled_end=start + timedelta(minutes=minutes),
                actual_start=actual_start,
                actual_end=actual_end,
                carers_assigned=carers,
                mileage_miles=Decimal(miles) if miles is not None else None,
            )
            session.add(visit)
            session.flush()
            return visit.id

    return _make


@pytest.fixture()
def approved_march(
    billing_world: BillingWorld, make_visit: Callable[..., int]
) -> BillingWorld:
    """Two approved weekday visits in March 2026 totalling 37.00."""

    from carebill.backend.src.services.billable_visits import generate_billable_visits
    from carebill.backend.src.services.reconciliation import bulk_approve

    make_visit(datetime(2026, 3, 2, 9, 0))
    make_visit(datetime(2026, 3, 3, 9, 0))
    with session_scope() as session:
        result = generate_billable_visits(
            session, billing_world.funder_id, date(2026, 3, 1), date(2026, 3, 31)
        )
        assert result.generated == 2
        assert bulk_approve(session, date(2026, 3, 1), date(2026, 3, 31)) == 2
    return billing_world

