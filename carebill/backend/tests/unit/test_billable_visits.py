"""Billable visit generation against a seeded funder."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal

import pytest
from sqlalchemy import select

from carebill.backend.src.core.errors import NotFoundError, ValidationError
from carebill.backend.src.db import session_scope
from carebill.backend.src.models import (
    BillableVisit,
    BillableVisitStatus,
    BillingTimeBasis,
    CarePackage,
    DayType,
    Funder,
    RateCard,
    RateLine,
)
from carebill.backend.src.services import billable_visits as billable_visits_service
from carebill.backend.src.services.billable_visits import (
    generate_billable_visits,
    generate_for_period,
)
from carebill.backend.src.services.reconciliation import void

MARCH = (date(2026, 3, 1), date(2026, 3, 31))


def _generate(funder_id: int, period: tuple[date, date] = MARCH):
    with session_scope() as session:
        return generate_billable_visits(session, funder_id, *period)


def _billable_for(care_visit_id: int) -> list[BillableVisit]:
    with session_scope() as session:
        return list(
            session.scalars(
                select(BillableVisit)
                .where(BillableVisit.care_visit_id == care_visit_id)
                .order_by(BillableVisit.id)
            ).all()
        )


def test_weekday_visit_is_priced_from_the_matching_band(billing_world, make_visit) -> None:
    visit_id = make_visit(datetime(2026, 3, 2, 9, 0), 60)

    result = _generate(billing_world.funder_id)

    assert (result.generated, result.total, result.skipped, result.issues) == (1, 1, 0, [])
    [billable] = _billable_for(visit_id)
    assert billable.status == BillableVisitStatus.PENDING
    assert billable.day_type == DayType.WEEKDAY
    assert billable.billing_duration_minutes == 60
    assert billable.applied_rate_per_hour == Decimal("18.50")
    assert billable.care_total == Decimal("18.50")
    assert billable.mileage_total == Decimal("0.00")
    assert billable.visit_total == Decimal("18.50")
    assert billable.rate_card_id == billing_world.rate_card_id


def test_bank_holiday_rate_applies_regardless_of_weekday(billing_world, make_visit) -> None:
    visit_id = make_visit(datetime(2026, 4, 3, 9, 0), 60)

    result = _generate(billing_world.funder_id, (date(2026, 4, 1), date(2026, 4, 30)))

    assert result.generated == 1
    [billable] = _billable_for(visit_id)
    assert billable.day_type == DayType.BANK_HOLIDAY
    assert billable.care_total == Decimal("30.00")


def test_two_carer_visit_uses_two_carer_line(billing_world, make_visit) -> None:
    visit_id = make_visit(datetime(2026, 3, 2, 9, 0), 60, carers=2)

    _generate(billing_world.funder_id)

    [billable] = _billable_for(visit_id)
    assert billable.carers_required == 2
    assert billable.care_total == Decimal("37.00")


def test_unmatched_carer_count_is_reported_as_issue(billing_world, make_visit) -> None:
    ok_id = make_visit(datetime(2026, 3, 2, 9, 0), 60)
    bad_id = make_visit(datetime(2026, 3, 3, 9, 0), 60, carers=3)

    result = _generate(billing_world.funder_id)

    assert result.generated == 1
    assert result.total == 2
    assert [issue.care_visit_id for issue in result.issues] == [bad_id]
    assert "No rate found for WEEKDAY, 09:00, 3 carer(s)" in result.issues[0].reason
    assert _billable_for(bad_id) == []
    assert len(_billable_for(ok_id)) == 1


def test_mileage_is_added_to_visit_total(billing_world, make_visit) -> None:
    visit_id = make_visit(datetime(2026, 3, 7, 14, 0), 30, miles="10")

    _generate(billing_world.funder_id)

    [billable] = _billable_for(visit_id)
    assert billable.day_type == DayType.SATURDAY
    assert billable.care_total == Decimal("10.00")
    assert billable.mileage_rate == Decimal("0.45")
    assert billable.mileage_total == Decimal("4.50")
    assert billable.visit_total == Decimal("14.50")


def test_mileage_ignored_when_package_does_not_bill_it(billing_world, make_visit) -> None:
    with session_scope() as session:
        package = session.get(CarePackage, billing_world.package_id)
        package.mileage_billable = False
    visit_id = make_visit(datetime(2026, 3, 2, 9, 0), 60, miles="10")

    _generate(billing_world.funder_id)

    [billable] = _billable_for(visit_id)
    assert billable.mileage_total == Decimal("0.00")
    assert billable.visit_total == billable.care_total


def test_package_minimum_and_rounding_shape_duration(billing_world, make_visit) -> None:
    with session_scope() as session:
        package = session.get(CarePackage, billing_world.package_id)
        package.minimum_billable_minutes = 30
        package.rounding_increment_minutes = 15
    short_id = make_visit(datetime(2026, 3, 2, 9, 0), 20)
    odd_id = make_visit(datetime(2026, 3, 3, 9, 0), 50)

    _generate(billing_world.funder_id)

    assert _billable_for(short_id)[0].billing_duration_minutes == 30
    assert _billable_for(odd_id)[0].billing_duration_minutes == 60


def test_rerun_is_idempotent(billing_world, make_visit) -> None:
    make_visit(datetime(2026, 3, 2, 9, 0), 60)
    make_visit(datetime(2026, 3, 4, 19, 0), 60)

    first = _generate(billing_world.funder_id)
    with session_scope() as session:
        before = {
            row.care_visit_id: row.visit_total
            for row in session.scalars(select(BillableVisit)).all()
        }

    second = _generate(billing_world.funder_id)

    assert first.generated == 2
    assert (second.generated, second.skipped, second.total) == (0, 2, 2)
    with session_scope() as session:
        after = {
            row.care_visit_id: row.visit_total
            for row in session.scalars(select(BillableVisit)).all()
        }
    assert after == before
    assert sorted(before.values()) == [Decimal("18.50"), Decimal("21.00")]


def test_voided_visit_can_be_regenerated(billing_world, make_visit) -> None:
    visit_id = make_visit(datetime(2026, 3, 2, 9, 0), 60)
    _generate(billing_world.funder_id)
    [original] = _billable_for(visit_id)
    with session_scope() as session:
        void(session, original.id)

    result = _generate(billing_world.funder_id)

    assert result.generated == 1
    rows = _billable_for(visit_id)
    assert [row.status for row in rows] == [
        BillableVisitStatus.VOID,
        BillableVisitStatus.PENDING,
    ]


def test_missing_holiday_year_is_an_issue_not_a_weekday(billing_world, make_visit) -> None:
    visit_id = make_visit(datetime(2027, 3, 2, 9, 0), 60)

    result = _generate(billing_world.funder_id, (date(2027, 3, 1), date(2027, 3, 31)))

    assert result.generated == 0
    assert [issue.care_visit_id for issue in result.issues] == [visit_id]
    assert "2027" in result.issues[0].reason


def test_actual_basis_needs_clock_times(billing_world, make_visit) -> None:
    with session_scope() as session:
        funder = session.get(Funder, billing_world.funder_id)
        funder.billing_time_basis = BillingTimeBasis.ACTUAL
    missing_id = make_visit(datetime(2026, 3, 2, 9, 0), 60)
    clocked_id = make_visit(
        datetime(2026, 3, 3, 9, 0),
        60,
        actual_start=datetime(2026, 3, 3, 9, 5),
        actual_end=datetime(2026, 3, 3, 9, 50),
    )

    result = _generate(billing_world.funder_id)

    assert result.generated == 1
    assert [issue.care_visit_id for issue in result.issues] == [missing_id]
    [billable] = _billable_for(clocked_id)
    assert billable.billing_start == datetime(2026, 3, 3, 9, 5)
    assert billable.billing_duration_minutes == 45


def test_future_rate_card_version_does_not_reprice_existing_period(
    billing_world, make_visit
) -> None:
    with session_scope() as session:
        card = RateCard(
            funder_id=billing_world.funder_id,
            name="Northshire April",
            effective_from=date(2026, 4, 1),
        )
        card.lines.append(
            RateLine(
                day_type=DayType.WEEKDAY,
                time_band_start=time(8, 0),
                time_band_end=time(18, 0),
                rate_per_hour=Decimal("19.75"),
                carers_required=1,
            )
        )
        session.add(card)
    march_id = make_visit(datetime(2026, 3, 31, 9, 0), 60)
    april_id = make_visit(datetime(2026, 4, 1, 9, 0), 60)

    _generate(billing_world.funder_id, (date(2026, 3, 1), date(2026, 4, 30)))

    assert _billable_for(march_id)[0].care_total == Decimal("18.50")
    assert _billable_for(april_id)[0].care_total == Decimal("19.75")


def test_generate_for_period_covers_every_active_funder(billing_world, make_visit) -> None:
    make_visit(datetime(2026, 3, 2, 9, 0), 60)
    with session_scope() as session:
        session.add(Funder(name="Quiet Trust"))

    with session_scope() as session:
        result = generate_for_period(session, *MARCH)

    assert result.generated == 1
    assert result.generated + result.skipped + len(result.issues) == result.total


def test_generate_rejects_bad_period_and_unknown_funder(billing_world) -> None:
    with session_scope() as session:
        with pytest.raises(ValidationError):
            generate_billable_visits(
                session, billing_world.funder_id, date(2026, 3, 31), date(2026, 3, 1)
            )
        with pytest.raises(NotFoundError):
            generate_billable_visits(session, 999, *MARCH)


def test_visit_without_carers_is_an_issue(billing_world, make_visit) -> None:
    visit_id = make_visit(datetime(2026, 3, 2, 9, 0), 60, carers=0)

    result = _generate(billing_world.funder_id)

    assert (result.generated, result.total) == (0, 1)
    assert [(issue.care_visit_id, issue.reason) for issue in result.issues] == [
        (visit_id, "No carers assigned")
    ]
    assert _billable_for(visit_id) == []


def test_unique_index_conflict_counts_as_already_generated(
    billing_world, make_visit, monkeypatch
) -> None:
    visit_id = make_visit(datetime(2026, 3, 2, 9, 0), 60)
    _generate(billing_world.funder_id)
    monkeypatch.setattr(
        billable_visits_service, "_already_represented", lambda session, ids: set()
    )

    result = _generate(billing_world.funder_id)

    assert (result.generated, result.skipped, result.issues) == (0, 1, [])
    assert len(_billable_for(visit_id)) == 1
