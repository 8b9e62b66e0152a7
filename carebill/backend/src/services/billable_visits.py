"""Billable visit generation.

Turns logged care visits into priced billable visits in PENDING status. A run
is idempotent: visits that already have a non-VOID billable visit are skipped,
and a duplicate caught by the database's partial unique index is treated as
already generated rather than as a failure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from carebill.backend.src.core.errors import (
    HolidayCalendarUnavailableError,
    NotFoundError,
    RateResolutionError,
    ValidationError,
)
from carebill.backend.src.models import (
    BillableVisit,
    BillableVisitStatus,
    BillingTimeBasis,
    CarePackage,
    CareVisit,
    Funder,
)
from carebill.backend.src.services.calculations import (
    billing_duration_minutes,
    care_total,
    mileage_total,
)
from carebill.backend.src.services.holiday_calendar import load_holiday_calendar
from carebill.backend.src.services.metrics import (
    billable_visits_generated_total,
    generation_issues_total,
)
from carebill.backend.src.services.rate_resolver import RateResolver

LOGGER = structlog.get_logger(__name__)


@dataclass
class GenerationIssue:
    care_visit_id: int
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"care_visit_id": self.care_visit_id, "reason": self.reason}


@dataclass
class GenerationResult:
    """Outcome of a generation run.

    ``total`` counts every care visit in scope, so
    ``generated + skipped + len(issues) == total``.
    """

    generated: int = 0
    total: int = 0
    skipped: int = 0
    issues: list[GenerationIssue] = field(default_factory=list)

    def merge(self, other: "GenerationResult") -> "GenerationResult":
        return GenerationResult(
            generated=self.generated + other.generated,
            total=self.total + other.total,
            skipped=self.skipped + other.skipped,
            issues=[*self.issues, *other.issues],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated": self.generated,
            "total": self.total,
            "skipped": self.skipped,
            "issues": [issue.to_dict() for issue in self.issues],
        }


def _validate_period(period_start: date, period_end: date) -> None:
    if period_end < period_start:
        raise ValidationError("Period end must not be before period start")


def _period_bounds(period_start: date, period_end: date) -> tuple[datetime, datetime]:
    """Return the half-open datetime range covering both dates inclusively."""

    lower = datetime.combine(period_start, time.min)
    upper = datetime.combine(period_end + timedelta(days=1), time.min)
    return lower, upper


def _relevant_timestamp(basis: BillingTimeBasis):  # type: ignore[no-untyped-def]
    if basis == BillingTimeBasis.ACTUAL:
        return func.coalesce(CareVisit.actual_start, CareVisit.scheduled_start)
    return CareVisit.scheduled_start


def _billing_window(
    visit: CareVisit, basis: BillingTimeBasis
) -> tuple[datetime, datetime] | str:
    """Return the billing window or the reason none is usable."""

    if basis == BillingTimeBasis.ACTUAL:
        if visit.actual_start is None or visit.actual_end is None:
            return "Missing actual clock-in/out for ACTUAL billing"
        start, end = visit.actual_start, visit.actual_end
    else:
        if visit.scheduled_start is None or visit.scheduled_end is None:
            return "Missing scheduled start/end for SCHEDULED billing"
        start, end = visit.scheduled_start, visit.scheduled_end
    if end <= start:
        return f"Billing window ends before it starts ({start:%H:%M}-{end:%H:%M})"
    return start, end


def _eligible_visits(
    session: Session,
    funder: Funder,
    period_start: date,
    period_end: date,
    service_user_id: int | None,
) -> list[CareVisit]:
    lower, upper = _period_bounds(period_start, period_end)
    relevant = _relevant_timestamp(funder.billing_time_basis)
    statement = (
        select(CareVisit)
        .join(CarePackage, CareVisit.care_package_id == CarePackage.id)
        .where(
            CarePackage.funder_id == funder.id,
            relevant >= lower,
            relevant < upper,
        )
        .options(selectinload(CareVisit.care_package))
        .order_by(relevant.asc(), CareVisit.id.asc())
    )
    if service_user_id is not None:
        statement = statement.where(CareVisit.service_user_id == service_user_id)
    return list(session.scalars(statement).all())


def _already_represented(session: Session, care_visit_ids: list[int]) -> set[int]:
    if not care_visit_ids:
        return set()
    rows = session.scalars(
        select(BillableVisit.care_visit_id).where(
            BillableVisit.care_visit_id.in_(care_visit_ids),
            BillableVisit.status != BillableVisitStatus.VOID,
        )
    ).all()
    return set(rows)


def generate_billable_visits(
    session: Session,
    funder_id: int,
    period_start: date,
    period_end: date,
    *,
    service_user_id: int | None = None,
) -> GenerationResult:
    """Materialize billable visits for one funder and period and commit them."""

    _validate_period(period_start, period_end)
    funder = session.get(Funder, funder_id)
    if funder is None:
        raise NotFoundError("Funder", funder_id)

    basis = BillingTimeBasis(funder.billing_time_basis)
    visits = _eligible_visits(session, funder, period_start, period_end, service_user_id)
    result = GenerationResult(total=len(visits))
    if not visits:
        return result

    represented = _already_represented(session, [visit.id for visit in visits])
    years = range(period_start.year, period_end.year + 1)
    calendar = load_holiday_calendar(session, funder.holiday_region, years)
    resolver = RateResolver.for_funder(session, funder.id, calendar)

    for visit in visits:
        if visit.id in represented:
            result.skipped += 1
            continue

        window = _billing_window(visit, basis)
        if isinstance(window, str):
            result.issues.append(GenerationIssue(visit.id, window))
            continue
        billing_start, billing_end = window
        carers = visit.carers_assigned
        if carers is None or carers < 1:
            result.issues.append(GenerationIssue(visit.id, "No carers assigned"))
            continue

        try:
            resolved = resolver.resolve(billing_start.date(), billing_start.time(), carers)
        except (RateResolutionError, HolidayCalendarUnavailableError) as exc:
            result.issues.append(GenerationIssue(visit.id, str(exc)))
            continue

        package = visit.care_package
        assert package is not None
        minutes = billing_duration_minutes(
            billing_start,
            billing_end,
            package.minimum_billable_minutes,
            package.rounding_increment_minutes,
        )
        care = care_total(resolved.rate_per_hour, minutes)
        mileage_rate = resolved.mileage_rate_per_mile if package.mileage_billable else None
        mileage = mileage_total(visit.mileage_miles, mileage_rate)

        billable = BillableVisit(
            care_visit_id=visit.id,
            care_package_id=package.id,
            service_user_id=visit.service_user_id,
            funder_id=funder.id,
            rate_card_id=resolved.rate_card_id,
            rate_line_id=resolved.rate_line_id,
            visit_date=billing_start.date(),
            day_type=resolved.day_type,
            billing_start=billing_start,
            billing_end=billing_end,
            billing_duration_minutes=minutes,
            carers_required=carers,
            applied_rate_per_hour=resolved.rate_per_hour,
            care_total=care,
            mileage_miles=visit.mileage_miles,
            mileage_rate=mileage_rate if visit.mileage_miles else None,
            mileage_total=mileage,
            visit_total=care + mileage,
            status=BillableVisitStatus.PENDING,
        )
        try:
            with session.begin_nested():
                session.add(billable)
        except IntegrityError:
            LOGGER.info("billable_visit_already_generated", care_visit_id=visit.id)
            result.skipped += 1
            continue
        result.generated += 1

    session.commit()

    billable_visits_generated_total.inc(result.generated)
    if result.issues:
        generation_issues_total.inc(len(result.issues))
    LOGGER.info(
        "billable_visits_generated",
        funder_id=funder.id,
        period_start=period_start.isoformat(),
        period_end=period_end.isoformat(),
        generated=result.generated,
        skipped=result.skipped,
        issues=len(result.issues),
        total=result.total,
    )
    return result


def generate_for_period(
    session: Session,
    period_start: date,
    period_end: date,
    funder_id: int | None = None,
    *,
    service_user_id: int | None = None,
) -> GenerationResult:
    """Generate for one funder, or for every active funder when none is given."""

    _validate_period(period_start, period_end)
    if funder_id is not None:
        return generate_billable_visits(
            session, funder_id, period_start, period_end, service_user_id=service_user_id
        )

    funder_ids = session.scalars(
        select(Funder.id).where(Funder.is_active.is_(True)).order_by(Funder.id)
    ).all()
    result = GenerationResult()
    for current_id in funder_ids:
        result = result.merge(
            generate_billable_visits(
                session,
                current_id,
                period_start,
                period_end,
                service_user_id=service_user_id,
            )
        )
    return result


__all__ = [
    "GenerationIssue",
    "GenerationResult",
    "generate_billable_visits",
    "generate_for_period",
]
