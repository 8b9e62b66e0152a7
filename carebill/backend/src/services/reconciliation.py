"""Reconciliation state machine for billable visits.

States::

    PENDING  -> APPROVED | DISPUTED | VOID
    DISPUTED -> APPROVED | VOID
    APPROVED -> INVOICED   (invoice generation only)

``override`` changes the total of a PENDING or DISPUTED visit without moving
it. INVOICED and VOID are terminal here; only voiding the parent invoice sends
an INVOICED visit back to APPROVED.

Every write is a compare-and-set on the status observed when the request read
the row, so two reviewers racing on the same visit cannot both win.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, selectinload

from carebill.backend.src.core.errors import (
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from carebill.backend.src.models import (
    BillableVisit,
    BillableVisitStatus,
    CarePackage,
    DayType,
)
from carebill.backend.src.services.calculations import (
    ZERO,
    minutes_to_hours,
    round_money,
    to_decimal,
)
from carebill.backend.src.services.metrics import billable_visit_transitions_total

LOGGER = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 200

ALLOWED_SOURCES: dict[str, frozenset[BillableVisitStatus]] = {
    "approve": frozenset({BillableVisitStatus.PENDING, BillableVisitStatus.DISPUTED}),
    "dispute": frozenset({BillableVisitStatus.PENDING}),
    "override": frozenset({BillableVisitStatus.PENDING, BillableVisitStatus.DISPUTED}),
    "void": frozenset({BillableVisitStatus.PENDING, BillableVisitStatus.DISPUTED}),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_reason(reason: str | None, action: str) -> str:
    cleaned = (reason or "").strip()
    if not cleaned:
        raise ValidationError(f"A reason is required to {action} a billable visit")
    return cleaned


def get_billable_visit(session: Session, visit_id: int) -> BillableVisit:
    visit = session.get(BillableVisit, visit_id)
    if visit is None:
        raise NotFoundError("Billable visit", visit_id)
    return visit


def _transition(
    session: Session,
    visit_id: int,
    action: str,
    values: dict[str, Any],
) -> BillableVisit:
    visit = get_billable_visit(session, visit_id)
    observed = BillableVisitStatus(visit.status)
    if observed not in ALLOWED_SOURCES[action]:
        billable_visit_transitions_total.labels(action=action, outcome="rejected").inc()
        raise StateConflictError("billable visit", visit_id, observed.value, action)

    result = session.execute(
        update(BillableVisit)
        .where(BillableVisit.id == visit_id, BillableVisit.status == observed)
        .values(**values, updated_at=_utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        session.rollback()
        current = session.scalar(
            select(BillableVisit.status).where(BillableVisit.id == visit_id)
        )
        billable_visit_transitions_total.labels(action=action, outcome="conflict").inc()
        LOGGER.warning(
            "billable_visit_transition_conflict",
            billable_visit_id=visit_id,
            action=action,
            observed=observed.value,
            current=current.value if current else None,
        )
        raise StateConflictError(
            "billable visit", visit_id, current.value if current else None, action
        )

    session.commit()
    session.refresh(visit)
    billable_visit_transitions_total.labels(action=action, outcome="ok").inc()
    LOGGER.info(
        "billable_visit_transitioned",
        billable_visit_id=visit_id,
        action=action,
        from_status=observed.value,
        to_status=BillableVisitStatus(visit.status).value,
    )
    return visit


def approve(session: Session, visit_id: int) -> BillableVisit:
    """PENDING or DISPUTED -> APPROVED."""

    return _transition(
        session,
        visit_id,
        "approve",
        {"status": BillableVisitStatus.APPROVED, "approved_at": _utcnow()},
    )


def dispute(session: Session, visit_id: int, reason: str) -> BillableVisit:
    """PENDING -> DISPUTED, keeping the reason."""

    cleaned = _require_reason(reason, "dispute")
    return _transition(
        session,
        visit_id,
        "dispute",
        {"status": BillableVisitStatus.DISPUTED, "dispute_reason": cleaned},
    )


def override(
    session: Session, visit_id: int, amount: Decimal | str | float, reason: str
) -> BillableVisit:
    """Replace the visit total, leaving status and computed components alone."""

    cleaned = _require_reason(reason, "override")
    value = to_decimal(amount)
    if value is None or not value.is_finite() or value < 0:
        raise ValidationError("Override amount must be zero or more")
    value = round_money(value)
    return _transition(
        session,
        visit_id,
        "override",
        {
            "override_amount": value,
            "override_reason": cleaned,
            "visit_total": value,
        },
    )


def void(session: Session, visit_id: int) -> BillableVisit:
    """PENDING or DISPUTED -> VOID. Invoiced visits need their invoice voided first."""

    return _transition(session, visit_id, "void", {"status": BillableVisitStatus.VOID})


def _scope_filters(
    period_start: date | None,
    period_end: date | None,
    funder_id: int | None,
) -> list[Any]:
    filters: list[Any] = []
    if period_start is not None:
        filters.append(BillableVisit.visit_date >= period_start)
    if period_end is not None:
        filters.append(BillableVisit.visit_date <= period_end)
    if funder_id is not None:
        filters.append(BillableVisit.funder_id == funder_id)
    return filters


def bulk_approve(
    session: Session,
    period_start: date,
    period_end: date,
    funder_id: int | None = None,
) -> int:
    """Approve every PENDING visit in scope; returns how many were approved."""

    if period_end < period_start:
        raise ValidationError("Period end must not be before period start")
    now = _utcnow()
    result = session.execute(
        update(BillableVisit)
        .where(
            BillableVisit.status == BillableVisitStatus.PENDING,
            *_scope_filters(period_start, period_end, funder_id),
        )
        .values(status=BillableVisitStatus.APPROVED, approved_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    session.commit()
    session.expire_all()
    approved = result.rowcount or 0
    billable_visit_transitions_total.labels(action="bulk_approve", outcome="ok").inc(approved)
    LOGGER.info(
        "billable_visits_bulk_approved",
        funder_id=funder_id,
        period_start=period_start.isoformat(),
        period_end=period_end.isoformat(),
        approved=approved,
    )
    return approved


def list_billable_visits(
    session: Session,
    *,
    period_start: date | None = None,
    period_end: date | None = None,
    funder_id: int | None = None,
    service_user_id: int | None = None,
    status: BillableVisitStatus | None = None,
    day_type: DayType | None = None,
    page: int = 1,
    limit: int = 50,
) -> dict[str, Any]:
    """Return one page of billable visits, newest first."""

    if page < 1:
        raise ValidationError("Page must be 1 or more")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")

    filters = _scope_filters(period_start, period_end, funder_id)
    if service_user_id is not None:
        filters.append(BillableVisit.service_user_id == service_user_id)
    if status is not None:
        filters.append(BillableVisit.status == status)
    if day_type is not None:
        filters.append(BillableVisit.day_type == day_type)

    total = session.scalar(select(func.count(BillableVisit.id)).where(*filters)) or 0
    items = session.scalars(
        select(BillableVisit)
        .where(*filters)
        .options(
            selectinload(BillableVisit.service_user),
            selectinload(BillableVisit.care_package).selectinload(CarePackage.funder),
        )
        .order_by(
            BillableVisit.visit_date.desc(),
            BillableVisit.billing_start.desc(),
            BillableVisit.id.desc(),
        )
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return {"items": list(items), "total": total, "page": page, "limit": limit}


def get_summary(
    session: Session,
    period_start: date,
    period_end: date,
    funder_id: int | None = None,
) -> dict[str, Any]:
    """Summarize non-VOID billable visits in scope."""

    rows = session.execute(
        select(
            BillableVisit.status,
            BillableVisit.day_type,
            BillableVisit.billing_duration_minutes,
            BillableVisit.visit_total,
        ).where(
            BillableVisit.status != BillableVisitStatus.VOID,
            *_scope_filters(period_start, period_end, funder_id),
        )
    ).all()

    total_minutes = sum(row.billing_duration_minutes for row in rows)
    total_amount = sum((row.visit_total for row in rows), ZERO)

    by_day_type = []
    for day_type in DayType:
        matching = [row for row in rows if row.day_type == day_type]
        by_day_type.append(
            {
                "day_type": day_type.value,
                "count": len(matching),
                "minutes": sum(row.billing_duration_minutes for row in matching),
                "total": sum((row.visit_total for row in matching), ZERO),
            }
        )

    by_status = [
        {
            "status": status.value,
            "count": sum(1 for row in rows if row.status == status),
        }
        for status in BillableVisitStatus
        if status != BillableVisitStatus.VOID
    ]

    return {
        "total_visits": len(rows),
        "total_hours": minutes_to_hours(total_minutes),
        "total_amount": round_money(total_amount),
        "by_status": by_status,
        "by_day_type": by_day_type,
    }


__all__ = [
    "ALLOWED_SOURCES",
    "approve",
    "bulk_approve",
    "dispute",
    "get_billable_visit",
    "get_summary",
    "list_billable_visits",
    "override",
    "void",
]
