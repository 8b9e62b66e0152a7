"""Invoice generation from approved billable visits."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from time import perf_counter

import structlog
from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from carebill.backend.src.core.errors import (
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from carebill.backend.src.models import (
    BillableVisit,
    BillableVisitStatus,
    Funder,
    Invoice,
    InvoiceLine,
    InvoiceStatus,
)
from carebill.backend.src.services.calculations import ZERO, minutes_to_hours, round_money
from carebill.backend.src.services.metrics import (
    invoice_generation_seconds,
    invoices_generated_total,
)
from carebill.backend.src.services.numbering import next_invoice_number

LOGGER = structlog.get_logger(__name__)


@dataclass
class _LineDraft:
    service_user_id: int
    care_package_id: int
    description: str
    visits: list[BillableVisit] = field(default_factory=list)

    @property
    def care_total(self) -> Decimal:
        return sum((visit.care_total for visit in self.visits), ZERO)

    @property
    def mileage_total(self) -> Decimal:
        return sum((visit.mileage_total or ZERO for visit in self.visits), ZERO)

    @property
    def line_total(self) -> Decimal:
        return sum((visit.visit_total for visit in self.visits), ZERO)

    def to_line(self) -> InvoiceLine:
        minutes = sum(visit.billing_duration_minutes for visit in self.visits)
        miles = sum((visit.mileage_miles or ZERO for visit in self.visits), ZERO)
        care = round_money(self.care_total)
        mileage = round_money(self.mileage_total)
        total = round_money(self.line_total)
        return InvoiceLine(
            service_user_id=self.service_user_id,
            care_package_id=self.care_package_id,
            description=self.description,
            total_visits=len(self.visits),
            total_hours=minutes_to_hours(minutes),
            total_mileage=round_money(miles),
            care_total=care,
            mileage_total=mileage,
            adjustment_total=total - care - mileage,
            line_total=total,
        )


def _group_visits(visits: list[BillableVisit]) -> list[_LineDraft]:
    groups: dict[tuple[int, int], _LineDraft] = {}
    for visit in visits:
        key = (visit.service_user_id, visit.care_package_id)
        draft = groups.get(key)
        if draft is None:
            user = visit.service_user
            package = visit.care_package
            draft = _LineDraft(
                service_user_id=visit.service_user_id,
                care_package_id=visit.care_package_id,
                description=f"{user.full_name} - {package.package_name}",
            )
            groups[key] = draft
        draft.visits.append(visit)

    return sorted(
        groups.values(),
        key=lambda draft: (draft.description.lower(), draft.care_package_id),
    )


def _eligible_visits(
    session: Session, funder_id: int, period_start: date, period_end: date
) -> list[BillableVisit]:
    statement = (
        select(BillableVisit)
        .where(
            BillableVisit.funder_id == funder_id,
            BillableVisit.status == BillableVisitStatus.APPROVED,
            BillableVisit.invoice_line_id.is_(None),
            BillableVisit.visit_date >= period_start,
            BillableVisit.visit_date <= period_end,
        )
        .options(
            selectinload(BillableVisit.service_user),
            selectinload(BillableVisit.care_package),
        )
        .order_by(BillableVisit.billing_start.asc(), BillableVisit.id.asc())
        .with_for_update()
    )
    return list(session.scalars(statement).all())


def _consume_visits(session: Session, line: InvoiceLine, visit_ids: list[int]) -> None:
    """Flip the group's visits to INVOICED, failing if any moved underneath us."""

    result = session.execute(
        update(BillableVisit)
        .where(
            BillableVisit.id.in_(visit_ids),
            BillableVisit.status == BillableVisitStatus.APPROVED,
            BillableVisit.invoice_line_id.is_(None),
        )
        .values(status=BillableVisitStatus.INVOICED, invoice_line_id=line.id)
        .execution_options(synchronize_session=False)
    )
    if (result.rowcount or 0) != len(visit_ids):
        raise StateConflictError("approved visits of invoice line", line.id, None, "invoice")


def generate_invoice(
    session: Session,
    funder_id: int,
    period_start: date,
    period_end: date,
    *,
    today: date | None = None,
) -> Invoice:
    """Build one DRAFT invoice from the funder's approved, uninvoiced visits.

    The invoice, its lines and the INVOICED status of every consumed visit are
    committed together; any failure rolls all of it back.
    """

    if period_end < period_start:
        raise ValidationError("Period end must not be before period start")
    funder = session.get(Funder, funder_id)
    if funder is None:
        raise NotFoundError("Funder", funder_id)

    started = perf_counter()
    invoice_date = today or date.today()
    try:
        visits = _eligible_visits(session, funder.id, period_start, period_end)
        if not visits:
            raise ValidationError(
                "No approved uninvoiced visits found for this funder and period"
            )

        drafts = _group_visits(visits)
        invoice = Invoice(
            invoice_number=next_invoice_number(session, invoice_date),
            funder_id=funder.id,
            invoice_date=invoice_date,
            due_date=invoice_date + timedelta(days=funder.payment_terms_days),
            period_start=period_start,
            period_end=period_end,
            total=ZERO,
            paid_amount=ZERO,
            status=InvoiceStatus.DRAFT,
        )
        session.add(invoice)

        total = ZERO
        for draft in drafts:
            line = draft.to_line()
            invoice.lines.append(line)
            session.flush()
            _consume_visits(session, line, [visit.id for visit in draft.visits])
            total += line.line_total
        invoice.total = round_money(total)

        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        invoice_generation_seconds.observe(perf_counter() - started)

    session.expire_all()
    invoices_generated_total.inc()
    LOGGER.info(
        "invoice_generated",
        invoice_id=invoice.id,
        invoice_number=invoice.invoice_number,
        funder_id=funder.id,
        lines=len(drafts),
        visits=len(visits),
        total=str(invoice.total),
    )
    return invoice


__all__ = ["generate_invoice"]
