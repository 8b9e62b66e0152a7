"""Invoice lifecycle: send, payments, void, write-off and overdue status.

States::

    DRAFT          -> SENT | VOID
    SENT           -> PAID | PARTIALLY_PAID | OVERDUE | VOID | WRITTEN_OFF
    PARTIALLY_PAID -> PAID | OVERDUE | WRITTEN_OFF
    OVERDUE        -> PAID | PARTIALLY_PAID | VOID (unpaid only) | WRITTEN_OFF

PAID, VOID and WRITTEN_OFF are terminal. OVERDUE is derived from the due date
and an explicit ``as_of`` day; ``sweep_overdue`` persists it in bulk.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import and_, func, not_, or_, select, update
from sqlalchemy.orm import Session, selectinload

from carebill.backend.src.core.errors import (
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from carebill.backend.src.models import (
    BillableVisit,
    BillableVisitStatus,
    CreditNote,
    CreditNoteStatus,
    Invoice,
    InvoiceLine,
    InvoicePayment,
    InvoiceStatus,
)
from carebill.backend.src.services.calculations import ZERO, round_money, to_decimal
from carebill.backend.src.services.metrics import invoice_transitions_total

LOGGER = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 200

OPEN_STATUSES = frozenset({InvoiceStatus.SENT, InvoiceStatus.PARTIALLY_PAID})
UNPAID_STATUSES = frozenset(
    {InvoiceStatus.SENT, InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.OVERDUE}
)

ALLOWED_SOURCES: dict[str, frozenset[InvoiceStatus]] = {
    "send": frozenset({InvoiceStatus.DRAFT}),
    "mark_paid": UNPAID_STATUSES,
    "void": frozenset({InvoiceStatus.DRAFT, InvoiceStatus.SENT, InvoiceStatus.OVERDUE}),
    "write_off": UNPAID_STATUSES,
}


def derive_status(invoice: Invoice, as_of: date) -> InvoiceStatus:
    """Return the status the invoice should read as on ``as_of``."""

    status = InvoiceStatus(invoice.status)
    if (
        status in OPEN_STATUSES
        and invoice.due_date < as_of
        and invoice.outstanding > ZERO
    ):
        return InvoiceStatus.OVERDUE
    return status


def _overdue_clause(as_of: date):
    return or_(
        Invoice.status == InvoiceStatus.OVERDUE,
        and_(
            Invoice.status.in_(OPEN_STATUSES),
            Invoice.due_date < as_of,
            Invoice.paid_amount < Invoice.total,
        ),
    )


def _status_filter(status: InvoiceStatus, as_of: date):
    if status == InvoiceStatus.OVERDUE:
        return _overdue_clause(as_of)
    if status in OPEN_STATUSES:
        return and_(Invoice.status == status, not_(_overdue_clause(as_of)))
    return Invoice.status == status


def get_invoice(session: Session, invoice_id: int) -> Invoice:
    invoice = session.scalar(
        select(Invoice)
        .where(Invoice.id == invoice_id)
        .options(
            selectinload(Invoice.funder),
            selectinload(Invoice.lines).selectinload(InvoiceLine.billable_visits),
            selectinload(Invoice.payments),
            selectinload(Invoice.credit_notes),
        )
    )
    if invoice is None:
        raise NotFoundError("Invoice", invoice_id)
    return invoice


def _load_for_action(session: Session, invoice_id: int, action: str) -> tuple[Invoice, InvoiceStatus]:
    invoice = session.get(Invoice, invoice_id)
    if invoice is None:
        raise NotFoundError("Invoice", invoice_id)
    observed = InvoiceStatus(invoice.status)
    if observed not in ALLOWED_SOURCES[action]:
        invoice_transitions_total.labels(action=action, outcome="rejected").inc()
        raise StateConflictError("invoice", invoice_id, observed.value, action)
    return invoice, observed


def _compare_and_set(
    session: Session,
    invoice_id: int,
    observed: InvoiceStatus,
    action: str,
    values: dict[str, Any],
) -> None:
    result = session.execute(
        update(Invoice)
        .where(Invoice.id == invoice_id, Invoice.status == observed)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        session.rollback()
        current = session.scalar(select(Invoice.status).where(Invoice.id == invoice_id))
        invoice_transitions_total.labels(action=action, outcome="conflict").inc()
        LOGGER.warning(
            "invoice_transition_conflict",
            invoice_id=invoice_id,
            action=action,
            observed=observed.value,
            current=current.value if current else None,
        )
        raise StateConflictError(
            "invoice", invoice_id, current.value if current else None, action
        )


def _finish(
    session: Session, invoice: Invoice, observed: InvoiceStatus, action: str, **context: Any
) -> Invoice:
    session.commit()
    session.refresh(invoice)
    invoice_transitions_total.labels(action=action, outcome="ok").inc()
    LOGGER.info(
        "invoice_transitioned",
        invoice_id=invoice.id,
        invoice_number=invoice.invoice_number,
        action=action,
        from_status=observed.value,
        to_status=InvoiceStatus(invoice.status).value,
        **context,
    )
    return invoice


def send(session: Session, invoice_id: int, *, today: date | None = None) -> Invoice:
    """DRAFT -> SENT."""

    invoice, observed = _load_for_action(session, invoice_id, "send")
    _compare_and_set(
        session,
        invoice_id,
        observed,
        "send",
        {"status": InvoiceStatus.SENT, "sent_date": today or date.today()},
    )
    return _finish(session, invoice, observed, "send")


def mark_paid(
    session: Session,
    invoice_id: int,
    paid_date: date,
    paid_amount: Decimal | str | float,
    reference: str | None = None,
) -> Invoice:
    """Record a payment; PAID once payments cover the total, else PARTIALLY_PAID."""

    amount = to_decimal(paid_amount)
    if amount is None or not amount.is_finite() or amount <= 0:
        raise ValidationError("Paid amount must be greater than zero")
    amount = round_money(amount)

    invoice, observed = _load_for_action(session, invoice_id, "mark_paid")
    paid_so_far = round_money(invoice.paid_amount or ZERO) + amount
    status = (
        InvoiceStatus.PAID if paid_so_far >= invoice.total else InvoiceStatus.PARTIALLY_PAID
    )
    values: dict[str, Any] = {
        "status": status,
        "paid_amount": paid_so_far,
        "paid_date": paid_date,
    }
    # Each payment keeps its own reference; the invoice shows the latest one given.
    if reference:
        values["payment_reference"] = reference
    _compare_and_set(session, invoice_id, observed, "mark_paid", values)
    session.add(
        InvoicePayment(
            invoice_id=invoice_id, paid_date=paid_date, amount=amount, reference=reference
        )
    )
    return _finish(
        session, invoice, observed, "mark_paid", amount=str(amount), paid_total=str(paid_so_far)
    )


def void(session: Session, invoice_id: int) -> Invoice:
    """Void the invoice and release its visits back to APPROVED.

    An invoice with a SENT credit note cannot be voided; its DRAFT credit
    notes are voided with it. All writes share one transaction, so a released
    visit is never left pointing at a live invoice line.
    """

    invoice, observed = _load_for_action(session, invoice_id, "void")
    if observed == InvoiceStatus.OVERDUE and (invoice.paid_amount or ZERO) > ZERO:
        invoice_transitions_total.labels(action="void", outcome="rejected").inc()
        raise StateConflictError("invoice", invoice_id, observed.value, "void")
    sent_credits = session.scalar(
        select(func.count(CreditNote.id)).where(
            CreditNote.invoice_id == invoice_id,
            CreditNote.status == CreditNoteStatus.SENT,
        )
    )
    if sent_credits:
        invoice_transitions_total.labels(action="void", outcome="rejected").inc()
        LOGGER.info(
            "invoice_void_blocked_by_credit_notes",
            invoice_id=invoice_id,
            sent_credit_notes=sent_credits,
        )
        raise StateConflictError(
            "invoice with sent credit notes", invoice_id, observed.value, "void"
        )

    _compare_and_set(
        session,
        invoice_id,
        observed,
        "void",
        {"status": InvoiceStatus.VOID, "voided_at": datetime.now(timezone.utc)},
    )
    line_ids = select(InvoiceLine.id).where(InvoiceLine.invoice_id == invoice_id)
    released = session.execute(
        update(BillableVisit)
        .where(
            BillableVisit.invoice_line_id.in_(line_ids),
            BillableVisit.status == BillableVisitStatus.INVOICED,
        )
        .values(status=BillableVisitStatus.APPROVED, invoice_line_id=None)
        .execution_options(synchronize_session=False)
    ).rowcount
    voided_credits = session.execute(
        update(CreditNote)
        .where(
            CreditNote.invoice_id == invoice_id,
            CreditNote.status == CreditNoteStatus.DRAFT,
        )
        .values(status=CreditNoteStatus.VOID)
        .execution_options(synchronize_session=False)
    ).rowcount
    session.expire_all()
    return _finish(
        session,
        invoice,
        observed,
        "void",
        released_visits=released or 0,
        voided_credit_notes=voided_credits or 0,
    )


def write_off(session: Session, invoice_id: int, reason: str) -> Invoice:
    """Close an unpaid balance as bad debt. Consumed visits stay INVOICED."""

    cleaned = (reason or "").strip()
    if not cleaned:
        raise ValidationError("A reason is required to write off an invoice")
    invoice, observed = _load_for_action(session, invoice_id, "write_off")
    _compare_and_set(
        session,
        invoice_id,
        observed,
        "write_off",
        {"status": InvoiceStatus.WRITTEN_OFF, "written_off_reason": cleaned},
    )
    return _finish(session, invoice, observed, "write_off", outstanding=str(invoice.outstanding))


def sweep_overdue(session: Session, as_of: date) -> int:
    """Persist OVERDUE for every open invoice past its due date."""

    result = session.execute(
        update(Invoice)
        .where(
            Invoice.status.in_(OPEN_STATUSES),
            Invoice.due_date < as_of,
            Invoice.paid_amount < Invoice.total,
        )
        .values(status=InvoiceStatus.OVERDUE)
        .execution_options(synchronize_session=False)
    )
    session.commit()
    session.expire_all()
    swept = result.rowcount or 0
    invoice_transitions_total.labels(action="sweep_overdue", outcome="ok").inc(swept)
    LOGGER.info("overdue_invoices_swept", as_of=as_of.isoformat(), invoices=swept)
    return swept


def summarize(invoice: Invoice, as_of: date) -> dict[str, Any]:
    return {
        "id": invoice.id,
        "invoice_number": invoice.invoice_number,
        "funder_id": invoice.funder_id,
        "funder_name": invoice.funder.name if invoice.funder else None,
        "invoice_date": invoice.invoice_date,
        "due_date": invoice.due_date,
        "period_start": invoice.period_start,
        "period_end": invoice.period_end,
        "total": invoice.total,
        "paid_amount": invoice.paid_amount,
        "outstanding": invoice.outstanding,
        "status": InvoiceStatus(invoice.status).value,
        "derived_status": derive_status(invoice, as_of).value,
        "line_count": len(invoice.lines),
    }


def list_invoices(
    session: Session,
    *,
    funder_id: int | None = None,
    status: InvoiceStatus | None = None,
    page: int = 1,
    limit: int = 50,
    as_of: date | None = None,
) -> dict[str, Any]:
    """Return one page of invoice summaries; ``status`` matches the derived status."""

    if page < 1:
        raise ValidationError("Page must be 1 or more")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")
    reference_day = as_of or date.today()

    filters: list[Any] = []
    if funder_id is not None:
        filters.append(Invoice.funder_id == funder_id)
    if status is not None:
        filters.append(_status_filter(status, reference_day))

    total = session.scalar(select(func.count(Invoice.id)).where(*filters)) or 0
    invoices = session.scalars(
        select(Invoice)
        .where(*filters)
        .options(selectinload(Invoice.funder), selectinload(Invoice.lines))
        .order_by(Invoice.invoice_date.desc(), Invoice.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return {
        "items": [summarize(invoice, reference_day) for invoice in invoices],
        "total": total,
        "page": page,
        "limit": limit,
    }


def list_overdue(session: Session, as_of: date | None = None) -> list[dict[str, Any]]:
    reference_day = as_of or date.today()
    invoices = session.scalars(
        select(Invoice)
        .where(_overdue_clause(reference_day))
        .options(selectinload(Invoice.funder), selectinload(Invoice.lines))
        .order_by(Invoice.due_date.asc(), Invoice.id.asc())
    ).all()
    return [summarize(invoice, reference_day) for invoice in invoices]


__all__ = [
    "ALLOWED_SOURCES",
    "derive_status",
    "get_invoice",
    "list_invoices",
    "list_overdue",
    "mark_paid",
    "send",
    "summarize",
    "sweep_overdue",
    "void",
    "write_off",
]
