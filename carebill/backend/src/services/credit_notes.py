"""Credit notes raised against issued invoices."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from carebill.backend.src.core.errors import (
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from carebill.backend.src.models import CreditNote, CreditNoteStatus, Invoice, InvoiceStatus
from carebill.backend.src.services.calculations import round_money, to_decimal
from carebill.backend.src.services.numbering import next_credit_note_number

LOGGER = structlog.get_logger(__name__)

CREDITABLE_INVOICE_STATUSES = frozenset(
    {
        InvoiceStatus.SENT,
        InvoiceStatus.PARTIALLY_PAID,
        InvoiceStatus.PAID,
        InvoiceStatus.OVERDUE,
    }
)


def get_credit_note(session: Session, credit_note_id: int) -> CreditNote:
    credit_note = session.get(CreditNote, credit_note_id)
    if credit_note is None:
        raise NotFoundError("Credit note", credit_note_id)
    return credit_note


def credited_total(session: Session, invoice_id: int) -> Decimal:
    """Sum of every non-VOID credit note on the invoice."""

    value = session.scalar(
        select(func.coalesce(func.sum(CreditNote.amount), 0)).where(
            CreditNote.invoice_id == invoice_id,
            CreditNote.status != CreditNoteStatus.VOID,
        )
    )
    return round_money(Decimal(value or 0))


def create_credit_note(
    session: Session,
    invoice_id: int,
    amount: Decimal | str | float,
    reason: str,
    *,
    today: date | None = None,
) -> CreditNote:
    value = to_decimal(amount)
    if value is None or not value.is_finite() or value <= 0:
        raise ValidationError("Credit note amount must be greater than zero")
    value = round_money(value)
    cleaned = (reason or "").strip()
    if not cleaned:
        raise ValidationError("A reason is required for a credit note")

    invoice = session.get(Invoice, invoice_id)
    if invoice is None:
        raise NotFoundError("Invoice", invoice_id)
    status = InvoiceStatus(invoice.status)
    if status not in CREDITABLE_INVOICE_STATUSES:
        raise StateConflictError("invoice", invoice_id, status.value, "credit")

    already = credited_total(session, invoice_id)
    if already + value > invoice.total:
        raise ValidationError(
            f"Credit of {value} would exceed invoice total {invoice.total} "
            f"(already credited {already})"
        )

    credit_date = today or date.today()
    try:
        credit_note = CreditNote(
            credit_note_number=next_credit_note_number(session, credit_date),
            invoice_id=invoice.id,
            funder_id=invoice.funder_id,
            credit_date=credit_date,
            amount=value,
            reason=cleaned,
            status=CreditNoteStatus.DRAFT,
        )
        session.add(credit_note)
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(credit_note)
    LOGGER.info(
        "credit_note_created",
        credit_note_id=credit_note.id,
        credit_note_number=credit_note.credit_note_number,
        invoice_id=invoice.id,
        amount=str(value),
    )
    return credit_note


def _transition(
    session: Session,
    credit_note_id: int,
    action: str,
    target: CreditNoteStatus,
) -> CreditNote:
    credit_note = get_credit_note(session, credit_note_id)
    observed = CreditNoteStatus(credit_note.status)
    if observed != CreditNoteStatus.DRAFT:
        raise StateConflictError("credit note", credit_note_id, observed.value, action)
    result = session.execute(
        update(CreditNote)
        .where(CreditNote.id == credit_note_id, CreditNote.status == observed)
        .values(status=target)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        session.rollback()
        raise StateConflictError("credit note", credit_note_id, None, action)
    session.commit()
    session.refresh(credit_note)
    LOGGER.info(
        "credit_note_transitioned",
        credit_note_id=credit_note_id,
        action=action,
        to_status=target.value,
    )
    return credit_note


def send_credit_note(session: Session, credit_note_id: int) -> CreditNote:
    return _transition(session, credit_note_id, "send", CreditNoteStatus.SENT)


def void_credit_note(session: Session, credit_note_id: int) -> CreditNote:
    return _transition(session, credit_note_id, "void", CreditNoteStatus.VOID)


def list_credit_notes(
    session: Session,
    *,
    funder_id: int | None = None,
    status: CreditNoteStatus | None = None,
) -> list[CreditNote]:
    statement = select(CreditNote).order_by(CreditNote.credit_date.desc(), CreditNote.id.desc())
    if funder_id is not None:
        statement = statement.where(CreditNote.funder_id == funder_id)
    if status is not None:
        statement = statement.where(CreditNote.status == status)
    return list(session.scalars(statement).all())


__all__ = [
    "create_credit_note",
    "credited_total",
    "get_credit_note",
    "list_credit_notes",
    "send_credit_note",
    "void_credit_note",
]
