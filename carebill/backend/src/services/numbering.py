"""Sequential document numbers for invoices and credit notes."""

from __future__ import annotations

from datetime import date

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from carebill.backend.src.core.config import get_settings
from carebill.backend.src.models import DocumentSequence

INVOICE_SEQUENCE = "invoice"
CREDIT_NOTE_SEQUENCE = "credit_note"


def _increment(session: Session, name: str) -> int:
    result = session.execute(
        update(DocumentSequence)
        .where(DocumentSequence.name == name)
        .values(last_value=DocumentSequence.last_value + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


def next_sequence_value(session: Session, name: str) -> int:
    """Draw the next value of ``name`` inside the caller's transaction.

    The UPDATE holds the sequence row lock until the caller commits or rolls
    back, so concurrent callers are serialized and never share a value.
    """

    if not _increment(session, name):
        try:
            with session.begin_nested():
                session.add(DocumentSequence(name=name, last_value=0))
        except IntegrityError:
            pass
        _increment(session, name)
    value = session.scalar(
        select(DocumentSequence.last_value).where(DocumentSequence.name == name)
    )
    assert value is not None
    return int(value)


def format_invoice_number(issued_on: date, sequence: int, prefix: str | None = None) -> str:
    pfx = prefix or get_settings().invoice_number_prefix
    return f"{pfx}-{issued_on:%Y%m}-{sequence:06d}"


def format_credit_note_number(
    issued_on: date, sequence: int, prefix: str | None = None
) -> str:
    pfx = prefix or get_settings().invoice_number_prefix
    return f"CN-{pfx}-{issued_on:%Y%m}-{sequence:06d}"


def next_invoice_number(session: Session, issued_on: date) -> str:
    return format_invoice_number(issued_on, next_sequence_value(session, INVOICE_SEQUENCE))


def next_credit_note_number(session: Session, issued_on: date) -> str:
    return format_credit_note_number(
        issued_on, next_sequence_value(session, CREDIT_NOTE_SEQUENCE)
    )


__all__ = [
    "CREDIT_NOTE_SEQUENCE",
    "INVOICE_SEQUENCE",
    "format_credit_note_number",
    "format_invoice_number",
    "next_credit_note_number",
    "next_invoice_number",
    "next_sequence_value",
]
