from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from carebill.backend.src.core.errors import StateConflictError, ValidationError
from carebill.backend.src.db import session_scope
from carebill.backend.src.models import BillableVisitStatus, CreditNoteStatus, InvoiceStatus
from carebill.backend.src.services import invoice_lifecycle, reports
from carebill.backend.src.services.credit_notes import (
    create_credit_note,
    credited_total,
    get_credit_note,
    list_credit_notes,
    send_credit_note,
    void_credit_note,
)
from carebill.backend.src.services.invoice_generator import generate_invoice

MARCH = (date(2026, 3, 1), date(2026, 3, 31))
APRIL = (date(2026, 4, 1), date(2026, 4, 30))
ISSUED = date(2026, 4, 1)


@pytest.fixture()
def draft_invoice_id(approved_march) -> int:
    with session_scope() as session:
        return generate_invoice(session, approved_march.funder_id, *MARCH, today=ISSUED).id


@pytest.fixture()
def sent_invoice_id(draft_invoice_id) -> int:
    with session_scope() as session:
        invoice_lifecycle.send(session, draft_invoice_id, today=ISSUED)
    return draft_invoice_id


def test_draft_invoice_cannot_be_credited(draft_invoice_id) -> None:
    with session_scope() as session:
        with pytest.raises(StateConflictError) as excinfo:
            create_credit_note(session, draft_invoice_id, "5.00", "goodwill", today=ISSUED)
        assert excinfo.value.current_status == "DRAFT"


def test_credit_note_is_numbered_from_the_invoice_prefix(sent_invoice_id) -> None:
    with session_scope() as session:
        note = create_credit_note(
            session, sent_invoice_id, "10.00", "missed visit", today=date(2026, 4, 10)
        )
        assert note.credit_note_number == "CN-INV-202604-000001"
        assert note.status == CreditNoteStatus.DRAFT
        assert note.amount == Decimal("10.00")
        assert note.funder_id is not None

        second = create_credit_note(
            session, sent_invoice_id, "2.50", "parking", today=date(2026, 4, 11)
        )
        assert second.credit_note_number == "CN-INV-202604-000002"


def test_credits_are_capped_at_invoice_total(sent_invoice_id) -> None:
    with session_scope() as session:
        first = create_credit_note(session, sent_invoice_id, "10.00", "missed visit", today=ISSUED)
        with pytest.raises(ValidationError):
            create_credit_note(session, sent_invoice_id, "30.00", "rate error", today=ISSUED)

        void_credit_note(session, first.id)
        assert credited_total(session, sent_invoice_id) == Decimal("0.00")

        full = create_credit_note(session, sent_invoice_id, "37.00", "rate error", today=ISSUED)
        assert credited_total(session, sent_invoice_id) == Decimal("37.00")
        assert full.status == CreditNoteStatus.DRAFT


def test_credit_note_validation(sent_invoice_id) -> None:
    with session_scope() as session:
        with pytest.raises(ValidationError):
            create_credit_note(session, sent_invoice_id, "0", "nothing", today=ISSUED)
        with pytest.raises(ValidationError):
            create_credit_note(session, sent_invoice_id, "5.00", "  ", today=ISSUED)


def test_credit_note_send_and_void_only_from_draft(sent_invoice_id) -> None:
    with session_scope() as session:
        note = create_credit_note(session, sent_invoice_id, "5.00", "late call", today=ISSUED)
        sent = send_credit_note(session, note.id)
        assert sent.status == CreditNoteStatus.SENT
        with pytest.raises(StateConflictError):
            void_credit_note(session, note.id)

        assert [item.id for item in list_credit_notes(session, status=CreditNoteStatus.SENT)] == [
            note.id
        ]
        assert list_credit_notes(session, status=CreditNoteStatus.VOID) == []


def test_revenue_by_period_counts_issued_invoices_only(draft_invoice_id) -> None:
    with session_scope() as session:
        before = reports.revenue_by_period(session, *APRIL)
        assert before["invoice_count"] == 0
        assert before["total_invoiced"] == Decimal("0.00")

        invoice_lifecycle.send(session, draft_invoice_id, today=ISSUED)
        invoice_lifecycle.mark_paid(session, draft_invoice_id, date(2026, 4, 20), "22.20")

        after = reports.revenue_by_period(session, *APRIL)
        assert after["invoice_count"] == 1
        assert after["total_invoiced"] == Decimal("37.00")
        assert after["total_paid"] == Decimal("22.20")
        assert after["total_outstanding"] == Decimal("14.80")

        assert reports.revenue_by_period(session, *MARCH)["invoice_count"] == 0
        with pytest.raises(ValidationError):
            reports.revenue_by_period(session, date(2026, 4, 30), date(2026, 4, 1))


def test_revenue_by_funder_excludes_void(draft_invoice_id) -> None:
    with session_scope() as session:
        [row] = reports.revenue_by_funder(session, *APRIL)
        assert row["funder_name"] == "Northshire Council"
        assert row["total_invoiced"] == Decimal("37.00")

        invoice_lifecycle.void(session, draft_invoice_id)
        assert reports.revenue_by_funder(session, *APRIL) == []


@pytest.mark.parametrize(
    ("as_of", "bucket", "days"),
    [
        (date(2026, 5, 1), "current", 0),
        (date(2026, 5, 15), "1_30", 14),
        (date(2026, 6, 20), "31_60", 50),
        (date(2026, 7, 15), "61_plus", 75),
    ],
)
def test_aged_debt_buckets_by_days_past_due(
    sent_invoice_id, as_of: date, bucket: str, days: int
) -> None:
    with session_scope() as session:
        invoice_lifecycle.mark_paid(session, sent_invoice_id, ISSUED, "7.00")
        report = reports.aged_debt(session, as_of)

    [item] = report["invoices"]
    assert item["bucket"] == bucket
    assert item["days_overdue"] == days
    assert item["outstanding"] == Decimal("30.00")
    counts = {row["bucket"]: row["invoice_count"] for row in report["buckets"]}
    assert counts[bucket] == 1
    assert sum(counts.values()) == 1
    assert report["total_outstanding"] == Decimal("30.00")


def test_aged_debt_ignores_drafts_and_paid_invoices(draft_invoice_id) -> None:
    with session_scope() as session:
        assert reports.aged_debt(session, date(2026, 6, 1))["invoices"] == []
        invoice_lifecycle.send(session, draft_invoice_id, today=ISSUED)
        invoice_lifecycle.mark_paid(session, draft_invoice_id, ISSUED, "37.00")
        report = reports.aged_debt(session, date(2026, 6, 1))
        assert report["invoices"] == []
        assert report["total_outstanding"] == Decimal("0.00")


def test_invoice_with_sent_credit_note_cannot_be_voided(sent_invoice_id) -> None:
    with session_scope() as session:
        note = create_credit_note(session, sent_invoice_id, "10.00", "missed visit", today=ISSUED)
        send_credit_note(session, note.id)

        with pytest.raises(StateConflictError):
            invoice_lifecycle.void(session, sent_invoice_id)

        invoice = invoice_lifecycle.get_invoice(session, sent_invoice_id)
        assert invoice.status == InvoiceStatus.SENT
        assert credited_total(session, sent_invoice_id) == Decimal("10.00")
        visit_statuses = {
            visit.status for line in invoice.lines for visit in line.billable_visits
        }
        assert visit_statuses == {BillableVisitStatus.INVOICED}


def test_voiding_invoice_voids_its_draft_credit_notes(sent_invoice_id) -> None:
    with session_scope() as session:
        note = create_credit_note(session, sent_invoice_id, "10.00", "missed visit", today=ISSUED)

        voided = invoice_lifecycle.void(session, sent_invoice_id)

        assert voided.status == InvoiceStatus.VOID
        assert get_credit_note(session, note.id).status == CreditNoteStatus.VOID
        assert credited_total(session, sent_invoice_id) == Decimal("0.00")
