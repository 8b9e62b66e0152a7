"""Financial reports over issued invoices."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from carebill.backend.src.core.errors import ValidationError
from carebill.backend.src.models import Invoice, InvoiceStatus
from carebill.backend.src.services.calculations import ZERO, round_money

ISSUED_STATUSES = (
    InvoiceStatus.SENT,
    InvoiceStatus.PARTIALLY_PAID,
    InvoiceStatus.PAID,
    InvoiceStatus.OVERDUE,
)
UNPAID_STATUSES = (
    InvoiceStatus.SENT,
    InvoiceStatus.PARTIALLY_PAID,
    InvoiceStatus.OVERDUE,
)

AGED_DEBT_BUCKETS = ("current", "1_30", "31_60", "61_plus")


def _validate_period(period_start: date, period_end: date) -> None:
    if period_end < period_start:
        raise ValidationError("Period end must not be before period start")


def _totals(invoices: list[Invoice]) -> dict[str, Any]:
    invoiced = sum((invoice.total for invoice in invoices), ZERO)
    paid = sum((invoice.paid_amount or ZERO for invoice in invoices), ZERO)
    outstanding = sum((invoice.outstanding for invoice in invoices), ZERO)
    return {
        "invoice_count": len(invoices),
        "total_invoiced": round_money(invoiced),
        "total_paid": round_money(paid),
        "total_outstanding": round_money(outstanding),
    }


def revenue_by_period(session: Session, period_start: date, period_end: date) -> dict[str, Any]:
    """Totals for invoices issued (sent or later) and dated in the period."""

    _validate_period(period_start, period_end)
    invoices = session.scalars(
        select(Invoice).where(
            Invoice.status.in_(ISSUED_STATUSES),
            Invoice.invoice_date >= period_start,
            Invoice.invoice_date <= period_end,
        )
    ).all()
    return {
        "period_start": period_start,
        "period_end": period_end,
        **_totals(list(invoices)),
    }


def revenue_by_funder(
    session: Session, period_start: date, period_end: date
) -> list[dict[str, Any]]:
    _validate_period(period_start, period_end)
    invoices = session.scalars(
        select(Invoice)
        .where(
            Invoice.status != InvoiceStatus.VOID,
            Invoice.invoice_date >= period_start,
            Invoice.invoice_date <= period_end,
        )
        .options(selectinload(Invoice.funder))
    ).all()

    grouped: dict[int, list[Invoice]] = {}
    for invoice in invoices:
        grouped.setdefault(invoice.funder_id, []).append(invoice)

    rows = [
        {
            "funder_id": funder_id,
            "funder_name": members[0].funder.name,
            **_totals(members),
        }
        for funder_id, members in grouped.items()
    ]
    return sorted(rows, key=lambda row: row["funder_name"].lower())


def _bucket(days_overdue: int) -> str:
    if days_overdue <= 0:
        return "current"
    if days_overdue <= 30:
        return "1_30"
    if days_overdue <= 60:
        return "31_60"
    return "61_plus"


def aged_debt(session: Session, as_of: date) -> dict[str, Any]:
    """Bucket unpaid balances by days past due on ``as_of``."""

    invoices = session.scalars(
        select(Invoice)
        .where(Invoice.status.in_(UNPAID_STATUSES))
        .options(selectinload(Invoice.funder))
        .order_by(Invoice.due_date.asc(), Invoice.id.asc())
    ).all()

    buckets: dict[str, dict[str, Any]] = {
        name: {"bucket": name, "invoice_count": 0, "outstanding": ZERO}
        for name in AGED_DEBT_BUCKETS
    }
    items = []
    for invoice in invoices:
        balance = invoice.outstanding
        if balance <= 0:
            continue
        days = (as_of - invoice.due_date).days
        name = _bucket(days)
        buckets[name]["invoice_count"] += 1
        buckets[name]["outstanding"] += balance
        items.append(
            {
                "invoice_id": invoice.id,
                "invoice_number": invoice.invoice_number,
                "funder_name": invoice.funder.name,
                "due_date": invoice.due_date,
                "days_overdue": max(days, 0),
                "bucket": name,
                "outstanding": balance,
            }
        )

    total: Decimal = sum((bucket["outstanding"] for bucket in buckets.values()), ZERO)
    return {
        "as_of": as_of,
        "buckets": [
            {**bucket, "outstanding": round_money(bucket["outstanding"])}
            for bucket in buckets.values()
        ],
        "invoices": items,
        "total_outstanding": round_money(total),
    }


__all__ = ["AGED_DEBT_BUCKETS", "aged_debt", "revenue_by_funder", "revenue_by_period"]
