"""Financial report schemas."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel


class RevenueTotals(BaseModel):
    invoice_count: int
    total_invoiced: Decimal
    total_paid: Decimal
    total_outstanding: Decimal


class RevenueByPeriod(RevenueTotals):
    period_start: date
    period_end: date


class FunderRevenue(RevenueTotals):
    funder_id: int
    funder_name: str


class AgedDebtBucket(BaseModel):
    bucket: str
    invoice_count: int
    outstanding: Decimal


class AgedDebtItem(BaseModel):
    invoice_id: int
    invoice_number: str
    funder_name: str
    due_date: date
    days_overdue: int
    bucket: str
    outstanding: Decimal


class AgedDebtReport(BaseModel):
    as_of: date
    buckets: list[AgedDebtBucket]
    invoices: list[AgedDebtItem]
    total_outstanding: Decimal


__all__ = [
    "AgedDebtBucket",
    "AgedDebtItem",
    "AgedDebtReport",
    "FunderRevenue",
    "RevenueByPeriod",
    "RevenueTotals",
]
