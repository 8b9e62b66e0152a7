"""Invoice schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from carebill.backend.src.models.enums import InvoiceStatus

from .billable_visit import BillableVisitRead
from .credit_note import CreditNoteRead


class InvoiceGenerateRequest(BaseModel):
    funder_id: int
    period_start: date
    period_end: date
    invoice_date: date | None = None


class InvoiceLineRead(BaseModel):
    id: int
    service_user_id: int
    care_package_id: int
    description: str
    total_visits: int
    total_hours: Decimal
    total_mileage: Decimal
    care_total: Decimal
    mileage_total: Decimal
    adjustment_total: Decimal
    line_total: Decimal
    billable_visits: list[BillableVisitRead] = []

    model_config = ConfigDict(from_attributes=True)


class InvoicePaymentRead(BaseModel):
    id: int
    paid_date: date
    amount: Decimal
    reference: str | None

    model_config = ConfigDict(from_attributes=True)


class InvoiceRead(BaseModel):
    """Full invoice with lines, consumed visits, payments and credits."""

    id: int
    invoice_number: str
    funder_id: int
    invoice_date: date
    due_date: date
    period_start: date
    period_end: date
    total: Decimal
    paid_amount: Decimal
    outstanding: Decimal
    status: InvoiceStatus
    sent_date: date | None
    paid_date: date | None
    payment_reference: str | None
    voided_at: datetime | None
    written_off_reason: str | None
    lines: list[InvoiceLineRead] = []
    payments: list[InvoicePaymentRead] = []
    credit_notes: list[CreditNoteRead] = []

    model_config = ConfigDict(from_attributes=True)


class InvoiceSummary(BaseModel):
    id: int
    invoice_number: str
    funder_id: int
    funder_name: str | None
    invoice_date: date
    due_date: date
    period_start: date
    period_end: date
    total: Decimal
    paid_amount: Decimal
    outstanding: Decimal
    status: InvoiceStatus
    derived_status: InvoiceStatus
    line_count: int


class InvoicePage(BaseModel):
    items: list[InvoiceSummary]
    total: int
    page: int
    limit: int


class SendRequest(BaseModel):
    sent_date: date | None = None


class MarkPaidRequest(BaseModel):
    paid_date: date
    paid_amount: Decimal = Field(gt=0)
    reference: str | None = None


class WriteOffRequest(BaseModel):
    reason: str = Field(min_length=1)


class SweepResult(BaseModel):
    as_of: date
    invoices: int


__all__ = [
    "InvoiceGenerateRequest",
    "InvoiceLineRead",
    "InvoicePage",
    "InvoicePaymentRead",
    "InvoiceRead",
    "InvoiceSummary",
    "MarkPaidRequest",
    "SendRequest",
    "SweepResult",
    "WriteOffRequest",
]
