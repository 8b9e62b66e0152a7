"""Enumerations shared by the billing models and schemas."""

from __future__ import annotations

import enum


class FunderType(str, enum.Enum):
    LOCAL_AUTHORITY = "LOCAL_AUTHORITY"
    HEALTH_BOARD = "HEALTH_BOARD"
    PRIVATE = "PRIVATE"
    OTHER = "OTHER"


class InvoiceFrequency(str, enum.Enum):
    WEEKLY = "WEEKLY"
    FOUR_WEEKLY = "FOUR_WEEKLY"
    MONTHLY = "MONTHLY"


class BillingTimeBasis(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    ACTUAL = "ACTUAL"


class DayType(str, enum.Enum):
    WEEKDAY = "WEEKDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"
    BANK_HOLIDAY = "BANK_HOLIDAY"


class BillableVisitStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DISPUTED = "DISPUTED"
    INVOICED = "INVOICED"
    VOID = "VOID"


class InvoiceStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    VOID = "VOID"
    WRITTEN_OFF = "WRITTEN_OFF"


class CreditNoteStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    VOID = "VOID"


__all__ = [
    "BillableVisitStatus",
    "BillingTimeBasis",
    "CreditNoteStatus",
    "DayType",
    "FunderType",
    "InvoiceFrequency",
    "InvoiceStatus",
]
