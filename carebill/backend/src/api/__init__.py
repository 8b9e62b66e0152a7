"""Public API routers exposed by the FastAPI application."""

from . import (
    bank_holidays,
    credit_notes,
    health,
    invoices,
    rate_cards,
    reconciliation,
    reports,
)

__all__ = [
    "bank_holidays",
    "credit_notes",
    "health",
    "invoices",
    "rate_cards",
    "reconciliation",
    "reports",
]
