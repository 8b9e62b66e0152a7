"""Celery tasks for billable visit generation and invoice housekeeping."""

from __future__ import annotations

from datetime import date
from typing import Any

import structlog

from carebill.backend.src.db import session_scope
from carebill.backend.src.services.billable_visits import generate_for_period
from carebill.backend.src.services.invoice_lifecycle import sweep_overdue
from .worker import celery

LOGGER = structlog.get_logger(__name__)


@celery.task(name="tasks.generate_billable_visits")
def generate_billable_visits(
    period_start: str,
    period_end: str,
    funder_id: int | None = None,
) -> dict[str, Any]:
    """Generate billable visits for a period; dates are ISO strings."""

    start = date.fromisoformat(period_start)
    end = date.fromisoformat(period_end)
    try:
        with session_scope() as session:
            result = generate_for_period(session, start, end, funder_id)
    except Exception as exc:
        LOGGER.error(
            "generate_billable_visits_failed",
            period_start=period_start,
            period_end=period_end,
            funder_id=funder_id,
            error=str(exc),
        )
        raise
    return result.to_dict()


@celery.task(name="tasks.sweep_overdue_invoices")
def sweep_overdue_invoices(as_of: str | None = None) -> dict[str, Any]:
    reference_day = date.fromisoformat(as_of) if as_of else date.today()
    with session_scope() as session:
        swept = sweep_overdue(session, reference_day)
    return {"as_of": reference_day.isoformat(), "invoices": swept}


__all__ = ["generate_billable_visits", "sweep_overdue_invoices"]
