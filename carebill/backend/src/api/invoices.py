"""Invoice generation and lifecycle endpoints."""

from __future__ import annotations

import logging
from datetime import date
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from carebill.backend.src.db import get_session_dependency
from carebill.backend.src.models import Invoice, InvoiceStatus
from carebill.backend.src.schemas.invoice import (
    InvoiceGenerateRequest,
    InvoicePage,
    InvoiceRead,
    InvoiceSummary,
    MarkPaidRequest,
    SendRequest,
    SweepResult,
    WriteOffRequest,
)
from carebill.backend.src.services import invoice_lifecycle
from carebill.backend.src.services.invoice_generator import generate_invoice

router = APIRouter(prefix="/invoices", tags=["invoices"])

logger = logging.getLogger(__name__)

SessionDep = Annotated[Session, Depends(get_session_dependency)]


@router.post("/generate", response_model=InvoiceRead, status_code=status.HTTP_201_CREATED)
def generate(payload: InvoiceGenerateRequest, session: SessionDep) -> Invoice:
    """Build a DRAFT invoice from the funder's approved visits in the period."""

    invoice = generate_invoice(
        session,
        payload.funder_id,
        payload.period_start,
        payload.period_end,
        today=payload.invoice_date,
    )
    logger.info("Generated invoice %s for funder %s", invoice.invoice_number, payload.funder_id)
    return invoice_lifecycle.get_invoice(session, invoice.id)


@router.get("", response_model=InvoicePage)
def list_invoices(
    session: SessionDep,
    funder_id: int | None = None,
    status: InvoiceStatus | None = None,
    as_of: date | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=invoice_lifecycle.MAX_PAGE_SIZE)] = 50,
) -> dict[str, Any]:
    return invoice_lifecycle.list_invoices(
        session, funder_id=funder_id, status=status, page=page, limit=limit, as_of=as_of
    )


@router.get("/overdue", response_model=list[InvoiceSummary])
def list_overdue(session: SessionDep, as_of: date | None = None) -> list[dict[str, Any]]:
    return invoice_lifecycle.list_overdue(session, as_of)


@router.post("/sweep-overdue", response_model=SweepResult)
def sweep_overdue(session: SessionDep, as_of: date | None = None) -> dict[str, Any]:
    """Persist OVERDUE on open invoices past their due date."""

    reference_day = as_of or date.today()
    swept = invoice_lifecycle.sweep_overdue(session, reference_day)
    return {"as_of": reference_day, "invoices": swept}


@router.get("/{invoice_id}", response_model=InvoiceRead)
def get_invoice(invoice_id: int, session: SessionDep) -> Invoice:
    return invoice_lifecycle.get_invoice(session, invoice_id)


@router.post("/{invoice_id}/send", response_model=InvoiceRead)
def send(
    invoice_id: int, session: SessionDep, payload: SendRequest | None = None
) -> Invoice:
    invoice_lifecycle.send(
        session, invoice_id, today=payload.sent_date if payload else None
    )
    logger.info("Invoice %s sent", invoice_id)
    return invoice_lifecycle.get_invoice(session, invoice_id)


@router.post("/{invoice_id}/mark-paid", response_model=InvoiceRead)
def mark_paid(invoice_id: int, payload: MarkPaidRequest, session: SessionDep) -> Invoice:
    invoice_lifecycle.mark_paid(
        session, invoice_id, payload.paid_date, payload.paid_amount, payload.reference
    )
    logger.info("Recorded payment of %s on invoice %s", payload.paid_amount, invoice_id)
    return invoice_lifecycle.get_invoice(session, invoice_id)


@router.post("/{invoice_id}/void", response_model=InvoiceRead)
def void(invoice_id: int, session: SessionDep) -> Invoice:
    """Void the invoice and return its visits to APPROVED."""

    invoice_lifecycle.void(session, invoice_id)
    logger.info("Invoice %s voided", invoice_id)
    return invoice_lifecycle.get_invoice(session, invoice_id)


@router.post("/{invoice_id}/write-off", response_model=InvoiceRead)
def write_off(invoice_id: int, payload: WriteOffRequest, session: SessionDep) -> Invoice:
    invoice_lifecycle.write_off(session, invoice_id, payload.reason)
    logger.info("Invoice %s written off", invoice_id)
    return invoice_lifecycle.get_invoice(session, invoice_id)
