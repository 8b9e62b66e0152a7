"""Billable visit generation and reconciliation endpoints."""

from __future__ import annotations

import logging
from datetime import date
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from carebill.backend.src.db import get_session_dependency
from carebill.backend.src.models import BillableVisit, BillableVisitStatus, DayType
from carebill.backend.src.schemas.billable_visit import (
    BillableVisitPage,
    BillableVisitRead,
    BulkApproveResult,
    DisputeRequest,
    GenerateRequest,
    GenerationResultRead,
    OverrideRequest,
    PeriodRequest,
    ReconciliationSummary,
)
from carebill.backend.src.services import reconciliation as reconciliation_service
from carebill.backend.src.services.billable_visits import generate_for_period

router = APIRouter(prefix="/reconciliation", tags=["reconciliation"])

logger = logging.getLogger(__name__)

SessionDep = Annotated[Session, Depends(get_session_dependency)]


@router.post("/generate", response_model=GenerationResultRead)
def generate(payload: GenerateRequest, session: SessionDep) -> dict[str, Any]:
    """Create PENDING billable visits for care visits in the period."""

    result = generate_for_period(
        session,
        payload.period_start,
        payload.period_end,
        payload.funder_id,
        service_user_id=payload.service_user_id,
    )
    logger.info(
        "Generated %s billable visits for %s..%s (%s issues)",
        result.generated,
        payload.period_start,
        payload.period_end,
        len(result.issues),
    )
    return result.to_dict()


@router.post("/bulk-approve", response_model=BulkApproveResult)
def bulk_approve(payload: PeriodRequest, session: SessionDep) -> dict[str, int]:
    """Approve every PENDING visit in the period."""

    approved = reconciliation_service.bulk_approve(
        session, payload.period_start, payload.period_end, payload.funder_id
    )
    logger.info(
        "Bulk approved %s billable visits for %s..%s",
        approved,
        payload.period_start,
        payload.period_end,
    )
    return {"approved": approved}


@router.get("", response_model=BillableVisitPage)
def list_billable_visits(
    session: SessionDep,
    period_start: date | None = None,
    period_end: date | None = None,
    funder_id: int | None = None,
    service_user_id: int | None = None,
    status: BillableVisitStatus | None = None,
    day_type: DayType | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=reconciliation_service.MAX_PAGE_SIZE)] = 50,
) -> dict[str, Any]:
    return reconciliation_service.list_billable_visits(
        session,
        period_start=period_start,
        period_end=period_end,
        funder_id=funder_id,
        service_user_id=service_user_id,
        status=status,
        day_type=day_type,
        page=page,
        limit=limit,
    )


@router.get("/summary", response_model=ReconciliationSummary)
def get_summary(
    session: SessionDep,
    period_start: date,
    period_end: date,
    funder_id: int | None = None,
) -> dict[str, Any]:
    return reconciliation_service.get_summary(session, period_start, period_end, funder_id)


@router.get("/{visit_id}", response_model=BillableVisitRead)
def get_billable_visit(visit_id: int, session: SessionDep) -> BillableVisit:
    return reconciliation_service.get_billable_visit(session, visit_id)


@router.post("/{visit_id}/approve", response_model=BillableVisitRead)
def approve(visit_id: int, session: SessionDep) -> BillableVisit:
    return reconciliation_service.approve(session, visit_id)


@router.post("/{visit_id}/dispute", response_model=BillableVisitRead)
def dispute(visit_id: int, payload: DisputeRequest, session: SessionDep) -> BillableVisit:
    return reconciliation_service.dispute(session, visit_id, payload.reason)


@router.post("/{visit_id}/override", response_model=BillableVisitRead)
def override(visit_id: int, payload: OverrideRequest, session: SessionDep) -> BillableVisit:
    """Replace the billed total of a visit that has not been invoiced."""

    visit = reconciliation_service.override(session, visit_id, payload.amount, payload.reason)
    logger.info("Overrode billable visit %s to %s", visit_id, payload.amount)
    return visit


@router.post("/{visit_id}/void", response_model=BillableVisitRead)
def void(visit_id: int, session: SessionDep) -> BillableVisit:
    return reconciliation_service.void(session, visit_id)
