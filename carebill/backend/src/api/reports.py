"""Financial report endpoints."""

from __future__ import annotations

from datetime import date
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from carebill.backend.src.db import get_session_dependency
from carebill.backend.src.schemas.report import AgedDebtReport, FunderRevenue, RevenueByPeriod
from carebill.backend.src.services import reports as report_service

router = APIRouter(prefix="/reports", tags=["reports"])

SessionDep = Annotated[Session, Depends(get_session_dependency)]


@router.get("/revenue-by-period", response_model=RevenueByPeriod)
def revenue_by_period(
    session: SessionDep, period_start: date, period_end: date
) -> dict[str, Any]:
    return report_service.revenue_by_period(session, period_start, period_end)


@router.get("/revenue-by-funder", response_model=list[FunderRevenue])
def revenue_by_funder(
    session: SessionDep, period_start: date, period_end: date
) -> list[dict[str, Any]]:
    return report_service.revenue_by_funder(session, period_start, period_end)


@router.get("/aged-debt", response_model=AgedDebtReport)
def aged_debt(session: SessionDep, as_of: date | None = None) -> dict[str, Any]:
    """Bucket unpaid balances by days past due."""

    return report_service.aged_debt(session, as_of or date.today())
