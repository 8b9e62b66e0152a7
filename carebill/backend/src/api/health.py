"""Health check endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..db import get_session_dependency
from ..services.holiday_calendar import load_holiday_calendar

router = APIRouter(tags=["health"])


@router.get("/health/live")
def liveness() -> dict[str, str]:
    """Return a liveness indicator."""

    return {"status": "live"}


@router.get("/health/ready")
def readiness(session: Session = Depends(get_session_dependency)) -> dict[str, object]:
    """Check the database and report whether this year's holiday calendar is loaded.

    A missing calendar does not fail readiness; day-type classification reports
    it per visit instead.
    """

    session.execute(text("SELECT 1"))
    region = get_settings().default_holiday_region
    year = date.today().year
    calendar = load_holiday_calendar(session, region, [year])
    return {
        "status": "ready",
        "holiday_region": region,
        "holiday_calendar_loaded": year in calendar.available_years,
    }


@router.get("/metrics")
def metrics() -> Response:
    """Expose Prometheus metrics."""

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
