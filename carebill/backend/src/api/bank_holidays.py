"""Bank holiday calendar endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from carebill.backend.src.db import get_session_dependency
from carebill.backend.src.models import BankHoliday
from carebill.backend.src.schemas.bank_holiday import (
    BankHolidayImport,
    BankHolidayImportResult,
    BankHolidayRead,
)
from carebill.backend.src.services import holiday_calendar

router = APIRouter(prefix="/bank-holidays", tags=["bank holidays"])

logger = logging.getLogger(__name__)

SessionDep = Annotated[Session, Depends(get_session_dependency)]


@router.get("", response_model=list[BankHolidayRead])
def list_bank_holidays(
    session: SessionDep,
    year: int | None = None,
    region: str | None = None,
) -> list[BankHoliday]:
    return holiday_calendar.list_bank_holidays(
        session, year=year, region=region.strip().upper() if region else None
    )


@router.post("/import", response_model=BankHolidayImportResult)
def import_bank_holidays(payload: BankHolidayImport, session: SessionDep) -> dict[str, int]:
    """Load holiday rows; dates already recorded for a region are left alone."""

    rows = [holiday.normalized() for holiday in payload.holidays]
    imported = holiday_calendar.import_bank_holidays(session, rows)
    logger.info("Imported %s of %s bank holidays", imported, len(rows))
    return {"received": len(rows), "imported": imported}
