"""Rate card endpoints."""

from __future__ import annotations

import logging
from datetime import date, time
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from carebill.backend.src.db import get_session_dependency
from carebill.backend.src.models import RateCard
from carebill.backend.src.schemas.rate_card import (
    RateCardCreate,
    RateCardDuplicate,
    RateCardRead,
    ResolvedRateRead,
)
from carebill.backend.src.services import rate_cards as rate_card_service
from carebill.backend.src.services.rate_resolver import ResolvedRate

router = APIRouter(prefix="/rate-cards", tags=["rate cards"])

logger = logging.getLogger(__name__)

SessionDep = Annotated[Session, Depends(get_session_dependency)]


@router.get("", response_model=list[RateCardRead])
def list_rate_cards(
    session: SessionDep,
    funder_id: int | None = None,
    active: bool | None = None,
) -> list[RateCard]:
    return rate_card_service.list_rate_cards(session, funder_id=funder_id, active=active)


@router.post("", response_model=RateCardRead, status_code=status.HTTP_201_CREATED)
def create_rate_card(payload: RateCardCreate, session: SessionDep) -> RateCard:
    card = rate_card_service.create_rate_card(session, payload)
    logger.info("Created rate card %s effective %s", card.id, card.effective_from)
    return card


@router.get("/resolve", response_model=ResolvedRateRead)
def resolve_rate(
    session: SessionDep,
    funder_id: int,
    visit_date: date,
    start_time: time,
    carers: Annotated[int, Query(ge=1)] = 1,
) -> ResolvedRate:
    """Preview the rate a visit would be billed at."""

    return rate_card_service.resolve_rate(session, funder_id, visit_date, start_time, carers)


@router.get("/{rate_card_id}", response_model=RateCardRead)
def get_rate_card(rate_card_id: int, session: SessionDep) -> RateCard:
    return rate_card_service.get_rate_card(session, rate_card_id)


@router.post(
    "/{rate_card_id}/duplicate",
    response_model=RateCardRead,
    status_code=status.HTTP_201_CREATED,
)
def duplicate_rate_card(
    rate_card_id: int, payload: RateCardDuplicate, session: SessionDep
) -> RateCard:
    card = rate_card_service.duplicate_rate_card(session, rate_card_id, payload)
    logger.info("Duplicated rate card %s as %s", rate_card_id, card.id)
    return card
