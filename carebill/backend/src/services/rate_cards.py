"""Rate card maintenance and rate previews."""

from __future__ import annotations

from datetime import date, time

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from carebill.backend.src.core.errors import NotFoundError, ValidationError
from carebill.backend.src.models import Funder, MileageRate, RateCard, RateLine
from carebill.backend.src.schemas.rate_card import RateCardCreate, RateCardDuplicate
from carebill.backend.src.services.holiday_calendar import load_holiday_calendar
from carebill.backend.src.services.rate_resolver import RateResolver, ResolvedRate

LOGGER = structlog.get_logger(__name__)


def _with_children():
    return (selectinload(RateCard.lines), selectinload(RateCard.mileage_rate))


def get_rate_card(session: Session, rate_card_id: int) -> RateCard:
    card = session.scalar(
        select(RateCard).where(RateCard.id == rate_card_id).options(*_with_children())
    )
    if card is None:
        raise NotFoundError("Rate card", rate_card_id)
    return card


def list_rate_cards(
    session: Session,
    *,
    funder_id: int | None = None,
    active: bool | None = None,
) -> list[RateCard]:
    statement = (
        select(RateCard)
        .options(*_with_children())
        .order_by(RateCard.effective_from.desc(), RateCard.id.desc())
    )
    if funder_id is not None:
        statement = statement.where(RateCard.funder_id == funder_id)
    if active is not None:
        statement = statement.where(RateCard.is_active.is_(active))
    return list(session.scalars(statement).all())


def create_rate_card(session: Session, payload: RateCardCreate) -> RateCard:
    """Persist a validated rate card with its lines and optional mileage rate."""

    if payload.funder_id is not None and session.get(Funder, payload.funder_id) is None:
        raise NotFoundError("Funder", payload.funder_id)

    card = RateCard(
        funder_id=payload.funder_id,
        name=payload.name.strip(),
        effective_from=payload.effective_from,
        is_active=payload.is_active,
        notes=payload.notes,
    )
    for line in payload.lines:
        card.lines.append(
            RateLine(
                day_type=line.day_type,
                time_band_start=line.time_band_start,
                time_band_end=line.time_band_end,
                rate_per_hour=line.rate_per_hour,
                carers_required=line.carers_required,
                description=line.description,
            )
        )
    if payload.mileage_rate_per_mile is not None:
        card.mileage_rate = MileageRate(rate_per_mile=payload.mileage_rate_per_mile)

    session.add(card)
    session.commit()
    LOGGER.info(
        "rate_card_created",
        rate_card_id=card.id,
        funder_id=card.funder_id,
        effective_from=card.effective_from.isoformat(),
        lines=len(payload.lines),
    )
    return get_rate_card(session, card.id)


def duplicate_rate_card(
    session: Session, rate_card_id: int, payload: RateCardDuplicate
) -> RateCard:
    """Copy a card as a new version; visits priced from the source keep their rates."""

    source = get_rate_card(session, rate_card_id)
    if payload.effective_from <= source.effective_from:
        raise ValidationError(
            "A new rate card version must take effect after the card it copies"
        )

    copy = RateCard(
        funder_id=source.funder_id,
        name=payload.name.strip(),
        effective_from=payload.effective_from,
        is_active=True,
        notes=source.notes,
    )
    for line in source.lines:
        copy.lines.append(
            RateLine(
                day_type=line.day_type,
                time_band_start=line.time_band_start,
                time_band_end=line.time_band_end,
                rate_per_hour=line.rate_per_hour,
                carers_required=line.carers_required,
                description=line.description,
            )
        )
    if source.mileage_rate is not None:
        copy.mileage_rate = MileageRate(
            rate_per_mile=source.mileage_rate.rate_per_mile,
            description=source.mileage_rate.description,
        )

    session.add(copy)
    session.commit()
    LOGGER.info(
        "rate_card_duplicated",
        source_rate_card_id=source.id,
        rate_card_id=copy.id,
        effective_from=copy.effective_from.isoformat(),
    )
    return get_rate_card(session, copy.id)


def resolve_rate(
    session: Session,
    funder_id: int,
    visit_date: date,
    start_time: time,
    carers: int = 1,
) -> ResolvedRate:
    """Preview the rate a visit would be billed at."""

    if carers < 1:
        raise ValidationError("At least one carer is required")
    funder = session.get(Funder, funder_id)
    if funder is None:
        raise NotFoundError("Funder", funder_id)
    calendar = load_holiday_calendar(session, funder.holiday_region, [visit_date.year])
    return RateResolver.for_funder(session, funder.id, calendar).resolve(
        visit_date, start_time, carers
    )


__all__ = [
    "create_rate_card",
    "duplicate_rate_card",
    "get_rate_card",
    "list_rate_cards",
    "resolve_rate",
]
