"""Rate card, rate line and mileage rate models."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .enums import DayType

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .funder import Funder


class RateCard(Base):
    """A versioned price sheet; ``funder_id`` is empty for templates."""

    __tablename__ = "rate_cards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    funder_id: Mapped[int | None] = mapped_column(
        ForeignKey("funders.id"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    effective_from: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    funder: Mapped["Funder | None"] = relationship("Funder", back_populates="rate_cards")
    lines: Mapped[list["RateLine"]] = relationship(
        "RateLine",
        back_populates="rate_card",
        cascade="all, delete-orphan",
        order_by="RateLine.id",
    )
    mileage_rate: Mapped["MileageRate | None"] = relationship(
        "MileageRate",
        back_populates="rate_card",
        cascade="all, delete-orphan",
        uselist=False,
    )


class RateLine(Base):
    """One pricing rule of a rate card."""

    __tablename__ = "rate_lines"
    __table_args__ = (
        CheckConstraint(
            "(time_band_start IS NULL AND time_band_end IS NULL)"
            " OR (time_band_start IS NOT NULL AND time_band_end IS NOT NULL)",
            name="ck_rate_lines_band_pair",
        ),
        CheckConstraint("carers_required >= 1", name="ck_rate_lines_carers"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    rate_card_id: Mapped[int] = mapped_column(
        ForeignKey("rate_cards.id"), nullable=False, index=True
    )
    day_type: Mapped[DayType] = mapped_column(
        Enum(DayType, native_enum=False, length=32), nullable=False
    )
    time_band_start: Mapped[time | None] = mapped_column(Time, nullable=True)
    time_band_end: Mapped[time | None] = mapped_column(Time, nullable=True)
    rate_per_hour: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    carers_required: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    rate_card: Mapped["RateCard"] = relationship("RateCard", back_populates="lines")


class MileageRate(Base):
    """Per-mile rate attached to a rate card."""

    __tablename__ = "mileage_rates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    rate_card_id: Mapped[int] = mapped_column(
        ForeignKey("rate_cards.id"), nullable=False, unique=True
    )
    rate_per_mile: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    rate_card: Mapped["RateCard"] = relationship("RateCard", back_populates="mileage_rate")


__all__ = ["MileageRate", "RateCard", "RateLine"]
