"""Bank holiday model backing the holiday calendar."""

from __future__ import annotations

from datetime import date

from sqlalchemy import Date, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class BankHoliday(Base):
    """A public holiday observed in a region."""

    __tablename__ = "bank_holidays"
    __table_args__ = (
        UniqueConstraint("holiday_date", "region", name="uq_bank_holidays_date_region"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    holiday_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    region: Mapped[str] = mapped_column(String(32), nullable=False, default="SCOTLAND")


__all__ = ["BankHoliday"]
