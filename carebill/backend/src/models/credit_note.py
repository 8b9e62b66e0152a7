"""Credit note model."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .enums import CreditNoteStatus

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .invoice import Invoice


class CreditNote(Base):
    """A credit issued against an invoice."""

    __tablename__ = "credit_notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    credit_note_number: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True
    )
    invoice_id: Mapped[int] = mapped_column(ForeignKey("invoices.id"), nullable=False, index=True)
    funder_id: Mapped[int] = mapped_column(ForeignKey("funders.id"), nullable=False, index=True)
    credit_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[CreditNoteStatus] = mapped_column(
        Enum(CreditNoteStatus, native_enum=False, length=32),
        nullable=False,
        default=CreditNoteStatus.DRAFT,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="credit_notes")


__all__ = ["CreditNote"]
