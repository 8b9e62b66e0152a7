"""Invoice model."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .enums import InvoiceStatus

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .credit_note import CreditNote
    from .funder import Funder
    from .invoice_line import InvoiceLine
    from .payment import InvoicePayment


class Invoice(Base):
    """Represents one billing document issued to a funder for a period."""

    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_number: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True
    )
    funder_id: Mapped[int] = mapped_column(ForeignKey("funders.id"), nullable=False, index=True)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    status: Mapped[InvoiceStatus] = mapped_column(
        Enum(InvoiceStatus, native_enum=False, length=32),
        nullable=False,
        default=InvoiceStatus.DRAFT,
        index=True,
    )
    sent_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    paid_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payment_reference: Mapped[str | None] = mapped_column(String(255), nullable=True)
    voided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    written_off_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    funder: Mapped["Funder"] = relationship("Funder", back_populates="invoices")
    lines: Mapped[list["InvoiceLine"]] = relationship(
        "InvoiceLine",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLine.id",
    )
    payments: Mapped[list["InvoicePayment"]] = relationship(
        "InvoicePayment",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoicePayment.id",
    )
    credit_notes: Mapped[list["CreditNote"]] = relationship(
        "CreditNote", back_populates="invoice", order_by="CreditNote.id"
    )

    @property
    def outstanding(self) -> Decimal:
        """Return the unpaid balance, never negative."""

        balance = (self.total or Decimal("0")) - (self.paid_amount or Decimal("0"))
        return max(balance, Decimal("0.00"))


__all__ = ["Invoice"]
