"""Invoice line model."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .billable_visit import BillableVisit
    from .invoice import Invoice


class InvoiceLine(Base):
    """Aggregates the billable visits of one service user and care package."""

    __tablename__ = "invoice_lines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_id: Mapped[int] = mapped_column(ForeignKey("invoices.id"), nullable=False, index=True)
    service_user_id: Mapped[int] = mapped_column(
        ForeignKey("service_users.id"), nullable=False
    )
    care_package_id: Mapped[int] = mapped_column(
        ForeignKey("care_packages.id"), nullable=False
    )
    description: Mapped[str] = mapped_column(String(512), nullable=False)
    total_visits: Mapped[int] = mapped_column(Integer, nullable=False)
    total_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_mileage: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    care_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    mileage_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    adjustment_total: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    line_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="lines")
    billable_visits: Mapped[list["BillableVisit"]] = relationship(
        "BillableVisit",
        back_populates="invoice_line",
        order_by="BillableVisit.billing_start",
    )


__all__ = ["InvoiceLine"]
