"""Funder model."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Enum, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .enums import BillingTimeBasis, FunderType, InvoiceFrequency

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .care_package import CarePackage
    from .invoice import Invoice
    from .rate_card import RateCard


class Funder(Base):
    """Represents a paying body billed for care visits."""

    __tablename__ = "funders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    funder_type: Mapped[FunderType] = mapped_column(
        Enum(FunderType, native_enum=False, length=32),
        nullable=False,
        default=FunderType.LOCAL_AUTHORITY,
    )
    payment_terms_days: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    invoice_frequency: Mapped[InvoiceFrequency] = mapped_column(
        Enum(InvoiceFrequency, native_enum=False, length=32),
        nullable=False,
        default=InvoiceFrequency.MONTHLY,
    )
    billing_time_basis: Mapped[BillingTimeBasis] = mapped_column(
        Enum(BillingTimeBasis, native_enum=False, length=32),
        nullable=False,
        default=BillingTimeBasis.SCHEDULED,
    )
    holiday_region: Mapped[str] = mapped_column(
        String(32), nullable=False, default="SCOTLAND"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    rate_cards: Mapped[list["RateCard"]] = relationship(
        "RateCard", back_populates="funder", order_by="RateCard.effective_from.desc()"
    )
    care_packages: Mapped[list["CarePackage"]] = relationship(
        "CarePackage", back_populates="funder"
    )
    invoices: Mapped[list["Invoice"]] = relationship("Invoice", back_populates="funder")


__all__ = ["Funder"]
