"""Billable visit model."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .enums import BillableVisitStatus, DayType

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .care_package import CarePackage
    from .care_visit import CareVisit
    from .invoice_line import InvoiceLine
    from .service_user import ServiceUser


class BillableVisit(Base):
    """The priced, status-tracked derivative of one care visit.

    Rates and totals are copied by value at generation time. Rows are never
    deleted; VOID rows stay for audit and free the care visit for regeneration.
    """

    __tablename__ = "billable_visits"
    __table_args__ = (
        Index(
            "uq_billable_visits_active_care_visit",
            "care_visit_id",
            unique=True,
            sqlite_where=text("status <> 'VOID'"),
            postgresql_where=text("status <> 'VOID'"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    care_visit_id: Mapped[int] = mapped_column(
        ForeignKey("care_visits.id"), nullable=False, index=True
    )
    care_package_id: Mapped[int] = mapped_column(
        ForeignKey("care_packages.id"), nullable=False, index=True
    )
    service_user_id: Mapped[int] = mapped_column(
        ForeignKey("service_users.id"), nullable=False, index=True
    )
    funder_id: Mapped[int] = mapped_column(
        ForeignKey("funders.id"), nullable=False, index=True
    )
    rate_card_id: Mapped[int | None] = mapped_column(
        ForeignKey("rate_cards.id"), nullable=True
    )
    rate_line_id: Mapped[int | None] = mapped_column(
        ForeignKey("rate_lines.id"), nullable=True
    )
    visit_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    day_type: Mapped[DayType] = mapped_column(
        Enum(DayType, native_enum=False, length=32), nullable=False
    )
    billing_start: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    billing_end: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    billing_duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    carers_required: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    applied_rate_per_hour: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    care_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    mileage_miles: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    mileage_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    mileage_total: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    visit_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    override_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    override_reason: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    dispute_reason: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    status: Mapped[BillableVisitStatus] = mapped_column(
        Enum(BillableVisitStatus, native_enum=False, length=32),
        nullable=False,
        default=BillableVisitStatus.PENDING,
        index=True,
    )
    invoice_line_id: Mapped[int | None] = mapped_column(
        ForeignKey("invoice_lines.id"), nullable=True, index=True
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, onupdate=func.now()
    )

    care_visit: Mapped["CareVisit"] = relationship("CareVisit")
    care_package: Mapped["CarePackage"] = relationship("CarePackage")
    service_user: Mapped["ServiceUser"] = relationship("ServiceUser")
    invoice_line: Mapped["InvoiceLine | None"] = relationship(
        "InvoiceLine", back_populates="billable_visits"
    )

    @property
    def computed_total(self) -> Decimal:
        """Return care plus mileage, ignoring any override."""

        return (self.care_total or Decimal("0")) + (self.mileage_total or Decimal("0"))


__all__ = ["BillableVisit"]
