"""Care visit model (read-only collaborator record)."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .care_package import CarePackage
    from .service_user import ServiceUser


class CareVisit(Base):
    """A scheduled or delivered visit logged by the rota system.

    Times are wall-clock local times; rate bands are matched against them as-is.
    """

    __tablename__ = "care_visits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    service_user_id: Mapped[int] = mapped_column(
        ForeignKey("service_users.id"), nullable=False, index=True
    )
    care_package_id: Mapped[int | None] = mapped_column(
        ForeignKey("care_packages.id"), nullable=True, index=True
    )
    scheduled_start: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    scheduled_end: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    actual_start: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    actual_end: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    carers_assigned: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    mileage_miles: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    service_user: Mapped["ServiceUser"] = relationship("ServiceUser")
    care_package: Mapped["CarePackage | None"] = relationship("CarePackage")


__all__ = ["CareVisit"]
