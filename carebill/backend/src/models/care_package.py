"""Care package model (read-only collaborator record)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .funder import Funder
    from .service_user import ServiceUser


class CarePackage(Base):
    """A funded package of care for one service user."""

    __tablename__ = "care_packages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    service_user_id: Mapped[int] = mapped_column(
        ForeignKey("service_users.id"), nullable=False, index=True
    )
    funder_id: Mapped[int] = mapped_column(
        ForeignKey("funders.id"), nullable=False, index=True
    )
    package_name: Mapped[str] = mapped_column(String(255), nullable=False)
    minimum_billable_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    rounding_increment_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    mileage_billable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    service_user: Mapped["ServiceUser"] = relationship(
        "ServiceUser", back_populates="care_packages"
    )
    funder: Mapped["Funder"] = relationship("Funder", back_populates="care_packages")


__all__ = ["CarePackage"]
