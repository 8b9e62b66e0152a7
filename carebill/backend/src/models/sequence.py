"""Document number sequence model."""

from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class DocumentSequence(Base):
    """Monotonic counter per document kind (invoices, credit notes)."""

    __tablename__ = "document_sequences"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


__all__ = ["DocumentSequence"]
