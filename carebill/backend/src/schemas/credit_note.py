"""Credit note schemas."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from carebill.backend.src.models.enums import CreditNoteStatus


class CreditNoteCreate(BaseModel):
    invoice_id: int
    amount: Decimal = Field(gt=0)
    reason: str = Field(min_length=1)
    credit_date: date | None = None


class CreditNoteRead(BaseModel):
    id: int
    credit_note_number: str
    invoice_id: int
    funder_id: int
    credit_date: date
    amount: Decimal
    reason: str
    status: CreditNoteStatus

    model_config = ConfigDict(from_attributes=True)


__all__ = ["CreditNoteCreate", "CreditNoteRead"]
