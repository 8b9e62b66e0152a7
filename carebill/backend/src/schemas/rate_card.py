"""Rate card schemas."""

from __future__ import annotations

from datetime import date, time
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from carebill.backend.src.models.enums import DayType


class RateLineInput(BaseModel):
    """One pricing rule; both band ends or neither."""

    day_type: DayType
    time_band_start: time | None = None
    time_band_end: time | None = None
    rate_per_hour: Decimal = Field(gt=0, decimal_places=2)
    carers_required: int = Field(default=1, ge=1)
    description: str | None = None

    @model_validator(mode="after")
    def check_band(self) -> "RateLineInput":
        if (self.time_band_start is None) != (self.time_band_end is None):
            raise ValueError("time_band_start and time_band_end must be given together")
        if self.time_band_start is not None and self.time_band_start == self.time_band_end:
            raise ValueError("time band start and end must differ; omit both for all day")
        return self


class RateCardCreate(BaseModel):
    funder_id: int | None = None
    name: str = Field(min_length=1)
    effective_from: date
    is_active: bool = True
    notes: str | None = None
    lines: list[RateLineInput] = Field(min_length=1)
    mileage_rate_per_mile: Decimal | None = Field(default=None, ge=0, decimal_places=2)


class RateCardDuplicate(BaseModel):
    name: str = Field(min_length=1)
    effective_from: date


class RateLineRead(BaseModel):
    id: int
    day_type: DayType
    time_band_start: time | None
    time_band_end: time | None
    rate_per_hour: Decimal
    carers_required: int
    description: str | None

    model_config = ConfigDict(from_attributes=True)


class MileageRateRead(BaseModel):
    rate_per_mile: Decimal
    description: str | None

    model_config = ConfigDict(from_attributes=True)


class RateCardRead(BaseModel):
    """Serialized rate card with its lines."""

    id: int
    funder_id: int | None
    name: str
    effective_from: date
    is_active: bool
    notes: str | None
    lines: list[RateLineRead] = []
    mileage_rate: MileageRateRead | None = None

    model_config = ConfigDict(from_attributes=True)


class ResolvedRateRead(BaseModel):
    rate_per_hour: Decimal
    mileage_rate_per_mile: Decimal | None
    rate_line_id: int
    rate_card_id: int
    day_type: DayType

    model_config = ConfigDict(from_attributes=True)


__all__ = [
    "MileageRateRead",
    "RateCardCreate",
    "RateCardDuplicate",
    "RateCardRead",
    "RateLineInput",
    "RateLineRead",
    "ResolvedRateRead",
]
