"""Billable visit and reconciliation schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from carebill.backend.src.models.enums import BillableVisitStatus, DayType


class BillableVisitRead(BaseModel):
    """Serialized billable visit."""

    id: int
    care_visit_id: int
    care_package_id: int
    service_user_id: int
    funder_id: int
    rate_card_id: int | None
    rate_line_id: int | None
    visit_date: date
    day_type: DayType
    billing_start: datetime
    billing_end: datetime
    billing_duration_minutes: int
    carers_required: int
    applied_rate_per_hour: Decimal
    care_total: Decimal
    mileage_miles: Decimal | None
    mileage_rate: Decimal | None
    mileage_total: Decimal
    visit_total: Decimal
    override_amount: Decimal | None
    override_reason: str | None
    dispute_reason: str | None
    status: BillableVisitStatus
    invoice_line_id: int | None
    approved_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class BillableVisitPage(BaseModel):
    items: list[BillableVisitRead]
    total: int
    page: int
    limit: int


class PeriodRequest(BaseModel):
    period_start: date
    period_end: date
    funder_id: int | None = None


class GenerateRequest(PeriodRequest):
    service_user_id: int | None = None


class GenerationIssueRead(BaseModel):
    care_visit_id: int
    reason: str


class GenerationResultRead(BaseModel):
    generated: int
    total: int
    skipped: int
    issues: list[GenerationIssueRead] = []


class BulkApproveResult(BaseModel):
    approved: int


class DisputeRequest(BaseModel):
    reason: str = Field(min_length=1)


class OverrideRequest(BaseModel):
    amount: Decimal = Field(ge=0)
    reason: str = Field(min_length=1)


class StatusCount(BaseModel):
    status: BillableVisitStatus
    count: int


class DayTypeBreakdown(BaseModel):
    day_type: DayType
    count: int
    minutes: int
    total: Decimal


class ReconciliationSummary(BaseModel):
    total_visits: int
    total_hours: Decimal
    total_amount: Decimal
    by_status: list[StatusCount]
    by_day_type: list[DayTypeBreakdown]


__all__ = [
    "BillableVisitPage",
    "BillableVisitRead",
    "BulkApproveResult",
    "DayTypeBreakdown",
    "DisputeRequest",
    "GenerateRequest",
    "GenerationIssueRead",
    "GenerationResultRead",
    "OverrideRequest",
    "PeriodRequest",
    "ReconciliationSummary",
    "StatusCount",
]
