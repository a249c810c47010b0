"""Penalty, violation and penalty rule schemas for API contracts."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from quote_engine.models import (
    CalculationType,
    DisputeResolution,
    PenalizedParty,
    PenaltyStatus,
    PenaltyType,
    Severity,
    ViolationSource,
    ViolationStatus,
)


class PenaltyApplyRequest(BaseModel):
    contractor_id: int = Field(ge=1)
    quote_id: int = Field(ge=1)
    penalty_type: PenaltyType
    description: str = Field(min_length=1, max_length=5000)
    custom_amount: Decimal | None = Field(default=None, gt=0)
    evidence: list[str] = Field(default_factory=list)
    violation_id: int | None = Field(default=None, ge=1)


class PenaltyDisputeRequest(BaseModel):
    dispute_reason: str = Field(min_length=10, max_length=5000)


class PenaltyResolveRequest(BaseModel):
    resolution: DisputeResolution
    resolution_notes: str = Field(min_length=10, max_length=5000)
    adjusted_amount: Decimal | None = Field(default=None, gt=0)


class ViolationReportRequest(BaseModel):
    request_id: int = Field(ge=1)
    violation_type: Literal["quality_issue", "communication_failure", "documentation_issue"]
    description: str = Field(min_length=10, max_length=5000)
    evidence: list[str] = Field(default_factory=list)


class PenaltyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    fingerprint: str
    penalty_type: PenaltyType
    severity: Severity
    status: PenaltyStatus
    penalized_party: PenalizedParty
    contractor_id: int | None = None
    user_id: int | None = None
    request_id: int
    quotation_id: int | None = None
    violation_id: int | None = None
    rule_id: int | None = None
    rule_version: int | None = None
    amount: Decimal
    adjusted_amount: Decimal | None = None
    effective_amount: Decimal
    contractor_share: Decimal
    platform_share: Decimal
    calculation: dict[str, Any]
    description: str
    evidence: list[str]
    is_automatic: bool
    applied_at: datetime
    debit_transaction_id: int | None = None
    dispute_reason: str | None = None
    disputed_at: datetime | None = None
    resolution: DisputeResolution | None = None
    resolution_notes: str | None = None
    resolved_at: datetime | None = None
    refund_transaction_id: int | None = None
    adjustment_transaction_id: int | None = None


class PenaltyApplyResponse(BaseModel):
    created: bool
    penalty: PenaltyResponse


class ViolationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    fingerprint: str
    request_id: int
    quotation_id: int | None = None
    contractor_id: int
    violation_type: PenaltyType
    severity: Severity
    days_overdue: int
    source: ViolationSource
    status: ViolationStatus
    description: str | None = None
    evidence: list[str]
    penalty_id: int | None = None
    detected_at: datetime


class PenaltyRuleCreateRequest(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    penalty_type: PenaltyType
    description: str = Field(min_length=1, max_length=2000)
    calculation_type: CalculationType
    amount_value: Decimal = Field(gt=0)
    max_amount: Decimal | None = Field(default=None, gt=0)
    grace_period_hours: int = Field(default=0, ge=0)
    severity: Severity
    auto_apply: bool = False


class PenaltyRuleUpdateRequest(BaseModel):
    description: str | None = Field(default=None, min_length=1, max_length=2000)
    calculation_type: CalculationType | None = None
    amount_value: Decimal | None = Field(default=None, gt=0)
    max_amount: Decimal | None = Field(default=None, gt=0)
    grace_period_hours: int | None = Field(default=None, ge=0)
    severity: Severity | None = None
    auto_apply: bool | None = None


class PenaltyRuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    version: int
    penalty_type: PenaltyType
    description: str
    calculation_type: CalculationType
    amount_value: Decimal
    max_amount: Decimal | None = None
    grace_period_hours: int
    severity: Severity
    auto_apply: bool
    is_active: bool
    created_at: datetime
    deactivated_at: datetime | None = None
