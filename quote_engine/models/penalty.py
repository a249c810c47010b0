"""Penalty rule, penalty and SLA violation models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from quote_engine.models.base import AuditMixin, Base, enum_column, utcnow
from quote_engine.models.enums import (
    CalculationType,
    DisputeResolution,
    PenalizedParty,
    PenaltyStatus,
    PenaltyType,
    Severity,
    ViolationSource,
    ViolationStatus,
)


class PenaltyRule(Base):
    """A versioned rule. Rows are never deleted; edits insert a new version."""

    __tablename__ = "penalty_rules"
    __table_args__ = (
        UniqueConstraint("code", "version", name="uq_penalty_rules_code_version"),
        Index("idx_penalty_rules_type_active", "penalty_type", "is_active"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    penalty_type: Mapped[PenaltyType] = mapped_column(enum_column(PenaltyType), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    calculation_type: Mapped[CalculationType] = mapped_column(enum_column(CalculationType), nullable=False)
    amount_value: Mapped[Decimal] = mapped_column(nullable=False)
    max_amount: Mapped[Decimal | None]
    grace_period_hours: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    severity: Mapped[Severity] = mapped_column(enum_column(Severity), nullable=False)
    auto_apply: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_by: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    deactivated_at: Mapped[datetime | None]


class SLAViolation(Base):
    __tablename__ = "sla_violations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    fingerprint: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    request_id: Mapped[int] = mapped_column(ForeignKey("quote_requests.id", ondelete="RESTRICT"), nullable=False)
    quotation_id: Mapped[int | None] = mapped_column(ForeignKey("contractor_quotes.id", ondelete="RESTRICT"))
    contractor_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    violation_type: Mapped[PenaltyType] = mapped_column(enum_column(PenaltyType), nullable=False)
    severity: Mapped[Severity] = mapped_column(enum_column(Severity), nullable=False)
    days_overdue: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    source: Mapped[ViolationSource] = mapped_column(enum_column(ViolationSource), nullable=False)
    status: Mapped[ViolationStatus] = mapped_column(
        enum_column(ViolationStatus), default=ViolationStatus.OPEN, nullable=False
    )
    description: Mapped[str | None] = mapped_column(Text)
    evidence: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    reported_by: Mapped[int | None] = mapped_column(Integer)
    penalty_id: Mapped[int | None] = mapped_column(Integer)
    detected_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    last_seen_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class Penalty(Base, AuditMixin):
    __tablename__ = "penalties"
    __table_args__ = (
        Index("idx_penalties_contractor_status", "contractor_id", "status"),
        Index("idx_penalties_type_applied", "penalty_type", "applied_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    fingerprint: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    penalty_type: Mapped[PenaltyType] = mapped_column(enum_column(PenaltyType), nullable=False)
    severity: Mapped[Severity] = mapped_column(enum_column(Severity), nullable=False)
    status: Mapped[PenaltyStatus] = mapped_column(
        enum_column(PenaltyStatus), default=PenaltyStatus.APPLIED, nullable=False
    )
    penalized_party: Mapped[PenalizedParty] = mapped_column(
        enum_column(PenalizedParty), default=PenalizedParty.CONTRACTOR, nullable=False
    )
    # Penalized contractor, or the beneficiary contractor of a user penalty.
    contractor_id: Mapped[int | None] = mapped_column(Integer)
    user_id: Mapped[int | None] = mapped_column(Integer)
    request_id: Mapped[int] = mapped_column(ForeignKey("quote_requests.id", ondelete="RESTRICT"), nullable=False)
    quotation_id: Mapped[int | None] = mapped_column(ForeignKey("contractor_quotes.id", ondelete="RESTRICT"))
    violation_id: Mapped[int | None] = mapped_column(ForeignKey("sla_violations.id", ondelete="RESTRICT"))
    rule_id: Mapped[int | None] = mapped_column(ForeignKey("penalty_rules.id", ondelete="RESTRICT"))
    rule_version: Mapped[int | None] = mapped_column(Integer)

    amount: Mapped[Decimal] = mapped_column(nullable=False)
    adjusted_amount: Mapped[Decimal | None]
    contractor_share: Mapped[Decimal] = mapped_column(nullable=False)
    platform_share: Mapped[Decimal] = mapped_column(nullable=False)
    calculation: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    evidence: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    is_automatic: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    applied_by: Mapped[int | None] = mapped_column(Integer)
    applied_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    debit_transaction_id: Mapped[int | None] = mapped_column(Integer)

    dispute_reason: Mapped[str | None] = mapped_column(Text)
    disputed_by: Mapped[int | None] = mapped_column(Integer)
    disputed_at: Mapped[datetime | None]
    resolution: Mapped[DisputeResolution | None] = mapped_column(enum_column(DisputeResolution))
    resolution_notes: Mapped[str | None] = mapped_column(Text)
    resolved_by: Mapped[int | None] = mapped_column(Integer)
    resolved_at: Mapped[datetime | None]
    refund_transaction_id: Mapped[int | None] = mapped_column(Integer)
    adjustment_transaction_id: Mapped[int | None] = mapped_column(Integer)

    @property
    def effective_amount(self) -> Decimal:
        return self.adjusted_amount if self.adjusted_amount is not None else self.amount
