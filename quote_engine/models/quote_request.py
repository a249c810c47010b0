"""Quote request and contractor assignment models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, Numeric, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quote_engine.models.base import AuditMixin, Base, enum_column, utcnow
from quote_engine.models.enums import AssignmentStatus, QuoteRequestStatus


class QuoteRequest(Base, AuditMixin):
    __tablename__ = "quote_requests"
    __table_args__ = (Index("idx_quote_requests_user_status", "user_id", "status"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    property_details: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    electricity_consumption: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    location: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    system_size_kwp: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    roof_size_sqm: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    status: Mapped[QuoteRequestStatus] = mapped_column(
        enum_column(QuoteRequestStatus), default=QuoteRequestStatus.PENDING, nullable=False, index=True
    )
    contractor_ids: Mapped[list[int]] = mapped_column(JSON, default=list, nullable=False)
    penalty_acknowledged: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    selected_quotation_id: Mapped[int | None] = mapped_column(Integer)
    selected_at: Mapped[datetime | None]
    installation_deadline: Mapped[datetime | None]
    installation_completed_at: Mapped[datetime | None]
    cancellation_reason: Mapped[str | None] = mapped_column(Text)
    cancelled_by: Mapped[int | None] = mapped_column(Integer)
    cancelled_at: Mapped[datetime | None]
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    assignments = relationship(
        "ContractorQuoteAssignment",
        back_populates="request",
        order_by="ContractorQuoteAssignment.id",
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in {QuoteRequestStatus.COMPLETED, QuoteRequestStatus.CANCELLED}

    @property
    def stalled(self) -> bool:
        """All assignments rejected while the request still waits on contractors."""
        if self.status != QuoteRequestStatus.CONTRACTORS_SELECTED or not self.assignments:
            return False
        return all(item.status == AssignmentStatus.REJECTED for item in self.assignments)


class ContractorQuoteAssignment(Base):
    __tablename__ = "contractor_quote_assignments"
    __table_args__ = (
        UniqueConstraint("request_id", "contractor_id", name="uq_assignments_request_contractor"),
        Index("idx_assignments_contractor_status", "contractor_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    request_id: Mapped[int] = mapped_column(ForeignKey("quote_requests.id", ondelete="RESTRICT"), nullable=False)
    contractor_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[AssignmentStatus] = mapped_column(
        enum_column(AssignmentStatus), default=AssignmentStatus.ASSIGNED, nullable=False
    )
    notes: Mapped[str | None] = mapped_column(Text)
    assigned_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    viewed_at: Mapped[datetime | None]
    responded_at: Mapped[datetime | None]

    request = relationship("QuoteRequest", back_populates="assignments")
