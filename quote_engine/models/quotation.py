"""Contractor quotation and line item models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quote_engine.models.base import PERCENT, AuditMixin, Base, enum_column
from quote_engine.models.enums import QuotationStatus


class ContractorQuote(Base, AuditMixin):
    __tablename__ = "contractor_quotes"
    __table_args__ = (
        UniqueConstraint("request_id", "contractor_id", name="uq_contractor_quotes_request_contractor"),
        Index("idx_contractor_quotes_request_status", "request_id", "admin_status"),
        Index(
            "uq_contractor_quotes_one_selected",
            "request_id",
            unique=True,
            sqlite_where=text("is_selected = 1"),
            postgresql_where=text("is_selected IS TRUE"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    request_id: Mapped[int] = mapped_column(ForeignKey("quote_requests.id", ondelete="RESTRICT"), nullable=False)
    contractor_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    assignment_id: Mapped[int] = mapped_column(
        ForeignKey("contractor_quote_assignments.id", ondelete="RESTRICT"), nullable=False
    )

    # Derived financial fields, written only by the financial engine.
    base_price: Mapped[Decimal]
    original_base_price: Mapped[Decimal | None]
    system_size_kwp: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    price_per_kwp: Mapped[Decimal]
    overprice_amount: Mapped[Decimal]
    total_user_price: Mapped[Decimal]
    commission_amount: Mapped[Decimal]
    contractor_net_amount: Mapped[Decimal]
    platform_revenue: Mapped[Decimal]
    vat_amount: Mapped[Decimal]
    total_payable: Mapped[Decimal]

    # Rate snapshot used for the derived fields above.
    commission_percent: Mapped[Decimal] = mapped_column(PERCENT, nullable=False)
    overprice_percent: Mapped[Decimal] = mapped_column(PERCENT, nullable=False)
    vat_percent: Mapped[Decimal] = mapped_column(PERCENT, nullable=False)
    pricing_config_version: Mapped[int] = mapped_column(Integer, nullable=False)

    installation_timeline_days: Mapped[int] = mapped_column(Integer, nullable=False)
    system_specs: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    warranty_terms: Mapped[str] = mapped_column(Text, nullable=False)
    maintenance_terms: Mapped[str] = mapped_column(Text, nullable=False)
    panel_brand: Mapped[str | None] = mapped_column(String(120))
    panel_model: Mapped[str | None] = mapped_column(String(120))
    panel_quantity: Mapped[int | None] = mapped_column(Integer)
    inverter_brand: Mapped[str | None] = mapped_column(String(120))
    inverter_model: Mapped[str | None] = mapped_column(String(120))
    inverter_quantity: Mapped[int | None] = mapped_column(Integer)
    contractor_vat_number: Mapped[str | None] = mapped_column(String(64))

    admin_status: Mapped[QuotationStatus] = mapped_column(
        enum_column(QuotationStatus), default=QuotationStatus.PENDING_REVIEW, nullable=False
    )
    admin_notes: Mapped[str | None] = mapped_column(Text)
    price_override_note: Mapped[str | None] = mapped_column(Text)
    reviewed_by: Mapped[int | None] = mapped_column(Integer)
    reviewed_at: Mapped[datetime | None]
    revision_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    is_selected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    selected_at: Mapped[datetime | None]
    rejected_by_selection_of: Mapped[int | None] = mapped_column(Integer)
    expires_at: Mapped[datetime]

    line_items = relationship(
        "QuotationLineItem",
        back_populates="quotation",
        cascade="all, delete-orphan",
        order_by="QuotationLineItem.position",
    )


class QuotationLineItem(Base):
    __tablename__ = "quotation_line_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    quotation_id: Mapped[int] = mapped_column(
        ForeignKey("contractor_quotes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    units: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal]
    total_price: Mapped[Decimal]
    commission_amount: Mapped[Decimal]
    overprice_amount: Mapped[Decimal]
    user_price: Mapped[Decimal]
    vendor_net: Mapped[Decimal]

    quotation = relationship("ContractorQuote", back_populates="line_items")
