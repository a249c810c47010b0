"""Invoice model module."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quote_engine.models.base import PERCENT, AuditMixin, Base, enum_column, utcnow
from quote_engine.models.enums import InvoiceStatus


class Invoice(Base, AuditMixin):
    __tablename__ = "invoices"
    __table_args__ = (Index("idx_invoices_contractor_status", "contractor_id", "status"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    invoice_number: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    quotation_id: Mapped[int] = mapped_column(
        ForeignKey("contractor_quotes.id", ondelete="RESTRICT"), unique=True, nullable=False
    )
    request_id: Mapped[int] = mapped_column(ForeignKey("quote_requests.id", ondelete="RESTRICT"), nullable=False)
    contractor_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)

    gross_amount: Mapped[Decimal]
    overprice_deduction: Mapped[Decimal]
    commission_deduction: Mapped[Decimal]
    penalty_deduction: Mapped[Decimal]
    net_amount: Mapped[Decimal]
    vat_percent: Mapped[Decimal] = mapped_column(PERCENT, nullable=False)
    vat_amount: Mapped[Decimal]
    total_with_vat: Mapped[Decimal]

    status: Mapped[InvoiceStatus] = mapped_column(
        enum_column(InvoiceStatus), default=InvoiceStatus.PENDING, nullable=False
    )
    issued_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    due_date: Mapped[datetime]
    paid_at: Mapped[datetime | None]
    payment_reference: Mapped[str | None] = mapped_column(String(128))

    quotation = relationship("ContractorQuote")
