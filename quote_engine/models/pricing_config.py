"""Versioned pricing configuration model module."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, Integer, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column

from quote_engine.models.base import PERCENT, Base, UTCDateTime, utcnow


class PricingConfig(Base):
    __tablename__ = "pricing_configs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    version: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    commission_percent: Mapped[Decimal] = mapped_column(PERCENT, nullable=False)
    overprice_percent: Mapped[Decimal] = mapped_column(PERCENT, nullable=False)
    vat_percent: Mapped[Decimal] = mapped_column(PERCENT, nullable=False)
    max_price_per_kwp: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    min_system_size_kwp: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    max_system_size_kwp: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    created_by: Mapped[int | None] = mapped_column(Integer)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    deactivated_at: Mapped[datetime | None] = mapped_column(UTCDateTime())
