"""Pricing configuration schemas for API contracts."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class PricingConfigUpdateRequest(BaseModel):
    commission_percent: Decimal | None = Field(default=None, ge=0, le=50)
    overprice_percent: Decimal | None = Field(default=None, ge=0, le=50)
    vat_percent: Decimal | None = Field(default=None, ge=0, le=100)
    max_price_per_kwp: Decimal | None = Field(default=None, gt=0)
    min_system_size_kwp: Decimal | None = Field(default=None, gt=0)
    max_system_size_kwp: Decimal | None = Field(default=None, gt=0)
    notes: str | None = Field(default=None, max_length=2000)


class PricingConfigResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    version: int
    commission_percent: Decimal
    overprice_percent: Decimal
    vat_percent: Decimal
    max_price_per_kwp: Decimal
    min_system_size_kwp: Decimal
    max_system_size_kwp: Decimal
    is_active: bool
    notes: str | None = None
    created_at: datetime
    deactivated_at: datetime | None = None
