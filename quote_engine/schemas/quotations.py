"""Quotation schemas for API contracts.

Contractors only send prices per line item; every derived amount in
``QuotationResponse`` is computed server-side.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from quote_engine.models import QuotationStatus


class LineItemInput(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    units: int = Field(default=1, ge=1)
    unit_price: Decimal = Field(gt=0)


class SystemSpecs(BaseModel):
    capacity_kwp: Decimal | None = Field(default=None, gt=0)
    annual_generation_kwh: Decimal | None = Field(default=None, ge=0)
    efficiency_percent: Decimal | None = Field(default=None, ge=0, le=100)
    grid_connection_type: str | None = Field(default=None, max_length=64)
    battery_included: bool = False
    battery_capacity_kwh: Decimal | None = Field(default=None, ge=0)
    monitoring_included: bool = False
    components: list[str] = Field(default_factory=list)
    attributes: dict[str, Any] = Field(default_factory=dict)


class QuotationRevisionRequest(BaseModel):
    installation_timeline_days: int = Field(ge=1)
    system_specs: SystemSpecs
    warranty_terms: str = Field(min_length=1, max_length=5000)
    maintenance_terms: str = Field(min_length=1, max_length=5000)
    line_items: list[LineItemInput] = Field(min_length=1)
    system_size_kwp: Decimal | None = Field(default=None, gt=0)
    panel_brand: str | None = Field(default=None, max_length=120)
    panel_model: str | None = Field(default=None, max_length=120)
    panel_quantity: int | None = Field(default=None, ge=1)
    inverter_brand: str | None = Field(default=None, max_length=120)
    inverter_model: str | None = Field(default=None, max_length=120)
    inverter_quantity: int | None = Field(default=None, ge=1)
    contractor_vat_number: str | None = Field(default=None, max_length=64)


class QuotationSubmitRequest(QuotationRevisionRequest):
    request_id: int = Field(ge=1)


class QuotationReviewRequest(BaseModel):
    decision: Literal["approved", "rejected", "revision_needed"]
    notes: str | None = Field(default=None, max_length=5000)
    price_override: Decimal | None = Field(default=None, gt=0)


class ReverseSelectionRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=2000)


class LineItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    position: int
    name: str
    description: str | None = None
    units: int
    unit_price: Decimal
    total_price: Decimal
    commission_amount: Decimal
    overprice_amount: Decimal
    user_price: Decimal
    vendor_net: Decimal


class QuotationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    request_id: int
    contractor_id: int
    contractor_name: str | None = None
    admin_status: QuotationStatus
    base_price: Decimal
    original_base_price: Decimal | None = None
    system_size_kwp: Decimal
    price_per_kwp: Decimal
    overprice_amount: Decimal
    total_user_price: Decimal
    commission_amount: Decimal
    contractor_net_amount: Decimal
    platform_revenue: Decimal
    vat_amount: Decimal
    total_payable: Decimal
    commission_percent: Decimal
    overprice_percent: Decimal
    vat_percent: Decimal
    pricing_config_version: int
    installation_timeline_days: int
    system_specs: dict[str, Any]
    warranty_terms: str
    maintenance_terms: str
    panel_brand: str | None = None
    panel_model: str | None = None
    panel_quantity: int | None = None
    inverter_brand: str | None = None
    inverter_model: str | None = None
    inverter_quantity: int | None = None
    contractor_vat_number: str | None = None
    admin_notes: str | None = None
    price_override_note: str | None = None
    revision_count: int
    is_selected: bool
    selected_at: datetime | None = None
    expires_at: datetime
    created_at: datetime | None = None
    line_items: list[LineItemResponse] = Field(default_factory=list)
