"""Quote request schemas for API contracts."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from quote_engine.models import QuoteRequestStatus


class PropertyDetails(BaseModel):
    property_type: str | None = Field(default=None, max_length=64)
    roof_type: str | None = Field(default=None, max_length=64)
    floors: int | None = Field(default=None, ge=1, le=200)
    building_age_years: int | None = Field(default=None, ge=0)
    shading: str | None = Field(default=None, max_length=64)
    notes: str | None = Field(default=None, max_length=5000)
    attributes: dict[str, Any] = Field(default_factory=dict)


class ElectricityConsumption(BaseModel):
    average_monthly_kwh: Decimal | None = Field(default=None, ge=0)
    monthly_kwh: list[Decimal] = Field(default_factory=list, max_length=12)
    provider: str | None = Field(default=None, max_length=120)
    annual_cost: Decimal | None = Field(default=None, ge=0)


class Location(BaseModel):
    address: str = Field(min_length=1, max_length=500)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    service_area: str | None = Field(default=None, max_length=120)


class QuoteRequestCreateRequest(BaseModel):
    property_details: PropertyDetails
    electricity_consumption: ElectricityConsumption = Field(default_factory=ElectricityConsumption)
    system_size_kwp: Decimal = Field(gt=0)
    location: Location
    roof_size_sqm: Decimal | None = Field(default=None, gt=0)
    penalty_acknowledged: bool = False
    contractor_ids: list[int] | None = None


class AssignContractorsRequest(BaseModel):
    contractor_ids: list[int] = Field(min_length=1)


class CancelQuoteRequestRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=2000)
    responsible_contractor_id: int | None = Field(default=None, ge=1)


class CompleteQuoteRequestRequest(BaseModel):
    completed_at: datetime | None = None


class QuoteRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    status: QuoteRequestStatus
    property_details: dict[str, Any]
    electricity_consumption: dict[str, Any]
    location: dict[str, Any]
    system_size_kwp: Decimal
    roof_size_sqm: Decimal | None = None
    contractor_ids: list[int]
    penalty_acknowledged: bool
    selected_quotation_id: int | None = None
    selected_at: datetime | None = None
    installation_deadline: datetime | None = None
    installation_completed_at: datetime | None = None
    cancellation_reason: str | None = None
    cancelled_at: datetime | None = None
    stalled: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
