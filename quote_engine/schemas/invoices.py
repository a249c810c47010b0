"""Invoice schemas for API contracts."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from quote_engine.models import InvoiceStatus


class MarkPaidRequest(BaseModel):
    payment_reference: str = Field(min_length=1, max_length=128)


class InvoiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_number: str
    quotation_id: int
    request_id: int
    contractor_id: int
    user_id: int
    gross_amount: Decimal
    overprice_deduction: Decimal
    commission_deduction: Decimal
    penalty_deduction: Decimal
    net_amount: Decimal
    vat_percent: Decimal
    vat_amount: Decimal
    total_with_vat: Decimal
    status: InvoiceStatus
    issued_at: datetime
    due_date: datetime
    paid_at: datetime | None = None
    payment_reference: str | None = None


class SelectionResponse(BaseModel):
    quotation_id: int
    request_id: int
    installation_deadline: datetime | None = None
    invoice: InvoiceResponse
