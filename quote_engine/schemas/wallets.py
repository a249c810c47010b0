"""Wallet and ledger schemas for API contracts."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from quote_engine.models import TransactionType


class PayoutRequest(BaseModel):
    amount: Decimal = Field(gt=0)
    note: str | None = Field(default=None, max_length=500)


class WalletResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    contractor_id: int
    balance: Decimal
    total_earned: Decimal
    total_commission_paid: Decimal
    total_penalties: Decimal
    total_withdrawn: Decimal
    updated_at: datetime | None = None


class WalletTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    contractor_id: int
    transaction_type: TransactionType
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    reference_type: str | None = None
    reference_id: int | None = None
    description: str | None = None
    created_at: datetime
