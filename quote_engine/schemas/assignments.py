"""Contractor assignment schemas for API contracts."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from quote_engine.models import AssignmentStatus


class AssignmentRespondRequest(BaseModel):
    response: Literal["accepted", "rejected"]
    notes: str | None = Field(default=None, max_length=5000)


class AssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    request_id: int
    contractor_id: int
    status: AssignmentStatus
    notes: str | None = None
    assigned_at: datetime
    viewed_at: datetime | None = None
    responded_at: datetime | None = None
