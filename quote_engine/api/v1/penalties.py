"""Penalty, dispute and violation endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.orm import Session

from quote_engine.api.v1._authz import page, require_principal
from quote_engine.core.dependencies import get_db_session
from quote_engine.models import PenaltyStatus, PenaltyType, ViolationStatus
from quote_engine.schemas.penalties import (
    PenaltyApplyRequest,
    PenaltyApplyResponse,
    PenaltyDisputeRequest,
    PenaltyResolveRequest,
    PenaltyResponse,
    PenaltyRuleResponse,
    ViolationReportRequest,
    ViolationResponse,
)
from quote_engine.services.penalty_rules import PenaltyRuleService
from quote_engine.services.penalty_service import PenaltyService

router = APIRouter(tags=["penalties"])


@router.post("/penalties", response_model=PenaltyApplyResponse)
def apply_penalty(
    payload: PenaltyApplyRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> PenaltyApplyResponse:
    principal = require_principal(authorization, ["penalties.apply"])
    outcome = PenaltyService(db=db).apply_penalty(
        actor_id=principal.user_id,
        contractor_id=payload.contractor_id,
        quotation_id=payload.quote_id,
        penalty_type=payload.penalty_type,
        description=payload.description,
        custom_amount=payload.custom_amount,
        evidence=payload.evidence,
        violation_id=payload.violation_id,
    )
    return PenaltyApplyResponse(created=outcome.created, penalty=PenaltyResponse.model_validate(outcome.penalty))


@router.get("/penalties")
def list_penalties(
    contractor_id: int | None = Query(default=None, ge=1),
    status_filter: PenaltyStatus | None = Query(default=None, alias="status"),
    penalty_type: PenaltyType | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> dict:
    principal = require_principal(authorization, ["penalties.read"])
    items, total = PenaltyService(db=db).list_penalties(
        principal, contractor_id, status_filter, penalty_type, limit, offset
    )
    return page([PenaltyResponse.model_validate(item).model_dump(mode="json") for item in items], total, limit, offset)


@router.get("/penalties/statistics")
def penalty_statistics(
    period: str = Query(default="last_30_days"),
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> dict:
    require_principal(authorization, ["penalties.statistics"])
    return PenaltyService(db=db).statistics(period)


@router.get("/penalties/{penalty_id}", response_model=PenaltyResponse)
def get_penalty(
    penalty_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> PenaltyResponse:
    principal = require_principal(authorization, ["penalties.read"])
    return PenaltyResponse.model_validate(PenaltyService(db=db).get_penalty(penalty_id, principal))


@router.post("/penalties/{penalty_id}/dispute", response_model=PenaltyResponse)
def dispute_penalty(
    penalty_id: int,
    payload: PenaltyDisputeRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> PenaltyResponse:
    principal = require_principal(authorization, ["penalties.dispute"])
    penalty = PenaltyService(db=db).dispute_penalty(penalty_id, principal, payload.dispute_reason)
    return PenaltyResponse.model_validate(penalty)


@router.post("/penalties/{penalty_id}/resolve", response_model=PenaltyResponse)
def resolve_penalty_dispute(
    penalty_id: int,
    payload: PenaltyResolveRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> PenaltyResponse:
    principal = require_principal(authorization, ["penalties.resolve"])
    penalty = PenaltyService(db=db).resolve_dispute(
        penalty_id,
        actor_id=principal.user_id,
        resolution=payload.resolution,
        resolution_notes=payload.resolution_notes,
        adjusted_amount=payload.adjusted_amount,
    )
    return PenaltyResponse.model_validate(penalty)


@router.post("/violations", response_model=ViolationResponse, status_code=status.HTTP_201_CREATED)
def report_violation(
    payload: ViolationReportRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> ViolationResponse:
    principal = require_principal(authorization, ["violations.report"])
    violation = PenaltyService(db=db).report_violation(
        principal,
        payload.request_id,
        PenaltyType(payload.violation_type),
        payload.description,
        payload.evidence,
    )
    return ViolationResponse.model_validate(violation)


@router.get("/violations")
def list_violations(
    status_filter: ViolationStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> dict:
    require_principal(authorization, ["violations.read"])
    items = PenaltyService(db=db).list_violations(status_filter, limit, offset)
    return {"items": [ViolationResponse.model_validate(item).model_dump(mode="json") for item in items]}


@router.get("/penalty-rules")
def list_penalty_rules(
    include_inactive: bool = Query(default=False),
    penalty_type: PenaltyType | None = Query(default=None),
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> dict:
    require_principal(authorization, ["penalty_rules.read"])
    rules = PenaltyRuleService(db=db).list_rules(active_only=not include_inactive, penalty_type=penalty_type)
    return {"items": [PenaltyRuleResponse.model_validate(rule).model_dump(mode="json") for rule in rules]}
