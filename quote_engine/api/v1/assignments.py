"""Contractor assignment endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.orm import Session

from quote_engine.api.v1._authz import page, require_principal
from quote_engine.core.dependencies import get_db_session
from quote_engine.models import AssignmentStatus
from quote_engine.schemas.assignments import AssignmentRespondRequest, AssignmentResponse
from quote_engine.services.assignment_service import AssignmentService

router = APIRouter(tags=["assignments"])


@router.get("/contractor/assignments")
def list_my_assignments(
    status_filter: AssignmentStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> dict:
    principal = require_principal(authorization, ["assignments.read"])
    items, total = AssignmentService(db=db).list_for_contractor(principal, status_filter, limit, offset)
    return page([AssignmentResponse.model_validate(item).model_dump(mode="json") for item in items], total, limit, offset)


@router.post("/assignments/{assignment_id}/view", response_model=AssignmentResponse)
def view_assignment(
    assignment_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> AssignmentResponse:
    principal = require_principal(authorization, ["assignments.read"])
    return AssignmentResponse.model_validate(AssignmentService(db=db).mark_viewed(assignment_id, principal))


@router.post("/contractor-responses/{assignment_id}", response_model=AssignmentResponse)
def respond_to_assignment(
    assignment_id: int,
    payload: AssignmentRespondRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> AssignmentResponse:
    principal = require_principal(authorization, ["assignments.respond"])
    assignment = AssignmentService(db=db).respond(
        assignment_id, principal, AssignmentStatus(payload.response), payload.notes
    )
    return AssignmentResponse.model_validate(assignment)
