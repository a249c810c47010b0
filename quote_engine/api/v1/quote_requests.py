"""Quote request endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.orm import Session

from quote_engine.api.v1._authz import page, require_principal
from quote_engine.core.dependencies import get_db_session
from quote_engine.models import QuoteRequestStatus
from quote_engine.schemas.assignments import AssignmentResponse
from quote_engine.schemas.quotations import QuotationResponse
from quote_engine.schemas.quote_requests import (
    AssignContractorsRequest,
    CancelQuoteRequestRequest,
    CompleteQuoteRequestRequest,
    QuoteRequestCreateRequest,
    QuoteRequestResponse,
)
from quote_engine.services.assignment_service import AssignmentService
from quote_engine.services.quotation_service import QuotationService
from quote_engine.services.quote_request_service import QuoteRequestService

router = APIRouter(tags=["quote-requests"])


@router.post("/quote-requests", response_model=QuoteRequestResponse, status_code=status.HTTP_201_CREATED)
def create_quote_request(
    payload: QuoteRequestCreateRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> QuoteRequestResponse:
    principal = require_principal(authorization, ["quote_requests.create"])
    data = payload.model_dump(mode="json")
    request = QuoteRequestService(db=db).create_request(principal, data)
    return QuoteRequestResponse.model_validate(request)


@router.get("/quote-requests")
def list_quote_requests(
    status_filter: QuoteRequestStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> dict:
    principal = require_principal(authorization, ["quote_requests.read"])
    items, total = QuoteRequestService(db=db).list_requests(principal, status_filter, limit, offset)
    return page([QuoteRequestResponse.model_validate(item).model_dump(mode="json") for item in items], total, limit, offset)


@router.get("/quote-requests/{request_id}", response_model=QuoteRequestResponse)
def get_quote_request(
    request_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> QuoteRequestResponse:
    principal = require_principal(authorization, ["quote_requests.read"])
    return QuoteRequestResponse.model_validate(QuoteRequestService(db=db).get_request(request_id, principal))


@router.post("/quote-requests/{request_id}/assign-contractors", status_code=status.HTTP_201_CREATED)
def assign_contractors(
    request_id: int,
    payload: AssignContractorsRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> dict:
    principal = require_principal(authorization, ["quote_requests.assign"])
    assignments = AssignmentService(db=db).assign_contractors(request_id, principal, payload.contractor_ids)
    return {
        "request_id": request_id,
        "items": [AssignmentResponse.model_validate(item).model_dump(mode="json") for item in assignments],
    }


@router.post("/quote-requests/{request_id}/cancel", response_model=QuoteRequestResponse)
def cancel_quote_request(
    request_id: int,
    payload: CancelQuoteRequestRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> QuoteRequestResponse:
    principal = require_principal(authorization, ["quote_requests.cancel"])
    request = QuoteRequestService(db=db).cancel_request(
        request_id, principal, payload.reason, payload.responsible_contractor_id
    )
    return QuoteRequestResponse.model_validate(request)


@router.post("/quote-requests/{request_id}/complete", response_model=QuoteRequestResponse)
def complete_quote_request(
    request_id: int,
    payload: CompleteQuoteRequestRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> QuoteRequestResponse:
    principal = require_principal(authorization, ["quote_requests.complete"])
    request = QuoteRequestService(db=db).confirm_installation(request_id, principal, payload.completed_at)
    return QuoteRequestResponse.model_validate(request)


@router.get("/quote-requests/{request_id}/quotations")
def list_request_quotations(
    request_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> dict:
    principal = require_principal(authorization, ["quotations.read"])
    service = QuotationService(db=db)
    quotations = service.list_for_request(request_id, principal)
    names = service.contractor_names(quotations)
    return {
        "request_id": request_id,
        "items": [
            QuotationResponse.model_validate(item)
            .model_copy(update={"contractor_name": names.get(item.contractor_id)})
            .model_dump(mode="json")
            for item in quotations
        ],
    }
