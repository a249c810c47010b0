"""Quotation submission, review and selection endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.orm import Session

from quote_engine.api.v1._authz import require_principal
from quote_engine.core.dependencies import get_db_session
from quote_engine.models import ContractorQuote, QuotationStatus, QuoteRequest
from quote_engine.schemas.invoices import InvoiceResponse, SelectionResponse
from quote_engine.schemas.quotations import (
    QuotationResponse,
    QuotationReviewRequest,
    QuotationRevisionRequest,
    QuotationSubmitRequest,
)
from quote_engine.services.quotation_service import QuotationService
from quote_engine.services.selection_service import SelectionService

router = APIRouter(tags=["quotations"])


def quotation_out(service: QuotationService, quotation: ContractorQuote) -> QuotationResponse:
    names = service.contractor_names([quotation])
    return QuotationResponse.model_validate(quotation).model_copy(
        update={"contractor_name": names.get(quotation.contractor_id)}
    )


@router.post("/quotations", response_model=QuotationResponse, status_code=status.HTTP_201_CREATED)
def submit_quotation(
    payload: QuotationSubmitRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> QuotationResponse:
    principal = require_principal(authorization, ["quotations.submit"])
    service = QuotationService(db=db)
    quotation = service.submit_quotation(principal, payload.model_dump(mode="json"))
    return quotation_out(service, quotation)


@router.get("/quotations/{quotation_id}", response_model=QuotationResponse)
def get_quotation(
    quotation_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> QuotationResponse:
    principal = require_principal(authorization, ["quotations.read"])
    service = QuotationService(db=db)
    return quotation_out(service, service.get_quotation(quotation_id, principal))


@router.put("/quotations/{quotation_id}", response_model=QuotationResponse)
def revise_quotation(
    quotation_id: int,
    payload: QuotationRevisionRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> QuotationResponse:
    principal = require_principal(authorization, ["quotations.submit"])
    service = QuotationService(db=db)
    quotation = service.revise_quotation(quotation_id, principal, payload.model_dump(mode="json"))
    return quotation_out(service, quotation)


@router.post("/quotations/{quotation_id}/review", response_model=QuotationResponse)
def review_quotation(
    quotation_id: int,
    payload: QuotationReviewRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> QuotationResponse:
    principal = require_principal(authorization, ["quotations.review"])
    service = QuotationService(db=db)
    quotation = service.review_quotation(
        quotation_id,
        actor_id=principal.user_id,
        decision=QuotationStatus(payload.decision),
        notes=payload.notes,
        price_override=payload.price_override,
    )
    return quotation_out(service, quotation)


@router.post("/quotations/{quotation_id}/select", response_model=SelectionResponse)
def select_quotation(
    quotation_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> SelectionResponse:
    principal = require_principal(authorization, ["quotations.select"])
    quotation, invoice = SelectionService(db=db).select_quotation(quotation_id, principal)
    return SelectionResponse(
        quotation_id=quotation.id,
        request_id=quotation.request_id,
        installation_deadline=db.get(QuoteRequest, quotation.request_id).installation_deadline,
        invoice=InvoiceResponse.model_validate(invoice),
    )
