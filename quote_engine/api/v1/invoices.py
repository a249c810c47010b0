"""Invoice endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Response
from sqlalchemy.orm import Session

from quote_engine.api.v1._authz import require_principal
from quote_engine.core.dependencies import get_db_session
from quote_engine.schemas.invoices import InvoiceResponse, MarkPaidRequest
from quote_engine.services.invoice_service import InvoiceService

router = APIRouter(tags=["invoices"])


@router.get("/invoices/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(
    invoice_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> InvoiceResponse:
    principal = require_principal(authorization, ["invoices.read"])
    return InvoiceResponse.model_validate(InvoiceService(db=db).get_invoice(invoice_id, principal))


@router.get("/invoices/{invoice_id}/pdf")
def download_invoice_pdf(
    invoice_id: int,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> Response:
    principal = require_principal(authorization, ["invoices.read"])
    service = InvoiceService(db=db)
    invoice = service.get_invoice(invoice_id, principal)
    content = service.render_pdf(invoice_id, principal)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{invoice.invoice_number}.pdf"'},
    )


@router.post("/invoices/{invoice_id}/mark-paid", response_model=InvoiceResponse)
def mark_invoice_paid(
    invoice_id: int,
    payload: MarkPaidRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> InvoiceResponse:
    principal = require_principal(authorization, ["invoices.settle"])
    invoice = InvoiceService(db=db).mark_paid(invoice_id, principal.user_id, payload.payment_reference)
    return InvoiceResponse.model_validate(invoice)
