"""Quote request lifecycle: creation, reads, cancellation and completion."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from quote_engine.auth.ownership import Principal, enforce_owner
from quote_engine.core.exceptions import ConflictError, NotFoundError, ValidationError
from quote_engine.models import (
    AssignmentStatus,
    ContractorQuote,
    Invoice,
    InvoiceStatus,
    QuotationStatus,
    QuoteRequest,
    QuoteRequestStatus,
    utcnow,
)
from quote_engine.orchestration.state_machine import QUOTE_REQUEST_MACHINE
from quote_engine.services.assignment_service import AssignmentService
from quote_engine.services.base_service import BaseService
from quote_engine.services.financial_engine import ZERO, to_decimal
from quote_engine.services.penalty_service import PenaltyService
from quote_engine.services.pricing_service import PricingService
from quote_engine.services.request_state import compare_and_set_status

logger = logging.getLogger(__name__)

_OPEN_QUOTATION_STATUSES = {
    QuotationStatus.PENDING_REVIEW,
    QuotationStatus.APPROVED,
    QuotationStatus.REVISION_NEEDED,
}


class QuoteRequestService(BaseService):
    """Owns the ``QuoteRequest`` entity and its state machine."""

    def create_request(self, principal: Principal, data: dict[str, Any]) -> QuoteRequest:
        size = to_decimal(data.get("system_size_kwp"), "system_size_kwp")
        pricing = PricingService(db=self.db, config=self.config).get_active()
        if size < pricing.min_system_size_kwp or size > pricing.max_system_size_kwp:
            raise ValidationError(
                f"System size must be between {pricing.min_system_size_kwp} and {pricing.max_system_size_kwp} kWp."
            )
        roof_size = data.get("roof_size_sqm")
        if roof_size is not None:
            roof_size = to_decimal(roof_size, "roof_size_sqm")
        if roof_size is not None and roof_size <= ZERO:
            raise ValidationError("roof_size_sqm must be greater than zero.")

        request = QuoteRequest(
            user_id=principal.user_id,
            property_details=dict(data.get("property_details") or {}),
            electricity_consumption=dict(data.get("electricity_consumption") or {}),
            location=dict(data.get("location") or {}),
            system_size_kwp=size,
            roof_size_sqm=roof_size,
            status=QuoteRequestStatus.PENDING,
            contractor_ids=[],
            penalty_acknowledged=bool(data.get("penalty_acknowledged", False)),
        )
        self.db.add(request)
        self.db.flush()

        contractor_ids = data.get("contractor_ids") or []
        if contractor_ids:
            AssignmentService(db=self.db, config=self.config).assign_in_transaction(request, contractor_ids)

        self.commit()
        logger.info(
            "quote_request.created",
            extra={
                "event": "quote_request.created",
                "request_id": request.id,
                "user_id": principal.user_id,
                "system_size_kwp": str(size),
                "contractor_count": len(contractor_ids),
            },
        )
        return request

    def get_request(self, request_id: int, principal: Principal) -> QuoteRequest:
        request = self.db.get(QuoteRequest, request_id)
        if request is None:
            raise NotFoundError(f"Quote request not found: {request_id}")
        if principal.is_contractor:
            if principal.user_id not in (request.contractor_ids or []):
                raise NotFoundError(f"Quote request not found: {request_id}")
            return request
        enforce_owner(request.user_id, principal, "Quote request", request_id)
        return request

    def lock_request(self, request_id: int) -> QuoteRequest:
        """Load a request with a row lock where the backend supports one."""
        request = (
            self.db.query(QuoteRequest)
            .filter(QuoteRequest.id == request_id)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )
        if request is None:
            raise NotFoundError(f"Quote request not found: {request_id}")
        return request

    def list_requests(
        self,
        principal: Principal,
        status: QuoteRequestStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[QuoteRequest], int]:
        query = self.db.query(QuoteRequest)
        if not principal.is_admin:
            query = query.filter(QuoteRequest.user_id == principal.user_id)
        if status is not None:
            query = query.filter(QuoteRequest.status == status)
        total = query.count()
        items = query.order_by(QuoteRequest.id.desc()).offset(offset).limit(limit).all()
        return items, total

    def cancel_request(
        self,
        request_id: int,
        principal: Principal,
        reason: str,
        responsible_contractor_id: int | None = None,
    ) -> QuoteRequest:
        """Cancel from any non-terminal state and release contractor holds."""
        if not (reason or "").strip():
            raise ValidationError("A cancellation reason is required.")
        if responsible_contractor_id is not None and not principal.is_admin:
            raise ValidationError("Only an admin can name a responsible contractor.")

        request = self.get_request(request_id, principal)
        if request.is_terminal:
            raise ConflictError(f"Quote request {request_id} is already {request.status.value}.")
        if responsible_contractor_id is not None and responsible_contractor_id not in request.contractor_ids:
            raise ValidationError(f"Contractor {responsible_contractor_id} is not assigned to this request.")

        accepted = [item for item in request.assignments if item.status == AssignmentStatus.ACCEPTED]
        now = utcnow()
        compare_and_set_status(
            self.db,
            request,
            expected=request.status,
            target=QuoteRequestStatus.CANCELLED,
            cancellation_reason=reason.strip(),
            cancelled_by=principal.user_id,
            cancelled_at=now,
        )
        self._release_holds(request, now)

        penalties = PenaltyService(db=self.db, config=self.config)
        amount = self.config.CANCELLATION_PENALTY_AMOUNT
        if not principal.is_admin and accepted and amount > ZERO:
            selected = self._selected_quotation(request)
            beneficiary = selected.contractor_id if selected is not None else accepted[0].contractor_id
            penalties.record_user_cancellation_penalty(request, beneficiary, amount, principal.user_id)
        if responsible_contractor_id is not None:
            penalties.record_contractor_cancellation_penalty(request, responsible_contractor_id, principal.user_id)

        self.commit()
        logger.info(
            "quote_request.cancelled",
            extra={
                "event": "quote_request.cancelled",
                "request_id": request_id,
                "cancelled_by": principal.user_id,
                "after_acceptance": bool(accepted),
                "responsible_contractor_id": responsible_contractor_id,
            },
        )
        return request

    def _selected_quotation(self, request: QuoteRequest) -> ContractorQuote | None:
        if request.selected_quotation_id is None:
            return None
        return self.db.get(ContractorQuote, request.selected_quotation_id)

    def _release_holds(self, request: QuoteRequest, now: datetime) -> None:
        for assignment in request.assignments:
            if assignment.status != AssignmentStatus.REJECTED:
                assignment.status = AssignmentStatus.REJECTED
                assignment.notes = "Released: request cancelled"
                assignment.responded_at = assignment.responded_at or now

        quotations = (
            self.db.query(ContractorQuote)
            .filter(
                ContractorQuote.request_id == request.id,
                ContractorQuote.is_selected.is_(False),
                ContractorQuote.admin_status.in_(_OPEN_QUOTATION_STATUSES),
            )
            .all()
        )
        for quotation in quotations:
            quotation.admin_status = QuotationStatus.REJECTED
            quotation.admin_notes = "Request cancelled"

        invoices = (
            self.db.query(Invoice)
            .filter(Invoice.request_id == request.id, Invoice.status == InvoiceStatus.PENDING)
            .all()
        )
        for invoice in invoices:
            invoice.status = InvoiceStatus.CANCELLED

    def confirm_installation(
        self,
        request_id: int,
        principal: Principal,
        completed_at: datetime | None = None,
    ) -> QuoteRequest:
        request = self.get_request(request_id, principal)
        completed = completed_at or utcnow()
        QUOTE_REQUEST_MACHINE.assert_transition(request.status, QuoteRequestStatus.COMPLETED)
        if request.selected_at is not None and completed < request.selected_at:
            raise ValidationError("Installation cannot complete before the quotation was selected.")
        compare_and_set_status(
            self.db,
            request,
            expected=QuoteRequestStatus.QUOTE_SELECTED,
            target=QuoteRequestStatus.COMPLETED,
            installation_completed_at=completed,
        )
        self.commit()
        logger.info(
            "quote_request.completed",
            extra={"event": "quote_request.completed", "request_id": request_id, "confirmed_by": principal.user_id},
        )
        return request
