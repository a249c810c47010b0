"""Quotation selection and its admin reversal."""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy.exc import IntegrityError, OperationalError

from quote_engine.auth.ownership import Principal, enforce_owner
from quote_engine.core.exceptions import ConflictError, NotFoundError, ValidationError
from quote_engine.models import (
    ContractorQuote,
    Invoice,
    InvoiceStatus,
    QuotationStatus,
    QuoteRequest,
    QuoteRequestStatus,
    utcnow,
)
from quote_engine.orchestration.state_machine import QUOTE_REQUEST_OVERRIDES, InvalidTransitionError
from quote_engine.services.base_service import BaseService
from quote_engine.services.invoice_service import InvoiceService
from quote_engine.services.quotation_service import expire_if_due
from quote_engine.services.request_state import compare_and_set_status

logger = logging.getLogger(__name__)


class SelectionService(BaseService):
    """Turns one approved quotation into the accepted offer for its request."""

    def select_quotation(self, quotation_id: int, principal: Principal) -> tuple[ContractorQuote, Invoice]:
        """Select a quotation, reject its approved siblings and issue the invoice.

        Runs as one transaction. Of two concurrent selections on the same
        request exactly one commits; the other gets a ``ConflictError``.
        """
        try:
            quotation = self.db.get(ContractorQuote, quotation_id)
            if quotation is None:
                raise NotFoundError(f"Quotation not found: {quotation_id}")
            request = self.lock_row(QuoteRequest, quotation.request_id, "Quote request")
            enforce_owner(request.user_id, principal, "Quotation", quotation_id)
            quotation = self.lock_row(ContractorQuote, quotation_id, "Quotation")

            if expire_if_due(quotation):
                self.commit()
                raise ConflictError(f"Quotation {quotation_id} has expired.")
            if quotation.admin_status != QuotationStatus.APPROVED:
                if principal.is_admin:
                    raise InvalidTransitionError(f"Quotation {quotation_id} is {quotation.admin_status.value}.")
                raise NotFoundError(f"Quotation not found: {quotation_id}")

            already_selected = (
                self.db.query(ContractorQuote.id)
                .filter(ContractorQuote.request_id == request.id, ContractorQuote.is_selected.is_(True))
                .first()
            )
            if already_selected is not None:
                raise ConflictError(f"Quote request {request.id} already has a selected quotation.")

            now = utcnow()
            deadline = now + timedelta(days=quotation.installation_timeline_days)
            compare_and_set_status(
                self.db,
                request,
                expected=QuoteRequestStatus.QUOTES_RECEIVED,
                target=QuoteRequestStatus.QUOTE_SELECTED,
                selected_quotation_id=quotation.id,
                selected_at=now,
                installation_deadline=deadline,
            )

            quotation.is_selected = True
            quotation.selected_at = now
            siblings = (
                self.db.query(ContractorQuote)
                .filter(
                    ContractorQuote.request_id == request.id,
                    ContractorQuote.id != quotation.id,
                    ContractorQuote.admin_status == QuotationStatus.APPROVED,
                )
                .all()
            )
            for sibling in siblings:
                sibling.admin_status = QuotationStatus.REJECTED
                sibling.rejected_by_selection_of = quotation.id
                sibling.admin_notes = f"Another quotation ({quotation.id}) was selected"
            self.db.flush()

            invoice = InvoiceService(db=self.db, config=self.config).create_for_quotation(quotation, request.user_id)
            self.commit()
        except (IntegrityError, OperationalError) as exc:
            self.rollback()
            raise ConflictError(f"Concurrent selection on quotation {quotation_id}; re-fetch and retry.") from exc
        except Exception:
            self.rollback()
            raise

        logger.info(
            "quotation.selected",
            extra={
                "event": "quotation.selected",
                "quotation_id": quotation.id,
                "request_id": quotation.request_id,
                "user_id": principal.user_id,
                "rejected_siblings": [sibling.id for sibling in siblings],
                "invoice_number": invoice.invoice_number,
                "installation_deadline": deadline.isoformat(),
            },
        )
        return quotation, invoice

    def reverse_selection(self, quotation_id: int, actor_id: int, reason: str) -> ContractorQuote:
        """Admin override: un-select and re-open the siblings this selection rejected."""
        if not (reason or "").strip():
            raise ValidationError("A reason is required to reverse a selection.")
        try:
            quotation = self.db.get(ContractorQuote, quotation_id)
            if quotation is None:
                raise NotFoundError(f"Quotation not found: {quotation_id}")
            request = self.lock_row(QuoteRequest, quotation.request_id, "Quote request")
            quotation = self.lock_row(ContractorQuote, quotation_id, "Quotation")
            if not quotation.is_selected:
                raise ConflictError(f"Quotation {quotation_id} is not selected.")

            invoice = self.db.query(Invoice).filter(Invoice.quotation_id == quotation.id).one_or_none()
            if invoice is not None and invoice.status == InvoiceStatus.PAID:
                raise ConflictError(f"Invoice {invoice.invoice_number} is already paid; selection cannot be reversed.")

            compare_and_set_status(
                self.db,
                request,
                expected=QuoteRequestStatus.QUOTE_SELECTED,
                target=QuoteRequestStatus.QUOTES_RECEIVED,
                machine=QUOTE_REQUEST_OVERRIDES,
                selected_quotation_id=None,
                selected_at=None,
                installation_deadline=None,
            )
            quotation.is_selected = False
            quotation.selected_at = None
            quotation.admin_notes = f"Selection reversed: {reason.strip()}"

            now = utcnow()
            reopened: list[int] = []
            siblings = (
                self.db.query(ContractorQuote)
                .filter(
                    ContractorQuote.request_id == request.id,
                    ContractorQuote.rejected_by_selection_of == quotation.id,
                )
                .all()
            )
            for sibling in siblings:
                sibling.rejected_by_selection_of = None
                if now >= sibling.expires_at:
                    sibling.admin_notes = f"Expired on {sibling.expires_at.date().isoformat()}"
                    continue
                sibling.admin_status = QuotationStatus.APPROVED
                sibling.admin_notes = "Re-opened after selection reversal"
                reopened.append(sibling.id)

            if invoice is not None:
                invoice.status = InvoiceStatus.CANCELLED
            self.commit()
        except (IntegrityError, OperationalError) as exc:
            self.rollback()
            raise ConflictError(f"Concurrent update on quotation {quotation_id}; re-fetch and retry.") from exc
        except Exception:
            self.rollback()
            raise

        logger.info(
            "quotation.selection_reversed",
            extra={
                "event": "quotation.selection_reversed",
                "quotation_id": quotation_id,
                "request_id": quotation.request_id,
                "actor_id": actor_id,
                "reopened_siblings": reopened,
                "reason": reason.strip(),
            },
        )
        return quotation
