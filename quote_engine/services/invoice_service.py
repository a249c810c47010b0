"""Invoice issue, payment settlement and PDF download."""

from __future__ import annotations

import logging
from datetime import timedelta

from quote_engine.auth.ownership import Principal
from quote_engine.core.exceptions import ConflictError, NotFoundError, ValidationError
from quote_engine.models import ContractorQuote, Invoice, InvoiceStatus, TransactionType, utcnow
from quote_engine.services.base_service import BaseService
from quote_engine.services.financial_engine import calculate_invoice_amounts, verify_quotation_financials
from quote_engine.services.invoice_renderer import render_invoice_pdf
from quote_engine.services.wallet_service import WalletService

logger = logging.getLogger(__name__)


def build_invoice_number(quotation_id: int, issued_at) -> str:
    return f"INV-{issued_at:%Y%m%d}-{quotation_id}"


class InvoiceService(BaseService):
    """Business logic for invoices generated from selected quotations."""

    def create_for_quotation(self, quotation: ContractorQuote, user_id: int) -> Invoice:
        """Issue the invoice for a selected quotation inside the caller's transaction.

        A cancelled invoice left behind by a reversed selection is reissued in
        place; any other existing invoice is a conflict.
        """
        totals = verify_quotation_financials(quotation)
        amounts = calculate_invoice_amounts(totals, quotation.vat_percent)
        now = utcnow()

        invoice = self.db.query(Invoice).filter(Invoice.quotation_id == quotation.id).one_or_none()
        if invoice is not None and invoice.status != InvoiceStatus.CANCELLED:
            raise ConflictError(f"Quotation {quotation.id} already has invoice {invoice.invoice_number}.")
        if invoice is None:
            invoice = Invoice(quotation_id=quotation.id)
            self.db.add(invoice)

        invoice.invoice_number = build_invoice_number(quotation.id, now)
        invoice.request_id = quotation.request_id
        invoice.contractor_id = quotation.contractor_id
        invoice.user_id = user_id
        invoice.gross_amount = amounts.gross_amount
        invoice.overprice_deduction = amounts.overprice_deduction
        invoice.commission_deduction = amounts.commission_deduction
        invoice.penalty_deduction = amounts.penalty_deduction
        invoice.net_amount = amounts.net_amount
        invoice.vat_percent = amounts.vat_percent
        invoice.vat_amount = amounts.vat_amount
        invoice.total_with_vat = amounts.total_with_vat
        invoice.status = InvoiceStatus.PENDING
        invoice.issued_at = now
        invoice.due_date = now + timedelta(days=self.config.INVOICE_DUE_DAYS)
        invoice.paid_at = None
        invoice.payment_reference = None
        self.db.flush()

        logger.info(
            "invoice.issued",
            extra={
                "event": "invoice.issued",
                "invoice_id": invoice.id,
                "invoice_number": invoice.invoice_number,
                "quotation_id": quotation.id,
                "total_with_vat": str(invoice.total_with_vat),
            },
        )
        return invoice

    def get_invoice(self, invoice_id: int, principal: Principal) -> Invoice:
        invoice = self.db.get(Invoice, invoice_id)
        if invoice is None:
            raise NotFoundError(f"Invoice not found: {invoice_id}")
        if principal.is_admin:
            return invoice
        owner_id = invoice.contractor_id if principal.is_contractor else invoice.user_id
        if owner_id != principal.user_id:
            raise NotFoundError(f"Invoice not found: {invoice_id}")
        return invoice

    def get_for_quotation(self, quotation_id: int) -> Invoice | None:
        return self.db.query(Invoice).filter(Invoice.quotation_id == quotation_id).one_or_none()

    def mark_paid(self, invoice_id: int, actor_id: int, payment_reference: str) -> Invoice:
        """Settle an invoice: credit the base price, then debit the commission."""
        reference = (payment_reference or "").strip()
        if not reference:
            raise ValidationError("payment_reference is required.")
        invoice = self.lock_row(Invoice, invoice_id, "Invoice")
        try:
            if invoice.status != InvoiceStatus.PENDING:
                raise ConflictError(f"Invoice {invoice.invoice_number} is {invoice.status.value}.")

            quotation = invoice.quotation
            wallets = WalletService(db=self.db, config=self.config)
            wallets.post_transaction(
                contractor_id=invoice.contractor_id,
                transaction_type=TransactionType.PAYMENT,
                amount=quotation.base_price,
                reference_type="invoice",
                reference_id=invoice.id,
                description=f"Payment for {invoice.invoice_number}",
                actor_id=actor_id,
            )
            wallets.post_transaction(
                contractor_id=invoice.contractor_id,
                transaction_type=TransactionType.COMMISSION,
                amount=-invoice.commission_deduction,
                reference_type="invoice",
                reference_id=invoice.id,
                description=f"Platform commission for {invoice.invoice_number}",
                actor_id=actor_id,
            )
            invoice.status = InvoiceStatus.PAID
            invoice.paid_at = utcnow()
            invoice.payment_reference = reference
        except Exception:
            self.rollback()
            raise
        self.commit()
        logger.info(
            "invoice.paid",
            extra={
                "event": "invoice.paid",
                "invoice_id": invoice.id,
                "contractor_id": invoice.contractor_id,
                "base_price": str(quotation.base_price),
                "commission": str(invoice.commission_deduction),
                "payment_reference": reference,
            },
        )
        return invoice

    def render_pdf(self, invoice_id: int, principal: Principal) -> bytes:
        invoice = self.get_invoice(invoice_id, principal)
        return render_invoice_pdf(invoice, invoice.quotation)
