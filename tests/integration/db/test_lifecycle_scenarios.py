from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from quote_engine.models import (
    AssignmentStatus,
    ContractorQuote,
    DisputeResolution,
    Invoice,
    Penalty,
    PenaltyStatus,
    QuotationStatus,
    QuoteRequestStatus,
    TransactionType,
    WalletTransaction,
    utcnow,
)
from quote_engine.orchestration.penalty_scheduler import PenaltyCheckRunner
from quote_engine.services.invoice_service import InvoiceService
from quote_engine.services.penalty_service import PenaltyService
from quote_engine.services.wallet_service import WalletService


def test_selection_rejects_sibling_and_invoices_the_winner(lifecycle, session):
    request = lifecycle.create_request(contractor_ids=(101, 102, 103))
    assert request.status == QuoteRequestStatus.CONTRACTORS_SELECTED
    assert len(request.assignments) == 3

    lifecycle.respond(request, 101)
    lifecycle.respond(request, 102)
    lifecycle.respond(request, 103, AssignmentStatus.REJECTED)

    quotation_a = lifecycle.review(lifecycle.submit(request, 101, unit_price="22700"))
    quotation_b = lifecycle.review(lifecycle.submit(request, 102, unit_price="21500"))
    assert request.status == QuoteRequestStatus.QUOTES_RECEIVED

    selected, invoice = lifecycle.select(quotation_a)
    session.expire_all()

    assert selected.id == quotation_a.id
    sibling = session.get(ContractorQuote, quotation_b.id)
    assert sibling.admin_status == QuotationStatus.REJECTED
    assert sibling.is_selected is False
    assert session.query(ContractorQuote).filter(ContractorQuote.is_selected.is_(True)).count() == 1

    assert invoice.contractor_id == 101
    assert invoice.net_amount == Decimal("19295.00")
    assert invoice.vat_amount == Decimal("2894.25")
    assert invoice.total_with_vat == Decimal("22189.25")
    assert session.query(Invoice).count() == 1
    assert request.status == QuoteRequestStatus.QUOTE_SELECTED


def test_late_installation_dispute_waived_restores_wallet(lifecycle, session, session_factory):
    request, (quotation,) = lifecycle.approved_quotations({101: "22700"})
    _quotation, invoice = lifecycle.select(quotation)
    InvoiceService(db=session).mark_paid(invoice.id, lifecycle.admin.user_id, "BANK-1001")
    balance_after_payment = WalletService(db=session).get_wallet(101).balance
    assert balance_after_payment == Decimal("19295.00")

    request.installation_deadline = utcnow() - timedelta(days=5, hours=1)
    session.commit()

    summary = PenaltyCheckRunner(session_factory=session_factory).run_once(trigger="scheduler")
    assert summary["penalties_applied"] == 1

    session.expire_all()
    penalty = session.query(Penalty).one()
    assert penalty.is_automatic is True
    assert penalty.status == PenaltyStatus.APPLIED
    assert WalletService(db=session).get_wallet(101).balance == balance_after_payment - penalty.amount

    service = PenaltyService(db=session)
    service.dispute_penalty(penalty.id, lifecycle.contractor(101), "Customer postponed the installation date twice.")
    waived = service.resolve_dispute(
        penalty.id,
        actor_id=lifecycle.admin.user_id,
        resolution=DisputeResolution.WAIVE,
        resolution_notes="Delay caused by the customer, confirmed by call logs.",
    )
    assert waived.status == PenaltyStatus.WAIVED

    wallets = WalletService(db=session)
    assert wallets.get_wallet(101).balance == balance_after_payment
    types = [
        entry.transaction_type
        for entry in session.query(WalletTransaction).order_by(WalletTransaction.id).all()
    ]
    assert types == [
        TransactionType.PAYMENT,
        TransactionType.COMMISSION,
        TransactionType.PENALTY,
        TransactionType.REFUND,
    ]
    assert wallets.verify_integrity(101)["consistent"] is True
