from __future__ import annotations

from decimal import Decimal

import pytest

from quote_engine.core.exceptions import ConflictError
from quote_engine.models import (
    DisputeResolution,
    Invoice,
    Penalty,
    PenaltyStatus,
    PenaltyType,
    TransactionType,
    WalletTransaction,
)
from quote_engine.services.invoice_service import InvoiceService
from quote_engine.services.penalty_service import PenaltyService
from quote_engine.services.wallet_service import WalletService

NOTES = "Customer confirmed the panels were replaced."


def _count(db, transaction_type):
    return db.query(WalletTransaction).filter(WalletTransaction.transaction_type == transaction_type).count()


def test_waive_from_stale_session_is_rejected(lifecycle, session, session_factory):
    _request, (quotation,) = lifecycle.approved_quotations({101: "22700"})
    lifecycle.select(quotation)
    penalty = PenaltyService(db=session).apply_penalty(
        actor_id=1,
        contractor_id=101,
        quotation_id=quotation.id,
        penalty_type=PenaltyType.QUALITY_ISSUE,
        description="Panels mounted with visible gaps",
    ).penalty
    PenaltyService(db=session).dispute_penalty(
        penalty.id, lifecycle.contractor(101), "The gaps were part of the approved layout."
    )

    stale = session_factory()
    try:
        assert stale.get(Penalty, penalty.id).status == PenaltyStatus.DISPUTED
        stale.commit()

        PenaltyService(db=session).resolve_dispute(penalty.id, 1, DisputeResolution.WAIVE, NOTES)

        with pytest.raises(ConflictError):
            PenaltyService(db=stale).resolve_dispute(penalty.id, 1, DisputeResolution.WAIVE, NOTES)
    finally:
        stale.close()

    session.expire_all()
    assert _count(session, TransactionType.REFUND) == 1
    assert session.get(Penalty, penalty.id).status == PenaltyStatus.WAIVED
    assert WalletService(db=session).verify_integrity(101)["consistent"] is True


def test_mark_paid_from_stale_session_credits_once(lifecycle, session, session_factory):
    _request, (quotation,) = lifecycle.approved_quotations({101: "22700"})
    _selected, invoice = lifecycle.select(quotation)

    stale = session_factory()
    try:
        stale.get(Invoice, invoice.id)
        stale.commit()

        InvoiceService(db=session).mark_paid(invoice.id, actor_id=1, payment_reference="BANK-1")

        with pytest.raises(ConflictError):
            InvoiceService(db=stale).mark_paid(invoice.id, actor_id=1, payment_reference="BANK-2")
    finally:
        stale.close()

    session.expire_all()
    assert _count(session, TransactionType.PAYMENT) == 1
    assert WalletService(db=session).get_wallet(101).balance == Decimal("19295.00")
    assert session.get(Invoice, invoice.id).payment_reference == "BANK-1"
