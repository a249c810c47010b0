from __future__ import annotations

import threading
from decimal import Decimal

from quote_engine.core.exceptions import ConflictError
from quote_engine.models import Penalty, PenaltyType, TransactionType, WalletTransaction
from quote_engine.services.penalty_service import PenaltyService
from quote_engine.services.wallet_service import WalletService


def test_concurrent_application_creates_one_penalty_and_one_debit(lifecycle, session_factory):
    _request, (quotation,) = lifecycle.approved_quotations({101: "22700"})
    lifecycle.select(quotation)

    barrier = threading.Barrier(2)
    outcomes = []

    def _apply():
        db = session_factory()
        try:
            barrier.wait()
            outcome = PenaltyService(db=db).apply_penalty(
                actor_id=1,
                contractor_id=101,
                quotation_id=quotation.id,
                penalty_type=PenaltyType.QUALITY_ISSUE,
                description="Cracked panel left in place",
            )
            outcomes.append(outcome.created)
        except ConflictError:
            outcomes.append("conflict")
        finally:
            db.close()

    threads = [threading.Thread(target=_apply) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert outcomes.count(True) == 1
    db = session_factory()
    try:
        assert db.query(Penalty).count() == 1
        debits = db.query(WalletTransaction).filter(WalletTransaction.transaction_type == TransactionType.PENALTY).all()
        assert len(debits) == 1
        assert debits[0].amount == Decimal("-2270.00")
        assert WalletService(db=db).verify_integrity(101)["consistent"] is True
    finally:
        db.close()
