"""Contractor wallet ledger.

Every balance change is exactly one append-only ``WalletTransaction`` row
carrying ``balance_before`` and ``balance_after``. Postings lock the wallet
row and rely on the mapper's version counter, so two transactions racing on
one wallet serialize or the loser gets a ``ConflictError``.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from quote_engine.core.exceptions import ConflictError, NotFoundError, ValidationError
from quote_engine.models import ContractorWallet, TransactionType, WalletTransaction
from quote_engine.services.base_service import BaseService
from quote_engine.services.financial_engine import ZERO, to_money

logger = logging.getLogger(__name__)

_CREDIT_TYPES = {TransactionType.PAYMENT, TransactionType.REFUND}
_DEBIT_TYPES = {TransactionType.COMMISSION, TransactionType.PENALTY, TransactionType.WITHDRAWAL}


def _apply_aggregates(wallet: ContractorWallet, transaction_type: TransactionType, amount: Decimal) -> None:
    if transaction_type == TransactionType.PAYMENT:
        wallet.total_earned += amount
    elif transaction_type == TransactionType.COMMISSION:
        wallet.total_commission_paid -= amount
    elif transaction_type == TransactionType.PENALTY:
        wallet.total_penalties -= amount
    elif transaction_type in {TransactionType.REFUND, TransactionType.ADJUSTMENT}:
        # Refunds and adjustments only ever compensate penalty debits.
        wallet.total_penalties -= amount
    elif transaction_type == TransactionType.WITHDRAWAL:
        wallet.total_withdrawn -= amount


class WalletService(BaseService):
    """Posts ledger entries and answers balance questions."""

    def get_wallet(self, contractor_id: int) -> ContractorWallet:
        wallet = self.db.query(ContractorWallet).filter(ContractorWallet.contractor_id == contractor_id).one_or_none()
        if wallet is None:
            raise NotFoundError(f"Wallet not found for contractor {contractor_id}")
        return wallet

    def get_or_create_wallet(self, contractor_id: int) -> ContractorWallet:
        wallet = self.db.query(ContractorWallet).filter(ContractorWallet.contractor_id == contractor_id).one_or_none()
        if wallet is not None:
            return wallet
        try:
            with self.db.begin_nested():
                wallet = ContractorWallet(
                    contractor_id=contractor_id,
                    balance=ZERO,
                    total_earned=ZERO,
                    total_commission_paid=ZERO,
                    total_penalties=ZERO,
                    total_withdrawn=ZERO,
                )
                self.db.add(wallet)
        except IntegrityError:
            # Another transaction created it first.
            wallet = self.db.query(ContractorWallet).filter(ContractorWallet.contractor_id == contractor_id).one()
        return wallet

    def _lock_wallet(self, contractor_id: int) -> ContractorWallet:
        self.get_or_create_wallet(contractor_id)
        return (
            self.db.query(ContractorWallet)
            .filter(ContractorWallet.contractor_id == contractor_id)
            .with_for_update()
            .populate_existing()
            .one()
        )

    def post_transaction(
        self,
        contractor_id: int,
        transaction_type: TransactionType,
        amount: Any,
        reference_type: str | None = None,
        reference_id: int | None = None,
        description: str | None = None,
        actor_id: int | None = None,
    ) -> WalletTransaction:
        """Append one signed ledger entry inside the caller's transaction.

        Credits are positive, debits negative. Nothing is committed here.
        """
        signed = to_money(amount)
        if signed == ZERO:
            raise ValidationError("Wallet transaction amount must be non-zero.")
        if transaction_type in _CREDIT_TYPES and signed < ZERO:
            raise ValidationError(f"{transaction_type.value} must be a credit.")
        if transaction_type in _DEBIT_TYPES and signed > ZERO:
            raise ValidationError(f"{transaction_type.value} must be a debit.")

        wallet = self._lock_wallet(contractor_id)
        before = to_money(wallet.balance)
        after = before + signed
        wallet.balance = after
        _apply_aggregates(wallet, transaction_type, signed)

        entry = WalletTransaction(
            wallet_id=wallet.id,
            contractor_id=contractor_id,
            transaction_type=transaction_type,
            amount=signed,
            balance_before=before,
            balance_after=after,
            reference_type=reference_type,
            reference_id=reference_id,
            description=description,
            created_by=actor_id,
        )
        self.db.add(entry)
        try:
            self.db.flush()
        except (StaleDataError, OperationalError) as exc:
            raise ConflictError(f"Wallet for contractor {contractor_id} changed concurrently; retry.") from exc

        logger.info(
            "wallet.transaction.posted",
            extra={
                "event": "wallet.transaction.posted",
                "contractor_id": contractor_id,
                "transaction_id": entry.id,
                "transaction_type": transaction_type.value,
                "amount": str(signed),
                "balance_after": str(after),
                "reference_type": reference_type,
                "reference_id": reference_id,
            },
        )
        return entry

    def request_payout(self, contractor_id: int, amount: Any, actor_id: int, note: str | None = None) -> WalletTransaction:
        value = to_money(amount)
        if value <= ZERO:
            raise ValidationError("Payout amount must be greater than zero.")
        wallet = self._lock_wallet(contractor_id)
        if value > wallet.balance:
            raise ValidationError(f"Payout {value} exceeds available balance {wallet.balance}.")
        entry = self.post_transaction(
            contractor_id=contractor_id,
            transaction_type=TransactionType.WITHDRAWAL,
            amount=-value,
            reference_type="payout",
            description=note or "Contractor payout",
            actor_id=actor_id,
        )
        self.commit()
        return entry

    def list_transactions(self, contractor_id: int, limit: int = 50, offset: int = 0) -> tuple[list[WalletTransaction], int]:
        query = self.db.query(WalletTransaction).filter(WalletTransaction.contractor_id == contractor_id)
        total = query.count()
        items = query.order_by(WalletTransaction.id.desc()).offset(offset).limit(limit).all()
        return items, total

    def verify_integrity(self, contractor_id: int) -> dict[str, Any]:
        """Check the ledger chain and that it sums to the stored balance."""
        wallet = self.get_wallet(contractor_id)
        entries = (
            self.db.query(WalletTransaction)
            .filter(WalletTransaction.wallet_id == wallet.id)
            .order_by(WalletTransaction.id)
            .all()
        )
        broken: list[int] = []
        previous_after = ZERO
        for entry in entries:
            if to_money(entry.balance_after) != to_money(entry.balance_before) + to_money(entry.amount):
                broken.append(entry.id)
            elif to_money(entry.balance_before) != previous_after:
                broken.append(entry.id)
            previous_after = to_money(entry.balance_after)

        ledger_sum = to_money(
            self.db.query(func.coalesce(func.sum(WalletTransaction.amount), 0))
            .filter(WalletTransaction.wallet_id == wallet.id)
            .scalar()
        )
        balance = to_money(wallet.balance)
        return {
            "contractor_id": contractor_id,
            "balance": balance,
            "ledger_sum": ledger_sum,
            "transaction_count": len(entries),
            "broken_transaction_ids": broken,
            "consistent": not broken and ledger_sum == balance,
        }
