"""Contractor wallet and append-only ledger models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Integer, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quote_engine.core.exceptions import ConflictError
from quote_engine.models.base import AuditMixin, Base, enum_column, utcnow
from quote_engine.models.enums import TransactionType

ZERO = Decimal("0.00")


class LedgerImmutabilityError(ConflictError):
    """Raised when code tries to rewrite or remove a posted ledger row."""


class ContractorWallet(Base, AuditMixin):
    __tablename__ = "contractor_wallets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    contractor_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    balance: Mapped[Decimal] = mapped_column(default=ZERO, nullable=False)
    total_earned: Mapped[Decimal] = mapped_column(default=ZERO, nullable=False)
    total_commission_paid: Mapped[Decimal] = mapped_column(default=ZERO, nullable=False)
    total_penalties: Mapped[Decimal] = mapped_column(default=ZERO, nullable=False)
    total_withdrawn: Mapped[Decimal] = mapped_column(default=ZERO, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    transactions = relationship(
        "WalletTransaction",
        back_populates="wallet",
        order_by="WalletTransaction.id",
        viewonly=True,
    )


class WalletTransaction(Base):
    __tablename__ = "wallet_transactions"
    __table_args__ = (Index("idx_wallet_transactions_wallet_created", "wallet_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    wallet_id: Mapped[int] = mapped_column(ForeignKey("contractor_wallets.id", ondelete="RESTRICT"), nullable=False)
    contractor_id: Mapped[int] = mapped_column(Integer, nullable=False)
    transaction_type: Mapped[TransactionType] = mapped_column(enum_column(TransactionType), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    balance_before: Mapped[Decimal] = mapped_column(nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(nullable=False)
    reference_type: Mapped[str | None] = mapped_column(String(32))
    reference_id: Mapped[int | None] = mapped_column(Integer)
    description: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    wallet = relationship("ContractorWallet", back_populates="transactions")


@event.listens_for(WalletTransaction, "before_update")
def _reject_transaction_update(mapper, connection, target) -> None:
    raise LedgerImmutabilityError(f"Wallet transaction {target.id} is immutable; post a compensating entry.")


@event.listens_for(WalletTransaction, "before_delete")
def _reject_transaction_delete(mapper, connection, target) -> None:
    raise LedgerImmutabilityError(f"Wallet transaction {target.id} cannot be deleted.")
