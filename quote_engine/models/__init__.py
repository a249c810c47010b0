"""ORM models for the quote lifecycle schema."""

from quote_engine.models.base import AuditMixin, Base, utcnow
from quote_engine.models.enums import (
    SEVERITY_RANK,
    AssignmentStatus,
    CalculationType,
    DisputeResolution,
    InvoiceStatus,
    PenalizedParty,
    PenaltyStatus,
    PenaltyType,
    QuotationStatus,
    QuoteRequestStatus,
    Severity,
    TransactionType,
    UserRole,
    ViolationSource,
    ViolationStatus,
)
from quote_engine.models.invoice import Invoice
from quote_engine.models.penalty import Penalty, PenaltyRule, SLAViolation
from quote_engine.models.pricing_config import PricingConfig
from quote_engine.models.quotation import ContractorQuote, QuotationLineItem
from quote_engine.models.quote_request import ContractorQuoteAssignment, QuoteRequest
from quote_engine.models.wallet import ContractorWallet, LedgerImmutabilityError, WalletTransaction

__all__ = [
    "SEVERITY_RANK",
    "AssignmentStatus",
    "AuditMixin",
    "Base",
    "CalculationType",
    "ContractorQuote",
    "ContractorQuoteAssignment",
    "ContractorWallet",
    "DisputeResolution",
    "Invoice",
    "InvoiceStatus",
    "LedgerImmutabilityError",
    "PenalizedParty",
    "Penalty",
    "PenaltyRule",
    "PenaltyStatus",
    "PenaltyType",
    "PricingConfig",
    "QuotationLineItem",
    "QuotationStatus",
    "QuoteRequest",
    "QuoteRequestStatus",
    "SLAViolation",
    "Severity",
    "TransactionType",
    "UserRole",
    "ViolationSource",
    "ViolationStatus",
    "WalletTransaction",
    "utcnow",
]
