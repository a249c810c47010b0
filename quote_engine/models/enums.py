"""Canonical enum values for the quote lifecycle schema."""

from __future__ import annotations

import enum


class UserRole(str, enum.Enum):
    USER = "user"
    CONTRACTOR = "contractor"
    ADMIN = "admin"


class QuoteRequestStatus(str, enum.Enum):
    PENDING = "pending"
    CONTRACTORS_SELECTED = "contractors_selected"
    QUOTES_RECEIVED = "quotes_received"
    QUOTE_SELECTED = "quote_selected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AssignmentStatus(str, enum.Enum):
    ASSIGNED = "assigned"
    VIEWED = "viewed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class QuotationStatus(str, enum.Enum):
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    REVISION_NEEDED = "revision_needed"


class InvoiceStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class TransactionType(str, enum.Enum):
    PAYMENT = "payment"
    COMMISSION = "commission"
    PENALTY = "penalty"
    REFUND = "refund"
    ADJUSTMENT = "adjustment"
    WITHDRAWAL = "withdrawal"


class PenaltyType(str, enum.Enum):
    LATE_INSTALLATION = "late_installation"
    QUALITY_ISSUE = "quality_issue"
    COMMUNICATION_FAILURE = "communication_failure"
    DOCUMENTATION_ISSUE = "documentation_issue"
    CONTRACTOR_CANCELLATION = "contractor_cancellation"
    USER_CANCELLATION = "user_cancellation"


class PenaltyStatus(str, enum.Enum):
    APPLIED = "applied"
    DISPUTED = "disputed"
    WAIVED = "waived"


class PenalizedParty(str, enum.Enum):
    CONTRACTOR = "contractor"
    USER = "user"


class Severity(str, enum.Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"
    CRITICAL = "critical"


SEVERITY_RANK = {
    Severity.MINOR: 1,
    Severity.MODERATE: 2,
    Severity.MAJOR: 3,
    Severity.CRITICAL: 4,
}


class CalculationType(str, enum.Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"
    DAILY = "daily"


class DisputeResolution(str, enum.Enum):
    UPHOLD = "uphold"
    WAIVE = "waive"
    MODIFY = "modify"


class ViolationStatus(str, enum.Enum):
    OPEN = "open"
    PENALIZED = "penalized"
    DISMISSED = "dismissed"


class ViolationSource(str, enum.Enum):
    SCHEDULER = "scheduler"
    REPORT = "report"
