"""Pydantic schema package for API contracts."""

from quote_engine.schemas.assignments import AssignmentRespondRequest, AssignmentResponse
from quote_engine.schemas.common import APIEnvelope, ErrorEnvelope, Pagination
from quote_engine.schemas.invoices import InvoiceResponse, MarkPaidRequest, SelectionResponse
from quote_engine.schemas.penalties import (
    PenaltyApplyRequest,
    PenaltyApplyResponse,
    PenaltyDisputeRequest,
    PenaltyResolveRequest,
    PenaltyResponse,
    PenaltyRuleCreateRequest,
    PenaltyRuleResponse,
    PenaltyRuleUpdateRequest,
    ViolationReportRequest,
    ViolationResponse,
)
from quote_engine.schemas.pricing import PricingConfigResponse, PricingConfigUpdateRequest
from quote_engine.schemas.quotations import (
    LineItemInput,
    LineItemResponse,
    QuotationResponse,
    QuotationReviewRequest,
    QuotationRevisionRequest,
    QuotationSubmitRequest,
    ReverseSelectionRequest,
    SystemSpecs,
)
from quote_engine.schemas.quote_requests import (
    AssignContractorsRequest,
    CancelQuoteRequestRequest,
    CompleteQuoteRequestRequest,
    ElectricityConsumption,
    Location,
    PropertyDetails,
    QuoteRequestCreateRequest,
    QuoteRequestResponse,
)
from quote_engine.schemas.wallets import PayoutRequest, WalletResponse, WalletTransactionResponse

__all__ = [
    "APIEnvelope",
    "AssignContractorsRequest",
    "AssignmentRespondRequest",
    "AssignmentResponse",
    "CancelQuoteRequestRequest",
    "CompleteQuoteRequestRequest",
    "ElectricityConsumption",
    "ErrorEnvelope",
    "InvoiceResponse",
    "LineItemInput",
    "LineItemResponse",
    "Location",
    "MarkPaidRequest",
    "Pagination",
    "PayoutRequest",
    "PenaltyApplyRequest",
    "PenaltyApplyResponse",
    "PenaltyDisputeRequest",
    "PenaltyResolveRequest",
    "PenaltyResponse",
    "PenaltyRuleCreateRequest",
    "PenaltyRuleResponse",
    "PenaltyRuleUpdateRequest",
    "PricingConfigResponse",
    "PricingConfigUpdateRequest",
    "PropertyDetails",
    "QuotationResponse",
    "QuotationReviewRequest",
    "QuotationRevisionRequest",
    "QuotationSubmitRequest",
    "QuoteRequestCreateRequest",
    "QuoteRequestResponse",
    "ReverseSelectionRequest",
    "SelectionResponse",
    "SystemSpecs",
    "ViolationReportRequest",
    "ViolationResponse",
    "WalletResponse",
    "WalletTransactionResponse",
]
