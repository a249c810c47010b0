"""Quotation submission, revision, admin review and visibility."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Iterable

from sqlalchemy.exc import IntegrityError

from quote_engine.auth.ownership import Principal, enforce_owner
from quote_engine.core.exceptions import ConflictError, NotFoundError, ValidationError
from quote_engine.models import (
    ContractorQuote,
    QuotationLineItem,
    QuotationStatus,
    QuoteRequest,
    QuoteRequestStatus,
    utcnow,
)
from quote_engine.orchestration.state_machine import InvalidTransitionError
from quote_engine.services.assignment_service import AssignmentService
from quote_engine.services.base_service import BaseService
from quote_engine.services.contractor_directory import get_contractor_directory
from quote_engine.services.financial_engine import (
    PricingRates,
    apply_totals,
    calculate_line_item,
    calculate_quotation_totals,
    sum_line_totals,
    to_decimal,
    to_money,
    validate_quotation_bounds,
    verify_quotation_financials,
)
from quote_engine.services.pricing_service import PricingService
from quote_engine.services.request_state import compare_and_set_status

logger = logging.getLogger(__name__)

_SUBMISSION_STATES = {QuoteRequestStatus.CONTRACTORS_SELECTED, QuoteRequestStatus.QUOTES_RECEIVED}
_EXPIRING_STATES = {QuotationStatus.PENDING_REVIEW, QuotationStatus.APPROVED}
REVIEW_DECISIONS = {QuotationStatus.APPROVED, QuotationStatus.REJECTED, QuotationStatus.REVISION_NEEDED}

_OPTIONAL_FIELDS = (
    "panel_brand",
    "panel_model",
    "panel_quantity",
    "inverter_brand",
    "inverter_model",
    "inverter_quantity",
    "contractor_vat_number",
)


def expire_if_due(quotation: ContractorQuote, now: datetime | None = None) -> bool:
    """Reject an unselected quotation once it is past ``expires_at``."""
    now = now or utcnow()
    if quotation.is_selected or quotation.admin_status not in _EXPIRING_STATES:
        return False
    if now < quotation.expires_at:
        return False
    quotation.admin_status = QuotationStatus.REJECTED
    quotation.admin_notes = f"Expired on {quotation.expires_at.date().isoformat()}"
    logger.info(
        "quotation.expired",
        extra={"event": "quotation.expired", "quotation_id": quotation.id, "request_id": quotation.request_id},
    )
    return True


def _validate_submission(data: dict[str, Any]) -> list[dict[str, Any]]:
    timeline = data.get("installation_timeline_days")
    if timeline is None or int(timeline) < 1:
        raise ValidationError("installation_timeline_days must be at least 1.")
    for field in ("warranty_terms", "maintenance_terms"):
        if not str(data.get(field) or "").strip():
            raise ValidationError(f"{field} is required.")
    if not isinstance(data.get("system_specs"), dict) or not data["system_specs"]:
        raise ValidationError("system_specs are required.")
    items = list(data.get("line_items") or [])
    if not items:
        raise ValidationError("At least one line item is required.")
    for item in items:
        if not str(item.get("name") or "").strip():
            raise ValidationError("Every line item needs a name.")
    return items


class QuotationService(BaseService):
    """Contractors submit priced quotations; admins review them."""

    def __init__(self, db=None, config=None, directory=None) -> None:
        super().__init__(db=db, config=config)
        self.directory = directory or get_contractor_directory(self.config)

    def _price(
        self,
        quotation: ContractorQuote,
        line_items: Iterable[dict[str, Any]],
        system_size_kwp: Any,
    ) -> None:
        """Compute every derived field from line items and the active pricing config."""
        pricing = PricingService(db=self.db, config=self.config).get_active()
        rates = PricingRates.from_record(pricing)
        priced = [
            (position, item, calculate_line_item(item.get("units", 1), item.get("unit_price"), rates))
            for position, item in enumerate(line_items, start=1)
        ]
        totals = calculate_quotation_totals(
            sum_line_totals(amounts for _, _, amounts in priced), system_size_kwp, rates
        )
        validate_quotation_bounds(totals, pricing)

        quotation.commission_percent = rates.commission_percent
        quotation.overprice_percent = rates.overprice_percent
        quotation.vat_percent = rates.vat_percent
        quotation.pricing_config_version = pricing.version
        quotation.original_base_price = None
        apply_totals(quotation, totals)
        quotation.line_items = [
            QuotationLineItem(
                position=position,
                name=str(item["name"]).strip(),
                description=item.get("description"),
                units=amounts.units,
                unit_price=amounts.unit_price,
                total_price=amounts.total_price,
                commission_amount=amounts.commission_amount,
                overprice_amount=amounts.overprice_amount,
                user_price=amounts.user_price,
                vendor_net=amounts.vendor_net,
            )
            for position, item, amounts in priced
        ]
        verify_quotation_financials(quotation)

    def submit_quotation(self, principal: Principal, data: dict[str, Any]) -> ContractorQuote:
        items = _validate_submission(data)
        request_id = int(data["request_id"])
        request = self.db.get(QuoteRequest, request_id)
        if request is None:
            raise NotFoundError(f"Quote request not found: {request_id}")
        assignment = AssignmentService(db=self.db, config=self.config, directory=self.directory).accepted_assignment(
            request_id, principal.user_id
        )
        if request.status not in _SUBMISSION_STATES:
            raise ConflictError(f"Quote request {request_id} is not accepting quotations ({request.status.value}).")

        now = utcnow()
        quotation = ContractorQuote(
            request_id=request_id,
            contractor_id=principal.user_id,
            assignment_id=assignment.id,
            installation_timeline_days=int(data["installation_timeline_days"]),
            system_specs=dict(data["system_specs"]),
            warranty_terms=str(data["warranty_terms"]).strip(),
            maintenance_terms=str(data["maintenance_terms"]).strip(),
            admin_status=QuotationStatus.PENDING_REVIEW,
            is_selected=False,
            revision_count=0,
            expires_at=now + timedelta(days=self.config.QUOTATION_VALIDITY_DAYS),
            **{field: data.get(field) for field in _OPTIONAL_FIELDS},
        )
        self._price(quotation, items, data.get("system_size_kwp") or request.system_size_kwp)
        self.db.add(quotation)
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.rollback()
            raise ConflictError(f"Contractor already submitted a quotation for request {request_id}.") from exc
        if request.status == QuoteRequestStatus.CONTRACTORS_SELECTED:
            try:
                self._mark_quotes_received(request)
            except ConflictError:
                self.rollback()
                raise
        self.commit()
        logger.info(
            "quotation.submitted",
            extra={
                "event": "quotation.submitted",
                "quotation_id": quotation.id,
                "request_id": request_id,
                "contractor_id": principal.user_id,
                "base_price": str(quotation.base_price),
                "pricing_config_version": quotation.pricing_config_version,
            },
        )
        return quotation

    def revise_quotation(self, quotation_id: int, principal: Principal, data: dict[str, Any]) -> ContractorQuote:
        """Resubmit a quotation that an admin sent back for revision."""
        items = _validate_submission(data)
        quotation = self._load(quotation_id)
        enforce_owner(quotation.contractor_id, principal, "Quotation", quotation_id)
        if quotation.admin_status != QuotationStatus.REVISION_NEEDED:
            raise InvalidTransitionError(
                f"Quotation {quotation_id} is {quotation.admin_status.value}; only revision_needed can be revised."
            )
        request = self.db.get(QuoteRequest, quotation.request_id)
        if request.status not in _SUBMISSION_STATES:
            raise ConflictError(f"Quote request {request.id} is not accepting quotations ({request.status.value}).")

        quotation.installation_timeline_days = int(data["installation_timeline_days"])
        quotation.system_specs = dict(data["system_specs"])
        quotation.warranty_terms = str(data["warranty_terms"]).strip()
        quotation.maintenance_terms = str(data["maintenance_terms"]).strip()
        for field in _OPTIONAL_FIELDS:
            setattr(quotation, field, data.get(field))
        self._price(quotation, items, data.get("system_size_kwp") or quotation.system_size_kwp)
        quotation.admin_status = QuotationStatus.PENDING_REVIEW
        quotation.price_override_note = None
        quotation.revision_count += 1
        quotation.expires_at = utcnow() + timedelta(days=self.config.QUOTATION_VALIDITY_DAYS)
        self.commit()
        logger.info(
            "quotation.revised",
            extra={
                "event": "quotation.revised",
                "quotation_id": quotation_id,
                "revision_count": quotation.revision_count,
                "base_price": str(quotation.base_price),
            },
        )
        return quotation

    def review_quotation(
        self,
        quotation_id: int,
        actor_id: int,
        decision: QuotationStatus,
        notes: str | None = None,
        price_override: Any = None,
    ) -> ContractorQuote:
        if decision not in REVIEW_DECISIONS:
            raise ValidationError("Decision must be approved, rejected or revision_needed.")
        note = (notes or "").strip()
        if decision in {QuotationStatus.REJECTED, QuotationStatus.REVISION_NEEDED} and not note:
            raise ValidationError(f"Notes are required when the decision is {decision.value}.")
        if price_override is not None:
            if decision != QuotationStatus.APPROVED:
                raise ValidationError("price_override is only accepted with an approval.")
            if not note:
                raise ValidationError("A justification note is required with price_override.")

        quotation = self._load(quotation_id)
        if expire_if_due(quotation):
            self.commit()
            raise ConflictError(f"Quotation {quotation_id} has expired.")
        if quotation.admin_status != QuotationStatus.PENDING_REVIEW:
            raise InvalidTransitionError(
                f"Quotation {quotation_id} is {quotation.admin_status.value}; only pending_review can be reviewed."
            )
        request = self.db.get(QuoteRequest, quotation.request_id)
        if decision == QuotationStatus.APPROVED and request.status not in _SUBMISSION_STATES:
            raise ConflictError(f"Quote request {request.id} is {request.status.value}.")

        if price_override is not None:
            self._override_price(quotation, price_override)
            quotation.price_override_note = note
        quotation.admin_status = decision
        quotation.admin_notes = note or None
        quotation.reviewed_by = actor_id
        quotation.reviewed_at = utcnow()

        self.commit()
        logger.info(
            "quotation.reviewed",
            extra={
                "event": "quotation.reviewed",
                "quotation_id": quotation_id,
                "decision": decision.value,
                "actor_id": actor_id,
                "price_override": str(price_override) if price_override is not None else None,
            },
        )
        return quotation

    def _override_price(self, quotation: ContractorQuote, price_override: Any) -> None:
        """Recompute derived fields from the override using the stored rate snapshot."""
        override = to_money(to_decimal(price_override, "price_override"))
        totals = calculate_quotation_totals(override, quotation.system_size_kwp, PricingRates.from_record(quotation))
        validate_quotation_bounds(totals, PricingService(db=self.db, config=self.config).get_active())
        if quotation.original_base_price is None:
            quotation.original_base_price = quotation.base_price
        apply_totals(quotation, totals)
        verify_quotation_financials(quotation)

    def _mark_quotes_received(self, request: QuoteRequest) -> None:
        try:
            compare_and_set_status(
                self.db,
                request,
                expected=QuoteRequestStatus.CONTRACTORS_SELECTED,
                target=QuoteRequestStatus.QUOTES_RECEIVED,
            )
        except ConflictError:
            # A concurrent submission may already have moved the request on.
            self.db.refresh(request)
            if request.status != QuoteRequestStatus.QUOTES_RECEIVED:
                raise

    # -- reads -------------------------------------------------------------

    def _load(self, quotation_id: int) -> ContractorQuote:
        quotation = self.db.get(ContractorQuote, quotation_id)
        if quotation is None:
            raise NotFoundError(f"Quotation not found: {quotation_id}")
        return quotation

    def _expire_all(self, quotations: list[ContractorQuote]) -> None:
        now = utcnow()
        if any([expire_if_due(quotation, now) for quotation in quotations]):
            self.commit()

    def _visible_to(self, quotation: ContractorQuote, principal: Principal, request: QuoteRequest) -> bool:
        if principal.is_admin:
            return True
        if principal.is_contractor:
            return quotation.contractor_id == principal.user_id
        return request.user_id == principal.user_id and quotation.admin_status == QuotationStatus.APPROVED

    def get_quotation(self, quotation_id: int, principal: Principal) -> ContractorQuote:
        quotation = self._load(quotation_id)
        self._expire_all([quotation])
        request = self.db.get(QuoteRequest, quotation.request_id)
        if not self._visible_to(quotation, principal, request):
            raise NotFoundError(f"Quotation not found: {quotation_id}")
        return quotation

    def list_for_request(self, request_id: int, principal: Principal) -> list[ContractorQuote]:
        request = self.db.get(QuoteRequest, request_id)
        if request is None:
            raise NotFoundError(f"Quote request not found: {request_id}")
        if not principal.is_admin and not principal.is_contractor:
            enforce_owner(request.user_id, principal, "Quote request", request_id)
        quotations = (
            self.db.query(ContractorQuote)
            .filter(ContractorQuote.request_id == request_id)
            .order_by(ContractorQuote.id)
            .all()
        )
        self._expire_all(quotations)
        return [quotation for quotation in quotations if self._visible_to(quotation, principal, request)]

    def list_for_admin(
        self,
        status: QuotationStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[ContractorQuote], int]:
        query = self.db.query(ContractorQuote)
        if status is not None:
            query = query.filter(ContractorQuote.admin_status == status)
        total = query.count()
        items = query.order_by(ContractorQuote.id.desc()).offset(offset).limit(limit).all()
        self._expire_all(items)
        return items, total

    def contractor_names(self, quotations: Iterable[ContractorQuote]) -> dict[int, str]:
        """Best-effort display names; an unreachable directory yields an empty mapping."""
        return self.directory.display_names({quotation.contractor_id for quotation in quotations})
