from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from quote_engine.core.exceptions import ConflictError, NotFoundError, ValidationError
from quote_engine.models import AssignmentStatus, ContractorQuote, QuotationStatus, utcnow
from quote_engine.orchestration.state_machine import InvalidTransitionError
from quote_engine.services.pricing_service import PricingService
from quote_engine.services.quotation_service import QuotationService, expire_if_due


def _accepted_request(lifecycle, contractor_ids=(101, 102)):
    request = lifecycle.create_request(contractor_ids=contractor_ids)
    for contractor_id in contractor_ids:
        lifecycle.respond(request, contractor_id)
    return request


def test_submission_prices_quotation_and_snapshots_rates(lifecycle):
    request = _accepted_request(lifecycle)
    quotation = lifecycle.submit(request, 101, unit_price="22700")

    assert quotation.admin_status == QuotationStatus.PENDING_REVIEW
    assert quotation.base_price == Decimal("22700.00")
    assert quotation.total_user_price == Decimal("24970.00")
    assert quotation.total_payable == Decimal("22189.25")
    assert (quotation.commission_percent, quotation.overprice_percent, quotation.vat_percent) == (
        Decimal("15"),
        Decimal("10"),
        Decimal("15"),
    )
    assert quotation.pricing_config_version == 1
    assert len(quotation.line_items) == 1
    assert quotation.line_items[0].vendor_net == Decimal("19295.00")
    assert quotation.expires_at > utcnow() + timedelta(days=29)


def test_submission_requires_accepted_assignment(lifecycle):
    request = lifecycle.create_request(contractor_ids=(101, 102))
    with pytest.raises(ConflictError):
        lifecycle.submit(request, 101)
    with pytest.raises(NotFoundError):
        lifecycle.submit(request, 999)


def test_rejected_assignment_cannot_submit(lifecycle):
    request = lifecycle.create_request(contractor_ids=(101,))
    lifecycle.respond(request, 101, AssignmentStatus.REJECTED)
    with pytest.raises(ConflictError):
        lifecycle.submit(request, 101)


def test_one_quotation_per_contractor_per_request(lifecycle):
    request = _accepted_request(lifecycle)
    lifecycle.submit(request, 101)
    with pytest.raises(ConflictError):
        lifecycle.submit(request, 101)


def test_price_above_per_kwp_ceiling_is_rejected(lifecycle):
    request = _accepted_request(lifecycle)
    with pytest.raises(ValidationError):
        lifecycle.submit(request, 101, unit_price="30000")


def test_reject_and_revision_require_notes(lifecycle):
    request = _accepted_request(lifecycle)
    quotation = lifecycle.submit(request, 101)
    with pytest.raises(ValidationError):
        lifecycle.review(quotation, QuotationStatus.REJECTED)
    with pytest.raises(ValidationError):
        lifecycle.review(quotation, QuotationStatus.REVISION_NEEDED, notes="")


def test_revision_cycle(lifecycle, session):
    request = _accepted_request(lifecycle)
    quotation = lifecycle.submit(request, 101, unit_price="22700")
    lifecycle.review(quotation, QuotationStatus.REVISION_NEEDED, notes="Itemize the inverter")

    payload = {
        "installation_timeline_days": 21,
        "system_specs": {"capacity_kwp": "12"},
        "warranty_terms": "25 years",
        "maintenance_terms": "Annual",
        "line_items": [
            {"name": "Panels", "units": 24, "unit_price": "650"},
            {"name": "Inverter", "units": 1, "unit_price": "4000"},
        ],
    }
    revised = QuotationService(db=session, directory=lifecycle.directory).revise_quotation(
        quotation.id, lifecycle.contractor(101), payload
    )
    assert revised.admin_status == QuotationStatus.PENDING_REVIEW
    assert revised.revision_count == 1
    assert revised.base_price == Decimal("19600.00")
    assert [item.name for item in revised.line_items] == ["Panels", "Inverter"]
    assert revised.installation_timeline_days == 21


def test_only_revision_needed_can_be_revised(lifecycle, session):
    request = _accepted_request(lifecycle)
    quotation = lifecycle.submit(request, 101)
    payload = {
        "installation_timeline_days": 21,
        "system_specs": {"capacity_kwp": "12"},
        "warranty_terms": "25 years",
        "maintenance_terms": "Annual",
        "line_items": [{"name": "System", "units": 1, "unit_price": "20000"}],
    }
    with pytest.raises(InvalidTransitionError):
        QuotationService(db=session, directory=lifecycle.directory).revise_quotation(
            quotation.id, lifecycle.contractor(101), payload
        )


def test_price_override_keeps_original_and_recomputes(lifecycle):
    request = _accepted_request(lifecycle)
    quotation = lifecycle.submit(request, 101, unit_price="22700")

    with pytest.raises(ValidationError):
        lifecycle.review(quotation, price_override=Decimal("20000"))

    approved = lifecycle.review(quotation, notes="Matched regional benchmark", price_override=Decimal("20000"))
    assert approved.admin_status == QuotationStatus.APPROVED
    assert approved.original_base_price == Decimal("22700.00")
    assert approved.base_price == Decimal("20000.00")
    assert approved.commission_amount == Decimal("3000.00")
    assert approved.overprice_amount == Decimal("2000.00")
    assert approved.price_override_note == "Matched regional benchmark"


def test_override_uses_rate_snapshot_not_current_pricing(lifecycle, session):
    request = _accepted_request(lifecycle)
    quotation = lifecycle.submit(request, 101, unit_price="22700")
    PricingService(db=session).update({"commission_percent": "20"}, actor_id=1, notes="Raise fee")

    approved = lifecycle.review(quotation, notes="Negotiated", price_override=Decimal("21000"))
    assert approved.commission_percent == Decimal("15")
    assert approved.commission_amount == Decimal("3150.00")


def test_only_pending_review_can_be_reviewed(lifecycle):
    request = _accepted_request(lifecycle)
    quotation = lifecycle.review(lifecycle.submit(request, 101))
    with pytest.raises(InvalidTransitionError):
        lifecycle.review(quotation, QuotationStatus.REJECTED, notes="Too late")


def test_expired_quotation_cannot_be_approved(lifecycle, session):
    request = _accepted_request(lifecycle)
    quotation = lifecycle.submit(request, 101)
    quotation.expires_at = utcnow() - timedelta(days=1)
    session.commit()

    with pytest.raises(ConflictError):
        lifecycle.review(quotation)
    session.refresh(quotation)
    assert quotation.admin_status == QuotationStatus.REJECTED
    assert quotation.admin_notes.startswith("Expired on ")


def test_approved_quotation_past_expiry_is_rejected_on_read(lifecycle, session):
    request, (first, second) = lifecycle.approved_quotations({101: "22700", 102: "21500"})
    first.expires_at = utcnow() - timedelta(hours=1)
    session.commit()
    service = QuotationService(db=session, directory=lifecycle.directory)

    visible = service.list_for_request(request.id, lifecycle.user())
    assert [item.id for item in visible] == [second.id]
    expired = service.get_quotation(first.id, lifecycle.admin)
    assert expired.admin_status == QuotationStatus.REJECTED
    assert expired.is_selected is False
    assert expired.admin_notes.startswith("Expired on ")

    session.expire_all()
    assert session.get(ContractorQuote, first.id).admin_status == QuotationStatus.REJECTED


def test_approved_quotation_past_expiry_cannot_be_selected(lifecycle, session):
    request, (quotation,) = lifecycle.approved_quotations({101: "22700"})
    quotation.expires_at = utcnow() - timedelta(minutes=5)
    session.commit()

    with pytest.raises(ConflictError):
        lifecycle.select(quotation)
    session.expire_all()
    assert quotation.admin_status == QuotationStatus.REJECTED
    assert quotation.is_selected is False
    assert request.selected_quotation_id is None


def test_expiry_skips_selected_quotations(lifecycle):
    request, (quotation,) = lifecycle.approved_quotations({101: "22700"})
    lifecycle.select(quotation)
    assert expire_if_due(quotation, now=quotation.expires_at + timedelta(days=1)) is False


def test_requester_sees_only_approved_quotations(lifecycle, session):
    request = _accepted_request(lifecycle)
    pending = lifecycle.submit(request, 101)
    approved = lifecycle.review(lifecycle.submit(request, 102, unit_price="21000"))
    service = QuotationService(db=session, directory=lifecycle.directory)

    visible = service.list_for_request(request.id, lifecycle.user())
    assert [item.id for item in visible] == [approved.id]
    with pytest.raises(NotFoundError):
        service.get_quotation(pending.id, lifecycle.user())
    with pytest.raises(NotFoundError):
        service.get_quotation(pending.id, lifecycle.contractor(102))
    assert service.get_quotation(pending.id, lifecycle.contractor(101)).id == pending.id
    assert len(service.list_for_request(request.id, lifecycle.admin)) == 2
