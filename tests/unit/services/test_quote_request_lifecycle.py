from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

import pytest

from quote_engine.core.config import get_config
from quote_engine.core.exceptions import ConflictError, NotFoundError, ValidationError
from quote_engine.models import (
    AssignmentStatus,
    PenalizedParty,
    Penalty,
    PenaltyType,
    QuotationStatus,
    QuoteRequestStatus,
    WalletTransaction,
)
from quote_engine.services.assignment_service import AssignmentService
from quote_engine.services.quote_request_service import QuoteRequestService


def test_create_with_contractors_moves_to_contractors_selected(lifecycle):
    request = lifecycle.create_request(contractor_ids=(101, 102))
    assert request.status == QuoteRequestStatus.CONTRACTORS_SELECTED
    assert request.contractor_ids == [101, 102]
    assert [item.status for item in request.assignments] == [AssignmentStatus.ASSIGNED] * 2
    assert request.version == 2


def test_create_without_contractors_stays_pending(lifecycle):
    request = lifecycle.create_request(contractor_ids=())
    assert request.status == QuoteRequestStatus.PENDING
    assert request.assignments == []


def test_system_size_outside_active_bounds_is_rejected(lifecycle):
    with pytest.raises(ValidationError):
        lifecycle.create_request(size="5000")


def test_assignment_limit_and_uniqueness(lifecycle, session):
    request = lifecycle.create_request(contractor_ids=())
    service = AssignmentService(db=session)
    limit = get_config().MAX_CONTRACTORS_PER_REQUEST
    with pytest.raises(ValidationError):
        service.assign_contractors(request.id, lifecycle.user(), list(range(200, 201 + limit)))
    with pytest.raises(ValidationError):
        service.assign_contractors(request.id, lifecycle.user(), [101, 101])


def test_contractors_cannot_be_assigned_twice(lifecycle, session):
    request = lifecycle.create_request(contractor_ids=(101,))
    with pytest.raises(ConflictError):
        AssignmentService(db=session).assign_contractors(request.id, lifecycle.user(), [102])


def test_other_users_cannot_see_request(lifecycle, session):
    request = lifecycle.create_request()
    service = QuoteRequestService(db=session)
    with pytest.raises(NotFoundError):
        service.get_request(request.id, lifecycle.user(user_id=99))
    assert service.get_request(request.id, lifecycle.admin).id == request.id
    assert service.get_request(request.id, lifecycle.contractor(101)).id == request.id
    with pytest.raises(NotFoundError):
        service.get_request(request.id, lifecycle.contractor(555))


def test_assignment_response_is_one_shot(lifecycle):
    request = lifecycle.create_request()
    lifecycle.respond(request, 101, AssignmentStatus.ACCEPTED)
    with pytest.raises(ConflictError):
        lifecycle.respond(request, 101, AssignmentStatus.REJECTED)


def test_all_rejections_mark_request_stalled(lifecycle):
    request = lifecycle.create_request()
    lifecycle.respond(request, 101, AssignmentStatus.REJECTED)
    assert request.stalled is False
    lifecycle.respond(request, 102, AssignmentStatus.REJECTED)
    assert request.stalled is True
    assert request.status == QuoteRequestStatus.CONTRACTORS_SELECTED


def test_first_submission_moves_request_to_quotes_received(lifecycle):
    request = lifecycle.create_request()
    lifecycle.respond(request, 101)
    lifecycle.respond(request, 102)
    assert request.status == QuoteRequestStatus.CONTRACTORS_SELECTED
    quotation = lifecycle.submit(request, 101)
    assert quotation.admin_status == QuotationStatus.PENDING_REVIEW
    assert request.status == QuoteRequestStatus.QUOTES_RECEIVED
    assert request.version == 3

    lifecycle.submit(request, 102)
    lifecycle.review(quotation)
    assert request.status == QuoteRequestStatus.QUOTES_RECEIVED
    assert request.version == 3


def test_cancel_releases_holds(lifecycle, session):
    request = lifecycle.create_request()
    lifecycle.respond(request, 101)
    quotation = lifecycle.submit(request, 101)

    cancelled = QuoteRequestService(db=session).cancel_request(request.id, lifecycle.user(), "Moving house")
    assert cancelled.status == QuoteRequestStatus.CANCELLED
    assert cancelled.cancellation_reason == "Moving house"
    assert all(item.status == AssignmentStatus.REJECTED for item in cancelled.assignments)
    assert quotation.admin_status == QuotationStatus.REJECTED

    with pytest.raises(ConflictError):
        QuoteRequestService(db=session).cancel_request(request.id, lifecycle.user(), "again")


def test_cancel_requires_reason(lifecycle, session):
    request = lifecycle.create_request()
    with pytest.raises(ValidationError):
        QuoteRequestService(db=session).cancel_request(request.id, lifecycle.user(), "  ")


def test_user_cancellation_after_acceptance_records_user_penalty(lifecycle, session):
    config = replace(get_config(), CANCELLATION_PENALTY_AMOUNT=Decimal("300"))
    service = QuoteRequestService(db=session, config=config)
    request = lifecycle.create_request()
    lifecycle.respond(request, 101)
    service.cancel_request(request.id, lifecycle.user(), "Changed my mind")

    penalty = session.query(Penalty).one()
    assert penalty.penalized_party == PenalizedParty.USER
    assert penalty.penalty_type == PenaltyType.USER_CANCELLATION
    assert penalty.user_id == request.user_id
    assert penalty.contractor_id == 101
    assert penalty.amount == Decimal("300.00")
    assert penalty.contractor_share + penalty.platform_share == penalty.amount
    assert penalty.description == "Cancellation after contractor acceptance: Changed my mind"
    assert session.query(WalletTransaction).count() == 0


def test_admin_cancellation_can_penalize_responsible_contractor(lifecycle, session):
    request, (quotation,) = lifecycle.approved_quotations({101: "22700"})
    lifecycle.select(quotation)

    QuoteRequestService(db=session).cancel_request(
        request.id, lifecycle.admin, "Contractor withdrew", responsible_contractor_id=101
    )
    penalty = session.query(Penalty).one()
    assert penalty.penalty_type == PenaltyType.CONTRACTOR_CANCELLATION
    assert penalty.description.endswith("Contractor withdrew")
    assert penalty.contractor_id == 101
    debit = session.get(WalletTransaction, penalty.debit_transaction_id)
    assert debit.amount == -penalty.amount


def test_only_admin_names_responsible_contractor(lifecycle, session):
    request = lifecycle.create_request()
    with pytest.raises(ValidationError):
        QuoteRequestService(db=session).cancel_request(
            request.id, lifecycle.user(), "Contractor withdrew", responsible_contractor_id=101
        )


def test_completion_requires_selected_quotation(lifecycle, session):
    request = lifecycle.create_request()
    with pytest.raises(ConflictError):
        QuoteRequestService(db=session).confirm_installation(request.id, lifecycle.user())


def test_completion_after_selection(lifecycle, session):
    request, (quotation,) = lifecycle.approved_quotations({101: "22700"})
    lifecycle.select(quotation)
    completed = QuoteRequestService(db=session).confirm_installation(request.id, lifecycle.user())
    assert completed.status == QuoteRequestStatus.COMPLETED
    assert completed.installation_completed_at is not None
