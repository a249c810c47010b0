"""Contractor assignment and accept/reject responses."""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy.exc import IntegrityError

from quote_engine.auth.ownership import Principal, enforce_owner
from quote_engine.core.exceptions import ConflictError, NotFoundError, ValidationError
from quote_engine.models import (
    AssignmentStatus,
    ContractorQuoteAssignment,
    QuoteRequest,
    QuoteRequestStatus,
    utcnow,
)
from quote_engine.services.base_service import BaseService
from quote_engine.services.contractor_directory import get_contractor_directory
from quote_engine.services.request_state import compare_and_set_status

logger = logging.getLogger(__name__)

_OPEN_STATUSES = {AssignmentStatus.ASSIGNED, AssignmentStatus.VIEWED}
RESPONSES = {AssignmentStatus.ACCEPTED, AssignmentStatus.REJECTED}


class AssignmentService(BaseService):
    """Assigns a bounded set of contractors and tracks their responses."""

    def __init__(self, db=None, config=None, directory=None) -> None:
        super().__init__(db=db, config=config)
        self.directory = directory or get_contractor_directory(self.config)

    def _normalize_ids(self, contractor_ids: Iterable[int]) -> list[int]:
        ids = [int(cid) for cid in contractor_ids]
        if not ids:
            raise ValidationError("At least one contractor is required.")
        if len(set(ids)) != len(ids):
            raise ValidationError("Contractor ids must be unique.")
        limit = self.config.MAX_CONTRACTORS_PER_REQUEST
        if len(ids) > limit:
            raise ValidationError(f"At most {limit} contractors can be assigned to a request.")
        return ids

    def assign_contractors(
        self,
        request_id: int,
        principal: Principal,
        contractor_ids: Iterable[int],
    ) -> list[ContractorQuoteAssignment]:
        ids = self._normalize_ids(contractor_ids)
        request = self.db.get(QuoteRequest, request_id)
        if request is None:
            raise NotFoundError(f"Quote request not found: {request_id}")
        enforce_owner(request.user_id, principal, "Quote request", request_id)
        assignments = self.assign_in_transaction(request, ids)
        self.commit()
        return assignments

    def assign_in_transaction(self, request: QuoteRequest, contractor_ids: Iterable[int]) -> list[ContractorQuoteAssignment]:
        """Create the assignment rows and move the request on, without committing."""
        ids = self._normalize_ids(contractor_ids)
        if request.status != QuoteRequestStatus.PENDING or request.assignments:
            raise ConflictError(f"Quote request {request.id} already has contractors assigned.")

        eligibility = self.directory.check_eligibility(ids)
        ineligible = [cid for cid in ids if not eligibility.get(cid, False)]
        if ineligible:
            raise ValidationError(f"Contractors not eligible for assignment: {ineligible}")

        now = utcnow()
        assignments = [
            ContractorQuoteAssignment(
                request=request,
                contractor_id=cid,
                status=AssignmentStatus.ASSIGNED,
                assigned_at=now,
            )
            for cid in ids
        ]
        self.db.add_all(assignments)
        try:
            self.db.flush()
        except IntegrityError as exc:
            raise ConflictError(f"Quote request {request.id} already has contractors assigned.") from exc

        compare_and_set_status(
            self.db,
            request,
            expected=QuoteRequestStatus.PENDING,
            target=QuoteRequestStatus.CONTRACTORS_SELECTED,
            contractor_ids=ids,
        )
        logger.info(
            "assignment.created",
            extra={"event": "assignment.created", "request_id": request.id, "contractor_ids": ids},
        )
        return assignments

    def get_assignment(self, assignment_id: int, principal: Principal) -> ContractorQuoteAssignment:
        assignment = self.db.get(ContractorQuoteAssignment, assignment_id)
        if assignment is None:
            raise NotFoundError(f"Assignment not found: {assignment_id}")
        enforce_owner(assignment.contractor_id, principal, "Assignment", assignment_id)
        return assignment

    def mark_viewed(self, assignment_id: int, principal: Principal) -> ContractorQuoteAssignment:
        assignment = self.get_assignment(assignment_id, principal)
        if assignment.status == AssignmentStatus.ASSIGNED:
            assignment.status = AssignmentStatus.VIEWED
            assignment.viewed_at = utcnow()
            self.commit()
        return assignment

    def respond(
        self,
        assignment_id: int,
        principal: Principal,
        response: AssignmentStatus,
        notes: str | None = None,
    ) -> ContractorQuoteAssignment:
        if response not in RESPONSES:
            raise ValidationError("Response must be accepted or rejected.")
        assignment = self.get_assignment(assignment_id, principal)
        if assignment.status not in _OPEN_STATUSES:
            raise ConflictError(f"Assignment {assignment_id} was already answered ({assignment.status.value}).")
        request = assignment.request
        if request.is_terminal:
            raise ConflictError(f"Quote request {request.id} is {request.status.value}.")

        now = utcnow()
        assignment.status = response
        assignment.notes = notes
        assignment.viewed_at = assignment.viewed_at or now
        assignment.responded_at = now
        self.commit()
        logger.info(
            "assignment.responded",
            extra={
                "event": "assignment.responded",
                "assignment_id": assignment_id,
                "request_id": request.id,
                "contractor_id": assignment.contractor_id,
                "response": response.value,
            },
        )
        if request.stalled:
            logger.warning(
                "request.stalled",
                extra={"event": "request.stalled", "request_id": request.id},
            )
        return assignment

    def list_for_contractor(
        self,
        principal: Principal,
        status: AssignmentStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[ContractorQuoteAssignment], int]:
        query = self.db.query(ContractorQuoteAssignment)
        if not principal.is_admin:
            query = query.filter(ContractorQuoteAssignment.contractor_id == principal.user_id)
        if status is not None:
            query = query.filter(ContractorQuoteAssignment.status == status)
        total = query.count()
        items = query.order_by(ContractorQuoteAssignment.id.desc()).offset(offset).limit(limit).all()
        return items, total

    def accepted_assignment(self, request_id: int, contractor_id: int) -> ContractorQuoteAssignment:
        assignment = (
            self.db.query(ContractorQuoteAssignment)
            .filter(
                ContractorQuoteAssignment.request_id == request_id,
                ContractorQuoteAssignment.contractor_id == contractor_id,
            )
            .one_or_none()
        )
        if assignment is None:
            raise NotFoundError(f"Quote request not found: {request_id}")
        if assignment.status != AssignmentStatus.ACCEPTED:
            raise ConflictError("Only contractors with an accepted assignment can submit a quotation.")
        return assignment
