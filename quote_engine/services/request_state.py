"""Guarded status transitions for quote requests."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import update
from sqlalchemy.orm import Session

from quote_engine.core.exceptions import ConflictError
from quote_engine.models import QuoteRequest, QuoteRequestStatus, utcnow
from quote_engine.orchestration.state_machine import QUOTE_REQUEST_MACHINE, StateMachine

logger = logging.getLogger(__name__)


def compare_and_set_status(
    db: Session,
    request: QuoteRequest,
    expected: QuoteRequestStatus,
    target: QuoteRequestStatus,
    machine: StateMachine = QUOTE_REQUEST_MACHINE,
    **values: Any,
) -> None:
    """Move a request between states only if nobody else moved it first.

    The UPDATE is guarded by the expected status, so of two racing writers
    exactly one matches a row; the other gets a ``ConflictError``.
    """
    machine.assert_transition(expected, target)
    db.flush()
    result = db.execute(
        update(QuoteRequest)
        .where(QuoteRequest.id == request.id, QuoteRequest.status == expected)
        .values(status=target, version=QuoteRequest.version + 1, updated_at=utcnow(), **values)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount != 1:
        raise ConflictError(f"Quote request {request.id} is no longer {expected.value}; re-fetch and retry.")
    # Bulk UPDATE only syncs attributes already loaded on the instance.
    db.refresh(request)
    logger.info(
        "quote_request.transitioned",
        extra={
            "event": "quote_request.transitioned",
            "request_id": request.id,
            "from_status": expected.value,
            "to_status": target.value,
        },
    )
