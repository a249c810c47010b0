"""Canonical state transition tables for lifecycle entities."""

from __future__ import annotations

from quote_engine.core.exceptions import ConflictError
from quote_engine.models.enums import PenaltyStatus, QuoteRequestStatus


class InvalidTransitionError(ConflictError):
    """Raised when a disallowed state transition is attempted."""

    error_code = "invalid_transition"


class StateMachine:
    """Transition table with legality checks."""

    def __init__(self, name: str, transitions: dict[str, set[str]]) -> None:
        self.name = name
        self._transitions = transitions

    def can_transition(self, current: str, target: str) -> bool:
        return target in self._transitions.get(current, set())

    def assert_transition(self, current: str, target: str) -> None:
        if not self.can_transition(current=current, target=target):
            raise InvalidTransitionError(f"{self.name} transition not allowed: {current} -> {target}")

    def targets(self, current: str) -> set[str]:
        return set(self._transitions.get(current, set()))


_R = QuoteRequestStatus

QUOTE_REQUEST_MACHINE = StateMachine(
    "quote_request",
    {
        _R.PENDING: {_R.CONTRACTORS_SELECTED, _R.CANCELLED},
        _R.CONTRACTORS_SELECTED: {_R.QUOTES_RECEIVED, _R.CANCELLED},
        _R.QUOTES_RECEIVED: {_R.QUOTE_SELECTED, _R.CANCELLED},
        _R.QUOTE_SELECTED: {_R.COMPLETED, _R.CANCELLED},
    },
)

# Admin-only edge used when an admin reverses a selection.
QUOTE_REQUEST_OVERRIDES = StateMachine(
    "quote_request_override",
    {_R.QUOTE_SELECTED: {_R.QUOTES_RECEIVED}},
)

_P = PenaltyStatus

PENALTY_MACHINE = StateMachine(
    "penalty",
    {
        _P.APPLIED: {_P.DISPUTED, _P.WAIVED},
        _P.DISPUTED: {_P.APPLIED, _P.WAIVED},
    },
)
