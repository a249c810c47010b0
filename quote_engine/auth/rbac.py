"""Role-based authorization helpers."""

from __future__ import annotations

from quote_engine.core.exceptions import AuthorizationError

# Scope strings are kept explicit for endpoint-level declarations.
ROLE_SCOPES: dict[str, set[str]] = {
    "admin": {
        "*",
    },
    "user": {
        "quote_requests.create",
        "quote_requests.read",
        "quote_requests.assign",
        "quote_requests.cancel",
        "quote_requests.complete",
        "quotations.read",
        "quotations.select",
        "invoices.read",
        "violations.report",
    },
    "contractor": {
        "assignments.read",
        "assignments.respond",
        "quotations.read",
        "quotations.submit",
        "invoices.read",
        "penalties.read",
        "penalties.dispute",
        "penalty_rules.read",
        "wallets.read_own",
    },
}


def get_scopes_for_role(role: str) -> set[str]:
    """Return scopes granted to a role."""
    return ROLE_SCOPES.get(role.lower(), set())


def has_scopes(role: str, required_scopes: list[str] | set[str] | tuple[str, ...]) -> bool:
    """Check if role includes every required scope."""
    granted = get_scopes_for_role(role)
    if "*" in granted:
        return True
    return set(required_scopes).issubset(granted)


def require_scopes(role: str, required_scopes: list[str] | set[str] | tuple[str, ...]) -> None:
    """Raise when a role lacks required scopes."""
    if has_scopes(role=role, required_scopes=required_scopes):
        return
    missing = sorted(set(required_scopes) - get_scopes_for_role(role))
    raise AuthorizationError(f"Missing required scopes: {', '.join(missing)}")
