"""Principal context and ownership enforcement."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from quote_engine.core.exceptions import AuthenticationError, NotFoundError

ROLES = {"user", "contractor", "admin"}


@dataclass(frozen=True)
class Principal:
    user_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_contractor(self) -> bool:
        return self.role == "contractor"


def from_claims(claims: dict[str, Any]) -> Principal:
    """Build the caller principal from verified JWT claims."""
    try:
        user_id = int(claims["sub"])
        role = str(claims["role"]).lower()
    except (KeyError, TypeError, ValueError) as exc:
        raise AuthenticationError("Token claims are missing user context.") from exc
    if role not in ROLES:
        raise AuthenticationError(f"Unknown role: {role}")
    return Principal(user_id=user_id, role=role)


SYSTEM = Principal(user_id=0, role="admin")


def enforce_owner(owner_id: int, principal: Principal, resource: str, resource_id: int) -> None:
    """Hide resources owned by someone else behind a not-found error."""
    if principal.is_admin:
        return
    if int(owner_id) != int(principal.user_id):
        raise NotFoundError(f"{resource} not found: {resource_id}")
