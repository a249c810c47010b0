"""Shared authorization helpers for API v1 route modules."""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException

from quote_engine.auth.ownership import Principal
from quote_engine.auth.rbac import require_scopes
from quote_engine.core.config import get_config
from quote_engine.core.dependencies import get_current_user
from quote_engine.core.exceptions import AuthenticationError, AuthorizationError


def _extract_bearer_token(authorization: str | None) -> str:
    if authorization is None or not authorization.strip():
        raise AuthenticationError("Authorization header is required.")
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError("Authorization header must use Bearer token.")
    return parts[1].strip()


def authorize(authorization: str | None, scopes: list[str]) -> Principal:
    token = _extract_bearer_token(authorization)
    principal = get_current_user(token=token, settings=get_config())
    require_scopes(principal.role, scopes)
    return principal


def map_auth_error(exc: Exception) -> tuple[int, str]:
    if isinstance(exc, AuthenticationError):
        return 401, str(exc)
    if isinstance(exc, AuthorizationError):
        return 403, str(exc)
    return 401, "Unauthorized."


def require_principal(authorization: str | None, scopes: list[str]) -> Principal:
    """Authorize or fail the request with 401/403 before any work starts."""
    try:
        return authorize(authorization=authorization, scopes=scopes)
    except (AuthenticationError, AuthorizationError) as exc:
        code, detail = map_auth_error(exc)
        raise HTTPException(status_code=code, detail=detail) from exc


def page(items: list[Any], total: int, limit: int, offset: int) -> dict:
    return {"items": items, "total": total, "limit": limit, "offset": offset}
