"""Dependency providers for API handlers and background workers."""

from __future__ import annotations

from collections.abc import Generator

from sqlalchemy.orm import Session

from quote_engine.auth.jwt import decode_jwt
from quote_engine.auth.ownership import Principal, from_claims
from quote_engine.core.config import Config, get_config
from quote_engine.database.db import get_db


def get_settings() -> Config:
    """Return validated application configuration."""
    return get_config()


def get_db_session() -> Generator[Session, None, None]:
    """Yield SQLAlchemy session for dependency injection."""
    yield from get_db()


def get_current_user(token: str, settings: Config | None = None) -> Principal:
    """Resolve the calling principal from a bearer token."""
    cfg = settings or get_settings()
    claims = decode_jwt(token=token, secret=cfg.JWT_SECRET)
    return from_claims(claims)
