"""Shared service base with session lifecycle behavior."""

from __future__ import annotations

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.orm import Session

from quote_engine.core.config import Config, get_config
from quote_engine.core.exceptions import ConflictError, NotFoundError
from quote_engine.database import db as database


class BaseService:
    """Base class for services that operate on a SQLAlchemy session."""

    def __init__(self, db: Session | None = None, config: Config | None = None) -> None:
        self.db = db or database.new_session()
        self.config = config or get_config()

    def commit(self) -> None:
        """Commit current transaction and rollback on failure.

        Lock timeouts and serialization failures surface as conflicts so the
        caller can re-fetch and retry.
        """
        try:
            self.db.commit()
        except (OperationalError, StaleDataError) as exc:
            self.db.rollback()
            raise ConflictError("Concurrent update detected; re-fetch and retry.") from exc
        except Exception:
            self.db.rollback()
            raise

    def lock_row(self, model, row_id: int, label: str):
        """Load a row under ``SELECT ... FOR UPDATE`` with fresh column values."""
        try:
            row = (
                self.db.query(model)
                .filter(model.id == row_id)
                .with_for_update()
                .populate_existing()
                .one_or_none()
            )
        except OperationalError as exc:
            self.db.rollback()
            raise ConflictError(f"{label} {row_id} is locked by another writer; retry.") from exc
        if row is None:
            raise NotFoundError(f"{label} not found: {row_id}")
        return row

    def rollback(self) -> None:
        self.db.rollback()

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> "BaseService":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type:
            self.rollback()
        self.close()
