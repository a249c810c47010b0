"""Startup validation and bootstrap helpers."""

from __future__ import annotations

import logging

from quote_engine.core.config import get_config
from quote_engine.core.logging_config import configure_logging
from quote_engine.database.db import get_active_database_url, get_db_session, init_schema, verify_database_connection

logger = logging.getLogger(__name__)


def validate_startup_config() -> None:
    """Fail-fast config and connectivity checks."""
    config = get_config()
    database_ok = verify_database_connection()
    active_database_url = get_active_database_url()
    if not database_ok and config.DB_CONNECTIVITY_REQUIRED:
        raise RuntimeError("Database connectivity check failed.")
    if not database_ok:
        logger.warning(
            "startup.database.connectivity_optional_failed",
            extra={"event": "startup.database.connectivity_optional_failed"},
        )

    if config.is_production and active_database_url.startswith("sqlite"):
        logger.warning(
            "startup.production.sqlite_detected",
            extra={"event": "startup.production.sqlite_detected"},
        )

    logger.info(
        "startup.config.validated",
        extra={
            "event": "startup.config.validated",
            "env": config.ENV,
            "database_url_scheme": active_database_url.split("://", 1)[0],
            "db_connectivity_required": config.DB_CONNECTIVITY_REQUIRED,
            "penalty_scheduler_mode": config.PENALTY_SCHEDULER_MODE,
        },
    )


def seed_reference_data() -> None:
    """Ensure an active pricing config and the default penalty rules exist."""
    from quote_engine.services.penalty_rules import PenaltyRuleService
    from quote_engine.services.pricing_service import PricingService

    with get_db_session() as db:
        PricingService(db=db).get_active()
        db.commit()
        PenaltyRuleService(db=db).seed_default_rules()


def bootstrap() -> None:
    """Initialize logging, validate configuration and prepare local schema."""
    configure_logging()
    validate_startup_config()
    if not get_config().is_production:
        init_schema()
        seed_reference_data()
