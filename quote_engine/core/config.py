"""Configuration module for the quote engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from urllib.parse import urlparse

from dotenv import load_dotenv

from quote_engine.core.exceptions import ConfigurationError

load_dotenv()

SCHEDULER_MODES = {"thread", "celery", "off"}


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_decimal(name: str, default: str) -> Decimal:
    raw = os.getenv(name, default)
    try:
        return Decimal(raw)
    except InvalidOperation as exc:
        raise ConfigurationError(f"{name} must be a decimal number.") from exc


@dataclass(frozen=True)
class Config:
    """Runtime configuration with validation."""

    APP_NAME: str
    APP_VERSION: str
    ENV: str
    DEBUG: bool
    DATABASE_URL: str
    DB_CONNECTIVITY_REQUIRED: bool
    JWT_SECRET: str
    JWT_ACCESS_TTL_MINUTES: int
    API_HOST: str
    API_PORT: int
    API_PREFIX: str
    LOG_LEVEL: str
    LOG_FILE: str
    MAX_CONTRACTORS_PER_REQUEST: int
    QUOTATION_VALIDITY_DAYS: int
    INVOICE_DUE_DAYS: int
    DEFAULT_COMMISSION_PERCENT: Decimal
    DEFAULT_OVERPRICE_PERCENT: Decimal
    DEFAULT_VAT_PERCENT: Decimal
    MAX_PRICE_PER_KWP: Decimal
    MIN_SYSTEM_SIZE_KWP: Decimal
    MAX_SYSTEM_SIZE_KWP: Decimal
    CANCELLATION_PENALTY_AMOUNT: Decimal
    CANCELLATION_CONTRACTOR_SHARE_PERCENT: Decimal
    PENALTY_CHECK_INTERVAL_SECONDS: int
    PENALTY_SCHEDULER_MODE: str
    CONTRACTOR_SERVICE_URL: str | None
    CONTRACTOR_SERVICE_TIMEOUT_SECONDS: int
    CONTRACTOR_SERVICE_MAX_RETRIES: int
    CELERY_BROKER_URL: str
    CELERY_RESULT_BACKEND: str

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"


def _build_config(env: str | None = None) -> Config:
    resolved_env = (env or os.getenv("ENV", "development")).strip().lower()
    debug = _as_bool(os.getenv("DEBUG"), default=False)
    redis_url = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    config = Config(
        APP_NAME="Solar Quote Engine",
        APP_VERSION=os.getenv("APP_VERSION", "1.0.0"),
        ENV=resolved_env,
        DEBUG=debug if resolved_env != "production" else False,
        DATABASE_URL=os.getenv("DATABASE_URL", "sqlite:///./solar_quotes.db"),
        DB_CONNECTIVITY_REQUIRED=_as_bool(
            os.getenv("DB_CONNECTIVITY_REQUIRED"),
            default=(resolved_env == "production"),
        ),
        JWT_SECRET=os.getenv("JWT_SECRET", "change_me_jwt_secret"),
        JWT_ACCESS_TTL_MINUTES=int(os.getenv("JWT_ACCESS_TTL_MINUTES", "15")),
        API_HOST=os.getenv("API_HOST", "0.0.0.0"),
        API_PORT=int(os.getenv("API_PORT", "8000")),
        API_PREFIX=os.getenv("API_PREFIX", "/api/v1"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        LOG_FILE=os.getenv("LOG_FILE", "solar_quotes.log"),
        MAX_CONTRACTORS_PER_REQUEST=int(os.getenv("MAX_CONTRACTORS_PER_REQUEST", "3")),
        QUOTATION_VALIDITY_DAYS=int(os.getenv("QUOTATION_VALIDITY_DAYS", "30")),
        INVOICE_DUE_DAYS=int(os.getenv("INVOICE_DUE_DAYS", "30")),
        DEFAULT_COMMISSION_PERCENT=_as_decimal("DEFAULT_COMMISSION_PERCENT", "15"),
        DEFAULT_OVERPRICE_PERCENT=_as_decimal("DEFAULT_OVERPRICE_PERCENT", "10"),
        DEFAULT_VAT_PERCENT=_as_decimal("DEFAULT_VAT_PERCENT", "15"),
        MAX_PRICE_PER_KWP=_as_decimal("MAX_PRICE_PER_KWP", "2000"),
        MIN_SYSTEM_SIZE_KWP=_as_decimal("MIN_SYSTEM_SIZE_KWP", "1"),
        MAX_SYSTEM_SIZE_KWP=_as_decimal("MAX_SYSTEM_SIZE_KWP", "1000"),
        CANCELLATION_PENALTY_AMOUNT=_as_decimal("CANCELLATION_PENALTY_AMOUNT", "0"),
        CANCELLATION_CONTRACTOR_SHARE_PERCENT=_as_decimal("CANCELLATION_CONTRACTOR_SHARE_PERCENT", "50"),
        PENALTY_CHECK_INTERVAL_SECONDS=int(os.getenv("PENALTY_CHECK_INTERVAL_SECONDS", "3600")),
        PENALTY_SCHEDULER_MODE=os.getenv("PENALTY_SCHEDULER_MODE", "thread").strip().lower(),
        CONTRACTOR_SERVICE_URL=os.getenv("CONTRACTOR_SERVICE_URL") or None,
        CONTRACTOR_SERVICE_TIMEOUT_SECONDS=int(os.getenv("CONTRACTOR_SERVICE_TIMEOUT_SECONDS", "5")),
        CONTRACTOR_SERVICE_MAX_RETRIES=int(os.getenv("CONTRACTOR_SERVICE_MAX_RETRIES", "2")),
        CELERY_BROKER_URL=os.getenv("CELERY_BROKER_URL", redis_url),
        CELERY_RESULT_BACKEND=os.getenv("CELERY_RESULT_BACKEND", redis_url),
    )
    _validate_config(config)
    return config


def _validate_database_url(database_url: str) -> None:
    parsed = urlparse(database_url)
    if parsed.scheme not in {"sqlite", "postgresql", "postgresql+psycopg2"}:
        raise ConfigurationError(
            "DATABASE_URL must use sqlite:// or postgresql:// style URL."
        )
    if parsed.scheme.startswith("postgresql") and not parsed.hostname:
        raise ConfigurationError("PostgreSQL DATABASE_URL is missing hostname.")


def _validate_config(config: Config) -> None:
    _validate_database_url(config.DATABASE_URL)

    if config.JWT_ACCESS_TTL_MINUTES < 1:
        raise ConfigurationError("JWT_ACCESS_TTL_MINUTES must be >= 1.")
    if config.LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigurationError("LOG_LEVEL must be one of DEBUG/INFO/WARNING/ERROR/CRITICAL.")
    if config.MAX_CONTRACTORS_PER_REQUEST < 1:
        raise ConfigurationError("MAX_CONTRACTORS_PER_REQUEST must be >= 1.")
    if config.QUOTATION_VALIDITY_DAYS < 1:
        raise ConfigurationError("QUOTATION_VALIDITY_DAYS must be >= 1.")
    if config.INVOICE_DUE_DAYS < 0:
        raise ConfigurationError("INVOICE_DUE_DAYS must be >= 0.")
    for name in ("DEFAULT_COMMISSION_PERCENT", "DEFAULT_OVERPRICE_PERCENT"):
        value = getattr(config, name)
        if value < 0 or value > 50:
            raise ConfigurationError(f"{name} must be between 0 and 50.")
    if config.DEFAULT_VAT_PERCENT < 0 or config.DEFAULT_VAT_PERCENT > 100:
        raise ConfigurationError("DEFAULT_VAT_PERCENT must be between 0 and 100.")
    if config.MIN_SYSTEM_SIZE_KWP <= 0 or config.MAX_SYSTEM_SIZE_KWP < config.MIN_SYSTEM_SIZE_KWP:
        raise ConfigurationError("System size bounds must satisfy 0 < MIN <= MAX.")
    if config.CANCELLATION_PENALTY_AMOUNT < 0:
        raise ConfigurationError("CANCELLATION_PENALTY_AMOUNT must be >= 0.")
    if not 0 <= config.CANCELLATION_CONTRACTOR_SHARE_PERCENT <= 100:
        raise ConfigurationError("CANCELLATION_CONTRACTOR_SHARE_PERCENT must be between 0 and 100.")
    if config.PENALTY_CHECK_INTERVAL_SECONDS < 1:
        raise ConfigurationError("PENALTY_CHECK_INTERVAL_SECONDS must be >= 1.")
    if config.PENALTY_SCHEDULER_MODE not in SCHEDULER_MODES:
        raise ConfigurationError("PENALTY_SCHEDULER_MODE must be one of thread/celery/off.")
    if config.CONTRACTOR_SERVICE_MAX_RETRIES < 0:
        raise ConfigurationError("CONTRACTOR_SERVICE_MAX_RETRIES must be >= 0.")
    if config.is_production and "change_me" in config.JWT_SECRET:
        raise ConfigurationError("Production JWT_SECRET uses placeholder value.")


@lru_cache(maxsize=8)
def get_config(env: str | None = None) -> Config:
    """Get validated configuration for the requested environment."""
    return _build_config(env)
