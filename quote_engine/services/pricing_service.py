"""Versioned pricing configuration management."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import func

from quote_engine.core.exceptions import ValidationError
from quote_engine.models import PricingConfig, utcnow
from quote_engine.services.base_service import BaseService
from quote_engine.services.financial_engine import to_decimal

logger = logging.getLogger(__name__)

_PERCENT_LIMITS = {
    "commission_percent": (Decimal("0"), Decimal("50")),
    "overprice_percent": (Decimal("0"), Decimal("50")),
    "vat_percent": (Decimal("0"), Decimal("100")),
}


class PricingService(BaseService):
    """Reads the active fee rule set and versions every change to it."""

    def get_active(self) -> PricingConfig:
        """Return the active pricing config, seeding version 1 from config when empty."""
        active = self.db.query(PricingConfig).filter(PricingConfig.is_active.is_(True)).one_or_none()
        if active is not None:
            return active
        if self.db.query(PricingConfig.id).first() is not None:
            raise ValidationError("No active pricing configuration.")
        return self._seed_default()

    def _seed_default(self) -> PricingConfig:
        cfg = self.config
        record = PricingConfig(
            version=1,
            commission_percent=cfg.DEFAULT_COMMISSION_PERCENT,
            overprice_percent=cfg.DEFAULT_OVERPRICE_PERCENT,
            vat_percent=cfg.DEFAULT_VAT_PERCENT,
            max_price_per_kwp=cfg.MAX_PRICE_PER_KWP,
            min_system_size_kwp=cfg.MIN_SYSTEM_SIZE_KWP,
            max_system_size_kwp=cfg.MAX_SYSTEM_SIZE_KWP,
            is_active=True,
            notes="Seeded from environment defaults.",
        )
        self.db.add(record)
        self.db.flush()
        logger.info("pricing_config.seeded", extra={"event": "pricing_config.seeded", "version": 1})
        return record

    def list_versions(self) -> list[PricingConfig]:
        return self.db.query(PricingConfig).order_by(PricingConfig.version.desc()).all()

    def update(self, changes: dict[str, Any], actor_id: int, notes: str | None = None) -> PricingConfig:
        """Insert a new active version carrying ``changes``; the old one is kept, deactivated."""
        current = self.get_active()
        values = {
            "commission_percent": current.commission_percent,
            "overprice_percent": current.overprice_percent,
            "vat_percent": current.vat_percent,
            "max_price_per_kwp": current.max_price_per_kwp,
            "min_system_size_kwp": current.min_system_size_kwp,
            "max_system_size_kwp": current.max_system_size_kwp,
        }
        for key, value in changes.items():
            if key not in values:
                raise ValidationError(f"Unknown pricing field: {key}")
            if value is not None:
                values[key] = to_decimal(value, key)
        self._validate(values)

        next_version = (self.db.query(func.max(PricingConfig.version)).scalar() or 0) + 1
        current.is_active = False
        current.deactivated_at = utcnow()
        self.db.flush()

        record = PricingConfig(version=next_version, is_active=True, created_by=actor_id, notes=notes, **values)
        self.db.add(record)
        self.commit()
        logger.info(
            "pricing_config.updated",
            extra={
                "event": "pricing_config.updated",
                "version": next_version,
                "actor_id": actor_id,
                "commission_percent": str(values["commission_percent"]),
                "overprice_percent": str(values["overprice_percent"]),
                "vat_percent": str(values["vat_percent"]),
            },
        )
        return record

    @staticmethod
    def _validate(values: dict[str, Decimal]) -> None:
        for key, (low, high) in _PERCENT_LIMITS.items():
            if not low <= values[key] <= high:
                raise ValidationError(f"{key} must be between {low} and {high}.")
        if values["max_price_per_kwp"] <= 0:
            raise ValidationError("max_price_per_kwp must be greater than zero.")
        if values["min_system_size_kwp"] <= 0 or values["max_system_size_kwp"] < values["min_system_size_kwp"]:
            raise ValidationError("System size bounds must satisfy 0 < min <= max.")
