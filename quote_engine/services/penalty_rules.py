"""Versioned penalty rules and default amount calculation."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from quote_engine.core.exceptions import ConflictError, NotFoundError, ValidationError
from quote_engine.models import SEVERITY_RANK, CalculationType, PenaltyRule, PenaltyType, Severity, utcnow
from quote_engine.services.base_service import BaseService
from quote_engine.services.financial_engine import HUNDRED, ZERO, percent_of, to_decimal, to_money

logger = logging.getLogger(__name__)

DEFAULT_RULES: list[dict[str, Any]] = [
    {
        "code": "late_installation_daily",
        "penalty_type": PenaltyType.LATE_INSTALLATION,
        "description": "Installation not completed by the agreed deadline, charged per day overdue.",
        "calculation_type": CalculationType.DAILY,
        "amount_value": Decimal("100"),
        "max_amount": Decimal("2000"),
        "grace_period_hours": 24,
        "severity": Severity.MODERATE,
        "auto_apply": True,
    },
    {
        "code": "late_installation_major",
        "penalty_type": PenaltyType.LATE_INSTALLATION,
        "description": "Installation significantly overdue, charged as a share of the quotation.",
        "calculation_type": CalculationType.PERCENTAGE,
        "amount_value": Decimal("5"),
        "max_amount": Decimal("5000"),
        "grace_period_hours": 24,
        "severity": Severity.MAJOR,
        "auto_apply": True,
    },
    {
        "code": "quality_issue",
        "penalty_type": PenaltyType.QUALITY_ISSUE,
        "description": "Installation quality below the agreed specification.",
        "calculation_type": CalculationType.PERCENTAGE,
        "amount_value": Decimal("10"),
        "max_amount": Decimal("10000"),
        "grace_period_hours": 0,
        "severity": Severity.MAJOR,
        "auto_apply": False,
    },
    {
        "code": "communication_failure",
        "penalty_type": PenaltyType.COMMUNICATION_FAILURE,
        "description": "Contractor unresponsive to the customer or the platform.",
        "calculation_type": CalculationType.FIXED,
        "amount_value": Decimal("250"),
        "max_amount": None,
        "grace_period_hours": 0,
        "severity": Severity.MINOR,
        "auto_apply": False,
    },
    {
        "code": "documentation_issue",
        "penalty_type": PenaltyType.DOCUMENTATION_ISSUE,
        "description": "Missing or invalid installation documentation.",
        "calculation_type": CalculationType.FIXED,
        "amount_value": Decimal("500"),
        "max_amount": None,
        "grace_period_hours": 0,
        "severity": Severity.MODERATE,
        "auto_apply": False,
    },
    {
        "code": "contractor_cancellation",
        "penalty_type": PenaltyType.CONTRACTOR_CANCELLATION,
        "description": "Contractor withdrew after accepting the job.",
        "calculation_type": CalculationType.FIXED,
        "amount_value": Decimal("500"),
        "max_amount": None,
        "grace_period_hours": 0,
        "severity": Severity.MAJOR,
        "auto_apply": False,
    },
]

_RULE_FIELDS = (
    "description",
    "calculation_type",
    "amount_value",
    "max_amount",
    "grace_period_hours",
    "severity",
    "auto_apply",
)


def calculate_rule_amount(
    rule: PenaltyRule,
    base_price: Decimal | None = None,
    days_overdue: int = 0,
) -> tuple[Decimal, dict[str, Any]]:
    """Compute a rule's default amount and the snapshot explaining it."""
    value = to_decimal(rule.amount_value)
    if rule.calculation_type == CalculationType.FIXED:
        amount = to_money(value)
    elif rule.calculation_type == CalculationType.PERCENTAGE:
        if base_price is None:
            raise ValidationError(f"Rule {rule.code} needs a quotation base price.")
        amount = percent_of(base_price, value)
    else:
        amount = to_money(value * max(int(days_overdue), 1))

    capped = False
    if rule.max_amount is not None and amount > to_money(rule.max_amount):
        amount = to_money(rule.max_amount)
        capped = True

    snapshot = {
        "rule_id": rule.id,
        "rule_code": rule.code,
        "rule_version": rule.version,
        "calculation_type": rule.calculation_type.value,
        "amount_value": str(value),
        "max_amount": str(rule.max_amount) if rule.max_amount is not None else None,
        "base_price": str(base_price) if base_price is not None else None,
        "days_overdue": int(days_overdue),
        "capped": capped,
        "amount": str(amount),
    }
    return amount, snapshot


class PenaltyRuleService(BaseService):
    """Rules are never deleted; edits insert a new version and deactivate the old row."""

    def seed_default_rules(self) -> list[PenaltyRule]:
        existing = {code for (code,) in self.db.query(PenaltyRule.code).distinct()}
        created = []
        for defaults in DEFAULT_RULES:
            if defaults["code"] in existing:
                continue
            rule = PenaltyRule(version=1, is_active=True, **defaults)
            self.db.add(rule)
            created.append(rule)
        if created:
            self.commit()
            logger.info(
                "penalty_rules.seeded",
                extra={"event": "penalty_rules.seeded", "codes": [rule.code for rule in created]},
            )
        return created

    def list_rules(self, active_only: bool = True, penalty_type: PenaltyType | None = None) -> list[PenaltyRule]:
        query = self.db.query(PenaltyRule)
        if active_only:
            query = query.filter(PenaltyRule.is_active.is_(True))
        if penalty_type is not None:
            query = query.filter(PenaltyRule.penalty_type == penalty_type)
        return query.order_by(PenaltyRule.code, PenaltyRule.version).all()

    def get_rule(self, rule_id: int) -> PenaltyRule:
        rule = self.db.get(PenaltyRule, rule_id)
        if rule is None:
            raise NotFoundError(f"Penalty rule not found: {rule_id}")
        return rule

    def create_rule(self, data: dict[str, Any], actor_id: int) -> PenaltyRule:
        code = str(data.get("code") or "").strip()
        if not code:
            raise ValidationError("Rule code is required.")
        if self.db.query(PenaltyRule.id).filter(PenaltyRule.code == code).first() is not None:
            raise ConflictError(f"Penalty rule code already exists: {code}")
        values = {field: data.get(field) for field in _RULE_FIELDS}
        self._validate_rule_values(values)
        rule = PenaltyRule(
            code=code,
            version=1,
            penalty_type=PenaltyType(data["penalty_type"]),
            is_active=True,
            created_by=actor_id,
            **values,
        )
        self.db.add(rule)
        self.commit()
        logger.info("penalty_rule.created", extra={"event": "penalty_rule.created", "code": code, "actor_id": actor_id})
        return rule

    def update_rule(self, rule_id: int, changes: dict[str, Any], actor_id: int) -> PenaltyRule:
        """Supersede an active rule with a new version; the old row stays for audit."""
        current = self.get_rule(rule_id)
        if not current.is_active:
            raise ConflictError(f"Penalty rule {rule_id} is not the active version.")
        values = {field: getattr(current, field) for field in _RULE_FIELDS}
        values.update({key: value for key, value in changes.items() if key in _RULE_FIELDS})
        self._validate_rule_values(values)

        current.is_active = False
        current.deactivated_at = utcnow()
        self.db.flush()
        rule = PenaltyRule(
            code=current.code,
            version=current.version + 1,
            penalty_type=current.penalty_type,
            is_active=True,
            created_by=actor_id,
            **values,
        )
        self.db.add(rule)
        self.commit()
        logger.info(
            "penalty_rule.versioned",
            extra={"event": "penalty_rule.versioned", "code": rule.code, "version": rule.version, "actor_id": actor_id},
        )
        return rule

    def deactivate_rule(self, rule_id: int, actor_id: int) -> PenaltyRule:
        rule = self.get_rule(rule_id)
        if not rule.is_active:
            raise ConflictError(f"Penalty rule {rule_id} is already inactive.")
        rule.is_active = False
        rule.deactivated_at = utcnow()
        self.commit()
        logger.info(
            "penalty_rule.deactivated",
            extra={"event": "penalty_rule.deactivated", "rule_id": rule_id, "actor_id": actor_id},
        )
        return rule

    @staticmethod
    def _validate_rule_values(values: dict[str, Any]) -> None:
        values["calculation_type"] = CalculationType(values["calculation_type"])
        values["severity"] = Severity(values["severity"])
        values["amount_value"] = to_decimal(values["amount_value"], "amount_value")
        if values["amount_value"] <= ZERO:
            raise ValidationError("amount_value must be greater than zero.")
        if values["calculation_type"] == CalculationType.PERCENTAGE and values["amount_value"] > HUNDRED:
            raise ValidationError("Percentage rules cannot exceed 100.")
        if values.get("max_amount") is not None:
            values["max_amount"] = to_decimal(values["max_amount"], "max_amount")
            if values["max_amount"] <= ZERO:
                raise ValidationError("max_amount must be greater than zero.")
        values["grace_period_hours"] = int(values.get("grace_period_hours") or 0)
        if values["grace_period_hours"] < 0:
            raise ValidationError("grace_period_hours must be >= 0.")
        values["auto_apply"] = bool(values.get("auto_apply"))
        if not str(values.get("description") or "").strip():
            raise ValidationError("Rule description is required.")

    def match_rule(self, penalty_type: PenaltyType, severity: Severity | None = None) -> PenaltyRule | None:
        """Active rule of the type with the given severity, else the most severe one."""
        rules = self.list_rules(active_only=True, penalty_type=penalty_type)
        if not rules:
            return None
        if severity is not None:
            for rule in rules:
                if rule.severity == severity:
                    return rule
        return max(rules, key=lambda rule: (SEVERITY_RANK[rule.severity], rule.id))
