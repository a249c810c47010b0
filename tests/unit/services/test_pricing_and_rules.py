from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest

from quote_engine.core.exceptions import ConflictError, ValidationError
from quote_engine.models import CalculationType, PenaltyType, PricingConfig, Severity
from quote_engine.services.penalty_rules import PenaltyRuleService, calculate_rule_amount
from quote_engine.services.pricing_service import PricingService


def _rule(calculation_type, amount_value, max_amount=None):
    return SimpleNamespace(
        id=1,
        code="demo",
        version=1,
        calculation_type=calculation_type,
        amount_value=Decimal(amount_value),
        max_amount=Decimal(max_amount) if max_amount is not None else None,
    )


def test_pricing_seeded_from_environment_defaults(session):
    active = PricingService(db=session).get_active()
    assert active.version == 1
    assert active.commission_percent == Decimal("15")
    assert active.overprice_percent == Decimal("10")
    assert active.vat_percent == Decimal("15")


def test_pricing_update_creates_new_version(session):
    service = PricingService(db=session)
    service.get_active()
    updated = service.update({"vat_percent": "20"}, actor_id=1, notes="VAT change")

    assert updated.version == 2
    assert updated.vat_percent == Decimal("20")
    assert updated.commission_percent == Decimal("15")
    versions = service.list_versions()
    assert [item.version for item in versions] == [2, 1]
    assert versions[1].is_active is False
    assert session.query(PricingConfig).filter(PricingConfig.is_active.is_(True)).count() == 1


@pytest.mark.parametrize("changes", [{"commission_percent": "60"}, {"vat_percent": "-1"}, {"unknown": "1"}])
def test_pricing_update_validation(session, changes):
    with pytest.raises(ValidationError):
        PricingService(db=session).update(changes, actor_id=1)


def test_existing_quotation_keeps_its_pricing_version(lifecycle, session):
    request, (quotation,) = lifecycle.approved_quotations({101: "22700"})
    PricingService(db=session).update({"commission_percent": "25"}, actor_id=1)
    session.refresh(quotation)
    assert quotation.pricing_config_version == 1
    assert quotation.commission_amount == Decimal("3405.00")


def test_fixed_percentage_and_daily_amounts():
    assert calculate_rule_amount(_rule(CalculationType.FIXED, "250"))[0] == Decimal("250.00")
    assert calculate_rule_amount(_rule(CalculationType.PERCENTAGE, "5"), Decimal("22700"))[0] == Decimal("1135.00")
    amount, snapshot = calculate_rule_amount(_rule(CalculationType.DAILY, "100", "2000"), days_overdue=30)
    assert amount == Decimal("2000.00")
    assert snapshot["capped"] is True
    assert snapshot["days_overdue"] == 30


def test_percentage_rule_needs_base_price():
    with pytest.raises(ValidationError):
        calculate_rule_amount(_rule(CalculationType.PERCENTAGE, "5"))


def test_seed_is_idempotent(session):
    service = PenaltyRuleService(db=session)
    assert len(service.seed_default_rules()) == 6
    assert service.seed_default_rules() == []


def test_rule_update_versions_and_keeps_history(session):
    service = PenaltyRuleService(db=session)
    service.seed_default_rules()
    current = service.match_rule(PenaltyType.COMMUNICATION_FAILURE)

    updated = service.update_rule(current.id, {"amount_value": "400"}, actor_id=1)
    assert updated.version == 2
    assert updated.amount_value == Decimal("400")
    assert service.get_rule(current.id).is_active is False
    assert service.match_rule(PenaltyType.COMMUNICATION_FAILURE).id == updated.id
    with pytest.raises(ConflictError):
        service.update_rule(current.id, {"amount_value": "500"}, actor_id=1)


def test_match_rule_prefers_severity_then_most_severe(session):
    service = PenaltyRuleService(db=session)
    service.seed_default_rules()
    assert service.match_rule(PenaltyType.LATE_INSTALLATION, Severity.MODERATE).code == "late_installation_daily"
    assert service.match_rule(PenaltyType.LATE_INSTALLATION, Severity.MINOR).code == "late_installation_major"


def test_rule_validation_and_deactivation(session):
    service = PenaltyRuleService(db=session)
    base = {
        "code": "site_cleanup",
        "penalty_type": "quality_issue",
        "description": "Debris left on site",
        "calculation_type": "percentage",
        "amount_value": "150",
        "severity": "minor",
    }
    with pytest.raises(ValidationError):
        service.create_rule(base, actor_id=1)

    rule = service.create_rule({**base, "amount_value": "2"}, actor_id=1)
    assert rule.calculation_type == CalculationType.PERCENTAGE
    with pytest.raises(ConflictError):
        service.create_rule({**base, "amount_value": "3"}, actor_id=1)

    service.deactivate_rule(rule.id, actor_id=1)
    assert rule.id not in {item.id for item in service.list_rules()}
    with pytest.raises(ConflictError):
        service.deactivate_rule(rule.id, actor_id=1)
