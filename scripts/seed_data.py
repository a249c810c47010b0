import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from quote_engine.core.startup import seed_reference_data
from quote_engine.database.db import get_db_session, init_schema
from quote_engine.services.penalty_rules import PenaltyRuleService
from quote_engine.services.pricing_service import PricingService


def main():
    init_schema()
    seed_reference_data()
    with get_db_session() as db:
        pricing = PricingService(db=db).get_active()
        print(
            f"Active pricing v{pricing.version}: commission {pricing.commission_percent}%, "
            f"overprice {pricing.overprice_percent}%, VAT {pricing.vat_percent}%"
        )
        for rule in PenaltyRuleService(db=db).list_rules():
            print(f"Rule {rule.code} v{rule.version}: {rule.calculation_type.value} {rule.amount_value}")


if __name__ == "__main__":
    main()
