from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest

from quote_engine.core.exceptions import ValidationError
from quote_engine.services.financial_engine import (
    PricingRates,
    calculate_invoice_amounts,
    calculate_line_item,
    calculate_quotation_totals,
    percent_of,
    to_money,
    validate_quotation_bounds,
)

RATES = PricingRates(
    commission_percent=Decimal("15"),
    overprice_percent=Decimal("10"),
    vat_percent=Decimal("15"),
)


def test_reference_quotation_breakdown():
    totals = calculate_quotation_totals("22700", "12", RATES)
    assert totals.commission_amount == Decimal("3405.00")
    assert totals.overprice_amount == Decimal("2270.00")
    assert totals.total_user_price == Decimal("24970.00")
    assert totals.contractor_net_amount == Decimal("19295.00")
    assert totals.platform_revenue == Decimal("5675.00")
    assert totals.vat_amount == Decimal("2894.25")
    assert totals.total_payable == Decimal("22189.25")
    assert totals.price_per_kwp == Decimal("1891.67")


def test_calculation_is_deterministic_for_same_inputs():
    first = calculate_quotation_totals(Decimal("18333.33"), Decimal("7.5"), RATES)
    second = calculate_quotation_totals("18333.33", "7.5", RATES)
    assert first == second


def test_rounding_is_half_up_to_cents():
    assert to_money("0.005") == Decimal("0.01")
    assert to_money("2.675") == Decimal("2.68")
    assert percent_of(Decimal("0.10"), Decimal("15")) == Decimal("0.02")


def test_float_input_does_not_leak_binary_noise():
    assert to_money(0.1 + 0.2) == Decimal("0.30")


def test_line_item_amounts():
    item = calculate_line_item(3, "1000", RATES)
    assert item.total_price == Decimal("3000.00")
    assert item.commission_amount == Decimal("450.00")
    assert item.overprice_amount == Decimal("300.00")
    assert item.user_price == Decimal("3300.00")
    assert item.vendor_net == Decimal("2550.00")


@pytest.mark.parametrize("units,price", [(0, "100"), (1, "0"), (2, "-5")])
def test_line_item_rejects_non_positive_values(units, price):
    with pytest.raises(ValidationError):
        calculate_line_item(units, price, RATES)


def test_quotation_rejects_zero_size():
    with pytest.raises(ValidationError):
        calculate_quotation_totals("1000", "0", RATES)


def test_invoice_amounts_match_quotation_settlement():
    totals = calculate_quotation_totals("22700", "12", RATES)
    invoice = calculate_invoice_amounts(totals, RATES.vat_percent)
    assert invoice.gross_amount == Decimal("24970.00")
    assert invoice.overprice_deduction == Decimal("2270.00")
    assert invoice.commission_deduction == Decimal("3405.00")
    assert invoice.penalty_deduction == Decimal("0.00")
    assert invoice.net_amount == totals.contractor_net_amount
    assert invoice.vat_amount == Decimal("2894.25")
    assert invoice.total_with_vat == totals.total_payable


def test_invoice_rejects_deductions_above_gross():
    totals = calculate_quotation_totals("1000", "1", RATES)
    with pytest.raises(ValidationError):
        calculate_invoice_amounts(totals, RATES.vat_percent, penalty_deduction="5000")


def test_bounds_check_price_per_kwp_ceiling():
    pricing = SimpleNamespace(
        min_system_size_kwp=Decimal("1"),
        max_system_size_kwp=Decimal("1000"),
        max_price_per_kwp=Decimal("2000"),
    )
    validate_quotation_bounds(calculate_quotation_totals("20000", "10", RATES), pricing)
    with pytest.raises(ValidationError):
        validate_quotation_bounds(calculate_quotation_totals("20000.10", "10", RATES), pricing)
