"""Fixed-point fee calculations for quotations, line items and invoices.

Every function here is pure. Money is a ``Decimal`` quantized to cents with
``ROUND_HALF_UP``; percentages are plain numbers (``15`` means 15%). Rates
are always passed in explicitly so that a stored rate snapshot reproduces
the stored amounts exactly.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

from quote_engine.core.exceptions import ValidationError

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0.00")


def to_decimal(value: Any, field: str = "value") -> Decimal:
    """Coerce ints, strings and decimals into ``Decimal`` without float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = repr(value)
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field} must be a number.") from exc


def to_money(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    return to_money(to_decimal(amount) * to_decimal(percent) / HUNDRED)


@dataclass(frozen=True)
class PricingRates:
    commission_percent: Decimal
    overprice_percent: Decimal
    vat_percent: Decimal

    @classmethod
    def from_record(cls, record: Any) -> "PricingRates":
        """Read the three rate fields off a pricing config or a quotation snapshot."""
        return cls(
            commission_percent=to_decimal(record.commission_percent),
            overprice_percent=to_decimal(record.overprice_percent),
            vat_percent=to_decimal(record.vat_percent),
        )


@dataclass(frozen=True)
class LineItemAmounts:
    units: int
    unit_price: Decimal
    total_price: Decimal
    commission_amount: Decimal
    overprice_amount: Decimal
    user_price: Decimal
    vendor_net: Decimal


@dataclass(frozen=True)
class QuotationTotals:
    base_price: Decimal
    system_size_kwp: Decimal
    price_per_kwp: Decimal
    overprice_amount: Decimal
    total_user_price: Decimal
    commission_amount: Decimal
    contractor_net_amount: Decimal
    platform_revenue: Decimal
    vat_amount: Decimal
    total_payable: Decimal

    def as_dict(self) -> dict[str, Decimal]:
        return asdict(self)


@dataclass(frozen=True)
class InvoiceAmounts:
    gross_amount: Decimal
    overprice_deduction: Decimal
    commission_deduction: Decimal
    penalty_deduction: Decimal
    net_amount: Decimal
    vat_percent: Decimal
    vat_amount: Decimal
    total_with_vat: Decimal


def calculate_line_item(units: int, unit_price: Any, rates: PricingRates) -> LineItemAmounts:
    if int(units) < 1:
        raise ValidationError("Line item units must be at least 1.")
    price = to_money(unit_price)
    if price <= ZERO:
        raise ValidationError("Line item unit price must be greater than zero.")

    total = to_money(price * int(units))
    commission = percent_of(total, rates.commission_percent)
    overprice = percent_of(total, rates.overprice_percent)
    return LineItemAmounts(
        units=int(units),
        unit_price=price,
        total_price=total,
        commission_amount=commission,
        overprice_amount=overprice,
        user_price=total + overprice,
        vendor_net=total - commission,
    )


def sum_line_totals(items: Iterable[LineItemAmounts]) -> Decimal:
    return sum((item.total_price for item in items), ZERO)


def calculate_quotation_totals(base_price: Any, system_size_kwp: Any, rates: PricingRates) -> QuotationTotals:
    base = to_money(base_price)
    size = to_decimal(system_size_kwp, "system_size_kwp")
    if base <= ZERO:
        raise ValidationError("Base price must be greater than zero.")
    if size <= ZERO:
        raise ValidationError("System size must be greater than zero.")

    commission = percent_of(base, rates.commission_percent)
    overprice = percent_of(base, rates.overprice_percent)
    contractor_net = base - commission
    vat = percent_of(contractor_net, rates.vat_percent)
    return QuotationTotals(
        base_price=base,
        system_size_kwp=size,
        price_per_kwp=to_money(base / size),
        overprice_amount=overprice,
        total_user_price=base + overprice,
        commission_amount=commission,
        contractor_net_amount=contractor_net,
        platform_revenue=commission + overprice,
        vat_amount=vat,
        total_payable=contractor_net + vat,
    )


def calculate_invoice_amounts(
    totals: QuotationTotals,
    vat_percent: Decimal,
    penalty_deduction: Any = ZERO,
) -> InvoiceAmounts:
    """Settle a quotation's totals into invoice deductions, net and VAT."""
    penalty = to_money(penalty_deduction)
    gross = totals.total_user_price
    net = gross - totals.overprice_amount - totals.commission_amount - penalty
    if net < ZERO:
        raise ValidationError("Invoice deductions exceed the gross amount.")
    vat = percent_of(net, vat_percent)
    return InvoiceAmounts(
        gross_amount=gross,
        overprice_deduction=totals.overprice_amount,
        commission_deduction=totals.commission_amount,
        penalty_deduction=penalty,
        net_amount=net,
        vat_percent=to_decimal(vat_percent),
        vat_amount=vat,
        total_with_vat=net + vat,
    )


def validate_quotation_bounds(totals: QuotationTotals, pricing: Any) -> None:
    """Check a quotation against the size and price ceilings of a pricing config."""
    if totals.system_size_kwp < to_decimal(pricing.min_system_size_kwp):
        raise ValidationError(f"System size must be at least {pricing.min_system_size_kwp} kWp.")
    if totals.system_size_kwp > to_decimal(pricing.max_system_size_kwp):
        raise ValidationError(f"System size must not exceed {pricing.max_system_size_kwp} kWp.")
    if totals.price_per_kwp > to_decimal(pricing.max_price_per_kwp):
        raise ValidationError(
            f"Price per kWp {totals.price_per_kwp} exceeds the maximum of {pricing.max_price_per_kwp}."
        )


_QUOTATION_FIELDS = (
    "price_per_kwp",
    "overprice_amount",
    "total_user_price",
    "commission_amount",
    "contractor_net_amount",
    "platform_revenue",
    "vat_amount",
    "total_payable",
)

_LINE_FIELDS = ("total_price", "commission_amount", "overprice_amount", "user_price", "vendor_net")


def apply_totals(quotation: Any, totals: QuotationTotals) -> None:
    quotation.base_price = totals.base_price
    quotation.system_size_kwp = totals.system_size_kwp
    for field in _QUOTATION_FIELDS:
        setattr(quotation, field, getattr(totals, field))


def verify_quotation_financials(quotation: Any) -> QuotationTotals:
    """Recompute a quotation from its base price and rate snapshot.

    Raises ``ValidationError`` when any stored derived field differs from the
    recomputed value. Line items are checked the same way, and their totals
    must add up to the contractor's quoted price.
    """
    rates = PricingRates.from_record(quotation)
    totals = calculate_quotation_totals(quotation.base_price, quotation.system_size_kwp, rates)
    mismatched = [
        field for field in _QUOTATION_FIELDS if to_money(getattr(quotation, field)) != getattr(totals, field)
    ]

    line_sum = ZERO
    for item in quotation.line_items:
        expected = calculate_line_item(item.units, item.unit_price, rates)
        line_sum += expected.total_price
        mismatched.extend(
            f"line_items[{item.position}].{field}"
            for field in _LINE_FIELDS
            if to_money(getattr(item, field)) != getattr(expected, field)
        )

    quoted = quotation.original_base_price if quotation.original_base_price is not None else quotation.base_price
    if quotation.line_items and to_money(quoted) != line_sum:
        mismatched.append("line_items.sum")

    if mismatched:
        raise ValidationError(f"Quotation {quotation.id} derived fields do not match: {', '.join(mismatched)}")
    return totals
