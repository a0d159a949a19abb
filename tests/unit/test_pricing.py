"""Unit tests for weight-based pricing and payment decisions"""

import pytest
import uuid
from decimal import Decimal
from jewelry_ledger.domain.models import Metal, PaymentMethod, PaymentStatus, ResolvedLine, SaleType
from jewelry_ledger.domain.pricing import (
    compute_commission,
    compute_totals,
    decide_payment,
    percent_of,
    price_line,
    price_lines,
    to_paise,
)
from jewelry_ledger.domain.exceptions import PricingUnavailableError

GOLD_RATE = 920_000  # ₹9200/g


def _line(weight: float = 10.0, quantity: int = 1, metal: Metal = Metal.GOLD) -> ResolvedLine:
    return ResolvedLine(
        item_id=uuid.uuid4(),
        name="Gold Ring",
        metal=metal,
        weight_grams=weight,
        quantity=quantity,
        is_custom=False,
    )


def test_price_line_gold_ring_breakdown():
    """10g gold at ₹9200/g with 15% making and 2% wastage"""
    priced = price_line(_line(), GOLD_RATE, Decimal("15"), Decimal("2"))

    assert priced.base_paise == 9_200_000
    assert priced.making_charges_paise == 1_380_000
    assert priced.wastage_paise == 184_000
    assert priced.total_paise == 10_764_000
    assert priced.unit_price_paise == 10_764_000


def test_sale_totals_with_tax():
    """3% tax on the subtotal gives the expected grand total"""
    priced = [price_line(_line(), GOLD_RATE, Decimal("15"), Decimal("2"))]
    totals = compute_totals(priced, additional_charges_paise=0, tax_pct=Decimal("3"))

    assert totals.items_total_paise == 10_764_000
    assert totals.subtotal_paise == 10_764_000
    assert totals.tax_paise == 322_920
    assert totals.grand_total_paise == 11_086_920


def test_tax_applies_to_additional_charges():
    """Flat charges are part of the taxable subtotal"""
    priced = [price_line(_line(weight=1.0), 100_000, Decimal("0"), Decimal("0"))]
    totals = compute_totals(priced, additional_charges_paise=50_000, tax_pct=Decimal("10"))

    assert totals.subtotal_paise == 150_000
    assert totals.tax_paise == 15_000
    assert totals.grand_total_paise == 165_000


def test_quantity_multiplies_line_and_unit_price_divides_back():
    """Unit price is the line total over quantity"""
    priced = price_line(_line(weight=2.5, quantity=3), 11_000, Decimal("10"), Decimal("0"))

    # 2.5g × ₹110 × 3 = ₹825, making ₹82.50
    assert priced.base_paise == 82_500
    assert priced.making_charges_paise == 8_250
    assert priced.total_paise == 90_750
    assert priced.unit_price_paise == 30_250


def test_fractional_weight_rounds_half_up_to_paisa():
    """Sub-paisa amounts round half-up at each component"""
    # 0.105g × 5 paise = 0.525 paise -> 1
    priced = price_line(_line(weight=0.105), 5, Decimal("0"), Decimal("0"))
    assert priced.base_paise == 1


def test_to_paise_and_percent_of_rounding():
    """Half-up rounding, never banker's rounding"""
    assert to_paise(Decimal("2.5")) == 3
    assert to_paise(Decimal("3.5")) == 4
    assert to_paise(Decimal("2.49")) == 2
    assert percent_of(1_001, Decimal("50")) == 501


def test_price_line_without_rate_raises():
    """A metal priced at zero cannot be sold by weight"""
    with pytest.raises(PricingUnavailableError) as exc_info:
        price_line(_line(metal=Metal.DIAMOND), 0, Decimal("0"), Decimal("0"))
    assert exc_info.value.metal == "diamond"


def test_price_lines_uses_rate_per_metal():
    """Each line is priced at its own metal's rate"""
    lines = [_line(weight=1.0), _line(weight=1.0, metal=Metal.SILVER)]
    priced = price_lines(lines, {Metal.GOLD: GOLD_RATE, Metal.SILVER: 11_000}, Decimal("0"), Decimal("0"))

    assert [p.total_paise for p in priced] == [920_000, 11_000]


@pytest.mark.parametrize(
    "cash,card_upi,method,expected_status,expected_credit,expected_change",
    [
        (100_000, 0, PaymentMethod.CASH, PaymentStatus.PAID, 0, 0),
        (60_000, 50_000, PaymentMethod.CARD, PaymentStatus.PAID, 0, 10_000),
        (40_000, 0, PaymentMethod.CASH, PaymentStatus.PARTIAL, 60_000, 0),
        (0, 30_000, PaymentMethod.UPI, PaymentStatus.PARTIAL, 70_000, 0),
        (0, 0, PaymentMethod.CASH, PaymentStatus.PENDING, 100_000, 0),
        (0, 0, PaymentMethod.CREDIT, PaymentStatus.PENDING, 100_000, 0),
        (40_000, 0, PaymentMethod.CREDIT, PaymentStatus.PENDING, 100_000, 0),
    ],
)
def test_decide_payment(cash, card_upi, method, expected_status, expected_credit, expected_change):
    """Payment status and credit follow tendered amounts and method"""
    outcome = decide_payment(100_000, cash, card_upi, method)

    assert outcome.status == expected_status
    assert outcome.credit_paise == expected_credit
    assert outcome.change_paise == expected_change
    assert outcome.total_received_paise == 100_000 - expected_credit + expected_change


def test_credit_method_owes_whole_total_whatever_was_tendered():
    """Credit sales take no tender, so the full total is booked as credit"""
    outcome = decide_payment(100_000, 100_000, 20_000, PaymentMethod.CREDIT)

    assert outcome.status == PaymentStatus.PENDING
    assert outcome.credit_paise == 100_000
    assert outcome.total_received_paise == 0
    assert outcome.change_paise == 0


@pytest.mark.parametrize("method", list(PaymentMethod))
def test_unpaid_status_always_carries_credit(method):
    """Partial and pending sales always owe something; a zero total is paid"""
    for total, cash in [(0, 0), (100_000, 0), (100_000, 40_000), (100_000, 100_000)]:
        outcome = decide_payment(total, cash, 0, method)
        assert (outcome.status == PaymentStatus.PAID) == (outcome.credit_paise == 0)


@pytest.mark.parametrize(
    "cash,method,expected_status,expected_credit",
    [
        (1_000, PaymentMethod.CASH, PaymentStatus.PAID, 0),
        (400, PaymentMethod.CASH, PaymentStatus.PARTIAL, 600),
        (0, PaymentMethod.CREDIT, PaymentStatus.PENDING, 1_000),
    ],
)
def test_payment_status_for_thousand_total(cash, method, expected_status, expected_credit):
    outcome = decide_payment(1_000, cash, 0, method)

    assert (outcome.status, outcome.credit_paise) == (expected_status, expected_credit)


def test_commission_is_percentage_of_grand_total():
    """Commission sales earn the commission rate on the grand total"""
    assert compute_commission(SaleType.COMMISSION, 11_086_920, Decimal("10")) == 1_108_692
    assert compute_commission(SaleType.COMMISSION, 1_001, Decimal("12.5")) == 125


@pytest.mark.parametrize("sale_type", [SaleType.INVENTORY, SaleType.CUSTOM_ORDER])
def test_no_commission_outside_commission_sales(sale_type):
    assert compute_commission(sale_type, 1_000_000, None) is None
