"""Weight-based pricing engine - pure computation, no I/O"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional
from jewelry_ledger.domain.models import (
    LinePrice,
    Metal,
    PaymentMethod,
    PaymentOutcome,
    PaymentStatus,
    ResolvedLine,
    SaleTotals,
    SaleType,
)
from jewelry_ledger.domain.exceptions import PricingUnavailableError

HUNDRED = Decimal("100")


def to_paise(amount: Decimal) -> int:
    """Round a fractional paise amount half-up to a whole paisa"""
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent_of(amount_paise: int | Decimal, pct: Decimal) -> int:
    """pct% of an amount, rounded to the paisa"""
    return to_paise(Decimal(amount_paise) * Decimal(pct) / HUNDRED)


def price_line(
    line: ResolvedLine,
    price_per_gram_paise: int,
    making_charge_pct: Decimal,
    wastage_pct: Decimal,
) -> LinePrice:
    """
    Price one line item against a per-gram metal rate.

    base     = weight × price/g × quantity
    making   = base × making%
    wastage  = base × wastage%
    total    = base + making + wastage

    Example:
        10g gold @ ₹9200/g, 15% making, 2% wastage
        base 92,000 + making 13,800 + wastage 1,840 = ₹107,640
    """
    if price_per_gram_paise <= 0:
        raise PricingUnavailableError(line.metal.value)

    # str() keeps the float's shortest repr, so 10.0 grams stays exactly 10
    weight = Decimal(str(line.weight_grams))
    base = to_paise(weight * price_per_gram_paise * line.quantity)
    making = percent_of(base, making_charge_pct)
    wastage = percent_of(base, wastage_pct)
    total = base + making + wastage

    return LinePrice(
        line=line,
        price_per_gram_paise=price_per_gram_paise,
        base_paise=base,
        making_charges_paise=making,
        wastage_paise=wastage,
        total_paise=total,
        unit_price_paise=to_paise(Decimal(total) / line.quantity),
    )


def price_lines(
    lines: List[ResolvedLine],
    rates: Dict[Metal, int],
    making_charge_pct: Decimal,
    wastage_pct: Decimal,
) -> List[LinePrice]:
    return [price_line(line, rates[line.metal], making_charge_pct, wastage_pct) for line in lines]


def compute_totals(
    priced: List[LinePrice],
    additional_charges_paise: int,
    tax_pct: Decimal,
) -> SaleTotals:
    """Sum line totals, add flat charges, then apply tax on the subtotal"""
    items_total = sum(p.total_paise for p in priced)
    subtotal = items_total + additional_charges_paise
    tax = percent_of(subtotal, tax_pct)

    return SaleTotals(
        items_total_paise=items_total,
        making_charges_paise=sum(p.making_charges_paise for p in priced),
        wastage_paise=sum(p.wastage_paise for p in priced),
        additional_charges_paise=additional_charges_paise,
        subtotal_paise=subtotal,
        tax_paise=tax,
        grand_total_paise=subtotal + tax,
    )


def decide_payment(
    grand_total_paise: int,
    cash_paise: int,
    card_upi_paise: int,
    method: PaymentMethod,
) -> PaymentOutcome:
    """
    Decide payment status and the balance to book as store credit.

    - credit method: takes no tender, the whole total is owed
    - nothing owed: paid
    - something tendered but short: partial
    - nothing tendered: pending

    A sale is only ever left unpaid with a positive credit amount.
    """
    if method == PaymentMethod.CREDIT:
        cash_paise = card_upi_paise = 0

    total_received = cash_paise + card_upi_paise
    credit = max(0, grand_total_paise - total_received)
    change = max(0, total_received - grand_total_paise)

    if credit == 0:
        status = PaymentStatus.PAID
    elif total_received > 0:
        status = PaymentStatus.PARTIAL
    else:
        status = PaymentStatus.PENDING

    return PaymentOutcome(
        total_received_paise=total_received,
        credit_paise=credit,
        change_paise=change,
        status=status,
    )


def compute_commission(
    sale_type: SaleType,
    grand_total_paise: int,
    commission_pct: Optional[Decimal],
) -> Optional[int]:
    """Commission earned on a commission sale, None for other sale types"""
    if sale_type != SaleType.COMMISSION:
        return None
    return percent_of(grand_total_paise, commission_pct)
