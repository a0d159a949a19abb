"""Randomized sequences of sales and repayments keep every ledger consistent"""

import pytest
import random
from decimal import Decimal
from sqlalchemy import func, select
from jewelry_ledger.domain.exceptions import InsufficientStockError, InvalidPaymentError
from jewelry_ledger.domain.models import LineItemRequest, Metal, PaymentMethod, PaymentStatus, SaleType
from jewelry_ledger.infrastructure.database.models import CreditTransaction, Customer, InventoryItem, Sale, SaleItem
from jewelry_ledger.services.audit import find_violations
from jewelry_ledger.services.credit_ledger import CreditLedger
from jewelry_ledger.services.customers import CustomerService
from jewelry_ledger.services.sale_engine import SaleTransactionEngine
from tests.builders import TODAY, custom_line, sale_request

pytestmark = pytest.mark.integration


def _random_sale(rng: random.Random, item_ids, customer_ids):
    lines = []
    for _ in range(rng.randint(1, 3)):
        if rng.random() < 0.7:
            lines.append(LineItemRequest(inventory_item_id=rng.choice(item_ids), quantity=rng.randint(1, 2)))
        else:
            lines.append(custom_line(rng.choice([Metal.GOLD, Metal.SILVER]), round(rng.uniform(0.5, 15.0), 3)))

    method = rng.choice(list(PaymentMethod))
    tendered = 0 if method == PaymentMethod.CREDIT else rng.choice([0, 100_000, 1_000_000, 50_000_000])
    sale_type = rng.choice([SaleType.INVENTORY] * 3 + [SaleType.COMMISSION, SaleType.CUSTOM_ORDER])
    return sale_request(
        *lines,
        customer_id=rng.choice(customer_ids + [None]),
        making_charge_pct=Decimal(rng.choice(["0", "8", "12.5", "15"])),
        wastage_pct=Decimal(rng.choice(["0", "2"])),
        tax_pct=Decimal(rng.choice(["0", "3"])),
        additional_charges_paise=rng.choice([0, 50_000]),
        cash_paise=tendered if method != PaymentMethod.CARD else 0,
        card_upi_paise=tendered if method == PaymentMethod.CARD else 0,
        payment_method=method,
        sale_type=sale_type,
    )


def _assert_consistent(db, customer_ids, initial_stock):
    assert find_violations(db) == []

    for customer_id in customer_ids:
        stored = db.get(Customer, customer_id)
        assert stored.total_credit_paise == CreditLedger(db).recompute_balance(customer_id)
        assert stored.total_credit_paise >= 0

    for item_id, initial in initial_stock.items():
        item = db.get(InventoryItem, item_id)
        sold = db.execute(
            select(func.coalesce(func.sum(SaleItem.quantity), 0))
            .select_from(SaleItem)
            .join(Sale, Sale.id == SaleItem.sale_id)
            .where(SaleItem.item_id == item_id, Sale.sale_type == SaleType.INVENTORY.value)
        ).scalar_one()
        assert item.quantity >= 0
        assert item.quantity == initial - sold


@pytest.mark.parametrize("seed", [7, 42, 1337, 2024])
def test_random_operation_sequences(db, make_item, make_customer, set_price, seed):
    """Every committed sale, rejected sale and repayment leaves the ledgers agreeing"""
    rng = random.Random(seed)
    set_price(Metal.GOLD, 920_000)
    set_price(Metal.SILVER, 11_000)

    items = [
        make_item(name="Gold Ring", weight_per_piece=4.5, quantity=rng.randint(1, 6)),
        make_item(name="Silver Anklet", material=Metal.SILVER, weight_per_piece=22.0, quantity=rng.randint(1, 6)),
        make_item(name="Gold Chain", weight_per_piece=12.75, quantity=rng.randint(1, 6)),
    ]
    initial_stock = {item.id: item.quantity for item in items}
    item_ids = list(initial_stock)
    customer_ids = [make_customer(name=f"Customer {i}").id for i in range(3)]

    engine = SaleTransactionEngine(db, backoff_base=0, today=lambda: TODAY)
    service = CustomerService(db)

    for _ in range(30):
        if rng.random() < 0.7:
            try:
                sale = engine.submit_sale(_random_sale(rng, item_ids, customer_ids))
            except InsufficientStockError:
                pass
            else:
                if sale.payment_method == PaymentMethod.CREDIT.value:
                    assert sale.payment_status == PaymentStatus.PENDING.value
                    assert sale.credit_paise == sale.total_paise
                if sale.sale_type == SaleType.COMMISSION.value:
                    assert sale.commission_paise is not None
        else:
            customer_id = rng.choice(customer_ids)
            balance = CreditLedger(db).recompute_balance(customer_id)
            amount = rng.randint(1, balance) if balance > 0 and rng.random() < 0.8 else balance + 1
            try:
                service.record_payment(customer_id, amount)
            except InvalidPaymentError:
                assert amount > balance
            else:
                assert amount <= balance

        _assert_consistent(db, customer_ids, initial_stock)

    total_credit_entries = db.query(CreditTransaction).filter_by(type="credit").count()
    owing_customer_sales = (
        db.query(Sale)
        .filter(Sale.customer_id.is_not(None), Sale.payment_status != PaymentStatus.PAID.value)
        .count()
    )
    assert total_credit_entries == owing_customer_sales
