"""Ledger invariant checks"""

from typing import List
from sqlalchemy.orm import Session

from jewelry_ledger.domain.models import CreditType, LedgerViolation, PaymentStatus
from jewelry_ledger.infrastructure.database.repositories import (
    CreditRepository,
    CustomerRepository,
    SaleRepository,
)
from jewelry_ledger.services.customer_aggregate import CustomerAggregate


def find_violations(db: Session) -> List[LedgerViolation]:
    """
    Check the persisted ledger against its invariants.

    - A partial or pending customer sale has exactly one credit entry
    - A paid sale has no credit entry
    - Stored customer totals equal the totals recomputed from the ledgers

    Walk-in sales carry no ledger entries, and detached sales belong to a
    deleted customer whose history is already settled, so both are skipped.
    """
    violations: List[LedgerViolation] = []
    credits = CreditRepository(db)
    aggregates = CustomerAggregate(db)

    for sale in SaleRepository(db).all_sales():
        if sale.customer_id is None or sale.customer_detached:
            continue

        linked = [e for e in credits.get_entries_for_sale(sale.id) if e.type == CreditType.CREDIT.value]
        expected = 0 if sale.payment_status == PaymentStatus.PAID.value else 1
        if len(linked) != expected:
            violations.append(
                LedgerViolation(
                    kind="sale_credit_entries",
                    entity_id=sale.id,
                    detail=f"{sale.payment_status} sale has {len(linked)} credit entries, expected {expected}",
                    context={"receipt_number": sale.receipt_number},
                )
            )
        elif linked and linked[0].amount_paise != sale.credit_paise:
            violations.append(
                LedgerViolation(
                    kind="sale_credit_amount",
                    entity_id=sale.id,
                    detail=f"credit entry {linked[0].amount_paise} differs from sale credit {sale.credit_paise}",
                )
            )

    for customer in CustomerRepository(db).list_customers():
        snapshot = aggregates.snapshot(customer.id)
        if customer.total_credit_paise != snapshot.balance_paise:
            violations.append(
                LedgerViolation(
                    kind="customer_credit",
                    entity_id=customer.id,
                    detail=f"stored credit {customer.total_credit_paise} != ledger balance {snapshot.balance_paise}",
                )
            )
        if customer.total_purchases_paise != snapshot.total_purchases_paise:
            violations.append(
                LedgerViolation(
                    kind="customer_purchases",
                    entity_id=customer.id,
                    detail=(
                        f"stored purchases {customer.total_purchases_paise} "
                        f"!= sales total {snapshot.total_purchases_paise}"
                    ),
                )
            )

    return violations
