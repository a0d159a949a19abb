"""Denormalized customer totals recomputed from the ledgers"""

import uuid
from sqlalchemy.orm import Session

from jewelry_ledger.domain.exceptions import NotFoundError
from jewelry_ledger.domain.models import AggregateSnapshot, CreditType
from jewelry_ledger.infrastructure.database.models import Customer
from jewelry_ledger.infrastructure.database.repositories import (
    CreditRepository,
    CustomerRepository,
    SaleRepository,
)


class CustomerAggregate:
    """
    Running totals per customer.

    Totals are never incremented in place: a refresh always recomputes
    them from sales and the credit ledger. snapshot() only reads and
    apply() only writes, so a sale can read in its first phase and write
    in its last. The customer's version counter makes concurrent
    refreshes of the same customer conflict instead of overwriting each
    other with stale sums.
    """

    def __init__(self, db: Session):
        self.customers = CustomerRepository(db)
        self.credits = CreditRepository(db)
        self.sales = SaleRepository(db)

    def load_customer(self, customer_id: uuid.UUID) -> Customer:
        customer = self.customers.get_customer(customer_id)
        if customer is None:
            raise NotFoundError("Customer", customer_id)
        return customer

    def snapshot(self, customer_id: uuid.UUID) -> AggregateSnapshot:
        """Read ledger-derived totals; load the customer row first so its version predates the sums"""
        self.load_customer(customer_id)
        ledger = self.credits.sum_by_type(customer_id)
        return AggregateSnapshot(
            customer_id=customer_id,
            total_purchases_paise=self.sales.sum_totals(customer_id),
            credit_paise=ledger[CreditType.CREDIT.value],
            payment_paise=ledger[CreditType.PAYMENT.value],
        )

    def apply(self, snapshot: AggregateSnapshot) -> Customer:
        """Write both totals in one update"""
        customer = self.load_customer(snapshot.customer_id)
        customer.total_purchases_paise = snapshot.total_purchases_paise
        customer.total_credit_paise = max(0, snapshot.balance_paise)
        # Bump the version even when totals are unchanged so every refresh
        # participates in conflict detection
        customer.version = customer.version + 1
        return customer

    def refresh(self, customer_id: uuid.UUID) -> Customer:
        """Recompute and write totals; idempotent"""
        return self.apply(self.snapshot(customer_id))
