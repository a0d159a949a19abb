"""Administrative customer operations: payments, recompute, deletion"""

import logging
import uuid
from typing import Optional
from sqlalchemy.orm import Session

from jewelry_ledger.config import settings
from jewelry_ledger.domain.exceptions import InvalidPaymentError
from jewelry_ledger.domain.models import CreditType
from jewelry_ledger.infrastructure.database.models import CreditTransaction, Customer
from jewelry_ledger.infrastructure.database.repositories import CustomerRepository
from jewelry_ledger.infrastructure.database.transactions import deadline_after, run_in_transaction
from jewelry_ledger.infrastructure.observability.logging import log_ledger_entry
from jewelry_ledger.infrastructure.observability.metrics import credit_entry_counter
from jewelry_ledger.services.credit_ledger import CreditLedger
from jewelry_ledger.services.customer_aggregate import CustomerAggregate

logger = logging.getLogger(__name__)


class CustomerService:
    """Customer-facing ledger operations, each one optimistic transaction"""

    def __init__(self, db: Session, *, max_attempts: Optional[int] = None):
        self.db = db
        self.max_attempts = max_attempts or settings.sale_max_attempts
        self.customers = CustomerRepository(db)
        self.credits = CreditLedger(db)
        self.aggregates = CustomerAggregate(db)

    def _run(self, operation: str, unit_of_work):
        return run_in_transaction(
            self.db,
            unit_of_work,
            operation=operation,
            attempts=self.max_attempts,
            backoff_base=settings.sale_backoff_base,
            deadline=deadline_after(settings.sale_timeout_seconds),
        )

    def add_customer(
        self,
        name: str,
        phone: str,
        email: Optional[str] = None,
        address: Optional[str] = None,
        city: Optional[str] = None,
        credit_limit_paise: int = 0,
    ) -> Customer:
        customer = self.customers.create_customer(
            name=name,
            phone=phone,
            email=email,
            address=address,
            city=city,
            credit_limit_paise=credit_limit_paise,
        )
        self.db.commit()
        return customer

    def recompute_customer(self, customer_id: uuid.UUID) -> Customer:
        """Recompute totals from the ledgers and persist them"""
        return self._run("recompute_customer", lambda: self.aggregates.refresh(customer_id))

    def set_active(self, customer_id: uuid.UUID, active: bool) -> Customer:
        """Inactive customers take no new sales but can still repay what they owe"""

        def _op() -> Customer:
            customer = self.aggregates.load_customer(customer_id)
            customer.is_active = active
            return customer

        customer = self._run("set_customer_status", _op)
        logger.info(
            "Customer status changed",
            extra={"customer_id": str(customer_id), "step": "customer_status", "is_active": active},
        )
        return customer

    def record_payment(
        self,
        customer_id: uuid.UUID,
        amount_paise: int,
        notes: Optional[str] = None,
    ) -> CreditTransaction:
        """
        Book a repayment against the customer's outstanding balance.

        Raises:
            InvalidPaymentError: amount not positive or larger than the balance
            NotFoundError: unknown customer
        """
        if amount_paise <= 0:
            raise InvalidPaymentError(f"Payment must be positive, got {amount_paise}")

        def _op() -> CreditTransaction:
            snapshot = self.aggregates.snapshot(customer_id)
            if amount_paise > snapshot.balance_paise:
                raise InvalidPaymentError(
                    f"Payment of {amount_paise} exceeds outstanding balance of {snapshot.balance_paise}"
                )

            booked = snapshot.plus(payment_paise=amount_paise)
            entry = self.credits.append(
                customer_id=customer_id,
                type=CreditType.PAYMENT,
                amount_paise=amount_paise,
                balance_after_paise=booked.balance_paise,
                notes=notes,
            )
            self.aggregates.apply(booked)
            return entry

        entry = self._run("record_payment", _op)
        credit_entry_counter.labels(type=CreditType.PAYMENT.value).inc()
        log_ledger_entry(str(customer_id), CreditType.PAYMENT.value, amount_paise, entry.balance_after_paise)
        return entry

    def delete_customer(self, customer_id: uuid.UUID) -> int:
        """
        Delete a customer while keeping their history.

        Sales and ledger entries lose the customer reference and are flagged
        detached; they stay in storage unchanged otherwise.

        Returns:
            Number of sales detached
        """

        def _op() -> int:
            customer = self.aggregates.load_customer(customer_id)
            detached = self.customers.detach_history(customer_id)
            self.db.delete(customer)
            return detached

        detached = self._run("delete_customer", _op)
        logger.info(
            "Customer deleted",
            extra={"customer_id": str(customer_id), "step": "customer_detached", "detached_sales": detached},
        )
        return detached
