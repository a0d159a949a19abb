"""Sale transaction engine - prices, books and commits a sale atomically"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable, Dict, List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from jewelry_ledger.config import settings
from jewelry_ledger.domain.exceptions import (
    DomainException,
    EmptySaleError,
    InactiveCustomerError,
    InsufficientStockError,
    InvalidLineItemError,
    InvalidSaleRequestError,
    NotFoundError,
    PricingUnavailableError,
    TransactionConflictError,
    TransactionTimeoutError,
)
from jewelry_ledger.domain.models import (
    AggregateSnapshot,
    CreditType,
    Metal,
    PaymentMethod,
    ResolvedLine,
    SalePlan,
    SaleRequest,
    SaleType,
    StockSnapshot,
)
from jewelry_ledger.domain.pricing import compute_commission, compute_totals, decide_payment, price_lines
from jewelry_ledger.domain.receipts import allocate_receipt_number
from jewelry_ledger.infrastructure.database.models import Sale
from jewelry_ledger.infrastructure.database.repositories import SaleRepository
from jewelry_ledger.infrastructure.database.transactions import (
    CONFLICT_ERRORS,
    deadline_after,
    run_in_transaction,
)
from jewelry_ledger.infrastructure.observability.logging import log_sale
from jewelry_ledger.infrastructure.observability.metrics import (
    credit_entry_counter,
    record_sale,
    record_sale_failure,
    sale_duration_histogram,
)
from jewelry_ledger.services.credit_ledger import CreditLedger
from jewelry_ledger.services.customer_aggregate import CustomerAggregate
from jewelry_ledger.services.inventory_ledger import InventoryLedger
from jewelry_ledger.services.price_oracle import PriceOracle
from jewelry_ledger.utils.date_utils import credit_due_date

logger = logging.getLogger(__name__)

FAILURE_REASONS = {
    InsufficientStockError: "insufficient_stock",
    InactiveCustomerError: "inactive_customer",
    TransactionConflictError: "conflict",
    TransactionTimeoutError: "timeout",
    InvalidSaleRequestError: "invalid",
    NotFoundError: "not_found",
    PricingUnavailableError: "pricing",
}

# Percentages are stored with two decimal places
PCT_QUANTUM = Decimal("0.01")

# Integrity failures a fresh attempt can resolve: a receipt number drawn twice
# gets a new one, a reference deleted meanwhile is reported as not found
RETRYABLE_INTEGRITY = ("receipt_number", "foreign key")


def is_retryable(error: BaseException) -> bool:
    """Conflicts are always retried; other constraint violations fail at once"""
    if isinstance(error, IntegrityError):
        message = str(error.orig).lower()
        return any(marker in message for marker in RETRYABLE_INTEGRITY)
    return True


@dataclass
class SaleReads:
    """Everything Phase 1 read; Phase 2 and 3 never go back to the database for decisions"""

    today: date
    rates: Dict[Metal, int]
    stock: Dict[uuid.UUID, StockSnapshot] = field(default_factory=dict)
    customer: Optional[AggregateSnapshot] = None


def validate_request(request: SaleRequest) -> None:
    """
    Reject malformed requests before any transaction starts.

    Raises:
        EmptySaleError: no line items
        InvalidLineItemError: quantity/weight not positive, or no item source
        InvalidSaleRequestError: negative or over-precise percentages, negative
            amounts, tender on a credit sale, or a commission rate on a
            non-commission sale
    """
    if not request.lines:
        raise EmptySaleError()

    for index, line in enumerate(request.lines):
        if line.quantity is None or line.quantity <= 0:
            raise InvalidLineItemError(index, "quantity must be positive")
        if line.custom:
            if line.metal is None:
                raise InvalidLineItemError(index, "custom item needs a metal")
            if line.weight_grams is None or line.weight_grams <= 0:
                raise InvalidLineItemError(index, "custom item weight must be positive")
        elif line.inventory_item_id is None:
            raise InvalidLineItemError(index, "line must reference an inventory item or be custom")

    for name in ("making_charge_pct", "wastage_pct", "tax_pct", "commission_pct"):
        value = getattr(request, name)
        if value is None:
            continue
        value = Decimal(value)
        if value < 0:
            raise InvalidSaleRequestError(f"{name} cannot be negative")
        if value != value.quantize(PCT_QUANTUM):
            raise InvalidSaleRequestError(f"{name} allows at most two decimal places")
    for name in ("additional_charges_paise", "cash_paise", "card_upi_paise"):
        if getattr(request, name) < 0:
            raise InvalidSaleRequestError(f"{name} cannot be negative")

    if request.payment_method == PaymentMethod.CREDIT and (request.cash_paise or request.card_upi_paise):
        raise InvalidSaleRequestError("Credit sales take no cash or card tender; record a payment instead")

    if request.commission_pct is not None:
        if request.sale_type != SaleType.COMMISSION:
            raise InvalidSaleRequestError("commission_pct applies to commission sales only")
        if Decimal(request.commission_pct) > 100:
            raise InvalidSaleRequestError("commission_pct must be between 0 and 100")


class SaleTransactionEngine:
    """
    Orchestrates one sale as a single optimistic transaction.

    Each attempt runs three strict phases:
    1. Reads   - metal rates, stock rows, customer snapshot
    2. Compute - pricing, tax, payment status, receipt number (no I/O)
    3. Writes  - sale, items, stock decrements, credit entry, customer totals

    Writes are staged in the session and reach the database in the commit
    flush. Versioned stock and customer rows make a concurrent winner turn
    our flush into a conflict, and the whole attempt is retried from
    Phase 1 with fresh reads.
    """

    def __init__(
        self,
        db: Session,
        *,
        max_attempts: Optional[int] = None,
        backoff_base: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.db = db
        self.max_attempts = max_attempts or settings.sale_max_attempts
        self.backoff_base = settings.sale_backoff_base if backoff_base is None else backoff_base
        self.timeout_seconds = settings.sale_timeout_seconds if timeout_seconds is None else timeout_seconds
        self.today = today or date.today

        self.prices = PriceOracle(db)
        self.inventory = InventoryLedger(db)
        self.credits = CreditLedger(db)
        self.aggregates = CustomerAggregate(db)
        self.sales = SaleRepository(db)

    def submit_sale(self, request: SaleRequest, timeout_seconds: Optional[float] = None) -> Sale:
        """
        Price, book and commit a sale, or fail with nothing persisted.

        Raises:
            EmptySaleError, InvalidLineItemError, InvalidSaleRequestError: before any I/O
            InactiveCustomerError: the customer is deactivated
            NotFoundError: unknown customer or inventory item
            InsufficientStockError: an inventory sale line exceeds current stock
            PricingUnavailableError: a metal has no usable rate
            TransactionConflictError: conflicts persisted through every retry
            TransactionTimeoutError: deadline expired before commit
        """
        start_time = time.time()
        timeout = self.timeout_seconds if timeout_seconds is None else timeout_seconds

        try:
            validate_request(request)
            sale = run_in_transaction(
                self.db,
                lambda: self._attempt(request),
                operation="sale",
                attempts=self.max_attempts,
                backoff_base=self.backoff_base,
                deadline=deadline_after(timeout),
                    retry_on=CONFLICT_ERRORS + (IntegrityError,),
                retry_if=is_retryable,
            )
        except DomainException as e:
            record_sale_failure(self._failure_reason(e))
            logger.warning(f"Sale rejected: {e}", extra={"customer_id": str(request.customer_id)})
            raise

        duration = time.time() - start_time
        sale_duration_histogram.observe(duration)
        record_sale(sale.sale_type, sale.payment_status, sale.total_paise)
        if sale.customer_id is not None and sale.credit_paise > 0:
            credit_entry_counter.labels(type=CreditType.CREDIT.value).inc()
        log_sale(
            sale_id=str(sale.id),
            receipt_number=sale.receipt_number,
            customer_id=str(sale.customer_id) if sale.customer_id else None,
            sale_type=sale.sale_type,
            payment_status=sale.payment_status,
            total_paise=sale.total_paise,
            credit_paise=sale.credit_paise,
            duration_ms=duration * 1000,
        )
        return sale

    @staticmethod
    def _failure_reason(error: DomainException) -> str:
        for error_type, reason in FAILURE_REASONS.items():
            if isinstance(error, error_type):
                return reason
        return "other"

    def _attempt(self, request: SaleRequest) -> Sale:
        reads = self._read_phase(request)
        plan = self._compute_phase(request, reads)
        return self._write_phase(request, reads, plan)

    # Phase 1
    def _read_phase(self, request: SaleRequest) -> SaleReads:
        today = self.today()

        stock: Dict[uuid.UUID, StockSnapshot] = {}
        for line in request.lines:
            if not line.custom and line.inventory_item_id not in stock:
                stock[line.inventory_item_id] = self.inventory.peek(line.inventory_item_id)

        metals = [line.metal for line in request.lines if line.custom]
        metals += [snapshot.material for snapshot in stock.values()]
        rates = self.prices.get_rates(metals, today)

        customer = None
        if request.customer_id is not None:
            if not self.aggregates.load_customer(request.customer_id).is_active:
                raise InactiveCustomerError(request.customer_id)
            customer = self.aggregates.snapshot(request.customer_id)

        return SaleReads(today=today, rates=rates, stock=stock, customer=customer)

    # Phase 2
    def _compute_phase(self, request: SaleRequest, reads: SaleReads) -> SalePlan:
        resolved: List[ResolvedLine] = []
        for line in request.lines:
            if line.custom:
                resolved.append(
                    ResolvedLine(
                        item_id=None,
                        name=line.name or f"Custom {line.metal.value} piece",
                        metal=line.metal,
                        weight_grams=line.weight_grams,
                        quantity=line.quantity,
                        is_custom=True,
                    )
                )
            else:
                snapshot = reads.stock[line.inventory_item_id]
                resolved.append(
                    ResolvedLine(
                        item_id=snapshot.item_id,
                        name=snapshot.name,
                        metal=snapshot.material,
                        weight_grams=snapshot.weight_per_piece,
                        quantity=line.quantity,
                        is_custom=False,
                    )
                )

        priced = price_lines(resolved, reads.rates, Decimal(request.making_charge_pct), Decimal(request.wastage_pct))
        totals = compute_totals(priced, request.additional_charges_paise, Decimal(request.tax_pct))
        payment = decide_payment(
            totals.grand_total_paise,
            request.cash_paise,
            request.card_upi_paise,
            request.payment_method,
        )

        commission_pct = None
        if request.sale_type == SaleType.COMMISSION:
            commission_pct = Decimal(
                settings.commission_pct_default if request.commission_pct is None else request.commission_pct
            )

        return SalePlan(
            lines=priced,
            totals=totals,
            payment=payment,
            receipt_number=allocate_receipt_number(datetime.now(timezone.utc)),
            commission_pct=commission_pct,
            commission_paise=compute_commission(request.sale_type, totals.grand_total_paise, commission_pct),
        )

    # Phase 3
    def _write_phase(self, request: SaleRequest, reads: SaleReads, plan: SalePlan) -> Sale:
        sale = self.sales.create_sale(request, plan)

        # Commission and custom-order pieces never came out of our stock
        if request.sale_type == SaleType.INVENTORY:
            for priced in plan.lines:
                if priced.line.item_id is not None:
                    self.inventory.conditional_decrement(priced.line.item_id, priced.line.quantity)

        credit = plan.payment.credit_paise
        if reads.customer is None:
            if credit > 0:
                logger.warning(
                    "Walk-in sale left an unpaid balance; not tracked in the credit ledger",
                    extra={"receipt_number": plan.receipt_number, "credit_paise": credit},
                )
            return sale

        booked = reads.customer.plus(sale_paise=plan.totals.grand_total_paise, credit_paise=credit)
        if credit > 0:
            self.credits.append(
                customer_id=request.customer_id,
                type=CreditType.CREDIT,
                amount_paise=credit,
                sale_id=sale.id,
                due_date=credit_due_date(reads.today),
                balance_after_paise=booked.balance_paise,
                notes=f"Sale {plan.receipt_number}",
            )

        self.aggregates.apply(booked)
        return sale
