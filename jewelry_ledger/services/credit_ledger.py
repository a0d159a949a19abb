"""Append-only store-credit ledger"""

import uuid
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session

from jewelry_ledger.domain.exceptions import InvalidPaymentError
from jewelry_ledger.domain.models import CreditType
from jewelry_ledger.infrastructure.database.models import CreditTransaction
from jewelry_ledger.infrastructure.database.repositories import CreditRepository


class CreditLedger:
    """Credits (amounts owed) and payments (amounts repaid) per customer"""

    def __init__(self, db: Session):
        self.repo = CreditRepository(db)

    def append(
        self,
        customer_id: uuid.UUID,
        type: CreditType,
        amount_paise: int,
        sale_id: Optional[uuid.UUID] = None,
        due_date: Optional[date] = None,
        balance_after_paise: int = 0,
        notes: Optional[str] = None,
    ) -> CreditTransaction:
        """
        Append a ledger entry. Entries are never updated or deleted.

        balance_after_paise is an informational snapshot for receipts and
        statements; balances are always recomputed from the entries.
        """
        if amount_paise <= 0:
            raise InvalidPaymentError(f"Ledger amount must be positive, got {amount_paise}")

        entry = self.repo.add_entry(
            customer_id=customer_id,
            type=type,
            amount_paise=amount_paise,
            balance_after_paise=balance_after_paise,
            sale_id=sale_id,
            due_date=due_date,
            notes=notes,
        )
        return entry

    def recompute_balance(self, customer_id: uuid.UUID) -> int:
        """Sum of credit entries minus sum of payment entries"""
        totals = self.repo.sum_by_type(customer_id)
        return totals[CreditType.CREDIT.value] - totals[CreditType.PAYMENT.value]

    def entries(self, customer_id: uuid.UUID) -> List[CreditTransaction]:
        return self.repo.get_entries(customer_id)

    def overdue(self, as_of: Optional[date] = None) -> List[CreditTransaction]:
        """Credit entries past due for customers who still owe"""
        return self.repo.get_due_credits(as_of or date.today())
