"""Date helpers for credit terms"""

from datetime import date, timedelta
from typing import Optional

from jewelry_ledger.config import settings


def credit_due_date(sale_date: date, days: Optional[int] = None) -> date:
    """Due date for a credit booked on sale_date (calendar days, no holiday calendar)"""
    return sale_date + timedelta(days=settings.credit_due_days if days is None else days)
