"""Optimistic transaction runner with bounded retry"""

import logging
import random
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from jewelry_ledger.domain.exceptions import TransactionConflictError, TransactionTimeoutError
from jewelry_ledger.infrastructure.observability.metrics import transaction_retry_counter

logger = logging.getLogger(__name__)

T = TypeVar("T")

# StaleDataError: a versioned row changed since we read it.
# OperationalError: lock contention (SQLite "database is locked", PG serialization).
CONFLICT_ERRORS: Tuple[Type[BaseException], ...] = (StaleDataError, OperationalError)


def deadline_after(timeout_seconds: Optional[float]) -> Optional[float]:
    """Monotonic deadline for a timeout, or None for no deadline"""
    if timeout_seconds is None:
        return None
    return time.monotonic() + timeout_seconds


def _check_deadline(db: Session, deadline: Optional[float], operation: str) -> None:
    if deadline is not None and time.monotonic() >= deadline:
        db.rollback()
        raise TransactionTimeoutError(f"{operation} did not commit before its deadline")


def run_in_transaction(
    db: Session,
    unit_of_work: Callable[[], T],
    *,
    operation: str = "transaction",
    attempts: int = 5,
    backoff_base: float = 0.05,
    deadline: Optional[float] = None,
    retry_on: Tuple[Type[BaseException], ...] = CONFLICT_ERRORS,
    retry_if: Optional[Callable[[BaseException], bool]] = None,
) -> T:
    """
    Run unit_of_work and commit it, retrying the whole unit on conflict.

    unit_of_work must do all of its reads before any writes and must be
    safe to re-run from scratch: every retry starts from a rolled-back
    session, so rows are re-read from the database.

    Retry strategy:
    - Exponential backoff with full jitter: base * 2^attempt * U(0.5, 1.5)
    - Never sleeps past the deadline
    - Any non-conflict exception rolls back and propagates immediately,
      as does a retry_on error that retry_if turns down

    Raises:
        TransactionConflictError: every attempt conflicted
        TransactionTimeoutError: deadline expired before commit
    """
    for attempt in range(attempts):
        _check_deadline(db, deadline, operation)
        try:
            result = unit_of_work()
            _check_deadline(db, deadline, operation)
            db.commit()
            return result
        except retry_on as e:
            db.rollback()
            if retry_if is not None and not retry_if(e):
                raise
            transaction_retry_counter.labels(operation=operation).inc()
            logger.info(
                f"{operation} conflicted, retrying",
                extra={"operation": operation, "attempt": attempt + 1, "error": type(e).__name__},
            )
            if attempt >= attempts - 1:
                raise TransactionConflictError(attempts) from e

            backoff = backoff_base * (2 ** attempt) * random.uniform(0.5, 1.5)
            if deadline is not None:
                backoff = min(backoff, max(0.0, deadline - time.monotonic()))
            time.sleep(backoff)
        except BaseException:
            db.rollback()
            raise

    raise TransactionConflictError(attempts)
