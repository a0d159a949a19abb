"""Unit tests for the optimistic transaction runner"""

import pytest
import time
from unittest.mock import MagicMock
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from jewelry_ledger.domain.exceptions import InsufficientStockError, TransactionConflictError, TransactionTimeoutError
from jewelry_ledger.infrastructure.database.transactions import CONFLICT_ERRORS, deadline_after, run_in_transaction
from jewelry_ledger.services.sale_engine import is_retryable


def _flaky(failures: int, result: str = "ok"):
    """Unit of work that conflicts a fixed number of times before succeeding"""
    calls = {"count": 0}

    def _op():
        calls["count"] += 1
        if calls["count"] <= failures:
            raise StaleDataError("row version changed")
        return result

    return _op, calls


def test_commits_on_first_success():
    """No conflict means one attempt and one commit"""
    db = MagicMock()
    op, calls = _flaky(0)

    assert run_in_transaction(db, op, backoff_base=0) == "ok"
    assert calls["count"] == 1
    db.commit.assert_called_once()
    db.rollback.assert_not_called()


def test_retries_conflicts_from_scratch():
    """Each conflict rolls back and reruns the whole unit of work"""
    db = MagicMock()
    op, calls = _flaky(2)

    assert run_in_transaction(db, op, attempts=5, backoff_base=0) == "ok"
    assert calls["count"] == 3
    assert db.rollback.call_count == 2
    db.commit.assert_called_once()


def test_conflict_at_commit_is_retried():
    """A stale flush surfaces at commit and is retried like any conflict"""
    db = MagicMock()
    db.commit.side_effect = [StaleDataError("stale"), None]

    assert run_in_transaction(db, lambda: "ok", backoff_base=0) == "ok"
    assert db.commit.call_count == 2


def test_gives_up_after_max_attempts():
    """Persistent conflicts end in TransactionConflictError"""
    db = MagicMock()
    op, calls = _flaky(10)

    with pytest.raises(TransactionConflictError) as exc_info:
        run_in_transaction(db, op, attempts=3, backoff_base=0)

    assert exc_info.value.attempts == 3
    assert calls["count"] == 3
    db.commit.assert_not_called()


def test_domain_error_is_not_retried():
    """Business failures roll back and propagate immediately"""
    db = MagicMock()

    def _op():
        raise InsufficientStockError("item-1", requested=2, available=1)

    with pytest.raises(InsufficientStockError):
        run_in_transaction(db, _op, backoff_base=0)

    db.rollback.assert_called_once()
    db.commit.assert_not_called()


def test_expired_deadline_times_out_without_running():
    """Nothing runs once the deadline has passed"""
    db = MagicMock()
    op, calls = _flaky(0)

    with pytest.raises(TransactionTimeoutError):
        run_in_transaction(db, op, deadline=deadline_after(0))

    assert calls["count"] == 0
    db.commit.assert_not_called()


def test_deadline_checked_before_commit():
    """Slow unit of work past its deadline is rolled back, not committed"""
    db = MagicMock()

    def _slow():
        time.sleep(0.05)
        return "late"

    with pytest.raises(TransactionTimeoutError):
        run_in_transaction(db, _slow, deadline=deadline_after(0.01))

    db.rollback.assert_called()
    db.commit.assert_not_called()


def test_deadline_after_none_means_no_deadline():
    """No timeout configured"""
    assert deadline_after(None) is None


def _integrity_error(message: str) -> IntegrityError:
    return IntegrityError("INSERT INTO sale ...", {}, Exception(message))


def test_receipt_collision_is_retried():
    """Two sales drawing the same receipt number: the loser retries with a new one"""
    db = MagicMock()
    db.commit.side_effect = [_integrity_error("UNIQUE constraint failed: sale.receipt_number"), None]

    result = run_in_transaction(
        db, lambda: "ok", backoff_base=0, retry_on=CONFLICT_ERRORS + (IntegrityError,), retry_if=is_retryable
    )

    assert result == "ok"
    assert db.commit.call_count == 2


def test_other_integrity_errors_are_not_retried():
    """A deterministic constraint violation fails on the first attempt"""
    db = MagicMock()
    db.commit.side_effect = _integrity_error("UNIQUE constraint failed: inventory_item.sku")

    with pytest.raises(IntegrityError):
        run_in_transaction(
            db, lambda: "ok", backoff_base=0, retry_on=CONFLICT_ERRORS + (IntegrityError,), retry_if=is_retryable
        )

    db.commit.assert_called_once()
    db.rollback.assert_called_once()


@pytest.mark.parametrize(
    "error,expected",
    [
        (StaleDataError("stale"), True),
        (_integrity_error('duplicate key value violates unique constraint "uq_sale_receipt_number"'), True),
        (_integrity_error('violates foreign key constraint "sale_customer_id_fkey"'), True),
        (_integrity_error("NOT NULL constraint failed: sale.total_paise"), False),
    ],
)
def test_is_retryable(error, expected):
    assert is_retryable(error) is expected
