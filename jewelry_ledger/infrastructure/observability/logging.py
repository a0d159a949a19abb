"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from jewelry_ledger.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_sale(
    sale_id: str,
    receipt_number: str,
    customer_id: Optional[str],
    sale_type: str,
    payment_status: str,
    total_paise: int,
    credit_paise: int,
    duration_ms: float,
) -> None:
    """Log structured sale outcome for analysis"""
    logging.info(
        "Sale committed",
        extra={
            "sale_id": sale_id,
            "receipt_number": receipt_number,
            "customer_id": customer_id,
            "step": "sale_committed",
            "sale_type": sale_type,
            "payment_status": payment_status,
            "total_paise": total_paise,
            "credit_paise": credit_paise,
            "duration_ms": duration_ms,
        },
    )


def log_ledger_entry(customer_id: str, entry_type: str, amount_paise: int, balance_paise: int) -> None:
    """Log a store-credit ledger append"""
    logging.info(
        "Credit ledger entry appended",
        extra={
            "customer_id": customer_id,
            "step": "ledger_append",
            "entry_type": entry_type,
            "amount_paise": amount_paise,
            "balance_paise": balance_paise,
        },
    )
