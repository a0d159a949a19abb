"""Prometheus metrics for monitoring sales, stock conflicts, and ledger activity"""

from prometheus_client import Counter, Histogram

# Sale metrics
sale_counter = Counter(
    "jewelry_sale_total",
    "Total committed sales",
    ["sale_type", "payment_status"],
)

sale_failure_counter = Counter(
    "jewelry_sale_failures_total",
    "Sale submissions that did not commit",
    ["reason"],  # insufficient_stock | inactive_customer | conflict | timeout | invalid | not_found | pricing
)

sale_amount_histogram = Histogram(
    "jewelry_sale_amount_rupees",
    "Grand total of committed sales",
    buckets=[1_000, 10_000, 50_000, 100_000, 250_000, 500_000, 1_000_000],
)

sale_duration_histogram = Histogram(
    "jewelry_sale_duration_seconds",
    "Time to price, validate and commit a sale including retries",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Transaction metrics
transaction_retry_counter = Counter(
    "jewelry_transaction_retries_total",
    "Optimistic transaction attempts rolled back on conflict",
    ["operation"],
)

# Credit ledger metrics
credit_entry_counter = Counter(
    "jewelry_credit_entries_total",
    "Credit ledger entries appended",
    ["type"],  # credit | payment
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_sale(sale_type: str, payment_status: str, total_paise: int) -> None:
    """Record metrics for a committed sale"""
    sale_counter.labels(sale_type=sale_type, payment_status=payment_status).inc()
    sale_amount_histogram.observe(total_paise / 100)


def record_sale_failure(reason: str) -> None:
    sale_failure_counter.labels(reason=reason).inc()
