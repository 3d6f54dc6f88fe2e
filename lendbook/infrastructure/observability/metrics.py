"""Prometheus metrics for loan origination, collections and profit reconciliation"""

from prometheus_client import Counter, Histogram

# Loan lifecycle metrics
loans_created_counter = Counter(
    "lendbook_loans_created_total",
    "Loans originated or rolled over",
    ["loan_type"],  # new | renew
)

loans_closed_counter = Counter(
    "lendbook_loans_closed_total",
    "Loans whose balance reached zero",
)

# Collection metrics
installments_counter = Counter(
    "lendbook_installments_total",
    "Installment submissions",
    ["outcome"],  # applied | rejected
)

installment_amount_histogram = Histogram(
    "lendbook_installment_amount",
    "Size of applied installments",
    buckets=[100, 250, 500, 1000, 2500, 5000, 10000, 25000],
)

# Profit ledger metrics
profit_upserts_counter = Counter(
    "lendbook_manual_profit_upserts_total",
    "Manual profit ledger writes",
    ["action"],  # created | updated
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_installment(applied: bool, amount: float = 0, closed: bool = False) -> None:
    """Record an installment outcome and any resulting closure"""
    installments_counter.labels(outcome="applied" if applied else "rejected").inc()
    if applied:
        installment_amount_histogram.observe(amount)
    if closed:
        loans_closed_counter.inc()
