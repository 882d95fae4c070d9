"""Prometheus metrics for deposit volume, settlement outcomes and webhook performance"""

from decimal import Decimal
from prometheus_client import Counter, Histogram

from term_savings.domain.models import DepositState

# Deposit metrics
deposit_created_counter = Counter(
    "term_savings_deposits_created_total",
    "Deposits opened",
    ["plan_id"],
)

deposit_finalized_counter = Counter(
    "term_savings_deposits_finalized_total",
    "Deposits claimed or withdrawn early",
    ["outcome"],  # claimed | early_withdrawn
)

payout_histogram = Histogram(
    "term_savings_payout_amount",
    "Settled payout amounts",
    ["outcome"],
    buckets=[10, 50, 100, 500, 1_000, 5_000, 10_000, 50_000, 100_000],
)

# Webhook metrics
settlement_latency_histogram = Histogram(
    "settlement_webhook_latency_seconds",
    "Settlement webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

settlement_failure_counter = Counter(
    "settlement_webhook_failures_total",
    "Failed settlement webhook deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_deposit_created(plan_id: int) -> None:
    deposit_created_counter.labels(plan_id=str(plan_id)).inc()


def record_finalization(state: DepositState, payout: Decimal) -> None:
    """Record settlement outcome and payout size"""
    deposit_finalized_counter.labels(outcome=state.value).inc()
    payout_histogram.labels(outcome=state.value).observe(float(payout))
