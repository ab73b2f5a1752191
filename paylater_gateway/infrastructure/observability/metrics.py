"""Prometheus metrics for early payment quotes, submissions and processor health"""

from decimal import Decimal
from prometheus_client import Counter, Histogram

# Quote metrics
quote_counter = Counter(
    "paylater_quote_total",
    "Early payment quotes computed",
    ["kind"],  # options | partial | custom | simulation
)

# Submission metrics
early_payment_counter = Counter(
    "paylater_early_payment_total",
    "Early payments submitted to the processor",
    ["payment_type", "status"],
)

early_payment_savings_histogram = Histogram(
    "paylater_early_payment_savings_dollars",
    "Customer savings per submitted early payment",
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 50.0],
)

# Processor metrics
processor_failures_counter = Counter(
    "processor_failures_total",
    "Failed payment processor calls",
    ["operation"],  # submit | cancel
)

processor_latency_histogram = Histogram(
    "processor_latency_seconds",
    "Payment processor response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_early_payment(payment_type: str, status: str, savings: Decimal) -> None:
    """Record submission outcome and the savings it delivered"""
    early_payment_counter.labels(payment_type=payment_type, status=status).inc()
    early_payment_savings_histogram.observe(float(savings))
