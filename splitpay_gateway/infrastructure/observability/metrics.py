"""Prometheus metrics for split operations, checkout API health, and HTTP latency"""

from prometheus_client import Counter, Histogram

# Split metrics
split_operation_counter = Counter(
    "splitpay_split_operations_total",
    "Split operations performed",
    ["operation", "outcome"],  # operation: even | adjust | split_evenly | reset | finalize
)

split_participants_histogram = Histogram(
    "splitpay_split_participants",
    "Participants per split",
    buckets=[1, 2, 3, 4, 5, 10, 20, 50],
)

# Checkout API metrics
checkout_api_failures_counter = Counter(
    "checkout_api_failures_total",
    "Failed checkout API calls",
    ["reason"],  # timeout | network | <status code>
)

token_refresh_counter = Counter(
    "token_refresh_total",
    "Access token refresh attempts",
    ["outcome"],  # success | rejected | timeout | error
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_split(operation: str, outcome: str, participant_count: int | None = None) -> None:
    """Record a split operation and, for successful ones, the participant count"""
    split_operation_counter.labels(operation=operation, outcome=outcome).inc()

    if outcome == "ok" and participant_count:
        split_participants_histogram.observe(participant_count)
