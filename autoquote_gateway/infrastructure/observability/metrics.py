"""Prometheus metrics for monitoring match rates, lender quotes and negotiation outcomes"""

from prometheus_client import Counter, Histogram

# Matching metrics
lender_match_counter = Counter(
    "autoquote_lender_matches_total",
    "Lender eligibility evaluations",
    ["outcome"],  # eligible | rejected
)

# Lender endpoint metrics
quote_request_counter = Counter(
    "autoquote_lender_quote_requests_total",
    "Quote requests sent to lender endpoints",
    ["lender", "outcome"],  # received | failed | timeout
)

quote_latency_histogram = Histogram(
    "autoquote_lender_quote_latency_seconds",
    "Lender quote response time",
    buckets=[0.5, 1.0, 2.0, 4.0, 6.0, 8.0, 15.0],
)

negotiation_attempt_counter = Counter(
    "autoquote_negotiation_attempts_total",
    "Negotiation attempts by tactic and lender response",
    ["type", "response"],
)

# Session metrics
session_outcome_counter = Counter(
    "autoquote_quote_sessions_total",
    "Quote sessions reaching a terminal state",
    ["outcome"],  # completed | failed
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_match_result(eligible: int, rejected: int) -> None:
    """Record how many lenders accepted or rejected a borrower"""
    if eligible:
        lender_match_counter.labels(outcome="eligible").inc(eligible)
    if rejected:
        lender_match_counter.labels(outcome="rejected").inc(rejected)


def record_session_outcome(status: str) -> None:
    session_outcome_counter.labels(outcome=status).inc()


def record_negotiation_attempt(negotiation_type: str, response: str) -> None:
    negotiation_attempt_counter.labels(type=negotiation_type, response=response).inc()
