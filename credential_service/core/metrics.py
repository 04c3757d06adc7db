"""Prometheus metric inventory.

Every metric the service exports is declared here; the modules that own
the behavior import and increment them at the point of action.  The
HTTP trio is populated by MetricsMiddleware.  The anchoring counters
answer the operational question an auditor will eventually ask: what
fraction of credentials issued this week are actually on the ledger?

  sum(rate(credential_issuances_total{mode="simulated"}[1d]))
    / sum(rate(credential_issuances_total[1d]))
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # Issuance waits for ledger confirmation, which routinely takes
    # several seconds, so the tail buckets go well past the usual 1s.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Anchoring metrics
# ---------------------------------------------------------------------------

CREDENTIAL_ISSUANCES = Counter(
    "credential_issuances_total",
    "Credentials persisted, by anchoring mode",
    ["mode"],  # "ledger" or "simulated"
)

LEDGER_WRITE_FAILURES = Counter(
    "ledger_write_failures_total",
    "Ledger write attempts that failed and fell back to a simulated anchor",
)

CREDENTIAL_VERIFICATIONS = Counter(
    "credential_verifications_total",
    "Verification requests by outcome",
    ["outcome"],  # "verified", "verified_simulated", or an error reason
)

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Requests rejected by rate limiting (429s)",
    ["key_type"],  # "user" or "ip"
)
