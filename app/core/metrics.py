"""Application metrics using the Prometheus client library.

All metrics are defined here so there is one inventory of what the
service measures.  Other modules import a metric and increment/observe
it at the point of action.

  COUNTER   — only goes up.  Use rate() in PromQL for per-second values.
  GAUGE     — goes up and down.  A snapshot of current state.
  HISTOGRAM — observations grouped into buckets, from which Prometheus
              computes percentiles with histogram_quantile().

Prometheus pulls these from GET /metrics on every scrape.  Each worker
process exposes only its own counters; aggregation across workers
happens in Prometheus.
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
    # Issuance includes an fsync, so the upper buckets matter more than
    # they would for a pure in-memory lookup.
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Credential metrics (populated by CredentialService)
# ---------------------------------------------------------------------------

CREDENTIAL_OPERATIONS = Counter(
    "credential_operations_total",
    "Credential issue/verify calls by outcome",
    # operation: "issue" | "verify"
    # result: issued | already_issued | valid | invalid | rejected | error
    ["operation", "result"],
)

CREDENTIALS_STORED = Gauge(
    "credentials_stored",
    "Number of credential records held by this worker's store",
)
