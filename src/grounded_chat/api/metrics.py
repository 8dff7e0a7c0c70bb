"""Prometheus metrics for Grounded Chat.

All metrics are module-level singletons registered on the default
``REGISTRY``.

Metrics defined here:

  scrape_cache_lookups_total{outcome}
      Counter: cache reads by outcome (hit, miss, corrupt, unavailable).

  scrape_cache_writes_total{outcome}
      Counter: cache writes by outcome (stored, oversize, rejected, error).

  scrapes_total{status}
      Counter: URL resolutions by how they were satisfied
      (cached, fetched, error).

  rate_limit_decisions_total{decision}
      Counter: admission decisions (allowed, denied, fail_open).

  http_requests_total{method, path, status}
      Counter: HTTP requests handled by the FastAPI application.

  http_request_duration_seconds{method, path}
      Histogram: HTTP request latency in seconds.

Usage::

    from grounded_chat.api.metrics import scrapes_total
    scrapes_total.labels(status="cached").inc()
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# ---------------------------------------------------------------------------
# Scraper metrics
# ---------------------------------------------------------------------------

scrape_cache_lookups_total: Counter = Counter(
    "scrape_cache_lookups_total",
    "Scrape cache reads by outcome.",
    labelnames=["outcome"],
)

scrape_cache_writes_total: Counter = Counter(
    "scrape_cache_writes_total",
    "Scrape cache writes by outcome.",
    labelnames=["outcome"],
)

scrapes_total: Counter = Counter(
    "scrapes_total",
    "URL resolutions by how they were satisfied.",
    labelnames=["status"],
)

# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------

rate_limit_decisions_total: Counter = Counter(
    "rate_limit_decisions_total",
    "Admission decisions made by the request rate limiter.",
    labelnames=["decision"],
)

# ---------------------------------------------------------------------------
# HTTP metrics (populated by middleware in main.py)
# ---------------------------------------------------------------------------

http_requests_total: Counter = Counter(
    "http_requests_total",
    "HTTP requests handled by the FastAPI application.",
    labelnames=["method", "path", "status"],
)

http_request_duration_seconds: Histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds.",
    labelnames=["method", "path"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)
"""Histogram of HTTP request durations.  Chat requests include the page
fetch and the LLM call, hence the long tail buckets."""


# ---------------------------------------------------------------------------
# Response helper
# ---------------------------------------------------------------------------


def get_metrics_response() -> tuple[bytes, str]:
    """Generate a Prometheus text-format metrics response.

    Returns:
        A tuple of (body_bytes, content_type_string) suitable for constructing
        a FastAPI ``Response`` object.
    """
    from prometheus_client import CONTENT_TYPE_LATEST, generate_latest  # noqa: PLC0415

    return generate_latest(), CONTENT_TYPE_LATEST
