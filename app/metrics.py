"""
Prometheus metrics for the contact service.

This module provides:
- HTTP request counter (method, path, status)
- Dispatch outcome counter (result)
- Outbound email counter (kind, result)
- Request latency histogram (method, path)

Metrics are stored in-memory using prometheus-client.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST


# =============================================================================
# Metric Definitions
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "path", "status"]
)

# result: sent, validation_error, throttled, delivery_error
contact_dispatch_total = Counter(
    "contact_dispatch_total",
    "Total contact dispatch outcomes",
    labelnames=["result"]
)

# kind: notification, confirmation; result: sent, failed
emails_sent_total = Counter(
    "emails_sent_total",
    "Outbound emails by kind and result",
    labelnames=["kind", "result"]
)

request_latency_seconds = Histogram(
    "request_latency_seconds",
    "Request latency in seconds",
    labelnames=["method", "path"]
)


# =============================================================================
# Helper Functions
# =============================================================================

def record_http_request(method: str, path: str, status: int, latency_seconds: float) -> None:
    """
    Record an HTTP request in metrics.

    Args:
        method: HTTP method (GET, POST, etc.)
        path: Request path
        status: HTTP status code
        latency_seconds: Request processing time in seconds
    """
    # Collapse per-submission paths to keep label cardinality bounded
    normalized_path = path.split("?")[0]
    if normalized_path.startswith("/admin/submissions/") and not normalized_path.endswith("/export"):
        normalized_path = "/admin/submissions/{id}"

    http_requests_total.labels(
        method=method,
        path=normalized_path,
        status=str(status)
    ).inc()

    request_latency_seconds.labels(
        method=method,
        path=normalized_path
    ).observe(latency_seconds)


def record_dispatch_outcome(result: str) -> None:
    contact_dispatch_total.labels(result=result).inc()


def record_email(kind: str, sent: bool) -> None:
    emails_sent_total.labels(kind=kind, result="sent" if sent else "failed").inc()


def get_metrics() -> bytes:
    """Generate Prometheus exposition format metrics."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
