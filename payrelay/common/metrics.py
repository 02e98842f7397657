"""Prometheus metric definitions for the gateway."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)
external_calls_total = Counter(
    "external_calls_total",
    "Calls made to the payments platform",
    ["operation", "outcome"],
)
retries_total = Counter("retries_total", "Retry count", ["service", "dependency"])
handler_failures_total = Counter(
    "handler_failures_total",
    "Requests that ended in a classified failure",
    ["operation", "error_type"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
