# ─────────────────────────────────────────────────────────────────────────────
# Gateway Metrics — prometheus-client collectors
# ─────────────────────────────────────────────────────────────────────────────
# Custom registry so the exposition carries only gateway metrics (no default
# process/platform collectors). Served by GET /metrics.
# ─────────────────────────────────────────────────────────────────────────────

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

registry = CollectorRegistry()

requests_total = Counter(
    "gateway_requests_total",
    "HTTP requests handled by the gateway",
    ["method", "route", "status"],
    registry=registry,
)

request_duration = Histogram(
    "gateway_request_duration_seconds",
    "Request duration in seconds",
    ["route"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=registry,
)

gate_rejections_total = Counter(
    "gateway_gate_rejections_total",
    "Requests rejected before reaching a route handler",
    ["reason"],
    registry=registry,
)

backend_failures_total = Counter(
    "gateway_backend_failures_total",
    "Failed backend procedure calls",
    ["procedure"],
    registry=registry,
)

audit_insert_failures_total = Counter(
    "gateway_audit_insert_failures_total",
    "Audit rows that could not be written to user_inputs",
    registry=registry,
)


def record_request(method: str, route: str, status: int, duration_s: float) -> None:
    requests_total.labels(method=method, route=route, status=str(status)).inc()
    request_duration.labels(route=route).observe(duration_s)


def record_rejection(reason: str) -> None:
    """reason is "auth" or "rate_limit"."""
    gate_rejections_total.labels(reason=reason).inc()


def record_backend_failure(procedure: str) -> None:
    backend_failures_total.labels(procedure=procedure).inc()


def record_audit_insert_failure() -> None:
    audit_insert_failures_total.inc()


def render_latest() -> bytes:
    """Prometheus text exposition of the gateway registry."""
    return generate_latest(registry)
