# ─────────────────────────────────────────────────────────────────────────────
# Gateway Metrics — prometheus-client counters on a per-app registry
# ─────────────────────────────────────────────────────────────────────────────
# One CollectorRegistry per GatewayMetrics instance, so several apps (tests)
# can live in one process without duplicate-timeseries errors.
# Exposed via GET /metrics/prometheus.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest


class GatewayMetrics:
    """Request, rejection and backend-error counters."""

    def __init__(self) -> None:
        self.registry = CollectorRegistry()
        self._requests_total = Counter(
            "gateway_requests_total",
            "Requests handled, by route template and status code",
            ["route", "status"],
            registry=self.registry,
        )
        self._request_duration = Histogram(
            "gateway_request_duration_seconds",
            "Request duration in seconds",
            ["route"],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
            registry=self.registry,
        )
        self._rate_limited_total = Counter(
            "gateway_rate_limited_total",
            "Requests rejected by the rate limiter",
            registry=self.registry,
        )
        self._auth_rejected_total = Counter(
            "gateway_auth_rejected_total",
            "Requests rejected for a missing or invalid API key",
            registry=self.registry,
        )
        self._backend_errors_total = Counter(
            "gateway_backend_errors_total",
            "Database, pool or stored-JSON failures",
            ["operation"],
            registry=self.registry,
        )

    def record_request(self, route: str, status: int, duration_ms: float) -> None:
        self._requests_total.labels(route=route, status=str(status)).inc()
        self._request_duration.labels(route=route).observe(duration_ms / 1000)

    def record_rate_limited(self) -> None:
        self._rate_limited_total.inc()

    def record_auth_rejection(self) -> None:
        self._auth_rejected_total.inc()

    def record_backend_error(self, operation: str) -> None:
        self._backend_errors_total.labels(operation=operation).inc()

    def render(self) -> bytes:
        """Prometheus text exposition format."""
        return generate_latest(self.registry)
