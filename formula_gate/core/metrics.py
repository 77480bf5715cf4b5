"""Prometheus metrics for the application."""

import time

from prometheus_client import Counter, Gauge, Histogram, Info, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# --- Metrics ---

APP_INFO = Info("formula_gate", "Formula gate application info")
APP_INFO.info({"version": "1.0.0", "name": "formula_gate"})

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30],
)

GATE_DECISIONS = Counter(
    "gate_decisions_total",
    "Gate outcomes by status (served_fresh, served_cached, rate_limited, ...)",
    ["outcome"],
)

GENERATION_DURATION = Histogram(
    "generation_duration_seconds",
    "Wall-clock time of external generation calls",
    buckets=[0.25, 0.5, 1, 2, 4, 8, 15, 30],
)

DAILY_QUOTA_USED = Gauge(
    "daily_quota_used",
    "Generations performed since the last observed day boundary",
)


# --- Middleware ---

# Label for requests that matched no route (404 scans and the like)
_UNMATCHED_PATH = "other"


def _route_path(request: Request) -> str:
    """Route template of the matched endpoint, to keep label cardinality bounded."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or _UNMATCHED_PATH


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Collect HTTP request metrics for Prometheus."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method

        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start

        # The router fills in scope["route"] while handling the request
        path = _route_path(request)

        REQUEST_COUNT.labels(method=method, path=path, status=response.status_code).inc()
        REQUEST_DURATION.labels(method=method, path=path).observe(duration)

        return response


def metrics_response() -> Response:
    """Generate Prometheus /metrics response."""
    return Response(
        content=generate_latest(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
