"""Prometheus metrics for HTTP requests and the chat pipeline.

HTTP:
- http_requests_total: Counter by method, path, status
- http_request_duration_seconds: Histogram by method, path
- http_requests_active: Gauge of currently processing requests

Chat:
- chat_websocket_connections: Gauge of open WebSocket connections
- chat_messages_broadcast_total: Counter of receive_message fan-outs
- chat_payloads_dropped_total: Counter of inbound payloads dropped, by reason
"""

import time
from typing import Callable

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match


REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "path"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_requests_active",
    "Number of active HTTP requests",
)

WEBSOCKET_CONNECTIONS = Gauge(
    "chat_websocket_connections",
    "Number of open chat WebSocket connections",
)

MESSAGES_BROADCAST = Counter(
    "chat_messages_broadcast_total",
    "Chat messages broadcast to a workspace room",
)

PAYLOADS_DROPPED = Counter(
    "chat_payloads_dropped_total",
    "Inbound chat payloads dropped without a reply",
    ["reason"],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collect request counts, latency and the active request gauge.

    WebSocket traffic bypasses BaseHTTPMiddleware and is tracked by the
    chat metrics instead.
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        # Route pattern instead of the raw path keeps label cardinality low
        path = self._get_path_template(request)
        method = request.method

        ACTIVE_REQUESTS.inc()
        start_time = time.time()

        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception:
            status_code = 500
            raise
        finally:
            duration = time.time() - start_time
            ACTIVE_REQUESTS.dec()

            if path != "/metrics":
                REQUEST_COUNT.labels(
                    method=method,
                    path=path,
                    status=str(status_code),
                ).inc()
                REQUEST_LATENCY.labels(
                    method=method,
                    path=path,
                ).observe(duration)

        return response

    def _get_path_template(self, request: Request) -> str:
        for route in request.app.routes:
            # Mounted or included routers may carry no path of their own
            path = getattr(route, "path", None)
            if path is None:
                continue
            match, _ = route.matches(request.scope)
            if match == Match.FULL:
                return path
        return request.url.path


def get_metrics() -> bytes:
    """Prometheus metrics in text exposition format."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
