"""Middleware module for the API."""

from api.middleware.metrics import MetricsMiddleware, get_metrics, get_metrics_content_type

__all__ = [
    "MetricsMiddleware",
    "get_metrics",
    "get_metrics_content_type",
]
