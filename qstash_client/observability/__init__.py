"""
Observability module.
Contains logging, metrics, and tracing setup.
"""

from qstash_client.observability.logging import delivery_context, setup_logging
from qstash_client.observability.metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
)
from qstash_client.observability.tracing import get_tracer, setup_tracing

__all__ = [
    "setup_logging",
    "delivery_context",
    "setup_metrics",
    "get_metrics",
    "MetricsCollector",
    "setup_tracing",
    "get_tracer",
]
