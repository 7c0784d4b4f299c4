"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from qstash_client.constants import (
    METRIC_MESSAGES_PUBLISHED,
    METRIC_MESSAGES_RECEIVED,
    METRIC_PUBLISH_LATENCY,
    METRIC_PUBLISH_RETRIES,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the QStash client.

    Collects metrics for:
    - Publish outcomes and latency
    - Transport retries
    - Received message outcomes
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.messages_published = Counter(
            METRIC_MESSAGES_PUBLISHED,
            "Total number of publish calls",
            ["topic", "status"],
            registry=self._registry,
        )

        self.publish_latency = Histogram(
            METRIC_PUBLISH_LATENCY,
            "Publish call latency in seconds, retries included",
            ["topic"],
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
            registry=self._registry,
        )

        self.publish_retries = Counter(
            METRIC_PUBLISH_RETRIES,
            "Total number of retried publish attempts",
            registry=self._registry,
        )

        self.messages_received = Counter(
            METRIC_MESSAGES_RECEIVED,
            "Total number of inbound deliveries",
            ["outcome"],
            registry=self._registry,
        )

    def record_publish(self, topic: str, status: str, duration_seconds: float) -> None:
        """Record a finished publish call."""
        self.messages_published.labels(topic=topic, status=status).inc()
        self.publish_latency.labels(topic=topic).observe(duration_seconds)

    def record_retry(self) -> None:
        """Record a retried publish attempt."""
        self.publish_retries.inc()

    def record_received(self, outcome: str) -> None:
        """Record the outcome of an inbound delivery."""
        self.messages_received.labels(outcome=outcome).inc()

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
