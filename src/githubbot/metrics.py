"""Prometheus metrics for the bot.

Metrics are exposed at the `/metrics` endpoint in Prometheus format.

Metrics Defined:
- githubbot_webhooks_received_total: Counter of deliveries by event and outcome
- githubbot_labels_applied_total: Counter of labels sent to GitHub, by label
- githubbot_label_requests_failed_total: Counter of failed label API calls
"""

import logging
from typing import Iterable, Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, generate_latest


logger = logging.getLogger(__name__)


class BotMetrics:
    """Container for the bot's Prometheus metrics.

    Supports custom registries for testing.

    Attributes:
        registry: The Prometheus registry for these metrics.
        webhooks_received_total: Deliveries, labelled by event and outcome.
        labels_applied_total: Labels successfully sent to GitHub.
        label_requests_failed_total: Label API calls that failed.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or REGISTRY

        self.webhooks_received_total = Counter(
            "githubbot_webhooks_received_total",
            "Total number of webhook deliveries received",
            labelnames=["event", "outcome"],
            registry=self.registry,
        )

        self.labels_applied_total = Counter(
            "githubbot_labels_applied_total",
            "Total number of labels applied to issues",
            labelnames=["label"],
            registry=self.registry,
        )

        self.label_requests_failed_total = Counter(
            "githubbot_label_requests_failed_total",
            "Total number of failed label API requests",
            registry=self.registry,
        )

    def record_webhook(self, event: str, outcome: str) -> None:
        """Record a delivery and what the bot did with it."""
        self.webhooks_received_total.labels(event=event, outcome=outcome).inc()

    def record_labels_applied(self, labels: Iterable[str]) -> None:
        for label in labels:
            self.labels_applied_total.labels(label=label).inc()

    def record_label_failure(self) -> None:
        self.label_requests_failed_total.inc()

    def generate(self) -> bytes:
        """Render the registry in Prometheus text format."""
        return generate_latest(self.registry)


_default_metrics: Optional[BotMetrics] = None


def get_metrics(registry: Optional[CollectorRegistry] = None) -> BotMetrics:
    """Get the metrics instance for the default registry, or a new one.

    Args:
        registry: Optional Prometheus registry. If None, returns the
                  global metrics instance for the default registry.
    """
    global _default_metrics

    if registry is not None:
        return BotMetrics(registry=registry)

    if _default_metrics is None:
        _default_metrics = BotMetrics()

    return _default_metrics
