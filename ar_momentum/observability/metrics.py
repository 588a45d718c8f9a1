"""
Prometheus metrics for the momentum scoring and alerting engine.

Defines and exposes metrics for:
- Artists scored per run (and why some were excluded)
- Scoring latency per mode
- Alert sweep checks and triggers
- Notification delivery failures

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Histogram,
    start_http_server,
)

from ar_momentum.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)


class MetricsCollector:
    """
    Prometheus metrics collector for scoring runs and alert sweeps.

    Usage:
        metrics = get_metrics()
        metrics.record_entity("scored")
        metrics.record_alert_check("momentum", triggered=True)
    """

    def __init__(self):
        self.entities_scored = Counter(
            "ar_momentum_entities_scored_total",
            "Artists processed by the scorer",
            ["outcome"],  # scored, insufficient, invalid
        )

        self.scoring_latency = Histogram(
            "ar_momentum_scoring_latency_seconds",
            "Time to compute a momentum result",
            ["mode"],  # leaderboard, artist
            buckets=LATENCY_BUCKETS,
        )

        self.alerts_checked = Counter(
            "ar_momentum_alerts_checked_total",
            "Alert subscriptions evaluated",
            ["kind"],
        )

        self.alerts_triggered = Counter(
            "ar_momentum_alerts_triggered_total",
            "Alert subscriptions that produced a notification",
            ["kind"],
        )

        self.notification_failures = Counter(
            "ar_momentum_notification_failures_total",
            "Failed notification deliveries",
            ["channel"],
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info("Prometheus metrics server started on port %d", port)

    def record_entity(self, outcome: str, count: int = 1) -> None:
        """Record the outcome of one artist's delta computation."""
        self.entities_scored.labels(outcome=outcome).inc(count)

    def record_scoring_latency(self, mode: str, latency: float) -> None:
        """Record how long a leaderboard or single-artist computation took."""
        self.scoring_latency.labels(mode=mode).observe(latency)

    def record_alert_check(self, kind: str, triggered: bool) -> None:
        """
        Record one alert evaluation.

        Args:
            kind: Alert kind (momentum, comment, rating)
            triggered: Whether a notification was delivered
        """
        self.alerts_checked.labels(kind=kind).inc()
        if triggered:
            self.alerts_triggered.labels(kind=kind).inc()

    def record_notification_failure(self, channel: str) -> None:
        self.notification_failures.labels(channel=channel).inc()


_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
