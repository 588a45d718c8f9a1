"""Observability layer - logging and metrics."""

from ar_momentum.observability.logging import setup_logging
from ar_momentum.observability.metrics import MetricsCollector, get_metrics

__all__ = ["setup_logging", "MetricsCollector", "get_metrics"]
