"""
Metrics Collection
In-process counters, gauges and histograms for the control-plane loops
"""
from __future__ import annotations

from collections import defaultdict
from typing import Any

from src.shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


class MetricsCollector:
    """
    Collects control-plane metrics for observability.

    Metric names follow Prometheus conventions so an exporter can be
    attached later without renaming anything. Emitted by the loops:
    - provisioning_step_total{step, phase, result}
    - provisioning_duration_seconds
    - instances_provisioned_total{result}
    - health_checks_total{result}
    - instances_running
    - destruction_step_failures_total{step}
    - reconciler_instances_failed_total
    - reconciler_requeued_total
    """

    def __init__(self, enabled: bool = False) -> None:
        self.enabled = enabled
        self._counters: dict[str, float] = defaultdict(float)
        self._gauges: dict[str, float] = {}
        self._histograms: dict[str, list[float]] = defaultdict(list)

        if enabled:
            logger.info("metrics_collector_initialized")

    def increment_counter(self, name: str, value: float = 1.0, **labels: Any) -> None:
        """
        Increment a counter metric.

        Args:
            name: Metric name (e.g., "health_checks_total")
            value: Amount to increment by
            **labels: Metric labels (e.g., result="success")
        """
        if not self.enabled:
            return

        key = self._make_key(name, labels)
        self._counters[key] += value
        logger.debug("counter_incremented", metric=name, value=value, labels=labels)

    def set_gauge(self, name: str, value: float, **labels: Any) -> None:
        """Set a gauge metric to a specific value."""
        if not self.enabled:
            return

        key = self._make_key(name, labels)
        self._gauges[key] = value
        logger.debug("gauge_set", metric=name, value=value, labels=labels)

    def observe_histogram(self, name: str, value: float, **labels: Any) -> None:
        """Add an observation to a histogram metric."""
        if not self.enabled:
            return

        key = self._make_key(name, labels)
        self._histograms[key].append(value)
        logger.debug("histogram_observed", metric=name, value=value, labels=labels)

    def counter_value(self, name: str, **labels: Any) -> float:
        return self._counters.get(self._make_key(name, labels), 0.0)

    def get_metrics(self) -> dict[str, Any]:
        """
        Get all collected metrics (for debugging/export).

        Returns:
            Dictionary of all metrics
        """
        return {
            "counters": dict(self._counters),
            "gauges": dict(self._gauges),
            "histograms": {
                k: {
                    "count": len(v),
                    "sum": sum(v),
                    "min": min(v) if v else 0,
                    "max": max(v) if v else 0,
                }
                for k, v in self._histograms.items()
            },
        }

    def reset_metrics(self) -> None:
        """Reset all collected metrics (for testing)."""
        self._counters.clear()
        self._gauges.clear()
        self._histograms.clear()

    @staticmethod
    def _make_key(name: str, labels: dict[str, Any]) -> str:
        """Create a unique key from metric name and labels."""
        label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{label_str}}}" if label_str else name


# Global metrics collector (configured at startup)
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get the global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def configure_metrics(enabled: bool = False) -> MetricsCollector:
    """Configure (and return) the global metrics collector."""
    global _metrics
    _metrics = MetricsCollector(enabled=enabled)
    return _metrics
