"""
Shared Observability Infrastructure
Logging and metrics
"""
from src.shared.infrastructure.observability.logger import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    unbind_context,
)
from src.shared.infrastructure.observability.metrics import (
    MetricsCollector,
    configure_metrics,
    get_metrics,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "MetricsCollector",
    "configure_metrics",
    "get_metrics",
]
