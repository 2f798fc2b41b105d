"""
Observability components.

Request-scoped logging context and in-process metrics for authorization
decisions.
"""

from .logging import (
    ContextualLoggerAdapter,
    clear_logging_context,
    correlation_id_from_headers,
    get_correlation_id,
    get_logger,
    get_logging_context,
    log_operation,
    set_authz_context,
    set_correlation_id,
)
from .metrics import (
    MetricsCollector,
    OperationStats,
    get_metrics_collector,
    record_operation,
    timed_operation,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "OperationStats",
    "get_metrics_collector",
    "record_operation",
    "timed_operation",
    # Logging
    "get_correlation_id",
    "set_correlation_id",
    "correlation_id_from_headers",
    "set_authz_context",
    "clear_logging_context",
    "get_logging_context",
    "ContextualLoggerAdapter",
    "get_logger",
    "log_operation",
]
