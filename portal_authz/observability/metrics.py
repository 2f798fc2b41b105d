"""
In-process operation metrics for PORTAL_AUTHZ.

Every (operation, tags) pair is one series, e.g. `policy.evaluate` tagged
with the decision. The collector keeps at most MAX_METRICS series and drops
the one updated least recently when a new series would exceed that.
"""

import inspect
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable

from ..constants import MAX_METRICS

SeriesKey = tuple[str, tuple[tuple[str, str], ...]]


def series_name(operation: str, tags: tuple[tuple[str, str], ...]) -> str:
    """`policy.evaluate{decision=Deny}`, or the bare operation when untagged."""
    if not tags:
        return operation
    labels = ",".join(f"{key}={value}" for key, value in tags)
    return f"{operation}{{{labels}}}"


@dataclass
class OperationStats:
    """Running totals for one series."""

    count: int = 0
    errors: int = 0
    total_ms: float = 0.0
    min_ms: float | None = None
    max_ms: float = 0.0
    last_seen: datetime | None = None

    def add(self, duration_ms: float, success: bool) -> None:
        self.count += 1
        if not success:
            self.errors += 1
        self.total_ms += duration_ms
        self.min_ms = duration_ms if self.min_ms is None else min(self.min_ms, duration_ms)
        self.max_ms = max(self.max_ms, duration_ms)
        self.last_seen = datetime.now(timezone.utc)

    def as_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "errors": self.errors,
            "avg_ms": round(self.total_ms / self.count, 2) if self.count else 0.0,
            "min_ms": round(self.min_ms, 2) if self.min_ms is not None else 0.0,
            "max_ms": round(self.max_ms, 2),
            "last_seen": self.last_seen.isoformat() if self.last_seen else None,
        }


class MetricsCollector:
    """Thread-safe, size-bounded store of operation series."""

    def __init__(self, max_series: int = MAX_METRICS):
        self._series: OrderedDict[SeriesKey, OperationStats] = OrderedDict()
        self._lock = threading.Lock()
        self._max_series = max_series

    def record_operation(
        self, operation: str, duration_ms: float, success: bool = True, **tags: Any
    ) -> None:
        key = (operation, tuple(sorted((name, str(value)) for name, value in tags.items())))
        with self._lock:
            stats = self._series.pop(key, None)
            if stats is None:
                stats = OperationStats()
                while len(self._series) >= self._max_series:
                    self._series.popitem(last=False)
            self._series[key] = stats
            stats.add(duration_ms, success)

    def get_stats(self, operation: str | None = None) -> dict[str, dict[str, Any]]:
        """Series dicts keyed by series name, optionally for one operation only."""
        with self._lock:
            return {
                series_name(name, tags): stats.as_dict()
                for (name, tags), stats in self._series.items()
                if operation is None or name == operation
            }

    def get_operation_count(self, operation: str) -> int:
        """Total calls of `operation` across all its tag combinations."""
        with self._lock:
            return sum(
                stats.count for (name, _), stats in self._series.items() if name == operation
            )

    def reset(self) -> None:
        with self._lock:
            self._series.clear()


_collector = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    return _collector


def record_operation(operation: str, duration_ms: float, success: bool = True, **tags: Any) -> None:
    _collector.record_operation(operation, duration_ms, success, **tags)


def timed_operation(operation: str, **tags: Any) -> Callable:
    """
    Record every call of the decorated function, sync or async, under `operation`.

    A call that raises is recorded as an error and the exception propagates.
    """

    def decorator(func: Callable) -> Callable:
        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                started = time.perf_counter()
                success = False
                try:
                    result = await func(*args, **kwargs)
                    success = True
                    return result
                finally:
                    record_operation(
                        operation, (time.perf_counter() - started) * 1000, success, **tags
                    )

            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            success = False
            try:
                result = func(*args, **kwargs)
                success = True
                return result
            finally:
                record_operation(operation, (time.perf_counter() - started) * 1000, success, **tags)

        return sync_wrapper

    return decorator
