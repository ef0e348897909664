"""
Optimizer Metrics Module.

Collects run-level measurements for the fleet optimizer:
- Wall-clock timing of optimization runs
- Counters for processed runs, emitted changes and skipped assignments
- Gauges for the latest confidence / savings figures

Usage:
    from fleetopt.metrics import metrics, timed

    @timed("fleet_optimization")
    def optimize(...):
        ...

    metrics.increment("changes_emitted", 3)
    snapshot = metrics.get_summary()
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from functools import wraps
from threading import Lock
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class TimingStats:
    """Accumulated timings for one named operation."""
    name: str
    count: int = 0
    total_ms: float = 0.0
    min_ms: float = float('inf')
    max_ms: float = 0.0
    last_ms: float = 0.0

    @property
    def avg_ms(self) -> float:
        return self.total_ms / self.count if self.count > 0 else 0.0

    def record(self, duration_ms: float):
        self.count += 1
        self.total_ms += duration_ms
        self.last_ms = duration_ms
        self.min_ms = min(self.min_ms, duration_ms)
        self.max_ms = max(self.max_ms, duration_ms)

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "avg_ms": round(self.avg_ms, 3),
            "min_ms": round(self.min_ms, 3) if self.count else 0,
            "max_ms": round(self.max_ms, 3),
            "last_ms": round(self.last_ms, 3),
        }


class PerformanceMetrics:
    """
    Thread-safe collector shared by concurrent optimizer invocations.

    Each optimization call is otherwise stateless; this collector is the
    only process-wide mutable object and every access goes through a lock.
    """

    # Runs slower than this are logged at WARNING
    SLOW_THRESHOLD_MS = 2000.0

    def __init__(self, slow_threshold_ms: Optional[float] = None):
        self._timings: Dict[str, TimingStats] = {}
        self._counters: Dict[str, int] = {}
        self._gauges: Dict[str, float] = {}
        self._lock = Lock()
        self._started_at = datetime.now()
        self.slow_threshold_ms = (
            self.SLOW_THRESHOLD_MS if slow_threshold_ms is None else slow_threshold_ms
        )

    @contextmanager
    def timer(self, name: str):
        """Time the enclosed block under *name*."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record_timing(name, (time.perf_counter() - start) * 1000)

    def record_timing(self, name: str, elapsed_ms: float):
        with self._lock:
            stats = self._timings.setdefault(name, TimingStats(name=name))
            stats.record(elapsed_ms)

        if elapsed_ms > self.slow_threshold_ms:
            logger.warning(
                f"Slow operation: {name} took {elapsed_ms:.1f}ms "
                f"(threshold: {self.slow_threshold_ms}ms)"
            )

    def increment(self, name: str, amount: int = 1):
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + amount

    def set_gauge(self, name: str, value: float):
        with self._lock:
            self._gauges[name] = value

    def get_counter(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def get_gauge(self, name: str) -> float:
        with self._lock:
            return self._gauges.get(name, 0.0)

    def get_timing(self, name: str) -> Optional[TimingStats]:
        with self._lock:
            return self._timings.get(name)

    def get_summary(self) -> dict:
        """Snapshot of every timing, counter and gauge."""
        with self._lock:
            return {
                "uptime_seconds": round((datetime.now() - self._started_at).total_seconds(), 1),
                "timings": {name: stats.to_dict() for name, stats in self._timings.items()},
                "counters": dict(self._counters),
                "gauges": {k: round(v, 4) for k, v in self._gauges.items()},
            }

    def reset(self):
        with self._lock:
            self._timings.clear()
            self._counters.clear()
            self._gauges.clear()
            self._started_at = datetime.now()


# Global metrics instance
metrics = PerformanceMetrics()


def timed(name: str):
    """
    Decorator recording each call's duration in the global collector.

    Usage:
        @timed("fleet_optimization")
        def optimize(...):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            with metrics.timer(name):
                return func(*args, **kwargs)
        return wrapper
    return decorator


def get_metrics() -> PerformanceMetrics:
    """Get the global metrics instance."""
    return metrics
