"""
Bridge Metrics
==============
In-memory counters and timings for the relay and submission paths.
"""

import threading
from collections import deque
from dataclasses import dataclass, field
from time import time
from typing import Deque, Dict, Optional

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class MetricLabels:
    """Common labels for metrics."""
    service: str
    environment: str = "production"
    version: str = "1.0.0"


# Recent observations kept per histogram for percentiles
HISTOGRAM_WINDOW = 1024


@dataclass
class Histogram:
    """Running totals plus a bounded window of recent values."""
    window: int = HISTOGRAM_WINDOW
    count: int = 0
    total: float = 0.0
    max: float = 0.0
    recent: Deque[float] = field(default_factory=deque)

    def __post_init__(self):
        self.recent = deque(self.recent, maxlen=self.window)

    def add(self, value: float) -> None:
        self.count += 1
        self.total += value
        self.max = value if self.count == 1 else max(self.max, value)
        self.recent.append(value)


class MetricNames:
    # Inbound path
    INBOUND_RECEIVED = "smpp_inbound_received"
    INBOUND_IGNORED = "smpp_inbound_ignored"
    RELAY_SENT = "telegram_relay_sent"
    RELAY_FAILED = "telegram_relay_failed"
    RELAY_DURATION = "telegram_relay_duration_seconds"

    # Outbound path
    SUBMIT_ACCEPTED = "smpp_submit_accepted"
    SUBMIT_REJECTED = "smpp_submit_rejected"
    SUBMIT_UNAVAILABLE = "smpp_submit_unavailable"
    RATE_LIMIT_WAIT = "smpp_rate_limit_wait_seconds"


class BridgeMetrics:
    """
    Simple in-memory metrics collector.

    Counters are updated from the event loop and from the SMPP listener
    thread, so updates are serialised with a lock.
    """

    def __init__(self, labels: Optional[MetricLabels] = None, histogram_window: int = HISTOGRAM_WINDOW):
        self.labels = labels or MetricLabels(service="smpp-bridge")
        self.histogram_window = histogram_window
        self._counters: Dict[str, int] = {}
        self._histograms: Dict[str, Histogram] = {}
        self._lock = threading.Lock()

    def increment(self, name: str, value: int = 1) -> None:
        """Increment a counter."""
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + value

    def observe(self, name: str, value: float) -> None:
        """Record a histogram observation."""
        with self._lock:
            histogram = self._histograms.get(name)
            if histogram is None:
                histogram = self._histograms[name] = Histogram(window=self.histogram_window)
            histogram.add(value)

    def get_counter(self, name: str) -> int:
        """Get counter value."""
        return self._counters.get(name, 0)

    def get_histogram_stats(self, name: str) -> Dict[str, float]:
        """
        Get histogram statistics.

        count, sum and max cover every observation; p95 covers the recent
        window only.
        """
        with self._lock:
            histogram = self._histograms.get(name)
            if histogram is None or not histogram.count:
                return {"count": 0, "sum": 0, "avg": 0, "max": 0, "p95": 0, "window": 0}
            recent = sorted(histogram.recent)
            count, total, peak = histogram.count, histogram.total, histogram.max

        return {
            "count": count,
            "sum": total,
            "avg": total / count,
            "max": peak,
            "p95": recent[min(int(len(recent) * 0.95), len(recent) - 1)],
            "window": len(recent),
        }

    def snapshot(self) -> Dict[str, int]:
        """Copy of all counters, for the health endpoint."""
        with self._lock:
            return dict(self._counters)

    def export_prometheus(self) -> str:
        """Export metrics in Prometheus text format."""
        labels = f'service="{self.labels.service}",env="{self.labels.environment}"'
        lines = [f"{name}_total{{{labels}}} {value}" for name, value in self.snapshot().items()]
        with self._lock:
            totals = [(name, h.count, h.total) for name, h in self._histograms.items()]
        for name, count, total in totals:
            lines.append(f"{name}_count{{{labels}}} {count}")
            lines.append(f"{name}_sum{{{labels}}} {total}")
        return "\n".join(lines)


class Timer:
    """Context manager for timing operations."""

    def __init__(self, metrics: Optional[BridgeMetrics], name: str):
        self.metrics = metrics
        self.name = name
        self._start: Optional[float] = None

    def __enter__(self):
        self._start = time()
        return self

    def __exit__(self, *args):
        if self.metrics is not None and self._start:
            self.metrics.observe(self.name, time() - self._start)
