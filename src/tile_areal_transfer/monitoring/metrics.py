"""
Metrics Collection

In-process metrics for tile conversion runs, backed by a private
Prometheus registry so several collectors (e.g. one per test) can coexist.

Tracked metrics:
- tiles_converted_total: tiles converted and handed to the writer
- tiles_skipped_total{reason}: source tiles that could not be loaded
- tiles_failed_total: tiles whose conversion raised an error
- cells_assigned_total: target cells that received a value
- tile_conversion_duration_seconds: wall time per tile conversion
"""

import json
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Union

import structlog
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest


@dataclass
class MetricValue:
    """Represents a single metric observation with metadata."""
    name: str
    value: Union[int, float]
    timestamp: datetime
    labels: Dict[str, str] = field(default_factory=dict)


# (type, name, description, label names)
DEFAULT_METRICS = [
    ("counter", "tiles_converted_total", "Tiles converted successfully", []),
    ("counter", "tiles_skipped_total", "Source tiles that could not be loaded", ["reason"]),
    ("counter", "tiles_failed_total", "Tiles whose conversion raised an error", []),
    ("counter", "cells_assigned_total", "Target cells that received a value", []),
    ("histogram", "tile_conversion_duration_seconds", "Duration of tile conversions", []),
]


class MetricsCollector:
    """
    Thread-safe metrics collector for conversion runs.

    Observations go to Prometheus metrics and to a bounded in-memory buffer
    used for JSON export.
    """

    def __init__(self, buffer_size: int = 10000):
        self.logger = structlog.get_logger(component="MetricsCollector")
        self.lock = threading.RLock()
        self.metrics_buffer = deque(maxlen=buffer_size)

        self.registry = CollectorRegistry()
        self.counters: Dict[str, Counter] = {}
        self.histograms: Dict[str, Histogram] = {}

        for metric_type, name, description, labels in DEFAULT_METRICS:
            self._create_metric(metric_type, name, description, labels)

    def _create_metric(
        self,
        metric_type: str,
        name: str,
        description: str,
        labels: List[str],
    ) -> None:
        if metric_type == "counter":
            self.counters[name] = Counter(name, description, labels, registry=self.registry)
        elif metric_type == "histogram":
            self.histograms[name] = Histogram(name, description, labels, registry=self.registry)
        else:
            raise ValueError(f"Unsupported metric type: {metric_type}")

    def _buffer(self, name: str, value: Union[int, float], labels: Dict[str, str]) -> None:
        self.metrics_buffer.append(MetricValue(
            name=name,
            value=value,
            timestamp=datetime.now(timezone.utc),
            labels=labels,
        ))

    def increment_counter(
        self,
        name: str,
        value: Union[int, float] = 1,
        labels: Optional[Dict[str, str]] = None,
    ) -> None:
        """
        Increment a counter metric.

        Args:
            name: Metric name, one of the registered counters
            value: Value to increment by
            labels: Metric labels
        """
        labels = labels or {}
        if name not in self.counters:
            self.logger.warning("Unknown counter", metric_name=name)
            return

        with self.lock:
            counter = self.counters[name]
            (counter.labels(**labels) if labels else counter).inc(value)
            self._buffer(name, value, labels)

    def record_histogram(
        self,
        name: str,
        value: Union[int, float],
        labels: Optional[Dict[str, str]] = None,
    ) -> None:
        """
        Record a histogram observation.

        Args:
            name: Metric name, one of the registered histograms
            value: Observed value
            labels: Metric labels
        """
        labels = labels or {}
        if name not in self.histograms:
            self.logger.warning("Unknown histogram", metric_name=name)
            return

        with self.lock:
            histogram = self.histograms[name]
            (histogram.labels(**labels) if labels else histogram).observe(value)
            self._buffer(name, value, labels)

    def get_value(self, sample_name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Current value of a Prometheus sample, 0.0 if never observed."""
        value = self.registry.get_sample_value(sample_name, labels or {})
        return value if value is not None else 0.0

    def export_metrics(self, format: str = "json") -> str:
        """
        Export collected metrics.

        Args:
            format: ``json`` for the buffered observations or ``prometheus``
                for the text exposition format

        Returns:
            Exported metrics as a string
        """
        if format.lower() == "prometheus":
            return generate_latest(self.registry).decode("utf-8")

        if format.lower() != "json":
            raise ValueError(f"Unsupported export format: {format}")

        with self.lock:
            metrics = [
                {
                    "name": m.name,
                    "value": m.value,
                    "timestamp": m.timestamp.isoformat(),
                    "labels": m.labels,
                }
                for m in self.metrics_buffer
            ]

        return json.dumps({
            "export_timestamp": datetime.now(timezone.utc).isoformat(),
            "metrics_count": len(metrics),
            "metrics": metrics,
        }, indent=2)


class Timer:
    """Context manager recording elapsed seconds into a histogram."""

    def __init__(self, collector: MetricsCollector, name: str):
        self.collector = collector
        self.name = name
        self.elapsed = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.elapsed = time.perf_counter() - self._start
        self.collector.record_histogram(self.name, self.elapsed)
