"""
Monitoring Module

Metrics collection for tile conversion runs: converted and skipped tile
counts, assigned cells and per-tile conversion durations.
"""

from .metrics import MetricsCollector, MetricValue, Timer

__all__ = [
    "MetricsCollector",
    "MetricValue",
    "Timer",
]
