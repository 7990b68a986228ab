# -*- coding: utf-8 -*-
# ------------------------------------------------------------------------------
#
#   Copyright 2025 Jannik Hehemann
#
#   Licensed under the Apache License, Version 2.0 (the "License");
#   you may not use this file except in compliance with the License.
#   You may obtain a copy of the License at
#
#       http://www.apache.org/licenses/LICENSE-2.0
#
#   Unless required by applicable law or agreed to in writing, software
#   distributed under the License is distributed on an "AS IS" BASIS,
#   WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#   See the License for the specific language governing permissions and
#   limitations under the License.
#
# ------------------------------------------------------------------------------
"""Wall-clock timing of index operations."""

import time
import functools
from typing import Dict, List, Callable, Optional
from dataclasses import dataclass, field
import statistics
from collections import defaultdict


@dataclass
class OperationMetrics:
    """Timings collected for one tagged operation."""
    call_count: int = 0
    total_time: float = 0.0
    min_time: float = float('inf')
    max_time: float = 0.0
    times: List[float] = field(default_factory=list)

    def add_measurement(self, elapsed: float) -> None:
        self.call_count += 1
        self.total_time += elapsed
        if elapsed < self.min_time:
            self.min_time = elapsed
        if elapsed > self.max_time:
            self.max_time = elapsed
        self.times.append(elapsed)

    @property
    def avg_time(self) -> float:
        return self.total_time / self.call_count if self.call_count > 0 else 0

    @property
    def median_time(self) -> float:
        return statistics.median(self.times) if self.times else 0

    def __str__(self) -> str:
        return (f"Calls: {self.call_count}, "
                f"Total: {self.total_time:.6f}s, "
                f"Avg: {self.avg_time:.9f}s, "
                f"Min: {self.min_time:.9f}s, "
                f"Max: {self.max_time:.9f}s")


class PerformanceTracker:
    """Central collector of per-operation timings."""

    _instance = None

    @classmethod
    def get_instance(cls) -> 'PerformanceTracker':
        """Singleton accessor."""
        if cls._instance is None:
            cls._instance = PerformanceTracker()
        return cls._instance

    def __init__(self):
        self.metrics: Dict[str, OperationMetrics] = defaultdict(OperationMetrics)
        self.enabled = True

    def add_measurement(self, tag: str, elapsed: float) -> None:
        if self.enabled:
            self.metrics[tag].add_measurement(elapsed)

    def get(self, tag: str) -> Optional[OperationMetrics]:
        return self.metrics.get(tag)

    def reset(self) -> None:
        self.metrics.clear()

    def enable(self) -> None:
        self.enabled = True

    def disable(self) -> None:
        self.enabled = False

    def report(self, sort_by: str = 'total_time') -> str:
        """Render all collected metrics as a table."""
        if not self.metrics:
            return "No performance data collected."

        lines = ["Performance Metrics:"]
        lines.append("-" * 80)
        lines.append(f"{'Operation':<28} {'Calls':>10} {'Total (s)':>12} {'Avg (us)':>12} {'Median (us)':>12}")
        lines.append("-" * 80)

        sorted_items = sorted(
            self.metrics.items(),
            key=lambda x: getattr(x[1], sort_by),
            reverse=True
        )

        for tag, metrics in sorted_items:
            lines.append(f"{tag:<28} {metrics.call_count:>10} {metrics.total_time:>12.6f} "
                         f"{metrics.avg_time * 1e6:>12.3f} {metrics.median_time * 1e6:>12.3f}")

        return "\n".join(lines)


def track_performance(method: Optional[Callable] = None, *,
                      tag: Optional[str] = None) -> Callable:
    """
    Decorator to record the execution time of each call.

    Works on plain functions and on bound methods, e.g.
    ``timed_insert = track_performance(tree.insert, tag="insert")``.

    Args:
        method: The callable to track
        tag: Optional custom tag to use instead of the qualified name
    """
    def decorator(func):
        name = tag or func.__qualname__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            tracker = PerformanceTracker.get_instance()
            if not tracker.enabled:
                return func(*args, **kwargs)
            start_time = time.perf_counter()
            result = func(*args, **kwargs)
            tracker.add_measurement(name, time.perf_counter() - start_time)
            return result
        return wrapper

    # Handle both @track_performance and @track_performance(tag="name") forms
    if method is None:
        return decorator
    return decorator(method)
