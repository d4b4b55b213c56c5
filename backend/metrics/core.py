"""In-memory metrics registry for the capture pipeline.

Thread-safe counters and histograms with tag sets. Snapshots are plain
dicts so tests and the CLI can read them without an exporter.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock
from typing import Dict, Tuple, List, Any, TypedDict
import time


TagKey = Tuple[str, Tuple[Tuple[str, str], ...]]  # (metric_name, sorted_tags)


def _tag_key(name: str, tags: Dict[str, str]) -> TagKey:
    return name, tuple(sorted(tags.items()))


@dataclass
class Counter:
    name: str
    tags: Dict[str, str]
    _value: int = 0
    _lock: Lock = field(default_factory=Lock, repr=False)

    def inc(self, amount: int = 1) -> None:
        with self._lock:
            self._value += amount

    def value(self) -> int:
        with self._lock:
            return self._value


@dataclass
class Histogram:
    name: str
    tags: Dict[str, str]
    _values: List[float] = field(default_factory=list)
    _lock: Lock = field(default_factory=Lock, repr=False)
    _max_samples: int = 1000  # sliding window

    def observe(self, value: float) -> None:
        with self._lock:
            if len(self._values) >= self._max_samples:
                self._values.pop(0)
            self._values.append(value)

    def summary(self) -> Dict[str, Any]:
        with self._lock:
            vals = sorted(self._values)
        if not vals:
            return {"count": 0, "avg": 0.0, "p95": 0.0, "min": 0.0, "max": 0.0}
        count = len(vals)
        return {
            "count": count,
            "avg": sum(vals) / count,
            "p95": vals[int(0.95 * (count - 1))],
            "min": vals[0],
            "max": vals[-1],
        }


class CounterSnap(TypedDict):
    name: str
    tags: Dict[str, str]
    value: int


class HistogramSnap(TypedDict):
    name: str
    tags: Dict[str, str]
    count: int
    avg: float
    p95: float
    min: float
    max: float


class RegistrySnapshot(TypedDict):
    counters: List[CounterSnap]
    histograms: List[HistogramSnap]
    generatedAt: float


class MetricsRegistry:
    """Get-or-create registry keyed by metric name plus tags."""

    def __init__(self) -> None:
        self._counters: Dict[TagKey, Counter] = {}
        self._histograms: Dict[TagKey, Histogram] = {}
        self._lock = Lock()

    def counter(self, name: str, **tags: str) -> Counter:
        key = _tag_key(name, tags)
        with self._lock:
            ctr = self._counters.get(key)
            if ctr is None:
                ctr = self._counters[key] = Counter(name=name, tags=tags)
            return ctr

    def histogram(self, name: str, **tags: str) -> Histogram:
        key = _tag_key(name, tags)
        with self._lock:
            hist = self._histograms.get(key)
            if hist is None:
                hist = self._histograms[key] = Histogram(name=name, tags=tags)
            return hist

    def counter_value(self, name: str, **tags: str) -> int:
        """Current value of a counter, 0 if it was never touched."""
        with self._lock:
            ctr = self._counters.get(_tag_key(name, tags))
        return ctr.value() if ctr else 0

    def reset(self) -> None:
        """Drop every metric (test isolation)."""
        with self._lock:
            self._counters.clear()
            self._histograms.clear()

    def snapshot(self) -> RegistrySnapshot:
        data: RegistrySnapshot = {
            "counters": [],
            "histograms": [],
            "generatedAt": time.time(),
        }
        # copy references under lock, read values outside to limit contention
        with self._lock:
            counters = list(self._counters.values())
            histograms = list(self._histograms.values())
        for c in counters:
            data["counters"].append({"name": c.name, "tags": c.tags, "value": c.value()})
        for h in histograms:
            s = h.summary()
            data["histograms"].append(
                {
                    "name": h.name,
                    "tags": h.tags,
                    "count": s["count"],
                    "avg": s["avg"],
                    "p95": s["p95"],
                    "min": s["min"],
                    "max": s["max"],
                }
            )
        return data


registry = MetricsRegistry()
