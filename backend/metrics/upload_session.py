"""Instrumentation helpers for meal capture sessions.

Metrics:
* Counter upload_session_transitions_total{from,to}
* Counter upload_session_dropped_events_total{event,phase}
* Counter upload_session_failures_total{category}
* Histogram upload_session_upload_ms
* Histogram upload_session_analysis_ms
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator

from .core import registry, RegistrySnapshot


def record_transition(from_phase: str, to_phase: str) -> None:
    registry.counter(
        "upload_session_transitions_total", **{"from": from_phase, "to": to_phase}
    ).inc()


def record_dropped_event(event_type: str, phase: str) -> None:
    """Event ignored by the state machine (out of phase, stale or duplicate)."""
    registry.counter(
        "upload_session_dropped_events_total", event=event_type, phase=phase
    ).inc()


def record_failure(category: str) -> None:
    registry.counter("upload_session_failures_total", category=category).inc()


@contextmanager
def time_stage(stage: str) -> Iterator[None]:
    """Observe elapsed milliseconds of a capture stage ("upload" | "analysis")."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        registry.histogram(f"upload_session_{stage}_ms").observe(elapsed_ms)


def snapshot() -> RegistrySnapshot:
    return registry.snapshot()


def reset_all() -> None:
    registry.reset()
