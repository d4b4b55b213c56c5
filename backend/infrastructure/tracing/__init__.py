"""W3C Trace Context helpers."""

from .trace_context import (
    TraceContext,
    extract_trace_context,
    generate_trace_context,
    parse_traceparent,
)

__all__ = [
    "TraceContext",
    "extract_trace_context",
    "generate_trace_context",
    "parse_traceparent",
]
