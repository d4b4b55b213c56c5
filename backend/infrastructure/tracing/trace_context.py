"""W3C Trace Context extraction and propagation.

Implements the `traceparent` header (version 00) and falls back to
`X-Correlation-Id` for legacy callers, so a capture can be followed from
the client through the API to the vision provider.

Format: version-traceId-spanId-flags
Example: 00-0af7651916cd43dd8448eb211c80319c-b7ad6b7169203331-01
"""

import re
import secrets
from dataclasses import dataclass, replace
from typing import Dict, Mapping, MutableMapping, Optional

TRACEPARENT_HEADER = "traceparent"
TRACESTATE_HEADER = "tracestate"
CORRELATION_HEADER = "x-correlation-id"

_TRACEPARENT_RE = re.compile(
    r"^([0-9a-f]{2})-([0-9a-f]{32})-([0-9a-f]{16})-([0-9a-f]{2})$",
    re.IGNORECASE,
)
_SUPPORTED_VERSION = "00"


def _random_hex(length: int) -> str:
    return secrets.token_hex((length + 1) // 2)[:length]


@dataclass(frozen=True)
class TraceContext:
    """Trace identifiers for one leg of a request.

    Attributes:
        trace_id: 32 hex chars, identifies the whole trace.
        span_id: 16 hex chars, identifies this leg.
        sampled: Trace flag bit 0.
        correlation_id: Identifier used in logs (trace id unless a legacy
            correlation id was received).
        tracestate: Opaque vendor data forwarded unchanged.
    """

    trace_id: str
    span_id: str
    sampled: bool = True
    correlation_id: str = ""
    tracestate: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.correlation_id:
            object.__setattr__(self, "correlation_id", self.trace_id)

    @property
    def traceparent(self) -> str:
        flags = "01" if self.sampled else "00"
        return f"{_SUPPORTED_VERSION}-{self.trace_id}-{self.span_id}-{flags}"

    def child(self) -> "TraceContext":
        """Same trace, new span id (one per outgoing call)."""
        return replace(self, span_id=_random_hex(16))

    def inject_headers(self, headers: MutableMapping[str, str]) -> MutableMapping[str, str]:
        """Add propagation headers to an outgoing request."""
        headers[TRACEPARENT_HEADER] = self.traceparent
        if self.tracestate:
            headers[TRACESTATE_HEADER] = self.tracestate
        return headers

    def as_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        self.inject_headers(headers)
        return headers


def parse_traceparent(header: str) -> Optional[TraceContext]:
    """Parse a `traceparent` value.

    Returns:
        TraceContext, or None if the header is malformed or not version 00.
    """
    match = _TRACEPARENT_RE.match(header.strip())
    if not match:
        return None

    version, trace_id, span_id, flags = match.groups()
    if version != _SUPPORTED_VERSION:
        return None

    return TraceContext(
        trace_id=trace_id.lower(),
        span_id=span_id.lower(),
        sampled=(int(flags, 16) & 0x01) == 1,
    )


def generate_trace_context() -> TraceContext:
    """Start a new sampled trace."""
    return TraceContext(trace_id=_random_hex(32), span_id=_random_hex(16), sampled=True)


def extract_trace_context(headers: Mapping[str, str]) -> TraceContext:
    """Build the trace context of an incoming request.

    Priority: traceparent > X-Correlation-Id > new trace. A fresh span id is
    generated for this leg in every case.
    """
    lowered = {k.lower(): v for k, v in headers.items()}

    raw = lowered.get(TRACEPARENT_HEADER)
    if raw:
        parsed = parse_traceparent(raw)
        if parsed is not None:
            return replace(
                parsed,
                span_id=_random_hex(16),
                tracestate=lowered.get(TRACESTATE_HEADER),
            )

    correlation_id = lowered.get(CORRELATION_HEADER)
    if correlation_id:
        # Derive a trace id from a UUID/hex correlation id
        trace_id = correlation_id.replace("-", "")[:32].ljust(32, "0").lower()
        if not re.fullmatch(r"[0-9a-f]{32}", trace_id):
            trace_id = _random_hex(32)
        return TraceContext(
            trace_id=trace_id,
            span_id=_random_hex(16),
            sampled=True,
            correlation_id=correlation_id,
        )

    return generate_trace_context()
