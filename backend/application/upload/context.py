"""Session context.

Identity and tracing information handed explicitly to the collaborators of
a capture, instead of being looked up from ambient storage.
"""

import secrets
from dataclasses import dataclass, field
from typing import Dict, Optional

from infrastructure.tracing.trace_context import TraceContext, generate_trace_context

USER_ID_HEADER = "x-user-id"
_ANONYMOUS_PREFIX = "user_"


@dataclass(frozen=True)
class SessionContext:
    """
    Who is capturing, and under which trace.

    Attributes:
        user_id: Authenticated user id, or a generated anonymous id
        trace: Trace context propagated to every outgoing call
        is_anonymous: True when `user_id` was generated for this session

    Example:
        >>> ctx = SessionContext.anonymous()
        >>> ctx.user_id.startswith("user_")
        True
        >>> ctx.headers()["x-user-id"] == ctx.user_id
        True
    """

    user_id: str
    trace: TraceContext = field(default_factory=generate_trace_context)
    is_anonymous: bool = False

    def __post_init__(self) -> None:
        if not self.user_id or not self.user_id.strip():
            raise ValueError("user_id cannot be empty")

    @classmethod
    def anonymous(cls, trace: Optional[TraceContext] = None) -> "SessionContext":
        """Context for a user who has not signed in."""
        user_id = _ANONYMOUS_PREFIX + secrets.token_hex(12)
        return cls(user_id=user_id, trace=trace or generate_trace_context(), is_anonymous=True)

    @classmethod
    def for_user(cls, user_id: str, trace: Optional[TraceContext] = None) -> "SessionContext":
        return cls(user_id=user_id.strip(), trace=trace or generate_trace_context())

    def headers(self) -> Dict[str, str]:
        """Identity plus trace headers for one outgoing call (new span)."""
        headers = {USER_ID_HEADER: self.user_id}
        self.trace.child().inject_headers(headers)
        return headers
