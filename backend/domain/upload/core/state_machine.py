"""Upload session state machine.

`transition(session, event)` is a pure, total function: it never raises and
never performs I/O. Events that are not legal for the current phase return
the very same session object, so callers can detect a dropped event with
an identity check (`next_session is session`).

Transition table:

    any                SELECT(file)            -> selected   (ignored while uploading/analyzing)
    selected           UPLOAD_START            -> uploading
    uploading          UPLOAD_PROGRESS(n)      -> uploading
    uploading          UPLOAD_COMPLETE(ref)    -> analyzing
    analyzing          ANALYZE_START           -> analyzing
    analyzing          ANALYZE_COMPLETE(id, r) -> done
    any                ERROR(msg)              -> error
    error (with file)  RETRY                   -> selected
    any                RESET                   -> idle
"""

import math
from typing import Callable, Dict, Type

from .entities.upload_session import UploadSession
from .events import (
    AnalyzeComplete,
    AnalyzeStart,
    ErrorOccurred,
    Reset,
    Retry,
    Select,
    UploadComplete,
    UploadEvent,
    UploadProgress,
    UploadStart,
)
from .value_objects.phase import Phase

_INITIAL = UploadSession.initial()


def _select(session: UploadSession, event: Select) -> UploadSession:
    # File is locked while network work is in flight
    if session.phase.is_busy:
        return session
    return UploadSession(phase=Phase.SELECTED, file=event.file)


def _upload_start(session: UploadSession, event: UploadStart) -> UploadSession:
    if session.phase is not Phase.SELECTED:
        return session
    return session.evolve(phase=Phase.UPLOADING, progress=0, error_message=None)


def _upload_progress(session: UploadSession, event: UploadProgress) -> UploadSession:
    if session.phase is not Phase.UPLOADING:
        return session
    value = event.progress
    # Non-numeric or non-finite values (None, NaN, inf) are dropped
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return session
    progress = min(max(int(value), 0), 100)
    # Progress never moves backwards; late/out-of-order callbacks are dropped
    if progress <= session.progress:
        return session
    return session.evolve(progress=progress)


def _upload_complete(session: UploadSession, event: UploadComplete) -> UploadSession:
    if session.phase is not Phase.UPLOADING:
        return session
    return session.evolve(
        phase=Phase.ANALYZING,
        remote_image_ref=event.remote_image_ref,
        progress=100,
    )


def _analyze_start(session: UploadSession, event: AnalyzeStart) -> UploadSession:
    # Marker only: accepted in analyzing, leaves the session untouched
    return session


def _analyze_complete(session: UploadSession, event: AnalyzeComplete) -> UploadSession:
    if session.phase is not Phase.ANALYZING:
        return session
    return UploadSession(
        phase=Phase.DONE,
        progress=100,
        remote_image_ref=session.remote_image_ref,
        result_id=event.result_id,
        analysis_result=event.analysis_result,
    )


def _error(session: UploadSession, event: ErrorOccurred) -> UploadSession:
    # Keep the file (if any) so RETRY can re-attempt without reselecting
    return UploadSession(
        phase=Phase.ERROR,
        file=session.file,
        error_message=event.message,
    )


def _retry(session: UploadSession, event: Retry) -> UploadSession:
    if session.phase is not Phase.ERROR or session.file is None:
        return session
    return UploadSession(phase=Phase.SELECTED, file=session.file)


def _reset(session: UploadSession, event: Reset) -> UploadSession:
    if session == _INITIAL:
        return session
    return _INITIAL


_HANDLERS: Dict[Type[UploadEvent], Callable[[UploadSession, UploadEvent], UploadSession]] = {
    Select: _select,  # type: ignore[dict-item]
    UploadStart: _upload_start,  # type: ignore[dict-item]
    UploadProgress: _upload_progress,  # type: ignore[dict-item]
    UploadComplete: _upload_complete,  # type: ignore[dict-item]
    AnalyzeStart: _analyze_start,  # type: ignore[dict-item]
    AnalyzeComplete: _analyze_complete,  # type: ignore[dict-item]
    ErrorOccurred: _error,  # type: ignore[dict-item]
    Retry: _retry,  # type: ignore[dict-item]
    Reset: _reset,  # type: ignore[dict-item]
}


def transition(session: UploadSession, event: UploadEvent) -> UploadSession:
    """Compute the next session value for one event.

    Args:
        session: Current session.
        event: Event to apply.

    Returns:
        The next session, or `session` itself when the event is not legal
        for the current phase (including unknown event types).

    Example:
        >>> s = transition(UploadSession.initial(), Select(file=image))
        >>> s.phase
        <Phase.SELECTED: 'selected'>
    """
    handler = _HANDLERS.get(type(event))
    if handler is None:
        return session
    return handler(session, event)


def is_dropped(before: UploadSession, after: UploadSession) -> bool:
    """True when `transition` ignored the event."""
    return before is after
