"""Upload session driver.

Holds the current `UploadSession` for one view and exposes one imperative
operation per event. Each operation packages its arguments into an event,
applies the pure transition function, stores the result and notifies the
listeners (the host UI re-render). The driver performs no I/O.
"""

import logging
from typing import Callable, List, Optional
from uuid import uuid4

from domain.upload.core.entities.upload_session import UploadSession
from domain.upload.core.events import (
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
from domain.upload.core.state_machine import transition
from domain.upload.core.value_objects.image_file import ImageFile
from domain.upload.core.value_objects.phase import Phase
from domain.upload.models import MealAnalysis
from metrics.upload_session import record_dropped_event, record_transition

logger = logging.getLogger(__name__)

SessionListener = Callable[[UploadSession], None]

# Terminal callbacks arriving out of phase point at a collaborator breaking
# its "exactly one terminal callback" contract
_ANOMALY_EVENTS = (UploadComplete, AnalyzeComplete)

# Effective events that start over from a new selection (or none)
_NEW_ATTEMPT_EVENTS = (Select, Retry, Reset)


class UploadSessionDriver:
    """
    Stateful wrapper around the upload state machine.

    Single-threaded: all operations must be called from the event loop
    that owns the view.

    Example:
        >>> driver = UploadSessionDriver()
        >>> driver.subscribe(lambda s: print(s.phase.value))
        >>> driver.select_file(image)
        selected
        >>> driver.start_upload()
        uploading
    """

    def __init__(
        self,
        session: Optional[UploadSession] = None,
        session_id: Optional[str] = None,
    ) -> None:
        self._session = session or UploadSession.initial()
        self._listeners: List[SessionListener] = []
        self.session_id = session_id or uuid4().hex[:12]
        self._generation = 0

    @property
    def session(self) -> UploadSession:
        """Current session value."""
        return self._session

    @property
    def phase(self) -> Phase:
        return self._session.phase

    @property
    def generation(self) -> int:
        """Attempt counter, bumped by every effective select, retry or reset.

        Work started under one generation must not report into a later one.
        """
        return self._generation

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener called after every effective change.

        Returns:
            Callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, event: UploadEvent) -> UploadSession:
        """Apply one event and return the resulting session."""
        before = self._session
        after = transition(before, event)

        if after is before:
            self._log_unchanged(event, before)
            return before

        self._session = after
        if isinstance(event, _NEW_ATTEMPT_EVENTS):
            self._generation += 1
        record_transition(before.phase.value, after.phase.value)
        logger.debug(
            "Session transition",
            extra={
                "session_id": self.session_id,
                "event": event.type,
                "from_phase": before.phase.value,
                "to_phase": after.phase.value,
                "progress": after.progress,
            },
        )
        self._notify(after)
        return after

    # --- Operations -------------------------------------------------------

    def select_file(self, file: ImageFile) -> UploadSession:
        return self.dispatch(Select(file=file))

    def start_upload(self) -> UploadSession:
        return self.dispatch(UploadStart())

    def report_progress(self, percent: int) -> UploadSession:
        return self.dispatch(UploadProgress(progress=percent))

    def complete_upload(self, remote_image_ref: str) -> UploadSession:
        return self.dispatch(UploadComplete(remote_image_ref=remote_image_ref))

    def start_analysis(self) -> UploadSession:
        return self.dispatch(AnalyzeStart())

    def complete_analysis(self, result_id: str, result: MealAnalysis) -> UploadSession:
        return self.dispatch(AnalyzeComplete(result_id=result_id, analysis_result=result))

    def report_error(self, message: Optional[str]) -> UploadSession:
        return self.dispatch(ErrorOccurred(message=message))

    def retry(self) -> UploadSession:
        return self.dispatch(Retry())

    def reset(self) -> UploadSession:
        return self.dispatch(Reset())

    # --- Internals --------------------------------------------------------

    def _log_unchanged(self, event: UploadEvent, session: UploadSession) -> None:
        # Accepted markers that leave the session as is
        if isinstance(event, Reset) or (
            isinstance(event, AnalyzeStart) and session.phase is Phase.ANALYZING
        ):
            return

        record_dropped_event(event.type, session.phase.value)
        extra = {
            "session_id": self.session_id,
            "event": event.type,
            "phase": session.phase.value,
        }
        if isinstance(event, _ANOMALY_EVENTS):
            logger.warning("Out-of-phase completion dropped", extra=extra)
        else:
            logger.debug("Event ignored in current phase", extra=extra)

    def _notify(self, session: UploadSession) -> None:
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception as e:
                # A broken view must not stop the others
                logger.error(
                    "Session listener failed",
                    extra={
                        "session_id": self.session_id,
                        "listener": getattr(listener, "__name__", repr(listener)),
                        "error": str(e),
                    },
                    exc_info=True,
                )
