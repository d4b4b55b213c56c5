"""Phase value object.

Discrete named state of an upload session.
"""

from enum import Enum


class Phase(str, Enum):
    """Phase of a meal-capture session.

    The phase is the sole driver of session behaviour: which events are
    accepted and which session fields are meaningful.

    Examples:
        >>> Phase.IDLE.value
        'idle'
        >>> Phase.UPLOADING.is_busy
        True
    """

    IDLE = "idle"
    SELECTED = "selected"
    UPLOADING = "uploading"
    ANALYZING = "analyzing"
    DONE = "done"
    ERROR = "error"

    @property
    def is_busy(self) -> bool:
        """True while network work is in flight and the file is locked."""
        return self in (Phase.UPLOADING, Phase.ANALYZING)

    @property
    def is_terminal(self) -> bool:
        """True for phases that end an attempt (done or error)."""
        return self in (Phase.DONE, Phase.ERROR)
