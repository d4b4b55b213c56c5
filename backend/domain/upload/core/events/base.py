"""Base session event.

Events are the only inputs of the upload state machine. Each event is an
immutable, tagged record; the tag mirrors the name used by the host UI.
"""

from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class UploadEvent:
    """Base class for upload session events.

    All events must:
    - Be immutable (frozen dataclass)
    - Declare a unique `type` tag (class attribute)
    - Carry only the data needed for their transition

    Attributes:
        type: Tag identifying the event kind (e.g. "UPLOAD_PROGRESS").
    """

    type: ClassVar[str] = "UNKNOWN"
