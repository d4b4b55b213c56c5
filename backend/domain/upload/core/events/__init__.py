"""Events accepted by the upload session state machine.

Events are immutable inputs; they describe what happened in the UI or in
an external collaborator, and are mapped to the next session value by
`domain.upload.core.state_machine.transition`.
"""

from .base import UploadEvent
from .session_events import (
    AnalyzeComplete,
    AnalyzeStart,
    ErrorOccurred,
    Reset,
    Retry,
    Select,
    UploadComplete,
    UploadProgress,
    UploadStart,
)

__all__ = [
    "AnalyzeComplete",
    "AnalyzeStart",
    "ErrorOccurred",
    "Reset",
    "Retry",
    "Select",
    "UploadComplete",
    "UploadEvent",
    "UploadProgress",
    "UploadStart",
]
