"""Core building blocks of the upload session: values, events, state machine."""

from .entities.upload_session import UploadSession
from .state_machine import is_dropped, transition
from .value_objects.phase import Phase

__all__ = [
    "Phase",
    "UploadSession",
    "is_dropped",
    "transition",
]
