"""Upload session events.

One class per tag accepted by the transition function.
"""

from dataclasses import dataclass
from typing import ClassVar, Optional

from domain.upload.models import MealAnalysis
from ..value_objects.image_file import ImageFile
from .base import UploadEvent


@dataclass(frozen=True)
class Select(UploadEvent):
    """User picked an image."""

    type: ClassVar[str] = "SELECT"

    file: ImageFile


@dataclass(frozen=True)
class UploadStart(UploadEvent):
    """Upload transport started sending the selected file."""

    type: ClassVar[str] = "UPLOAD_START"


@dataclass(frozen=True)
class UploadProgress(UploadEvent):
    """Upload transport progress callback (percentage)."""

    type: ClassVar[str] = "UPLOAD_PROGRESS"

    progress: int


@dataclass(frozen=True)
class UploadComplete(UploadEvent):
    """Upload finished; `remote_image_ref` points to the stored blob."""

    type: ClassVar[str] = "UPLOAD_COMPLETE"

    remote_image_ref: str


@dataclass(frozen=True)
class AnalyzeStart(UploadEvent):
    """Analysis request sent (marker only)."""

    type: ClassVar[str] = "ANALYZE_START"


@dataclass(frozen=True)
class AnalyzeComplete(UploadEvent):
    """Analysis service returned a result."""

    type: ClassVar[str] = "ANALYZE_COMPLETE"

    result_id: str
    analysis_result: MealAnalysis


@dataclass(frozen=True)
class ErrorOccurred(UploadEvent):
    """Any failure reported by a collaborator."""

    type: ClassVar[str] = "ERROR"

    message: Optional[str]


@dataclass(frozen=True)
class Retry(UploadEvent):
    """User asked to retry after an error."""

    type: ClassVar[str] = "RETRY"


@dataclass(frozen=True)
class Reset(UploadEvent):
    """Abandon the session and return to idle."""

    type: ClassVar[str] = "RESET"
