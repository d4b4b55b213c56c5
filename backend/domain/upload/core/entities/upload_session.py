"""UploadSession entity.

Immutable record of one meal-capture session. A session is never mutated:
every event produces a whole new value through the state machine.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from domain.upload.models import MealAnalysis
from ..value_objects.image_file import ImageFile
from ..value_objects.phase import Phase


@dataclass(frozen=True)
class UploadSession:
    """Current state of a meal capture.

    Only the fields meaningful for `phase` are populated:

    - idle: nothing
    - selected: file
    - uploading: file, progress
    - analyzing: file, remote_image_ref, progress=100
    - done: remote_image_ref, result_id, analysis_result, progress=100
    - error: error_message, plus the file when one was selected

    Attributes:
        phase: Current phase, the sole driver of behaviour.
        file: Image selected by the user.
        progress: Upload progress 0-100.
        remote_image_ref: URL of the uploaded image.
        result_id: Identifier of the stored analysis record.
        analysis_result: Nutrition breakdown.
        error_message: Human-readable failure description.

    Examples:
        >>> session = UploadSession.initial()
        >>> session.phase
        <Phase.IDLE: 'idle'>
        >>> session.is_idle
        True
    """

    phase: Phase = Phase.IDLE
    file: Optional[ImageFile] = None
    progress: int = 0
    remote_image_ref: Optional[str] = None
    result_id: Optional[str] = None
    analysis_result: Optional[MealAnalysis] = None
    error_message: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate session invariants."""
        if not 0 <= self.progress <= 100:
            raise ValueError(f"progress must be between 0 and 100, got {self.progress}")

    @classmethod
    def initial(cls) -> "UploadSession":
        """Fresh idle session with every field cleared."""
        return cls()

    def evolve(self, **changes: Any) -> "UploadSession":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    @property
    def is_idle(self) -> bool:
        return self.phase is Phase.IDLE

    @property
    def is_busy(self) -> bool:
        return self.phase.is_busy

    @property
    def has_file(self) -> bool:
        return self.file is not None

    def to_dict(self) -> Dict[str, Any]:
        """Loggable/serializable view (image bytes omitted)."""
        return {
            "phase": self.phase.value,
            "file": (
                {
                    "filename": self.file.filename,
                    "content_type": self.file.content_type,
                    "size": self.file.size,
                }
                if self.file
                else None
            ),
            "progress": self.progress,
            "remote_image_ref": self.remote_image_ref,
            "result_id": self.result_id,
            "analysis_result": (
                self.analysis_result.to_json_dict() if self.analysis_result else None
            ),
            "error_message": self.error_message,
        }
