"""ImageFile value object.

Immutable image payload selected by the user for a meal capture.
Carries validation rules applied before any upload is attempted.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from ..exceptions.domain_errors import InvalidImageError

# Maximum size accepted before compression: 10MB
MAX_FILE_SIZE_MB = 10
MAX_FILE_SIZE_BYTES = MAX_FILE_SIZE_MB * 1024 * 1024

ALLOWED_CONTENT_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/heic",
        "image/heif",
    }
)

_EXTENSION_CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".heic": "image/heic",
    ".heif": "image/heif",
}


def _format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / 1024 / 1024:.1f} MB"


@dataclass(frozen=True)
class ImageFile:
    """Value object for a user-selected meal photo.

    Attributes:
        filename: Original file name (used to derive the blob name).
        content_type: MIME type declared for the payload.
        data: Raw image bytes.

    Examples:
        >>> image = ImageFile("lunch.jpg", "image/jpeg", b"...")
        >>> image.size
        3
        >>> image.validate()
    """

    filename: str
    content_type: str
    data: bytes = field(repr=False)

    def __post_init__(self) -> None:
        """Normalize the content type."""
        if not self.filename:
            raise ValueError("filename cannot be empty")
        object.__setattr__(self, "content_type", self.content_type.strip().lower())

    @property
    def size(self) -> int:
        """Payload size in bytes."""
        return len(self.data)

    @property
    def extension(self) -> str:
        """Lower-case file extension including the dot."""
        return os.path.splitext(self.filename)[1].lower()

    def validate(self, max_size_bytes: int = MAX_FILE_SIZE_BYTES) -> None:
        """Check type and size before upload.

        Args:
            max_size_bytes: Upper size limit (before compression).

        Raises:
            InvalidImageError: If the type is not allowed, the file is empty
                or larger than the limit.
        """
        if self.content_type not in ALLOWED_CONTENT_TYPES:
            raise InvalidImageError(
                "Invalid file type. Please upload a JPEG, PNG, or HEIC image."
            )

        if self.size == 0:
            raise InvalidImageError("The selected file is empty.")

        if self.size > max_size_bytes:
            max_mb = max_size_bytes / 1024 / 1024
            raise InvalidImageError(
                f"File too large ({_format_size(self.size)}). "
                f"Maximum size is {max_mb:g}MB."
            )

    def with_payload(self, data: bytes, content_type: str, filename: str) -> "ImageFile":
        """Return a copy carrying a re-encoded payload."""
        return ImageFile(filename=filename, content_type=content_type, data=data)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "ImageFile":
        """Load an image from disk, guessing the MIME type from the extension.

        Raises:
            InvalidImageError: If the extension is not a supported image type.
            OSError: If the file cannot be read.
        """
        path = Path(path)
        content_type = _EXTENSION_CONTENT_TYPES.get(path.suffix.lower())
        if content_type is None:
            raise InvalidImageError(
                "Invalid file type. Please upload a JPEG, PNG, or HEIC image."
            )
        return cls(filename=path.name, content_type=content_type, data=path.read_bytes())
