"""UploadedImage value object."""

from dataclasses import dataclass


@dataclass(frozen=True)
class UploadedImage:
    """Reference to an image stored in blob storage.

    Attributes:
        url: Public URL of the blob (no SAS query string).
        blob_name: Storage key used to request the analysis.
    """

    url: str
    blob_name: str

    def __post_init__(self) -> None:
        """Validate reference invariants."""
        if not self.url:
            raise ValueError("url cannot be empty")
        if not self.blob_name:
            raise ValueError("blob_name cannot be empty")
