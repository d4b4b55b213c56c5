"""Port (interface) for blob upload transports.

This port defines the contract that upload transports (e.g. direct
client-to-blob upload with a SAS URL) must implement to be driven by the
capture flow.
"""

from typing import TYPE_CHECKING, Callable, Protocol

from domain.upload.core.value_objects.image_file import ImageFile
from domain.upload.core.value_objects.uploaded_image import UploadedImage

if TYPE_CHECKING:
    from application.upload.context import SessionContext

# Receives an integer percentage 0-100
ProgressCallback = Callable[[int], None]


class IUploadTransport(Protocol):
    """
    Interface for image upload transports.

    Call contract:
    - `on_progress` may be called zero or more times while uploading
    - exactly one terminal outcome per call: return or raise

    Implementations can be:
    - Blob storage via SAS URL (production)
    - In-memory stub (tests, offline demo)
    """

    async def upload(
        self,
        image: ImageFile,
        context: "SessionContext",
        on_progress: ProgressCallback,
    ) -> UploadedImage:
        """
        Upload the image and return its remote reference.

        Args:
            image: Validated image to upload
            context: Identity and trace context of the session
            on_progress: Progress callback (percentage)

        Returns:
            UploadedImage with public URL and blob name

        Raises:
            UploadTransportError: On network failure or storage rejection
            ApiRequestError: If the upload URL request is rejected
        """
        ...
