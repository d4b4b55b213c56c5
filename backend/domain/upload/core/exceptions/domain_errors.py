"""Domain exceptions for the Upload bounded context.

The transition function never raises; these exceptions are raised by
collaborators (validation, transport, analysis client) and translated by
the capture flow into a single error report on the session.
"""

from typing import Any, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from domain.upload.models import QuotaInfo


class UploadDomainError(Exception):
    """Base exception for upload domain.

    Lets the application layer catch every capture failure uniformly.
    """

    pass


class InvalidImageError(UploadDomainError):
    """Raised when the selected image fails validation.

    Examples:
    - Unsupported MIME type
    - Empty payload
    - Payload above the size limit
    """

    pass


class UploadTransportError(UploadDomainError):
    """Raised when the image could not be delivered to blob storage.

    Covers network failures and rejections from the storage endpoint.
    """

    pass


class AnalysisError(UploadDomainError):
    """Raised when the analysis service fails or returns a malformed result."""

    pass


class AnalysisTimeoutError(AnalysisError):
    """Raised when the analysis request timed out after its retry."""

    pass


class ApiRequestError(UploadDomainError):
    """Non-2xx response from the ProteinLens API.

    Attributes:
        status_code: HTTP status returned by the API.
        body: Decoded JSON error body (empty dict if not JSON).
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        body: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body or {}


class QuotaExceededError(ApiRequestError):
    """HTTP 429: the user has used up their scan quota.

    Attributes:
        quota: Quota snapshot returned with the rejection, if any.
    """

    def __init__(
        self,
        message: str,
        body: Optional[Dict[str, Any]] = None,
        quota: Optional["QuotaInfo"] = None,
    ) -> None:
        super().__init__(message, status_code=429, body=body)
        self.quota = quota
