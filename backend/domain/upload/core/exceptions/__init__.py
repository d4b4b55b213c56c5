"""Exception hierarchy for the upload domain."""

from .domain_errors import (
    AnalysisError,
    AnalysisTimeoutError,
    ApiRequestError,
    InvalidImageError,
    QuotaExceededError,
    UploadDomainError,
    UploadTransportError,
)

__all__ = [
    "AnalysisError",
    "AnalysisTimeoutError",
    "ApiRequestError",
    "InvalidImageError",
    "QuotaExceededError",
    "UploadDomainError",
    "UploadTransportError",
]
