"""User-facing error messages for capture failures.

Every collaborator failure reaches the session as one opaque string. This
module decides that string, and the coarse category used for metrics.
"""

from enum import Enum
from typing import Tuple

from domain.upload.core.exceptions import (
    AnalysisTimeoutError,
    ApiRequestError,
    InvalidImageError,
    QuotaExceededError,
)

GENERIC_MESSAGE = "An unexpected error occurred. Please try again."
NETWORK_MESSAGE = "Network error. Please check your connection and try again."
SERVER_BUSY_MESSAGE = "Our servers are temporarily busy. Please try again in a moment."
INVALID_IMAGE_MESSAGE = "Invalid image. Please try a different photo."
ANALYSIS_FAILED_MESSAGE = "Analysis failed. Please try again."
QUOTA_MESSAGE = "Quota exceeded: you have used all the meal scans included in your plan."


class ErrorCategory(str, Enum):
    NETWORK = "network"
    SERVER = "server"
    QUOTA = "quota"
    IMAGE = "image"
    DATABASE = "database"
    UNKNOWN = "unknown"


# Checked in order; first match wins
_CATEGORY_KEYWORDS: Tuple[Tuple[ErrorCategory, Tuple[str, ...]], ...] = (
    (
        ErrorCategory.DATABASE,
        ("prisma", "database", "datasource", "postgres", "validation error"),
    ),
    (
        ErrorCategory.NETWORK,
        ("network", "fetch", "connection", "econnrefused", "timeout", "timed out"),
    ),
    (
        ErrorCategory.SERVER,
        ("500", "503", "server error", "internal server", "temporarily"),
    ),
    (ErrorCategory.QUOTA, ("429", "quota", "rate limit", "too many")),
    (ErrorCategory.IMAGE, ("image", "file", "invalid", "format", "size")),
)


def categorize_error(message: str) -> ErrorCategory:
    """Classify a failure message.

    Example:
        >>> categorize_error("Failed to fetch")
        <ErrorCategory.NETWORK: 'network'>
    """
    lowered = (message or "").lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(k in lowered for k in keywords):
            return category
    return ErrorCategory.UNKNOWN


def to_user_message(exc: BaseException) -> str:
    """Translate a collaborator exception into the message shown to the user."""
    message = str(exc).strip()
    lowered = message.lower()

    if isinstance(exc, QuotaExceededError):
        return QUOTA_MESSAGE

    if isinstance(exc, InvalidImageError):
        return message or INVALID_IMAGE_MESSAGE

    if isinstance(exc, AnalysisTimeoutError):
        return message or NETWORK_MESSAGE

    if isinstance(exc, ApiRequestError):
        if exc.status_code >= 500:
            return SERVER_BUSY_MESSAGE
        if exc.status_code == 400:
            return message or INVALID_IMAGE_MESSAGE
        if "timeout" in lowered or "network" in lowered:
            return NETWORK_MESSAGE
        return message or ANALYSIS_FAILED_MESSAGE

    if any(k in lowered for k in ("fetch", "network", "connection", "timed out", "timeout")):
        return NETWORK_MESSAGE

    return message or GENERIC_MESSAGE
