"""Configuration utilities for the capture client.

Values come from environment variables (optionally loaded from `.env` by
the entry point) with defaults suitable for a local API on port 7071.
"""

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_API_URL = "http://localhost:7071"


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def get_api_base_url() -> str:
    """
    Get ProteinLens API base URL.

    All routes live under `{base}/api`. A trailing slash is stripped.

    Returns:
        Base URL from PROTEINLENS_API_URL, defaults to http://localhost:7071
    """
    return os.getenv("PROTEINLENS_API_URL", DEFAULT_API_URL).rstrip("/")


def get_capture_provider() -> str:
    """
    Get collaborator implementation to use.

    Returns:
        "http" (default) or "stub", from CAPTURE_PROVIDER
    """
    return os.getenv("CAPTURE_PROVIDER", "http").strip().lower()


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


@dataclass(frozen=True)
class CaptureSettings:
    """
    Tunables of the capture flow and its HTTP collaborators.

    Attributes:
        api_base_url: API root (without /api)
        upload_url_timeout_s: Timeout of POST /api/upload-url (cold starts)
        blob_upload_timeout_s: Timeout of the blob PUT (slow mobile networks)
        analysis_timeout_s: Timeout of POST /api/meals/analyze
        blob_upload_max_attempts: Attempts for the blob PUT
        analysis_max_attempts: Attempts for the analysis call (timeouts only)
        retry_backoff_s: Base of the exponential backoff between attempts
        max_upload_size_mb: Size limit before compression
        compression_threshold_mb: Compress images larger than this
        compression_max_size_mb: Target size of a compressed image
    """

    api_base_url: str = DEFAULT_API_URL
    upload_url_timeout_s: float = 45.0
    blob_upload_timeout_s: float = 90.0
    analysis_timeout_s: float = 120.0
    blob_upload_max_attempts: int = 3
    analysis_max_attempts: int = 2
    retry_backoff_s: float = 1.0
    max_upload_size_mb: float = 10.0
    compression_threshold_mb: float = 2.0
    compression_max_size_mb: float = 5.0

    @property
    def api_url(self) -> str:
        return f"{self.api_base_url}/api"

    @property
    def max_upload_size_bytes(self) -> int:
        return int(self.max_upload_size_mb * 1024 * 1024)

    @classmethod
    def from_env(cls, api_base_url: Optional[str] = None) -> "CaptureSettings":
        """Build settings from environment variables."""
        return cls(
            api_base_url=(api_base_url or get_api_base_url()).rstrip("/"),
            upload_url_timeout_s=_get_float("UPLOAD_URL_TIMEOUT_S", 45.0),
            blob_upload_timeout_s=_get_float("BLOB_UPLOAD_TIMEOUT_S", 90.0),
            analysis_timeout_s=_get_float("ANALYSIS_TIMEOUT_S", 120.0),
            blob_upload_max_attempts=max(1, _get_int("BLOB_UPLOAD_MAX_ATTEMPTS", 3)),
            analysis_max_attempts=max(1, _get_int("ANALYSIS_MAX_ATTEMPTS", 2)),
            retry_backoff_s=_get_float("RETRY_BACKOFF_S", 1.0),
            max_upload_size_mb=_get_float("MAX_UPLOAD_SIZE_MB", 10.0),
            compression_threshold_mb=_get_float("COMPRESSION_THRESHOLD_MB", 2.0),
            compression_max_size_mb=_get_float("COMPRESSION_MAX_SIZE_MB", 5.0),
        )
