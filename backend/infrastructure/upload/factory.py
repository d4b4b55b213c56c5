"""Collaborator factory for meal capture.

Environment-based selection:
- CAPTURE_PROVIDER=http (default): real ProteinLens API and blob storage
- CAPTURE_PROVIDER=stub: in-memory collaborators (tests, offline demo)

Usage:
    from infrastructure.upload.factory import (
        create_upload_transport,
        create_analysis_client,
    )

    async with create_upload_transport(settings) as transport, \
            create_analysis_client(settings) as analysis:
        ...
"""

from typing import Optional, Union

from infrastructure.config import CaptureSettings, get_capture_provider
from infrastructure.upload.analysis_api_client import AnalysisApiClient
from infrastructure.upload.blob_upload_transport import BlobUploadTransport
from infrastructure.upload.stub_providers import StubAnalysisClient, StubUploadTransport

_MODES = ("http", "stub")


def _resolve_mode(mode: Optional[str]) -> str:
    resolved = (mode or get_capture_provider()).lower()
    if resolved not in _MODES:
        raise ValueError(
            f"Unknown CAPTURE_PROVIDER {resolved!r}. Expected one of: {', '.join(_MODES)}"
        )
    return resolved


def create_upload_transport(
    settings: CaptureSettings, mode: Optional[str] = None
) -> Union[BlobUploadTransport, StubUploadTransport]:
    """Create the upload transport selected by CAPTURE_PROVIDER (or `mode`)."""
    if _resolve_mode(mode) == "stub":
        return StubUploadTransport()
    return BlobUploadTransport(settings)


def create_analysis_client(
    settings: CaptureSettings, mode: Optional[str] = None
) -> Union[AnalysisApiClient, StubAnalysisClient]:
    """Create the analysis client selected by CAPTURE_PROVIDER (or `mode`)."""
    if _resolve_mode(mode) == "stub":
        return StubAnalysisClient()
    return AnalysisApiClient(settings)
