"""Ports for the external collaborators of a meal capture."""

from .analysis_client import IAnalysisClient
from .upload_transport import IUploadTransport, ProgressCallback

__all__ = [
    "IAnalysisClient",
    "IUploadTransport",
    "ProgressCallback",
]
