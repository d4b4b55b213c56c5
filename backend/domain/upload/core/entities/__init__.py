"""Entities of the upload domain."""

from .upload_session import UploadSession

__all__ = ["UploadSession"]
