"""Core value objects for the upload domain.

Immutable value objects used by the upload session and its events.
All value objects are frozen dataclasses with value-based equality.
"""

from .image_file import ImageFile
from .phase import Phase
from .uploaded_image import UploadedImage

__all__ = [
    "ImageFile",
    "Phase",
    "UploadedImage",
]
