"""Image processing helpers (Pillow)."""

from .compression import CompressionResult, compress_image, should_compress

__all__ = ["CompressionResult", "compress_image", "should_compress"]
