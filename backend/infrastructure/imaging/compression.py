"""Image compression before upload.

Large photos are resized to fit 1920x1920 and re-encoded so uploads stay
small on mobile networks. PNG keeps its format (transparency); everything
else, HEIC included, becomes JPEG.
"""

import io
import logging
import os
from dataclasses import dataclass
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from domain.upload.core.exceptions import InvalidImageError
from domain.upload.core.value_objects.image_file import ImageFile

logger = logging.getLogger(__name__)

DEFAULT_MAX_WIDTH = 1920
DEFAULT_MAX_HEIGHT = 1920
DEFAULT_QUALITY = 0.85
DEFAULT_MAX_SIZE_MB = 5.0
_QUALITY_STEP = 0.1
_MIN_QUALITY = 0.1


@dataclass(frozen=True)
class CompressionResult:
    image: ImageFile
    original_size: int
    compressed_size: int

    @property
    def compression_ratio(self) -> float:
        """Size reduction in percent (negative if the output grew)."""
        if self.original_size <= 0:
            return 0.0
        return (1 - self.compressed_size / self.original_size) * 100


def should_compress(image: ImageFile, threshold_mb: float) -> bool:
    return image.size > threshold_mb * 1024 * 1024


def calculate_dimensions(
    width: int, height: int, max_width: int, max_height: int
) -> Tuple[int, int]:
    """Scale down to fit the box, keeping the aspect ratio."""
    if width > max_width:
        height = round(height * max_width / width)
        width = max_width
    if height > max_height:
        width = round(width * max_height / height)
        height = max_height
    return max(width, 1), max(height, 1)


def _output_content_type(image: ImageFile) -> str:
    if image.content_type == "image/png":
        return "image/png"
    return "image/jpeg"


def _to_rgb(img: Image.Image) -> Image.Image:
    """Flatten transparency on a white background for JPEG output."""
    if img.mode in ("RGBA", "LA", "P"):
        if img.mode == "P":
            img = img.convert("RGBA")
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[-1])
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def _encode(img: Image.Image, content_type: str, quality: float) -> bytes:
    output = io.BytesIO()
    if content_type == "image/png":
        img.save(output, format="PNG", optimize=True)
    else:
        img.save(output, format="JPEG", quality=int(round(quality * 100)), optimize=True)
    return output.getvalue()


def compress_image(
    image: ImageFile,
    max_width: int = DEFAULT_MAX_WIDTH,
    max_height: int = DEFAULT_MAX_HEIGHT,
    quality: float = DEFAULT_QUALITY,
    max_size_mb: float = DEFAULT_MAX_SIZE_MB,
) -> CompressionResult:
    """Resize and re-encode an image.

    JPEG quality is lowered in steps of 0.1 while the output is still above
    `max_size_mb`.

    Raises:
        InvalidImageError: If Pillow cannot decode the payload.
    """
    try:
        img: Image.Image = Image.open(io.BytesIO(image.data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidImageError("Invalid image format or corrupted file") from e

    width, height = calculate_dimensions(img.width, img.height, max_width, max_height)
    if (width, height) != (img.width, img.height):
        img = img.resize((width, height), Image.Resampling.LANCZOS)

    content_type = _output_content_type(image)
    if content_type == "image/jpeg":
        img = _to_rgb(img)

    data = _encode(img, content_type, quality)
    max_bytes = max_size_mb * 1024 * 1024
    while content_type == "image/jpeg" and len(data) > max_bytes and quality > _MIN_QUALITY:
        quality = round(quality - _QUALITY_STEP, 2)
        data = _encode(img, content_type, quality)

    filename = image.filename
    if content_type == "image/jpeg" and image.extension not in (".jpg", ".jpeg"):
        filename = os.path.splitext(filename)[0] + ".jpg"

    result = CompressionResult(
        image=image.with_payload(data, content_type, filename),
        original_size=image.size,
        compressed_size=len(data),
    )
    logger.info(
        "Image compressed",
        extra={
            "file_name": filename,
            "original_size": result.original_size,
            "compressed_size": result.compressed_size,
            "ratio_percent": round(result.compression_ratio, 1),
            "dimensions": f"{width}x{height}",
        },
    )
    return result
