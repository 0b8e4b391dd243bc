"""
Image compression for oversized chat attachments.

When a message is too big to store (see needs_compression), each image is
re-encoded as JPEG: first scaled to fit inside a 1920px box, then saved at
decreasing quality (0.9, 0.8, ...) until the data URL fits max_size_bytes
or min_quality is reached. The last attempt is kept even if still too big.
"""

import base64
import io
import logging
import math

from PIL import Image

from memsplit.utils.image_size import get_image_size

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE_BYTES = 800 * 1024
DEFAULT_MIN_QUALITY = 0.3
MAX_DIMENSION = 1920
JPEG_PREFIX = "data:image/jpeg;base64,"


def _decode_data_url(data_url: str) -> Image.Image:
    _, sep, payload = data_url.partition(",")
    raw = base64.b64decode(payload if sep else data_url)
    return Image.open(io.BytesIO(raw))


def _encode_jpeg(image: Image.Image, quality: int) -> str:
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return JPEG_PREFIX + base64.b64encode(buffer.getvalue()).decode("ascii")


def compress_image(
    data_url: str,
    max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES,
    min_quality: float = DEFAULT_MIN_QUALITY,
) -> dict:
    """
    Re-encode one image data URL.

    Returns {"compressed", "original_size", "compressed_size", "quality"};
    quality is a 0-1 float like the browser canvas API uses.
    """
    original_size = get_image_size(data_url)

    image = _decode_data_url(data_url).convert("RGB")
    image.thumbnail((MAX_DIMENSION, MAX_DIMENSION))

    # Integer percent steps avoid 0.9 - 0.1 - 0.1 ... float drift
    floor_quality = math.ceil(min_quality * 100 - 1e-9)
    quality = 90
    compressed = _encode_jpeg(image, quality)
    compressed_size = get_image_size(compressed)

    while compressed_size > max_size_bytes and quality - 10 >= floor_quality:
        quality -= 10
        compressed = _encode_jpeg(image, quality)
        compressed_size = get_image_size(compressed)

    logger.debug(
        "Compressed image %d -> %d bytes at quality %d (%dx%d)",
        original_size, compressed_size, quality, image.width, image.height,
    )
    return {
        "compressed": compressed,
        "original_size": original_size,
        "compressed_size": compressed_size,
        "quality": max(quality, floor_quality) / 100,
    }


def compress_images(images: list[str], max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES) -> list[dict]:
    return [compress_image(image, max_size_bytes) for image in images]
