"""Image payload codec for product photos.

Compresses an arbitrarily large photo until it fits the upload ceiling and
wraps it as a ``data:<mime>;base64,<data>`` payload, and decodes such
payloads back into raw image bytes.
"""

import base64
import binascii
from io import BytesIO
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from catalog_admin.config import (
    DOWNSCALE_FACTOR,
    IMAGE_MIME_TYPES,
    INITIAL_QUALITY,
    MAX_IMAGE_BYTES,
    OUTPUT_MIME_TYPE,
    QUALITY_FLOOR,
    QUALITY_STEP,
)
from catalog_admin.logging_config import get_logger, log_admin_event

__all__ = [
    "ImageLoadError",
    "open_image",
    "downscale_image",
    "compress_image",
    "encode_image",
    "build_payload",
    "payload_prefix",
    "decode_payload",
    "split_payload",
]

logger = get_logger("image_codec")

# Register HEIF/HEIC support for Pillow (phone photos)
try:
    from pillow_heif import register_heif_opener
    register_heif_opener()
except ImportError:
    pass  # pillow-heif not installed, HEIC support disabled


class ImageLoadError(Exception):
    """Raised when a picked file cannot be read as an image."""
    pass


def payload_prefix(mime_type: str) -> str:
    return f"data:{mime_type};base64,"


def open_image(source: Union[str, Path, bytes]) -> Image.Image:
    """Load an image from a path or raw bytes, upright per its EXIF tag.

    Raises:
        ImageLoadError: If the source is missing, not a readable image, or
            over Pillow's decompression-bomb pixel limit
    """
    try:
        if isinstance(source, bytes):
            img = Image.open(BytesIO(source))
        else:
            img = Image.open(source)
        img.load()
    except (OSError, UnidentifiedImageError) as e:
        raise ImageLoadError(f"Could not read image: {e}") from e
    except Image.DecompressionBombError as e:
        raise ImageLoadError(f"Image too large to open safely: {e}") from e

    return ImageOps.exif_transpose(img)


def _to_rgb(img: Image.Image) -> Image.Image:
    """Flatten alpha/palette images onto white; JPEG has no alpha channel."""
    if img.mode == "RGB":
        return img

    if img.mode in ("RGBA", "LA", "P"):
        if img.mode == "P":
            img = img.convert("RGBA")
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[-1])  # Use alpha channel as mask
        return background

    return img.convert("RGB")


def downscale_image(img: Image.Image, max_dimension: float) -> Image.Image:
    """Resize so the longer side equals max_dimension, keeping aspect ratio.

    Uses area-averaging (box) resampling, which is exact for reductions.
    """
    width, height = img.size
    aspect_ratio = width / height

    if width > height:
        new_size = (max_dimension, max_dimension / aspect_ratio)
    else:
        new_size = (max_dimension * aspect_ratio, max_dimension)

    target = (max(1, round(new_size[0])), max(1, round(new_size[1])))
    return img.resize(target, resample=Image.Resampling.BOX)


def _encode_jpeg(img: Image.Image, quality: int) -> bytes:
    output = BytesIO()
    img.save(output, format="JPEG", quality=quality)
    return output.getvalue()


def compress_image(
    img: Image.Image,
    size_limit: int = MAX_IMAGE_BYTES,
) -> Optional[bytes]:
    """Compress an image to JPEG no larger than size_limit bytes.

    Each attempt encodes at the current quality; on a miss the quality drops
    one step and the longest side shrinks to DOWNSCALE_FACTOR of its
    previous length. Quality runs 90% down to the 10% floor, so there are
    at most nine attempts regardless of image size.

    Args:
        img: Source image of any size or mode
        size_limit: Maximum encoded size in bytes

    Returns:
        JPEG bytes within the limit, or None if the floor was reached first
    """
    working = _to_rgb(img)
    quality = INITIAL_QUALITY
    attempts = 0

    while quality >= QUALITY_FLOOR:
        attempts += 1
        data = _encode_jpeg(working, quality)
        if len(data) <= size_limit:
            logger.debug(
                f"Compressed to {len(data)} bytes at quality {quality}% "
                f"and {working.size[0]}x{working.size[1]} (attempt {attempts})"
            )
            return data

        quality -= QUALITY_STEP
        working = downscale_image(working, max(working.size) * DOWNSCALE_FACTOR)

    logger.warning(
        f"Could not compress image below {size_limit} bytes after {attempts} attempts"
    )
    return None


def build_payload(
    data: bytes,
    mime_type: str,
    mime_types: Sequence[str] = IMAGE_MIME_TYPES,
) -> str:
    """Wrap raw image bytes as a data URI payload.

    Raises:
        ValueError: If mime_type is not in the allow-list
    """
    if mime_type not in mime_types:
        raise ValueError(f"Unsupported image type: {mime_type}")
    return payload_prefix(mime_type) + base64.b64encode(data).decode("ascii")


def encode_image(
    img: Image.Image,
    mime_types: Sequence[str] = IMAGE_MIME_TYPES,
    size_limit: int = MAX_IMAGE_BYTES,
) -> Tuple[Optional[str], Optional[str]]:
    """Compress an image and wrap it as a product image payload.

    Returns:
        Tuple of (payload, mime_type).
        - If successful: ("data:image/jpeg;base64,...", "image/jpeg")
        - If the size ceiling cannot be met: (None, None)
    """
    original_size = img.size
    data = compress_image(img, size_limit)
    if data is None:
        log_admin_event("image_compression_failed", {
            "message": "Could not compress image to fit the upload limit",
            "width": original_size[0],
            "height": original_size[1],
            "size_limit": size_limit,
        })
        return None, None

    payload = build_payload(data, OUTPUT_MIME_TYPE, mime_types)
    log_admin_event("image_encoded", {
        "width": original_size[0],
        "height": original_size[1],
        "bytes": len(data),
        "mime_type": OUTPUT_MIME_TYPE,
    })
    return payload, OUTPUT_MIME_TYPE


def split_payload(
    payload: Optional[str],
    mime_types: Sequence[str] = IMAGE_MIME_TYPES,
) -> Tuple[Optional[str], Optional[bytes]]:
    """Split a payload into its MIME type and decoded bytes.

    Prefixes are scanned in allow-list order and the first match wins.

    Returns:
        (mime_type, data), or (None, None) for an empty, unlisted or
        malformed payload
    """
    if not payload or not isinstance(payload, str):
        return None, None

    for mime_type in mime_types:
        prefix = payload_prefix(mime_type)
        if payload.startswith(prefix):
            try:
                data = base64.b64decode(payload[len(prefix):], validate=True)
            except (binascii.Error, ValueError):
                return None, None
            return mime_type, data

    return None, None


def decode_payload(
    payload: Optional[str],
    mime_types: Sequence[str] = IMAGE_MIME_TYPES,
) -> Optional[bytes]:
    """Decode a product image payload to raw bytes, or None if unusable."""
    _, data = split_payload(payload, mime_types)
    return data
