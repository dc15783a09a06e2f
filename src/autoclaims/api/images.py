"""
Damage photo processing.

Validates uploads, resizes them to fit within fixed bounds and re-encodes
them as JPEG before they are written to the uploads directory.
"""

import io
import logging
import secrets
import string
import time
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional

from PIL import Image, ImageOps, UnidentifiedImageError
from pillow_heif import register_heif_opener

logger = logging.getLogger(__name__)

# Lets Image.open decode HEIC/HEIF uploads
register_heif_opener()

ALLOWED_MIME_TYPES = ("image/jpeg", "image/png", "image/webp", "image/heic")

STORED_MIME_TYPE = "image/jpeg"

_NAME_ALPHABET = string.ascii_lowercase + string.digits

DEFAULT_MAX_PIXELS = 50_000_000


class ImageValidationError(ValueError):
    """Raised when an upload is not an acceptable image."""


@dataclass
class ProcessedImage:
    """A resized, re-encoded photo ready to be written."""
    data: bytes
    width: int
    height: int


def validate_upload(content_type: str, size: int, max_size: int) -> None:
    """
    Check an upload's declared type and size.

    Raises:
        ImageValidationError: if the type is not allowed or the file is too big
    """
    if content_type not in ALLOWED_MIME_TYPES:
        raise ImageValidationError(
            "Invalid file type. Only JPEG, PNG, WebP, and HEIC images are allowed."
        )
    if size > max_size:
        raise _too_large(max_size)


def read_upload(stream: BinaryIO, max_size: int) -> bytes:
    """
    Read an uploaded file, never pulling more than max_size + 1 bytes.

    Raises:
        ImageValidationError: if the stream holds more than max_size bytes
    """
    data = stream.read(max_size + 1)
    if len(data) > max_size:
        raise _too_large(max_size)
    return data


def _too_large(max_size: int) -> ImageValidationError:
    return ImageValidationError(
        f"File too large. Maximum size is {max_size // (1024 * 1024)}MB."
    )


def process_image(
    raw: bytes,
    bounds: tuple[int, int],
    quality: int = 85,
    max_pixels: int = DEFAULT_MAX_PIXELS,
) -> ProcessedImage:
    """
    Resize an image to fit inside bounds and re-encode it as JPEG.

    Aspect ratio is preserved and small images are never enlarged. The
    header is checked against max_pixels before any pixel data is decoded.

    Args:
        raw: Uploaded file bytes
        bounds: (max_width, max_height)
        quality: JPEG quality
        max_pixels: Largest accepted width x height

    Returns:
        ProcessedImage with the encoded bytes and final dimensions

    Raises:
        ImageValidationError: if the bytes cannot be decoded as an image or
            the image has too many pixels
    """
    try:
        with Image.open(io.BytesIO(raw)) as img:
            width, height = img.size
            if width * height > max_pixels:
                raise ImageValidationError(
                    f"Image dimensions too large ({width}x{height})."
                )
            # JPEG only: decode at a reduced scale still covering bounds
            img.draft("RGB", bounds)
            img = ImageOps.exif_transpose(img)
            img = img.convert("RGB")
            img.thumbnail(bounds, Image.Resampling.LANCZOS)

            buffer = io.BytesIO()
            img.save(buffer, format="JPEG", quality=quality)
            width, height = img.size
    except Image.DecompressionBombError as e:
        raise ImageValidationError("Image dimensions too large.") from e
    except (UnidentifiedImageError, OSError) as e:
        raise ImageValidationError("Unable to read image data.") from e

    return ProcessedImage(data=buffer.getvalue(), width=width, height=height)


def generate_filename() -> str:
    """Unique stored filename: <epoch ms>-<9 random chars>.jpg"""
    suffix = "".join(secrets.choice(_NAME_ALPHABET) for _ in range(9))
    return f"{int(time.time() * 1000)}-{suffix}.jpg"


def save_image(image: ProcessedImage, uploads_dir: Path) -> str:
    """Write a processed image under uploads_dir and return its filename."""
    uploads_dir.mkdir(parents=True, exist_ok=True)
    filename = generate_filename()
    (uploads_dir / filename).write_bytes(image.data)
    logger.debug(f"Saved {filename} ({image.width}x{image.height}, {len(image.data)} bytes)")
    return filename


def resolve_upload(uploads_dir: Path, filename: str) -> Optional[Path]:
    """
    Locate a stored file by name.

    Returns None for names that are missing or that point outside uploads_dir.
    """
    if not filename or Path(filename).name != filename or filename in (".", ".."):
        return None
    path = uploads_dir / filename
    if not path.is_file():
        return None
    return path
