"""
Raster I/O around the pixel pipeline.

Decoding uploads into PixelBuffers, capping their size before extraction and
encoding results (PNG keeps alpha) at 1x/2x/4x for download.
"""
from __future__ import annotations

import io
import logging
from typing import Optional, Tuple

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from domain.models import PixelBuffer
from settings import settings

logger = logging.getLogger(__name__)

EXPORT_SCALES = (1, 2, 4)
EXPORT_FORMATS = {
    "png": "PNG",
    "jpeg": "JPEG",
    "jpg": "JPEG",
    "webp": "WEBP",
}
MEDIA_TYPES = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
}
JPEG_QUALITY = 95
PAPER_WHITE = (255, 255, 255, 255)


def buffer_from_image(image: Image.Image) -> PixelBuffer:
    """Copy a PIL image into an RGBA PixelBuffer."""
    if image.mode != "RGBA":
        image = image.convert("RGBA")
    return PixelBuffer.from_array(np.array(image, dtype=np.uint8))


def buffer_to_image(buffer: PixelBuffer) -> Image.Image:
    return Image.fromarray(np.ascontiguousarray(buffer.data))


def decode_image(data: bytes) -> Image.Image:
    """
    Decode uploaded bytes into an upright RGBA image.

    Raises:
        ValueError: If the bytes are not a readable image
    """
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Failed to decode image: {e}") from e
    img = ImageOps.exif_transpose(img)
    if img.mode != "RGBA":
        img = img.convert("RGBA")
    return img


def fit_within(width: int, height: int, max_edge: int) -> Tuple[int, int]:
    """
    Size with the longer edge capped at `max_edge`, keeping aspect ratio.
    The scaled edge is truncated; images already small enough are kept.
    """
    if width > height:
        if width > max_edge:
            return max_edge, max(1, int(height * max_edge / width))
    elif height > max_edge:
        return max(1, int(width * max_edge / height)), max_edge
    return width, height


def prepare_source(image: Image.Image, max_edge: Optional[int] = None) -> PixelBuffer:
    """Downscale a decoded photo for extraction and return it as a buffer."""
    max_edge = max_edge or settings.MAX_SOURCE_EDGE
    if image.mode != "RGBA":
        image = image.convert("RGBA")
    target = fit_within(image.width, image.height, max_edge)
    if target != image.size:
        logger.debug("[export] downscaling source %sx%s -> %sx%s", image.width, image.height, *target)
        image = image.resize(target, Image.Resampling.LANCZOS)
    return buffer_from_image(image)


def load_source_bytes(data: bytes, max_edge: Optional[int] = None) -> PixelBuffer:
    return prepare_source(decode_image(data), max_edge=max_edge)


def scale_buffer(buffer: PixelBuffer, scale: int) -> PixelBuffer:
    """Upscale by an export multiplier (1, 2 or 4)."""
    if scale not in EXPORT_SCALES:
        raise ValueError(f"Export scale must be one of {EXPORT_SCALES}, got {scale}")
    if scale == 1:
        return buffer
    image = buffer_to_image(buffer).resize(
        (buffer.width * scale, buffer.height * scale), Image.Resampling.BILINEAR
    )
    return buffer_from_image(image)


def resolve_format(fmt: str) -> str:
    pil_format = EXPORT_FORMATS.get(fmt.lower().lstrip("."))
    if pil_format is None:
        raise ValueError(f"Unsupported export format {fmt!r}; expected one of {sorted(set(EXPORT_FORMATS))}")
    return pil_format


def encode_buffer(
    buffer: PixelBuffer,
    fmt: str = "png",
    scale: int = 1,
    transparent_background: bool = True,
) -> bytes:
    """
    Encode a buffer for download.

    JPEG has no alpha, so it is always flattened onto white; other non-PNG
    formats are flattened when `transparent_background` is False.
    """
    pil_format = resolve_format(fmt)
    image = buffer_to_image(scale_buffer(buffer, scale))

    flatten = pil_format == "JPEG" or (pil_format != "PNG" and not transparent_background)
    if flatten:
        paper = Image.new("RGBA", image.size, PAPER_WHITE)
        image = Image.alpha_composite(paper, image).convert("RGB")

    out = io.BytesIO()
    save_kwargs = {"quality": JPEG_QUALITY} if pil_format in ("JPEG", "WEBP") else {}
    image.save(out, format=pil_format, **save_kwargs)
    logger.info("[export] encoded %s %sx%s (%sx)", pil_format, image.width, image.height, scale)
    return out.getvalue()
