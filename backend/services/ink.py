"""
Ink colorizer: recolor an extracted mask while keeping its alpha as intensity.
"""
from __future__ import annotations

import logging
import re
from typing import Optional, Tuple

import numpy as np

from domain.models import PixelBuffer
from settings import settings

logger = logging.getLogger(__name__)

_HEX_COLOR_RE = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)

RGB = Tuple[int, int, int]


def parse_hex_color(value: str, strict: Optional[bool] = None) -> RGB:
    """
    Parse "#rrggbb" (leading # optional, case-insensitive) into an RGB tuple.

    In strict mode a malformed value raises ValueError; otherwise it falls
    back to black and logs a warning. `strict=None` follows
    settings.STRICT_INK_COLORS.
    """
    if strict is None:
        strict = settings.STRICT_INK_COLORS
    match = _HEX_COLOR_RE.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        if strict:
            raise ValueError(f"Invalid ink color {value!r}; expected a hex color like '#b91c1c'")
        logger.warning("[ink] invalid color %r, falling back to black", value)
        return (0, 0, 0)
    return tuple(int(group, 16) for group in match.groups())  # type: ignore[return-value]


def apply_ink_color(mask: PixelBuffer, hex_color: str, strict: Optional[bool] = None) -> PixelBuffer:
    """
    Replace RGB with the ink color wherever alpha > 0.

    Alpha is preserved exactly and fully transparent pixels are untouched.
    """
    rgb = parse_hex_color(hex_color, strict=strict)
    inked = mask.alpha > 0
    out = mask.data.copy()
    out[inked, 0] = rgb[0]
    out[inked, 1] = rgb[1]
    out[inked, 2] = rgb[2]
    return mask.with_data(out)


def apply_ink_opacity(buffer: PixelBuffer, opacity_percent: float) -> PixelBuffer:
    """Scale every alpha by opacity_percent/100, rounding down."""
    if not 0 <= opacity_percent <= 100:
        raise ValueError(f"ink opacity must be within 0..100, got {opacity_percent}")
    out = buffer.data.copy()
    if opacity_percent != 100:
        scaled = np.floor(buffer.alpha.astype(np.float64) * (opacity_percent / 100.0))
        out[:, :, 3] = scaled.astype(np.uint8)
    return buffer.with_data(out)
