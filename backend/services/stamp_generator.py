"""
Stamp generation: extraction, ink color and opacity in one call.
"""
from __future__ import annotations

import logging
from typing import Optional

from domain.models import ExtractionOptions, PixelBuffer, StampStyle
from services.feature_extraction import extract_features
from services.ink import apply_ink_color, apply_ink_opacity
from services.stamp_frame import render_style_frame
from services.stamp_styles import style_to_options

logger = logging.getLogger(__name__)


def generate_stamp(
    source: PixelBuffer,
    options: ExtractionOptions,
    ink_color: str,
    ink_opacity: float = 100,
    strict_color: Optional[bool] = None,
) -> PixelBuffer:
    """
    Extract an ink mask from `source` and tint it.

    Args:
        source: Prepared source photo (never modified)
        options: Extraction parameters
        ink_color: "#rrggbb" ink color
        ink_opacity: 0..100, scales every alpha (rounded down)
        strict_color: Override settings.STRICT_INK_COLORS for this call

    Returns:
        Colorized stamp with the source's dimensions
    """
    mask = extract_features(source, options)
    stamp = apply_ink_color(mask, ink_color, strict=strict_color)
    if ink_opacity != 100:
        stamp = apply_ink_opacity(stamp, ink_opacity)
    return stamp


def generate_stamp_from_style(
    source: PixelBuffer,
    style: StampStyle,
    brightness: float = 0.0,
    frame: bool = False,
) -> PixelBuffer:
    """Generate a stamp with a preset's parameters, optionally baking its frame."""
    stamp = generate_stamp(
        source,
        style_to_options(style, brightness=brightness),
        style.ink_color,
        ink_opacity=style.ink_opacity,
    )
    if frame:
        stamp = render_style_frame(stamp, style)
    logger.info(
        "[extract] generated stamp style=%s mode=%s size=%sx%s framed=%s",
        style.id,
        style.extraction_mode.value,
        stamp.width,
        stamp.height,
        frame,
    )
    return stamp
