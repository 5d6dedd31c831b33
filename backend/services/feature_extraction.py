"""
Feature extraction pipeline.

Sequences the shared pre-processing (blur, then contrast/brightness) and the
mode-specific extractor. The anime mode does its own dual blur and works on
the untouched source.
"""
from __future__ import annotations

import logging
import time

from domain.models import ExtractionMode, ExtractionOptions, PixelBuffer
from services.convolution import gaussian_blur
from services.extractors import get_extractor
from services.tone import adjust_contrast_brightness

logger = logging.getLogger(__name__)


def preprocess(buffer: PixelBuffer, options: ExtractionOptions) -> PixelBuffer:
    """Blur and tone-adjust ahead of extraction (no-op for anime)."""
    if options.mode == ExtractionMode.ANIME:
        return buffer
    if options.blur > 0:
        buffer = gaussian_blur(buffer, options.blur)
    if options.contrast != 1 or options.brightness != 0:
        buffer = adjust_contrast_brightness(buffer, options.contrast, options.brightness)
    return buffer


def extract_features(source: PixelBuffer, options: ExtractionOptions) -> PixelBuffer:
    """
    Turn a source photo into an ink mask.

    Args:
        source: RGBA source buffer (never modified)
        options: Extraction mode and parameters

    Returns:
        Ink mask with the same dimensions as `source`

    Raises:
        ValueError: On an empty buffer, unsupported mode or a contrast value
            at the remap singularity
    """
    if source.width <= 0 or source.height <= 0:
        raise ValueError(f"Cannot extract features from an empty {source.width}x{source.height} buffer")
    extractor = get_extractor(options.mode)

    started = time.perf_counter()
    prepared = preprocess(source, options)
    mask = extractor(prepared, options)
    if mask.size != source.size:
        raise RuntimeError(
            f"Extractor for {options.mode.value} changed dimensions {source.size} -> {mask.size}"
        )
    logger.debug(
        "[extract] mode=%s size=%sx%s threshold=%s took=%.1fms",
        options.mode.value,
        source.width,
        source.height,
        options.threshold,
        (time.perf_counter() - started) * 1000.0,
    )
    return mask
