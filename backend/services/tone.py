"""
Tone stage: grayscale reduction, contrast/brightness remap and thresholding.
"""
from __future__ import annotations

import numpy as np

from domain.models import PixelBuffer
from services.pixels import ink_pixels, rgb_mean, to_u8

LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)

# The contrast factor divides by (259 - 255*contrast).
CONTRAST_SINGULARITY = 259.0 / 255.0
CONTRAST_SINGULARITY_TOLERANCE = 1e-3


def to_grayscale(buffer: PixelBuffer) -> PixelBuffer:
    """Write luma (0.299R + 0.587G + 0.114B) to all color channels; alpha untouched."""
    luma = to_u8(buffer.data[:, :, :3].astype(np.float64) @ LUMA_WEIGHTS)
    out = buffer.data.copy()
    out[:, :, 0] = luma
    out[:, :, 1] = luma
    out[:, :, 2] = luma
    return buffer.with_data(out)


def contrast_factor(contrast: float) -> float:
    """
    factor = 259*(255c + 255) / (255*(259 - 255c)).

    Raises ValueError when `contrast` sits on the pole at 259/255.
    """
    if abs(contrast - CONTRAST_SINGULARITY) < CONTRAST_SINGULARITY_TOLERANCE:
        raise ValueError(
            f"contrast {contrast} is too close to {CONTRAST_SINGULARITY:.4f}, "
            "where the contrast remap is undefined"
        )
    return (259.0 * (contrast * 255.0 + 255.0)) / (255.0 * (259.0 - contrast * 255.0))


def adjust_contrast_brightness(buffer: PixelBuffer, contrast: float, brightness: float) -> PixelBuffer:
    """Apply value' = factor*(value-128) + 128 + brightness to R, G and B."""
    factor = contrast_factor(contrast)
    rgb = buffer.data[:, :, :3].astype(np.float64)
    out = buffer.data.copy()
    out[:, :, :3] = to_u8(factor * (rgb - 128.0) + 128.0 + brightness)
    return buffer.with_data(out)


def apply_threshold(buffer: PixelBuffer, threshold: float, invert: bool) -> PixelBuffer:
    """
    Binary ink mask on the channel mean.

    Ink is gray < threshold, or gray > threshold when `invert` is set.
    """
    gray = rgb_mean(buffer.data)
    mask = gray > threshold if invert else gray < threshold
    return buffer.with_data(ink_pixels(buffer.data, mask))
