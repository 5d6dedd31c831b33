"""
Small numpy helpers shared by the pixel pipeline stages.

Stages work in float internally and quantize back to uint8 between steps, so
each intermediate result is exactly what an 8-bit RGBA buffer can hold.
"""
from __future__ import annotations

import numpy as np


def to_u8(values: np.ndarray) -> np.ndarray:
    """Round half-to-even and clamp into 0..255 as uint8."""
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def rgb_mean(data: np.ndarray) -> np.ndarray:
    """Unweighted (R+G+B)/3 per pixel as float64, shape (H, W)."""
    return data[:, :, :3].astype(np.float64).sum(axis=2) / 3.0


def ink_pixels(data: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """
    Mark `mask` pixels as opaque black ink and make every other pixel fully
    transparent. RGB of non-ink pixels is left as-is so the result can be
    re-thresholded.
    """
    out = data.copy()
    out[mask] = (0, 0, 0, 255)
    out[~mask, 3] = 0
    return out
