"""
Convolution stage: separable Gaussian blur and 3x3 Sobel gradients.

All operations are vectorised over the whole buffer with numpy slicing, so
rows are independent and the work can be split across scanlines if needed.
"""
from __future__ import annotations

import math
from typing import Tuple

import numpy as np

from domain.models import PixelBuffer
from services.pixels import rgb_mean, to_u8


def gaussian_kernel(radius: float) -> np.ndarray:
    """
    Unnormalised Gaussian weights for a blur of the given radius.

    Size is 2*ceil(radius)+1 and sigma is radius/3.
    """
    if radius <= 0:
        raise ValueError(f"Gaussian kernel radius must be positive, got {radius}")
    size = int(math.ceil(radius)) * 2 + 1
    sigma = radius / 3.0
    offsets = np.arange(size, dtype=np.float64) - (size // 2)
    return np.exp(-(offsets * offsets) / (2.0 * sigma * sigma))


def _convolve_axis(values: np.ndarray, kernel: np.ndarray, axis: int) -> np.ndarray:
    """1D convolution along `axis` with edge-clamped sampling."""
    half = len(kernel) // 2
    n = values.shape[axis]
    pad = [(0, 0)] * values.ndim
    pad[axis] = (half, half)
    padded = np.pad(values, pad, mode="edge")

    acc = np.zeros(values.shape, dtype=np.float64)
    for k, weight in enumerate(kernel):
        window = np.take(padded, np.arange(k, k + n), axis=axis)
        acc += weight * window
    return acc / kernel.sum()


def gaussian_blur(buffer: PixelBuffer, radius: float) -> PixelBuffer:
    """
    Two-pass (horizontal then vertical) Gaussian blur of all four channels.

    Samples outside the buffer clamp to the nearest edge pixel. A radius of
    zero or less, or one too small to resolve a kernel, returns the input
    buffer untouched.
    """
    sigma = radius / 3.0
    if radius <= 0 or sigma * sigma == 0:
        # sigma squared underflows for tiny radii; the limit is an identity blur
        return buffer
    kernel = gaussian_kernel(radius)
    horizontal = to_u8(_convolve_axis(buffer.data.astype(np.float64), kernel, axis=1))
    vertical = to_u8(_convolve_axis(horizontal.astype(np.float64), kernel, axis=0))
    return buffer.with_data(vertical)


def sobel_gradients(channel: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Horizontal and vertical Sobel responses for the interior of a 2D array.

    Returns two (H-2, W-2) float arrays; the outermost ring has no full 3x3
    neighbourhood and is not represented.
    """
    a = channel.astype(np.float64)
    gx = (a[:-2, 2:] + 2.0 * a[1:-1, 2:] + a[2:, 2:]) - (a[:-2, :-2] + 2.0 * a[1:-1, :-2] + a[2:, :-2])
    gy = (a[2:, :-2] + 2.0 * a[2:, 1:-1] + a[2:, 2:]) - (a[:-2, :-2] + 2.0 * a[:-2, 1:-1] + a[:-2, 2:])
    return gx, gy


def gradient_buffer(buffer: PixelBuffer, magnitude: np.ndarray) -> PixelBuffer:
    """
    Build an opaque gray buffer from an interior magnitude map.

    The border ring stays all-zero (transparent black).
    """
    out = np.zeros_like(buffer.data)
    if magnitude.size:
        value = to_u8(np.minimum(255.0, magnitude))
        out[1:-1, 1:-1, 0] = value
        out[1:-1, 1:-1, 1] = value
        out[1:-1, 1:-1, 2] = value
        out[1:-1, 1:-1, 3] = 255
    return buffer.with_data(out)


def sobel_magnitude(buffer: PixelBuffer, strength: float = 1.0) -> PixelBuffer:
    """
    Sobel edge magnitude of the grayscale (channel mean) image.

    magnitude = sqrt(gx^2 + gy^2) * strength, clamped to 255.
    """
    if buffer.width < 3 or buffer.height < 3:
        return buffer.with_data(np.zeros_like(buffer.data))
    gx, gy = sobel_gradients(rgb_mean(buffer.data))
    return gradient_buffer(buffer, np.sqrt(gx * gx + gy * gy) * strength)
