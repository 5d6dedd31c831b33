"""
Edge/shape extractors.

Each extraction mode has exactly one extractor registered against its
ExtractionMode tag. Extractors take an already blurred/tone-adjusted buffer
and return an ink mask of the same size: opaque black where there is ink and
alpha 0 elsewhere (the `detailed` mode returns graded alpha instead).
"""
from __future__ import annotations

from typing import Callable, Dict

import numpy as np

from domain.models import ExtractionMode, ExtractionOptions, PixelBuffer
from services.convolution import gaussian_blur, gradient_buffer, sobel_gradients, sobel_magnitude
from services.pixels import rgb_mean, to_u8
from services.tone import apply_threshold, to_grayscale


# Type alias for extractor functions
Extractor = Callable[[PixelBuffer, ExtractionOptions], PixelBuffer]


# Registry of extractors by mode
_extractor_registry: Dict[ExtractionMode, Extractor] = {}

# Difference-of-Gaussians tuning for line art
DOG_BASE_SIGMA = 0.4
DOG_SIGMA_RATIO = 1.4
DOG_SENSITIVITY = 12.0
DOG_WHITE_CUTOFF = 240.0

# Colour edge boost: pow(magnitude, 0.6) * strength * 4
COLOR_EDGE_POWER = 0.6
COLOR_EDGE_GAIN = 4.0
ANIMAL_STRENGTH_MULTIPLIER = 2.0


def register_extractor(mode: ExtractionMode):
    """Decorator to register the extractor for a mode."""
    def decorator(func: Extractor) -> Extractor:
        _extractor_registry[mode] = func
        return func
    return decorator


def get_extractor(mode: ExtractionMode) -> Extractor:
    """
    Look up the extractor for a mode.

    Raises:
        ValueError: If the mode is not a known ExtractionMode
    """
    try:
        mode = ExtractionMode(mode)
    except ValueError:
        raise ValueError(f"Unsupported extraction mode: {mode!r}") from None
    return _extractor_registry[mode]


def registered_modes() -> list[ExtractionMode]:
    return list(_extractor_registry)


# ============================================
# Extractor implementations
# ============================================

@register_extractor(ExtractionMode.EDGE)
def extract_edges(buffer: PixelBuffer, options: ExtractionOptions) -> PixelBuffer:
    """
    Luminance Sobel edges.

    Ink is where the gradient magnitude rises above 255-threshold; `invert`
    flips that so flat regions become ink instead.
    """
    gray = to_grayscale(buffer)
    magnitude = sobel_magnitude(gray, options.edge_strength)
    return apply_threshold(magnitude, 255 - options.threshold, invert=not options.invert)


@register_extractor(ExtractionMode.SILHOUETTE)
def extract_silhouette(buffer: PixelBuffer, options: ExtractionOptions) -> PixelBuffer:
    """Filled shape: everything darker (or lighter, if inverted) than threshold."""
    return apply_threshold(to_grayscale(buffer), options.threshold, options.invert)


@register_extractor(ExtractionMode.OUTLINE)
def extract_outline(buffer: PixelBuffer, options: ExtractionOptions) -> PixelBuffer:
    """
    Boundary of the dark region: "on" pixels with at least one 4-connected
    "off" neighbour. The outermost ring of the image is never ink.
    """
    binary = rgb_mean(to_grayscale(buffer).data) < options.threshold
    out = np.zeros_like(buffer.data)
    if buffer.width < 3 or buffer.height < 3:
        return buffer.with_data(out)

    center = binary[1:-1, 1:-1]
    has_off_neighbor = (
        ~binary[:-2, 1:-1]
        | ~binary[2:, 1:-1]
        | ~binary[1:-1, :-2]
        | ~binary[1:-1, 2:]
    )
    edge = center & has_off_neighbor
    interior = out[1:-1, 1:-1]
    interior[edge] = (0, 0, 0, 255)
    return buffer.with_data(out)


@register_extractor(ExtractionMode.DETAILED)
def extract_detailed(buffer: PixelBuffer, options: ExtractionOptions) -> PixelBuffer:
    """
    Tonal rendering: gamma-remap the gray level by 1/contrast, then give
    pixels below threshold an alpha proportional to how far below they are.
    """
    gray = to_grayscale(buffer)
    value = np.power(rgb_mean(gray.data) / 255.0, 1.0 / options.contrast) * 255.0
    threshold = float(options.threshold)

    out = gray.data.copy()
    ink = value < threshold
    out[~ink, 3] = 0
    if ink.any():
        strength = np.clip((threshold - value[ink]) / threshold, 0.0, 1.0)
        out[ink, 0] = 0
        out[ink, 1] = 0
        out[ink, 2] = 0
        out[ink, 3] = np.floor(strength * 255.0).astype(np.uint8)
    return buffer.with_data(out)


def difference_of_gaussians(buffer: PixelBuffer, sigma1: float, sigma2: float, sensitivity: float) -> PixelBuffer:
    """
    Line art from two blurs: luma = 255 - (g1 - g2) * sensitivity.

    Near-white results (> 240) snap to pure white to drop speckle noise.
    """
    fine = rgb_mean(gaussian_blur(buffer, sigma1).data)
    coarse = rgb_mean(gaussian_blur(buffer, sigma2).data)
    value = 255.0 - (fine - coarse) * sensitivity
    value[value > DOG_WHITE_CUTOFF] = 255.0

    out = np.empty_like(buffer.data)
    luma = to_u8(value)
    out[:, :, 0] = luma
    out[:, :, 1] = luma
    out[:, :, 2] = luma
    out[:, :, 3] = 255
    return buffer.with_data(out)


@register_extractor(ExtractionMode.ANIME)
def extract_anime(buffer: PixelBuffer, options: ExtractionOptions) -> PixelBuffer:
    sigma1 = max(DOG_BASE_SIGMA, options.blur * DOG_BASE_SIGMA + DOG_BASE_SIGMA)
    sigma2 = sigma1 * DOG_SIGMA_RATIO
    lines = difference_of_gaussians(buffer, sigma1, sigma2, DOG_SENSITIVITY * options.edge_strength)
    return apply_threshold(lines, 255 - options.threshold, invert=True)


def color_edges(buffer: PixelBuffer, strength: float) -> PixelBuffer:
    """
    Vector gradient over R, G and B so colour boundaries of equal luminance
    still register. The combined magnitude is lifted with a sub-linear power
    before scaling, which brings faint texture into range.
    """
    if buffer.width < 3 or buffer.height < 3:
        return buffer.with_data(np.zeros_like(buffer.data))
    squared = None
    for channel in range(3):
        gx, gy = sobel_gradients(buffer.data[:, :, channel])
        part = gx * gx + gy * gy
        squared = part if squared is None else squared + part
    boosted = np.power(np.sqrt(squared), COLOR_EDGE_POWER) * (strength * COLOR_EDGE_GAIN)
    return gradient_buffer(buffer, boosted)


@register_extractor(ExtractionMode.HUMAN)
def extract_human(buffer: PixelBuffer, options: ExtractionOptions) -> PixelBuffer:
    edges = color_edges(buffer, options.edge_strength)
    return apply_threshold(edges, options.threshold, invert=True)


@register_extractor(ExtractionMode.ANIMAL)
def extract_animal(buffer: PixelBuffer, options: ExtractionOptions) -> PixelBuffer:
    edges = color_edges(buffer, options.edge_strength * ANIMAL_STRENGTH_MULTIPLIER)
    return apply_threshold(edges, options.threshold, invert=True)


_unregistered = set(ExtractionMode) - set(_extractor_registry)
if _unregistered:
    raise RuntimeError(f"No extractor registered for modes: {sorted(m.value for m in _unregistered)}")
