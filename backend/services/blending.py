"""
Blend modes and source-over compositing on float RGBA arrays.

Arrays are (H, W, 4) float64 with straight (non-premultiplied) color and all
channels in 0..1. Separable blend modes follow the usual compositing model:
the blended color is mixed with the raw source by backdrop alpha, then the
result is composited source-over.
"""
from __future__ import annotations

from typing import Callable, Dict

import numpy as np

from domain.models import BlendMode

BlendFunction = Callable[[np.ndarray, np.ndarray], np.ndarray]


def _normal(backdrop: np.ndarray, source: np.ndarray) -> np.ndarray:
    return source


def _multiply(backdrop: np.ndarray, source: np.ndarray) -> np.ndarray:
    return backdrop * source


def _screen(backdrop: np.ndarray, source: np.ndarray) -> np.ndarray:
    return backdrop + source - backdrop * source


def _overlay(backdrop: np.ndarray, source: np.ndarray) -> np.ndarray:
    # Hard light with the layers swapped: the backdrop picks multiply or screen.
    doubled = 2.0 * backdrop
    return np.where(
        backdrop <= 0.5,
        source * doubled,
        _screen(doubled - 1.0, source),
    )


_BLEND_FUNCTIONS: Dict[BlendMode, BlendFunction] = {
    BlendMode.NORMAL: _normal,
    BlendMode.MULTIPLY: _multiply,
    BlendMode.SCREEN: _screen,
    BlendMode.OVERLAY: _overlay,
}


def blend_colors(backdrop: np.ndarray, source: np.ndarray, mode: BlendMode) -> np.ndarray:
    """B(Cb, Cs) for a separable blend mode."""
    try:
        func = _BLEND_FUNCTIONS[BlendMode(mode)]
    except (KeyError, ValueError):
        raise ValueError(f"Unsupported blend mode: {mode!r}") from None
    return func(backdrop, source)


def composite(backdrop: np.ndarray, source: np.ndarray, mode: BlendMode, opacity: float = 1.0) -> np.ndarray:
    """
    Draw `source` over `backdrop` (same shape) with a blend mode and a global
    opacity multiplier. Returns a new array.
    """
    if not 0.0 <= opacity <= 1.0:
        raise ValueError(f"opacity must be within 0..1, got {opacity}")
    cb = backdrop[..., :3]
    ab = backdrop[..., 3:4]
    cs = source[..., :3]
    a_s = source[..., 3:4] * opacity

    mixed = (1.0 - ab) * cs + ab * blend_colors(cb, cs, mode)
    a_out = a_s + ab * (1.0 - a_s)
    premultiplied = a_s * mixed + ab * cb * (1.0 - a_s)
    c_out = np.divide(premultiplied, a_out, out=np.zeros_like(premultiplied), where=a_out > 0)
    return np.concatenate([np.clip(c_out, 0.0, 1.0), np.clip(a_out, 0.0, 1.0)], axis=-1)
