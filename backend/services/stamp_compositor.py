"""
Stamp compositor.

Presses a colorized stamp onto a document so it reads as an inked, embossed
impression rather than a flat paste. The look is a fixed recipe of five draws
of the same rotated/scaled sprite, each with its own drop shadow, opacity and
blend mode (see EMBOSS_RECIPE). The recipe is plain data so individual layers
can be rendered and inspected on their own.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image, ImageFilter

from domain.models import BlendMode, LayerDescriptor, PixelBuffer, PlacedStamp
from services.blending import composite
from services.image_io import buffer_to_image
from services.pixels import to_u8
from settings import settings

logger = logging.getLogger(__name__)


EMBOSS_RECIPE: Tuple[LayerDescriptor, ...] = (
    # Depth cue: the stamp pressed into the paper
    LayerDescriptor(
        name="outer-shadow",
        opacity=0.7,
        blend_mode=BlendMode.NORMAL,
        shadow_offset=(6, 6),
        shadow_blur=12,
        shadow_color=(0, 0, 0, 0.6),
    ),
    # Beveled edge
    LayerDescriptor(
        name="inner-shadow",
        opacity=0.5,
        blend_mode=BlendMode.MULTIPLY,
        shadow_offset=(2, 2),
        shadow_blur=3,
        shadow_color=(0, 0, 0, 0.4),
    ),
    # Raised surface catching the light
    LayerDescriptor(
        name="highlight",
        opacity=0.25,
        blend_mode=BlendMode.SCREEN,
        shadow_offset=(-4, -4),
        shadow_blur=6,
        shadow_color=(255, 255, 255, 0.8),
    ),
    LayerDescriptor(
        name="inner-highlight",
        opacity=0.2,
        blend_mode=BlendMode.OVERLAY,
        shadow_offset=(-1, -1),
        shadow_blur=2,
        shadow_color=(255, 255, 255, 0.5),
    ),
    # The visible ink on paper
    LayerDescriptor(
        name="ink",
        opacity=0.75,
        blend_mode=BlendMode.MULTIPLY,
    ),
)


def sprite_size(width: int, height: int, base_size: int) -> Tuple[float, float]:
    """Nominal draw size: the longer edge maps to `base_size`, aspect kept."""
    ratio = width / height
    if ratio > 1:
        return float(base_size), base_size / ratio
    return base_size * ratio, float(base_size)


def build_sprite(stamp: PixelBuffer, rotation: float, scale: float, base_size: Optional[int] = None) -> Image.Image:
    """
    Scale and rotate the stamp around its center.

    Resampling happens on premultiplied alpha so transparent pixels do not
    bleed dark fringes into the ink. Raises ValueError when either edge of
    the scaled sprite would exceed 8x settings.MAX_SOURCE_EDGE.
    """
    base_size = base_size or settings.STAMP_BASE_SIZE
    draw_w, draw_h = sprite_size(stamp.width, stamp.height, base_size)
    target = (max(1, int(round(draw_w * scale))), max(1, int(round(draw_h * scale))))
    max_edge = settings.MAX_SOURCE_EDGE * 8
    if max(target) > max_edge:
        raise ValueError(f"sprite {target[0]}x{target[1]} exceeds the {max_edge}px edge limit")

    sprite = buffer_to_image(stamp).convert("RGBa")
    if sprite.size != target:
        sprite = sprite.resize(target, Image.Resampling.LANCZOS)
    if rotation % 360 != 0:
        # PIL rotates counter-clockwise; positive rotation is clockwise on screen
        sprite = sprite.rotate(-rotation, resample=Image.Resampling.BICUBIC, expand=True)
    return sprite.convert("RGBA")


def _to_float(image: Image.Image) -> np.ndarray:
    return np.asarray(image, dtype=np.float64) / 255.0


def _draw(canvas: np.ndarray, layer: np.ndarray, left: int, top: int, mode: BlendMode, opacity: float) -> None:
    """Composite `layer` onto `canvas` in place with its top-left at (left, top), clipped."""
    canvas_h, canvas_w = canvas.shape[:2]
    layer_h, layer_w = layer.shape[:2]
    x0, y0 = max(0, left), max(0, top)
    x1, y1 = min(canvas_w, left + layer_w), min(canvas_h, top + layer_h)
    if x0 >= x1 or y0 >= y1:
        return
    region = canvas[y0:y1, x0:x1]
    source = layer[y0 - top:y1 - top, x0 - left:x1 - left]
    canvas[y0:y1, x0:x1] = composite(region, source, mode, opacity)


def _shadow_layer(sprite_alpha: Image.Image, descriptor: LayerDescriptor) -> Tuple[np.ndarray, int]:
    """
    Blurred, tinted copy of the sprite's alpha.

    Returns the float RGBA layer and the padding added on each side. The blur
    uses sigma = shadow_blur / 2.
    """
    r, g, b, a = descriptor.shadow_color
    sigma = descriptor.shadow_blur / 2.0
    pad = int(math.ceil(sigma * 3.0)) + 1 if sigma > 0 else 0

    alpha = Image.new("L", (sprite_alpha.width + 2 * pad, sprite_alpha.height + 2 * pad), 0)
    alpha.paste(sprite_alpha, (pad, pad))
    if a != 1:
        alpha = alpha.point(lambda p: int(round(p * a)))
    if sigma > 0:
        alpha = alpha.filter(ImageFilter.GaussianBlur(radius=sigma))

    layer = np.empty((alpha.height, alpha.width, 4), dtype=np.float64)
    layer[..., 0] = r / 255.0
    layer[..., 1] = g / 255.0
    layer[..., 2] = b / 255.0
    layer[..., 3] = np.asarray(alpha, dtype=np.float64) / 255.0
    return layer, pad


def _press(
    canvas: np.ndarray,
    sprite: Image.Image,
    anchor: Tuple[float, float],
    recipe: Sequence[LayerDescriptor],
) -> None:
    """Run every recipe layer for one sprite centered on `anchor`."""
    left = int(round(anchor[0] - sprite.width / 2.0))
    top = int(round(anchor[1] - sprite.height / 2.0))
    sprite_pixels = _to_float(sprite)
    sprite_alpha = sprite.getchannel("A")

    for descriptor in recipe:
        if descriptor.shadow_color is not None and descriptor.shadow_color[3] > 0:
            shadow, pad = _shadow_layer(sprite_alpha, descriptor)
            dx, dy = descriptor.shadow_offset
            _draw(canvas, shadow, left + dx - pad, top + dy - pad, descriptor.blend_mode, descriptor.opacity)
        _draw(canvas, sprite_pixels, left, top, descriptor.blend_mode, descriptor.opacity)


def composite_stamp(
    document: PixelBuffer,
    stamp: PixelBuffer,
    anchor: Tuple[float, float],
    rotation: float = 0.0,
    scale: float = 1.0,
    recipe: Sequence[LayerDescriptor] = EMBOSS_RECIPE,
    base_size: Optional[int] = None,
) -> PixelBuffer:
    """
    Press one stamp onto a copy of `document` centered on `anchor` (pixels).

    Args:
        document: Target canvas (not modified)
        stamp: Colorized stamp image
        anchor: Center of the impression in document pixels
        rotation: Degrees, clockwise on screen
        scale: Multiplier on the nominal sprite size
        recipe: Layers to draw, in order
        base_size: Nominal sprite size (defaults to settings.STAMP_BASE_SIZE)

    Returns:
        New buffer with the document's dimensions
    """
    if not math.isfinite(scale) or scale <= 0:
        raise ValueError(f"scale must be positive, got {scale}")
    canvas = document.data.astype(np.float64) / 255.0
    sprite = build_sprite(stamp, rotation, scale, base_size)
    _press(canvas, sprite, anchor, recipe)
    return document.with_data(to_u8(canvas * 255.0))


def render_placements(
    document: PixelBuffer,
    placements: Sequence[PlacedStamp],
    recipe: Sequence[LayerDescriptor] = EMBOSS_RECIPE,
    base_size: Optional[int] = None,
) -> PixelBuffer:
    """Replay placements in insertion order; later stamps draw over earlier ones."""
    canvas = document.data.astype(np.float64) / 255.0
    for placed in placements:
        anchor = (placed.x_frac * document.width, placed.y_frac * document.height)
        sprite = build_sprite(placed.stamp, placed.rotation, placed.scale, base_size)
        _press(canvas, sprite, anchor, recipe)
    logger.info(
        "[composite] rendered %s stamp(s) onto %sx%s document",
        len(placements),
        document.width,
        document.height,
    )
    return document.with_data(to_u8(canvas * 255.0))


@dataclass
class StampingSession:
    """
    Placements accumulated against one document.

    Loading a new document clears the placements; `render()` replays them.
    """
    document: PixelBuffer
    placements: List[PlacedStamp] = field(default_factory=list)

    def load_document(self, document: PixelBuffer) -> None:
        self.document = document
        self.placements = []

    def place(
        self,
        stamp: PixelBuffer,
        x_frac: float,
        y_frac: float,
        rotation: float = 0.0,
        scale: float = 1.0,
    ) -> PlacedStamp:
        placed = PlacedStamp(stamp=stamp, x_frac=x_frac, y_frac=y_frac, rotation=rotation, scale=scale)
        self.placements.append(placed)
        return placed

    def clear(self) -> None:
        self.placements = []

    def render(self, recipe: Sequence[LayerDescriptor] = EMBOSS_RECIPE) -> PixelBuffer:
        return render_placements(self.document, self.placements, recipe=recipe)
