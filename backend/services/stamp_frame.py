"""
Stamp frame renderer.

Bakes a style's shape and border around an ink image: the ink is fitted into
the shape, clipped to it, and the border is stroked in the ink color. Every
shape is described as a box with per-corner elliptical radii, so one outline
routine serves circles, ovals, rounded boxes and the badge.
"""
from __future__ import annotations

import math
from typing import List, Sequence, Tuple

from PIL import Image, ImageDraw

from domain.models import BorderStyle, PixelBuffer, StampShape, StampStyle
from services.image_io import buffer_from_image, buffer_to_image
from services.ink import parse_hex_color

Point = Tuple[float, float]
Box = Tuple[float, float, float, float]
# (rx, ry) for top-left, top-right, bottom-right, bottom-left
CornerRadii = Tuple[Tuple[float, float], Tuple[float, float], Tuple[float, float], Tuple[float, float]]

STANDARD_FRAME_SIZE = (380, 380)
OVAL_FRAME_SIZE = (420, 320)
FIT_PADDING = 24
ARC_SEGMENTS = 24


def frame_size(shape: StampShape, ink_width: int, ink_height: int) -> Tuple[int, int]:
    if shape == StampShape.OVAL:
        return OVAL_FRAME_SIZE
    if shape == StampShape.FIT:
        return ink_width + 2 * FIT_PADDING, ink_height + 2 * FIT_PADDING
    return STANDARD_FRAME_SIZE


def corner_radii(shape: StampShape, width: float, height: float) -> CornerRadii:
    half = (width / 2.0, height / 2.0)
    if shape in (StampShape.CIRCLE, StampShape.OVAL):
        return (half, half, half, half)
    if shape == StampShape.SQUARE:
        return ((4, 4),) * 4  # type: ignore[return-value]
    if shape == StampShape.ROUNDED:
        return ((40, 40),) * 4  # type: ignore[return-value]
    if shape == StampShape.BADGE:
        return ((12, 12), (12, 12), half, half)
    return ((0, 0),) * 4  # type: ignore[return-value]


def _clamp_radii(radii: CornerRadii, width: float, height: float) -> CornerRadii:
    # Shrink all radii together when adjacent corners would overlap.
    (tl, tr, br, bl) = radii
    factor = 1.0
    for total, side in (
        (tl[0] + tr[0], width),
        (bl[0] + br[0], width),
        (tl[1] + bl[1], height),
        (tr[1] + br[1], height),
    ):
        if total > side > 0:
            factor = min(factor, side / total)
    return tuple((max(0.0, rx * factor), max(0.0, ry * factor)) for rx, ry in radii)  # type: ignore[return-value]


def outline_points(box: Box, radii: CornerRadii) -> List[Point]:
    """Closed clockwise outline (first point not repeated) of a rounded box."""
    x0, y0, x1, y1 = box
    radii = _clamp_radii(radii, x1 - x0, y1 - y0)
    (tl, tr, br, bl) = radii
    corners = (
        ((x0 + tl[0], y0 + tl[1]), tl, math.pi),
        ((x1 - tr[0], y0 + tr[1]), tr, 1.5 * math.pi),
        ((x1 - br[0], y1 - br[1]), br, 0.0),
        ((x0 + bl[0], y1 - bl[1]), bl, 0.5 * math.pi),
    )
    points: List[Point] = []
    for (cx, cy), (rx, ry), start in corners:
        if rx <= 0 or ry <= 0:
            points.append((cx, cy))
            continue
        for i in range(ARC_SEGMENTS + 1):
            theta = start + (math.pi / 2.0) * (i / ARC_SEGMENTS)
            points.append((cx + rx * math.cos(theta), cy + ry * math.sin(theta)))
    return points


def _offset(box: Box, radii: CornerRadii, amount: float) -> Tuple[Box, CornerRadii]:
    """Grow (positive) or shrink (negative) a rounded box uniformly."""
    x0, y0, x1, y1 = box
    grown = (x0 - amount, y0 - amount, x1 + amount, y1 + amount)
    adjusted = tuple(
        ((rx + amount) if rx > 0 else 0.0, (ry + amount) if ry > 0 else 0.0) for rx, ry in radii
    )
    return grown, adjusted  # type: ignore[return-value]


def _walk(points: Sequence[Point], spacing: float) -> List[Tuple[Point, Point]]:
    """Points every `spacing` along the closed polyline, with the local direction."""
    closed = list(points) + [points[0]]
    samples: List[Tuple[Point, Point]] = []
    carry = 0.0
    for (ax, ay), (bx, by) in zip(closed, closed[1:]):
        seg = math.hypot(bx - ax, by - ay)
        if seg == 0:
            continue
        ux, uy = (bx - ax) / seg, (by - ay) / seg
        pos = carry
        while pos < seg:
            samples.append(((ax + ux * pos, ay + uy * pos), (ux, uy)))
            pos += spacing
        carry = pos - seg
    return samples


def _stroke(draw: ImageDraw.ImageDraw, points: Sequence[Point], width: float, color) -> None:
    w = max(1, int(round(width)))
    draw.line(list(points) + [points[0]], fill=color, width=w, joint="curve")


def _dots(draw: ImageDraw.ImageDraw, points: Sequence[Point], diameter: float, color) -> None:
    radius = max(0.5, diameter / 2.0)
    for (x, y), _ in _walk(points, spacing=max(2.0, diameter * 2.0)):
        draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=color)


def _dashes(draw: ImageDraw.ImageDraw, points: Sequence[Point], width: float, color) -> None:
    dash = max(2.0, width * 3.0)
    w = max(1, int(round(width)))
    for (x, y), (ux, uy) in _walk(points, spacing=dash * 2.0):
        draw.line((x, y, x + ux * dash, y + uy * dash), fill=color, width=w)


def border_margin(border_style: BorderStyle, border_width: int) -> int:
    """Space needed outside the frame box for outlines."""
    if border_style in (BorderStyle.DOUBLE, BorderStyle.DECORATIVE):
        return 2 * border_width + 1
    return 0


def render_stamp_frame(
    ink: PixelBuffer,
    shape: StampShape,
    border_style: BorderStyle,
    border_width: int,
    ink_color: str,
) -> PixelBuffer:
    """
    Place an ink image inside a shaped, bordered stamp face.

    The result is a new transparent buffer sized for the shape (plus room for
    outer outlines); the ink is scaled to fit inside the border and clipped
    to the shape.
    """
    shape = StampShape(shape)
    border_style = BorderStyle(border_style)
    if border_width < 0:
        raise ValueError(f"border_width must be non-negative, got {border_width}")
    width = border_width if border_style != BorderStyle.NONE else 0
    color = parse_hex_color(ink_color) + (255,)

    fw, fh = frame_size(shape, ink.width, ink.height)
    margin = border_margin(border_style, width)
    canvas_size = (fw + 2 * margin, fh + 2 * margin)
    box: Box = (margin, margin, margin + fw, margin + fh)
    radii = corner_radii(shape, fw, fh)

    # Ink fitted into the content box, centered
    content_w, content_h = max(1, fw - 2 * width), max(1, fh - 2 * width)
    fit = min(content_w / ink.width, content_h / ink.height)
    ink_size = (max(1, int(round(ink.width * fit))), max(1, int(round(ink.height * fit))))
    ink_img = buffer_to_image(ink).convert("RGBa").resize(ink_size, Image.Resampling.LANCZOS).convert("RGBA")
    placed = Image.new("RGBA", canvas_size, (0, 0, 0, 0))
    placed.paste(
        ink_img,
        (int(margin + (fw - ink_size[0]) / 2.0), int(margin + (fh - ink_size[1]) / 2.0)),
    )

    clip = Image.new("L", canvas_size, 0)
    ImageDraw.Draw(clip).polygon(outline_points(box, radii), fill=255)
    face = Image.new("RGBA", canvas_size, (0, 0, 0, 0))
    face.paste(placed, (0, 0), clip)

    if width > 0:
        draw = ImageDraw.Draw(face)
        centerline = outline_points(*_offset(box, radii, -width / 2.0))
        if border_style == BorderStyle.SINGLE:
            _stroke(draw, centerline, width, color)
        elif border_style == BorderStyle.DOTTED:
            _dots(draw, centerline, width, color)
        elif border_style == BorderStyle.DOUBLE:
            line = width / 3.0
            _stroke(draw, outline_points(*_offset(box, radii, -line / 2.0)), line, color)
            _stroke(draw, outline_points(*_offset(box, radii, -(width - line / 2.0))), line, color)
            _stroke(draw, outline_points(*_offset(box, radii, width + width / 2.0)), width, color)
        elif border_style == BorderStyle.DECORATIVE:
            _dashes(draw, centerline, width, color)
            outline_w = width / 2.0
            _stroke(draw, outline_points(*_offset(box, radii, width * 1.5 + outline_w / 2.0)), outline_w, color)

    return buffer_from_image(face)


def render_style_frame(ink: PixelBuffer, style: StampStyle) -> PixelBuffer:
    return render_stamp_frame(ink, style.shape, style.border_style, style.border_width, style.ink_color)
