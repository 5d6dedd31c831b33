"""
Stamp style presets.

STAMP_STYLES and RECOMMENDED_PRESETS are read-only module constants. Picking
a preset copies its values; customising one builds a fresh StampStyle.
"""
from __future__ import annotations

import dataclasses
import random
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

from domain.models import (
    BorderStyle,
    ExtractionMode,
    ExtractionOptions,
    StampShape,
    StampStyle,
)

CUSTOM_STYLE_ID = "custom"


STAMP_STYLES: Tuple[StampStyle, ...] = (
    StampStyle(
        id="3d-realistic",
        name="3D Realistic",
        description="Ultra-realistic stamp with deep shadows and paper impression",
        extraction_mode=ExtractionMode.SILHOUETTE,
        threshold=140,
        contrast=1.3,
        edge_strength=1.2,
        ink_color="#b91c1c",
        border_style=BorderStyle.DOUBLE,
        border_width=4,
        shape=StampShape.CIRCLE,
        depth_3d=80,
        shadow_angle=135,
        shadow_distance=8,
        shadow_blur=15,
        shadow_color=(0, 0, 0, 0.4),
        emboss_strength=70,
        inner_shadow=True,
        rubber_texture=True,
        paper_texture=True,
        grunge=30,
        ink_bleed=15,
        ink_opacity=95,
    ),
    StampStyle(
        id="classic-rubber",
        name="Classic Rubber",
        description="Traditional red rubber stamp with natural ink spread",
        extraction_mode=ExtractionMode.SILHOUETTE,
        threshold=128,
        contrast=1.2,
        edge_strength=1.0,
        ink_color="#dc2626",
        border_style=BorderStyle.SINGLE,
        border_width=3,
        shape=StampShape.ROUNDED,
        depth_3d=40,
        shadow_angle=145,
        shadow_distance=4,
        shadow_blur=8,
        shadow_color=(0, 0, 0, 0.25),
        emboss_strength=30,
        inner_shadow=False,
        rubber_texture=True,
        paper_texture=False,
        grunge=45,
        ink_bleed=35,
        ink_opacity=85,
    ),
    StampStyle(
        id="vintage-seal",
        name="Vintage Seal",
        description="Elegant wax seal appearance with decorative border",
        extraction_mode=ExtractionMode.DETAILED,
        threshold=150,
        contrast=1.4,
        edge_strength=0.8,
        ink_color="#78350f",
        border_style=BorderStyle.DECORATIVE,
        border_width=6,
        shape=StampShape.CIRCLE,
        depth_3d=90,
        shadow_angle=120,
        shadow_distance=10,
        shadow_blur=20,
        shadow_color=(0, 0, 0, 0.5),
        emboss_strength=85,
        inner_shadow=True,
        rubber_texture=False,
        paper_texture=True,
        grunge=20,
        ink_bleed=5,
        ink_opacity=100,
    ),
    StampStyle(
        id="modern-minimal",
        name="Modern Minimal",
        description="Clean, flat design with subtle shadow",
        extraction_mode=ExtractionMode.EDGE,
        threshold=120,
        contrast=1.5,
        edge_strength=1.5,
        ink_color="#1e293b",
        border_style=BorderStyle.SINGLE,
        border_width=2,
        shape=StampShape.SQUARE,
        depth_3d=20,
        shadow_angle=135,
        shadow_distance=3,
        shadow_blur=5,
        shadow_color=(0, 0, 0, 0.15),
        emboss_strength=10,
        inner_shadow=False,
        rubber_texture=False,
        paper_texture=False,
        grunge=0,
        ink_bleed=0,
        ink_opacity=100,
    ),
    StampStyle(
        id="ink-bleed",
        name="Ink Bleed",
        description="Organic ink spread effect with worn edges",
        extraction_mode=ExtractionMode.SILHOUETTE,
        threshold=135,
        contrast=1.1,
        edge_strength=0.7,
        ink_color="#1e3a8a",
        border_style=BorderStyle.NONE,
        border_width=0,
        shape=StampShape.ROUNDED,
        depth_3d=30,
        shadow_angle=140,
        shadow_distance=3,
        shadow_blur=6,
        shadow_color=(0, 0, 0, 0.2),
        emboss_strength=15,
        inner_shadow=False,
        rubber_texture=True,
        paper_texture=True,
        grunge=60,
        ink_bleed=70,
        ink_opacity=75,
    ),
    StampStyle(
        id="embossed",
        name="Embossed",
        description="Raised, pressed effect with dramatic lighting",
        extraction_mode=ExtractionMode.OUTLINE,
        threshold=130,
        contrast=1.3,
        edge_strength=1.0,
        ink_color="#ffffff",
        border_style=BorderStyle.DOUBLE,
        border_width=4,
        shape=StampShape.CIRCLE,
        depth_3d=100,
        shadow_angle=315,
        shadow_distance=2,
        shadow_blur=3,
        shadow_color=(0, 0, 0, 0.6),
        emboss_strength=100,
        inner_shadow=True,
        rubber_texture=False,
        paper_texture=True,
        grunge=10,
        ink_bleed=0,
        ink_opacity=60,
    ),
    StampStyle(
        id="neon-glow",
        name="Neon Glow",
        description="Vibrant glowing effect with color bleed",
        extraction_mode=ExtractionMode.EDGE,
        threshold=100,
        contrast=1.6,
        edge_strength=2.0,
        ink_color="#f472b6",
        border_style=BorderStyle.SINGLE,
        border_width=2,
        shape=StampShape.ROUNDED,
        depth_3d=50,
        shadow_angle=0,
        shadow_distance=0,
        shadow_blur=25,
        shadow_color=(244, 114, 182, 0.8),
        emboss_strength=0,
        inner_shadow=False,
        rubber_texture=False,
        paper_texture=False,
        grunge=0,
        ink_bleed=40,
        ink_opacity=100,
    ),
    StampStyle(
        id="official-stamp",
        name="Official Stamp",
        description="Government/corporate style with clean lines",
        extraction_mode=ExtractionMode.SILHOUETTE,
        threshold=140,
        contrast=1.4,
        edge_strength=1.0,
        ink_color="#14532d",
        border_style=BorderStyle.DOUBLE,
        border_width=5,
        shape=StampShape.OVAL,
        depth_3d=45,
        shadow_angle=135,
        shadow_distance=5,
        shadow_blur=10,
        shadow_color=(0, 0, 0, 0.3),
        emboss_strength=40,
        inner_shadow=True,
        rubber_texture=False,
        paper_texture=True,
        grunge=15,
        ink_bleed=10,
        ink_opacity=90,
    ),
)

_STYLES_BY_ID: Mapping[str, StampStyle] = MappingProxyType({s.id: s for s in STAMP_STYLES})


# Smart auto-recommendations for new images, each derived from a base preset
RECOMMENDED_PRESETS: Tuple[StampStyle, ...] = (
    dataclasses.replace(
        _STYLES_BY_ID["3d-realistic"],
        id="rec-bold",
        name="Bold Ink",
        description="Strong, high-contrast look",
        threshold=160,
        extraction_mode=ExtractionMode.SILHOUETTE,
    ),
    dataclasses.replace(
        _STYLES_BY_ID["classic-rubber"],
        id="rec-sketch",
        name="Fine Sketch",
        description="Detailed line work",
        extraction_mode=ExtractionMode.ANIME,
        threshold=128,
        blur=1.0,
        edge_strength=1.5,
    ),
    dataclasses.replace(
        _STYLES_BY_ID["vintage-seal"],
        id="rec-vintage",
        name="Vintage",
        description="Aged, textured appearance",
        grunge=60,
        paper_texture=True,
    ),
    dataclasses.replace(
        _STYLES_BY_ID["modern-minimal"],
        id="rec-clean",
        name="Clean Edge",
        description="Minimalist outline",
        extraction_mode=ExtractionMode.OUTLINE,
        threshold=110,
    ),
)

_RECOMMENDED_BY_ID: Mapping[str, StampStyle] = MappingProxyType({s.id: s for s in RECOMMENDED_PRESETS})

# Presets robust enough to pick blindly for an unknown photo
AUTO_RECOMMEND_MODES = (ExtractionMode.SILHOUETTE, ExtractionMode.DETAILED)


def get_style_by_id(style_id: str) -> Optional[StampStyle]:
    """Find a preset (regular or recommended) by id."""
    return _STYLES_BY_ID.get(style_id) or _RECOMMENDED_BY_ID.get(style_id)


def require_style(style_id: str) -> StampStyle:
    style = get_style_by_id(style_id)
    if style is None:
        raise KeyError(f"Unknown stamp style: {style_id}")
    return style


def get_default_style() -> StampStyle:
    """The 3D realistic preset."""
    return STAMP_STYLES[0]


def create_custom_style(base: StampStyle, **overrides: Any) -> StampStyle:
    """
    New style from `base` with `overrides` applied, always identified as custom.

    Unknown field names raise TypeError (from dataclasses.replace).
    """
    overrides.pop("id", None)
    overrides.pop("name", None)
    if "extraction_mode" in overrides:
        overrides["extraction_mode"] = ExtractionMode(overrides["extraction_mode"])
    if "border_style" in overrides:
        overrides["border_style"] = BorderStyle(overrides["border_style"])
    if "shape" in overrides:
        overrides["shape"] = StampShape(overrides["shape"])
    return dataclasses.replace(base, id=CUSTOM_STYLE_ID, name="Custom", **overrides)


def style_to_options(style: StampStyle, brightness: float = 0.0) -> ExtractionOptions:
    """Extraction options carried by a style."""
    return ExtractionOptions(
        mode=style.extraction_mode,
        threshold=style.threshold,
        contrast=style.contrast,
        brightness=brightness,
        blur=style.blur,
        invert=style.invert,
        edge_strength=style.edge_strength,
    )


def auto_recommend(rng: Optional[random.Random] = None) -> StampStyle:
    """Pick a random robust preset. Pass a seeded Random for repeatable picks."""
    rng = rng or random.Random()
    candidates = [s for s in STAMP_STYLES if s.extraction_mode in AUTO_RECOMMEND_MODES]
    return rng.choice(candidates)


def style_to_dict(style: StampStyle) -> dict:
    """JSON-friendly view of a style (enums as their values)."""
    data = dataclasses.asdict(style)
    data["extraction_mode"] = style.extraction_mode.value
    data["border_style"] = style.border_style.value
    data["shape"] = style.shape.value
    data["shadow_color"] = list(style.shadow_color)
    return data
