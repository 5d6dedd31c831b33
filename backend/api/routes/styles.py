"""
Style preset API routes.
"""
import random
from typing import List, Optional, Tuple

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from domain.models import StampStyle
from services.stamp_styles import (
    RECOMMENDED_PRESETS,
    STAMP_STYLES,
    auto_recommend,
    get_style_by_id,
    style_to_dict,
)

router = APIRouter()


class StyleResponse(BaseModel):
    id: str
    name: str
    description: str
    extraction_mode: str
    threshold: int
    contrast: float
    edge_strength: float
    blur: float
    invert: bool
    ink_color: str
    ink_opacity: int
    border_style: str
    border_width: int
    shape: str
    depth_3d: int
    shadow_angle: int
    shadow_distance: int
    shadow_blur: int
    shadow_color: Tuple[int, int, int, float]
    emboss_strength: int
    inner_shadow: bool
    rubber_texture: bool
    paper_texture: bool
    grunge: int
    ink_bleed: int


def style_to_response(style: StampStyle) -> StyleResponse:
    """Convert a domain StampStyle to an API response."""
    return StyleResponse(**style_to_dict(style))


@router.get("", response_model=List[StyleResponse])
async def list_styles():
    """All built-in presets, default first."""
    return [style_to_response(s) for s in STAMP_STYLES]


@router.get("/recommended", response_model=List[StyleResponse])
async def list_recommended(auto: bool = False, seed: Optional[int] = None):
    """
    Quick-pick presets. With auto=true, returns the single style picked for a
    fresh upload (seeded for repeatable picks).
    """
    if auto:
        rng = random.Random(seed) if seed is not None else None
        return [style_to_response(auto_recommend(rng))]
    return [style_to_response(s) for s in RECOMMENDED_PRESETS]


@router.get("/{style_id}", response_model=StyleResponse)
async def get_style(style_id: str):
    style = get_style_by_id(style_id)
    if style is None:
        raise HTTPException(status_code=404, detail=f"Style not found: {style_id}")
    return style_to_response(style)
