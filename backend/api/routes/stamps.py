"""
Stamp generation and document stamping API routes.
"""
import json
import logging
from typing import List, Optional

from fastapi import APIRouter, File, Form, HTTPException, Response, UploadFile
from pydantic import BaseModel, Field, ValidationError

from domain.models import DEFAULT_EXTRACTION_OPTIONS, MAX_PLACEMENT_SCALE, ExtractionOptions, PixelBuffer
from services.image_io import (
    MEDIA_TYPES,
    buffer_from_image,
    decode_image,
    encode_buffer,
    load_source_bytes,
    resolve_format,
)
from services.stamp_compositor import StampingSession
from services.stamp_frame import render_stamp_frame
from services.stamp_generator import generate_stamp
from services.stamp_styles import get_style_by_id
from settings import settings

logger = logging.getLogger(__name__)

router = APIRouter()


class PlacementRequest(BaseModel):
    stamp_index: int = Field(0, ge=0)
    x_frac: float = Field(..., ge=0.0, le=1.0)
    y_frac: float = Field(..., ge=0.0, le=1.0)
    rotation: float = 0.0
    scale: float = Field(1.0, gt=0.0, le=MAX_PLACEMENT_SCALE)


async def _read_upload(upload: UploadFile, label: str) -> bytes:
    data = await upload.read()
    if not data:
        raise HTTPException(status_code=400, detail=f"Empty {label} upload")
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"{label} exceeds {settings.MAX_UPLOAD_BYTES} bytes",
        )
    return data


def _image_response(
    buffer: PixelBuffer, fmt: str, scale: int, filename: str, transparent_background: bool = True
) -> Response:
    try:
        pil_format = resolve_format(fmt)
        content = encode_buffer(buffer, fmt=fmt, scale=scale, transparent_background=transparent_background)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    ext = "jpg" if pil_format == "JPEG" else pil_format.lower()
    return Response(
        content=content,
        media_type=MEDIA_TYPES[pil_format],
        headers={"Content-Disposition": f'attachment; filename="{filename}-{scale}x.{ext}"'},
    )


@router.post("/stamps/extract")
async def extract_stamp(
    photo: UploadFile = File(...),
    style_id: Optional[str] = Form(None),
    mode: Optional[str] = Form(None),
    threshold: Optional[int] = Form(None),
    contrast: Optional[float] = Form(None),
    brightness: float = Form(0.0),
    blur: Optional[float] = Form(None),
    invert: Optional[bool] = Form(None),
    edge_strength: Optional[float] = Form(None),
    ink_color: Optional[str] = Form(None),
    ink_opacity: Optional[int] = Form(None),
    frame: bool = Form(False),
    scale: int = Form(1),
    format: str = Form("png"),
    transparent_background: bool = Form(True),
):
    """
    Turn an uploaded photo into a stamp image.

    Parameters start from `style_id` (or the extraction defaults) and any
    explicit form field overrides them. Returns the encoded image.
    """
    style = None
    if style_id:
        style = get_style_by_id(style_id)
        if style is None:
            raise HTTPException(status_code=404, detail=f"Style not found: {style_id}")

    if frame and style is None:
        raise HTTPException(status_code=400, detail="frame requires a style_id to take its shape and border from")

    data = await _read_upload(photo, "photo")

    def pick(value, style_field, default):
        if value is not None:
            return value
        if style is not None:
            return getattr(style, style_field)
        return default

    defaults = DEFAULT_EXTRACTION_OPTIONS
    try:
        options = ExtractionOptions(
            mode=pick(mode, "extraction_mode", defaults.mode),
            threshold=pick(threshold, "threshold", defaults.threshold),
            contrast=pick(contrast, "contrast", defaults.contrast),
            brightness=brightness,
            blur=pick(blur, "blur", defaults.blur),
            invert=pick(invert, "invert", defaults.invert),
            edge_strength=pick(edge_strength, "edge_strength", defaults.edge_strength),
        )
        source = load_source_bytes(data)
        stamp = generate_stamp(
            source,
            options,
            pick(ink_color, "ink_color", "#000000"),
            ink_opacity=pick(ink_opacity, "ink_opacity", 100),
        )
        if frame:
            stamp = render_stamp_frame(
                stamp, style.shape, style.border_style, style.border_width, pick(ink_color, "ink_color", "#000000")
            )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(
        "[extract] %s -> %s stamp %sx%s",
        photo.filename,
        options.mode.value,
        stamp.width,
        stamp.height,
    )
    return _image_response(
        stamp,
        format,
        scale,
        filename=f"stamp-{options.mode.value}",
        transparent_background=transparent_background,
    )


@router.post("/documents/stamp")
async def stamp_document(
    document: UploadFile = File(...),
    stamps: List[UploadFile] = File(...),
    placements: str = Form(...),
    scale: int = Form(1),
    format: str = Form("png"),
    transparent_background: bool = Form(True),
):
    """
    Press previously generated stamps onto a document.

    `placements` is a JSON list of {stamp_index, x_frac, y_frac, rotation,
    scale}; they are rendered in list order.
    """
    try:
        raw = json.loads(placements)
        if not isinstance(raw, list):
            raise ValueError("placements must be a JSON list")
        requested = [PlacementRequest(**item) for item in raw]
    except (ValueError, TypeError, ValidationError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid placements: {e}")

    stamp_buffers = []
    for upload in stamps:
        data = await _read_upload(upload, "stamp")
        try:
            stamp_buffers.append(buffer_from_image(decode_image(data)))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    doc_bytes = await _read_upload(document, "document")
    try:
        session = StampingSession(document=buffer_from_image(decode_image(doc_bytes)))
        for item in requested:
            if item.stamp_index >= len(stamp_buffers):
                raise HTTPException(
                    status_code=400,
                    detail=f"stamp_index {item.stamp_index} out of range ({len(stamp_buffers)} stamps)",
                )
            session.place(
                stamp_buffers[item.stamp_index],
                item.x_frac,
                item.y_frac,
                rotation=item.rotation,
                scale=item.scale,
            )
        rendered = session.render()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _image_response(
        rendered, format, scale, filename="stamped-document", transparent_background=transparent_background
    )
