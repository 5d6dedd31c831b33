"""Turn a photo into a stamp image from the command line.

Usage (from backend/):
    python -m scripts.render_stamp photo.jpg out.png [--style 3d-realistic] [--mode silhouette] [--threshold 140]
        [--ink-color "#b91c1c"] [--frame] [--scale 2] [--flatten]

Explicit flags override the chosen style's values. Without --style the default
preset (3D Realistic) is used.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from domain.models import ExtractionMode
from services.image_io import encode_buffer, load_source_bytes
from services.stamp_generator import generate_stamp_from_style
from services.stamp_styles import STAMP_STYLES, RECOMMENDED_PRESETS, create_custom_style, get_default_style, get_style_by_id

logger = logging.getLogger("render_stamp")


def build_parser() -> argparse.ArgumentParser:
    style_ids = [s.id for s in STAMP_STYLES + RECOMMENDED_PRESETS]
    parser = argparse.ArgumentParser(description="Render a stamp image from a photo.")
    parser.add_argument("photo", help="Source photo (any format Pillow reads).")
    parser.add_argument("out", help="Output image path; the extension picks the format.")
    parser.add_argument("--style", choices=style_ids, default=None)
    parser.add_argument("--mode", choices=[m.value for m in ExtractionMode], default=None)
    parser.add_argument("--threshold", type=int, default=None)
    parser.add_argument("--contrast", type=float, default=None)
    parser.add_argument("--brightness", type=float, default=0.0)
    parser.add_argument("--blur", type=float, default=None)
    parser.add_argument("--edge-strength", type=float, default=None)
    parser.add_argument("--invert", action="store_true")
    parser.add_argument("--ink-color", default=None)
    parser.add_argument("--ink-opacity", type=int, default=None)
    parser.add_argument("--frame", action="store_true", help="Bake the style's shape and border around the ink.")
    parser.add_argument("--scale", type=int, choices=[1, 2, 4], default=1)
    parser.add_argument("--flatten", action="store_true", help="Flatten WEBP output onto white (JPEG always is).")
    return parser


def main() -> int:
    if not logger.handlers:
        logging.basicConfig(level=logging.INFO, format="%(message)s")
    args = build_parser().parse_args()

    style = get_style_by_id(args.style) if args.style else get_default_style()
    overrides = {
        "extraction_mode": args.mode,
        "threshold": args.threshold,
        "contrast": args.contrast,
        "blur": args.blur,
        "edge_strength": args.edge_strength,
        "ink_color": args.ink_color,
        "ink_opacity": args.ink_opacity,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if args.invert:
        overrides["invert"] = True
    if overrides:
        style = create_custom_style(style, **overrides)

    photo = Path(args.photo)
    out = Path(args.out)
    try:
        source = load_source_bytes(photo.read_bytes())
        stamp = generate_stamp_from_style(source, style, brightness=args.brightness, frame=args.frame)
        data = encode_buffer(
            stamp, fmt=out.suffix or "png", scale=args.scale, transparent_background=not args.flatten
        )
    except (OSError, ValueError) as e:
        logger.error("[render_stamp] %s", e)
        return 1

    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(data)
    logger.info("[render_stamp] style=%s mode=%s -> %s", style.id, style.extraction_mode.value, out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
