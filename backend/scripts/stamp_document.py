"""Press one or more stamp images onto a document.

Usage (from backend/):
    python -m scripts.stamp_document document.png out.png --stamp stamp.png:0.5:0.5[:rotation[:scale]] [--stamp ...] [--flatten]

Positions are fractions of the document's width and height. Stamps render in
the order given, later ones on top.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Tuple

from services.image_io import buffer_from_image, decode_image, encode_buffer
from services.stamp_compositor import StampingSession

logger = logging.getLogger("stamp_document")

Placement = Tuple[Path, float, float, float, float]


def parse_placement(value: str) -> Placement:
    """Parse "path:x:y[:rotation[:scale]]"."""
    parts = value.rsplit(":", 4)
    # Paths may contain ':' so peel numbers off the right until only the path is left
    numbers: List[float] = []
    while len(parts) > 1:
        try:
            numbers.insert(0, float(parts[-1]))
        except ValueError:
            break
        parts.pop()
    path = Path(":".join(parts))
    if len(numbers) < 2:
        raise argparse.ArgumentTypeError(f"expected path:x:y[:rotation[:scale]], got {value!r}")
    x, y = numbers[0], numbers[1]
    rotation = numbers[2] if len(numbers) > 2 else 0.0
    scale = numbers[3] if len(numbers) > 3 else 1.0
    return path, x, y, rotation, scale


def main() -> int:
    if not logger.handlers:
        logging.basicConfig(level=logging.INFO, format="%(message)s")
    parser = argparse.ArgumentParser(description="Composite stamps onto a document.")
    parser.add_argument("document", help="Document image.")
    parser.add_argument("out", help="Output path; the extension picks the format.")
    parser.add_argument("--stamp", dest="stamps", action="append", type=parse_placement, required=True)
    parser.add_argument("--scale", type=int, choices=[1, 2, 4], default=1)
    parser.add_argument("--flatten", action="store_true", help="Flatten WEBP output onto white (JPEG always is).")
    args = parser.parse_args()

    out = Path(args.out)
    try:
        session = StampingSession(document=buffer_from_image(decode_image(Path(args.document).read_bytes())))
        loaded = {}
        for path, x, y, rotation, scale in args.stamps:
            if path not in loaded:
                loaded[path] = buffer_from_image(decode_image(path.read_bytes()))
            session.place(loaded[path], x, y, rotation=rotation, scale=scale)
        data = encode_buffer(
            session.render(), fmt=out.suffix or "png", scale=args.scale, transparent_background=not args.flatten
        )
    except (OSError, ValueError) as e:
        logger.error("[stamp_document] %s", e)
        return 1

    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(data)
    logger.info("[stamp_document] %s stamp(s) -> %s", len(args.stamps), out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
