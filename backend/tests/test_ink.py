import numpy as np
import pytest

from domain.models import ExtractionMode, ExtractionOptions, PixelBuffer
from services import ink
from services.ink import apply_ink_color, apply_ink_opacity, parse_hex_color
from services.stamp_generator import generate_stamp


def _mask_with_alpha(alpha_values):
    data = np.zeros((1, len(alpha_values), 4), dtype=np.uint8)
    data[0, :, 3] = alpha_values
    return PixelBuffer.from_array(data)


def test_parse_hex_color_variants():
    assert parse_hex_color("#b91c1c") == (185, 28, 28)
    assert parse_hex_color("B91C1C") == (185, 28, 28)
    assert parse_hex_color("  #00ff00 ") == (0, 255, 0)


@pytest.mark.parametrize("bad", ["", "#fff", "#gggggg", "red", "#1234567"])
def test_parse_hex_color_strict_rejects(bad):
    with pytest.raises(ValueError):
        parse_hex_color(bad, strict=True)


def test_parse_hex_color_lenient_falls_back_to_black():
    assert parse_hex_color("not-a-color", strict=False) == (0, 0, 0)


def test_parse_hex_color_follows_settings(monkeypatch):
    monkeypatch.setattr(ink.settings, "STRICT_INK_COLORS", False)
    assert parse_hex_color("#zzzzzz") == (0, 0, 0)
    monkeypatch.setattr(ink.settings, "STRICT_INK_COLORS", True)
    with pytest.raises(ValueError):
        parse_hex_color("#zzzzzz")


def test_colorize_preserves_partial_alpha_exactly():
    mask = _mask_with_alpha([128])
    out = apply_ink_color(mask, "#0000ff")
    assert tuple(out.data[0, 0]) == (0, 0, 255, 128)


def test_colorize_leaves_transparent_pixels_untouched():
    data = np.zeros((1, 2, 4), dtype=np.uint8)
    data[0, 0] = (200, 200, 200, 0)
    data[0, 1] = (0, 0, 0, 255)
    out = apply_ink_color(PixelBuffer.from_array(data), "#b91c1c")

    assert tuple(out.data[0, 0]) == (200, 200, 200, 0)
    assert tuple(out.data[0, 1]) == (185, 28, 28, 255)
    # Input untouched
    assert tuple(data[0, 1]) == (0, 0, 0, 255)


def test_colorize_every_alpha_level():
    alphas = np.arange(256, dtype=np.uint8)
    out = apply_ink_color(_mask_with_alpha(alphas), "#123456")
    assert np.array_equal(out.data[0, :, 3], alphas)


def test_ink_opacity_floors():
    out = apply_ink_opacity(_mask_with_alpha([255, 128, 1]), 75)
    assert out.data[0, :, 3].tolist() == [191, 96, 0]


def test_ink_opacity_bounds():
    mask = _mask_with_alpha([255])
    assert apply_ink_opacity(mask, 100).data[0, 0, 3] == 255
    assert apply_ink_opacity(mask, 0).data[0, 0, 3] == 0
    with pytest.raises(ValueError):
        apply_ink_opacity(mask, 101)


def test_generate_stamp_tints_and_fades():
    source = PixelBuffer.blank(4, 4, fill=(20, 20, 20, 255))
    options = ExtractionOptions(mode=ExtractionMode.SILHOUETTE, threshold=128, blur=0, contrast=1.0)
    stamp = generate_stamp(source, options, "#1e3a8a", ink_opacity=50)

    assert stamp.size == (4, 4)
    assert tuple(stamp.data[0, 0]) == (30, 58, 138, 127)
