"""
Tests for pressing stamps onto documents.
"""
import numpy as np
import pytest

from domain.models import MAX_PLACEMENT_SCALE, BlendMode, LayerDescriptor, PixelBuffer, PlacedStamp
from services.stamp_compositor import (
    EMBOSS_RECIPE,
    StampingSession,
    build_sprite,
    composite_stamp,
    sprite_size,
)
from settings import settings

INK_ONLY = EMBOSS_RECIPE[-1:]
FLAT = (LayerDescriptor(name="flat", opacity=1.0, blend_mode=BlendMode.NORMAL),)


def _paper(width=40, height=40):
    return PixelBuffer.blank(width, height, fill=(255, 255, 255, 255))


def _ink(width=8, height=8, rgb=(0, 0, 0)):
    return PixelBuffer.blank(width, height, fill=rgb + (255,))


def _changed_bbox(before, after):
    changed = np.any(before.data != after.data, axis=2)
    rows = np.where(changed.any(axis=1))[0]
    cols = np.where(changed.any(axis=0))[0]
    return int(cols.min()), int(rows.min()), int(cols.max()), int(rows.max())


def test_recipe_shape():
    assert [layer.name for layer in EMBOSS_RECIPE] == [
        "outer-shadow",
        "inner-shadow",
        "highlight",
        "inner-highlight",
        "ink",
    ]
    assert EMBOSS_RECIPE[-1].blend_mode == BlendMode.MULTIPLY
    assert EMBOSS_RECIPE[-1].shadow_color is None


def test_sprite_size_keeps_aspect():
    assert sprite_size(200, 100, 512) == (512.0, 256.0)
    assert sprite_size(100, 200, 512) == (256.0, 512.0)
    assert sprite_size(50, 50, 512) == (512.0, 512.0)


def test_ink_layer_is_centered_on_anchor():
    paper = _paper()
    out = composite_stamp(paper, _ink(), (20, 20), base_size=8, recipe=INK_ONLY)

    left, top, right, bottom = _changed_bbox(paper, out)
    assert (left, top, right, bottom) == (16, 16, 23, 23)
    assert (left + right + 1) / 2 == 20
    assert (top + bottom + 1) / 2 == 20


def test_ink_layer_multiplies_at_three_quarter_opacity():
    paper = _paper()
    out = composite_stamp(paper, _ink(), (20, 20), base_size=8, recipe=INK_ONLY)
    assert tuple(out.data[20, 20]) == (64, 64, 64, 255)
    assert tuple(out.data[0, 0]) == (255, 255, 255, 255)


def test_document_is_not_mutated():
    paper = _paper()
    composite_stamp(paper, _ink(), (20, 20), base_size=8)
    assert (paper.data == 255).all()


def test_full_recipe_preserves_dimensions():
    paper = _paper(64, 48)
    out = composite_stamp(paper, _ink(), (10, 40), rotation=33, scale=1.5, base_size=16)
    assert out.size == (64, 48)


def test_rotation_swaps_sprite_axes():
    sprite = build_sprite(_ink(8, 4), rotation=90, scale=1.0, base_size=8)
    assert sprite.size == (4, 8)

    paper = _paper()
    out = composite_stamp(paper, _ink(8, 4), (20, 20), rotation=90, base_size=8, recipe=INK_ONLY)
    assert _changed_bbox(paper, out) == (18, 16, 21, 23)


def test_scale_grows_the_sprite():
    sprite = build_sprite(_ink(), rotation=0, scale=2.0, base_size=8)
    assert sprite.size == (16, 16)
    with pytest.raises(ValueError):
        composite_stamp(_paper(), _ink(), (20, 20), scale=0)


def test_sprite_larger_than_edge_budget_is_rejected(monkeypatch):
    monkeypatch.setattr(settings, "MAX_SOURCE_EDGE", 4)
    assert build_sprite(_ink(), rotation=0, scale=4.0, base_size=8).size == (32, 32)
    with pytest.raises(ValueError, match="edge limit"):
        build_sprite(_ink(), rotation=0, scale=5.0, base_size=8)
    with pytest.raises(ValueError):
        composite_stamp(_paper(), _ink(), (20, 20), scale=400, base_size=8)


def test_placed_stamp_scale_is_bounded():
    assert PlacedStamp(stamp=_ink(), x_frac=0.5, y_frac=0.5, scale=MAX_PLACEMENT_SCALE).scale == MAX_PLACEMENT_SCALE
    with pytest.raises(ValueError):
        PlacedStamp(stamp=_ink(), x_frac=0.5, y_frac=0.5, scale=MAX_PLACEMENT_SCALE + 0.5)


def test_shadow_is_offset_and_drawn_under_the_sprite():
    recipe = (
        LayerDescriptor(
            name="hard-shadow",
            opacity=1.0,
            blend_mode=BlendMode.NORMAL,
            shadow_offset=(10, 0),
            shadow_blur=0,
            shadow_color=(0, 0, 0, 1.0),
        ),
    )
    out = composite_stamp(_paper(), _ink(rgb=(255, 0, 0)), (20, 20), base_size=8, recipe=recipe)

    assert tuple(out.data[20, 20]) == (255, 0, 0, 255)
    assert tuple(out.data[20, 30]) == (0, 0, 0, 255)
    assert tuple(out.data[20, 35]) == (255, 255, 255, 255)


def test_blurred_shadow_softens():
    recipe = (
        LayerDescriptor(
            name="soft-shadow",
            opacity=1.0,
            blend_mode=BlendMode.NORMAL,
            shadow_offset=(12, 0),
            shadow_blur=4,
            shadow_color=(0, 0, 0, 1.0),
        ),
    )
    out = composite_stamp(_paper(), _ink(rgb=(255, 255, 255)), (20, 20), base_size=8, recipe=recipe)
    edge = out.data[20, 36, 0]
    assert 0 < edge < 255


def test_stamp_partially_off_canvas_is_clipped():
    paper = _paper()
    out = composite_stamp(paper, _ink(), (0, 0), base_size=8, recipe=INK_ONLY)
    assert _changed_bbox(paper, out) == (0, 0, 3, 3)


class TestStampingSession:
    def test_later_stamps_draw_over_earlier_ones(self):
        session = StampingSession(document=_paper())
        session.place(_ink(rgb=(255, 0, 0)), 0.5, 0.5)
        session.place(_ink(rgb=(0, 0, 255)), 0.5, 0.5)
        out = session.render(recipe=FLAT)
        assert tuple(out.data[20, 20]) == (0, 0, 255, 255)

    def test_positions_are_fractions_of_the_document(self, monkeypatch):
        from services import stamp_compositor

        monkeypatch.setattr(stamp_compositor.settings, "STAMP_BASE_SIZE", 8)
        paper = _paper(80, 40)
        session = StampingSession(document=paper)
        session.place(_ink(), 0.25, 0.5)
        out = session.render(recipe=INK_ONLY)
        assert _changed_bbox(paper, out) == (16, 16, 23, 23)

    def test_load_document_clears_placements(self):
        session = StampingSession(document=_paper())
        session.place(_ink(), 0.5, 0.5)
        session.load_document(_paper(20, 20))
        assert session.placements == []
        assert session.render().size == (20, 20)

    def test_clear(self):
        session = StampingSession(document=_paper())
        session.place(_ink(), 0.1, 0.9, rotation=45, scale=0.5)
        session.clear()
        assert (session.render().data == 255).all()

    def test_placement_validation(self):
        session = StampingSession(document=_paper())
        with pytest.raises(ValueError):
            session.place(_ink(), 1.5, 0.5)
        with pytest.raises(ValueError):
            session.place(_ink(), 0.5, 0.5, scale=-1)
        with pytest.raises(ValueError):
            session.place(_ink(), 0.5, 0.5, scale=400)
        assert session.placements == []
