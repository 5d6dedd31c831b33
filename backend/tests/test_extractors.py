"""
Tests for the per-mode extractors and the extraction pipeline.
"""
import numpy as np
import pytest

from domain.models import ExtractionMode, ExtractionOptions, PixelBuffer
from services import extractors
from services.feature_extraction import extract_features, preprocess


def _solid(rgba, width=4, height=4):
    return PixelBuffer.blank(width, height, fill=rgba)


def _dark_square(size=12, inset=3, dark=20, light=235):
    data = np.full((size, size, 4), light, dtype=np.uint8)
    data[:, :, 3] = 255
    data[inset:size - inset, inset:size - inset, :3] = dark
    return PixelBuffer.from_array(data)


def _gradient(width=32, height=8):
    ramp = np.linspace(0, 255, width).astype(np.uint8)
    data = np.zeros((height, width, 4), dtype=np.uint8)
    data[:, :, 0] = ramp
    data[:, :, 1] = ramp
    data[:, :, 2] = ramp
    data[:, :, 3] = 255
    return PixelBuffer.from_array(data)


def _ink_count(buffer):
    return int((buffer.data[:, :, 3] > 0).sum())


class TestRegistry:
    def test_every_mode_has_an_extractor(self):
        assert set(extractors.registered_modes()) == set(ExtractionMode)

    def test_lookup_by_string_value(self):
        assert extractors.get_extractor("outline") is extractors.extract_outline

    def test_unknown_mode_raises(self):
        with pytest.raises(ValueError):
            extractors.get_extractor("watercolor")

    def test_options_reject_unknown_mode(self):
        with pytest.raises(ValueError, match="expected one of"):
            ExtractionOptions(mode="watercolor")


class TestSilhouette:
    def test_mid_gray_below_threshold_is_all_ink(self):
        options = ExtractionOptions(mode=ExtractionMode.SILHOUETTE, threshold=130, invert=False)
        out = extract_features(_solid((128, 128, 128, 255)), options)
        assert (out.data[:, :, 3] == 255).all()
        assert (out.data[:, :, :3] == 0).all()

    def test_mid_gray_above_threshold_is_transparent(self):
        options = ExtractionOptions(mode=ExtractionMode.SILHOUETTE, threshold=120, invert=False)
        out = extract_features(_solid((128, 128, 128, 255)), options)
        assert (out.data[:, :, 3] == 0).all()

    def test_higher_threshold_never_loses_ink(self):
        source = _gradient()
        previous = -1
        for threshold in range(0, 256, 15):
            options = ExtractionOptions(
                mode=ExtractionMode.SILHOUETTE, threshold=threshold, blur=0, contrast=1.0
            )
            count = _ink_count(extract_features(source, options))
            assert count >= previous
            previous = count

    def test_rethreshold_is_a_fixed_point(self):
        options = ExtractionOptions(mode=ExtractionMode.SILHOUETTE, threshold=128, blur=0, contrast=1.0)
        once = extractors.extract_silhouette(_gradient(), options)
        twice = extractors.extract_silhouette(once, options)
        assert np.array_equal(once.data[:, :, 3], twice.data[:, :, 3])

    def test_invert_swaps_ink(self):
        source = _dark_square()
        plain = ExtractionOptions(mode=ExtractionMode.SILHOUETTE, threshold=128, blur=0, contrast=1.0)
        inverted = ExtractionOptions(
            mode=ExtractionMode.SILHOUETTE, threshold=128, blur=0, contrast=1.0, invert=True
        )
        a = extract_features(source, plain).data[:, :, 3] > 0
        b = extract_features(source, inverted).data[:, :, 3] > 0
        assert not (a & b).any()
        assert (a | b).all()


class TestEdge:
    @pytest.mark.parametrize("threshold", [0, 64, 128, 200, 255])
    @pytest.mark.parametrize("strength", [0.5, 1.0, 3.0])
    def test_flat_white_field_has_no_ink(self, threshold, strength):
        options = ExtractionOptions(mode=ExtractionMode.EDGE, threshold=threshold, edge_strength=strength)
        out = extract_features(_solid((255, 255, 255, 255), 10, 10), options)
        assert (out.data[:, :, 3] == 0).all()

    def test_step_edge_is_inked(self):
        data = np.full((10, 10, 4), 255, dtype=np.uint8)
        data[:, 5:, :3] = 0
        options = ExtractionOptions(mode=ExtractionMode.EDGE, threshold=128, blur=0, contrast=1.0)
        out = extract_features(PixelBuffer.from_array(data), options)

        alpha = out.data[:, :, 3]
        assert alpha[5, 4] == 255
        assert alpha[5, 5] == 255
        assert alpha[5, 1] == 0
        assert alpha[5, 8] == 0
        # Border ring is never ink
        assert alpha[0, :].max() == 0


class TestOutline:
    def test_outline_traces_the_square_boundary(self):
        options = ExtractionOptions(mode=ExtractionMode.OUTLINE, threshold=128, blur=0, contrast=1.0)
        out = extract_features(_dark_square(size=12, inset=3), options)
        alpha = out.data[:, :, 3]

        # Square occupies rows/cols 3..8; its ring is ink, its inside is not
        assert alpha[3, 3] == 255
        assert alpha[3, 6] == 255
        assert alpha[8, 8] == 255
        assert alpha[5, 5] == 0
        assert alpha[1, 1] == 0

    def test_outer_ring_stays_transparent_even_when_dark(self):
        options = ExtractionOptions(mode=ExtractionMode.OUTLINE, threshold=200, blur=0, contrast=1.0)
        out = extract_features(_solid((0, 0, 0, 255), 6, 6), options)
        assert (out.data[:, :, 3] == 0).all()


class TestDetailed:
    def test_alpha_grows_with_darkness(self):
        options = ExtractionOptions(mode=ExtractionMode.DETAILED, threshold=200, blur=0, contrast=1.0)
        out = extract_features(_gradient(), options)
        alpha = out.data[4, :, 3].astype(int)

        assert alpha[0] == 255
        assert alpha[-1] == 0
        assert all(a >= b for a, b in zip(alpha, alpha[1:]))
        # Graded, not binary
        assert len(set(alpha.tolist())) > 3

    def test_ink_pixels_are_black(self):
        options = ExtractionOptions(mode=ExtractionMode.DETAILED, threshold=200, blur=0, contrast=1.0)
        out = extract_features(_gradient(), options)
        inked = out.data[:, :, 3] > 0
        assert (out.data[inked, :3] == 0).all()


class TestAnime:
    def test_flat_field_is_all_ink(self):
        # DoG of a flat field is pure white, which sits above 255-threshold
        options = ExtractionOptions(mode=ExtractionMode.ANIME, threshold=128)
        out = extract_features(_solid((90, 140, 200, 255), 12, 12), options)
        assert (out.data[:, :, 3] == 255).all()

    def test_skips_contrast_preprocessing(self):
        source = _solid((90, 140, 200, 255))
        options = ExtractionOptions(mode=ExtractionMode.ANIME, contrast=2.0, brightness=50)
        assert preprocess(source, options) is source

    def test_dark_shape_edges_break_the_ink(self):
        options = ExtractionOptions(mode=ExtractionMode.ANIME, threshold=128, edge_strength=3.0)
        out = extract_features(_dark_square(size=16, inset=4), options)
        alpha = out.data[:, :, 3]
        assert alpha[0, 0] == 255
        # Light side of the square boundary darkens below the cut
        assert alpha[8, 3] == 0
        assert _ink_count(out) < 16 * 16


class TestColorEdges:
    def _color_split(self):
        # Red and green halves with similar luminance
        data = np.zeros((10, 10, 4), dtype=np.uint8)
        data[:, :, 3] = 255
        data[:, :5] = (200, 0, 0, 255)
        data[:, 5:] = (0, 100, 0, 255)
        return PixelBuffer.from_array(data)

    def test_human_finds_color_boundary(self):
        options = ExtractionOptions(mode=ExtractionMode.HUMAN, threshold=128, blur=0, contrast=1.0)
        out = extract_features(self._color_split(), options)
        assert out.data[5, 5, 3] == 255
        assert out.data[5, 1, 3] == 0

    def test_animal_doubles_sensitivity(self):
        # Edge strong enough for the doubled boost only
        data = np.full((10, 10, 4), 255, dtype=np.uint8)
        data[:, 5:, :3] = 225
        source = PixelBuffer.from_array(data)
        base = dict(threshold=128, blur=0, contrast=1.0)
        human = extract_features(source, ExtractionOptions(mode=ExtractionMode.HUMAN, **base))
        animal = extract_features(source, ExtractionOptions(mode=ExtractionMode.ANIMAL, **base))
        assert _ink_count(human) == 0
        assert animal.data[5, 4, 3] == 255
        assert animal.data[5, 5, 3] == 255


class TestPipeline:
    @pytest.mark.parametrize("mode", list(ExtractionMode))
    def test_dimensions_preserved_for_every_mode(self, mode):
        source = _gradient(width=17, height=9)
        out = extract_features(source, ExtractionOptions(mode=mode))
        assert out.size == (17, 9)
        assert out.data.shape == (9, 17, 4)

    @pytest.mark.parametrize("mode", list(ExtractionMode))
    def test_source_is_not_mutated(self, mode):
        source = _dark_square()
        before = source.data.copy()
        extract_features(source, ExtractionOptions(mode=mode))
        assert np.array_equal(source.data, before)

    def test_single_pixel_buffer(self):
        for mode in ExtractionMode:
            out = extract_features(_solid((0, 0, 0, 255), 1, 1), ExtractionOptions(mode=mode))
            assert out.size == (1, 1)

    def test_singular_contrast_is_rejected(self):
        options = ExtractionOptions(mode=ExtractionMode.SILHOUETTE, contrast=259 / 255)
        with pytest.raises(ValueError):
            extract_features(_solid((128, 128, 128, 255)), options)

    def test_option_validation(self):
        with pytest.raises(ValueError):
            ExtractionOptions(threshold=256)
        with pytest.raises(ValueError):
            ExtractionOptions(threshold=12.5)
        with pytest.raises(ValueError):
            ExtractionOptions(contrast=0)
        with pytest.raises(ValueError):
            ExtractionOptions(blur=-1)
        with pytest.raises(ValueError):
            ExtractionOptions(edge_strength=0)
