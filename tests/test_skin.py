"""
Tests for the HSV skin classifier.

Verifies:
- RGB -> HSV conversion (hue rounding, wrap-around, grey pixels)
- Threshold edges on hue, saturation and value
- The vectorized mask agrees with the scalar path
"""
import numpy as np
import pytest

from conftest import NON_SKIN_RGB, SKIN_RGB, rgb_raster
from nailtryon.skin import is_skin, is_skin_hsv, rgb_to_hsv, skin_mask


class TestRgbToHsv:

    def test_pure_red(self):
        assert rgb_to_hsv(255, 0, 0) == (0.0, 1.0, 1.0)

    def test_pure_green_and_blue(self):
        assert rgb_to_hsv(0, 255, 0)[0] == 120.0
        assert rgb_to_hsv(0, 0, 255)[0] == 240.0

    def test_grey_has_zero_hue_and_saturation(self):
        h, s, v = rgb_to_hsv(128, 128, 128)
        assert h == 0.0
        assert s == 0.0
        assert v == pytest.approx(128 / 255)

    def test_black(self):
        assert rgb_to_hsv(0, 0, 0) == (0.0, 0.0, 0.0)

    def test_negative_hue_wraps(self):
        # max == r with b > g gives a negative intermediate hue
        h, _, _ = rgb_to_hsv(255, 0, 51)
        assert h == 348.0

    def test_hue_is_whole_degrees(self):
        h, _, _ = rgb_to_hsv(200, 150, 120)
        assert h == float(int(h))
        assert 0 <= h <= 25


class TestThresholds:

    @pytest.mark.parametrize("h", [0, 10, 25, 335, 350, 360])
    def test_hue_inside(self, h):
        assert is_skin_hsv(h, 0.5, 0.7)

    @pytest.mark.parametrize("h", [26, 100, 180, 334])
    def test_hue_outside(self, h):
        assert not is_skin_hsv(h, 0.5, 0.7)

    @pytest.mark.parametrize("s,v,expected", [
        (0.2, 0.4, True),
        (0.7, 0.95, True),
        (0.19, 0.7, False),
        (0.71, 0.7, False),
        (0.5, 0.39, False),
        (0.5, 0.96, False),
    ])
    def test_saturation_and_value_edges(self, s, v, expected):
        assert is_skin_hsv(10, s, v) is expected

    def test_sample_colours(self):
        assert is_skin(*SKIN_RGB)
        assert not is_skin(*NON_SKIN_RGB)
        assert not is_skin(255, 255, 255)
        assert not is_skin(0, 0, 0)

    def test_deterministic(self):
        assert [is_skin(*SKIN_RGB) for _ in range(5)] == [True] * 5


class TestSkinMask:

    def test_shape_and_dtype(self):
        mask = skin_mask(rgb_raster(7, 4, SKIN_RGB))
        assert mask.shape == (4, 7)
        assert mask.dtype == bool
        assert mask.all()

    def test_alpha_channel_ignored(self):
        rgba = np.zeros((2, 2, 4), dtype=np.uint8)
        rgba[:, :, :3] = SKIN_RGB
        assert skin_mask(rgba).all()

    def test_matches_scalar_path(self):
        rng = np.random.default_rng(1234)
        frame = rng.integers(0, 256, size=(40, 40, 3), dtype=np.uint8)
        # make sure both classes are present
        frame[:5, :5] = SKIN_RGB
        frame[-5:, -5:] = NON_SKIN_RGB

        mask = skin_mask(frame)
        expected = np.array(
            [[is_skin(*map(int, frame[y, x])) for x in range(40)] for y in range(40)]
        )
        np.testing.assert_array_equal(mask, expected)

    def test_rejects_wrong_shape(self):
        with pytest.raises(ValueError):
            skin_mask(np.zeros((4, 4), dtype=np.uint8))
