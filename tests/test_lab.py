"""Tests for Lab encodings, gamut mapping and the ITU fax codec."""

import itertools

import numpy as np
import pytest

from jpeg_color_toolkit.color import fax
from jpeg_color_toolkit.color.fax import FaxSample
from jpeg_color_toolkit.color.lab import (
    LabColor,
    desaturate,
    desaturate_array,
    lab8_to_lab,
    lab_to_lab8,
    lab_to_pcs16,
    pcs16_to_lab,
)


class TestDesaturate:
    """Tests for gamut mapping into the fax envelope."""

    @pytest.mark.parametrize(
        "color",
        [
            LabColor(50, 0, 0),
            LabColor(75, 40, -30),
            LabColor(50, 85, 125),
            LabColor(50, -85, -75),
        ],
    )
    def test_inside_unchanged(self, color):
        """Colors inside or on the edge of the rectangle pass through."""
        assert desaturate(color) == color

    def test_a_clipped(self):
        result = desaturate(LabColor(50, 100, 0))
        assert result.a == pytest.approx(85)
        assert result.b == pytest.approx(0)
        assert result.L == 50

    def test_b_clipped(self):
        result = desaturate(LabColor(50, 0, -100))
        assert result.b == pytest.approx(-75)
        assert result.a == pytest.approx(0)

    def test_hue_preserved(self):
        """Both axes out of range scale by the tighter factor."""
        original = LabColor(60, 170, 250)
        result = desaturate(original)
        assert result.a == pytest.approx(85)
        assert result.b == pytest.approx(125)
        assert result.hue == pytest.approx(original.hue)

    def test_tighter_face_wins(self):
        original = LabColor(60, 120, 130)
        result = desaturate(original)
        assert result.a == pytest.approx(85)
        assert result.b < 125
        assert result.hue == pytest.approx(original.hue)

    def test_negative_lightness_is_black(self):
        assert desaturate(LabColor(-5, 20, 20)) == LabColor(0, 0, 0)

    def test_lightness_clamped(self):
        assert desaturate(LabColor(120, 0, 0)).L == 100

    def test_grid_stays_in_envelope(self):
        """Every Lab color on a coarse grid lands inside the envelope."""
        values = np.array(
            list(itertools.product(range(0, 101, 10), range(-128, 128, 16), range(-128, 128, 16))),
            dtype=np.float64,
        )
        out = desaturate_array(values)
        assert np.all(out[:, 1] >= -85) and np.all(out[:, 1] <= 85)
        assert np.all(out[:, 2] >= -75) and np.all(out[:, 2] <= 125)

    def test_array_matches_scalar(self):
        colors = [LabColor(50, 100, 0), LabColor(30, -120, 40), LabColor(80, 10, 200)]
        out = desaturate_array(np.array([c.as_array() for c in colors]))
        for row, color in zip(out, colors, strict=True):
            assert tuple(row) == pytest.approx(tuple(desaturate(color).as_array()))


class TestPcsEncodings:
    """Tests for 16-bit PCS and 8-bit Lab conversions."""

    def test_pcs16_white(self):
        assert lab_to_pcs16(np.array([100.0, 0.0, 0.0])).tolist() == [65535, 32896, 32896]

    def test_pcs16_round_trip(self):
        lab = np.array([[50.0, 20.0, -30.0], [0.0, -128.0, 127.0]])
        assert np.allclose(pcs16_to_lab(lab_to_pcs16(lab)), lab, atol=0.01)

    def test_lab8_white(self):
        assert lab_to_lab8(np.array([100.0, 0.0, 0.0])).tolist() == [255, 128, 128]

    def test_lab8_saturates(self):
        assert lab_to_lab8(np.array([120.0, 200.0, -200.0])).tolist() == [255, 255, 0]

    def test_lab8_round_trip(self):
        lab8 = np.array([[0, 0, 0], [128, 100, 200], [255, 255, 255]], dtype=np.uint8)
        assert np.array_equal(lab_to_lab8(lab8_to_lab(lab8)), lab8)


class TestFaxCodec:
    """Tests for ITU T.42 fixed-point encoding."""

    def test_decode_neutral_white(self):
        lab = fax.decode(FaxSample(65535, 32768, 24576))
        assert lab.L == pytest.approx(100)
        assert lab.a == pytest.approx(0)
        assert lab.b == pytest.approx(0)

    def test_encode_neutral_white(self):
        assert fax.encode(LabColor(100, 0, 0)) == FaxSample(65535, 32768, 24576)

    def test_encode_floors(self):
        """50 * 655.35 = 32767.5 encodes as 32767, not 32768."""
        assert fax.encode(LabColor(50, 0, 0)).L16 == 32767

    def test_encode_saturates(self):
        sample = fax.encode(LabColor(-10, 200, -200))
        assert sample.L16 == 0
        assert sample.a16 == 65535
        assert sample.b16 == 0

    def test_round_trip_within_one_step(self):
        """decode(encode(x)) is never off by more than one quantization step."""
        for L, a, b in itertools.product([0, 12.5, 50, 99.9], [-85, -10.3, 0, 42.7, 85], [-75, 0, 33.3, 125]):
            lab = fax.decode(fax.encode(LabColor(L, a, b)))
            assert abs(lab.L - L) <= 100 / 65535 + 1e-9
            assert abs(lab.a - a) <= 170 / 65535 + 1e-9
            assert abs(lab.b - b) <= 200 / 65535 + 1e-9

    def test_arrays_match_scalar(self):
        colors = [LabColor(0, -85, -75), LabColor(37.2, 12.1, 99.9), LabColor(100, 85, 125)]
        encoded = fax.encode_array(np.array([c.as_array() for c in colors]))
        for row, color in zip(encoded, colors, strict=True):
            assert tuple(int(v) for v in row) == tuple(vars(fax.encode(color)).values())

        decoded = fax.decode_array(encoded)
        for row, sample in zip(decoded, encoded, strict=True):
            expected = fax.decode(FaxSample(*(int(v) for v in sample)))
            assert tuple(row) == pytest.approx((expected.L, expected.a, expected.b))
