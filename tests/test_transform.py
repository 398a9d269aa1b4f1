"""Tests for transform construction and execution."""

import numpy as np
import pytest
from PIL import ImageCms

from jpeg_color_toolkit.color.pixel_format import ColorSpace, Flavor, PixelFormat
from jpeg_color_toolkit.color.profiles import IccProfile, load_device_link
from jpeg_color_toolkit.color.synthesizer import build_forward_profile, build_inverse_profile
from jpeg_color_toolkit.color.transform import (
    CmsTransform,
    Intent,
    PrecalcMode,
    StagedTransform,
    TransformFlags,
    build_transform,
    pillow_mode,
)
from jpeg_color_toolkit.errors import TransformBuildError, UnsupportedColorSpaceError

RGB = PixelFormat.for_color_space(ColorSpace.RGB)
LAB = PixelFormat.for_color_space(ColorSpace.LAB)
CMYK = PixelFormat.for_color_space(ColorSpace.CMYK)
CMYK_INVERTED = PixelFormat.for_color_space(ColorSpace.CMYK, flavor=Flavor.CHOCOLATE)


class TestFlags:
    """Tests for little-cms flag mapping."""

    def test_default(self):
        assert TransformFlags().to_cms() == ImageCms.Flags.NONE

    @pytest.mark.parametrize(
        "mode,flag",
        [
            (PrecalcMode.OFF, ImageCms.Flags.NOOPTIMIZE),
            (PrecalcMode.HIRES, ImageCms.Flags.HIGHRESPRECALC),
            (PrecalcMode.LORES, ImageCms.Flags.LOWRESPRECALC),
        ],
    )
    def test_precalc(self, mode, flag):
        assert TransformFlags(precalc=mode).to_cms() & flag

    def test_combined(self):
        flags = TransformFlags(black_point_compensation=True, gamut_check=True, soft_proofing=True).to_cms()
        assert flags & ImageCms.Flags.BLACKPOINTCOMPENSATION
        assert flags & ImageCms.Flags.GAMUTCHECK
        assert flags & ImageCms.Flags.SOFTPROOFING

    def test_intent(self):
        assert Intent.RELATIVE_COLORIMETRIC.to_cms() == ImageCms.Intent.RELATIVE_COLORIMETRIC
        assert Intent.ABSOLUTE_COLORIMETRIC.label == "Absolute Colorimetric"


class TestPillowMode:
    def test_known(self):
        assert pillow_mode(ColorSpace.GRAY) == "L"
        assert pillow_mode(ColorSpace.LAB) == "LAB"

    def test_unknown(self):
        with pytest.raises(UnsupportedColorSpaceError):
            pillow_mode(ColorSpace.CMY)


class TestBuildTransform:
    """Tests for choosing and running a transform engine."""

    def test_icc_only_uses_cms(self):
        srgb = IccProfile.srgb()
        transform = build_transform(RGB, RGB, srgb, srgb)
        assert isinstance(transform, CmsTransform)

        pixels = np.array([[0, 0, 0], [128, 64, 200], [255, 255, 255]], dtype=np.uint8)
        out = transform.apply_pixels(pixels)
        assert out.shape == (3, 3)
        assert np.abs(out.astype(int) - pixels.astype(int)).max() <= 2

    def test_apply_writes_into_buffer(self):
        srgb = IccProfile.srgb()
        transform = build_transform(RGB, RGB, srgb, srgb)
        row_in = bytes([10, 20, 30] * 4)
        row_out = np.zeros(12, dtype=np.uint8)
        transform.apply(row_in, row_out)
        assert np.abs(row_out.astype(int) - np.frombuffer(row_in, dtype=np.uint8)).max() <= 2

    def test_soft_proof(self):
        srgb = IccProfile.srgb()
        transform = build_transform(RGB, RGB, srgb, srgb, proof_profile=srgb)
        out = transform.apply_pixels(np.array([[255, 255, 255]], dtype=np.uint8))
        assert out.min() >= 250

    def test_srgb_to_fax_lab(self):
        """White encodes near the fax neutral (255, 128, 96)."""
        transform = build_transform(RGB, LAB, IccProfile.srgb(), build_inverse_profile())
        assert isinstance(transform, StagedTransform)
        out = transform.apply_pixels(np.array([[255, 255, 255]], dtype=np.uint8))
        assert out[0].tolist() == pytest.approx([255, 128, 96], abs=3)

    def test_fax_lab_to_srgb(self):
        transform = build_transform(LAB, RGB, build_forward_profile(), IccProfile.srgb())
        out = transform.apply_pixels(np.array([[255, 128, 96], [0, 128, 96]], dtype=np.uint8))
        assert out[0].min() >= 250
        assert out[1].max() <= 5

    def test_fax_round_trip(self):
        to_fax = build_transform(RGB, LAB, IccProfile.srgb(), build_inverse_profile())
        from_fax = build_transform(LAB, RGB, build_forward_profile(), IccProfile.srgb())
        pixels = np.array([[128, 128, 128], [200, 100, 50], [40, 90, 160]], dtype=np.uint8)
        back = from_fax.apply_pixels(to_fax.apply_pixels(pixels))
        assert np.abs(back.astype(int) - pixels.astype(int)).max() <= 8

    def test_device_link_flavor(self, device_link_bytes):
        """Inverted input is flipped before the link; vanilla output is not flipped after."""
        link = load_device_link(device_link_bytes)
        transform = build_transform(CMYK_INVERTED, CMYK, link, None)
        pixels = np.array([[10, 20, 30, 40]], dtype=np.uint8)
        # flip -> (245, 235, 225, 215), link inverts -> (10, 20, 30, 40)
        assert transform.apply_pixels(pixels).tolist() == [[10, 20, 30, 40]]

    def test_device_link_both_inverted(self, device_link_bytes):
        link = load_device_link(device_link_bytes)
        transform = build_transform(CMYK_INVERTED, CMYK_INVERTED, link, None)
        pixels = np.array([[10, 20, 30, 40]], dtype=np.uint8)
        assert transform.apply_pixels(pixels).tolist() == [[245, 235, 225, 215]]

    def test_missing_output_profile(self):
        with pytest.raises(TransformBuildError):
            build_transform(RGB, RGB, IccProfile.srgb(), None)

    def test_sampled_proof_profile(self):
        with pytest.raises(TransformBuildError, match="sampled"):
            build_transform(RGB, LAB, IccProfile.srgb(), build_inverse_profile(), proof_profile=build_forward_profile())

    def test_sampled_profile_used_backwards(self):
        """The inverse fax profile cannot decode fax rows."""
        with pytest.raises(TransformBuildError, match="pcs_to_device"):
            build_transform(LAB, RGB, build_inverse_profile(), IccProfile.srgb())

    def test_forward_profile_as_output(self):
        with pytest.raises(TransformBuildError, match="device_to_pcs"):
            build_transform(RGB, LAB, IccProfile.srgb(), build_forward_profile())

    def test_rejected_profile_combination(self):
        """little-cms refuses an RGB profile for CMYK pixels."""
        srgb = IccProfile.srgb()
        with pytest.raises(TransformBuildError):
            build_transform(CMYK, RGB, srgb, srgb)
