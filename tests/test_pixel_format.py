"""Tests for pixel format descriptors."""

import pytest

from jpeg_color_toolkit.color.pixel_format import ColorSpace, Flavor, PixelFormat, channels_for
from jpeg_color_toolkit.errors import InvalidFormatError, UnsupportedColorSpaceError


class TestEncode:
    """Tests for packing formats into descriptor words."""

    def test_rgb_8(self):
        """8-bit RGB matches the little-cms TYPE_RGB_8 word."""
        assert PixelFormat.for_color_space(ColorSpace.RGB).encode() == 0x40019

    def test_gray_8(self):
        assert PixelFormat.for_color_space(ColorSpace.GRAY).encode() == 0x30009

    def test_lab_8(self):
        assert PixelFormat.for_color_space(ColorSpace.LAB).encode() == 0xA0019

    def test_inverted_cmyk(self):
        """Chocolate CMYK sets the flavor bit."""
        fmt = PixelFormat.for_color_space(ColorSpace.CMYK, flavor=Flavor.CHOCOLATE)
        assert fmt.encode() == 0x62021

    def test_planar_bit(self):
        fmt = PixelFormat.for_color_space(ColorSpace.RGB, planar=True)
        assert fmt.encode() & 0x1000

    def test_channels_out_of_range(self):
        with pytest.raises(InvalidFormatError):
            PixelFormat(ColorSpace.RGB, channels=16).encode()

    def test_extra_out_of_range(self):
        with pytest.raises(InvalidFormatError):
            PixelFormat(ColorSpace.RGB, channels=3, extra=8).encode()

    def test_bytes_out_of_range(self):
        with pytest.raises(InvalidFormatError):
            PixelFormat(ColorSpace.RGB, channels=3, bytes_per_sample=8).encode()


class TestDecode:
    """Tests for unpacking descriptor words."""

    @pytest.mark.parametrize("space", [ColorSpace.GRAY, ColorSpace.RGB, ColorSpace.CMYK, ColorSpace.LAB])
    @pytest.mark.parametrize("flavor", list(Flavor))
    def test_round_trip(self, space, flavor):
        fmt = PixelFormat.for_color_space(space, flavor=flavor)
        assert PixelFormat.decode(fmt.encode()) == fmt

    def test_unknown_color_space(self):
        with pytest.raises(InvalidFormatError):
            PixelFormat.decode(0x1F << 16 | 0x19)

    def test_fields(self):
        fmt = PixelFormat.decode(0x62021)
        assert fmt.color_space == ColorSpace.CMYK
        assert fmt.channels == 4
        assert fmt.bytes_per_sample == 1
        assert fmt.is_inverted


class TestCanonicalChannels:
    """Tests for the color space to channel count map."""

    @pytest.mark.parametrize(
        "space,channels",
        [
            (ColorSpace.GRAY, 1),
            (ColorSpace.RGB, 3),
            (ColorSpace.CMY, 3),
            (ColorSpace.LAB, 3),
            (ColorSpace.YUV, 3),
            (ColorSpace.YCBCR, 3),
            (ColorSpace.CMYK, 4),
        ],
    )
    def test_mapping(self, space, channels):
        assert channels_for(space) == channels

    def test_unmapped_space(self):
        """XYZ has no output mapping."""
        with pytest.raises(UnsupportedColorSpaceError):
            PixelFormat.for_color_space(ColorSpace.XYZ)


class TestPixelFormat:
    """Tests for derived properties."""

    def test_is_compatible_ignores_flavor(self):
        vanilla = PixelFormat.for_color_space(ColorSpace.CMYK)
        chocolate = PixelFormat.for_color_space(ColorSpace.CMYK, flavor=Flavor.CHOCOLATE)
        assert vanilla.is_compatible(chocolate)
        assert not vanilla.is_compatible(PixelFormat.for_color_space(ColorSpace.RGB))

    def test_row_bytes(self):
        assert PixelFormat.for_color_space(ColorSpace.CMYK).row_bytes(10) == 40

    def test_describe(self):
        fmt = PixelFormat.for_color_space(ColorSpace.CMYK, flavor=Flavor.CHOCOLATE)
        assert fmt.describe() == "CMYK 4ch 8bit inverted"
