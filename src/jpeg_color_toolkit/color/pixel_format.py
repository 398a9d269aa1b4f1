"""
Pixel format descriptors.

A PixelFormat describes one scanline buffer: color space, channel count,
extra (alpha) channels, bytes per sample, planarity and flavor. It packs into
a single integer word using the little-cms bit layout so formats can be
logged, compared and handed across the codec boundary as one value:

    bits 0-2    bytes per sample
    bits 3-6    channels
    bits 7-9    extra channels
    bit  12     planar
    bit  13     flavor (1 = values stored inverted)
    bits 16-20  color space code
"""

from dataclasses import dataclass
from enum import Enum

from ..errors import InvalidFormatError, UnsupportedColorSpaceError

BYTES_SHIFT = 0
CHANNELS_SHIFT = 3
EXTRA_SHIFT = 7
PLANAR_SHIFT = 12
FLAVOR_SHIFT = 13
COLORSPACE_SHIFT = 16

BYTES_MASK = 0x7
CHANNELS_MASK = 0xF
EXTRA_MASK = 0x7
COLORSPACE_MASK = 0x1F


class ColorSpace(Enum):
    """Pixel color spaces (little-cms PT_* codes)."""

    GRAY = 3
    RGB = 4
    CMY = 5
    CMYK = 6
    YCBCR = 7
    YUV = 8
    XYZ = 9
    LAB = 10


class Flavor(Enum):
    """Sample sense: natural or inverted (Adobe CMYK)."""

    VANILLA = 0
    CHOCOLATE = 1


# Channel mapping for spaces the pipeline can emit
CANONICAL_CHANNELS: dict[ColorSpace, int] = {
    ColorSpace.GRAY: 1,
    ColorSpace.RGB: 3,
    ColorSpace.CMY: 3,
    ColorSpace.LAB: 3,
    ColorSpace.YUV: 3,
    ColorSpace.YCBCR: 3,
    ColorSpace.CMYK: 4,
}


def channels_for(space: ColorSpace) -> int:
    """Canonical channel count for a color space."""
    try:
        return CANONICAL_CHANNELS[space]
    except KeyError:
        raise UnsupportedColorSpaceError(f"Unsupported output color space: {space.name}") from None


@dataclass(frozen=True)
class PixelFormat:
    """Scanline buffer layout."""

    color_space: ColorSpace
    channels: int
    extra: int = 0
    bytes_per_sample: int = 1
    planar: bool = False
    flavor: Flavor = Flavor.VANILLA

    @classmethod
    def for_color_space(
        cls,
        space: ColorSpace,
        *,
        planar: bool = False,
        flavor: Flavor = Flavor.VANILLA,
        bytes_per_sample: int = 1,
    ) -> "PixelFormat":
        """Build a format with the canonical channel count for ``space``."""
        return cls(
            color_space=space,
            channels=channels_for(space),
            bytes_per_sample=bytes_per_sample,
            planar=planar,
            flavor=flavor,
        )

    @property
    def is_inverted(self) -> bool:
        return self.flavor == Flavor.CHOCOLATE

    @property
    def is_lab(self) -> bool:
        return self.color_space == ColorSpace.LAB

    @property
    def samples_per_pixel(self) -> int:
        return self.channels + self.extra

    def row_bytes(self, width: int) -> int:
        """Size in bytes of one scanline of ``width`` pixels."""
        return width * self.samples_per_pixel * self.bytes_per_sample

    def encode(self) -> int:
        """Pack into the descriptor word."""
        if not isinstance(self.color_space, ColorSpace):
            raise InvalidFormatError(f"Unknown color space: {self.color_space!r}")
        if not isinstance(self.flavor, Flavor):
            raise InvalidFormatError(f"Unknown flavor: {self.flavor!r}")
        if not 0 <= self.bytes_per_sample <= BYTES_MASK:
            raise InvalidFormatError(f"bytes_per_sample out of range: {self.bytes_per_sample}")
        if not 0 <= self.channels <= CHANNELS_MASK:
            raise InvalidFormatError(f"channels out of range: {self.channels}")
        if not 0 <= self.extra <= EXTRA_MASK:
            raise InvalidFormatError(f"extra channels out of range: {self.extra}")

        return (
            (self.bytes_per_sample << BYTES_SHIFT)
            | (self.channels << CHANNELS_SHIFT)
            | (self.extra << EXTRA_SHIFT)
            | (int(self.planar) << PLANAR_SHIFT)
            | (self.flavor.value << FLAVOR_SHIFT)
            | (self.color_space.value << COLORSPACE_SHIFT)
        )

    @classmethod
    def decode(cls, word: int) -> "PixelFormat":
        """Unpack a descriptor word."""
        code = (word >> COLORSPACE_SHIFT) & COLORSPACE_MASK
        try:
            space = ColorSpace(code)
        except ValueError:
            raise InvalidFormatError(f"Unknown color space code {code} in format 0x{word:08X}") from None

        return cls(
            color_space=space,
            channels=(word >> CHANNELS_SHIFT) & CHANNELS_MASK,
            extra=(word >> EXTRA_SHIFT) & EXTRA_MASK,
            bytes_per_sample=(word >> BYTES_SHIFT) & BYTES_MASK,
            planar=bool((word >> PLANAR_SHIFT) & 1),
            flavor=Flavor((word >> FLAVOR_SHIFT) & 1),
        )

    def is_compatible(self, other: "PixelFormat") -> bool:
        """Same layout in every field except flavor."""
        return (
            self.color_space == other.color_space
            and self.channels == other.channels
            and self.extra == other.extra
            and self.bytes_per_sample == other.bytes_per_sample
            and self.planar == other.planar
        )

    def describe(self) -> str:
        parts = [f"{self.color_space.name}", f"{self.channels}ch", f"{self.bytes_per_sample * 8}bit"]
        if self.planar:
            parts.append("planar")
        if self.is_inverted:
            parts.append("inverted")
        return " ".join(parts)
