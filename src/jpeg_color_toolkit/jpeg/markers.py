"""
Auxiliary JPEG marker handling.

Markers are kept as an ordered list of (tag, payload) records exactly as
the decoder saved them. This module reads two facts from them (Photoshop
resolution, G3FAX identification), builds the G3FAX marker for fax output,
and decides which source markers to carry into the destination.
"""

import logging
import struct
from dataclasses import dataclass, field
from enum import Enum

from ..constants import (
    ADOBE_SIGNATURE,
    APP1,
    APP13,
    APP14,
    FAX_IDENTIFIER,
    FAX_RESOLUTION,
    FAX_VERSION,
    JFIF_SIGNATURE,
    JPEG_APP0,
    PHOTOSHOP_HEADER_LENGTH,
    PHOTOSHOP_RESOLUTION_INFO,
    PHOTOSHOP_RESOURCE_SIGNATURE,
    PHOTOSHOP_SIGNATURE,
)

logger = logging.getLogger(__name__)


class DensityUnit(Enum):
    """JFIF density units."""

    UNKNOWN = 0
    PIXELS_PER_INCH = 1
    PIXELS_PER_CM = 2


@dataclass(frozen=True)
class Marker:
    """One saved application marker."""

    tag: int
    payload: bytes

    @property
    def name(self) -> str:
        if JPEG_APP0 <= self.tag <= JPEG_APP0 + 15:
            return f"APP{self.tag - JPEG_APP0}"
        return f"0x{self.tag:02X}"

    def starts_with(self, signature: bytes) -> bool:
        return self.payload[: len(signature)] == signature

    def to_segment(self) -> bytes:
        """Serialized segment: 0xFF, tag, big-endian length (including itself), payload."""
        return b"\xff" + bytes([self.tag]) + struct.pack(">H", len(self.payload) + 2) + self.payload


@dataclass(frozen=True)
class Resolution:
    """Pixel density and its unit."""

    x_density: int
    y_density: int
    unit: DensityUnit

    @property
    def dpi(self) -> tuple[float, float] | None:
        """Density as dots per inch, or None when the unit is unknown."""
        if self.unit == DensityUnit.PIXELS_PER_INCH:
            return (float(self.x_density), float(self.y_density))
        if self.unit == DensityUnit.PIXELS_PER_CM:
            return (self.x_density * 2.54, self.y_density * 2.54)
        return None


@dataclass
class ImageMetadata:
    """Resolution and saved markers of one image."""

    x_density: int = 1
    y_density: int = 1
    density_unit: DensityUnit = DensityUnit.UNKNOWN
    markers: list[Marker] = field(default_factory=list)

    @property
    def resolution(self) -> Resolution:
        return Resolution(self.x_density, self.y_density, self.density_unit)

    def set_resolution(self, resolution: Resolution) -> None:
        self.x_density = resolution.x_density
        self.y_density = resolution.y_density
        self.density_unit = resolution.unit


def _fixed_16_16(data: bytes, offset: int) -> int:
    whole, frac = struct.unpack_from(">HH", data, offset)
    return int(whole + frac / 65536.0)


def _parse_photoshop_resources(data: bytes) -> Resolution | None:
    """Walk 8BIM resource blocks looking for ResolutionInfo (0x03ED)."""
    i = PHOTOSHOP_HEADER_LENGTH
    sig_len = len(PHOTOSHOP_RESOURCE_SIGNATURE)
    while i < len(data):
        if data[i : i + sig_len] != PHOTOSHOP_RESOURCE_SIGNATURE:
            break
        i += sig_len

        if i + 3 > len(data):
            break
        resource_type = struct.unpack_from(">H", data, i)[0]
        i += 2

        # Pascal name, padded so length byte + name is even
        name_len = data[i]
        i += name_len + (1 if name_len & 1 else 2)

        if i + 4 > len(data):
            break
        length = struct.unpack_from(">I", data, i)[0]
        i += 4

        if resource_type == PHOTOSHOP_RESOLUTION_INFO and length >= 16:
            if i + 12 > len(data):
                break
            return Resolution(
                x_density=_fixed_16_16(data, i),
                y_density=_fixed_16_16(data, i + 8),
                unit=DensityUnit.PIXELS_PER_INCH,
            )

        i += length + (length & 1)

    return None


def extract_resolution(markers: list[Marker]) -> Resolution | None:
    """
    Read the Photoshop ResolutionInfo resource from an APP13 marker.

    Only the first "Photoshop" APP13 marker is examined. Values are 16.16
    fixed point in pixels per inch and are truncated to integers.

    Args:
        markers: Saved source markers, in file order

    Returns:
        Resolution, or None if absent or malformed
    """
    for marker in markers:
        if marker.tag == APP13 and len(marker.payload) > len(PHOTOSHOP_SIGNATURE):
            if not marker.starts_with(PHOTOSHOP_SIGNATURE):
                continue
            resolution = _parse_photoshop_resources(marker.payload)
            if resolution is None:
                logger.debug("Photoshop APP13 marker has no usable resolution resource")
            return resolution
    return None


def is_fax_marker(marker: Marker) -> bool:
    return marker.tag == APP1 and marker.starts_with(FAX_IDENTIFIER)


def detect_fax_encoding(markers: list[Marker]) -> bool:
    """True if an APP1 marker carries the G3FAX identifier."""
    return any(is_fax_marker(m) for m in markers)


def has_adobe_marker(markers: list[Marker]) -> bool:
    """True if an APP14 marker starts with 'Adobe'."""
    return any(m.tag == APP14 and m.starts_with(ADOBE_SIGNATURE) for m in markers)


def fax_marker() -> Marker:
    """G3FAX APP1 marker with the default version (1994) and 200 pels/25.4 mm."""
    return Marker(APP1, FAX_IDENTIFIER + struct.pack(">HH", FAX_VERSION, FAX_RESOLUTION))


def filter_markers(markers: list[Marker], writes_jfif: bool, writes_adobe: bool) -> list[Marker]:
    """
    Markers to copy into the destination.

    A JFIF APP0 is dropped when the writer emits its own JFIF header, and an
    Adobe APP14 when the writer emits its own Adobe marker. Everything else
    is kept in order.
    """
    kept = []
    for marker in markers:
        if writes_jfif and marker.tag == JPEG_APP0 and marker.starts_with(JFIF_SIGNATURE):
            logger.debug("Dropping duplicate JFIF marker")
            continue
        if writes_adobe and marker.tag == APP14 and marker.starts_with(ADOBE_SIGNATURE):
            logger.debug("Dropping duplicate Adobe marker")
            continue
        kept.append(marker)
    return kept
