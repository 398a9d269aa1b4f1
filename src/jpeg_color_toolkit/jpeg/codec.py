"""
Scanline codec contracts and their Pillow backends.

The engine only needs "read one row", "write one row" and the saved
markers. PillowSource and PillowSink provide that on top of Pillow's
JPEG plugin (libjpeg underneath).

Samples always cross this boundary as libjpeg stores them: CMYK rows are
the raw stored values. Pillow inverts CMYK on both decode and encode
(it assumes Adobe conventions), so both backends undo that.
"""

import logging
from pathlib import Path
from typing import Protocol

import numpy as np
from PIL import Image, UnidentifiedImageError

from ..color.pipeline import JpegColorSpace, SourceColorInfo
from ..color.pixel_format import ColorSpace
from ..constants import DEFAULT_QUALITY, JPEG_APP0
from ..errors import CodecError, UnsupportedColorSpaceError
from .markers import DensityUnit, ImageMetadata, Marker, Resolution, detect_fax_encoding, has_adobe_marker

logger = logging.getLogger(__name__)

# Pillow stores embedded profiles itself; these markers are not carried as-is
ICC_MARKER_SIGNATURE = b"ICC_PROFILE\x00"

# Destination color space -> Pillow mode written by the encoder
SINK_MODES: dict[ColorSpace, str] = {
    ColorSpace.GRAY: "L",
    ColorSpace.RGB: "RGB",
    ColorSpace.YCBCR: "YCbCr",
    ColorSpace.CMYK: "CMYK",
    # Fax Lab samples are written as raw components, no color conversion
    ColorSpace.LAB: "YCbCr",
}


class ScanlineSource(Protocol):
    """Row-at-a-time reader of decoded samples."""

    width: int
    height: int
    components: int
    rows_read: int
    metadata: ImageMetadata
    color_info: SourceColorInfo

    def read_row(self, buffer: np.ndarray) -> None:
        """Fill ``buffer`` with the next interleaved row."""
        ...

    def close(self) -> None: ...


class ScanlineSink(Protocol):
    """Row-at-a-time writer of samples to encode."""

    rows_written: int

    @property
    def writes_jfif(self) -> bool: ...

    @property
    def writes_adobe(self) -> bool: ...

    def set_resolution(self, resolution: Resolution) -> None: ...

    def add_marker(self, marker: Marker) -> None: ...

    def embed_profile(self, data: bytes) -> None: ...

    def write_row(self, row: np.ndarray) -> None: ...

    def finish(self) -> None: ...


def _marker_tag(name: str) -> int | None:
    """'APP13' -> 0xED; None for anything that is not an APPn marker."""
    if name.startswith("APP") and name[3:].isdigit():
        n = int(name[3:])
        if 0 <= n <= 15:
            return JPEG_APP0 + n
    return None


def _jpeg_color_space(im: Image.Image) -> JpegColorSpace:
    """Compressed color space as libjpeg would report it."""
    layers = getattr(im, "layers", len(im.getbands()))
    transform = im.info.get("adobe_transform")
    if layers == 1:
        return JpegColorSpace.GRAYSCALE
    if layers == 3:
        return JpegColorSpace.RGB if "adobe" in im.info and transform == 0 else JpegColorSpace.YCBCR
    if layers == 4:
        return JpegColorSpace.YCCK if transform == 2 else JpegColorSpace.CMYK
    return JpegColorSpace.UNKNOWN


class PillowSource:
    """Decode a whole JPEG with Pillow and hand out its rows."""

    def __init__(self, path: Path):
        self.path = Path(path)
        try:
            self._image = Image.open(self.path)
        except (UnidentifiedImageError, OSError) as e:
            raise CodecError(f"Cannot open '{self.path}': {e}") from e
        if self._image.format != "JPEG":
            self._image.close()
            raise CodecError(f"'{self.path}' is not a JPEG file ({self._image.format})")

        im = self._image
        markers = []
        for name, payload in getattr(im, "applist", []):
            tag = _marker_tag(name)
            if tag is None:
                continue
            if tag == JPEG_APP0 + 2 and payload.startswith(ICC_MARKER_SIGNATURE):
                continue
            markers.append(Marker(tag, payload))

        self.metadata = ImageMetadata(markers=markers)
        if "jfif_density" in im.info:
            x, y = im.info["jfif_density"]
            unit = im.info.get("jfif_unit", 0)
            unit = DensityUnit(unit) if unit in (0, 1, 2) else DensityUnit.UNKNOWN
            self.metadata.set_resolution(Resolution(int(x), int(y), unit))

        self.width, self.height = im.size
        self.components = len(im.getbands())
        self.color_info = SourceColorInfo(
            jpeg_color_space=_jpeg_color_space(im),
            has_adobe_marker="adobe" in im.info or has_adobe_marker(markers),
            fax_encoded=detect_fax_encoding(markers),
            embedded_profile=im.info.get("icc_profile") or None,
            components=self.components,
        )

        self.rows_read = 0
        self._pixels: np.ndarray | None = None

    def _decode(self) -> np.ndarray:
        im = self._image
        if self.color_info.fax_encoded and im.mode == "RGB":
            # Keep the Lab components untouched
            im.draft("YCbCr", im.size)
        try:
            im.load()
        except OSError as e:
            raise CodecError(f"Cannot decode '{self.path}': {e}") from e

        pixels = np.asarray(im, dtype=np.uint8).reshape(self.height, self.width * self.components)
        if im.mode == "CMYK":
            pixels = 255 - pixels
        logger.debug(f"Decoded {self.path.name}: {self.width}x{self.height} {im.mode}")
        return pixels

    def read_row(self, buffer: np.ndarray) -> None:
        if self.rows_read >= self.height:
            raise CodecError(f"Read past last scanline of '{self.path}'")
        if self._pixels is None:
            self._pixels = self._decode()
        buffer[:] = self._pixels[self.rows_read]
        self.rows_read += 1

    def close(self) -> None:
        self._pixels = None
        self._image.close()


class PillowSink:
    """Collect rows and encode them with Pillow on finish."""

    # Pillow writes CMYK with an Adobe marker, i.e. inverted
    inverts_cmyk = True

    def __init__(self, path: Path, width: int, height: int, color_space: ColorSpace, quality: int = DEFAULT_QUALITY):
        try:
            self.mode = SINK_MODES[color_space]
        except KeyError:
            raise UnsupportedColorSpaceError(f"Cannot write {color_space.name} JPEG files") from None

        self.path = Path(path)
        self.width = width
        self.height = height
        self.color_space = color_space
        self.quality = max(0, min(100, quality))
        self.components = Image.getmodebands(self.mode)
        self.rows_written = 0
        self.resolution: Resolution | None = None
        self.markers: list[Marker] = []
        self.icc_profile: bytes | None = None
        self._pixels = np.zeros((height, width * self.components), dtype=np.uint8)

    @property
    def keep_rgb(self) -> bool:
        """At quality 100 RGB is stored as RGB instead of YCbCr."""
        return self.mode == "RGB" and self.quality >= 100

    @property
    def dpi(self) -> tuple[float, float] | None:
        return self.resolution.dpi if self.resolution else None

    @property
    def writes_jfif(self) -> bool:
        if self.mode in ("L", "YCbCr") or (self.mode == "RGB" and not self.keep_rgb):
            return True
        # libjpeg only adds JFIF to CMYK/RGB output when a density is given
        return self.dpi is not None

    @property
    def writes_adobe(self) -> bool:
        return self.mode == "CMYK" or self.keep_rgb

    def set_resolution(self, resolution: Resolution) -> None:
        self.resolution = resolution

    def add_marker(self, marker: Marker) -> None:
        self.markers.append(marker)

    def embed_profile(self, data: bytes) -> None:
        self.icc_profile = data

    def write_row(self, row: np.ndarray) -> None:
        if self.rows_written >= self.height:
            raise CodecError(f"Write past last scanline of '{self.path}'")
        self._pixels[self.rows_written] = row
        self.rows_written += 1

    def save_options(self) -> dict:
        """Keyword arguments for ``Image.save``."""
        options = {"format": "JPEG", "quality": self.quality}
        if self.quality >= 70:
            options["subsampling"] = 0
        if self.keep_rgb:
            options["keep_rgb"] = True
        if self.dpi:
            options["dpi"] = self.dpi
        if self.icc_profile:
            options["icc_profile"] = self.icc_profile
        if self.markers:
            options["extra"] = b"".join(m.to_segment() for m in self.markers)
        return options

    def finish(self) -> None:
        if self.rows_written != self.height:
            raise CodecError(f"Only {self.rows_written} of {self.height} scanlines written to '{self.path}'")

        pixels = self._pixels
        if self.mode == "CMYK":
            pixels = 255 - pixels
        shape = (self.height, self.width) if self.components == 1 else (self.height, self.width, self.components)
        data = np.ascontiguousarray(pixels.reshape(shape)).tobytes()
        im = Image.frombytes(self.mode, (self.width, self.height), data)
        try:
            im.save(self.path, **self.save_options())
        except (OSError, ValueError) as e:
            raise CodecError(f"Cannot write '{self.path}': {e}") from e
        logger.debug(f"Encoded {self.path.name}: {self.width}x{self.height} {self.mode} q={self.quality}")
