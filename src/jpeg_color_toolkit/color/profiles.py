"""
Color profile model.

Two kinds of profile flow through the pipeline:

- IccProfile: an ICC profile opened by little-cms (via Pillow ImageCms),
  from a file, from bytes embedded in an image, or built in (sRGB).
- SampledProfile: a profile evaluated in-process from a CLUTGrid, either
  synthesized (the fax Lab profiles) or loaded from a lut8/lut16
  device-link tag.

Both expose the three facts the pipeline needs: data color space, PCS
and device class. Only the ICC header and, for device links, one A2B tag
are ever parsed here; everything else stays inside little-cms.
"""

import io
import logging
import struct
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import numpy as np
from PIL import ImageCms

from ..constants import ICC_EXTENSIONS, STOCK_LAB, STOCK_SRGB, SYSTEM_PROFILE_DIRS
from ..errors import ProfileError
from .clut import CLUTGrid, narrow_16_to_8, widen_8_to_16
from .lab import lab_to_pcs16, pcs16_to_lab
from .pixel_format import CANONICAL_CHANNELS, ColorSpace

logger = logging.getLogger(__name__)

ICC_HEADER_SIZE = 128
ICC_MAGIC = b"acsp"

# ICC data color space signatures
SIGNATURE_TO_SPACE: dict[bytes, ColorSpace] = {
    b"GRAY": ColorSpace.GRAY,
    b"RGB ": ColorSpace.RGB,
    b"CMY ": ColorSpace.CMY,
    b"CMYK": ColorSpace.CMYK,
    b"YCbr": ColorSpace.YCBCR,
    b"Luv ": ColorSpace.YUV,
    b"XYZ ": ColorSpace.XYZ,
    b"Lab ": ColorSpace.LAB,
}
SPACE_TO_SIGNATURE = {space: sig for sig, space in SIGNATURE_TO_SPACE.items()}


class DeviceClass(Enum):
    """ICC profile/device class."""

    INPUT = "scnr"
    DISPLAY = "mntr"
    OUTPUT = "prtr"
    LINK = "link"
    ABSTRACT = "abst"
    COLOR_SPACE = "spac"
    NAMED_COLOR = "nmcl"


class Direction(Enum):
    """Which way a sampled profile's table maps."""

    DEVICE_TO_PCS = "device_to_pcs"
    PCS_TO_DEVICE = "pcs_to_device"
    DEVICE_LINK = "device_link"


@dataclass(frozen=True)
class IccHeader:
    """The parts of a 128-byte ICC header the pipeline relies on."""

    size: int
    version: tuple[int, int]
    device_class: DeviceClass
    color_space: ColorSpace | None
    color_space_signature: str
    pcs: ColorSpace | None
    pcs_signature: str


def parse_icc_header(data: bytes) -> IccHeader:
    """
    Read size, version, class, color space and PCS from an ICC header.

    Raises:
        ProfileError: If the data is too short or lacks the 'acsp' magic
    """
    if len(data) < ICC_HEADER_SIZE:
        raise ProfileError(f"ICC data too short ({len(data)} bytes)")
    if data[36:40] != ICC_MAGIC:
        raise ProfileError("Not an ICC profile (missing 'acsp' signature)")

    size = struct.unpack_from(">I", data, 0)[0]
    major, minor = data[8], data[9] >> 4
    class_sig = data[12:16].decode("latin-1")
    try:
        device_class = DeviceClass(class_sig)
    except ValueError:
        raise ProfileError(f"Unknown ICC device class '{class_sig}'") from None

    return IccHeader(
        size=size,
        version=(major, minor),
        device_class=device_class,
        color_space=SIGNATURE_TO_SPACE.get(data[16:20]),
        color_space_signature=data[16:20].decode("latin-1"),
        pcs=SIGNATURE_TO_SPACE.get(data[20:24]),
        pcs_signature=data[20:24].decode("latin-1"),
    )


class ColorProfile:
    """Common surface of ICC and sampled profiles."""

    def __init__(
        self,
        name: str,
        color_space: ColorSpace | None,
        pcs: ColorSpace | None,
        device_class: DeviceClass,
        description: str = "",
    ):
        self.name = name
        self.color_space = color_space
        self.pcs = pcs
        self.device_class = device_class
        self.description = description or name

    @property
    def is_device_link(self) -> bool:
        return self.device_class == DeviceClass.LINK

    @property
    def is_sampled(self) -> bool:
        return False

    def __repr__(self) -> str:
        space = self.color_space.name if self.color_space else "?"
        pcs = self.pcs.name if self.pcs else "?"
        return f"{type(self).__name__}({self.name!r}, {space}->{pcs}, {self.device_class.value})"


class IccProfile(ColorProfile):
    """ICC profile opened by little-cms."""

    def __init__(self, cms: ImageCms.ImageCmsProfile, data: bytes, name: str, path: Path | None = None):
        header = parse_icc_header(data)
        try:
            description = (ImageCms.getProfileDescription(cms) or "").strip()
        except ImageCms.PyCMSError:
            description = ""
        super().__init__(
            name=name,
            color_space=header.color_space,
            pcs=header.pcs,
            device_class=header.device_class,
            description=description,
        )
        self.cms = cms
        self.data = data
        self.path = path
        self.header = header

    @classmethod
    def from_bytes(cls, data: bytes, name: str = "embedded", path: Path | None = None) -> "IccProfile":
        """Open a profile from raw ICC bytes."""
        header = parse_icc_header(data)
        if header.device_class == DeviceClass.LINK:
            logger.debug(f"{name} is a device link profile")
        try:
            cms = ImageCms.getOpenProfile(io.BytesIO(data))
        except (ImageCms.PyCMSError, OSError) as e:
            raise ProfileError(f"Cannot open profile '{name}': {e}") from e
        return cls(cms, data, name=name, path=path)

    @classmethod
    def from_file(cls, path: Path) -> "IccProfile":
        """Open a profile from an ICC file."""
        path = Path(path)
        if not path.exists():
            raise ProfileError(f"Profile not found: {path}")
        return cls.from_bytes(path.read_bytes(), name=path.name, path=path)

    @classmethod
    def srgb(cls) -> "IccProfile":
        """Built-in sRGB profile."""
        cms = ImageCms.ImageCmsProfile(ImageCms.createProfile("sRGB"))
        return cls(cms, cms.tobytes(), name="*sRGB")

    @classmethod
    def lab_d50(cls) -> "IccProfile":
        """Built-in D50 CIELab identity profile, used as the PCS exchange point."""
        cms = ImageCms.ImageCmsProfile(ImageCms.createProfile("LAB"))
        return cls(cms, cms.tobytes(), name="*Lab D50")


class SampledProfile(ColorProfile):
    """Profile evaluated in-process from a 16-bit lookup table."""

    def __init__(
        self,
        name: str,
        clut: CLUTGrid,
        direction: Direction,
        color_space: ColorSpace,
        pcs: ColorSpace,
        device_class: DeviceClass,
        input_curves: list[np.ndarray] | None = None,
        output_curves: list[np.ndarray] | None = None,
        description: str = "",
    ):
        super().__init__(name, color_space, pcs, device_class, description)
        self.clut = clut
        self.direction = direction
        self.input_curves = input_curves
        self.output_curves = output_curves

    @property
    def is_sampled(self) -> bool:
        return True

    @staticmethod
    def _apply_curves(values: np.ndarray, curves: list[np.ndarray]) -> np.ndarray:
        out = np.empty(values.shape, dtype=np.float64)
        for ch, curve in enumerate(curves):
            xp = np.linspace(0.0, 65535.0, len(curve))
            out[..., ch] = np.interp(values[..., ch], xp, curve.astype(np.float64))
        return out

    def evaluate16(self, values: np.ndarray) -> np.ndarray:
        """Input curves, table, output curves over 16-bit values."""
        values = np.asarray(values, dtype=np.float64)
        if self.input_curves:
            values = self._apply_curves(values, self.input_curves)
        result = self.clut.evaluate(values)
        if self.output_curves:
            result = self._apply_curves(result, self.output_curves)
        return result

    def device_to_lab(self, samples: np.ndarray) -> np.ndarray:
        """8-bit device samples to float Lab."""
        return pcs16_to_lab(self.evaluate16(widen_8_to_16(samples)))

    def lab_to_device(self, lab: np.ndarray) -> np.ndarray:
        """Float Lab to 8-bit device samples."""
        return narrow_16_to_8(self.evaluate16(lab_to_pcs16(lab)))

    def device_to_device(self, samples: np.ndarray) -> np.ndarray:
        """8-bit samples through a device link."""
        return narrow_16_to_8(self.evaluate16(widen_8_to_16(samples)))


def _read_tag_table(data: bytes) -> dict[str, tuple[int, int]]:
    if len(data) < ICC_HEADER_SIZE + 4:
        raise ProfileError("ICC profile has no tag table")
    count = struct.unpack_from(">I", data, ICC_HEADER_SIZE)[0]
    tags = {}
    pos = ICC_HEADER_SIZE + 4
    for _ in range(count):
        if pos + 12 > len(data):
            raise ProfileError("Truncated ICC tag table")
        sig, offset, size = struct.unpack_from(">4sII", data, pos)
        if offset + size > len(data):
            raise ProfileError(f"ICC tag '{sig.decode('latin-1')}' extends past end of profile")
        tags[sig.decode("latin-1")] = (offset, size)
        pos += 12
    return tags


def _parse_lut_tag(tag: bytes, n_in: int, n_out: int):
    """Decode an mft1 (lut8) or mft2 (lut16) tag into curves and a CLUT."""
    kind = tag[0:4]
    if kind not in (b"mft1", b"mft2"):
        raise ProfileError(f"Unsupported device-link tag type '{kind.decode('latin-1')}' (need lut8 or lut16)")

    inputs, outputs, points = tag[8], tag[9], tag[10]
    if inputs != n_in or outputs != n_out:
        raise ProfileError(f"Device-link table is {inputs}->{outputs} channels, header says {n_in}->{n_out}")
    if points < 2:
        raise ProfileError(f"Device-link table has {points} grid points")

    if kind == b"mft2":
        in_entries, out_entries = struct.unpack_from(">HH", tag, 48)
        dtype, scale, pos = ">u2", 1, 52
    else:
        in_entries = out_entries = 256
        dtype, scale, pos = "u1", 257, 48
    width = np.dtype(dtype).itemsize
    clut_size = points**inputs * outputs

    needed = pos + (inputs * in_entries + clut_size + outputs * out_entries) * width
    if len(tag) < needed:
        raise ProfileError(f"Device-link table truncated ({len(tag)} of {needed} bytes)")

    def take(count):
        nonlocal pos
        arr = np.frombuffer(tag, dtype=dtype, count=count, offset=pos).astype(np.uint32) * scale
        pos += count * width
        return arr.astype(np.uint16)

    input_curves = [take(in_entries) for _ in range(inputs)]
    table = take(clut_size).reshape((points,) * inputs + (outputs,))
    output_curves = [take(out_entries) for _ in range(outputs)]
    clut = CLUTGrid(table=table, grid_points=points, inputs=inputs, outputs=outputs)
    return input_curves, clut, output_curves


def load_device_link(data: bytes, name: str = "device-link", intent: int = 0) -> SampledProfile:
    """
    Load an ICC device-link profile into a SampledProfile.

    The A2B tag for ``intent`` is used when present, A2B0 otherwise. Only
    lut8/lut16 tags are understood.

    Raises:
        ProfileError: If the profile is not a device link or its table
            cannot be decoded
    """
    header = parse_icc_header(data)
    if header.device_class != DeviceClass.LINK:
        raise ProfileError(f"'{name}' is not a device-link profile (class '{header.device_class.value}')")
    if header.color_space is None or header.pcs is None:
        raise ProfileError(
            f"Device link '{name}' uses unsupported spaces {header.color_space_signature}->{header.pcs_signature}"
        )
    if header.color_space == ColorSpace.XYZ:
        raise ProfileError(f"Device link '{name}' takes XYZ input, which is not supported")

    tags = _read_tag_table(data)
    sig = f"A2B{intent}" if f"A2B{intent}" in tags else "A2B0"
    if sig not in tags:
        raise ProfileError(f"Device link '{name}' has no A2B0 tag")
    offset, size = tags[sig]

    n_in = CANONICAL_CHANNELS.get(header.color_space, 0)
    n_out = CANONICAL_CHANNELS.get(header.pcs, 0)
    input_curves, clut, output_curves = _parse_lut_tag(data[offset : offset + size], n_in, n_out)

    logger.debug(f"Loaded device link {name}: {header.color_space.name}->{header.pcs.name}, {clut.grid_points} points")
    return SampledProfile(
        name=name,
        clut=clut,
        direction=Direction.DEVICE_LINK,
        color_space=header.color_space,
        pcs=header.pcs,
        device_class=DeviceClass.LINK,
        input_curves=input_curves,
        output_curves=output_curves,
    )


def is_stock_name(ref: str | None, stock: str) -> bool:
    """Case-insensitive match against a stock profile name."""
    return ref is not None and str(ref).lower() == stock


def open_stock_profile(ref: str | Path | None) -> IccProfile:
    """
    Open a profile by reference: None or '*sRGB' for built-in sRGB, else a path.

    '*Lab' is resolved by the pipeline, which knows the direction.
    """
    if ref is None or is_stock_name(str(ref), STOCK_SRGB):
        return IccProfile.srgb()
    if is_stock_name(str(ref), STOCK_LAB):
        raise ProfileError("'*Lab' is a virtual profile and cannot be opened directly")
    return IccProfile.from_file(Path(ref))


def _header_space(path: Path) -> ColorSpace | None:
    """Color space signature at offset 16 of an ICC file, or None."""
    try:
        with open(path, "rb") as f:
            head = f.read(ICC_HEADER_SIZE)
    except OSError:
        return None
    if len(head) < ICC_HEADER_SIZE or head[36:40] != ICC_MAGIC:
        return None
    if head[12:16] == b"link":
        return None
    return SIGNATURE_TO_SPACE.get(head[16:20])


def profile_search_dirs(extra: list[Path] | None = None) -> list[Path]:
    """Directories searched for installed profiles, most specific first."""
    dirs: list[Path] = list(extra or [])
    dirs.append(Path.home() / ".local" / "share" / "color" / "icc")
    dirs.extend(Path(d) for d in SYSTEM_PROFILE_DIRS)
    return dirs


def find_default_profile(space: ColorSpace, search_dirs: list[Path] | None = None) -> Path | None:
    """First installed .icc/.icm profile whose data color space is ``space``."""
    for directory in search_dirs if search_dirs is not None else profile_search_dirs():
        if not directory.is_dir():
            continue
        for candidate in sorted(directory.iterdir()):
            if candidate.suffix in ICC_EXTENSIONS and _header_space(candidate) == space:
                logger.debug(f"Default {space.name} profile: {candidate}")
                return candidate
    return None
