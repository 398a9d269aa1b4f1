"""
Transform assembly for one image.

TransformPipeline turns what is known about the source (JPEG color space,
Adobe and fax markers, embedded profile) plus the requested profiles into
an executable Transform:

1. pick the input pixel format
2. resolve the input profile (embedded, configured, fax default, stock default)
3. resolve the output and proofing profiles, unless the input is a device link
4. check the input profile against the input pixel format
5. derive the output pixel format from the output (or device link) space
6. build the transform
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ..constants import STOCK_LAB
from ..errors import ProfileError, ProfileMismatchError, UnsupportedColorSpaceError
from .pixel_format import ColorSpace, Flavor, PixelFormat
from .profiles import (
    ColorProfile,
    IccProfile,
    find_default_profile,
    is_stock_name,
    load_device_link,
    open_stock_profile,
    profile_search_dirs,
)
from .synthesizer import build_forward_profile, build_inverse_profile
from .transform import Intent, Transform, TransformFlags, build_transform

logger = logging.getLogger(__name__)


class JpegColorSpace(Enum):
    """Color space of the compressed JPEG data."""

    UNKNOWN = "unknown"
    GRAYSCALE = "grayscale"
    RGB = "rgb"
    YCBCR = "ycbcr"
    CMYK = "cmyk"
    YCCK = "ycck"


@dataclass(frozen=True)
class SourceColorInfo:
    """Color facts about a source image, gathered before decoding."""

    jpeg_color_space: JpegColorSpace
    has_adobe_marker: bool = False
    fax_encoded: bool = False
    embedded_profile: bytes | None = None
    components: int | None = None


@dataclass
class TransformRequest:
    """Profiles and switches asked for by the user."""

    input_profile: str | None = None
    output_profile: str | None = None
    proof_profile: str | None = None
    device_link: str | None = None
    intent: Intent = Intent.PERCEPTUAL
    proof_intent: Intent = Intent.PERCEPTUAL
    flags: TransformFlags = field(default_factory=TransformFlags)
    ignore_embedded: bool = False
    embed_profile: bool = False
    save_embedded: Path | None = None
    profile_dirs: list[Path] = field(default_factory=list)


@dataclass
class ResolvedTransform:
    """A built transform and the decisions that produced it."""

    transform: Transform
    input_format: PixelFormat
    output_format: PixelFormat
    input_profile: ColorProfile
    output_profile: ColorProfile | None
    proof_profile: ColorProfile | None = None
    used_embedded: bool = False
    embed_data: bytes | None = None

    @property
    def output_space(self) -> ColorSpace:
        return self.output_format.color_space


def _pixel_format_for(info: SourceColorInfo) -> PixelFormat:
    if info.fax_encoded:
        return PixelFormat.for_color_space(ColorSpace.LAB)

    jcs = info.jpeg_color_space
    if jcs == JpegColorSpace.GRAYSCALE:
        return PixelFormat.for_color_space(ColorSpace.GRAY)
    if jcs in (JpegColorSpace.RGB, JpegColorSpace.YCBCR):
        return PixelFormat.for_color_space(ColorSpace.RGB)
    if jcs in (JpegColorSpace.CMYK, JpegColorSpace.YCCK):
        flavor = Flavor.CHOCOLATE if info.has_adobe_marker else Flavor.VANILLA
        return PixelFormat.for_color_space(ColorSpace.CMYK, flavor=flavor)
    raise UnsupportedColorSpaceError(f"Unsupported color space ({jcs.value})")


def input_pixel_format(info: SourceColorInfo) -> PixelFormat:
    """
    Pixel format of decoded source rows.

    Fax-marked images are read as raw Lab components. YCbCr is decoded to
    RGB by the codec. Adobe CMYK/YCCK data is stored inverted.

    Raises:
        UnsupportedColorSpaceError: For JPEG color spaces with no mapping, or
            when the decoded component count does not fit the format
    """
    fmt = _pixel_format_for(info)
    if info.components is not None and info.components != fmt.channels:
        raise UnsupportedColorSpaceError(
            f"{fmt.color_space.name} needs {fmt.channels} components, image has {info.components}"
        )
    return fmt


def output_pixel_format(space: ColorSpace | None, input_format: PixelFormat, inverts_cmyk: bool) -> PixelFormat:
    """Output row format for ``space``; CMYK is inverted when the writer emits an Adobe marker."""
    if space is None:
        raise UnsupportedColorSpaceError("Unsupported output color space")
    flavor = Flavor.CHOCOLATE if space == ColorSpace.CMYK and inverts_cmyk else Flavor.VANILLA
    return PixelFormat.for_color_space(space, planar=input_format.planar, flavor=flavor)


class TransformPipeline:
    """Resolves profiles for one image and builds its transform."""

    def __init__(self, request: TransformRequest | None = None):
        self.request = request or TransformRequest()

    def _search_dirs(self) -> list[Path]:
        return profile_search_dirs(self.request.profile_dirs)

    def _save_embedded(self, data: bytes) -> None:
        target = self.request.save_embedded
        if target is None:
            return
        try:
            Path(target).write_bytes(data)
            logger.info(f"Saved embedded profile to {target}")
        except OSError as e:
            logger.warning(f"Cannot save embedded profile to {target}: {e}")

    def resolve_input_profile(self, info: SourceColorInfo, fmt: PixelFormat) -> tuple[ColorProfile, bool]:
        """
        Pick the input profile.

        Returns:
            Tuple of (profile, came_from_embedded_data)
        """
        request = self.request

        if request.device_link:
            path = Path(request.device_link)
            if not path.exists():
                raise ProfileError(f"Device link not found: {path}")
            return load_device_link(path.read_bytes(), name=path.name, intent=request.intent.value), False

        if not request.ignore_embedded and info.embedded_profile:
            profile = IccProfile.from_bytes(info.embedded_profile, name="embedded")
            logger.debug(f"Using embedded profile: {profile.description}")
            self._save_embedded(info.embedded_profile)
            return profile, True

        ref = request.input_profile
        if ref is None and fmt.is_lab:
            ref = STOCK_LAB
        if is_stock_name(ref, STOCK_LAB):
            logger.debug("Input is ITU fax Lab, synthesizing decode profile")
            return build_forward_profile(), False

        if ref is None and fmt.color_space in (ColorSpace.GRAY, ColorSpace.CMYK):
            found = find_default_profile(fmt.color_space, self._search_dirs())
            if found is None:
                raise ProfileError(f"No input profile given and no installed {fmt.color_space.name} profile found")
            return IccProfile.from_file(found), False

        return open_stock_profile(ref), False

    def resolve_output_profile(self) -> ColorProfile:
        ref = self.request.output_profile
        if is_stock_name(ref, STOCK_LAB):
            logger.debug("Output is ITU fax Lab, synthesizing encode profile")
            return build_inverse_profile()
        return open_stock_profile(ref)

    def build(self, info: SourceColorInfo, inverts_cmyk: bool = True) -> ResolvedTransform:
        """
        Build the transform for a source image.

        Args:
            info: Color facts about the source
            inverts_cmyk: Whether the destination writer stores CMYK inverted
                (it writes an Adobe marker)

        Returns:
            ResolvedTransform

        Raises:
            ProfileMismatchError: If the input profile and pixel format disagree
            UnsupportedColorSpaceError: If the input or output space has no mapping
            ProfileError: If a profile cannot be opened or located
            TransformBuildError: If the color engine rejects the profiles
        """
        request = self.request
        input_format = input_pixel_format(info)
        logger.debug(f"Input pixel format: {input_format.describe()} (0x{input_format.encode():08X})")

        input_profile, used_embedded = self.resolve_input_profile(info, input_format)

        output_profile = None
        proof_profile = None
        if not input_profile.is_device_link:
            output_profile = self.resolve_output_profile()
            if request.proof_profile:
                proof_profile = open_stock_profile(request.proof_profile)

        if input_profile.color_space != input_format.color_space:
            raise ProfileMismatchError(input_profile.color_space, input_format.color_space)

        if input_profile.is_device_link:
            output_space = input_profile.pcs
        else:
            output_space = output_profile.color_space
        output_format = output_pixel_format(output_space, input_format, inverts_cmyk)
        logger.debug(f"Output pixel format: {output_format.describe()} (0x{output_format.encode():08X})")

        transform = build_transform(
            input_format,
            output_format,
            input_profile,
            output_profile,
            proof_profile,
            intent=request.intent,
            proof_intent=request.proof_intent,
            flags=request.flags,
        )

        embed_data = None
        if request.embed_profile and isinstance(output_profile, IccProfile) and output_profile.path is not None:
            embed_data = output_profile.data

        return ResolvedTransform(
            transform=transform,
            input_format=input_format,
            output_format=output_format,
            input_profile=input_profile,
            output_profile=output_profile,
            proof_profile=proof_profile,
            used_embedded=used_embedded,
            embed_data=embed_data,
        )
