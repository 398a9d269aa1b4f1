"""
Executable color transforms.

A Transform maps rows of one PixelFormat to rows of another. Two engines
exist behind the same interface:

- CmsTransform: every profile is an ICC profile, so the whole chain
  (input -> optional proof -> output) is one little-cms transform built
  through Pillow ImageCms.
- StagedTransform: at least one profile is sampled in-process (fax Lab
  profiles, device links). The chain runs as stages that meet in float
  PCS Lab; ICC halves are little-cms transforms to or from the built-in
  D50 Lab profile.

Flavor is handled at both ends: inverted rows are flipped before the first
stage and after the last one.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import numpy as np
from PIL import Image, ImageCms

from ..errors import TransformBuildError, UnsupportedColorSpaceError
from .lab import lab8_to_lab, lab_to_lab8
from .pixel_format import ColorSpace, PixelFormat
from .profiles import ColorProfile, Direction, IccProfile, SampledProfile

logger = logging.getLogger(__name__)

# Pillow image modes little-cms can read and write
PILLOW_MODES: dict[ColorSpace, str] = {
    ColorSpace.GRAY: "L",
    ColorSpace.RGB: "RGB",
    ColorSpace.CMYK: "CMYK",
    ColorSpace.LAB: "LAB",
    ColorSpace.YCBCR: "YCbCr",
}


class Intent(Enum):
    """ICC rendering intents."""

    PERCEPTUAL = 0
    RELATIVE_COLORIMETRIC = 1
    SATURATION = 2
    ABSOLUTE_COLORIMETRIC = 3

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()

    def to_cms(self) -> ImageCms.Intent:
        return ImageCms.Intent(self.value)


class PrecalcMode(Enum):
    """Precalculation of the device link table inside little-cms."""

    OFF = 0
    NORMAL = 1
    HIRES = 2
    LORES = 3


_PRECALC_FLAGS = {
    PrecalcMode.OFF: ImageCms.Flags.NOOPTIMIZE,
    PrecalcMode.NORMAL: ImageCms.Flags.NONE,
    PrecalcMode.HIRES: ImageCms.Flags.HIGHRESPRECALC,
    PrecalcMode.LORES: ImageCms.Flags.LOWRESPRECALC,
}


@dataclass(frozen=True)
class TransformFlags:
    """Quality switches for transform construction."""

    black_point_compensation: bool = False
    gamut_check: bool = False
    precalc: PrecalcMode = PrecalcMode.NORMAL
    soft_proofing: bool = False

    def to_cms(self) -> ImageCms.Flags:
        """little-cms dwFlags equivalent."""
        flags = _PRECALC_FLAGS[self.precalc]
        if self.black_point_compensation:
            flags |= ImageCms.Flags.BLACKPOINTCOMPENSATION
        if self.gamut_check:
            flags |= ImageCms.Flags.GAMUTCHECK
        if self.soft_proofing:
            flags |= ImageCms.Flags.SOFTPROOFING
        return flags


def pillow_mode(space: ColorSpace) -> str:
    """Pillow mode for a color space handled by little-cms."""
    try:
        return PILLOW_MODES[space]
    except KeyError:
        raise UnsupportedColorSpaceError(f"little-cms path cannot handle {space.name} pixels") from None


def _to_image(pixels: np.ndarray, mode: str) -> Image.Image:
    """(N, channels) uint8 array to an N x 1 Pillow image."""
    width = pixels.shape[0]
    if mode == "LAB":
        # Raw LAB packing treats a/b as signed; merge keeps the offset encoding
        bands = [Image.frombytes("L", (width, 1), np.ascontiguousarray(pixels[:, i]).tobytes()) for i in range(3)]
        return Image.merge("LAB", bands)
    return Image.frombytes(mode, (width, 1), np.ascontiguousarray(pixels).tobytes())


def _from_image(im: Image.Image, channels: int) -> np.ndarray:
    width = im.size[0]
    if im.mode == "LAB":
        return np.stack([np.frombuffer(band.tobytes(), dtype=np.uint8) for band in im.split()], axis=-1)
    return np.frombuffer(im.tobytes(), dtype=np.uint8).reshape(width, channels)


class Transform:
    """Row mapping from ``input_format`` to ``output_format``."""

    def __init__(self, input_format: PixelFormat, output_format: PixelFormat):
        self.input_format = input_format
        self.output_format = output_format

    def _convert(self, pixels: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def apply_pixels(self, pixels: np.ndarray) -> np.ndarray:
        """
        Transform an (N, input channels) uint8 array.

        Returns:
            (N, output channels) uint8 array
        """
        pixels = np.asarray(pixels, dtype=np.uint8)
        if self.input_format.is_inverted:
            pixels = 255 - pixels
        result = self._convert(pixels)
        if self.output_format.is_inverted:
            result = 255 - result
        return result

    def apply(self, row_in, row_out: np.ndarray) -> None:
        """
        Transform one interleaved scanline into a caller-owned buffer.

        Args:
            row_in: Input row bytes (any buffer), width * input channels long
            row_out: Writable uint8 array, width * output channels long
        """
        samples = np.frombuffer(row_in, dtype=np.uint8) if not isinstance(row_in, np.ndarray) else row_in
        pixels = samples.reshape(-1, self.input_format.samples_per_pixel)
        result = self.apply_pixels(pixels)
        row_out[: result.size] = result.reshape(-1)


class CmsTransform(Transform):
    """Single little-cms transform over ICC profiles."""

    def __init__(
        self,
        input_format: PixelFormat,
        output_format: PixelFormat,
        cms_transform: ImageCms.ImageCmsTransform,
    ):
        super().__init__(input_format, output_format)
        self.cms_transform = cms_transform
        self._in_mode = pillow_mode(input_format.color_space)

    def _convert(self, pixels: np.ndarray) -> np.ndarray:
        im = _to_image(pixels, self._in_mode)
        out = ImageCms.applyTransform(im, self.cms_transform)
        return _from_image(out, self.output_format.channels)


Stage = Callable[[np.ndarray], np.ndarray]


class StagedTransform(Transform):
    """Chain of stages meeting in float PCS Lab."""

    def __init__(self, input_format: PixelFormat, output_format: PixelFormat, stages: list[Stage]):
        super().__init__(input_format, output_format)
        self.stages = stages

    def _convert(self, pixels: np.ndarray) -> np.ndarray:
        data = pixels
        for stage in self.stages:
            data = stage(data)
        return np.asarray(data, dtype=np.uint8)


def _build_cms(
    input_profile: IccProfile,
    output_profile: IccProfile,
    in_mode: str,
    out_mode: str,
    intent: Intent,
    flags: TransformFlags,
    proof_profile: IccProfile | None = None,
    proof_intent: Intent = Intent.PERCEPTUAL,
) -> ImageCms.ImageCmsTransform:
    try:
        if proof_profile is not None:
            return ImageCms.buildProofTransform(
                input_profile.cms,
                output_profile.cms,
                proof_profile.cms,
                in_mode,
                out_mode,
                renderingIntent=intent.to_cms(),
                proofRenderingIntent=proof_intent.to_cms(),
                flags=flags.to_cms(),
            )
        return ImageCms.buildTransform(
            input_profile.cms,
            output_profile.cms,
            in_mode,
            out_mode,
            renderingIntent=intent.to_cms(),
            flags=flags.to_cms(),
        )
    except ImageCms.PyCMSError as e:
        raise TransformBuildError(f"Cannot transform by using the profiles: {e}") from e


def _cms_stage(transform: ImageCms.ImageCmsTransform, in_mode: str, out_channels: int) -> Stage:
    def stage(pixels: np.ndarray) -> np.ndarray:
        out = ImageCms.applyTransform(_to_image(pixels, in_mode), transform)
        return _from_image(out, out_channels)

    return stage


def _require_direction(profile: SampledProfile, direction: Direction) -> None:
    if profile.direction != direction:
        raise TransformBuildError(f"Profile {profile.name} maps {profile.direction.value}, needed {direction.value}")


def _input_stage(profile: ColorProfile, fmt: PixelFormat, intent: Intent, flags: TransformFlags) -> Stage:
    """Device samples -> float Lab."""
    if isinstance(profile, SampledProfile):
        _require_direction(profile, Direction.DEVICE_TO_PCS)
        return profile.device_to_lab
    mode = pillow_mode(fmt.color_space)
    cms = _build_cms(profile, IccProfile.lab_d50(), mode, "LAB", intent, flags)
    to_lab8 = _cms_stage(cms, mode, 3)
    return lambda pixels: lab8_to_lab(to_lab8(pixels))


def _output_stage(profile: ColorProfile, fmt: PixelFormat, intent: Intent, flags: TransformFlags) -> Stage:
    """Float Lab -> device samples."""
    if isinstance(profile, SampledProfile):
        _require_direction(profile, Direction.PCS_TO_DEVICE)
        return profile.lab_to_device
    mode = pillow_mode(fmt.color_space)
    cms = _build_cms(IccProfile.lab_d50(), profile, "LAB", mode, intent, flags)
    from_lab8 = _cms_stage(cms, "LAB", fmt.channels)
    return lambda lab: from_lab8(lab_to_lab8(lab))


def _proof_stage(
    proof_profile: IccProfile, intent: Intent, proof_intent: Intent, flags: TransformFlags
) -> Stage:
    """Float Lab -> Lab as reproduced on the proofing device."""
    lab = IccProfile.lab_d50()
    cms = _build_cms(lab, lab, "LAB", "LAB", intent, flags, proof_profile, proof_intent)
    simulate = _cms_stage(cms, "LAB", 3)
    return lambda values: lab8_to_lab(simulate(lab_to_lab8(values)))


def build_transform(
    input_format: PixelFormat,
    output_format: PixelFormat,
    input_profile: ColorProfile,
    output_profile: ColorProfile | None,
    proof_profile: ColorProfile | None = None,
    intent: Intent = Intent.PERCEPTUAL,
    proof_intent: Intent = Intent.PERCEPTUAL,
    flags: TransformFlags | None = None,
) -> Transform:
    """
    Combine resolved profiles into one executable transform.

    Args:
        input_format: Layout of rows handed to ``apply``
        output_format: Layout of rows produced by ``apply``
        input_profile: Device profile for the input, or a device link
        output_profile: Device profile for the output (None with a device link)
        proof_profile: Optional device to simulate (soft proofing)
        intent: Rendering intent for input -> output
        proof_intent: Rendering intent for the simulated device
        flags: Quality switches

    Returns:
        CmsTransform when every profile is ICC, StagedTransform otherwise

    Raises:
        TransformBuildError: If little-cms rejects the profile combination
        UnsupportedColorSpaceError: If an ICC half needs a mode Pillow lacks
    """
    flags = flags or TransformFlags()
    if proof_profile is not None and not flags.soft_proofing:
        flags = TransformFlags(flags.black_point_compensation, flags.gamut_check, flags.precalc, True)

    if input_profile.is_device_link:
        if not isinstance(input_profile, SampledProfile) or input_profile.direction != Direction.DEVICE_LINK:
            raise TransformBuildError(f"Device link {input_profile.name} was not loaded as a sampled link table")
        logger.debug(f"Device link transform: {input_format.describe()} -> {output_format.describe()}")
        return StagedTransform(input_format, output_format, [input_profile.device_to_device])

    if output_profile is None:
        raise TransformBuildError("No output profile for a non device-link transform")

    profiles = [p for p in (input_profile, output_profile, proof_profile) if p is not None]
    if not any(p.is_sampled for p in profiles):
        cms = _build_cms(
            input_profile,
            output_profile,
            pillow_mode(input_format.color_space),
            pillow_mode(output_format.color_space),
            intent,
            flags,
            proof_profile,
            proof_intent,
        )
        logger.debug(f"little-cms transform: {input_format.describe()} -> {output_format.describe()}")
        return CmsTransform(input_format, output_format, cms)

    # Proofing is applied once, on the PCS side, so the halves are plain
    half_flags = TransformFlags(flags.black_point_compensation, False, flags.precalc, False)
    stages = [_input_stage(input_profile, input_format, intent, half_flags)]
    if proof_profile is not None:
        if isinstance(proof_profile, SampledProfile):
            raise TransformBuildError("Proofing against a sampled profile is not supported")
        stages.append(_proof_stage(proof_profile, intent, proof_intent, flags))
    stages.append(_output_stage(output_profile, output_format, intent, half_flags))

    logger.debug(f"Staged transform ({len(stages)} stages): {input_format.describe()} -> {output_format.describe()}")
    return StagedTransform(input_format, output_format, stages)
