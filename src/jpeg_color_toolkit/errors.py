"""
Exception taxonomy for color conversion.

Every failure that aborts a conversion derives from ColorToolkitError so the
CLI can report it once and exit. Recoverable conditions (bad resolution
resource, missing fax marker, unknown markers) never raise.
"""


class ColorToolkitError(Exception):
    """Base class for conversion-aborting failures."""


class InvalidFormatError(ColorToolkitError, ValueError):
    """A pixel format field is out of range or names an unknown enum value."""


class ProfileMismatchError(ColorToolkitError):
    """The input profile does not operate in the input pixel format's color space."""

    def __init__(self, profile_space, format_space):
        self.profile_space = profile_space
        self.format_space = format_space
        super().__init__(
            f"Input profile is not operating in proper color space "
            f"(profile: {getattr(profile_space, 'name', profile_space)}, image: {format_space.name})"
        )


class UnsupportedColorSpaceError(ColorToolkitError):
    """A color space has no channel mapping or cannot be read/written."""


class ProfileError(ColorToolkitError):
    """A profile could not be opened, parsed or located."""


class SynthesisError(ColorToolkitError):
    """A virtual profile lookup table could not be synthesized."""


class TransformBuildError(ColorToolkitError):
    """The color engine refused to build a transform from the resolved profiles."""


class CodecError(ColorToolkitError):
    """Scanline read/write failure or out-of-order engine call."""
