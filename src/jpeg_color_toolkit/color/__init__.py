"""
Color layer - pixel formats, Lab encodings, profiles and transforms.

Supports:
- little-cms pixel format words (color space, channels, flavor)
- ITU T.42 fax Lab encoding with gamut mapping into the fax envelope
- Virtual fax profiles backed by 33x33x33 sampled tables
- ICC profiles through Pillow ImageCms, lut8/lut16 device links in-process
"""

from .clut import CLUTGrid
from .fax import FaxSample
from .lab import LabColor, desaturate
from .pipeline import (
    JpegColorSpace,
    ResolvedTransform,
    SourceColorInfo,
    TransformPipeline,
    TransformRequest,
    input_pixel_format,
)
from .pixel_format import ColorSpace, Flavor, PixelFormat
from .profiles import ColorProfile, DeviceClass, IccProfile, SampledProfile, load_device_link, open_stock_profile
from .synthesizer import build_forward_profile, build_inverse_profile
from .transform import Intent, PrecalcMode, Transform, TransformFlags, build_transform

__all__ = [
    # Pixel formats
    "ColorSpace",
    "Flavor",
    "PixelFormat",
    # Lab
    "LabColor",
    "FaxSample",
    "desaturate",
    # Profiles
    "CLUTGrid",
    "ColorProfile",
    "DeviceClass",
    "IccProfile",
    "SampledProfile",
    "load_device_link",
    "open_stock_profile",
    "build_forward_profile",
    "build_inverse_profile",
    # Transforms
    "Intent",
    "PrecalcMode",
    "Transform",
    "TransformFlags",
    "build_transform",
    # Pipeline
    "JpegColorSpace",
    "ResolvedTransform",
    "SourceColorInfo",
    "TransformPipeline",
    "TransformRequest",
    "input_pixel_format",
]
