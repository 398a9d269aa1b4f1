"""
JPEG layer - markers, scanline codec backends and the conversion loop.

The codec itself is Pillow's JPEG plugin; this package only moves rows
and markers between a source and a destination.
"""

from .codec import PillowSink, PillowSource, ScanlineSink, ScanlineSource
from .engine import EngineState, ScanlineEngine
from .markers import (
    DensityUnit,
    ImageMetadata,
    Marker,
    Resolution,
    detect_fax_encoding,
    extract_resolution,
    fax_marker,
    filter_markers,
    is_fax_marker,
)

__all__ = [
    # Markers
    "DensityUnit",
    "ImageMetadata",
    "Marker",
    "Resolution",
    "detect_fax_encoding",
    "extract_resolution",
    "fax_marker",
    "filter_markers",
    "is_fax_marker",
    # Codec
    "PillowSink",
    "PillowSource",
    "ScanlineSink",
    "ScanlineSource",
    # Engine
    "EngineState",
    "ScanlineEngine",
]
