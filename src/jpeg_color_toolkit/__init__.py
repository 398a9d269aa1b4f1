"""
JPEG Color Toolkit (jct) - ICC color transforms for JPEG images

Recolors JPEG images with:
- Input, output and soft-proofing ICC profiles (little-cms via Pillow)
- Device-link profiles (lut8/lut16 tables)
- ITU T.42 / G3FAX CIELab streams through synthesized virtual profiles
- Resolution and marker pass-through between source and destination
"""

__version__ = "0.1.0"
__package_name__ = "jpeg-color-toolkit"
__short_name__ = "jct"
