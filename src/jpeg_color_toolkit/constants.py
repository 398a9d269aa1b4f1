"""
Centralized constants for JPEG Color Toolkit.

Marker signatures, stock profile names and the fax Lab envelope live here
so the color and jpeg layers agree on them.
"""

# Nodes per axis of the virtual fax profile lookup tables
GRID_POINTS = 33

# ITU T.42 default Lab range (RFC 2301, section 6.2.3)
FAX_L_MAX = 100.0
FAX_A_MIN = -85.0
FAX_A_MAX = 85.0
FAX_B_MIN = -75.0
FAX_B_MAX = 125.0

# JPEG application segment markers
JPEG_APP0 = 0xE0
APP1 = JPEG_APP0 + 1
APP13 = JPEG_APP0 + 13
APP14 = JPEG_APP0 + 14

# G3FAX identification marker (APP1)
FAX_IDENTIFIER = b"G3FAX\x00"
FAX_VERSION = 0x07CA  # 1994
FAX_RESOLUTION = 200  # pels / 25.4 mm

# Payload signatures
JFIF_SIGNATURE = b"JFIF\x00"
ADOBE_SIGNATURE = b"Adobe"
PHOTOSHOP_SIGNATURE = b"Photoshop"
PHOTOSHOP_RESOURCE_SIGNATURE = b"8BIM"
PHOTOSHOP_RESOLUTION_INFO = 0x03ED
# "Photoshop 3.0\0" precedes the first resource block
PHOTOSHOP_HEADER_LENGTH = 14

# Stock profile names (case-insensitive)
STOCK_SRGB = "*srgb"
STOCK_LAB = "*lab"

# ICC profile file extensions searched for default Gray/CMYK profiles
ICC_EXTENSIONS = {".icc", ".icm", ".ICC", ".ICM"}

# System locations for installed ICC profiles
SYSTEM_PROFILE_DIRS = [
    "/usr/share/color/icc",
    "/usr/local/share/color/icc",
    "/usr/share/ghostscript/iccprofiles",
    "/Library/ColorSync/Profiles",
    "/System/Library/ColorSync/Profiles",
    "C:/Windows/System32/spool/drivers/color",
]

# Default JPEG quality when none configured
DEFAULT_QUALITY = 75
