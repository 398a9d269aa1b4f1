"""Shared pytest fixtures for jpeg-color-toolkit tests."""

import struct

import numpy as np
import pytest
from PIL import Image
from typer.testing import CliRunner

from jpeg_color_toolkit.color.profiles import IccProfile
from jpeg_color_toolkit.constants import APP13
from jpeg_color_toolkit.jpeg.markers import Marker, fax_marker


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def rgb_jpeg(tmp_path):
    """Uniform mid-gray RGB JPEG with a 150 dpi JFIF header."""
    path = tmp_path / "rgb.jpg"
    Image.new("RGB", (16, 8), (128, 128, 128)).save(path, quality=95, subsampling=0, dpi=(150, 150))
    return path


@pytest.fixture
def gray_jpeg(tmp_path):
    """Grayscale JPEG."""
    path = tmp_path / "gray.jpg"
    Image.new("L", (16, 8), 100).save(path, quality=95)
    return path


@pytest.fixture
def cmyk_jpeg(tmp_path):
    """Adobe CMYK JPEG (Pillow writes CMYK inverted with an APP14 marker)."""
    path = tmp_path / "cmyk.jpg"
    Image.new("CMYK", (16, 8), (10, 20, 30, 40)).save(path, quality=95, subsampling=0)
    return path


@pytest.fixture
def fax_jpeg(tmp_path):
    """ITU fax Lab JPEG: raw components plus a G3FAX APP1 marker."""
    path = tmp_path / "fax.jpg"
    # L = 100 * 200/255, a ~ 0, b ~ 0 in 8-bit fax encoding
    Image.new("YCbCr", (16, 8), (200, 128, 96)).save(
        path, quality=95, subsampling=0, extra=fax_marker().to_segment()
    )
    return path


def photoshop_payload(x_dpi: int = 300, y_dpi: int = 300) -> bytes:
    """Photoshop APP13 payload: an IPTC block, then ResolutionInfo."""
    iptc = b"8BIM" + b"\x04\x04" + b"\x00\x00" + struct.pack(">I", 5) + b"abcde" + b"\x00"
    resolution = (
        b"8BIM"
        + b"\x03\xed"
        + b"\x03res"
        + struct.pack(">I", 16)
        + struct.pack(">HHHHHHHH", x_dpi, 0, 1, 1, y_dpi, 0, 1, 1)
    )
    return b"Photoshop 3.0\x00" + iptc + resolution


@pytest.fixture
def photoshop_jpeg(tmp_path):
    """RGB JPEG whose resolution lives only in a Photoshop resource block."""
    path = tmp_path / "photoshop.jpg"
    Image.new("RGB", (16, 8), (100, 150, 200)).save(
        path, quality=95, subsampling=0, extra=Marker(APP13, photoshop_payload()).to_segment()
    )
    return path


@pytest.fixture
def srgb_icc(tmp_path):
    """Built-in sRGB profile written to a file."""
    path = tmp_path / "srgb.icc"
    path.write_bytes(IccProfile.srgb().data)
    return path


def build_device_link(points: int = 2, invert: bool = True) -> bytes:
    """
    CMYK -> CMYK lut16 (mft2) device-link profile.

    Each output channel is the inverse (or copy) of the matching input channel.
    """
    n = 4
    axis = np.linspace(0, 65535, points)
    grids = np.meshgrid(*([axis] * n), indexing="ij")
    table = np.stack(grids, axis=-1)
    if invert:
        table = 65535 - table
    curve = np.array([0, 65535], dtype=">u2")

    tag = b"mft2" + b"\x00" * 4 + bytes([n, n, points, 0])
    tag += struct.pack(">9i", 65536, 0, 0, 0, 65536, 0, 0, 0, 65536)
    tag += struct.pack(">HH", 2, 2)
    tag += curve.tobytes() * n
    tag += np.round(table).astype(">u2").tobytes()
    tag += curve.tobytes() * n

    tag_offset = 128 + 4 + 12
    size = tag_offset + len(tag)
    header = bytearray(128)
    struct.pack_into(">I", header, 0, size)
    header[8] = 4
    header[12:16] = b"link"
    header[16:20] = b"CMYK"
    header[20:24] = b"CMYK"
    header[36:40] = b"acsp"
    tag_table = struct.pack(">I", 1) + b"A2B0" + struct.pack(">II", tag_offset, len(tag))
    return bytes(header) + tag_table + tag


@pytest.fixture
def device_link_bytes():
    """Inverting CMYK device link."""
    return build_device_link()


@pytest.fixture
def device_link_file(tmp_path, device_link_bytes):
    path = tmp_path / "invert-link.icc"
    path.write_bytes(device_link_bytes)
    return path


@pytest.fixture
def sample_config(tmp_path):
    """Create a sample config file."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    config_file = config_dir / "config.yaml"
    config_file.write_text(
        f"""
profiles:
  output: "*Lab"
  search_dirs:
    - "{tmp_path / "icc"}"

rendering:
  intent: 1
  black_point_compensation: true
  precalc: 2

output:
  quality: 90
  save_embedded: "{tmp_path / "embedded.icc"}"

logging:
  level: "DEBUG"
  console: false
"""
    )
    return config_file
