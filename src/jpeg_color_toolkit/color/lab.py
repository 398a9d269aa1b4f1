"""
CIELab values, PCS encodings and gamut mapping.

The profile connection space here is always D50 CIELab. Three encodings
appear at the edges of the pipeline:

- float Lab (L in [0, 100], a/b unbounded) for all arithmetic
- 16-bit PCS Lab (ICC v4): L * 655.35, (a + 128) * 257, (b + 128) * 257
- 8-bit Lab as exchanged with little-cms through Pillow's "LAB" mode:
  L * 255 / 100, a + 128, b + 128
"""

import math
from dataclasses import dataclass

import numpy as np

from ..constants import FAX_A_MAX, FAX_A_MIN, FAX_B_MAX, FAX_B_MIN, FAX_L_MAX


@dataclass(frozen=True)
class LabColor:
    """Device-independent perceptual color."""

    L: float
    a: float
    b: float

    @property
    def hue(self) -> float:
        """Hue angle in degrees, [0, 360)."""
        h = math.degrees(math.atan2(self.b, self.a))
        return h + 360.0 if h < 0 else h

    def as_array(self) -> np.ndarray:
        return np.array([self.L, self.a, self.b], dtype=np.float64)


def desaturate_array(
    lab: np.ndarray,
    l_max: float = FAX_L_MAX,
    a_max: float = FAX_A_MAX,
    b_max: float = FAX_B_MAX,
    a_min: float = FAX_A_MIN,
    b_min: float = FAX_B_MIN,
) -> np.ndarray:
    """
    Clip Lab values into the rectangle [a_min, a_max] x [b_min, b_max].

    Colors outside the rectangle move toward the neutral axis along their
    hue ray until they touch the nearest face, so hue is kept exactly.
    Negative lightness collapses to black and lightness above ``l_max`` is
    clamped. Colors inside (or on the edge of) the rectangle are returned
    unchanged.

    Args:
        lab: Array of shape (..., 3) holding L, a, b

    Returns:
        New array of the same shape
    """
    out = np.array(lab, dtype=np.float64, copy=True)
    L = out[..., 0]
    a = out[..., 1]
    b = out[..., 2]

    scale = np.ones_like(a)
    with np.errstate(divide="ignore", invalid="ignore"):
        scale = np.where(a > a_max, np.minimum(scale, a_max / a), scale)
        scale = np.where(a < a_min, np.minimum(scale, a_min / a), scale)
        scale = np.where(b > b_max, np.minimum(scale, b_max / b), scale)
        scale = np.where(b < b_min, np.minimum(scale, b_min / b), scale)

    outside = scale < 1.0
    # Scaling can overshoot a face by one ulp
    a[...] = np.where(outside, np.clip(a * scale, a_min, a_max), a)
    b[...] = np.where(outside, np.clip(b * scale, b_min, b_max), b)

    np.minimum(L, l_max, out=L)
    black = L < 0
    out[black] = 0.0
    return out


def desaturate(
    lab: LabColor,
    l_max: float = FAX_L_MAX,
    a_max: float = FAX_A_MAX,
    b_max: float = FAX_B_MAX,
    a_min: float = FAX_A_MIN,
    b_min: float = FAX_B_MIN,
) -> LabColor:
    """Scalar form of :func:`desaturate_array`."""
    L, a, b = desaturate_array(lab.as_array(), l_max, a_max, b_max, a_min, b_min)
    return LabColor(float(L), float(a), float(b))


def pcs16_to_lab(encoded: np.ndarray) -> np.ndarray:
    """16-bit ICC v4 PCS Lab (may be fractional) to float Lab."""
    encoded = np.asarray(encoded, dtype=np.float64)
    lab = np.empty_like(encoded)
    lab[..., 0] = encoded[..., 0] / 655.35
    lab[..., 1] = encoded[..., 1] / 257.0 - 128.0
    lab[..., 2] = encoded[..., 2] / 257.0 - 128.0
    return lab


def lab_to_pcs16(lab: np.ndarray) -> np.ndarray:
    """Float Lab to 16-bit ICC v4 PCS Lab, saturating at the encoding limits."""
    lab = np.asarray(lab, dtype=np.float64)
    L = np.clip(lab[..., 0], 0.0, 100.0)
    a = np.clip(lab[..., 1], -128.0, 127.9961)
    b = np.clip(lab[..., 2], -128.0, 127.9961)
    encoded = np.stack([L * 655.35, (a + 128.0) * 257.0, (b + 128.0) * 257.0], axis=-1)
    return np.clip(np.floor(encoded + 0.5), 0, 0xFFFF).astype(np.uint16)


def lab8_to_lab(lab8: np.ndarray) -> np.ndarray:
    """8-bit Lab samples to float Lab."""
    lab8 = np.asarray(lab8, dtype=np.float64)
    lab = np.empty_like(lab8)
    lab[..., 0] = lab8[..., 0] * 100.0 / 255.0
    lab[..., 1] = lab8[..., 1] - 128.0
    lab[..., 2] = lab8[..., 2] - 128.0
    return lab


def lab_to_lab8(lab: np.ndarray) -> np.ndarray:
    """Float Lab to 8-bit Lab samples, rounded and saturated."""
    lab = np.asarray(lab, dtype=np.float64)
    encoded = np.stack([lab[..., 0] * 255.0 / 100.0, lab[..., 1] + 128.0, lab[..., 2] + 128.0], axis=-1)
    return np.clip(np.floor(encoded + 0.5), 0, 255).astype(np.uint8)
