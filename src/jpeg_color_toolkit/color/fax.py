"""
ITU T.42 (G3FAX) CIELab fixed-point encoding.

    L* = [0, 100]    L16 = floor(L / 100 * 65535)
    a* = [-85, 85]   a16 = floor(a / 170 * 65535 + 32768)
    b* = [-75, 125]  b16 = floor(b / 200 * 65535 + 24576)

Encoding floors rather than rounds. Existing fax images were produced that
way, so the bias must be kept for byte-identical output.
"""

import math
from dataclasses import dataclass

import numpy as np

from .lab import LabColor


@dataclass(frozen=True)
class FaxSample:
    """One fax Lab pixel as three 16-bit values."""

    L16: int
    a16: int
    b16: int


def _saturate16(value: int) -> int:
    return 0 if value < 0 else 0xFFFF if value > 0xFFFF else value


def decode(sample: FaxSample) -> LabColor:
    """Fax fixed-point to float Lab."""
    return LabColor(
        L=sample.L16 / 655.35,
        a=170.0 * (sample.a16 - 32768.0) / 65535.0,
        b=200.0 * (sample.b16 - 24576.0) / 65535.0,
    )


def encode(lab: LabColor) -> FaxSample:
    """Float Lab to fax fixed-point (floor, then saturate)."""
    return FaxSample(
        L16=_saturate16(math.floor((lab.L / 100.0) * 65535.0)),
        a16=_saturate16(math.floor((lab.a / 170.0) * 65535.0 + 32768.0)),
        b16=_saturate16(math.floor((lab.b / 200.0) * 65535.0 + 24576.0)),
    )


def decode_array(samples: np.ndarray) -> np.ndarray:
    """Vectorized :func:`decode` over an array of shape (..., 3)."""
    samples = np.asarray(samples, dtype=np.float64)
    lab = np.empty_like(samples)
    lab[..., 0] = samples[..., 0] / 655.35
    lab[..., 1] = 170.0 * (samples[..., 1] - 32768.0) / 65535.0
    lab[..., 2] = 200.0 * (samples[..., 2] - 24576.0) / 65535.0
    return lab


def encode_array(lab: np.ndarray) -> np.ndarray:
    """Vectorized :func:`encode` over an array of shape (..., 3)."""
    lab = np.asarray(lab, dtype=np.float64)
    encoded = np.stack(
        [
            np.floor((lab[..., 0] / 100.0) * 65535.0),
            np.floor((lab[..., 1] / 170.0) * 65535.0 + 32768.0),
            np.floor((lab[..., 2] / 200.0) * 65535.0 + 24576.0),
        ],
        axis=-1,
    )
    return np.clip(encoded, 0, 0xFFFF).astype(np.uint16)
