"""
Virtual profiles for ITU T.42 fax Lab streams.

The forward profile decodes fax samples into the PCS; the inverse profile
gamut-maps PCS colors into the fax envelope and encodes them. Both are
CLUTGrids sampled at GRID_POINTS nodes per axis over the full 16-bit cube.
33 points gives good accuracy; fewer can be used if table size matters.
"""

import logging

import numpy as np

from ..constants import FAX_A_MAX, FAX_A_MIN, FAX_B_MAX, FAX_B_MIN, FAX_L_MAX, GRID_POINTS
from . import fax
from .clut import CLUTGrid
from .lab import desaturate_array, lab_to_pcs16, pcs16_to_lab
from .pixel_format import ColorSpace
from .profiles import DeviceClass, Direction, SampledProfile

logger = logging.getLogger(__name__)


def fax_to_pcs(nodes: np.ndarray) -> np.ndarray:
    """Sampler: fax 16-bit Lab -> 16-bit PCS Lab."""
    return lab_to_pcs16(fax.decode_array(nodes))


def pcs_to_fax(nodes: np.ndarray) -> np.ndarray:
    """Sampler: 16-bit PCS Lab -> gamut-mapped fax 16-bit Lab."""
    lab = desaturate_array(
        pcs16_to_lab(nodes),
        l_max=FAX_L_MAX,
        a_max=FAX_A_MAX,
        b_max=FAX_B_MAX,
        a_min=FAX_A_MIN,
        b_min=FAX_B_MIN,
    )
    return fax.encode_array(lab)


def build_forward_profile(grid_points: int = GRID_POINTS) -> SampledProfile:
    """Input profile that decodes ITU fax Lab to the PCS."""
    clut = CLUTGrid.sample(fax_to_pcs, grid_points=grid_points)
    logger.debug(f"Synthesized fax->PCS table ({grid_points}^3 nodes)")
    return SampledProfile(
        name="*Lab (ITU fax decode)",
        clut=clut,
        direction=Direction.DEVICE_TO_PCS,
        color_space=ColorSpace.LAB,
        pcs=ColorSpace.LAB,
        device_class=DeviceClass.COLOR_SPACE,
        description="ITU T.42 fax CIELab to PCS",
    )


def build_inverse_profile(grid_points: int = GRID_POINTS) -> SampledProfile:
    """Output profile that gamut-maps PCS Lab into the fax envelope and encodes it."""
    clut = CLUTGrid.sample(pcs_to_fax, grid_points=grid_points)
    logger.debug(f"Synthesized PCS->fax table ({grid_points}^3 nodes)")
    return SampledProfile(
        name="*Lab (ITU fax encode)",
        clut=clut,
        direction=Direction.PCS_TO_DEVICE,
        color_space=ColorSpace.LAB,
        pcs=ColorSpace.LAB,
        device_class=DeviceClass.COLOR_SPACE,
        description="PCS to ITU T.42 fax CIELab",
    )
