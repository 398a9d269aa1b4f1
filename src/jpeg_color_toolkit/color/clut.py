"""
Sampled color lookup tables.

A CLUTGrid holds a 16-bit table with ``grid_points`` nodes per input axis,
covering the full 16-bit input cube. It is filled once by calling a pure
function with every node and is read-only afterwards. Evaluation uses
multilinear interpolation between the surrounding nodes.
"""

import itertools
from collections.abc import Callable
from dataclasses import dataclass, field

import numpy as np

from ..constants import GRID_POINTS
from ..errors import SynthesisError

SampleFunction = Callable[[np.ndarray], np.ndarray]


def widen_8_to_16(samples: np.ndarray) -> np.ndarray:
    """8-bit samples to the 16-bit domain (v * 257)."""
    return np.asarray(samples, dtype=np.uint32) * 257


def narrow_16_to_8(samples: np.ndarray) -> np.ndarray:
    """16-bit samples to 8-bit with little-cms rounding."""
    wide = np.clip(np.floor(np.asarray(samples, dtype=np.float64) + 0.5), 0, 0xFFFF).astype(np.uint64)
    return ((wide * 65281 + 8388608) >> 24).astype(np.uint8)


def node_values(grid_points: int) -> np.ndarray:
    """16-bit input value at each node along one axis."""
    i = np.arange(grid_points, dtype=np.float64)
    return np.floor(i * 65535.0 / (grid_points - 1) + 0.5).astype(np.uint16)


@dataclass(frozen=True, eq=False)
class CLUTGrid:
    """Immutable N-input, M-output 16-bit lookup table."""

    table: np.ndarray
    grid_points: int
    inputs: int
    outputs: int
    _values: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        expected = (self.grid_points,) * self.inputs + (self.outputs,)
        if self.table.shape != expected:
            raise SynthesisError(f"CLUT shape {self.table.shape} does not match {expected}")
        self.table.setflags(write=False)
        values = self.table.astype(np.float64)
        values.setflags(write=False)
        object.__setattr__(self, "_values", values)

    @classmethod
    def sample(
        cls,
        fn: SampleFunction,
        grid_points: int = GRID_POINTS,
        inputs: int = 3,
        outputs: int = 3,
    ) -> "CLUTGrid":
        """
        Build a table by evaluating ``fn`` at every grid node.

        Args:
            fn: Maps an (N, inputs) uint16 array of node coordinates to an
                (N, outputs) array of 16-bit results
            grid_points: Nodes per axis (at least 2)
            inputs: Number of input dimensions
            outputs: Number of output channels

        Returns:
            Read-only CLUTGrid

        Raises:
            SynthesisError: If allocation fails or ``fn`` returns malformed
                or non-finite values
        """
        if grid_points < 2:
            raise SynthesisError(f"CLUT needs at least 2 grid points, got {grid_points}")

        try:
            axis = node_values(grid_points)
            mesh = np.meshgrid(*([axis] * inputs), indexing="ij")
            nodes = np.stack([m.reshape(-1) for m in mesh], axis=-1)
            result = np.asarray(fn(nodes))
        except MemoryError as e:
            raise SynthesisError(f"Out of memory sampling {grid_points}^{inputs} CLUT") from e

        if result.shape != (nodes.shape[0], outputs):
            raise SynthesisError(f"Sampler returned shape {result.shape}, expected {(nodes.shape[0], outputs)}")
        if result.dtype.kind == "f":
            if not np.all(np.isfinite(result)):
                raise SynthesisError("Sampler returned non-finite values")
            result = np.floor(result + 0.5)
        table = np.clip(result, 0, 0xFFFF).astype(np.uint16)

        return cls(
            table=table.reshape((grid_points,) * inputs + (outputs,)),
            grid_points=grid_points,
            inputs=inputs,
            outputs=outputs,
        )

    def evaluate(self, values: np.ndarray) -> np.ndarray:
        """
        Interpolate the table at 16-bit input coordinates.

        Args:
            values: Array of shape (..., inputs) in [0, 65535]

        Returns:
            Float array of shape (..., outputs) in the 16-bit output domain
        """
        values = np.asarray(values, dtype=np.float64)
        span = self.grid_points - 1
        pos = np.clip(values, 0.0, 65535.0) * (span / 65535.0)
        base = np.clip(np.floor(pos).astype(np.intp), 0, span - 1)
        frac = pos - base

        result = np.zeros(values.shape[:-1] + (self.outputs,), dtype=np.float64)
        for corner in itertools.product((0, 1), repeat=self.inputs):
            weight = np.ones(values.shape[:-1], dtype=np.float64)
            index = []
            for d, bit in enumerate(corner):
                weight *= frac[..., d] if bit else 1.0 - frac[..., d]
                index.append(base[..., d] + bit)
            result += weight[..., None] * self._values[tuple(index)]
        return result
