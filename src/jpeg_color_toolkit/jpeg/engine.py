"""
Scanline execution loop.

    IDLE --start()--> STREAMING --step()...--> (all rows) --finish()--> FINISHED

start() carries resolution across and emits the destination-only markers
(G3FAX for fax Lab output, the embedded output profile). step() moves one
row through the transform using two buffers allocated once. finish()
closes the source, copies the surviving source markers and encodes.
"""

import logging
from enum import Enum

import numpy as np
from PIL import ImageCms

from ..color.pixel_format import ColorSpace
from ..color.transform import Transform
from ..errors import CodecError, ColorToolkitError
from .codec import ScanlineSink, ScanlineSource
from .markers import Resolution, extract_resolution, fax_marker, filter_markers, is_fax_marker

logger = logging.getLogger(__name__)


class EngineState(Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    FINISHED = "finished"


class ScanlineEngine:
    """Drives read -> transform -> write for one image."""

    def __init__(self, source: ScanlineSource, sink: ScanlineSink):
        self.source = source
        self.sink = sink
        self.state = EngineState.IDLE
        self.transform: Transform | None = None
        self.resolution: Resolution | None = None
        self.rows_processed = 0
        self._row_in: np.ndarray | None = None
        self._row_out: np.ndarray | None = None

    def start(self, transform: Transform, output_space: ColorSpace, embed_profile: bytes | None = None) -> None:
        """
        Prepare the destination and allocate row buffers.

        Args:
            transform: Built transform for this image
            output_space: Color space of the destination rows
            embed_profile: ICC bytes to embed in the destination, if any

        Raises:
            CodecError: If called twice
        """
        if self.state != EngineState.IDLE:
            raise CodecError(f"start() called in state {self.state.value}")

        # Photoshop resolution wins over the JFIF header, as libjpeg readers see it
        self.resolution = extract_resolution(self.source.metadata.markers) or self.source.metadata.resolution
        self.sink.set_resolution(self.resolution)

        if output_space == ColorSpace.LAB:
            self.sink.add_marker(fax_marker())
        if embed_profile:
            self.sink.embed_profile(embed_profile)

        width = self.source.width
        self.transform = transform
        self._row_in = np.empty(transform.input_format.row_bytes(width), dtype=np.uint8)
        self._row_out = np.empty(transform.output_format.row_bytes(width), dtype=np.uint8)
        self.state = EngineState.STREAMING
        logger.debug(
            f"Streaming {width}x{self.source.height}: "
            f"{transform.input_format.describe()} -> {transform.output_format.describe()}"
        )

    @property
    def done(self) -> bool:
        return self.source.rows_read >= self.source.height

    def step(self) -> bool:
        """
        Convert one row.

        Returns:
            True if a row was converted, False if the source is exhausted

        Raises:
            CodecError: On read, transform or write failure, or if not streaming
        """
        if self.state != EngineState.STREAMING:
            raise CodecError(f"step() called in state {self.state.value}")
        if self.done:
            return False

        try:
            self.source.read_row(self._row_in)
            self.transform.apply(self._row_in, self._row_out)
            self.sink.write_row(self._row_out)
        except ColorToolkitError:
            raise
        except (ValueError, OSError, ImageCms.PyCMSError) as e:
            raise CodecError(f"Scanline {self.rows_processed} failed: {e}") from e
        self.rows_processed += 1
        return True

    def finish(self) -> None:
        """Close the source, copy markers and finalize the destination."""
        if self.state != EngineState.STREAMING:
            raise CodecError(f"finish() called in state {self.state.value}")
        if not self.done:
            raise CodecError(f"finish() with {self.source.height - self.source.rows_read} rows left")

        self.source.close()
        # The G3FAX marker describes the output encoding and was settled in start()
        markers = [m for m in self.source.metadata.markers if not is_fax_marker(m)]
        for marker in filter_markers(markers, self.sink.writes_jfif, self.sink.writes_adobe):
            self.sink.add_marker(marker)
        self.sink.finish()
        self.state = EngineState.FINISHED
        logger.debug(f"Finished after {self.rows_processed} rows")

    def run(self, transform: Transform, output_space: ColorSpace, embed_profile: bytes | None = None) -> int:
        """start(), step() until done, finish(). Returns rows processed."""
        self.start(transform, output_space, embed_profile)
        while self.step():
            pass
        self.finish()
        return self.rows_processed
