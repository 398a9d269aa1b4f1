"""
Conversion driver - one JPEG in, one JPEG out.

All per-image state lives in a ConversionContext. Failures inside the color
and jpeg layers raise ColorToolkitError subclasses; convert_image turns them
into a failed ConversionResult so callers report once and stop.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from .color.pipeline import ResolvedTransform, TransformPipeline, TransformRequest
from .color.transform import Intent, PrecalcMode, TransformFlags
from .config import AppConfig, validate_config
from .errors import ColorToolkitError
from .jpeg.codec import PillowSink, PillowSource
from .jpeg.engine import ScanlineEngine

logger = logging.getLogger(__name__)


@dataclass
class ConversionContext:
    """Everything one conversion needs, passed explicitly."""

    input_path: Path
    output_path: Path
    config: AppConfig = field(default_factory=AppConfig)

    def transform_request(self) -> TransformRequest:
        """Translate config sections into a pipeline request."""
        profiles = self.config.profiles
        rendering = self.config.rendering
        output = self.config.output
        return TransformRequest(
            input_profile=profiles.input,
            output_profile=profiles.output,
            proof_profile=profiles.proofing,
            device_link=profiles.device_link,
            intent=Intent(rendering.intent),
            proof_intent=Intent(rendering.proofing_intent),
            flags=TransformFlags(
                black_point_compensation=rendering.black_point_compensation,
                gamut_check=rendering.gamut_check,
                precalc=PrecalcMode(rendering.precalc),
                soft_proofing=bool(profiles.proofing) and not profiles.device_link,
            ),
            ignore_embedded=output.ignore_embedded,
            embed_profile=output.embed_profile,
            save_embedded=output.save_embedded,
            profile_dirs=list(profiles.search_dirs),
        )


@dataclass
class ConversionResult:
    """Result of a conversion."""

    success: bool
    input_path: Path
    output_path: Path | None = None
    input_size: int = 0
    output_size: int = 0
    width: int = 0
    height: int = 0
    input_format: str = ""
    output_format: str = ""
    input_profile: str = ""
    output_profile: str = ""
    used_embedded_profile: bool = False
    rows_processed: int = 0
    elapsed_seconds: float = 0.0
    error: str | None = None


def _describe_profiles(resolved: ResolvedTransform) -> tuple[str, str]:
    input_desc = resolved.input_profile.description
    if resolved.output_profile is None:
        return input_desc, "(device link)"
    return input_desc, resolved.output_profile.description


def convert_image(context: ConversionContext) -> ConversionResult:
    """
    Convert one JPEG through the configured color transform.

    Args:
        context: Paths and configuration for this conversion

    Returns:
        ConversionResult; ``success`` is False and ``error`` set on failure
    """
    start_time = time.time()
    input_path = Path(context.input_path)
    output_path = Path(context.output_path)
    result = ConversionResult(success=False, input_path=input_path)

    if errors := validate_config(context.config):
        result.error = "; ".join(errors)
        return result

    source = None
    try:
        source = PillowSource(input_path)
        result.width, result.height = source.width, source.height
        result.input_size = input_path.stat().st_size

        pipeline = TransformPipeline(context.transform_request())
        resolved = pipeline.build(source.color_info, inverts_cmyk=PillowSink.inverts_cmyk)
        result.input_format = resolved.input_format.describe()
        result.output_format = resolved.output_format.describe()
        result.input_profile, result.output_profile = _describe_profiles(resolved)
        result.used_embedded_profile = resolved.used_embedded
        logger.info(f"{input_path.name}: {result.input_format} -> {result.output_format}")

        sink = PillowSink(
            output_path,
            source.width,
            source.height,
            resolved.output_space,
            quality=context.config.output.quality,
        )
        engine = ScanlineEngine(source, sink)
        result.rows_processed = engine.run(resolved.transform, resolved.output_space, resolved.embed_data)
        source = None
    except ColorToolkitError as e:
        logger.debug(f"Conversion of {input_path} failed: {e}")
        result.error = str(e)
        return result
    finally:
        if source is not None:
            source.close()
        result.elapsed_seconds = time.time() - start_time

    result.success = True
    result.output_path = output_path
    result.output_size = output_path.stat().st_size
    logger.info(f"Wrote {output_path} ({result.rows_processed} rows, {result.elapsed_seconds:.2f}s)")
    return result
