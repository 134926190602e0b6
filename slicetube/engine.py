"""Orchestrator — runs the export pipeline for one trim request."""

import logging
import uuid
from typing import Callable

from slicetube import ffutil
from slicetube.config import PipelineConfig
from slicetube.locator import locate
from slicetube.models import (
    ExportArtifact,
    ExportFormat,
    Purpose,
    TimeRange,
    VideoReference,
)

logger = logging.getLogger(__name__)


class ExportError(RuntimeError):
    """Cutting failed; carries the tool's diagnostic text."""


def _run_ffmpeg(cmd: list[str], config: PipelineConfig):
    try:
        return ffutil.run_tool(cmd, timeout=config.process_timeout)
    except ffutil.ToolError as exc:
        raise ExportError(str(exc)) from exc


def export(
    ref: VideoReference,
    time_range: TimeRange,
    fmt: ExportFormat,
    config: PipelineConfig | None = None,
    on_progress: Callable[[str, float], None] | None = None,
) -> ExportArtifact:
    """Cut *time_range* out of *ref* and return the encoded file in memory.

    Args:
        ref: Classified source link.
        time_range: Segment to keep, in seconds.
        fmt: VIDEO tries a stream copy first and re-encodes only if ffmpeg
            rejects the copy; AUDIO is a single MP3 encode.
        config: Pipeline settings; defaults are used when omitted.
        on_progress: Optional callback(stage_name, fraction_complete).

    Raises:
        LocatorError: the source could not be resolved or downloaded.
        ExportError: ffmpeg failed, timed out, or produced no output.

    Temp files created along the way (downloaded input and encoded output)
    are gone by the time this returns or raises.
    """

    def _progress(stage: str, frac: float) -> None:
        if on_progress:
            on_progress(stage, frac)

    config = config or PipelineConfig()

    _progress("Resolving source", 0.0)
    source = locate(ref, Purpose.EXPORT, config)

    work_dir = config.work_dir()
    output_path = work_dir / f"{uuid.uuid4()}.{fmt.extension}"

    try:
        stage = "cut"
        try:
            _progress("Cutting segment", 0.3)
            work_dir.mkdir(parents=True, exist_ok=True)
            result = _run_ffmpeg(
                ffutil.build_fast_cut_command(
                    source.input_arg, output_path, time_range, fmt, config,
                    headers=source.extra_headers,
                ),
                config,
            )
            if (
                result.returncode != 0
                and fmt is ExportFormat.VIDEO
                and ffutil.is_stream_copy_failure(result.stderr)
            ):
                logger.info("Stream copy rejected for %s, retrying with re-encode", ref.raw_url)
                _progress("Re-encoding segment", 0.5)
                stage = "transcode"
                result = _run_ffmpeg(
                    ffutil.build_transcode_command(
                        source.input_arg, output_path, time_range, config,
                        headers=source.extra_headers,
                    ),
                    config,
                )
        finally:
            # The downloaded input is only needed while ffmpeg runs.
            source.release()

        if result.returncode != 0:
            message = ffutil.diagnostic(result)
            logger.error("ffmpeg %s failed (rc=%s): %s", stage, result.returncode, message)
            raise ExportError(f"ffmpeg {stage} failed with code {result.returncode}: {message}")

        _progress("Reading output", 0.9)
        try:
            data = output_path.read_bytes()
        except OSError as exc:
            raise ExportError(f"ffmpeg produced no readable output: {exc}") from exc
    finally:
        output_path.unlink(missing_ok=True)

    _progress("Done", 1.0)
    return ExportArtifact(data=data, media_type=fmt.media_type, filename=fmt.filename)
