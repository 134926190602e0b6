"""Subprocess helpers for the external media tools (ffmpeg, yt-dlp)."""

import logging
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from slicetube.config import PipelineConfig
from slicetube.models import ExportFormat, TimeRange

logger = logging.getLogger(__name__)

# ffmpeg stderr fragments that mean "-c copy" was rejected, not a bad input.
STREAM_COPY_FAILURES = (
    "Error while copying",
    "Could not find tag for codec",
    "not currently supported in container",
)

AUDIO_TITLE = "Trimmed with SliceTube"


class ToolError(RuntimeError):
    """Base class for external tool failures."""


class ToolNotFoundError(ToolError):
    pass


class ProcessSpawnError(ToolError):
    """The tool binary is missing or could not be started."""


class ToolTimeoutError(ToolError):
    """The tool ran past its wall-clock limit and was killed."""


def check_tools(config: PipelineConfig | None = None) -> None:
    """Raise ToolNotFoundError if yt-dlp/ffmpeg are not on PATH."""
    config = config or PipelineConfig()
    for cmd in (config.ytdlp_bin, config.ffmpeg_bin):
        if shutil.which(cmd) is None:
            raise ToolNotFoundError(f"{cmd} not found on PATH")


def run_tool(
    cmd: Sequence[str], timeout: float | None = None
) -> subprocess.CompletedProcess[str]:
    """Spawn *cmd*, wait for it, and return its exit code and captured output.

    A non-zero exit is returned, not raised; callers decide what it means.
    """
    logger.debug("Running: %s", " ".join(cmd))
    try:
        return subprocess.run(
            list(cmd), capture_output=True, text=True, timeout=timeout, check=False
        )
    except subprocess.TimeoutExpired as exc:
        raise ToolTimeoutError(f"{cmd[0]} timed out after {timeout}s") from exc
    except OSError as exc:
        raise ProcessSpawnError(f"Could not start {cmd[0]}: {exc}") from exc


def diagnostic(result: subprocess.CompletedProcess[str], limit: int = 500) -> str:
    """Tail of the tool's stderr, or a generic message when it printed nothing."""
    stderr = (result.stderr or "").strip()
    if not stderr:
        return f"{result.args[0]} exited with code {result.returncode}"
    return stderr[-limit:]


def _input_args(source: str, headers: Mapping[str, str] | None) -> list[str]:
    args: list[str] = []
    if headers:
        args += ["-headers", "".join(f"{k}: {v}\r\n" for k, v in headers.items())]
    args += ["-i", source]
    return args


def build_fast_cut_command(
    source: str,
    output_path: Path,
    time_range: TimeRange,
    fmt: ExportFormat,
    config: PipelineConfig,
    headers: Mapping[str, str] | None = None,
) -> list[str]:
    """Seek-then-duration trim: stream copy for video, MP3 encode for audio."""
    cmd = [
        config.ffmpeg_bin, "-y",
        "-ss", str(time_range.start),
        *_input_args(source, headers),
        "-t", str(time_range.duration),
    ]
    if fmt is ExportFormat.AUDIO:
        cmd += [
            "-vn",
            "-c:a", "libmp3lame",
            "-q:a", str(config.mp3_quality),
            "-metadata", f"title={AUDIO_TITLE}",
        ]
    else:
        cmd += [
            "-c", "copy",
            "-avoid_negative_ts", "make_zero",
            "-movflags", "+faststart",
        ]
    cmd.append(str(output_path))
    return cmd


def build_transcode_command(
    source: str,
    output_path: Path,
    time_range: TimeRange,
    config: PipelineConfig,
    headers: Mapping[str, str] | None = None,
) -> list[str]:
    """Full re-encode of the segment (H.264 CRF + AAC)."""
    return [
        config.ffmpeg_bin, "-y",
        "-ss", str(time_range.start),
        *_input_args(source, headers),
        "-t", str(time_range.duration),
        "-c:v", "libx264",
        "-preset", config.preset,
        "-crf", str(config.crf),
        "-c:a", "aac",
        "-b:a", config.fallback_audio_bitrate,
        "-movflags", "+faststart",
        str(output_path),
    ]


def is_stream_copy_failure(stderr: str | None) -> bool:
    if not stderr:
        return False
    return any(marker in stderr for marker in STREAM_COPY_FAILURES)
