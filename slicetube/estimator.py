"""Predict export size without cutting anything."""

import logging

from slicetube import ytdlp
from slicetube.config import PipelineConfig
from slicetube.models import ByteEstimate, ExportFormat, TimeRange, VideoReference

logger = logging.getLogger(__name__)

_UNITS = ((1024 ** 3, "GB"), (1024 ** 2, "MB"), (1024, "KB"))


class EstimateError(RuntimeError):
    """The estimate is unavailable; callers degrade instead of failing."""


def format_size(num_bytes: float) -> str:
    for threshold, unit in _UNITS:
        if num_bytes >= threshold:
            return f"{num_bytes / threshold:.1f} {unit}"
    return f"{num_bytes:.1f} B"


def compute_estimate_bytes(
    fmt: ExportFormat,
    duration: float,
    bitrate_kbps: float | None,
    config: PipelineConfig | None = None,
) -> float:
    """Bitrate * duration, plus container overhead.

    Audio ignores the source bitrate because exports are re-encoded at a
    fixed rate.
    """
    config = config or PipelineConfig()
    if fmt is ExportFormat.AUDIO:
        kbps = config.audio_bitrate_kbps
    elif bitrate_kbps:
        kbps = bitrate_kbps
    else:
        raise EstimateError("Source bitrate is unknown")
    return kbps * 1000 * duration / 8 * config.container_overhead


def estimate(
    ref: VideoReference,
    time_range: TimeRange,
    fmt: ExportFormat,
    config: PipelineConfig | None = None,
) -> ByteEstimate:
    config = config or PipelineConfig()
    bitrate = None
    if fmt is ExportFormat.VIDEO:
        try:
            bitrate = ytdlp.probe_bitrate(ref.raw_url, config)
        except ytdlp.YtDlpError as exc:
            raise EstimateError(str(exc)) from exc

    num_bytes = compute_estimate_bytes(fmt, time_range.duration, bitrate, config)
    return ByteEstimate(size=format_size(num_bytes), bytes=round(num_bytes))
