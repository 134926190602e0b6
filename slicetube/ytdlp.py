"""yt-dlp wrappers: direct-URL resolution, full download and bitrate probe."""

import glob
import logging
from collections.abc import Sequence
from pathlib import Path

from slicetube import ffutil
from slicetube.config import PipelineConfig

logger = logging.getLogger(__name__)

PROBE_FORMAT = "bestvideo[height<=1080][ext=mp4]+bestaudio[ext=m4a]/best[ext=mp4]/best"
PROBE_TEMPLATE = "%(format_id)s,%(filesize,filesize_approx)s,%(tbr)s"


class YtDlpError(RuntimeError):
    pass


def _run(cmd: list[str], timeout: float | None):
    try:
        return ffutil.run_tool(cmd, timeout=timeout)
    except ffutil.ToolError as exc:
        raise YtDlpError(str(exc)) from exc


def get_direct_url(
    url: str,
    format_selector: str,
    config: PipelineConfig,
    extra_args: Sequence[str] = (),
) -> str:
    """Resolve *url* to one playable media URL (first line of ``--get-url``)."""
    cmd = [
        config.ytdlp_bin,
        "--format", format_selector,
        "--get-url",
        "--no-warnings",
        "--no-playlist",
        *extra_args,
        url,
    ]
    result = _run(cmd, config.resolve_timeout)
    output = (result.stdout or "").strip()
    if result.returncode != 0 or not output:
        raise YtDlpError(f"Failed to get direct URL: {ffutil.diagnostic(result)}")
    return output.splitlines()[0].strip()


def _remove_partial(output_path: Path) -> None:
    """Remove the target and yt-dlp's side files (.part, .ytdl, .part-Frag*)."""
    for leftover in output_path.parent.glob(glob.escape(output_path.name) + "*"):
        leftover.unlink(missing_ok=True)


def download(
    url: str,
    format_selector: str,
    output_path: Path,
    config: PipelineConfig,
) -> Path:
    """Download the whole video to *output_path*.

    On any failure the partially written file is removed before raising.
    """
    cmd = [
        config.ytdlp_bin,
        "--format", format_selector,
        "--no-warnings",
        "--no-playlist",
        "-o", str(output_path),
        url,
    ]
    try:
        result = _run(cmd, config.download_timeout)
    except YtDlpError:
        _remove_partial(output_path)
        raise

    if result.returncode != 0:
        _remove_partial(output_path)
        raise YtDlpError(f"Failed to download video: {ffutil.diagnostic(result)}")
    if not output_path.exists():
        _remove_partial(output_path)
        raise YtDlpError(f"yt-dlp reported success but {output_path.name} is missing")
    return output_path


def parse_bitrate(output: str) -> float | None:
    """Pull the total bitrate (kbps) out of a ``PROBE_TEMPLATE`` line.

    yt-dlp prints ``NA`` for unknown fields; that, or a malformed line,
    yields None.
    """
    line = output.strip().splitlines()[0] if output.strip() else ""
    parts = line.split(",")
    if len(parts) < 3:
        return None
    try:
        bitrate = float(parts[-1])
    except ValueError:
        return None
    return bitrate if bitrate > 0 else None


def probe_bitrate(url: str, config: PipelineConfig) -> float | None:
    """Bitrate of the best <=1080p MP4 rendition of *url*, in kbps."""
    cmd = [
        config.ytdlp_bin,
        "--format", PROBE_FORMAT,
        "--print", PROBE_TEMPLATE,
        "--no-warnings",
        "--no-playlist",
        url,
    ]
    result = _run(cmd, config.resolve_timeout)
    if result.returncode != 0:
        raise YtDlpError(f"Failed to get video info: {ffutil.diagnostic(result)}")
    bitrate = parse_bitrate(result.stdout or "")
    logger.debug("Probed bitrate for %s: %s kbps", url, bitrate)
    return bitrate
