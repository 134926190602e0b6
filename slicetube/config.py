"""Pipeline configuration — tool locations, timeouts and encode constants."""

import json
import tempfile
from dataclasses import dataclass, fields
from pathlib import Path


@dataclass
class PipelineConfig:
    """Settings shared by the locator, estimator and exporter."""

    ytdlp_bin: str = "yt-dlp"
    ffmpeg_bin: str = "ffmpeg"
    temp_dir: Path | None = None

    # Wall-clock limits (seconds) for external tools; None disables the limit.
    resolve_timeout: float | None = 60.0
    download_timeout: float | None = 600.0
    process_timeout: float | None = 600.0

    audio_bitrate_kbps: int = 192
    container_overhead: float = 1.05
    mp3_quality: int = 2
    crf: int = 23
    preset: str = "veryfast"
    fallback_audio_bitrate: str = "192k"

    quiet_window: float = 0.5

    def work_dir(self) -> Path:
        """Directory for temp artifacts; falls back to the system temp dir."""
        return Path(self.temp_dir) if self.temp_dir else Path(tempfile.gettempdir())


def load_config(path: str | Path) -> PipelineConfig:
    """Load a PipelineConfig from a JSON file."""
    path = Path(path)
    data = json.loads(path.read_text())

    if not isinstance(data, dict):
        raise ValueError("Config file must contain a JSON object")

    known = {f.name for f in fields(PipelineConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

    if data.get("temp_dir") is not None:
        data["temp_dir"] = Path(data["temp_dir"])

    return PipelineConfig(**data)
