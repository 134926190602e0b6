"""Shared data types used across SliceTube."""

import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class Platform(str, Enum):
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"


class Purpose(str, Enum):
    """Why a caller needs the media; decides how the source is materialized."""

    PREVIEW = "preview"
    ESTIMATE = "estimate"
    EXPORT = "export"


class ExportFormat(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"

    @property
    def extension(self) -> str:
        return "mp3" if self is ExportFormat.AUDIO else "mp4"

    @property
    def media_type(self) -> str:
        return "audio/mpeg" if self is ExportFormat.AUDIO else "video/mp4"

    @property
    def filename(self) -> str:
        return f"trimmed.{self.extension}"


@dataclass(frozen=True)
class VideoReference:
    """A classified user-supplied link."""

    raw_url: str
    platform: Platform
    id: str


@dataclass
class TimeRange:
    """A start/end time pair in seconds."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


MIN_SEGMENT = 1.0


def clamp_range(start: float, end: float, duration: float) -> TimeRange:
    """Clamp a requested range into ``[0, duration]`` keeping at least one second.

    ``start`` lands in ``[0, end - 1]`` and ``end`` in ``[start + 1, duration]``.
    Input is never rejected, only moved. A NaN start snaps to 0 and a NaN end
    to the full duration.
    """
    if not (math.isfinite(duration) and duration >= MIN_SEGMENT):
        raise ValueError(f"duration must be at least {MIN_SEGMENT}s, got {duration}")
    if math.isnan(start):
        start = 0.0
    if math.isnan(end):
        end = duration

    end = min(max(end, MIN_SEGMENT), duration)
    start = max(0.0, min(start, end - MIN_SEGMENT))
    end = min(duration, max(end, start + MIN_SEGMENT))
    return TimeRange(start=start, end=end)


@dataclass
class RemoteUrl:
    """A direct, seekable media URL. Fetches must carry ``extra_headers``."""

    url: str
    extra_headers: dict[str, str] = field(default_factory=dict)

    @property
    def input_arg(self) -> str:
        return self.url

    def release(self) -> None:
        pass


@dataclass
class LocalFile:
    """A downloaded temp file owned exclusively by whoever requested it."""

    path: Path
    released: bool = field(default=False, repr=False)

    @property
    def input_arg(self) -> str:
        return str(self.path)

    @property
    def extra_headers(self) -> dict[str, str]:
        return {}

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        self.path.unlink(missing_ok=True)


ResolvedSource = RemoteUrl | LocalFile


@dataclass(frozen=True)
class ByteEstimate:
    """Predicted output size: human readable plus raw byte count."""

    size: str
    bytes: int


@dataclass(frozen=True)
class SizeEstimate:
    """Paired estimates for both export formats; ``None`` means unknown."""

    video: str | None = None
    audio: str | None = None


@dataclass(frozen=True)
class ExportArtifact:
    data: bytes
    media_type: str
    filename: str
