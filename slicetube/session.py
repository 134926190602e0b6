"""Client-side export session: range selection, size hints and export.

One ExportSession per open video. It is owned by whoever drives the UI and
talks to a back-end exposing ``estimate(url, start, end, fmt)`` and
``export(url, start, end, fmt)`` (see ``slicetube.client``).
"""

import logging
import math
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Protocol

from slicetube.models import (
    MIN_SEGMENT,
    ByteEstimate,
    ExportArtifact,
    ExportFormat,
    SizeEstimate,
    TimeRange,
    VideoReference,
    clamp_range,
)
from slicetube.urls import INVALID_URL_MESSAGE, classify

logger = logging.getLogger(__name__)

DEFAULT_QUIET_WINDOW = 0.5


class Backend(Protocol):
    def estimate(self, url: str, start: float, end: float, fmt: ExportFormat) -> ByteEstimate: ...

    def export(self, url: str, start: float, end: float, fmt: ExportFormat) -> ExportArtifact: ...


SaveCallback = Callable[[ExportArtifact], object]


def save_to_directory(directory: str | Path) -> SaveCallback:
    """Return a save callback that writes artifacts under their suggested name."""
    directory = Path(directory)

    def save(artifact: ExportArtifact) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / artifact.filename
        path.write_bytes(artifact.data)
        logger.info("Saved %s (%d bytes)", path, len(artifact.data))
        return path

    return save


class ExportSession:
    """Holds the current link, trim range, size estimate and export state.

    Range edits are debounced: edits within ``quiet_window`` seconds collapse
    into a single video+audio estimate pair fired after the last one. Each
    firing is numbered, and only the newest firing may publish its results.
    """

    def __init__(
        self,
        backend: Backend,
        save: SaveCallback | None = None,
        quiet_window: float = DEFAULT_QUIET_WINDOW,
        timer_factory: Callable[[float, Callable[[], None]], threading.Timer] = threading.Timer,
        executor: ThreadPoolExecutor | None = None,
    ):
        self._backend = backend
        self._save = save
        self._quiet_window = quiet_window
        self._timer_factory = timer_factory
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="slicetube-estimate"
        )
        self._lock = threading.RLock()
        self._timer: threading.Timer | None = None
        self._estimate_seq = 0

        self._url = ""
        self._reference: VideoReference | None = None
        self._duration = 0.0
        self._range = TimeRange(start=0.0, end=0.0)
        self._estimate = SizeEstimate()
        self._processing = False
        self._last_error: str | None = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def url(self) -> str:
        return self._url

    @property
    def reference(self) -> VideoReference | None:
        return self._reference

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def time_range(self) -> TimeRange:
        with self._lock:
            return TimeRange(start=self._range.start, end=self._range.end)

    @property
    def estimate(self) -> SizeEstimate:
        return self._estimate

    @property
    def is_processing(self) -> bool:
        return self._processing

    @property
    def last_error(self) -> str | None:
        return self._last_error

    # ------------------------------------------------------------------
    # Link and duration
    # ------------------------------------------------------------------

    def set_url(self, url: str) -> VideoReference | None:
        """Load a new link. Unsupported links record an error and return None."""
        ref = classify(url)
        with self._lock:
            self._cancel_timer()
            self._invalidate_estimate()
            self._url = ref.raw_url if ref else (url or "")
            self._reference = ref
            self._duration = 0.0
            self._range = TimeRange(start=0.0, end=0.0)
            self._last_error = None if ref else INVALID_URL_MESSAGE
        return ref

    def set_duration(self, duration: float) -> None:
        """Called once playback metadata reports the length of the video."""
        with self._lock:
            if self._reference is None:
                return
            duration = float(duration)
            self._duration = duration if math.isfinite(duration) and duration > 0 else 0.0
            self._range = TimeRange(start=0.0, end=self._duration)
            self._invalidate_estimate()
            if self._duration >= MIN_SEGMENT:
                self._schedule_estimate()

    # ------------------------------------------------------------------
    # Range edits
    # ------------------------------------------------------------------

    def set_range(self, start: float, end: float) -> TimeRange:
        with self._lock:
            if not self._range_editable():
                return self.time_range
            self._range = clamp_range(start, end, self._duration)
            self._range_changed()
            return self.time_range

    def set_start(self, start: float) -> TimeRange:
        """Move only the start handle; it stops one second before the end."""
        with self._lock:
            if not self._range_editable() or math.isnan(start):
                return self.time_range
            end = self._range.end
            self._range = TimeRange(start=max(0.0, min(start, end - MIN_SEGMENT)), end=end)
            self._range_changed()
            return self.time_range

    def set_end(self, end: float) -> TimeRange:
        """Move only the end handle; it stops one second after the start."""
        with self._lock:
            if not self._range_editable() or math.isnan(end):
                return self.time_range
            start = self._range.start
            self._range = TimeRange(
                start=start, end=min(self._duration, max(end, start + MIN_SEGMENT))
            )
            self._range_changed()
            return self.time_range

    def _range_editable(self) -> bool:
        return self._reference is not None and self._duration >= MIN_SEGMENT

    def _range_changed(self) -> None:
        self._invalidate_estimate()
        self._schedule_estimate()

    # ------------------------------------------------------------------
    # Debounced estimates
    # ------------------------------------------------------------------

    def _invalidate_estimate(self) -> None:
        self._estimate_seq += 1
        self._estimate = SizeEstimate()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule_estimate(self) -> None:
        self._cancel_timer()
        timer = self._timer_factory(self._quiet_window, self._fire_estimates)
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _fire_estimates(self) -> None:
        with self._lock:
            self._estimate_seq += 1
            seq = self._estimate_seq
            url = self._url
            selected = TimeRange(start=self._range.start, end=self._range.end)
            if self._reference is None or selected.duration <= 0:
                self._estimate = SizeEstimate()
                return

        futures = {
            fmt: self._executor.submit(
                self._backend.estimate, url, selected.start, selected.end, fmt
            )
            for fmt in (ExportFormat.VIDEO, ExportFormat.AUDIO)
        }
        sizes = {fmt: self._settle(fmt, future) for fmt, future in futures.items()}

        with self._lock:
            if seq != self._estimate_seq:
                logger.debug("Discarding superseded estimate #%d", seq)
                return
            self._estimate = SizeEstimate(
                video=sizes[ExportFormat.VIDEO], audio=sizes[ExportFormat.AUDIO]
            )

    @staticmethod
    def _settle(fmt: ExportFormat, future: Future) -> str | None:
        # A failed estimate only hides the size hint.
        try:
            return future.result().size
        except Exception as exc:
            logger.info("%s size estimate unavailable: %s", fmt.value, exc)
            return None

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def trigger_export(self, fmt: ExportFormat | str = ExportFormat.VIDEO) -> ExportArtifact | None:
        """Export the current range; no-op while another export is running.

        Returns the artifact on success. Failures are recorded in
        ``last_error`` and None is returned.
        """
        fmt = ExportFormat(fmt)
        with self._lock:
            if self._processing:
                return None
            self._processing = True
            self._last_error = None
            url = self._url
            selected = TimeRange(start=self._range.start, end=self._range.end)

        try:
            artifact = self._backend.export(url, selected.start, selected.end, fmt)
            if self._save is not None:
                self._save(artifact)
            return artifact
        except Exception as exc:
            logger.exception("Export of %s failed", url)
            with self._lock:
                self._last_error = str(exc) or "Failed to export video"
            return None
        finally:
            with self._lock:
                self._processing = False

    def dismiss_error(self) -> None:
        with self._lock:
            self._last_error = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        with self._lock:
            self._cancel_timer()
            self._invalidate_estimate()
            self._url = ""
            self._reference = None
            self._duration = 0.0
            self._range = TimeRange(start=0.0, end=0.0)
            self._last_error = None

    def close(self) -> None:
        with self._lock:
            self._cancel_timer()
            self._invalidate_estimate()
        if self._owns_executor:
            self._executor.shutdown(wait=False)
