"""Back-ends an ExportSession can drive: the HTTP API or the in-process pipeline."""

import math
import re

import requests

from slicetube import engine, estimator
from slicetube.config import PipelineConfig
from slicetube.locator import locate
from slicetube.models import (
    ByteEstimate,
    ExportArtifact,
    ExportFormat,
    Purpose,
    RemoteUrl,
    TimeRange,
)
from slicetube.urls import InputError, require_reference

_FILENAME_RE = re.compile(r'filename="?([^";]+)"?')


class ApiError(RuntimeError):
    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status


def _time_range(start: float, end: float) -> TimeRange:
    if not (math.isfinite(start) and math.isfinite(end)):
        raise InputError("startTime and endTime must be finite numbers")
    if start < 0 or end <= start:
        raise InputError("startTime must be >= 0 and less than endTime")
    return TimeRange(start=float(start), end=float(end))


class ApiClient:
    """Talks to a running SliceTube server over its JSON/binary API."""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8321",
        http: requests.Session | None = None,
        timeout: float | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.http = http or requests.Session()
        self.timeout = timeout

    def _post(self, path: str, payload: dict) -> requests.Response:
        try:
            resp = self.http.post(f"{self.base_url}{path}", json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ApiError(f"Request to {path} failed: {exc}") from exc
        if not resp.ok:
            try:
                message = resp.json().get("error") or resp.reason
            except ValueError:
                message = resp.reason or f"HTTP {resp.status_code}"
            raise ApiError(message, status=resp.status_code)
        return resp

    def resolve(self, url: str) -> RemoteUrl:
        data = self._post("/api/get-direct-url", {"url": url}).json()
        return RemoteUrl(url=data["directUrl"], extra_headers=data.get("headers") or {})

    def estimate(self, url: str, start: float, end: float, fmt: ExportFormat | str) -> ByteEstimate:
        fmt = ExportFormat(fmt)
        data = self._post(
            "/api/size-estimate",
            {"url": url, "startTime": start, "endTime": end, "format": fmt.value},
        ).json()
        return ByteEstimate(size=data["size"], bytes=int(data["bytes"]))

    def export(self, url: str, start: float, end: float, fmt: ExportFormat | str) -> ExportArtifact:
        fmt = ExportFormat(fmt)
        resp = self._post(
            "/api/trim",
            {"url": url, "startTime": start, "endTime": end, "format": fmt.value},
        )
        match = _FILENAME_RE.search(resp.headers.get("Content-Disposition", ""))
        return ExportArtifact(
            data=resp.content,
            media_type=resp.headers.get("Content-Type", fmt.media_type).split(";")[0],
            filename=match.group(1) if match else fmt.filename,
        )


class LocalPipeline:
    """Same interface as ApiClient, but runs the pipeline in this process."""

    def __init__(self, config: PipelineConfig | None = None):
        self.config = config or PipelineConfig()

    def resolve(self, url: str) -> RemoteUrl:
        return locate(require_reference(url), Purpose.PREVIEW, self.config)

    def estimate(self, url: str, start: float, end: float, fmt: ExportFormat | str) -> ByteEstimate:
        return estimator.estimate(
            require_reference(url), _time_range(start, end), ExportFormat(fmt), self.config
        )

    def export(self, url: str, start: float, end: float, fmt: ExportFormat | str) -> ExportArtifact:
        return engine.export(
            require_reference(url), _time_range(start, end), ExportFormat(fmt), self.config
        )
