"""HTTP routes for SliceTube: resolve, estimate, trim and preview proxy."""

import math
from urllib.parse import urlparse

import requests
from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context

from slicetube import engine, estimator
from slicetube.config import PipelineConfig
from slicetube.engine import ExportError
from slicetube.estimator import EstimateError
from slicetube.locator import TIKTOK_HEADERS, LocatorError, locate
from slicetube.models import ExportFormat, LocalFile, Platform, Purpose, TimeRange
from slicetube.urls import InputError, require_reference

bp = Blueprint("api", __name__)

PROXY_CHUNK_SIZE = 64 * 1024
PROXY_ACCEPT = "video/webm,video/ogg,video/*;q=0.9,application/ogg;q=0.7,audio/*;q=0.6,*/*;q=0.5"
RELAYED_HEADERS = ("content-type", "content-length", "content-range", "accept-ranges")
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Range",
    "Access-Control-Expose-Headers": "Content-Length, Content-Range, Accept-Ranges",
}


def _config() -> PipelineConfig:
    return current_app.config["PIPELINE"]


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InputError("Request body must be a JSON object")
    return data


def _parse_trim_request(data: dict):
    """Validate ``{url, startTime, endTime, format}``."""
    url = data.get("url")
    start = data.get("startTime")
    end = data.get("endTime")
    if not url or start is None or end is None:
        raise InputError("Missing required parameters")

    ref = require_reference(url)
    try:
        start, end = float(start), float(end)
    except (TypeError, ValueError):
        raise InputError("startTime and endTime must be numbers")
    if not (math.isfinite(start) and math.isfinite(end)):
        raise InputError("startTime and endTime must be finite numbers")
    if start < 0 or end <= start:
        raise InputError("startTime must be >= 0 and less than endTime")

    try:
        fmt = ExportFormat(data.get("format") or ExportFormat.VIDEO.value)
    except ValueError:
        raise InputError(f"Unsupported format: {data.get('format')}")

    return ref, TimeRange(start=start, end=end), fmt


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

@bp.errorhandler(InputError)
def input_error(error: InputError):
    return jsonify({"error": str(error)}), 400


@bp.errorhandler(LocatorError)
@bp.errorhandler(EstimateError)
@bp.errorhandler(ExportError)
def pipeline_error(error: Exception):
    current_app.logger.error("%s on %s", type(error).__name__, request.path, exc_info=error)
    return jsonify({"error": str(error)}), 500


# ---------------------------------------------------------------------------
# Pipeline endpoints
# ---------------------------------------------------------------------------

@bp.route("/api/get-direct-url", methods=["POST"])
def get_direct_url():
    ref = require_reference(_json_body().get("url"))
    source = locate(ref, Purpose.PREVIEW, _config())

    payload = {"directUrl": source.url}
    if source.extra_headers:
        payload["headers"] = source.extra_headers
    return jsonify(payload)


@bp.route("/api/size-estimate", methods=["POST"])
def size_estimate():
    ref, time_range, fmt = _parse_trim_request(_json_body())
    result = estimator.estimate(ref, time_range, fmt, _config())
    return jsonify({"size": result.size, "bytes": result.bytes})


@bp.route("/api/trim", methods=["POST"])
def trim():
    ref, time_range, fmt = _parse_trim_request(_json_body())
    current_app.logger.info(
        "Trimming %s [%.2f-%.2f] as %s", ref.raw_url, time_range.start, time_range.end, fmt.value
    )
    artifact = engine.export(ref, time_range, fmt, _config())
    return Response(
        artifact.data,
        mimetype=artifact.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{artifact.filename}"',
            "Content-Length": str(len(artifact.data)),
        },
    )


@bp.route("/api/download-tiktok", methods=["POST"])
def download_tiktok():
    """Full download of an opaque-platform video for in-browser preview."""
    ref = require_reference(_json_body().get("url"))
    if ref.platform is not Platform.TIKTOK:
        raise InputError("Only TikTok links need a full download")

    source = locate(ref, Purpose.EXPORT, _config())
    try:
        data = source.path.read_bytes() if isinstance(source, LocalFile) else b""
    except OSError as exc:
        raise LocatorError(f"Downloaded file is unreadable: {exc}") from exc
    finally:
        source.release()

    return Response(
        data,
        mimetype=ExportFormat.VIDEO.media_type,
        headers={"Content-Length": str(len(data))},
    )


# ---------------------------------------------------------------------------
# Preview proxy
# ---------------------------------------------------------------------------

def _proxy_error(message: str, status: int):
    return jsonify({"error": message}), status, CORS_HEADERS


@bp.route("/api/proxy-video", methods=["GET", "OPTIONS"])
def proxy_video():
    """Stream a media URL through this server with TikTok's Referer and User-Agent.

    This is an open relay: any http(s) target is fetched, internal hosts
    included. Only expose the API to trusted clients.
    """
    if request.method == "OPTIONS":
        return Response(status=204, headers=CORS_HEADERS)

    target = request.args.get("url")
    if not target:
        return _proxy_error("Missing URL parameter", 400)
    if urlparse(target).scheme not in ("http", "https"):
        return _proxy_error("Only http(s) media URLs can be proxied", 400)

    headers = {
        **TIKTOK_HEADERS,
        "Accept": PROXY_ACCEPT,
        "Accept-Language": "en-US,en;q=0.5",
        "Range": request.headers.get("Range", "bytes=0-"),
    }
    try:
        upstream = requests.get(
            target, headers=headers, stream=True, timeout=_config().resolve_timeout
        )
    except requests.RequestException as exc:
        current_app.logger.warning("Proxy fetch of %s failed: %s", target, exc)
        return _proxy_error(f"Failed to fetch video: {exc}", 502)

    if not upstream.ok:
        upstream.close()
        return _proxy_error(f"Failed to fetch video: {upstream.reason}", 502)

    response_headers = dict(CORS_HEADERS)
    for name in RELAYED_HEADERS:
        value = upstream.headers.get(name)
        if value:
            response_headers[name] = value

    def relay():
        try:
            for chunk in upstream.iter_content(chunk_size=PROXY_CHUNK_SIZE):
                if chunk:
                    yield chunk
        finally:
            upstream.close()

    return Response(
        stream_with_context(relay()),
        status=upstream.status_code,
        headers=response_headers,
    )
