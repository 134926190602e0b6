"""Media locator — turns a VideoReference into something ffmpeg can read.

YouTube serves seekable progressive streams, so every purpose gets a
RemoteUrl. TikTok's CDN needs a fixed header set and its signed URLs expire
quickly, so exports download the whole video to a temp file (LocalFile) while
preview/estimate get a RemoteUrl paired with ``TIKTOK_HEADERS``.
"""

import logging
import uuid

from slicetube import ytdlp
from slicetube.config import PipelineConfig
from slicetube.models import LocalFile, Platform, Purpose, RemoteUrl, VideoReference

logger = logging.getLogger(__name__)

MOBILE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 14_8 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/14.1.2 Mobile/15E148 Safari/604.1"
)

TIKTOK_HEADERS = {
    "Referer": "https://www.tiktok.com/",
    "User-Agent": MOBILE_USER_AGENT,
}

YOUTUBE_PREVIEW_FORMAT = "bestvideo[vcodec^=h264]+bestaudio/best[vcodec^=h264]/best"
YOUTUBE_EXPORT_FORMAT = "best[ext=mp4]/bestvideo[ext=mp4]+bestaudio[ext=m4a]"
TIKTOK_FORMAT = "best[vcodec^=h264]"

TIKTOK_RESOLVE_ARGS = (
    "--extractor-args", "tiktok:api_hostname=api16-normal-c-useast1a.tiktokv.com",
    "--add-header", f"User-Agent: {MOBILE_USER_AGENT}",
    "--add-header", "Accept: text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "--add-header", "Accept-Language: en-us",
)


class LocatorError(RuntimeError):
    """Resolution, probe or download failed; nothing was handed to the caller."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def locate(
    ref: VideoReference,
    purpose: Purpose,
    config: PipelineConfig | None = None,
) -> RemoteUrl | LocalFile:
    """Resolve *ref* for *purpose*.

    A returned LocalFile belongs to the caller, who must ``release()`` it.
    """
    config = config or PipelineConfig()
    try:
        if ref.platform is Platform.TIKTOK:
            if purpose is Purpose.EXPORT:
                return _download_to_temp(ref, config)
            url = ytdlp.get_direct_url(
                ref.raw_url, TIKTOK_FORMAT, config, extra_args=TIKTOK_RESOLVE_ARGS
            )
            return RemoteUrl(url=url, extra_headers=dict(TIKTOK_HEADERS))

        selector = YOUTUBE_PREVIEW_FORMAT if purpose is Purpose.PREVIEW else YOUTUBE_EXPORT_FORMAT
        return RemoteUrl(url=ytdlp.get_direct_url(ref.raw_url, selector, config))
    except ytdlp.YtDlpError as exc:
        logger.warning("Locating %s:%s for %s failed: %s", ref.platform.value, ref.id, purpose.value, exc)
        raise LocatorError(str(exc)) from exc


def _download_to_temp(ref: VideoReference, config: PipelineConfig) -> LocalFile:
    work_dir = config.work_dir()
    work_dir.mkdir(parents=True, exist_ok=True)
    path = work_dir / f"{uuid.uuid4()}_input.mp4"
    logger.info("Downloading %s to %s", ref.raw_url, path)
    ytdlp.download(ref.raw_url, TIKTOK_FORMAT, path, config)
    return LocalFile(path=path)
