"""Map a pasted URL to a supported platform and video id."""

import re
from dataclasses import dataclass

from slicetube.models import Platform, VideoReference


class InputError(ValueError):
    """Raised when user input cannot be used (bad URL, missing fields)."""


@dataclass(frozen=True)
class SupportedPlatform:
    platform: Platform
    display_name: str
    domains: tuple[str, ...]


SUPPORTED_PLATFORMS = (
    SupportedPlatform(Platform.YOUTUBE, "YouTube", ("youtube.com", "youtu.be")),
    SupportedPlatform(Platform.TIKTOK, "TikTok", ("tiktok.com",)),
)

INVALID_URL_MESSAGE = "Please enter a valid YouTube or TikTok URL"

_PREFIX = r"^(?:https?://)?"

# Order matters: first match wins.
_PATTERNS: list[tuple[Platform, re.Pattern[str]]] = [
    (Platform.YOUTUBE, re.compile(
        _PREFIX + r"(?:www\.|m\.)?youtube\.com/watch\?(?:[^#]*&)?v=([^&#/?]+)"
    )),
    (Platform.YOUTUBE, re.compile(
        _PREFIX + r"(?:www\.|m\.)?youtube\.com/(?:embed|shorts|live)/([^&#/?]+)"
    )),
    (Platform.YOUTUBE, re.compile(_PREFIX + r"(?:www\.)?youtu\.be/([^&#/?]+)")),
    (Platform.TIKTOK, re.compile(
        _PREFIX + r"(?:www\.|m\.)?tiktok\.com/@[^/]+/(?:video|t)/(\d+)"
    )),
    (Platform.TIKTOK, re.compile(_PREFIX + r"(?:vm|vt)\.tiktok\.com/([A-Za-z0-9]+)")),
]


def classify(raw_url: object) -> VideoReference | None:
    """Return a VideoReference for a supported link, or None.

    Never raises: anything that is not a string or matches no pattern
    yields None.
    """
    if not isinstance(raw_url, str):
        return None

    url = raw_url.strip()
    for platform, pattern in _PATTERNS:
        match = pattern.match(url)
        if match:
            return VideoReference(raw_url=url, platform=platform, id=match.group(1))
    return None


def is_supported(raw_url: object) -> bool:
    return classify(raw_url) is not None


def require_reference(raw_url: object) -> VideoReference:
    """Classify or raise InputError with the user-facing message."""
    if not raw_url:
        raise InputError("Missing URL parameter")
    ref = classify(raw_url)
    if ref is None:
        raise InputError(INVALID_URL_MESSAGE)
    return ref
