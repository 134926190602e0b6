"""Tests for link classification."""

import pytest

from slicetube.models import Platform, VideoReference
from slicetube.urls import (
    INVALID_URL_MESSAGE,
    InputError,
    classify,
    is_supported,
    require_reference,
)


class TestClassifyYouTube:
    @pytest.mark.parametrize(
        "url, video_id",
        [
            ("https://youtube.com/watch?v=abc123", "abc123"),
            ("https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=42", "dQw4w9WgXcQ"),
            ("https://www.youtube.com/watch?feature=share&v=xyz", "xyz"),
            ("youtube.com/watch?v=abc123", "abc123"),
            ("https://m.youtube.com/watch?v=mobile1", "mobile1"),
            ("https://youtu.be/short42?si=tracking", "short42"),
            ("https://www.youtube.com/embed/emb3d", "emb3d"),
            ("https://www.youtube.com/shorts/sh0rt", "sh0rt"),
        ],
    )
    def test_matches(self, url, video_id):
        ref = classify(url)
        assert ref is not None
        assert ref.platform is Platform.YOUTUBE
        assert ref.id == video_id

    def test_keeps_raw_url(self):
        ref = classify("  https://youtube.com/watch?v=abc123  ")
        assert ref == VideoReference(
            raw_url="https://youtube.com/watch?v=abc123",
            platform=Platform.YOUTUBE,
            id="abc123",
        )


class TestClassifyTikTok:
    @pytest.mark.parametrize(
        "url, video_id",
        [
            ("https://www.tiktok.com/@someone/video/7234567890123456789", "7234567890123456789"),
            ("https://tiktok.com/@some.one/t/123456", "123456"),
            ("https://vm.tiktok.com/ZMabc123/", "ZMabc123"),
        ],
    )
    def test_matches(self, url, video_id):
        ref = classify(url)
        assert ref is not None
        assert ref.platform is Platform.TIKTOK
        assert ref.id == video_id


class TestClassifyUnmatched:
    @pytest.mark.parametrize(
        "url",
        [
            "",
            "not a url",
            "https://vimeo.com/12345",
            "https://youtube.com/",
            "https://www.tiktok.com/@someone",
            "https://evil.example.com/youtube.com/watch?v=abc",
        ],
    )
    def test_returns_none(self, url):
        assert classify(url) is None
        assert not is_supported(url)

    @pytest.mark.parametrize("value", [None, 42, b"https://youtu.be/x", ["https://youtu.be/x"]])
    def test_non_string_returns_none(self, value):
        assert classify(value) is None

    def test_deterministic(self):
        url = "https://youtu.be/abc"
        assert classify(url) == classify(url)
        assert classify("garbage") is None and classify("garbage") is None


class TestRequireReference:
    def test_valid(self):
        assert require_reference("https://youtu.be/abc").id == "abc"

    def test_missing(self):
        with pytest.raises(InputError, match="Missing URL"):
            require_reference("")

    def test_invalid(self):
        with pytest.raises(InputError, match=INVALID_URL_MESSAGE):
            require_reference("https://vimeo.com/1")
