"""Tests for the media locator."""

from pathlib import Path

import pytest

from slicetube.locator import (
    TIKTOK_HEADERS,
    YOUTUBE_EXPORT_FORMAT,
    YOUTUBE_PREVIEW_FORMAT,
    LocatorError,
    locate,
)
from slicetube.models import LocalFile, Purpose, RemoteUrl
from slicetube.urls import classify

YOUTUBE = classify("https://youtube.com/watch?v=abc123")
TIKTOK = classify("https://www.tiktok.com/@someone/video/7234567890123456789")


class TestYouTube:
    @pytest.mark.parametrize("purpose", list(Purpose))
    def test_always_remote(self, fake_tools, config, work_dir: Path, purpose):
        source = locate(YOUTUBE, purpose, config)
        assert isinstance(source, RemoteUrl)
        assert source.url == "https://cdn.example.com/media/video.mp4?sig=abc"
        assert source.extra_headers == {}
        assert list(work_dir.iterdir()) == []

    def test_preview_prefers_h264(self, fake_tools, config):
        locate(YOUTUBE, Purpose.PREVIEW, config)
        cmd = fake_tools.calls[0]
        assert cmd[cmd.index("--format") + 1] == YOUTUBE_PREVIEW_FORMAT

    def test_export_uses_progressive_mp4(self, fake_tools, config):
        locate(YOUTUBE, Purpose.EXPORT, config)
        cmd = fake_tools.calls[0]
        assert cmd[cmd.index("--format") + 1] == YOUTUBE_EXPORT_FORMAT

    def test_failure(self, fake_tools, config):
        fake_tools.ytdlp_returncode = 1
        fake_tools.ytdlp_stderr = "ERROR: Sign in to confirm your age"
        with pytest.raises(LocatorError, match="Sign in") as excinfo:
            locate(YOUTUBE, Purpose.EXPORT, config)
        assert "Sign in" in excinfo.value.reason


class TestTikTok:
    def test_preview_carries_headers(self, fake_tools, config):
        source = locate(TIKTOK, Purpose.PREVIEW, config)
        assert isinstance(source, RemoteUrl)
        assert source.extra_headers == TIKTOK_HEADERS
        assert set(source.extra_headers) == {"Referer", "User-Agent"}

        cmd = fake_tools.calls[0]
        assert "--extractor-args" in cmd
        assert "--get-url" in cmd

    def test_headers_are_a_copy(self, fake_tools, config):
        source = locate(TIKTOK, Purpose.ESTIMATE, config)
        source.extra_headers["Referer"] = "changed"
        assert TIKTOK_HEADERS["Referer"] == "https://www.tiktok.com/"

    def test_export_downloads_to_temp(self, fake_tools, config, work_dir: Path):
        source = locate(TIKTOK, Purpose.EXPORT, config)
        assert isinstance(source, LocalFile)
        assert source.path.parent == work_dir
        assert source.path.name.endswith("_input.mp4")
        assert source.path.exists()

        source.release()
        assert list(work_dir.iterdir()) == []

    def test_export_names_are_unique(self, fake_tools, config):
        first = locate(TIKTOK, Purpose.EXPORT, config)
        second = locate(TIKTOK, Purpose.EXPORT, config)
        assert first.path != second.path
        first.release()
        second.release()

    def test_download_failure_leaves_nothing(self, fake_tools, config, work_dir: Path):
        fake_tools.ytdlp_returncode = 1
        fake_tools.ytdlp_stderr = "ERROR: HTTP Error 403"
        with pytest.raises(LocatorError, match="403"):
            locate(TIKTOK, Purpose.EXPORT, config)
        assert list(work_dir.iterdir()) == []
