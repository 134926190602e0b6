"""Shared test fixtures."""

import subprocess
from pathlib import Path

import pytest

from slicetube.config import PipelineConfig

DIRECT_URL = "https://cdn.example.com/media/video.mp4?sig=abc"


class FakeTools:
    """Stands in for ``subprocess.run`` for yt-dlp and ffmpeg invocations.

    yt-dlp downloads (``-o``) always write the target file, even on failure,
    to mimic a partial download. ffmpeg writes its output path on every run,
    and pops ``(returncode, stderr)`` pairs from ``ffmpeg_results``.
    """

    def __init__(self):
        self.calls: list[list[str]] = []
        self.ytdlp_stdout = DIRECT_URL + "\n"
        self.ytdlp_stderr = ""
        self.ytdlp_returncode = 0
        self.ffmpeg_results: list[tuple[int, str]] = []
        self.output_bytes = b"trimmed-bytes"

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        if cmd[0] == "yt-dlp":
            stdout = self.ytdlp_stdout
            if "-o" in cmd:
                Path(cmd[cmd.index("-o") + 1]).write_bytes(b"downloaded-source")
                stdout = ""
            return subprocess.CompletedProcess(
                cmd, self.ytdlp_returncode, stdout, self.ytdlp_stderr
            )

        returncode, stderr = self.ffmpeg_results.pop(0) if self.ffmpeg_results else (0, "")
        Path(cmd[-1]).write_bytes(self.output_bytes if returncode == 0 else b"partial")
        return subprocess.CompletedProcess(cmd, returncode, "", stderr)

    def calls_to(self, tool: str) -> list[list[str]]:
        return [c for c in self.calls if c[0] == tool]


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def config(work_dir: Path) -> PipelineConfig:
    return PipelineConfig(temp_dir=work_dir)


@pytest.fixture
def fake_tools(monkeypatch) -> FakeTools:
    tools = FakeTools()
    monkeypatch.setattr("slicetube.ffutil.subprocess.run", tools)
    return tools
