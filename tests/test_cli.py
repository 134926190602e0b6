"""Smoke tests for the command line entry point."""

from pathlib import Path
from unittest.mock import patch

import pytest

from slicetube.cli import main
from slicetube.estimator import EstimateError
from slicetube.models import ByteEstimate

URL = "https://youtube.com/watch?v=abc123"


def test_no_command_prints_help(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main([])
    assert excinfo.value.code == 0
    assert "slicetube" in capsys.readouterr().out


def test_invalid_url_exits_2(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["export", "https://vimeo.com/1", "--start", "0", "--end", "5"])
    assert excinfo.value.code == 2
    assert "valid YouTube or TikTok" in capsys.readouterr().err


def test_inverted_range_exits_2():
    with pytest.raises(SystemExit) as excinfo:
        main(["estimate", URL, "--start", "9", "--end", "5"])
    assert excinfo.value.code == 2


@pytest.mark.parametrize("start, end", [("nan", "10"), ("0", "inf")])
def test_non_finite_range_exits_2(start, end, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["estimate", URL, "--start", start, "--end", end])
    assert excinfo.value.code == 2
    assert "finite" in capsys.readouterr().err


def test_export_writes_file(fake_tools, tmp_path: Path, capsys):
    out_dir = tmp_path / "out"
    main(["export", URL, "--start", "10", "--end", "25", "-o", str(out_dir)])
    assert (out_dir / "trimmed.mp4").read_bytes() == b"trimmed-bytes"
    assert "Done!" in capsys.readouterr().out


def test_export_failure_exits_1(fake_tools, tmp_path: Path):
    fake_tools.ffmpeg_results = [(1, "Invalid data found when processing input")]
    with pytest.raises(SystemExit) as excinfo:
        main(["export", URL, "--start", "10", "--end", "25", "-o", str(tmp_path)])
    assert excinfo.value.code == 1


@patch("slicetube.cli.estimate")
def test_estimate_prints_both(mock_estimate, capsys):
    mock_estimate.side_effect = [EstimateError("no bitrate"), ByteEstimate("246.1 KB", 252000)]
    main(["estimate", URL, "--start", "0", "--end", "10"])
    out = capsys.readouterr().out
    assert "video: unavailable (no bitrate)" in out
    assert "audio: 246.1 KB" in out


def test_serve_requires_tools(monkeypatch, capsys):
    monkeypatch.setattr("slicetube.ffutil.shutil.which", lambda cmd: None)
    with pytest.raises(SystemExit) as excinfo:
        main(["serve"])
    assert excinfo.value.code == 1
    assert "yt-dlp not found" in capsys.readouterr().err
