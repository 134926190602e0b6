"""Thin CLI entry point — serve the API or run one export/estimate locally."""

import argparse
import logging
import math
import sys
from pathlib import Path

from slicetube.config import PipelineConfig, load_config
from slicetube.engine import ExportError, export
from slicetube.estimator import EstimateError, estimate
from slicetube.ffutil import ToolNotFoundError, check_tools
from slicetube.locator import LocatorError
from slicetube.models import ExportFormat, TimeRange
from slicetube.session import save_to_directory
from slicetube.urls import InputError, require_reference


def _add_range_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("url", help="YouTube or TikTok link")
    parser.add_argument("--start", type=float, required=True, help="Start time in seconds")
    parser.add_argument("--end", type=float, required=True, help="End time in seconds")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="slicetube",
        description="SliceTube — trim YouTube and TikTok videos to MP4 or MP3.",
    )
    parser.add_argument("--config", "-c", type=Path, help="Path to a JSON config file")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging verbosity",
    )
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Launch the HTTP API")
    serve.add_argument("--port", type=int, default=8321, help="Port to listen on")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")

    exp = sub.add_parser("export", help="Trim a video and save the result")
    _add_range_args(exp)
    exp.add_argument(
        "--format", "-f", choices=[f.value for f in ExportFormat], default="video",
        help="Export format",
    )
    exp.add_argument("--output-dir", "-o", type=Path, default=Path("."), help="Where to save")

    est = sub.add_parser("estimate", help="Estimate output sizes for a range")
    _add_range_args(est)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = load_config(args.config) if args.config else PipelineConfig()

    if args.command == "serve":
        from slicetube.web import create_app
        try:
            check_tools(config)
        except ToolNotFoundError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        app = create_app(config)
        print(f"SliceTube API: http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=False)
        return

    try:
        ref = require_reference(args.url)
        if not (math.isfinite(args.start) and math.isfinite(args.end)):
            raise InputError("--start and --end must be finite numbers")
        if args.start < 0 or args.end <= args.start:
            raise InputError("--start must be >= 0 and less than --end")
    except InputError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    time_range = TimeRange(start=args.start, end=args.end)

    if args.command == "estimate":
        for fmt in ExportFormat:
            try:
                result = estimate(ref, time_range, fmt, config)
                print(f"  {fmt.value}: {result.size} ({result.bytes} bytes)")
            except EstimateError as e:
                print(f"  {fmt.value}: unavailable ({e})")
        return

    def on_progress(stage: str, frac: float) -> None:
        print(f"  [{frac:3.0%}] {stage}")

    try:
        artifact = export(
            ref,
            time_range,
            ExportFormat(args.format),
            config,
            on_progress=on_progress,
        )
    except (LocatorError, ExportError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    path = save_to_directory(args.output_dir)(artifact)

    print()
    print(f"Done! Output: {path}")
    print(f"  Range: {args.start:.1f}s -> {args.end:.1f}s")
    print(f"  Size: {len(artifact.data)} bytes ({artifact.media_type})")


if __name__ == "__main__":
    main()
