"""Thin CLI entry point — builds a Manifest and calls the engine."""

import argparse
import logging
import subprocess
import sys
from pathlib import Path

from reelcut import ffutil
from reelcut.config import load_settings
from reelcut.engine import output_names, process
from reelcut.manifest import EditKind, EditRequest, Manifest, load_manifest


def _add_io(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("video", type=Path, help="Input video file")
    parser.add_argument("--output", "-o", type=Path, help="Output file path")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reelcut",
        description="ReelCut — trim, re-time, split and cut video clips with ffmpeg.",
    )
    parser.add_argument("--config", "-c", type=Path, help="Path to a JSON settings file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log ffmpeg commands")
    sub = parser.add_subparsers(dest="command")

    trim = sub.add_parser("trim", help="Keep only [start, end)")
    _add_io(trim)
    trim.add_argument("--start", type=float, required=True, help="Start time (seconds)")
    trim.add_argument("--end", type=float, required=True, help="End time (seconds)")

    speed = sub.add_parser("speed", help="Change playback speed")
    _add_io(speed)
    speed.add_argument("--factor", type=float, required=True, help="Speed multiplier, e.g. 1.5")

    split = sub.add_parser("split", help="Split into two clips")
    _add_io(split)
    split.add_argument("--at", type=float, required=True, help="Split time (seconds)")

    delete = sub.add_parser("delete-range", help="Remove [start, end) and join the rest")
    _add_io(delete)
    delete.add_argument("--start", type=float, required=True, help="Start time (seconds)")
    delete.add_argument("--end", type=float, required=True, help="End time (seconds)")

    extract = sub.add_parser("extract-range", help="Export [start, end) as a WebM clip")
    _add_io(extract)
    extract.add_argument("--start", type=float, required=True, help="Start time (seconds)")
    extract.add_argument("--end", type=float, required=True, help="End time (seconds)")

    proc = sub.add_parser("process", help="Run an edit described by a JSON manifest")
    proc.add_argument("manifest", type=Path, help="Path to a JSON manifest file")

    serve = sub.add_parser("serve", help="Launch the web API")
    serve.add_argument("--port", type=int, default=8321, help="Port to listen on")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")

    return parser


def _edit_from_args(args: argparse.Namespace) -> EditRequest:
    if args.command == "trim":
        return EditRequest(kind=EditKind.TRIM, start=args.start, end=args.end)
    if args.command == "speed":
        return EditRequest(kind=EditKind.SPEED, speed=args.factor)
    if args.command == "split":
        return EditRequest(kind=EditKind.SPLIT, at=args.at)
    if args.command == "delete-range":
        return EditRequest(kind=EditKind.DELETE_RANGE, start=args.start, end=args.end)
    return EditRequest(kind=EditKind.EXTRACT_RANGE, start=args.start, end=args.end)


def _manifest_from_args(args: argparse.Namespace) -> Manifest:
    edit = _edit_from_args(args)
    edit.source = str(args.video)
    if args.output:
        output = args.output
    elif edit.kind == EditKind.SPLIT:
        # parts land beside the input as <stem>_part1.mp4 / <stem>_part2.mp4
        output = args.video.with_suffix(".mp4")
    else:
        draft = Manifest(input=args.video, output=args.video, edit=edit)
        output = args.video.with_name(output_names(draft)[0])
    return Manifest(input=args.video, output=output, edit=edit)


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    settings = load_settings(args.config)
    ffutil.configure(settings)

    if args.command == "serve":
        from reelcut.web import create_app
        app = create_app(settings=settings)
        print(f"ReelCut API: http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=False)
        return

    try:
        m = load_manifest(args.manifest) if args.command == "process" else _manifest_from_args(args)
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    def on_progress(stage: str, frac: float) -> None:
        print(f"  [{frac:3.0%}] {stage}")

    try:
        result = process(m, on_progress=on_progress, max_speed=settings.max_speed)
    except subprocess.CalledProcessError as e:
        stderr = e.stderr if isinstance(e.stderr, str) else (e.stderr or b"").decode(errors="replace")
        print(f"Error: ffmpeg failed: {stderr[-500:] or e}", file=sys.stderr)
        sys.exit(1)
    except (ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print()
    print(f"Done! Source duration: {result.duration_original:.1f}s")
    for output in result.outputs:
        print(f"  Output: {output.path}")
