"""Thin CLI entry point: builds a request and calls the retimer or stitcher."""

import argparse
import sys
from pathlib import Path

from easecut.easing import BEZIER_PRESETS, list_easings
from easecut.errors import EaseCutError, ValidationError
from easecut.logger import setup_logging
from easecut.manifest import (
    DEFAULT_BITRATE,
    DEFAULT_OUTPUT_DURATION,
    DEFAULT_OUTPUT_FPS,
    DEFAULT_RETIME_EASING,
    DEFAULT_STITCH_EASING,
    EasingSelection,
    RetimeRequest,
    StitchRequest,
    load_manifest,
)
from easecut.models import BezierCurveSpec
from easecut.retimer import retime
from easecut.stitcher import stitch


def _add_common(parser: argparse.ArgumentParser, default_easing: str) -> None:
    parser.add_argument("--manifest", "-m", type=Path, help="Path to a JSON manifest file")
    parser.add_argument("--output", "-o", type=Path, help="Output video path")
    parser.add_argument("--output-fps", type=int, default=DEFAULT_OUTPUT_FPS, help="Output frame rate")
    curve = parser.add_mutually_exclusive_group()
    curve.add_argument("--easing", type=str, default=default_easing, help="Named easing curve")
    curve.add_argument("--bezier", type=str, help="Custom curve as p1x,p1y,p2x,p2y")
    parser.add_argument("--bitrate", type=str, default=DEFAULT_BITRATE, help="Output video bitrate")
    parser.add_argument("--keep-temp", action="store_true", help="Keep extracted frames")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="easecut",
        description="EaseCut: speed-curve retiming and hard-cut stitching for short clips.",
    )
    sub = parser.add_subparsers(dest="command")

    rt = sub.add_parser("retime", help="Retime a single clip along a speed curve")
    rt.add_argument("--input", "-i", type=Path, help="Input video file")
    rt.add_argument("--output-duration", type=float, default=DEFAULT_OUTPUT_DURATION,
                    help="Output duration in seconds")
    rt.add_argument("--list-easings", action="store_true", help="List easing names and exit")
    _add_common(rt, DEFAULT_RETIME_EASING)

    st = sub.add_parser("stitch", help="Retime several clips and join them with hard cuts")
    st.add_argument("--clips", type=Path, action="append", default=[],
                    help="Input clip (repeat, at least 2)")
    st.add_argument("--clip-duration", type=float, default=DEFAULT_OUTPUT_DURATION,
                    help="Output duration per clip in seconds")
    st.add_argument("--max-clips", type=int, default=None, help="Use only the first N clips")
    _add_common(st, DEFAULT_STITCH_EASING)

    sub.add_parser("easings", help="List easing names")

    serve = sub.add_parser("serve", help="Launch the web API")
    serve.add_argument("--port", type=int, default=8321, help="Port to listen on")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")
    serve.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    return parser


def print_easings() -> None:
    for name in list_easings():
        if name in BEZIER_PRESETS:
            p = BEZIER_PRESETS[name]
            print(f"  {name:<20} cubic-bezier({p.p1x}, {p.p1y}, {p.p2x}, {p.p2y})")
        else:
            print(f"  {name}")


def _easing_from_args(args: argparse.Namespace) -> EasingSelection:
    if args.bezier:
        return EasingSelection(name=args.easing, bezier=BezierCurveSpec.parse(args.bezier))
    return EasingSelection(name=args.easing)


def _request_from_args(args: argparse.Namespace) -> RetimeRequest | StitchRequest:
    if args.manifest:
        request = load_manifest(args.manifest)
        expected = RetimeRequest if args.command == "retime" else StitchRequest
        if not isinstance(request, expected):
            raise ValidationError(f"Manifest {args.manifest} is not a {args.command} job")
        if args.keep_temp:
            request.keep_temp = True
        return request

    if args.output is None:
        raise ValidationError("--output is required")

    if args.command == "retime":
        if args.input is None:
            raise ValidationError("--input is required")
        return RetimeRequest(
            input=args.input,
            output=args.output,
            output_duration=args.output_duration,
            output_fps=args.output_fps,
            easing=_easing_from_args(args),
            bitrate=args.bitrate,
            keep_temp=args.keep_temp,
        )

    return StitchRequest(
        clips=args.clips,
        output=args.output,
        clip_duration=args.clip_duration,
        output_fps=args.output_fps,
        easing=_easing_from_args(args),
        bitrate=args.bitrate,
        keep_temp=args.keep_temp,
        max_clips=args.max_clips,
    )


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    setup_logging(getattr(args, "verbose", False))

    if args.command == "easings" or getattr(args, "list_easings", False):
        print_easings()
        return

    if args.command == "serve":
        from easecut.web import create_app
        app = create_app()
        print(f"EaseCut web API: http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=False, threaded=True)
        return

    def on_progress(stage: str, frac: float) -> None:
        print(f"  [{frac:3.0%}] {stage}")

    try:
        request = _request_from_args(args)
        if isinstance(request, StitchRequest):
            result = stitch(request, on_progress=on_progress)
        else:
            result = retime(request, on_progress=on_progress)
    except EaseCutError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print()
    print(f"Done! Output: {result.output_path}")
    print(f"  Frames: {result.frame_count} @ {result.fps:g} fps ({result.duration:.2f}s)")
    if result.clip_count > 1:
        print(f"  Clips stitched: {result.clip_count}")
    ratios = ", ".join(f"{r:.2f}x" for r in result.compression_ratios)
    print(f"  Compression: {ratios}")
    if result.scratch_dir:
        print(f"  Frames kept in: {result.scratch_dir}")
