"""CLI for rendering a short-form manifest.

Usage:
    # Full video
    shortform render --manifest short.yaml --output out/short.mp4

    # Quick look at the first 3 seconds
    shortform render --manifest short.yaml --output /tmp/preview.mp4 \
        --preview-frames 90

    # PNG stills of selected frames, 4 worker processes
    shortform render --manifest short.yaml --output /tmp/stills/ \
        --stills 0,130,700,1700 --workers 4

    # Inspect the layer stack at one frame
    shortform render --manifest short.yaml --layers 130

    # Validate only (no rendering)
    shortform render --manifest short.yaml --validate
"""

import argparse
import json

from .manifest import load_manifest, validate_paths
from .timeline import build_timeline, timeline_layers


def _parse_frames(value: str) -> list[int]:
    """Parse '0,120,300' into a list of frame indices."""
    try:
        frames = [int(v) for v in value.split(",") if v.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid frame list: '{value}'")
    if any(f < 0 for f in frames):
        raise argparse.ArgumentTypeError("frames must be >= 0")
    return frames


def _print_summary(config: dict) -> None:
    video = config["video"]
    timeline = build_timeline(config)
    scenes = timeline["scenes"]
    fps = video["fps"]

    def span(window):
        start = window["start"]
        end = start + window["length"]
        return f"[{start}, {end})  {start / fps:.1f}s-{end / fps:.1f}s"

    print(f"  {video['resolution'][0]}x{video['resolution'][1]}, {fps}fps, "
          f"{video['total_frames']} frames ({video['total_frames'] / fps:.1f}s)")
    print(f"  hook    {span(scenes['hook'])}")
    for i, window in enumerate(scenes["steps"]):
        print(f"  step {i + 1}  {span(window)}")
    print(f"  cta     {span(scenes['cta'])}")

    dropped = len(config["captions"]) - len(timeline["captions"])
    print(f"  captions: {len(timeline['captions'])} active"
          + (f", {dropped} past the end (dropped)" if dropped else ""))
    print(f"  beat cuts: {len(timeline['beats'])}, b-roll sources: {len(config['media']['broll'])}")


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Render a short-form manifest to mp4 or PNG stills.",
    )
    parser.add_argument(
        "--manifest", required=True,
        help="Path to YAML manifest file",
    )
    parser.add_argument(
        "--output",
        help="Output mp4 path, or directory for --stills",
    )
    parser.add_argument(
        "--preview-frames", type=int, default=None,
        help="Render only the first N frames",
    )
    parser.add_argument(
        "--stills", type=_parse_frames, default=None,
        help="Comma-separated frame indices to render as PNG",
    )
    parser.add_argument(
        "--workers", type=int, default=1,
        help="Number of parallel workers for --stills (default: 1)",
    )
    parser.add_argument(
        "--layers", type=int, default=None, metavar="FRAME",
        help="Print the layer stack at FRAME as JSON and exit",
    )
    parser.add_argument(
        "--gpu", action="store_true",
        help="Use GPU encoding (h264_nvenc). Default is CPU (libx264).",
    )
    parser.add_argument(
        "--validate", action="store_true",
        help="Validate manifest only — check paths, don't render",
    )
    args = parser.parse_args(args)

    config = load_manifest(args.manifest)

    if args.layers is not None:
        layers = timeline_layers(args.layers, build_timeline(config))
        print(json.dumps(layers, indent=2))
        return

    if args.validate:
        validate_paths(config)
        print("Manifest valid:")
        _print_summary(config)
        print("All paths verified.")
        return

    if not args.output:
        parser.error("--output is required (unless using --validate or --layers)")

    if args.stills is not None and args.preview_frames is not None:
        parser.error("--stills and --preview-frames are mutually exclusive")

    validate_paths(config)

    # Imported here so --validate/--layers don't pay for moviepy startup.
    from .render import render_stills, render_video

    if args.stills is not None:
        print(f"Rendering {len(args.stills)} still(s) to {args.output}/")
        render_stills(config, args.stills, args.output, workers=args.workers)
        return

    _print_summary(config)
    print(f"Writing to: {args.output}")
    render_video(
        config, args.output,
        preview_frames=args.preview_frames,
        codec="h264_nvenc" if args.gpu else "libx264",
    )
    print(f"\nDone: {args.output}")


if __name__ == "__main__":
    main()
