"""Subcommand dispatcher for shortform.

Usage:
    shortform render      --manifest ... --output ...
    shortform transcribe  source.mp4 --fps 30 --output captions.yaml
"""

import argparse
import sys


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="shortform",
        description="Short-form vertical video rendering and auto captions.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Register subcommands. Each delegates to its own module's main().
    subparsers.add_parser("render", help="Render a manifest to mp4 or stills")
    subparsers.add_parser("transcribe", help="Transcribe footage into caption chunks")

    # Parse only the subcommand name, pass the rest to the subcommand's parser.
    parsed, remaining = parser.parse_known_args(args)

    if parsed.command is None:
        parser.print_help()
        sys.exit(1)

    if parsed.command == "render":
        from .render_cli import main as render_main
        render_main(remaining)
    elif parsed.command == "transcribe":
        from .transcribe_cli import main as transcribe_main
        transcribe_main(remaining)


if __name__ == "__main__":
    main()
