"""CLI for auto captions — word-level transcription into caption chunks.

Usage:
    shortform transcribe aroll.mp4
    shortform transcribe aroll.mp4 --fps 30 --max-words 3 --model large-v3
    shortform transcribe aroll.mp4 --language en --output captions.yaml
"""

import argparse

from .captions import DEFAULT_WORDS_PER_CHUNK
from .transcribe import transcribe


def _parse_args(args=None):
    parser = argparse.ArgumentParser(
        description="Transcribe video/audio into word-timed caption chunks.",
    )
    parser.add_argument(
        "source",
        help="Path to video or audio file",
    )
    parser.add_argument(
        "--output", default=None,
        help="Output YAML/JSON path (default: <source>.captions.yaml)",
    )
    parser.add_argument(
        "--fps", type=int, default=30,
        help="Timeline frame rate the captions are for (default: 30)",
    )
    parser.add_argument(
        "--max-words", type=int, default=DEFAULT_WORDS_PER_CHUNK,
        help=f"Maximum words per caption chunk (default: {DEFAULT_WORDS_PER_CHUNK})",
    )
    parser.add_argument(
        "--model", default="medium",
        help="Whisper model size (default: medium)",
    )
    parser.add_argument(
        "--language", default=None,
        help="Source language code (default: auto-detect)",
    )
    parsed = parser.parse_args(args)
    if parsed.fps <= 0:
        parser.error("--fps must be positive")
    if parsed.max_words < 1:
        parser.error("--max-words must be >= 1")
    return parsed


def main(args=None):
    parsed = _parse_args(args)

    print(f"Transcribing: {parsed.source}")
    print(f"Model: {parsed.model}, {parsed.fps}fps, up to {parsed.max_words} words per chunk")

    result = transcribe(
        source=parsed.source,
        fps=parsed.fps,
        model=parsed.model,
        language=parsed.language,
        max_words=parsed.max_words,
        output=parsed.output,
    )

    n_chunks = len(result["captions"])
    n_words = sum(len(c["words"]) for c in result["captions"])
    print(f"\nDone: {n_words} words in {n_chunks} chunks, language={result['language']}")
    print(f"Output: {parsed.output or parsed.source.rsplit('.', 1)[0] + '.captions.yaml'}")


if __name__ == "__main__":
    main()
