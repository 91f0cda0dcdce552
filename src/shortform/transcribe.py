"""Auto captions — faster-whisper word timestamps to caption chunks.

Requires optional dependencies: pip install shortform[transcribe]
Import-guarded so the rest of shortform works without the model stack.

The output file is directly usable as a manifest's `captions:` path.
"""

import json
import subprocess
import tempfile
from pathlib import Path

import imageio_ffmpeg
import yaml

from .captions import DEFAULT_WORDS_PER_CHUNK, chunks_from_words

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()

# Import-guarded heavy dependency.
try:
    from faster_whisper import WhisperModel
    _WHISPER_AVAILABLE = True
except ImportError:
    WhisperModel = None
    _WHISPER_AVAILABLE = False


def _extract_audio(source: str, work_dir: Path) -> str:
    """Extract 16kHz mono audio from a video to WAV using ffmpeg."""
    wav_path = str(work_dir / "audio.wav")
    cmd = [
        _FFMPEG, "-y",
        "-i", source,
        "-vn",
        "-acodec", "pcm_s16le",
        "-ar", "16000",
        "-ac", "1",
        wav_path,
    ]
    subprocess.run(cmd, check=True, capture_output=True)
    return wav_path


def _collect_words(segments) -> list[dict]:
    """Flatten whisper segments to [{start, end, text}] in seconds."""
    words = []
    for segment in segments:
        for w in segment.words or []:
            text = (w.word or "").strip()
            if not text:
                continue
            words.append({
                "start": round(w.start, 3),
                "end": round(w.end, 3),
                "text": text,
            })
    return words


def build_captions_document(
    source: str,
    fps: int,
    model: str,
    language: str,
    words: list[dict],
    max_words: int = DEFAULT_WORDS_PER_CHUNK,
) -> dict:
    """Build the captions file contents from transcript words."""
    return {
        "source": source,
        "fps": fps,
        "model": model,
        "language": language,
        "captions": chunks_from_words(words, fps, max_words=max_words),
    }


def write_captions_document(document: dict, output: str | Path) -> None:
    """Write a captions document as JSON (.json) or YAML (anything else)."""
    output = Path(output)
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w") as f:
        if output.suffix.lower() == ".json":
            json.dump(document, f, indent=2)
        else:
            yaml.safe_dump(document, f, sort_keys=False, allow_unicode=True)


def transcribe(
    source: str,
    fps: int = 30,
    model: str = "medium",
    language: str | None = None,
    max_words: int = DEFAULT_WORDS_PER_CHUNK,
    output: str | None = None,
) -> dict:
    """Transcribe a video/audio file into frame-based caption chunks.

    Args:
        source: Path to video or audio file.
        fps: Timeline frame rate the captions will be used at.
        model: Whisper model size (tiny, base, small, medium, large-v3).
        language: Language code or None for auto-detection.
        max_words: Maximum words per caption chunk.
        output: Output path. If None, uses <source-stem>.captions.yaml.

    Returns:
        Captions document (also written to output path).

    Raises:
        RuntimeError: If shortform[transcribe] is not installed.
    """
    if not _WHISPER_AVAILABLE:
        raise RuntimeError(
            "Transcription requires extra dependencies.\n"
            "Run: pip install shortform[transcribe]"
        )

    source_path = Path(source)
    if output is None:
        output = str(source_path.with_suffix("").with_suffix(".captions.yaml"))

    with tempfile.TemporaryDirectory() as work_dir:
        wav_path = _extract_audio(source, Path(work_dir))
        whisper_model = WhisperModel(model)
        segments, info = whisper_model.transcribe(
            wav_path,
            language=language,
            word_timestamps=True,
        )
        words = _collect_words(segments)

    document = build_captions_document(
        source=source_path.name,
        fps=fps,
        model=model,
        language=language or info.language,
        words=words,
        max_words=max_words,
    )
    write_captions_document(document, output)
    return document
