"""Shared test fixtures for shortform tests."""

import subprocess

import pytest
import imageio_ffmpeg

from shortform.manifest import normalize_config

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()


def make_config(**sections):
    """Normalized config from a minimal raw manifest plus section overrides.

    Each keyword replaces a top-level manifest section, e.g.
    make_config(video={"total_frames": 600}, beat_cuts=[10]).
    Media and content are merged over the required fields.
    """
    raw = {
        "media": {"footage": "/fake/aroll.mp4"},
        "content": {"title": "Boost Your Social Skills"},
    }
    for key, value in sections.items():
        if key in ("media", "content"):
            raw[key] = {**raw[key], **value}
        else:
            raw[key] = value
    return normalize_config(raw)


@pytest.fixture
def default_config():
    """Config with every optional field left at its default."""
    return make_config()


@pytest.fixture
def source_video(tmp_path):
    """Create a 2-second vertical test video (108x192, 30fps) with audio.

    Shared across test_render.py and test_transcribe.py.
    """
    out = tmp_path / "source.mp4"
    subprocess.run(
        [
            _FFMPEG, "-y",
            "-f", "lavfi", "-i", "color=c=blue:s=108x192:d=2:r=30",
            "-f", "lavfi", "-i", "anullsrc=r=44100:cl=mono",
            "-shortest",
            "-c:v", "libx264", "-crf", "28", "-pix_fmt", "yuv420p",
            "-c:a", "aac", "-b:a", "32k",
            str(out),
        ],
        check=True,
        capture_output=True,
    )
    return out
