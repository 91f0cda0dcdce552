"""shortform.common — shared utilities for manifest parsing and rendering.

Contains: color parsing, path variable resolution, media reference
helpers, font loading, and clip loading.
"""

import re
from pathlib import Path

from PIL import ImageColor, ImageFont
from moviepy import VideoFileClip


# ── Font paths ─────────────────────────────────────────────────────
# Inter preferred for the bold caption look, DejaVu Sans Bold as fallback.

FONT_PATHS = [
    Path.home() / ".local/share/fonts/Inter.ttc",
    Path("/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"),
    Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
]

_RGBA_RE = re.compile(
    r"^rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*(?:,\s*([0-9]*\.?[0-9]+)\s*)?\)$"
)


# ── Color utilities ────────────────────────────────────────────────

def parse_color(value: str) -> tuple[int, int, int, float]:
    """Parse a CSS color string to (R, G, B, alpha).

    Alpha is a float in [0, 1]. 'rgba(r,g,b,a)' takes a fractional
    alpha as in CSS; every other form ('#rgb', '#rrggbbaa', 'rgb()',
    'hsl()', named colors like 'white') goes through Pillow's
    ImageColor. 'transparent' yields alpha 0.
    """
    value = value.strip()
    if value == "transparent":
        return (0, 0, 0, 0.0)
    match = _RGBA_RE.match(value)
    if match:
        r, g, b = (int(match.group(i)) for i in (1, 2, 3))
        alpha = float(match.group(4)) if match.group(4) is not None else 1.0
        if max(r, g, b) > 255 or alpha > 1.0:
            raise ValueError(f"Color component out of range: '{value}'")
        return (r, g, b, alpha)
    try:
        r, g, b, a = ImageColor.getcolor(value, "RGBA")
    except ValueError as exc:
        raise ValueError(f"Invalid color: '{value}'") from exc
    return (r, g, b, a / 255)


# ── Path utilities ─────────────────────────────────────────────────

def resolve_path_vars(text: str, paths: dict[str, str]) -> str:
    """Replace ${name} variables in a string using the paths dict."""
    def _replace(match):
        key = match.group(1)
        if key not in paths:
            raise ValueError(f"Unknown path variable: ${{{key}}}")
        return paths[key]
    return re.sub(r"\$\{(\w+)\}", _replace, text)


def is_url(ref: str) -> bool:
    """True for remote media references (http, https, s3...)."""
    return bool(re.match(r"^[a-zA-Z][a-zA-Z0-9+.-]*://", ref))


# ── Font loading ───────────────────────────────────────────────────

def load_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load Inter (or fallback) at the given size."""
    for font_path in FONT_PATHS:
        if font_path.exists():
            try:
                return ImageFont.truetype(str(font_path), size=size, index=0)
            except (OSError, IndexError):
                continue
    # Last resort: Pillow default font.
    return ImageFont.load_default()


# ── Clip loading ───────────────────────────────────────────────────

def load_clip(ref: str | Path, target_fps: int) -> VideoFileClip:
    """Load a video reference (local path or URL) at the target fps.

    Footage from phones is often 60fps or variable; frame indices in the
    timeline always refer to the manifest fps.
    """
    clip = VideoFileClip(str(ref), audio=False)
    if clip.fps != target_fps:
        clip = clip.with_fps(target_fps)
    return clip
