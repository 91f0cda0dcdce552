"""Frame renderer — draws the timeline's layer stack with Pillow + numpy.

The timeline decides what is on screen; this module decides how it
looks. render_frame() walks the layers of one frame bottom to top:

  ┌────────────────────────┐
  │▬▬▬▬▬▬▬▬▬▬              │  ← progress bar (brand color)
  │           ┌──────────┐ │
  │           │Step 1: … │ │  ← step card (top right)
  │           └──────────┘ │
  │      ┌────────────┐    │
  │      │ HOOK TITLE │    │  ← hook / CTA card (centered)
  │      └────────────┘    │
  │                        │
  │    try this 3-step     │  ← captions, word by word
  │ ◉ @handle              │  ← lower third
  └────────────────────────┘

Base footage and b-roll are cover-fit to the output resolution. All
pixel constants are defined at a 1080px-wide reference and scale with
the output width.

render_video() wraps render_frame() in a moviepy VideoClip and encodes
it; render_stills() writes PNGs, optionally across worker processes.
Each frame is rendered independently, so workers never coordinate.
"""

import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from functools import lru_cache
from pathlib import Path

import imageio.v3 as iio
import numpy as np
from PIL import Image, ImageDraw
from moviepy import AudioClip, AudioFileClip, VideoClip

from .beats import BROLL_MAX_FRAMES
from .common import load_clip, load_font, parse_color
from .timeline import (
    MUSIC_FADE_IN_FRAMES,
    audio_track,
    build_timeline,
    music_volume_at,
    timeline_layers,
)


# ── Scaling system ────────────────────────────────────────────────
#
# Reference is a 1080px-wide vertical frame. Each constant is
# (value_at_1080, floor).

_REF_W = 1080

_REF_EDGE_MARGIN = (36, 8)
_REF_CARD_PADDING = (24, 6)
_REF_CARD_RADIUS = (24, 4)
_REF_HOOK_TITLE_FONT = (82, 16)
_REF_HOOK_SUBTITLE_FONT = (36, 10)
_REF_HOOK_GAP = (10, 2)
_REF_HOOK_MAX_W = (880, 200)
_REF_STEP_TOP = (120, 20)
_REF_STEP_W = (700, 160)
_REF_STEP_FONT = (48, 12)
_REF_STEP_GAP = (16, 4)
_REF_ICON_SIZE = (56, 12)
_REF_CTA_FONT = (64, 14)
_REF_CTA_MAX_W = (900, 200)
_REF_CAPTION_FONT = (66, 14)
_REF_CAPTION_SIDE = (60, 10)
_REF_CAPTION_BOTTOM = (170, 30)
_REF_CAPTION_WORD_GAP = (10, 2)
_REF_LOGO_SIZE = (56, 12)
_REF_HANDLE_FONT = (28, 8)
_REF_HANDLE_PADDING = (14, 4)
_REF_HANDLE_RADIUS = (16, 3)
_REF_LOWER_THIRD_GAP = (12, 3)
_REF_PROGRESS_H = (6, 2)
_REF_VIGNETTE_DEPTH = (240, 40)
_REF_SHADOW_OFFSET = (2, 1)

CARD_BG_ALPHA = 0.55
HANDLE_BG_ALPHA = 0.6
PROGRESS_TRACK_RGBA = (255, 255, 255, 20)     # rgba(255,255,255,0.08)


def _scale(ref_and_floor: tuple[int, int], w: int) -> int:
    """Scale a reference pixel value to the current output width."""
    ref_val, floor = ref_and_floor
    return max(floor, round(ref_val * w / _REF_W))


def _rgba(color: str, opacity: float = 1.0) -> tuple[int, int, int, int]:
    """Color string to an 8-bit RGBA fill, multiplied by opacity."""
    r, g, b, a = parse_color(color)
    return (r, g, b, round(255 * a * opacity))


# ── Media access ──────────────────────────────────────────────────


class MediaCache:
    """Opens each media reference once and serves frames from it.

    One cache per process. Video references are loaded with moviepy at
    the timeline fps; images through imageio so URLs work too.
    """

    def __init__(self, fps: int, resolution: tuple[int, int]):
        self.fps = fps
        self.resolution = resolution
        self._clips = {}
        self._images = {}

    def video_frame(self, ref: str, source_frame: int) -> np.ndarray:
        """Frame of a video reference, cover-fit to the output resolution.

        Frames past the end of the clip hold its last frame.
        """
        clip = self._clips.get(ref)
        if clip is None:
            clip = load_clip(ref, self.fps)
            self._clips[ref] = clip
        t = min(max(0, source_frame) / self.fps, max(0.0, clip.duration - 1 / self.fps))
        return cover_fit(clip.get_frame(t), self.resolution)

    def image(self, ref: str, size: int) -> Image.Image:
        """Square RGBA image, scaled to fit size x size."""
        key = (ref, size)
        if key not in self._images:
            img = Image.fromarray(iio.imread(ref)).convert("RGBA")
            img.thumbnail((size, size), Image.LANCZOS)
            self._images[key] = img
        return self._images[key]

    def close(self) -> None:
        for clip in self._clips.values():
            clip.close()
        self._clips.clear()
        self._images.clear()


def cover_fit(frame: np.ndarray, resolution: tuple[int, int]) -> np.ndarray:
    """Scale and center-crop a frame to fill resolution (CSS object-fit: cover)."""
    w, h = resolution
    src_h, src_w = frame.shape[:2]
    if (src_w, src_h) == (w, h):
        return frame
    scale = max(w / src_w, h / src_h)
    new_w = max(w, round(src_w * scale))
    new_h = max(h, round(src_h * scale))
    img = Image.fromarray(frame).resize((new_w, new_h), Image.BILINEAR)
    left = (new_w - w) // 2
    top = (new_h - h) // 2
    return np.array(img.crop((left, top, left + w, top + h)))


# ── Full-frame effects ────────────────────────────────────────────


def apply_tint(canvas: Image.Image, tint: str) -> Image.Image:
    """Composite a flat semi-transparent color over the whole frame."""
    fill = _rgba(tint)
    if fill[3] == 0:
        return canvas
    return Image.alpha_composite(canvas, Image.new("RGBA", canvas.size, fill))


@lru_cache(maxsize=8)
def _vignette_alpha(w: int, h: int, strength: float) -> np.ndarray:
    """Alpha mask for an inset edge shadow, darkest at the border."""
    depth = _scale(_REF_VIGNETTE_DEPTH, w)
    ys = np.arange(h, dtype=np.float32)
    xs = np.arange(w, dtype=np.float32)
    dy = np.minimum(ys, h - 1 - ys)[:, None]
    dx = np.minimum(xs, w - 1 - xs)[None, :]
    edge = np.clip(1.0 - np.minimum(dx, dy) / depth, 0.0, 1.0)
    return (edge ** 2 * strength * 255).astype(np.uint8)


def apply_vignette(canvas: Image.Image, strength: float) -> Image.Image:
    if strength <= 0:
        return canvas
    w, h = canvas.size
    shade = np.zeros((h, w, 4), dtype=np.uint8)
    shade[:, :, 3] = _vignette_alpha(w, h, float(strength))
    return Image.alpha_composite(canvas, Image.fromarray(shade))


# ── Text and card helpers ─────────────────────────────────────────


def wrap_text(draw: ImageDraw.ImageDraw, text: str, font, max_width: int) -> list[str]:
    """Greedy word wrap to max_width pixels."""
    lines = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}".strip()
        if current and draw.textlength(candidate, font=font) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines or [""]


def _line_height(font) -> int:
    bbox = font.getbbox("Ag")
    return bbox[3] - bbox[1]


def _draw_card(
    overlay: Image.Image,
    box: tuple[int, int, int, int],
    radius: int,
    alpha: float = CARD_BG_ALPHA,
) -> None:
    """Dark rounded card behind scene text."""
    draw = ImageDraw.Draw(overlay)
    draw.rounded_rectangle(box, radius=radius, fill=(0, 0, 0, round(255 * alpha)))


def _draw_shadowed_text(draw, xy, text, font, fill, shadow_offset):
    x, y = xy
    shadow = (0, 0, 0, round(fill[3] * 0.8))
    draw.text((x, y + shadow_offset), text, font=font, fill=shadow)
    draw.text((x, y), text, font=font, fill=fill)


# ── Layer painters ────────────────────────────────────────────────


def _paint_hook(overlay: Image.Image, layer: dict) -> None:
    w, h = overlay.size
    pad = _scale(_REF_CARD_PADDING, w)
    max_w = min(_scale(_REF_HOOK_MAX_W, w), w - 2 * pad)
    title_font = load_font(_scale(_REF_HOOK_TITLE_FONT, w))
    sub_font = load_font(_scale(_REF_HOOK_SUBTITLE_FONT, w))
    gap = _scale(_REF_HOOK_GAP, w)

    draw = ImageDraw.Draw(overlay)
    title_lines = wrap_text(draw, layer["title"], title_font, max_w)
    sub_lines = wrap_text(draw, layer["subtitle"], sub_font, max_w) if layer.get("subtitle") else []

    title_lh = _line_height(title_font)
    sub_lh = _line_height(sub_font)
    text_h = len(title_lines) * title_lh
    if sub_lines:
        text_h += gap + len(sub_lines) * sub_lh
    text_w = max(
        [draw.textlength(line, font=title_font) for line in title_lines]
        + [draw.textlength(line, font=sub_font) for line in sub_lines]
    )

    card_w = int(text_w) + 2 * pad
    card_h = text_h + 2 * pad
    x0 = (w - card_w) // 2
    y0 = (h - card_h) // 2
    _draw_card(overlay, (x0, y0, x0 + card_w, y0 + card_h), _scale(_REF_CARD_RADIUS, w))

    # Title slides up and fades in; the subtitle is static at 88%.
    title_fill = _rgba(layer["color"], layer["opacity"])
    y = y0 + pad + round(layer["y_offset"] * w / _REF_W)
    for line in title_lines:
        lw = draw.textlength(line, font=title_font)
        draw.text((x0 + (card_w - lw) / 2, y), line, font=title_font, fill=title_fill)
        y += title_lh

    y = y0 + pad + len(title_lines) * title_lh + gap
    for line in sub_lines:
        lw = draw.textlength(line, font=sub_font)
        draw.text((x0 + (card_w - lw) / 2, y), line, font=sub_font, fill=(255, 255, 255, 224))
        y += sub_lh


def _paint_step(overlay: Image.Image, layer: dict, media: MediaCache) -> None:
    w, _ = overlay.size
    margin = _scale(_REF_EDGE_MARGIN, w)
    pad = _scale(_REF_CARD_PADDING, w)
    card_w = min(_scale(_REF_STEP_W, w), w - 2 * margin)
    font = load_font(_scale(_REF_STEP_FONT, w))
    icon_size = _scale(_REF_ICON_SIZE, w)
    gap = _scale(_REF_STEP_GAP, w)

    icon = media.image(layer["icon"], icon_size) if layer.get("icon") else None
    text_x_off = icon_size + gap if icon is not None else 0

    draw = ImageDraw.Draw(overlay)
    lines = wrap_text(draw, layer["prefix"] + layer["label"], font, card_w - 2 * pad - text_x_off)
    lh = round(_line_height(font) * 1.1)
    content_h = max(len(lines) * lh, icon_size if icon is not None else 0)

    x0 = w - margin - card_w
    y0 = _scale(_REF_STEP_TOP, w)
    _draw_card(overlay, (x0, y0, x0 + card_w, y0 + content_h + 2 * pad), _scale(_REF_CARD_RADIUS, w))

    if icon is not None:
        overlay.alpha_composite(icon, (x0 + pad, y0 + pad))

    # "Step k: " is drawn in the brand color, the label in the text color.
    brand = _rgba(layer["brand_color"])
    text = _rgba(layer["color"])
    prefix_left = layer["prefix"].strip()
    y = y0 + pad
    for i, line in enumerate(lines):
        x = x0 + pad + text_x_off
        if i == 0 and line.startswith(prefix_left):
            draw.text((x, y), prefix_left, font=font, fill=brand)
            x += draw.textlength(prefix_left + " ", font=font)
            line = line[len(prefix_left):].lstrip()
        draw.text((x, y), line, font=font, fill=text)
        y += lh


def _paint_cta(overlay: Image.Image, layer: dict) -> None:
    w, h = overlay.size
    pad = _scale(_REF_CARD_PADDING, w)
    font = load_font(_scale(_REF_CTA_FONT, w))
    draw = ImageDraw.Draw(overlay)
    lines = wrap_text(draw, layer["text"], font, min(_scale(_REF_CTA_MAX_W, w), w - 4 * pad))
    lh = _line_height(font)
    text_w = max(draw.textlength(line, font=font) for line in lines)

    card_w = int(text_w) + 2 * pad
    card_h = len(lines) * lh + 2 * pad
    x0 = (w - card_w) // 2
    y0 = (h - card_h) // 2
    _draw_card(overlay, (x0, y0, x0 + card_w, y0 + card_h), _scale(_REF_CARD_RADIUS, w))

    fill = _rgba(layer["color"])
    y = y0 + pad
    for line in lines:
        lw = draw.textlength(line, font=font)
        draw.text((x0 + (card_w - lw) / 2, y), line, font=font, fill=fill)
        y += lh


def _layout_caption_rows(draw, words: list[dict], font, max_width: int, word_gap: int):
    """Split a chunk's words into centered rows: [[(word, x_offset, width)], ...]."""
    rows = [[]]
    row_w = 0
    for word in words:
        ww = draw.textlength(word["text"], font=font)
        needed = ww if not rows[-1] else row_w + word_gap + ww
        if rows[-1] and needed > max_width:
            rows.append([])
            row_w = 0
            needed = ww
        x = 0 if not rows[-1] else row_w + word_gap
        rows[-1].append((word, x, ww))
        row_w = needed
    return rows


def _paint_captions(overlay: Image.Image, layers: list[dict]) -> None:
    """Stack every visible caption chunk above the bottom margin."""
    w, h = overlay.size
    side = _scale(_REF_CAPTION_SIDE, w)
    font = load_font(_scale(_REF_CAPTION_FONT, w))
    word_gap = _scale(_REF_CAPTION_WORD_GAP, w)
    shadow_offset = _scale(_REF_SHADOW_OFFSET, w)
    px_scale = w / _REF_W
    lh = round(_line_height(font) * 1.05)
    draw = ImageDraw.Draw(overlay)

    blocks = [
        _layout_caption_rows(draw, layer["words"], font, w - 2 * side, word_gap)
        for layer in layers
    ]
    total_h = sum(len(rows) for rows in blocks) * lh
    y = h - _scale(_REF_CAPTION_BOTTOM, w) - total_h

    for layer, rows in zip(layers, blocks):
        for row in rows:
            row_w = row[-1][1] + row[-1][2] if row else 0
            left = (w - row_w) / 2
            for word, x, _ in row:
                if word["opacity"] <= 0:
                    continue
                fill = _rgba(layer["color"], word["opacity"])
                wy = y + round(word["y_offset"] * px_scale)
                _draw_shadowed_text(draw, (left + x, wy), word["text"], font, fill, shadow_offset)
            y += lh


def _paint_lower_third(overlay: Image.Image, layer: dict, media: MediaCache) -> None:
    w, h = overlay.size
    margin = _scale(_REF_EDGE_MARGIN, w)
    gap = _scale(_REF_LOWER_THIRD_GAP, w)
    logo_size = _scale(_REF_LOGO_SIZE, w)
    x = margin
    bottom = h - margin

    if layer.get("logo"):
        logo = media.image(layer["logo"], logo_size)
        overlay.alpha_composite(logo, (x, bottom - logo.size[1]))
        x += logo.size[0] + gap

    if layer.get("handle"):
        font = load_font(_scale(_REF_HANDLE_FONT, w))
        pad = _scale(_REF_HANDLE_PADDING, w)
        draw = ImageDraw.Draw(overlay)
        tw = draw.textlength(layer["handle"], font=font)
        th = _line_height(font)
        box = (x, bottom - th - 2 * pad, x + int(tw) + 2 * pad, bottom)
        _draw_card(overlay, box, _scale(_REF_HANDLE_RADIUS, w), alpha=HANDLE_BG_ALPHA)
        draw.text((x + pad, box[1] + pad), layer["handle"], font=font, fill=_rgba(layer["color"]))


def _paint_progress_bar(overlay: Image.Image, layer: dict) -> None:
    w, _ = overlay.size
    bar_h = _scale(_REF_PROGRESS_H, w)
    draw = ImageDraw.Draw(overlay)
    draw.rectangle((0, 0, w, bar_h), fill=PROGRESS_TRACK_RGBA)
    # The layer's progress may exceed 1 past the end; the bar just fills.
    fill_w = round(w * min(max(layer["progress"], 0.0), 1.0))
    if fill_w > 0:
        draw.rectangle((0, 0, fill_w, bar_h), fill=_rgba(layer["color"]))


# ── Frame rendering ───────────────────────────────────────────────


def render_frame(frame: int, timeline: dict, media: MediaCache) -> np.ndarray:
    """Render one output frame.

    Args:
        frame: Frame index.
        timeline: Result of timeline.build_timeline(config).
        media: Per-process media cache.

    Returns:
        numpy array of shape (h, w, 3), dtype uint8.
    """
    w, h = timeline["config"]["video"]["resolution"]
    layers = timeline_layers(frame, timeline)
    canvas = None

    captions = [layer for layer in layers if layer["kind"] == "caption"]
    for layer in layers:
        kind = layer["kind"]
        if kind == "base_clip":
            canvas = Image.new("RGBA", (w, h), _rgba(layer["background"]))
            base = media.video_frame(layer["src"], layer["source_frame"])
            canvas.paste(Image.fromarray(base).convert("RGBA"))
        elif kind == "broll":
            # Empty slot when no b-roll sources are configured.
            if layer["src"] is None:
                continue
            source_frame = min(layer["source_frame"], BROLL_MAX_FRAMES - 1)
            canvas = Image.fromarray(media.video_frame(layer["src"], source_frame)).convert("RGBA")
        elif kind == "color_grade":
            canvas = apply_tint(canvas, layer["tint"])
        elif kind == "vignette":
            canvas = apply_vignette(canvas, layer["strength"])
        elif kind == "caption":
            # All chunks are laid out together, on the first caption layer.
            if layer is captions[0]:
                overlay = Image.new("RGBA", (w, h), (0, 0, 0, 0))
                _paint_captions(overlay, captions)
                canvas = Image.alpha_composite(canvas, overlay)
        else:
            overlay = Image.new("RGBA", (w, h), (0, 0, 0, 0))
            if kind == "hook":
                _paint_hook(overlay, layer)
            elif kind == "step":
                _paint_step(overlay, layer, media)
            elif kind == "cta":
                _paint_cta(overlay, layer)
            elif kind == "lower_third":
                _paint_lower_third(overlay, layer, media)
            elif kind == "progress_bar":
                _paint_progress_bar(overlay, layer)
            canvas = Image.alpha_composite(canvas, overlay)

    return np.array(canvas.convert("RGB"))


# ── Audio ─────────────────────────────────────────────────────────


def music_gain(t, fps: int) -> np.ndarray:
    """Music gain for audio times t (seconds), following music_volume_at.

    Past the fade-in window the gain is 1, so only samples inside it are
    evaluated frame by frame.
    """
    frames = np.atleast_1d(np.asarray(t, dtype=float)) * fps
    gain = np.ones_like(frames)
    fading = frames < MUSIC_FADE_IN_FRAMES
    gain[fading] = [music_volume_at(f) for f in frames[fading]]
    return gain


def fade_in_music(audio: AudioClip, fps: int) -> AudioClip:
    """Apply the timeline's music fade-in to a moviepy audio clip."""
    def faded(get_frame, t):
        samples = get_frame(t)
        gain = music_gain(t, fps)
        if np.ndim(t) == 0:
            return gain[0] * samples
        return gain[:, np.newaxis] * samples

    return audio.transform(faded, keep_duration=True)


# ── Video export ──────────────────────────────────────────────────


def render_video(
    config: dict,
    output_path: str,
    preview_frames: int | None = None,
    codec: str = "libx264",
    quiet: bool = False,
) -> None:
    """Render the whole timeline to an mp4, with music if configured.

    Args:
        config: Normalized manifest config.
        output_path: Output mp4 path.
        preview_frames: If set, render only the first N frames.
        codec: ffmpeg video codec.
        quiet: Suppress moviepy's progress bar.
    """
    video = config["video"]
    fps = video["fps"]
    n_frames = video["total_frames"]
    if preview_frames:
        n_frames = min(n_frames, preview_frames)
    duration = n_frames / fps

    timeline = build_timeline(config)
    media = MediaCache(fps, video["resolution"])

    def frame_at(t):
        return render_frame(min(int(round(t * fps)), n_frames - 1), timeline, media)

    clip = VideoClip(frame_at, duration=duration)

    track = audio_track(config)
    audio = None
    if track:
        audio = AudioFileClip(track["src"])
        audio = audio.subclipped(0, min(audio.duration, track["end_frame"] / fps, duration))
        audio = fade_in_music(audio, fps)
        clip = clip.with_audio(audio)

    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    try:
        clip.write_videofile(
            str(output_path),
            fps=fps,
            codec=codec,
            audio=audio is not None,
            audio_codec="aac",
            preset="medium",
            ffmpeg_params=["-crf", "20", "-pix_fmt", "yuv420p"],
            logger=None if quiet else "bar",
        )
    finally:
        if audio is not None:
            audio.close()
        media.close()


def _still_filename(frame: int) -> str:
    return f"frame-{frame:05d}.png"


def _render_still_batch(args):
    """Worker: render a batch of frames to PNG with its own media cache.

    Takes a single tuple so it works with ProcessPoolExecutor.submit().
    """
    config, frames, out_dir = args
    video = config["video"]
    timeline = build_timeline(config)
    media = MediaCache(video["fps"], video["resolution"])
    written = []
    try:
        for frame in frames:
            path = Path(out_dir) / _still_filename(frame)
            Image.fromarray(render_frame(frame, timeline, media)).save(path)
            written.append(str(path))
    finally:
        media.close()
    return written


def render_stills(
    config: dict,
    frames: list[int],
    out_dir: str,
    workers: int = 1,
) -> list[str]:
    """Render selected frames to PNG files (frame-NNNNN.png).

    With workers > 1 the frames are split round-robin across processes.
    Returns the written paths in the order of `frames`.
    """
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    if not frames:
        return []

    effective_workers = max(1, min(workers, len(frames)))
    t_start = time.monotonic()

    if effective_workers == 1:
        _render_still_batch((config, frames, str(out)))
    else:
        batches = [frames[i::effective_workers] for i in range(effective_workers)]
        with ProcessPoolExecutor(max_workers=effective_workers) as pool:
            futures = {
                pool.submit(_render_still_batch, (config, batch, str(out))): i
                for i, batch in enumerate(batches)
            }
            for future in as_completed(futures):
                for path in future.result():  # propagate exceptions
                    print(f"  DONE   {path}", flush=True)

    elapsed = time.monotonic() - t_start
    print(f"Rendered {len(frames)} still(s) to {out}/ ({elapsed:.1f}s)", flush=True)
    return [str(out / _still_filename(f)) for f in frames]
