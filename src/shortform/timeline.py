"""Timeline assembly — the per-frame layer stack.

layers_at(frame, config) is the single query a renderer needs. It
returns a fresh list of layer dicts, bottom to top:

  z  kind          present
  0  base_clip     always
  1  broll         one per beat overlay covering the frame
  2  color_grade   always
  3  vignette      always
  4  hook/step/cta one per scene window covering the frame
  5  caption       one per visible caption chunk
  6  lower_third   when a logo or handle is configured
  7  progress_bar  always

Nothing is cached between calls and nothing depends on which frames were
asked for before, so frames can be evaluated in any order, in parallel.
build_timeline() precomputes the frame-independent schedules once; the
result is plain data and can be shipped to worker processes.

`config` is the normalized manifest dict produced by
shortform.manifest.normalize_config().
"""

from .beats import beat_overlays_at, schedule_beat_overlays
from .captions import active_captions, captions_at
from .interpolate import interpolate
from .scenes import active_scenes, schedule_scenes


Z_BASE_CLIP = 0
Z_BROLL = 1
Z_COLOR_GRADE = 2
Z_VIGNETTE = 3
Z_SCENE = 4
Z_CAPTION = 5
Z_LOWER_THIRD = 6
Z_PROGRESS_BAR = 7

MAX_VIGNETTE = 0.85
HOOK_REVEAL_FRAMES = 22
HOOK_RISE_PX = 12
MUSIC_FADE_IN_FRAMES = 24

DEFAULT_CTA_TEXT = 'Follow for more + Comment "SOCIAL" to get the free guide'


# ── Precomputation ───────────────────────────────────────────────


def build_timeline(config: dict) -> dict:
    """Compute every frame-independent schedule for a config.

    Returns:
        {"config", "scenes", "captions", "beats"} where captions has
        already dropped chunks that end after total_frames.
    """
    video = config["video"]
    return {
        "config": config,
        "scenes": schedule_scenes(video, len(config["content"]["steps"])),
        "captions": active_captions(config["captions"], video["total_frames"]),
        "beats": schedule_beat_overlays(config["beat_cuts"], config["media"]["broll"]),
    }


# ── Layer builders ───────────────────────────────────────────────


def _scene_layer(kind: str, step_index, window: dict, frame: int, config: dict) -> dict:
    content = config["content"]
    style = config["style"]
    scene_frame = frame - window["start"]
    layer = {
        "kind": kind,
        "z_index": Z_SCENE,
        "window": dict(window),
        "scene_frame": scene_frame,
    }

    if kind == "hook":
        progress = interpolate(
            scene_frame, (0, HOOK_REVEAL_FRAMES), (0, 1),
            extrapolate_left="clamp", extrapolate_right="clamp",
        )
        layer.update({
            "title": content["title"],
            "subtitle": content.get("subtitle"),
            "color": style["text_color"],
            "progress": progress,
            "opacity": progress,
            "y_offset": (1 - progress) * HOOK_RISE_PX,
        })
    elif kind == "step":
        step = content["steps"][step_index]
        number = step_index + 1
        layer.update({
            "number": number,
            "prefix": f"Step {number}: ",
            "label": step["label"],
            "icon": step.get("icon"),
            "brand_color": style["brand_color"],
            "color": style["text_color"],
        })
    else:
        layer.update({
            "text": content.get("cta_text") or DEFAULT_CTA_TEXT,
            "color": style["text_color"],
        })
    return layer


def timeline_layers(frame: int, timeline: dict) -> list[dict]:
    """Layer stack for frame from a prebuilt timeline."""
    config = timeline["config"]
    video = config["video"]
    media = config["media"]
    style = config["style"]
    content = config["content"]

    layers = [{
        "kind": "base_clip",
        "z_index": Z_BASE_CLIP,
        "src": media["footage"],
        "source_frame": frame,
        "background": style["bg_color"],
    }]

    for overlay in beat_overlays_at(timeline["beats"], frame):
        layers.append({
            "kind": "broll",
            "z_index": Z_BROLL,
            "beat_index": overlay["index"],
            "src": overlay["source"],
            "source_frame": frame - overlay["window"]["start"],
        })

    layers.append({
        "kind": "color_grade",
        "z_index": Z_COLOR_GRADE,
        "tint": style["grade_tint"],
    })
    layers.append({
        "kind": "vignette",
        "z_index": Z_VIGNETTE,
        "strength": min(MAX_VIGNETTE, style["vignette"]),
    })

    for kind, step_index, window in active_scenes(timeline["scenes"], frame):
        layers.append(_scene_layer(kind, step_index, window, frame, config))

    for caption in captions_at(timeline["captions"], frame, video["fps"]):
        layers.append({
            "kind": "caption",
            "z_index": Z_CAPTION,
            "chunk_index": caption["index"],
            "words": caption["words"],
            "color": style["text_color"],
        })

    if media.get("logo") or content.get("handle"):
        layers.append({
            "kind": "lower_third",
            "z_index": Z_LOWER_THIRD,
            "logo": media.get("logo"),
            "handle": content.get("handle"),
            "color": style["text_color"],
        })

    # Not clamped: frames past the end report progress > 1.
    layers.append({
        "kind": "progress_bar",
        "z_index": Z_PROGRESS_BAR,
        "progress": frame / video["total_frames"],
        "color": style["brand_color"],
    })
    return layers


def layers_at(frame: int, config: dict, timeline: dict | None = None) -> list[dict]:
    """Ordered layer stack for one frame.

    Args:
        frame: Frame index, normally in [0, total_frames).
        config: Normalized manifest config.
        timeline: Optional result of build_timeline(config), to skip
            recomputing schedules on every call.
    """
    if timeline is None:
        timeline = build_timeline(config)
    return timeline_layers(frame, timeline)


# ── Audio ────────────────────────────────────────────────────────


def music_volume_at(frame: int) -> float:
    """Music gain at frame: linear fade-in over the first 24 frames."""
    return interpolate(
        frame, (0, MUSIC_FADE_IN_FRAMES), (0, 1),
        extrapolate_left="clamp", extrapolate_right="clamp",
    )


def audio_track(config: dict) -> dict | None:
    """Music track description, or None when no music is configured."""
    music = config["media"].get("music")
    if not music:
        return None
    return {
        "src": music,
        "fade_in_frames": MUSIC_FADE_IN_FRAMES,
        "end_frame": config["video"]["total_frames"],
    }
