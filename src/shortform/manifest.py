"""Manifest loader for short-form templates.

Parses a YAML manifest, resolves ${path} variables in media references,
applies defaults for every optional field, and validates types and
ranges. The normalized dict is what the timeline and renderer consume.

Manifest schema (only media.footage and content.title are required):
  video:
    fps: 30
    total_frames: 1800
    resolution: [1080, 1920]
    hook_duration: 120
    step_duration: 180
    cta_duration: 150
  paths:
    media: "/data/media"
  media:
    footage: "${media}/aroll.mp4"
    broll: ["${media}/b1.mp4", "${media}/b2.mp4"]
    music: "${media}/track.mp3"
    logo: "${media}/logo.png"
  content:
    title: "Boost Your Social Skills: Fast"
    subtitle: "3 moves that work in real life"
    steps:
      - label: "Open with a benefit."
        icon: "${media}/icon1.png"   # raster only (PNG, JPEG, WebP)
    cta_text: "Comment SOCIAL for the free script"
    handle: "@yourhandle"
  style:
    brand_color: "#5EEAD4"
    text_color: "#FFFFFF"
    bg_color: "#0B0D12"
    vignette: 0.55
    grade_tint: "rgba(0,10,20,0.25)"
  captions:                # inline list, or a path to a captions file
    - {start: 90, end: 150, text: "If you feel awkward..."}
    - {start: 170, end: 260, words: [{text: try, offset: 0}]}
  beat_cuts: [60, 120, 240]
"""

import copy
from pathlib import Path

import yaml

from .captions import normalize_chunk
from .common import is_url, parse_color, resolve_path_vars


# ── Defaults ─────────────────────────────────────────────────────

DEFAULT_VIDEO = {
    "fps": 30,
    "total_frames": 1800,
    "resolution": (1080, 1920),
    "hook_duration": 120,
    "step_duration": 180,
    "cta_duration": 150,
}

DEFAULT_STEPS = [
    {"label": "Lock your identity → one promise, one person.", "icon": None},
    {"label": "Post in buckets: Growth / Trust / Sell.", "icon": None},
    {"label": "Use 1 CTA. Keep it simple.", "icon": None},
]

DEFAULT_STYLE = {
    "brand_color": "#5EEAD4",
    "text_color": "#FFFFFF",
    "bg_color": "#0B0D12",
    "vignette": 0.55,
    "grade_tint": "rgba(0,10,20,0.25)",
}

_FRAME_FIELDS = ("fps", "total_frames", "hook_duration", "step_duration", "cta_duration")

# Icons and logos are decoded with imageio, which reads raster formats only.
_VECTOR_IMAGE_SUFFIXES = (".svg", ".svgz")


# ── Manifest loading ──────────────────────────────────────────────


def load_manifest(manifest_path: str | Path) -> dict:
    """Load, validate, and normalize a short-form manifest.

    Processing pipeline:
      1. Parse YAML.
      2. Resolve ${path} variables in media, step icons and captions path.
      3. Load captions from file if `captions` is a path.
      4. Apply defaults and validate (normalize_config).

    Raises:
        ValueError: Missing required field or invalid value.
        FileNotFoundError: Missing manifest or captions file.
    """
    manifest_path = Path(manifest_path)
    with open(manifest_path) as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError("Manifest: top level must be a mapping")

    paths = raw.get("paths", {})
    raw = _resolve_paths(raw, paths)

    captions = raw.get("captions")
    if isinstance(captions, str):
        caption_path = Path(captions)
        if not caption_path.is_absolute():
            caption_path = manifest_path.parent / caption_path
        raw["captions"] = load_captions_file(caption_path)

    return normalize_config(raw)


def load_captions_file(path: str | Path) -> list:
    """Read a caption chunk list from YAML or JSON."""
    with open(path) as f:
        data = yaml.safe_load(f)
    # Files written by `shortform transcribe` wrap the list.
    if isinstance(data, dict) and "captions" in data:
        data = data["captions"]
    if not isinstance(data, list):
        raise ValueError(f"Captions file {path}: expected a list of chunks")
    return data


def _resolve_paths(raw: dict, paths: dict) -> dict:
    """Resolve ${var} in media references and step icons."""
    raw = copy.deepcopy(raw)

    media = raw.get("media") or {}
    for key, value in media.items():
        if isinstance(value, str):
            media[key] = resolve_path_vars(value, paths)
        elif isinstance(value, list):
            media[key] = [
                resolve_path_vars(v, paths) if isinstance(v, str) else v
                for v in value
            ]

    steps = (raw.get("content") or {}).get("steps")
    if isinstance(steps, list):
        for step in steps:
            if isinstance(step, dict) and isinstance(step.get("icon"), str):
                step["icon"] = resolve_path_vars(step["icon"], paths)

    if isinstance(raw.get("captions"), str):
        raw["captions"] = resolve_path_vars(raw["captions"], paths)
    return raw


# ── Normalization ─────────────────────────────────────────────────


def normalize_config(raw: dict) -> dict:
    """Apply defaults to a raw manifest dict and validate it.

    Returns a new dict with sections video, media, content, style,
    captions and beat_cuts, every optional field filled in.
    """
    return {
        "video": _normalize_video(raw.get("video") or {}),
        "media": _normalize_media(raw.get("media") or {}),
        "content": _normalize_content(raw.get("content") or {}),
        "style": _normalize_style(raw.get("style") or {}),
        "captions": _normalize_captions(raw.get("captions")),
        "beat_cuts": _normalize_beat_cuts(raw.get("beat_cuts")),
    }


def _normalize_video(video: dict) -> dict:
    result = dict(DEFAULT_VIDEO)
    result.update(video)

    for field in _FRAME_FIELDS:
        value = result[field]
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise ValueError(
                f"Manifest: video.{field} must be a positive integer, got {value!r}"
            )

    if result["cta_duration"] > result["total_frames"]:
        raise ValueError(
            f"Manifest: video.cta_duration ({result['cta_duration']}) "
            f"exceeds video.total_frames ({result['total_frames']})"
        )

    resolution = result["resolution"]
    if (
        not isinstance(resolution, (list, tuple))
        or len(resolution) != 2
        or not all(isinstance(v, int) and v > 0 for v in resolution)
    ):
        raise ValueError(
            f"Manifest: video.resolution must be [width, height], got {resolution!r}"
        )
    result["resolution"] = tuple(resolution)
    return result


def _normalize_media(media: dict) -> dict:
    footage = media.get("footage")
    if not footage or not isinstance(footage, str):
        raise ValueError("Manifest: missing required field 'media.footage'")

    broll = media.get("broll") or []
    if not isinstance(broll, list) or not all(isinstance(b, str) for b in broll):
        raise ValueError("Manifest: media.broll must be a list of media references")

    result = {"footage": footage, "broll": list(broll)}
    for key in ("music", "logo"):
        value = media.get(key)
        if value is not None and not isinstance(value, str):
            raise ValueError(f"Manifest: media.{key} must be a string, got {value!r}")
        result[key] = value or None
    _check_raster_image(result["logo"], "media.logo")
    return result


def _normalize_content(content: dict) -> dict:
    title = content.get("title")
    if not title or not isinstance(title, str):
        raise ValueError("Manifest: missing required field 'content.title'")

    steps = content.get("steps")
    if steps is None:
        steps = copy.deepcopy(DEFAULT_STEPS)
    elif not isinstance(steps, list):
        raise ValueError("Manifest: content.steps must be a list")
    else:
        normalized = []
        for i, step in enumerate(steps):
            # Bare strings are accepted as labels.
            if isinstance(step, str):
                step = {"label": step}
            if not isinstance(step, dict) or "label" not in step:
                raise ValueError(f"Manifest: step {i} missing required field 'label'")
            _check_raster_image(step.get("icon"), f"step {i} icon")
            normalized.append({"label": str(step["label"]), "icon": step.get("icon")})
        steps = normalized

    return {
        "title": title,
        "subtitle": content.get("subtitle"),
        "steps": steps,
        "cta_text": content.get("cta_text"),
        "handle": content.get("handle"),
    }


def _check_raster_image(ref, field: str) -> None:
    if not isinstance(ref, str):
        return
    path = ref.split("?", 1)[0].lower()
    if path.endswith(_VECTOR_IMAGE_SUFFIXES):
        raise ValueError(
            f"Manifest: {field} must be a raster image (PNG, JPEG, WebP), got {ref!r}"
        )


def _normalize_style(style: dict) -> dict:
    result = dict(DEFAULT_STYLE)
    result.update({k: v for k, v in style.items() if v is not None})

    for key in ("brand_color", "text_color", "bg_color", "grade_tint"):
        try:
            parse_color(str(result[key]))
        except ValueError as exc:
            raise ValueError(f"Manifest: style.{key}: {exc}") from exc

    vignette = result["vignette"]
    if not isinstance(vignette, (int, float)) or vignette < 0:
        raise ValueError(
            f"Manifest: style.vignette must be a number >= 0, got {vignette!r}"
        )
    return result


def _normalize_captions(captions) -> list[dict]:
    if captions is None:
        return []
    if not isinstance(captions, list):
        raise ValueError("Manifest: captions must be a list or a captions file path")
    return [normalize_chunk(chunk, i) for i, chunk in enumerate(captions)]


def _normalize_beat_cuts(beat_cuts) -> list[int]:
    if beat_cuts is None:
        return []
    if not isinstance(beat_cuts, list):
        raise ValueError("Manifest: beat_cuts must be a list of frames")
    for i, frame in enumerate(beat_cuts):
        if not isinstance(frame, int) or isinstance(frame, bool) or frame < 0:
            raise ValueError(
                f"Manifest: beat_cuts[{i}] must be a non-negative integer frame, "
                f"got {frame!r}"
            )
    return list(beat_cuts)


# ── Path validation ───────────────────────────────────────────────


def media_references(config: dict) -> list[str]:
    """Every media reference in the config: footage, b-roll, music, logo, icons."""
    media = config["media"]
    refs = [media["footage"], *media["broll"]]
    refs.extend(r for r in (media.get("music"), media.get("logo")) if r)
    refs.extend(s["icon"] for s in config["content"]["steps"] if s.get("icon"))
    return refs


def validate_paths(config: dict) -> None:
    """Check that all local media files in the config exist on disk.

    Remote references (URLs) are skipped; they are resolved by ffmpeg at
    render time. Reports all missing paths at once.

    Raises:
        FileNotFoundError: Lists all missing files.
    """
    missing = []
    for ref in media_references(config):
        if is_url(ref):
            continue
        if not Path(ref).exists():
            missing.append(ref)

    if missing:
        msg = f"Missing {len(missing)} file(s):\n"
        for p in missing:
            msg += f"  - {p}\n"
        raise FileNotFoundError(msg)
