"""Word-by-word caption timing.

A caption chunk is one on-screen line of text with an inclusive frame
span and, optionally, per-word reveal offsets:

  {"start": 170, "end": 260,
   "words": [{"text": "try", "offset": 0}, {"text": "this", "offset": 6}],
   "text": None}

Rules:
  - Chunks ending after total_frames are dropped whole, never trimmed.
  - A chunk is visible on frames start..end, both inclusive.
  - Each word ramps from progress 0 to 1 over fps/6 frames, starting at
    chunk start + offset. Opacity follows progress; the word rises from
    CAPTION_RISE_PX below its resting position.
  - Chunks without words show their text statically (progress 1).
  - Overlapping chunks are all shown, in list order.

chunks_from_words() turns transcript word timestamps (seconds) into
chunks, which is how auto captions are produced.
"""

from .interpolate import interpolate


CAPTION_RISE_PX = 12         # vertical travel of a word during its reveal
REVEAL_FRACTION = 6          # reveal lasts 1/REVEAL_FRACTION of a second
DEFAULT_WORDS_PER_CHUNK = 4


# ── Validation ───────────────────────────────────────────────────


def normalize_chunk(raw: dict, index: int) -> dict:
    """Validate a caption chunk dict and return a normalized copy.

    Required: start, end (frames, end >= start >= 0).
    Optional: words (list of {text, offset}), text (str).

    Raises:
        ValueError: Missing or inconsistent fields.
    """
    prefix = f"Caption {index}"
    if not isinstance(raw, dict):
        raise ValueError(f"{prefix}: must be a mapping, got {type(raw).__name__}")
    for field in ("start", "end"):
        if field not in raw:
            raise ValueError(f"{prefix}: missing required field '{field}'")
        if not isinstance(raw[field], int) or isinstance(raw[field], bool):
            raise ValueError(
                f"{prefix}: '{field}' must be an integer frame, got {raw[field]!r}"
            )

    start, end = raw["start"], raw["end"]
    if start < 0:
        raise ValueError(f"{prefix}: start must be >= 0, got {start}")
    if end < start:
        raise ValueError(f"{prefix}: end ({end}) must be >= start ({start})")

    words = raw.get("words")
    if words is not None:
        if not isinstance(words, list):
            raise ValueError(f"{prefix}: 'words' must be a list")
        normalized_words = []
        for j, word in enumerate(words):
            if not isinstance(word, dict) or "text" not in word:
                raise ValueError(f"{prefix}, word {j}: missing 'text'")
            offset = word.get("offset", 0)
            if not isinstance(offset, int) or offset < 0:
                raise ValueError(
                    f"{prefix}, word {j}: offset must be a non-negative integer, "
                    f"got {offset!r}"
                )
            normalized_words.append({"text": str(word["text"]), "offset": offset})
        words = normalized_words

    text = raw.get("text")
    return {
        "start": start,
        "end": end,
        "words": words,
        "text": str(text) if text is not None else None,
    }


# ── Filtering and visibility ─────────────────────────────────────


def active_captions(chunks: list[dict], total_frames: int) -> list[dict]:
    """Keep chunks that end within the video; order is preserved."""
    return [c for c in chunks if c["end"] <= total_frames]


def chunk_visible(chunk: dict, frame: int) -> bool:
    """True on frames start..end inclusive."""
    return chunk["start"] <= frame <= chunk["end"]


# ── Per-frame reveal ─────────────────────────────────────────────


def word_progress(appear: int, frame: int, fps: int) -> float:
    """Reveal progress of a word that starts appearing at frame `appear`."""
    return interpolate(
        frame, (appear, appear + fps / REVEAL_FRACTION), (0, 1),
        extrapolate_left="clamp", extrapolate_right="clamp",
    )


def _word_state(text: str, progress: float) -> dict:
    return {
        "text": text,
        "progress": progress,
        "opacity": progress,
        "y_offset": (1 - progress) * CAPTION_RISE_PX,
    }


def render_chunk(chunk: dict, frame: int, fps: int) -> dict:
    """Compute visibility and per-word animation state for one chunk.

    Returns:
        {"visible": bool, "words": [{text, progress, opacity, y_offset}]}
        words is empty when the chunk is not visible. A chunk without
        word timings yields a single static entry holding its text.
    """
    if not chunk_visible(chunk, frame):
        return {"visible": False, "words": []}

    words = chunk.get("words")
    if not words:
        return {
            "visible": True,
            "words": [_word_state(chunk.get("text") or "", 1.0)],
        }

    states = []
    for word in words:
        appear = chunk["start"] + word["offset"]
        states.append(_word_state(word["text"], word_progress(appear, frame, fps)))
    return {"visible": True, "words": states}


def captions_at(chunks: list[dict], frame: int, fps: int) -> list[dict]:
    """Render state of every chunk visible at frame, in list order."""
    rendered = []
    for index, chunk in enumerate(chunks):
        state = render_chunk(chunk, frame, fps)
        if state["visible"]:
            rendered.append({"index": index, "words": state["words"]})
    return rendered


# ── Transcript conversion ────────────────────────────────────────


def chunks_from_words(
    words: list[dict],
    fps: int,
    max_words: int = DEFAULT_WORDS_PER_CHUNK,
) -> list[dict]:
    """Group timestamped words into caption chunks.

    Args:
        words: Transcript words, each {"start": s, "end": s, "text": str}
            with times in seconds, in spoken order.
        fps: Timeline frame rate used to convert seconds to frames.
        max_words: Maximum words per chunk.

    Returns:
        Caption chunks in frames with per-word offsets. The chunk text
        holds the joined words so it can serve as a static fallback.
        A chunk never runs into the start frame of the next one.
    """
    if max_words < 1:
        raise ValueError(f"max_words must be >= 1, got {max_words}")

    chunks = []
    for i in range(0, len(words), max_words):
        group = [w for w in words[i:i + max_words] if w["text"].strip()]
        if not group:
            continue
        start = round(group[0]["start"] * fps)
        end = max(start, round(group[-1]["end"] * fps))
        chunks.append({
            "start": start,
            "end": end,
            "words": [
                {
                    "text": w["text"].strip(),
                    "offset": max(0, round(w["start"] * fps) - start),
                }
                for w in group
            ],
            "text": " ".join(w["text"].strip() for w in group),
        })

    # Ends are inclusive: stop each chunk the frame before the next starts
    # so back-to-back words never show two chunks at once.
    for chunk, following in zip(chunks, chunks[1:]):
        chunk["end"] = max(chunk["start"], min(chunk["end"], following["start"] - 1))
    return chunks
