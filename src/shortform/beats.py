"""Beat-cut b-roll scheduling.

Each beat frame punches in a short b-roll overlay. Overlay lengths cycle
with the beat's position in the list (14, 15, 16, 17, 14, ...) so cuts
don't feel mechanical; sources are assigned round-robin by the same
index. Beats are used in the order given. With no b-roll sources, the
overlay windows still exist but show nothing.

Overlapping windows (beats closer than ~14 frames) are all kept and
stack in list order.
"""

from .scenes import window_contains


BASE_OVERLAY_FRAMES = 14
OVERLAY_LENGTH_CYCLE = 4
BROLL_MAX_FRAMES = 60        # b-roll plays from its frame 0, never past this


def overlay_length(index: int) -> int:
    """Overlay duration in frames for the beat at this list index."""
    return BASE_OVERLAY_FRAMES + index % OVERLAY_LENGTH_CYCLE


def schedule_beat_overlays(
    beat_frames: list[int],
    sources: list[str],
) -> list[dict]:
    """Build one overlay entry per beat.

    Args:
        beat_frames: Frames where a cut lands, in the caller's order.
        sources: B-roll media references, assigned cyclically.

    Returns:
        List of {"index", "window": {"start", "length"}, "source"} dicts.
        source is None when there are no b-roll sources.
    """
    overlays = []
    for i, frame in enumerate(beat_frames):
        source = sources[i % len(sources)] if sources else None
        overlays.append({
            "index": i,
            "window": {"start": frame, "length": overlay_length(i)},
            "source": source,
        })
    return overlays


def beat_overlays_at(overlays: list[dict], frame: int) -> list[dict]:
    """All overlays whose window contains frame, in list order."""
    return [o for o in overlays if window_contains(o["window"], frame)]
