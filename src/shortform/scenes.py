"""Scene scheduler — frame windows for hook, value steps and CTA.

Layout on the timeline (defaults, 30fps):

  0        120      300      480      660      810             1800
  |  hook  | step 1 | step 2 | step 3 |  cta   |   (no scene)   |

Steps follow the hook back to back. The CTA normally follows the last
step, but it is never allowed to run past total_frames:

  cta_start = min(hook + n * step, total_frames - cta)

When the steps are too long to fit, the CTA is pulled earlier and sits
on top of the tail step(s). When they are short, the frames after the
CTA carry no scene at all. Both outcomes are part of the schedule; the
scheduler does not stretch or shrink anything to hide them.

A window is a dict {"start": int, "length": int} covering the half-open
span [start, start + length).
"""


def make_window(start: int, length: int) -> dict:
    """Build a scene window dict."""
    if start < 0:
        raise ValueError(f"Window start must be >= 0, got {start}")
    return {"start": start, "length": length}


def window_contains(window: dict, frame: int) -> bool:
    """True if frame lies in [start, start + length)."""
    return window["start"] <= frame < window["start"] + window["length"]


def schedule_scenes(config: dict, step_count: int) -> dict:
    """Compute hook, step and CTA windows.

    Args:
        config: Timeline settings with total_frames, hook_duration,
            step_duration and cta_duration (all in frames).
        step_count: Number of value steps.

    Returns:
        {"hook": window, "steps": [window, ...], "cta": window}

    Raises:
        ValueError: cta_duration longer than total_frames (no CTA start
            could keep it inside the video).
    """
    hook_len = config["hook_duration"]
    step_len = config["step_duration"]
    cta_len = config["cta_duration"]
    total = config["total_frames"]

    if cta_len > total:
        raise ValueError(
            f"cta_duration ({cta_len}) exceeds total_frames ({total})"
        )

    hook = make_window(0, hook_len)
    steps = [
        make_window(hook_len + i * step_len, step_len)
        for i in range(step_count)
    ]
    # Clamped so the CTA always ends by total_frames, even if that means
    # overlapping the last steps.
    cta_start = min(hook_len + step_count * step_len, total - cta_len)
    cta = make_window(cta_start, cta_len)

    return {"hook": hook, "steps": steps, "cta": cta}


def active_scenes(schedule: dict, frame: int) -> list[tuple[str, int | None, dict]]:
    """List the scenes whose window contains frame.

    Returns (kind, step_index, window) tuples in hook, steps, cta order.
    step_index is None for the hook and CTA. Usually one entry; two
    when the CTA overlaps a step; none in the tail gap.
    """
    active = []
    if window_contains(schedule["hook"], frame):
        active.append(("hook", None, schedule["hook"]))
    for i, window in enumerate(schedule["steps"]):
        if window_contains(window, frame):
            active.append(("step", i, window))
    if window_contains(schedule["cta"], frame):
        active.append(("cta", None, schedule["cta"]))
    return active
