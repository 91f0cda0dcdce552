"""Two-point linear interpolation with per-side extrapolation.

Every animation in the timeline is a ramp between two frames: word
reveals, the hook title slide-in, the music fade-in. They all go through
interpolate() so the boundary behavior is the same everywhere.

Extrapolation modes, chosen independently for each side:
  - clamp: output is pinned to the nearest range endpoint.
  - extend: the line continues past the domain.
"""

VALID_EXTRAPOLATIONS = {"clamp", "extend"}


class InvalidDomainError(ValueError):
    """Raised when an interpolation domain is empty or reversed."""


def interpolate(
    frame: float,
    domain: tuple[float, float],
    output_range: tuple[float, float],
    extrapolate_left: str = "clamp",
    extrapolate_right: str = "clamp",
) -> float:
    """Map frame from domain onto output_range.

    Args:
        frame: Input position (usually a frame index).
        domain: (low, high) input span. low must be < high.
        output_range: (at_low, at_high) output values.
        extrapolate_left: "clamp" or "extend" for frame < low.
        extrapolate_right: "clamp" or "extend" for frame > high.

    Returns:
        Interpolated value. Exactly at_low at low and at_high at high.

    Raises:
        InvalidDomainError: domain low >= high.
        ValueError: Unknown extrapolation mode.
    """
    low, high = domain
    out_low, out_high = output_range

    if not low < high:
        raise InvalidDomainError(
            f"Interpolation domain must be increasing, got [{low}, {high}]"
        )
    for side, mode in (("left", extrapolate_left), ("right", extrapolate_right)):
        if mode not in VALID_EXTRAPOLATIONS:
            raise ValueError(
                f"Invalid extrapolate_{side} '{mode}'. "
                f"Valid: {sorted(VALID_EXTRAPOLATIONS)}"
            )

    if frame <= low and extrapolate_left == "clamp":
        return float(out_low)
    if frame >= high and extrapolate_right == "clamp":
        return float(out_high)
    # Exact at the upper endpoint, no float drift.
    if frame == high:
        return float(out_high)

    t = (frame - low) / (high - low)
    return out_low + t * (out_high - out_low)
