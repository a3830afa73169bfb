"""Map output frames to source timestamps through an easing curve."""

import logging
import math

from easecut.easing import EasingFunction
from easecut.errors import ValidationError
from easecut.models import TimestampSeries

logger = logging.getLogger(__name__)

# Assumed source frame rate when the clip has not been probed.
DEFAULT_SOURCE_FPS = 30.0

# Absorbs binary float noise, e.g. 0.7 * 30 == 20.999999999999996
_FRAME_COUNT_GUARD = 1e-9


def frame_count(output_duration: float, output_fps: float) -> int:
    """Number of output frames: floor(duration * fps)."""
    return math.floor(output_duration * output_fps + _FRAME_COUNT_GUARD)


def compute_timestamps(
    easing: EasingFunction,
    input_duration: float,
    output_duration: float,
    output_fps: float,
    source_fps: float | None = None,
) -> TimestampSeries:
    """Compute the source timestamp of every output frame.

    Output frame i sits at progress i / (n - 1); the easing turns that into
    source progress, which is scaled by the input duration.  Overshooting
    curves can land outside the clip, so every timestamp is clamped to
    [0, input_duration - one source frame].  Callers never clamp again.
    """
    if input_duration <= 0:
        raise ValidationError(f"Input duration must be positive, got {input_duration}")
    if output_duration <= 0:
        raise ValidationError(f"Output duration must be positive, got {output_duration}")
    if output_fps <= 0:
        raise ValidationError(f"Output fps must be positive, got {output_fps}")

    total = frame_count(output_duration, output_fps)
    if total < 1:
        raise ValidationError(
            f"{output_duration}s at {output_fps} fps yields no output frames"
        )

    epsilon = 1.0 / (source_fps or DEFAULT_SOURCE_FPS)
    upper = max(0.0, input_duration - epsilon)

    timestamps: list[float] = []
    clamped = 0
    for i in range(total):
        progress = i / (total - 1) if total > 1 else 0.0
        ts = easing(progress) * input_duration
        if ts < 0.0 or ts > upper:
            clamped += 1
            ts = min(max(ts, 0.0), upper)
        timestamps.append(ts)

    if clamped:
        logger.debug("Clamped %d of %d timestamps to [0, %.4f]", clamped, total, upper)

    return TimestampSeries(
        timestamps=tuple(timestamps),
        input_duration=input_duration,
        output_duration=output_duration,
        output_fps=output_fps,
    )


def speed_profile(
    easing: EasingFunction,
    input_duration: float,
    output_duration: float,
    samples: int = 11,
) -> list[tuple[float, float]]:
    """Local playback speed (source seconds per output second) at sample points.

    Diagnostic only.  Returns ``(output_progress, speed)`` pairs, estimated
    with central differences of the easing curve.
    """
    if samples < 2:
        raise ValidationError("speed_profile needs at least 2 samples")

    h = 1e-4
    scale = input_duration / output_duration
    profile: list[tuple[float, float]] = []
    for i in range(samples):
        p = i / (samples - 1)
        lo = max(0.0, p - h)
        hi = min(1.0, p + h)
        slope = (easing(hi) - easing(lo)) / (hi - lo)
        profile.append((p, slope * scale))
    return profile


def span_fraction(series: TimestampSeries, start_frac: float, end_frac: float) -> float:
    """Fraction of the input duration covered by a slice of the series.

    ``start_frac`` and ``end_frac`` select frames by position, e.g. 0.0-0.1
    is the first 10% of output frames.
    """
    n = len(series)
    first = min(n - 1, int(round(start_frac * (n - 1))))
    last = min(n - 1, int(round(end_frac * (n - 1))))
    return (series[last] - series[first]) / series.input_duration
