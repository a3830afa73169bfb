"""Shared data types used across EaseCut."""

from dataclasses import dataclass, field
from pathlib import Path

from easecut.errors import ValidationError


@dataclass(frozen=True)
class BezierCurveSpec:
    """Handles of a cubic Bezier running from (0,0) to (1,1).

    Handle x-coordinates must lie in [0, 1] so the curve stays a function of
    x; y-coordinates are free, which allows overshoot.
    """

    p1x: float
    p1y: float
    p2x: float
    p2y: float

    def validate(self) -> None:
        for label, value in (("p1x", self.p1x), ("p2x", self.p2x)):
            if not 0.0 <= value <= 1.0:
                raise ValidationError(
                    f"Bezier {label} must be within [0, 1], got {value}"
                )

    @classmethod
    def parse(cls, text: str) -> "BezierCurveSpec":
        """Parse ``"p1x,p1y,p2x,p2y"`` and validate the result."""
        parts = [p.strip() for p in text.split(",")]
        if len(parts) != 4:
            raise ValidationError(
                f"Bezier curve needs 4 comma-separated numbers, got '{text}'"
            )
        try:
            values = [float(p) for p in parts]
        except ValueError:
            raise ValidationError(f"Bezier curve has a non-numeric value: '{text}'")
        spec = cls(*values)
        spec.validate()
        return spec

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.p1x, self.p1y, self.p2x, self.p2y)


@dataclass(frozen=True)
class VideoMetadata:
    """Metadata extracted from a media file via ffprobe."""

    duration: float
    width: int
    height: int
    frame_rate: float


@dataclass(frozen=True)
class TimestampSeries:
    """Source timestamps (seconds) to sample, one per output frame."""

    timestamps: tuple[float, ...]
    input_duration: float
    output_duration: float
    output_fps: float

    def __len__(self) -> int:
        return len(self.timestamps)

    def __iter__(self):
        return iter(self.timestamps)

    def __getitem__(self, index):
        return self.timestamps[index]

    @property
    def compression_ratio(self) -> float:
        return self.input_duration / self.output_duration


@dataclass
class ClipJob:
    """One input clip inside a retime or stitch job."""

    input: Path
    metadata: VideoMetadata
    series: TimestampSeries
    frame_offset: int = 0

    @property
    def frame_count(self) -> int:
        return len(self.series)


@dataclass(frozen=True)
class EncodeOptions:
    """Output codec settings.

    The defaults form the playback-compatibility contract: 8-bit 4:2:0 H.264
    High profile with the moov atom moved to the front of the file.
    """

    codec: str = "libx264"
    profile: str = "high"
    pix_fmt: str = "yuv420p"
    preset: str = "medium"
    faststart: bool = True
    extra_args: tuple[str, ...] = field(default_factory=tuple)
