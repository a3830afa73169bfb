"""Job requests: the contract between CLI/API and engine."""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path

from easecut.errors import ValidationError
from easecut.models import BezierCurveSpec, EncodeOptions

DEFAULT_OUTPUT_DURATION = 1.5
DEFAULT_OUTPUT_FPS = 60
DEFAULT_BITRATE = "25M"
DEFAULT_RETIME_EASING = "easeInOutSine"
DEFAULT_STITCH_EASING = "dramaticSwoop"

MAX_OUTPUT_DURATION = 60.0
MIN_FPS = 1
MAX_FPS = 240

_BITRATE_RE = re.compile(r"^\d+(\.\d+)?[kKmMgG]?$")


@dataclass
class EasingSelection:
    """Either a named easing or explicit Bezier handles (Bezier wins)."""

    name: str = DEFAULT_RETIME_EASING
    bezier: BezierCurveSpec | None = None

    @property
    def label(self) -> str:
        if self.bezier is not None:
            return "cubic-bezier({}, {}, {}, {})".format(*self.bezier.as_tuple())
        return self.name


def _validate_common(
    output: Path,
    duration: float,
    fps: int,
    bitrate: str,
    easing: EasingSelection,
    duration_label: str,
) -> None:
    if not str(output):
        raise ValidationError("An output path is required")
    if not Path(output).suffix:
        raise ValidationError(
            f"Output path {output} needs a file extension such as .mp4"
        )
    if not 0 < duration <= MAX_OUTPUT_DURATION:
        raise ValidationError(
            f"{duration_label} must be in (0, {MAX_OUTPUT_DURATION}] seconds, got {duration}"
        )
    if not MIN_FPS <= fps <= MAX_FPS:
        raise ValidationError(f"Output fps must be in [{MIN_FPS}, {MAX_FPS}], got {fps}")
    if not _BITRATE_RE.match(bitrate):
        raise ValidationError(f"Invalid bitrate '{bitrate}' (expected e.g. 25M or 8000k)")
    if easing.bezier is not None:
        easing.bezier.validate()


@dataclass
class RetimeRequest:
    """Retime one clip to a fixed output duration."""

    input: Path
    output: Path
    output_duration: float = DEFAULT_OUTPUT_DURATION
    output_fps: int = DEFAULT_OUTPUT_FPS
    easing: EasingSelection = field(default_factory=EasingSelection)
    bitrate: str = DEFAULT_BITRATE
    keep_temp: bool = False
    encode: EncodeOptions = field(default_factory=EncodeOptions)

    def validate(self) -> None:
        _validate_common(
            self.output, self.output_duration, self.output_fps,
            self.bitrate, self.easing, "Output duration",
        )
        if Path(self.input).resolve() == Path(self.output).resolve():
            raise ValidationError("Output path must differ from the input path")


@dataclass
class StitchRequest:
    """Retime every clip with the same curve and join them with hard cuts."""

    clips: list[Path]
    output: Path
    clip_duration: float = DEFAULT_OUTPUT_DURATION
    output_fps: int = DEFAULT_OUTPUT_FPS
    easing: EasingSelection = field(
        default_factory=lambda: EasingSelection(name=DEFAULT_STITCH_EASING)
    )
    bitrate: str = DEFAULT_BITRATE
    keep_temp: bool = False
    max_clips: int | None = None
    encode: EncodeOptions = field(default_factory=EncodeOptions)

    def selected_clips(self) -> list[Path]:
        if self.max_clips is None:
            return list(self.clips)
        return list(self.clips[: self.max_clips])

    def validate(self) -> None:
        if self.max_clips is not None and self.max_clips < 2:
            raise ValidationError(f"max_clips must be at least 2, got {self.max_clips}")
        if len(self.selected_clips()) < 2:
            raise ValidationError(
                f"Stitching needs at least 2 clips, got {len(self.selected_clips())}"
            )
        _validate_common(
            self.output, self.clip_duration, self.output_fps,
            self.bitrate, self.easing, "Clip duration",
        )
        output = Path(self.output).resolve()
        if any(Path(c).resolve() == output for c in self.clips):
            raise ValidationError("Output path must differ from every input clip")


def _easing_from_dict(data: dict, default_name: str) -> EasingSelection:
    bezier = data.get("bezier")
    if bezier is None:
        spec = None
    elif isinstance(bezier, str):
        spec = BezierCurveSpec.parse(bezier)
    elif isinstance(bezier, (list, tuple)) and len(bezier) == 4:
        spec = BezierCurveSpec(*(float(v) for v in bezier))
    else:
        raise ValidationError(f"Invalid bezier value in manifest: {bezier!r}")
    return EasingSelection(name=data.get("easing", default_name), bezier=spec)


def request_from_dict(data: dict) -> RetimeRequest | StitchRequest:
    """Build a request from a decoded manifest.

    A manifest with ``clips`` is a stitch job; one with ``input`` is a retime.
    """
    if "output" not in data or ("input" not in data and "clips" not in data):
        raise ValidationError("Manifest must contain 'output' and either 'input' or 'clips'")

    try:
        common = {
            "output": Path(data["output"]),
            "output_fps": int(data.get("output_fps", DEFAULT_OUTPUT_FPS)),
            "bitrate": str(data.get("bitrate", DEFAULT_BITRATE)),
            "keep_temp": bool(data.get("keep_temp", False)),
        }
        if "clips" in data:
            return StitchRequest(
                clips=[Path(c) for c in data["clips"]],
                clip_duration=float(data.get("clip_duration", DEFAULT_OUTPUT_DURATION)),
                easing=_easing_from_dict(data, DEFAULT_STITCH_EASING),
                max_clips=int(data["max_clips"]) if data.get("max_clips") is not None else None,
                **common,
            )
        return RetimeRequest(
            input=Path(data["input"]),
            output_duration=float(data.get("output_duration", DEFAULT_OUTPUT_DURATION)),
            easing=_easing_from_dict(data, DEFAULT_RETIME_EASING),
            **common,
        )
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid manifest value: {e}") from None


def load_manifest(path: str | Path) -> RetimeRequest | StitchRequest:
    """Load a job request from a JSON file."""
    path = Path(path)
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise ValidationError(f"Cannot read manifest {path}: {e}") from None
    if not isinstance(data, dict):
        raise ValidationError(f"Manifest {path} must be a JSON object")
    return request_from_dict(data)
