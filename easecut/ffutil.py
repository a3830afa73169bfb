"""FFmpeg/ffprobe subprocess helpers.

This is the only module that runs external tools or writes media files.  Every
failure is converted into a typed EaseCut error here.
"""

import json
import logging
import os
import re
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Iterable, Sequence

from easecut.errors import (
    EncodeError,
    FFmpegNotFoundError,
    FrameExtractionError,
    MediaProbeError,
    ValidationError,
)
from easecut.models import EncodeOptions, VideoMetadata

logger = logging.getLogger(__name__)

FRAME_PATTERN = "frame_%06d.png"
FRAME_GLOB = "frame_*.png"
PAD_COLOR = "black"
DEFAULT_RETRIES = 2


def check_ffmpeg() -> None:
    """Raise FFmpegNotFoundError if ffmpeg/ffprobe are not on PATH."""
    for cmd in ("ffmpeg", "ffprobe"):
        if shutil.which(cmd) is None:
            raise FFmpegNotFoundError(f"{cmd} not found on PATH")


def _run(cmd: list[str]) -> subprocess.CompletedProcess:
    logger.debug("Running: %s", " ".join(cmd))
    try:
        return subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError:
        raise FFmpegNotFoundError(f"{cmd[0]} not found on PATH") from None


def _tail(stderr: str | None, limit: int = 500) -> str:
    return (stderr or "").strip()[-limit:]


def _parse_rate(rate: str | None) -> float:
    """Parse an ffprobe rational such as ``30000/1001``; 0.0 when unusable."""
    if not rate:
        return 0.0
    if "/" in rate:
        num, den = rate.split("/", 1)
        try:
            if float(den) == 0:
                return 0.0
            return float(num) / float(den)
        except ValueError:
            return 0.0
    try:
        return float(rate)
    except ValueError:
        return 0.0


def probe(input_path: Path) -> VideoMetadata:
    """Extract video metadata via ffprobe."""
    cmd = [
        "ffprobe",
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(input_path),
    ]
    result = _run(cmd)
    if result.returncode != 0:
        raise MediaProbeError(
            f"ffprobe could not read {input_path} (rc={result.returncode})",
            paths=[Path(input_path)],
        )

    try:
        data = json.loads(result.stdout)
    except (json.JSONDecodeError, TypeError):
        raise MediaProbeError(
            f"ffprobe returned unparseable output for {input_path}",
            paths=[Path(input_path)],
        ) from None

    video_stream = next(
        (s for s in data.get("streams", []) if s.get("codec_type") == "video"), None
    )
    if video_stream is None:
        raise MediaProbeError(
            f"No video stream found in {input_path}", paths=[Path(input_path)]
        )

    # The video stream ends before the container when audio runs longer;
    # seeks are bounded by the video, so its own duration wins
    duration_str = video_stream.get("duration") or data.get("format", {}).get("duration")
    try:
        duration = float(duration_str)
    except (TypeError, ValueError):
        duration = 0.0

    fps = _parse_rate(video_stream.get("avg_frame_rate")) or _parse_rate(
        video_stream.get("r_frame_rate")
    )

    if duration <= 0:
        raise MediaProbeError(
            f"Non-positive duration in {input_path}", paths=[Path(input_path)]
        )
    if fps <= 0:
        raise MediaProbeError(
            f"Non-positive frame rate in {input_path}", paths=[Path(input_path)]
        )

    return VideoMetadata(
        duration=duration,
        width=int(video_stream["width"]),
        height=int(video_stream["height"]),
        frame_rate=fps,
    )


def letterbox_filter(width: int, height: int) -> str:
    """Scale to fit inside width x height, then pad centered. Never crops."""
    return (
        f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
        f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2:color={PAD_COLOR},"
        "setsar=1"
    )


def extract_frame_at(
    input_path: Path,
    timestamp: float,
    dest_path: Path,
    target_width: int | None = None,
    target_height: int | None = None,
) -> Path:
    """Write the frame shown at ``timestamp`` to ``dest_path``.

    With a target size, the frame is letterboxed to exactly that size so every
    frame in a batch ends up with identical dimensions.
    """
    if timestamp < 0:
        raise FrameExtractionError(
            f"Negative timestamp {timestamp} for {input_path}", timestamp=timestamp
        )

    cmd = [
        "ffmpeg", "-y",
        "-v", "error",
        "-ss", f"{timestamp:.6f}",
        "-i", str(input_path),
        "-frames:v", "1",
    ]
    if target_width and target_height:
        cmd += ["-vf", letterbox_filter(target_width, target_height)]
    cmd.append(str(dest_path))

    result = _run(cmd)
    if result.returncode != 0:
        raise FrameExtractionError(
            f"ffmpeg failed extracting {timestamp:.3f}s from {input_path}: "
            f"{_tail(result.stderr)}",
            timestamp=timestamp,
            stderr=result.stderr,
        )

    # Seeking past the last frame exits 0 but writes nothing
    if not dest_path.exists() or dest_path.stat().st_size == 0:
        raise FrameExtractionError(
            f"No frame written at {timestamp:.3f}s from {input_path} "
            "(seek out of range?)",
            timestamp=timestamp,
            stderr=result.stderr,
        )
    return dest_path


def extract_frames_batch(
    input_path: Path,
    timestamps: Iterable[float],
    dest_dir: Path,
    frame_offset: int = 0,
    target_width: int | None = None,
    target_height: int | None = None,
    on_progress: Callable[[int, int], None] | None = None,
    retries: int = DEFAULT_RETRIES,
) -> list[Path]:
    """Extract one frame per timestamp into a numbered image sequence.

    Files are named ``FRAME_PATTERN % (frame_offset + i)``, so consecutive
    batches with consecutive offsets form one unbroken sequence.  Each frame
    is retried up to ``retries`` extra times before the batch fails.
    """
    timestamps = list(timestamps)
    total = len(timestamps)
    written: list[Path] = []

    for i, ts in enumerate(timestamps):
        dest = dest_dir / (FRAME_PATTERN % (frame_offset + i))
        last_error: FrameExtractionError | None = None
        for attempt in range(retries + 1):
            try:
                extract_frame_at(input_path, ts, dest, target_width, target_height)
                break
            except FrameExtractionError as e:
                last_error = e
                logger.warning(
                    "Frame %d at %.3fs failed (attempt %d/%d): %s",
                    frame_offset + i, ts, attempt + 1, retries + 1, e,
                )
        else:
            raise FrameExtractionError(
                f"Giving up on frame {frame_offset + i} ({ts:.3f}s) of {input_path} "
                f"after {retries + 1} attempts",
                timestamp=ts,
                stderr=last_error.stderr if last_error else None,
            ) from last_error

        written.append(dest)
        if on_progress:
            on_progress(i + 1, total)

    return written


def list_frames(dest_dir: Path) -> list[Path]:
    return sorted(dest_dir.glob(FRAME_GLOB))


def count_frames(dest_dir: Path) -> int:
    return len(list_frames(dest_dir))


def require_frame_count(dest_dir: Path, expected: int) -> None:
    """Raise FrameExtractionError unless ``dest_dir`` holds ``expected`` frames."""
    found = count_frames(dest_dir)
    if found != expected:
        raise FrameExtractionError(
            f"Expected {expected} frames in {dest_dir}, found {found}"
        )


def _frame_number(path: Path) -> int:
    match = re.search(r"(\d+)", path.stem)
    return int(match.group(1)) if match else 0


def partial_path(output_path: Path) -> Path:
    """Hidden sibling the encoder writes to before the final rename."""
    return output_path.with_name(f".{output_path.stem}.partial{output_path.suffix}")


def encode_frames_to_video(
    frames_dir: Path,
    output_path: Path,
    fps: float,
    bitrate: str,
    options: EncodeOptions | None = None,
) -> Path:
    """Encode the numbered frame sequence in ``frames_dir`` into a video.

    The encoder writes to a hidden partial file that is renamed over
    ``output_path`` only after ffmpeg succeeds, so a failed encode never
    leaves a truncated video behind.
    """
    options = options or EncodeOptions()
    frames = list_frames(frames_dir)
    if not frames:
        raise EncodeError(f"No frames to encode in {frames_dir}")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    partial = partial_path(output_path)

    cmd = [
        "ffmpeg", "-y",
        "-v", "error",
        "-framerate", str(fps),
        "-start_number", str(_frame_number(frames[0])),
        "-i", str(frames_dir / FRAME_PATTERN),
        # yuv420p needs even dimensions
        "-vf", "pad=ceil(iw/2)*2:ceil(ih/2)*2",
        "-an",
        "-c:v", options.codec,
        "-profile:v", options.profile,
        "-pix_fmt", options.pix_fmt,
        "-preset", options.preset,
        "-b:v", bitrate,
    ]
    if options.faststart:
        cmd += ["-movflags", "+faststart"]
    cmd += list(options.extra_args)
    cmd.append(str(partial))

    logger.info("Encoding %d frames at %s fps -> %s", len(frames), fps, output_path)
    result = _run(cmd)
    if result.returncode != 0:
        partial.unlink(missing_ok=True)
        raise EncodeError(
            f"ffmpeg encode failed (rc={result.returncode}): {_tail(result.stderr)}",
            stderr=result.stderr,
        )
    if not partial.exists() or partial.stat().st_size == 0:
        partial.unlink(missing_ok=True)
        raise EncodeError(f"ffmpeg produced no output for {output_path}")

    os.replace(partial, output_path)
    return output_path


def compute_shared_resolution(metadata_list: Sequence[VideoMetadata]) -> tuple[int, int]:
    """Elementwise max of all clip dimensions, rounded up to even numbers."""
    if not metadata_list:
        raise ValidationError("compute_shared_resolution needs at least one clip")

    width = max(m.width for m in metadata_list)
    height = max(m.height for m in metadata_list)
    return width + width % 2, height + height % 2
