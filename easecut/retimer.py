"""Single-clip retimer: resample one clip along a speed curve."""

import logging
from pathlib import Path
from typing import Callable

from easecut import ffutil
from easecut.engine import (
    EngineResult,
    JobState,
    JobTracker,
    find_missing_clips,
    resolve_easing,
    scratch_dir,
)
from easecut.errors import MissingClipError
from easecut.manifest import RetimeRequest
from easecut.models import ClipJob
from easecut.timestamps import compute_timestamps

logger = logging.getLogger(__name__)


def retime(
    request: RetimeRequest,
    on_progress: Callable[[str, float], None] | None = None,
) -> EngineResult:
    """Retime ``request.input`` into ``request.output``.

    Args:
        request: Validated retime request.
        on_progress: Optional callback(stage_name, fraction_complete).

    The easing is resolved before any ffmpeg call, so a bad name fails fast.
    Frames are extracted at the clip's native resolution, numbered from 0,
    and encoded once.
    """
    input_path = Path(request.input)
    output_path = Path(request.output)
    tracker = JobTracker(f"retime {input_path.name}", on_progress)
    kept = None
    try:
        request.validate()
        if find_missing_clips([input_path]):
            raise MissingClipError([input_path])
        easing = resolve_easing(request.easing)
        ffutil.check_ffmpeg()

        tracker.advance(JobState.PROBING, "Probing video metadata", 0.0)
        metadata = ffutil.probe(input_path)
        logger.info(
            "%s: %.2fs %dx%d @ %.2f fps",
            input_path.name, metadata.duration,
            metadata.width, metadata.height, metadata.frame_rate,
        )

        tracker.advance(JobState.COMPUTING_TIMESTAMPS, "Computing timestamps", 0.05)
        series = compute_timestamps(
            easing,
            input_duration=metadata.duration,
            output_duration=request.output_duration,
            output_fps=request.output_fps,
            source_fps=metadata.frame_rate,
        )
        clip = ClipJob(input=input_path, metadata=metadata, series=series)
        logger.info(
            "Retiming %s with %s: %d frames, %.2fx compression",
            input_path.name, request.easing.label,
            clip.frame_count, series.compression_ratio,
        )

        with scratch_dir(keep=request.keep_temp, prefix="easecut_retime_") as frames_dir:
            if request.keep_temp:
                kept = frames_dir

            tracker.advance(JobState.EXTRACTING, "Extracting frames", 0.1)
            ffutil.extract_frames_batch(
                clip.input,
                clip.series,
                frames_dir,
                frame_offset=clip.frame_offset,
                on_progress=tracker.sub_progress("Extracting frames", 0.1, 0.8),
            )
            ffutil.require_frame_count(frames_dir, clip.frame_count)

            tracker.advance(JobState.ENCODING, "Encoding video", 0.9)
            ffutil.encode_frames_to_video(
                frames_dir,
                output_path,
                fps=request.output_fps,
                bitrate=request.bitrate,
                options=request.encode,
            )

        tracker.advance(JobState.DONE, "Done", 1.0)
    except Exception as e:
        tracker.fail(e)
        raise

    return EngineResult(
        output_path=output_path,
        frame_count=clip.frame_count,
        fps=request.output_fps,
        clip_count=1,
        compression_ratios=[series.compression_ratio],
        scratch_dir=kept,
        states=list(tracker.history),
    )
