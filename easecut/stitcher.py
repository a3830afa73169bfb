"""Multi-clip stitcher: retime every clip and join them with hard cuts.

All clips write frames into one shared directory as a single numbered
sequence, and that sequence is encoded once.  The last frame of clip k and
the first frame of clip k+1 are simply neighbours in the output; with a
slow-fast-slow curve both sit in a near-frozen stretch, which hides the cut.
"""

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
from easecut.errors import MediaProbeError, MissingClipError
from easecut.manifest import StitchRequest
from easecut.models import ClipJob, VideoMetadata
from easecut.timestamps import compute_timestamps

logger = logging.getLogger(__name__)


class FrameArena:
    """Hands out contiguous frame-number ranges from a monotonic cursor."""

    def __init__(self, start: int = 0):
        self._cursor = start

    @property
    def cursor(self) -> int:
        return self._cursor

    def reserve(self, count: int) -> int:
        """Reserve ``count`` frame numbers and return the first one."""
        if count < 0:
            raise ValueError(f"Cannot reserve a negative frame count ({count})")
        offset = self._cursor
        self._cursor += count
        return offset


def probe_all(clips: list[Path]) -> list[VideoMetadata]:
    """Probe every clip, reporting all unreadable clips in one error."""
    results: list[VideoMetadata] = []
    failures: list[tuple[Path, MediaProbeError]] = []
    for clip in clips:
        try:
            results.append(ffutil.probe(clip))
        except MediaProbeError as e:
            failures.append((clip, e))

    if failures:
        details = "; ".join(str(e) for _, e in failures)
        raise MediaProbeError(
            f"{len(failures)} of {len(clips)} clip(s) could not be probed: {details}",
            paths=[p for p, _ in failures],
        )
    return results


def stitch(
    request: StitchRequest,
    on_progress: Callable[[str, float], None] | None = None,
) -> EngineResult:
    """Retime and concatenate ``request.clips`` into ``request.output``.

    Args:
        request: Stitch request with at least two clips.
        on_progress: Optional callback(stage_name, fraction_complete).

    Every clip gets its own timestamp series from its own duration and is
    letterboxed to the shared (max width, max height).  Any failure aborts
    the whole job; no output file is produced.
    """
    output_path = Path(request.output)
    tracker = JobTracker("stitch", on_progress)
    kept = None
    try:
        request.validate()
        clips = [Path(c) for c in request.selected_clips()]
        missing = find_missing_clips(clips)
        if missing:
            raise MissingClipError(missing)
        easing = resolve_easing(request.easing)
        ffutil.check_ffmpeg()

        tracker.advance(JobState.PROBING, f"Probing {len(clips)} clips", 0.0)
        metadata = probe_all(clips)
        width, height = ffutil.compute_shared_resolution(metadata)
        logger.info("Shared output resolution: %dx%d", width, height)

        tracker.advance(JobState.COMPUTING_TIMESTAMPS, "Computing timestamps", 0.05)
        arena = FrameArena()
        jobs: list[ClipJob] = []
        for clip, meta in zip(clips, metadata):
            series = compute_timestamps(
                easing,
                input_duration=meta.duration,
                output_duration=request.clip_duration,
                output_fps=request.output_fps,
                source_fps=meta.frame_rate,
            )
            jobs.append(ClipJob(
                input=clip,
                metadata=meta,
                series=series,
                frame_offset=arena.reserve(len(series)),
            ))
        total_frames = arena.cursor
        logger.info(
            "Stitching %d clips with %s: %d frames total",
            len(jobs), request.easing.label, total_frames,
        )

        with scratch_dir(keep=request.keep_temp, prefix="easecut_stitch_") as frames_dir:
            if request.keep_temp:
                kept = frames_dir

            tracker.advance(JobState.EXTRACTING, "Extracting frames", 0.1)
            span = 0.8 / len(jobs)
            for k, job in enumerate(jobs):
                stage = f"Extracting clip {k + 1}/{len(jobs)}"
                logger.info(
                    "%s: %s -> frames %d..%d (%.2fx)",
                    stage, job.input.name, job.frame_offset,
                    job.frame_offset + job.frame_count - 1,
                    job.series.compression_ratio,
                )
                ffutil.extract_frames_batch(
                    job.input,
                    job.series,
                    frames_dir,
                    frame_offset=job.frame_offset,
                    target_width=width,
                    target_height=height,
                    on_progress=tracker.sub_progress(stage, 0.1 + k * span, span),
                )
            ffutil.require_frame_count(frames_dir, total_frames)

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
        frame_count=total_frames,
        fps=request.output_fps,
        clip_count=len(jobs),
        compression_ratios=[j.series.compression_ratio for j in jobs],
        scratch_dir=kept,
        states=list(tracker.history),
    )
