"""Job machinery shared by the retimer and the stitcher.

Both pipelines walk the same state machine:

    IDLE -> PROBING -> COMPUTING_TIMESTAMPS -> EXTRACTING -> ENCODING -> DONE

with FAILED reachable from every non-terminal state.  Scratch frames live in a
private temp directory that is removed however the job ends, unless the
caller asked to keep it.
"""

import enum
import logging
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator

from easecut.easing import EasingFunction, bezier_easing, get_easing
from easecut.manifest import EasingSelection

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, float], None]


class JobState(enum.Enum):
    IDLE = "idle"
    PROBING = "probing"
    COMPUTING_TIMESTAMPS = "computing_timestamps"
    EXTRACTING = "extracting"
    ENCODING = "encoding"
    DONE = "done"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (JobState.DONE, JobState.FAILED)


_NEXT_STATE = {
    JobState.IDLE: JobState.PROBING,
    JobState.PROBING: JobState.COMPUTING_TIMESTAMPS,
    JobState.COMPUTING_TIMESTAMPS: JobState.EXTRACTING,
    JobState.EXTRACTING: JobState.ENCODING,
    JobState.ENCODING: JobState.DONE,
}


class JobTracker:
    """Enforces legal state transitions and forwards progress to a callback."""

    def __init__(self, name: str, on_progress: ProgressCallback | None = None):
        self.name = name
        self.state = JobState.IDLE
        self.history: list[JobState] = [JobState.IDLE]
        self._on_progress = on_progress

    def advance(self, state: JobState, stage: str, frac: float) -> None:
        if _NEXT_STATE.get(self.state) is not state:
            raise RuntimeError(
                f"{self.name}: illegal transition {self.state.value} -> {state.value}"
            )
        logger.debug("%s: %s -> %s", self.name, self.state.value, state.value)
        self.state = state
        self.history.append(state)
        self.progress(stage, frac)

    def fail(self, error: BaseException) -> None:
        if self.state.terminal:
            return
        logger.error("%s failed while %s: %s", self.name, self.state.value, error)
        self.state = JobState.FAILED
        self.history.append(JobState.FAILED)

    def progress(self, stage: str, frac: float) -> None:
        if self._on_progress:
            self._on_progress(stage, frac)

    def sub_progress(self, stage: str, base: float, span: float) -> Callable[[int, int], None]:
        """Return a per-frame callback that maps done/total to [base, base+span]."""
        def cb(done: int, total: int) -> None:
            self.progress(f"{stage} ({done}/{total})", base + span * done / max(total, 1))
        return cb


@contextmanager
def scratch_dir(keep: bool = False, prefix: str = "easecut_") -> Iterator[Path]:
    """Yield a job-private temp directory, deleted on exit unless ``keep``."""
    path = Path(tempfile.mkdtemp(prefix=prefix))
    try:
        yield path
    finally:
        if keep:
            logger.info("Keeping scratch frames in %s", path)
        else:
            shutil.rmtree(path, ignore_errors=True)


def find_missing_clips(clips: list[Path]) -> list[Path]:
    """Every input that does not exist or is empty, in input order."""
    return [Path(c) for c in clips if not Path(c).is_file() or Path(c).stat().st_size == 0]


def resolve_easing(selection: EasingSelection) -> EasingFunction:
    """Turn a request's easing selection into a callable.

    Raises UnknownEasingError for a bad name and ValidationError for Bezier
    handles outside [0, 1].
    """
    if selection.bezier is not None:
        return bezier_easing(*selection.bezier.as_tuple())
    return get_easing(selection.name)


@dataclass
class EngineResult:
    output_path: Path
    frame_count: int = 0
    fps: float = 0.0
    clip_count: int = 0
    compression_ratios: list[float] = field(default_factory=list)
    scratch_dir: Path | None = None
    states: list[JobState] = field(default_factory=list)

    @property
    def duration(self) -> float:
        return self.frame_count / self.fps if self.fps else 0.0
