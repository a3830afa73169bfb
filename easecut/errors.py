"""Exception hierarchy for EaseCut.

All errors raised by the engine inherit from EaseCutError so callers can catch
one type.  Subprocess failures are converted into these types at the ffutil
boundary; nothing above it sees CalledProcessError.
"""

from pathlib import Path


class EaseCutError(Exception):
    """Base exception for all EaseCut errors."""
    pass


# =============================================================================
# Validation (raised before any subprocess work begins)
# =============================================================================

class ValidationError(EaseCutError):
    """Bad arguments, missing files or an unknown easing name."""
    pass


class UnknownEasingError(ValidationError):
    def __init__(self, name: str, choices: list[str]):
        super().__init__(
            f"Unknown easing '{name}'. Choose one of: {', '.join(choices)}"
        )
        self.name = name
        self.choices = choices


class MissingClipError(ValidationError):
    """One or more input clips do not exist or are empty."""

    def __init__(self, paths: list[Path]):
        listing = ", ".join(str(p) for p in paths)
        super().__init__(f"Missing or empty input clip(s): {listing}")
        self.paths = paths


# =============================================================================
# Media errors
# =============================================================================

class FFmpegNotFoundError(EaseCutError):
    pass


class MediaProbeError(EaseCutError):
    """ffprobe could not read a usable video stream.

    ``paths`` lists every input that failed; a stitch job reports all of them
    together.
    """

    def __init__(self, message: str, paths: list[Path] | None = None):
        super().__init__(message)
        self.paths = paths or []


class FrameExtractionError(EaseCutError):
    def __init__(
        self,
        message: str,
        timestamp: float | None = None,
        stderr: str | None = None,
    ):
        super().__init__(message)
        self.timestamp = timestamp
        self.stderr = stderr


class EncodeError(EaseCutError):
    def __init__(self, message: str, stderr: str | None = None):
        super().__init__(message)
        self.stderr = stderr
