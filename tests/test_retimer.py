"""Tests for the single-clip retimer (ffmpeg replaced by a fake)."""

from unittest.mock import patch

import pytest

from easecut.engine import JobState
from easecut.errors import (
    FrameExtractionError,
    MediaProbeError,
    MissingClipError,
    UnknownEasingError,
)
from easecut.manifest import EasingSelection, RetimeRequest
from easecut.models import VideoMetadata
from easecut.retimer import retime


def _meta(duration: float = 5.04) -> VideoMetadata:
    return VideoMetadata(duration=duration, width=1280, height=720, frame_rate=30.0)


@pytest.fixture
def request_for(tmp_path, make_clip):
    def _build(**overrides) -> RetimeRequest:
        params = {
            "input": make_clip("clip.mp4"),
            "output": tmp_path / "out" / "retimed.mp4",
        }
        params.update(overrides)
        return RetimeRequest(**params)
    return _build


@patch("easecut.ffutil.probe", return_value=_meta())
class TestRetime:
    def test_success(self, mock_probe, fake_ffmpeg, scratch_root, request_for):
        req = request_for()
        result = retime(req)

        assert req.output.read_bytes() == b"MP4"
        assert result.frame_count == 90
        assert result.duration == pytest.approx(1.5)
        assert result.clip_count == 1
        assert result.compression_ratios == [pytest.approx(3.36)]
        assert result.states == [
            JobState.IDLE, JobState.PROBING, JobState.COMPUTING_TIMESTAMPS,
            JobState.EXTRACTING, JobState.ENCODING, JobState.DONE,
        ]
        assert fake_ffmpeg.frame_numbers() == list(range(90))
        assert list(scratch_root.iterdir()) == []

    def test_native_resolution(self, mock_probe, fake_ffmpeg, scratch_root, request_for):
        retime(request_for())
        assert all("-vf" not in cmd for cmd in fake_ffmpeg.extract_calls)

    def test_timestamps_follow_easing(self, mock_probe, fake_ffmpeg, scratch_root, request_for):
        retime(request_for(easing=EasingSelection(name="linear"), output_duration=1.0, output_fps=10))
        seeks = [float(c[c.index("-ss") + 1]) for c in fake_ffmpeg.extract_calls]
        assert len(seeks) == 10
        assert seeks[0] == 0.0
        assert seeks == sorted(seeks)
        assert seeks[-1] == pytest.approx(5.04 - 1 / 30, abs=1e-5)

    def test_keep_temp(self, mock_probe, fake_ffmpeg, scratch_root, request_for):
        result = retime(request_for(keep_temp=True))
        assert result.scratch_dir is not None
        assert len(list(result.scratch_dir.glob("frame_*.png"))) == 90

    def test_progress_reaches_done(self, mock_probe, fake_ffmpeg, scratch_root, request_for):
        seen = []
        retime(request_for(output_fps=10), on_progress=lambda s, f: seen.append((s, f)))
        fractions = [f for _, f in seen]
        assert fractions == sorted(fractions)
        assert seen[-1] == ("Done", 1.0)
        assert any(s.startswith("Extracting frames (") for s, _ in seen)

    def test_idempotent(self, mock_probe, fake_ffmpeg, scratch_root, request_for):
        first = retime(request_for())
        second = retime(request_for())
        assert first.frame_count == second.frame_count
        assert first.duration == second.duration

    def test_unknown_easing_fails_before_ffmpeg(self, mock_probe, fake_ffmpeg, scratch_root, request_for):
        with pytest.raises(UnknownEasingError):
            retime(request_for(easing=EasingSelection(name="wobble")))
        mock_probe.assert_not_called()
        assert fake_ffmpeg.calls == []

    def test_extraction_failure_cleans_up(self, mock_probe, fake_ffmpeg, scratch_root, request_for):
        fake_ffmpeg.fail_extract = lambda ts: ts > 2.0
        req = request_for()
        with pytest.raises(FrameExtractionError):
            retime(req)
        assert not req.output.exists()
        assert list(scratch_root.iterdir()) == []
        assert fake_ffmpeg.encode_cmd is None

    def test_encode_failure_leaves_no_output(self, mock_probe, fake_ffmpeg, scratch_root, request_for):
        fake_ffmpeg.encode_returncode = 1
        req = request_for()
        with pytest.raises(Exception, match="encoder exploded"):
            retime(req)
        assert not req.output.exists()
        assert list(req.output.parent.iterdir()) == []
        assert list(scratch_root.iterdir()) == []

    def test_failure_keeps_scratch_when_asked(self, mock_probe, fake_ffmpeg, scratch_root, request_for):
        fake_ffmpeg.fail_extract = lambda ts: ts > 2.0
        with pytest.raises(FrameExtractionError):
            retime(request_for(keep_temp=True))
        assert len(list(scratch_root.iterdir())) == 1


class TestRetimeProbeFailure:
    @patch("easecut.ffutil.probe", side_effect=MediaProbeError("corrupt"))
    def test_probe_error_propagates(self, mock_probe, fake_ffmpeg, scratch_root, tmp_path, make_clip):
        req = RetimeRequest(input=make_clip("bad.mp4"), output=tmp_path / "o.mp4")
        with pytest.raises(MediaProbeError, match="corrupt"):
            retime(req)
        assert list(scratch_root.iterdir()) == []


class TestRetimeMissingInput:
    @patch("easecut.ffutil.probe")
    def test_missing_input_is_validation_error(self, mock_probe, fake_ffmpeg, tmp_path):
        req = RetimeRequest(input=tmp_path / "nope.mp4", output=tmp_path / "o.mp4")
        with pytest.raises(MissingClipError, match="nope.mp4"):
            retime(req)
        mock_probe.assert_not_called()
        assert fake_ffmpeg.calls == []

    @patch("easecut.ffutil.probe")
    def test_string_paths_accepted(self, mock_probe, fake_ffmpeg, tmp_path):
        req = RetimeRequest(input=str(tmp_path / "nope.mp4"), output=str(tmp_path / "o.mp4"))
        with pytest.raises(MissingClipError, match="nope.mp4"):
            retime(req)
        mock_probe.assert_not_called()


class TestRetimeIncompleteSequence:
    @patch("easecut.ffutil.probe", return_value=_meta())
    @patch("easecut.ffutil.extract_frames_batch", return_value=[])
    def test_missing_frames_stop_before_encode(
        self, mock_extract, mock_probe, fake_ffmpeg, scratch_root, request_for
    ):
        req = request_for()
        with pytest.raises(FrameExtractionError, match="Expected 90 frames"):
            retime(req)
        assert fake_ffmpeg.encode_cmd is None
        assert not req.output.exists()
        assert list(scratch_root.iterdir()) == []
