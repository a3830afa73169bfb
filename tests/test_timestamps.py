"""Tests for the timestamp calculator."""

import math

import pytest

from easecut.easing import EASINGS, bezier_easing, get_easing, is_monotonic, linear
from easecut.errors import ValidationError
from easecut.timestamps import (
    compute_timestamps,
    frame_count,
    span_fraction,
    speed_profile,
)


class TestFrameCount:
    @pytest.mark.parametrize(
        "duration, fps, expected",
        [(1.5, 60, 90), (2.0, 24, 48), (0.5, 30, 15), (1.0, 1, 1), (1.25, 30, 37), (0.99, 60, 59)],
    )
    def test_floor(self, duration, fps, expected):
        assert frame_count(duration, fps) == expected
        assert frame_count(duration, fps) == math.floor(duration * fps)

    def test_float_noise_does_not_drop_a_frame(self):
        # 0.7 * 30 evaluates to 20.999999999999996
        assert frame_count(0.7, 30) == 21


class TestComputeTimestamps:
    def test_linear_scenario(self):
        """5.04s clip squeezed into 1.5s at 60 fps."""
        series = compute_timestamps(linear, 5.04, 1.5, 60, source_fps=30)
        assert len(series) == 90
        assert series[0] == 0.0
        assert series[89] == pytest.approx(5.04, abs=0.05)
        assert series[89] <= 5.04 - 1 / 30 + 1e-12
        assert series.compression_ratio == pytest.approx(3.36)

    @pytest.mark.parametrize("duration, fps", [(1.5, 60), (3.0, 24), (0.25, 120), (10.0, 30)])
    def test_length(self, duration, fps):
        series = compute_timestamps(linear, 4.0, duration, fps)
        assert len(series) == math.floor(duration * fps)

    def test_single_frame(self):
        series = compute_timestamps(linear, 4.0, 1.0, 1)
        assert series.timestamps == (0.0,)

    @pytest.mark.parametrize("name", [n for n in sorted(EASINGS) if is_monotonic(n)])
    def test_monotonic_easing_gives_sorted_series(self, name):
        series = compute_timestamps(EASINGS[name], 5.0, 1.5, 60, source_fps=24)
        ts = list(series)
        assert ts == sorted(ts)

    @pytest.mark.parametrize("name", sorted(EASINGS))
    def test_all_entries_within_clip(self, name):
        series = compute_timestamps(EASINGS[name], 5.0, 1.5, 60, source_fps=24)
        assert all(0.0 <= ts <= 5.0 - 1 / 24 + 1e-12 for ts in series)

    def test_overshoot_is_clamped_at_both_ends(self):
        start = compute_timestamps(get_easing("easeInBack"), 5.0, 1.0, 30)
        assert start[1] == 0.0
        end = compute_timestamps(get_easing("easeOutBack"), 5.0, 1.0, 30, source_fps=25)
        assert max(end) == pytest.approx(5.0 - 1 / 25)

    def test_clip_shorter_than_one_frame(self):
        series = compute_timestamps(linear, 0.01, 0.5, 30, source_fps=30)
        assert set(series) == {0.0}

    def test_dramatic_swoop_is_slow_fast_slow(self):
        series = compute_timestamps(bezier_easing(0.85, 0, 0.15, 1), 5.0, 1.5, 60, source_fps=30)
        assert span_fraction(series, 0.0, 0.1) < 0.05
        assert span_fraction(series, 0.9, 1.0) < 0.05
        assert span_fraction(series, 0.4, 0.6) > 0.5

    def test_series_is_deterministic(self):
        a = compute_timestamps(get_easing("dramaticSwoop"), 4.8, 1.5, 60)
        b = compute_timestamps(get_easing("dramaticSwoop"), 4.8, 1.5, 60)
        assert a == b

    @pytest.mark.parametrize(
        "args",
        [(0.0, 1.5, 60), (-1.0, 1.5, 60), (5.0, 0.0, 60), (5.0, 1.5, 0), (5.0, 0.01, 30)],
    )
    def test_invalid_arguments(self, args):
        with pytest.raises(ValidationError):
            compute_timestamps(linear, *args)


class TestSpeedProfile:
    def test_linear_is_constant(self):
        profile = speed_profile(linear, 6.0, 1.5, samples=5)
        assert [p for p, _ in profile] == [0.0, 0.25, 0.5, 0.75, 1.0]
        for _, speed in profile:
            assert speed == pytest.approx(4.0)

    def test_swoop_is_fastest_in_the_middle(self):
        profile = dict(speed_profile(get_easing("dramaticSwoop"), 5.0, 1.5, samples=11))
        assert profile[0.5] > 10 * profile[0.0]
        assert profile[0.5] > 10 * profile[1.0]

    def test_needs_two_samples(self):
        with pytest.raises(ValidationError):
            speed_profile(linear, 5.0, 1.5, samples=1)
