"""Tests for linear curves and angle unwrapping."""
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from curves import TangentMode, linear_curve, unwrap_angles, unwrap_euler, unwrap_step


class TestLinearCurve:
    """Tests for curve construction."""

    def test_tangents(self):
        """Should set each tangent to the slope of its neighbouring segment."""
        curve = linear_curve([0.0, 1.0, 2.0], [0.0, 10.0, 4.0])

        first, middle, last = curve.keys
        assert (first.in_tangent, first.out_tangent) == (0.0, 10.0)
        assert (middle.in_tangent, middle.out_tangent) == (10.0, -6.0)
        assert (last.in_tangent, last.out_tangent) == (-6.0, 0.0)

    def test_tangent_modes(self):
        """Should mark every key linear and broken."""
        curve = linear_curve([0.0, 0.5], [1.0, 2.0])

        for key in curve.keys:
            assert key.in_mode is TangentMode.LINEAR
            assert key.out_mode is TangentMode.LINEAR
            assert key.broken

    def test_single_key(self):
        """Should build a flat single-key curve."""
        curve = linear_curve([0.0], [5.0])

        assert len(curve) == 1
        assert curve.duration == 0.0
        assert curve.evaluate(3.0) == 5.0

    def test_evaluate(self):
        """Should pass through keys and interpolate between them."""
        curve = linear_curve([0.0, 1.0, 2.0], [0.0, 10.0, 4.0])

        assert curve.evaluate(1.0) == 10.0
        assert curve.evaluate(0.5) == pytest.approx(5.0)
        assert curve.evaluate(1.5) == pytest.approx(7.0)
        assert curve.evaluate(-1.0) == 0.0
        assert curve.evaluate(9.0) == 4.0

    def test_times_and_values(self):
        """Should expose key times and values in order."""
        curve = linear_curve([0.0, 0.25], [3.0, 4.0])

        assert curve.times == [0.0, 0.25]
        assert curve.values == [3.0, 4.0]
        assert curve.duration == 0.25

    def test_length_mismatch(self):
        """Should reject mismatched inputs."""
        with pytest.raises(ValueError):
            linear_curve([0.0, 1.0], [1.0])

    def test_non_increasing_times(self):
        """Should reject repeated or decreasing times."""
        with pytest.raises(ValueError, match="increase"):
            linear_curve([0.0, 0.0], [1.0, 2.0])


class TestUnwrap:
    """Tests for Euler angle unwrapping."""

    def test_wrap_downwards(self):
        """Should rewrite a jump from 10 to 300 as -60."""
        assert unwrap_angles([10.0, 300.0]) == [10.0, -60.0]

    def test_small_jump_kept(self):
        """Should leave a jump within the threshold alone."""
        assert unwrap_angles([10.0, 190.0]) == [10.0, 190.0]

    def test_wrap_upwards(self):
        """Should carry the offset to later samples."""
        assert unwrap_angles([350.0, 10.0, 20.0]) == [350.0, 370.0, 380.0]

    def test_offset_returns(self):
        """Should drop the offset again when the angle wraps back."""
        assert unwrap_angles([10.0, 300.0, 290.0, 10.0]) == [10.0, -60.0, -70.0, 10.0]

    def test_continuous(self):
        """Should keep consecutive results within the threshold."""
        raw = [0.0, 100.0, 200.0, 300.0, 20.0, 120.0, 220.0, 320.0, 60.0]

        result = unwrap_angles(raw)

        for earlier, later in zip(result, result[1:]):
            assert abs(later - earlier) <= 270.0
        for raw_angle, angle in zip(raw, result):
            assert (angle - raw_angle) % 360.0 == 0.0

    def test_idempotent(self):
        """Should leave already unwrapped angles unchanged."""
        once = unwrap_angles([350.0, 10.0, 20.0, 300.0, 200.0])

        assert unwrap_angles(once) == once

    def test_step(self):
        """Should report the new offset with the unwrapped angle."""
        assert unwrap_step(300.0, 10.0, 0.0) == (-60.0, -360.0)
        assert unwrap_step(10.0, 350.0, 0.0) == (370.0, 360.0)

    def test_axes_independent(self):
        """Should unwrap each Euler axis on its own."""
        result = unwrap_euler([(10.0, 350.0, 5.0), (300.0, 10.0, 6.0)])

        assert result == [(10.0, 350.0, 5.0), (-60.0, 370.0, 6.0)]

    def test_empty(self):
        """Should handle no samples."""
        assert unwrap_angles([]) == []
        assert unwrap_euler([]) == []
