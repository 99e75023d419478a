"""Tests for interpolation and easing."""

import pytest

from scenereel.editor.interpolation import EASE_OUT, Easing, interpolate


class TestInterpolate:
    """Tests for interpolate."""

    def test_linear(self):
        assert interpolate(5, [0, 10], [0, 1]) == pytest.approx(0.5)
        assert interpolate(2.5, [0, 10], [100, 0]) == pytest.approx(75)

    def test_clamped_both_sides(self):
        """No extrapolation outside the keyframes."""
        assert interpolate(-3, [0, 10], [0, 1]) == 0
        assert interpolate(10, [0, 10], [0, 1]) == 1
        assert interpolate(25, [0, 10], [0, 1]) == 1

    def test_multiple_segments(self):
        assert interpolate(5, [0, 10, 20], [0, 1, 0]) == pytest.approx(0.5)
        assert interpolate(15, [0, 10, 20], [0, 1, 0]) == pytest.approx(0.5)
        assert interpolate(10, [0, 10, 20], [0, 1, 0]) == pytest.approx(1)

    def test_easing_applied_per_segment(self):
        squared = lambda t: t * t  # noqa: E731
        assert interpolate(5, [0, 10], [0, 100], squared) == pytest.approx(25)

    def test_rejects_non_increasing_input(self):
        with pytest.raises(ValueError):
            interpolate(1, [0, 0], [0, 1])
        with pytest.raises(ValueError):
            interpolate(1, [0, 5, 3], [0, 1, 2])

    def test_rejects_mismatched_ranges(self):
        with pytest.raises(ValueError):
            interpolate(1, [0, 1], [0, 1, 2])


class TestEasing:
    """Tests for easing curves."""

    def test_bezier_endpoints(self):
        assert EASE_OUT(0) == 0
        assert EASE_OUT(1) == 1

    def test_bezier_ease_out_is_ahead_of_linear(self):
        assert EASE_OUT(0.5) > 0.5
        assert EASE_OUT(0.25) > 0.25

    def test_bezier_monotonic(self):
        values = [EASE_OUT(i / 50) for i in range(51)]
        assert values == sorted(values)

    def test_bezier_linear_control_points(self):
        linear = Easing.bezier(0.25, 0.25, 0.75, 0.75)
        assert linear(0.3) == pytest.approx(0.3, abs=1e-6)

    def test_bezier_repeatable(self):
        assert EASE_OUT(0.37) == EASE_OUT(0.37)

    def test_bezier_rejects_out_of_range_x(self):
        with pytest.raises(ValueError):
            Easing.bezier(1.5, 0, 0.5, 1)

    def test_bounce_endpoints(self):
        assert Easing.bounce(0) == 0
        assert Easing.bounce(1) == pytest.approx(1)
