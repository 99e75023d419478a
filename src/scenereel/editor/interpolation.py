"""Keyframe interpolation and easing curves used by the effect resolvers."""

from typing import Callable, Optional, Sequence

EasingFn = Callable[[float], float]


def interpolate(
    x: float,
    input_range: Sequence[float],
    output_range: Sequence[float],
    easing: Optional[EasingFn] = None,
) -> float:
    """Map ``x`` through piecewise-linear keyframes.

    Args:
        x: Input value, usually a local frame number.
        input_range: Strictly increasing keyframe positions.
        output_range: Output value at each keyframe.
        easing: Curve applied to the progress within each segment.

    Returns:
        The interpolated value. Inputs outside the keyframes are clamped
        to the first/last output.

    Raises:
        ValueError: If the ranges differ in length, have fewer than two
            points, or the input range is not strictly increasing.
    """
    if len(input_range) != len(output_range):
        raise ValueError("input_range and output_range must have the same length")
    if len(input_range) < 2:
        raise ValueError("At least two keyframes are required")
    for left, right in zip(input_range, input_range[1:]):
        if right <= left:
            raise ValueError(f"input_range must be strictly increasing: {list(input_range)}")

    if x <= input_range[0]:
        return float(output_range[0])
    if x >= input_range[-1]:
        return float(output_range[-1])

    segment = 0
    while x > input_range[segment + 1]:
        segment += 1

    start, end = input_range[segment], input_range[segment + 1]
    low, high = output_range[segment], output_range[segment + 1]
    progress = (x - start) / (end - start)
    if easing is not None:
        progress = easing(progress)
    return low + (high - low) * progress


class Easing:
    """Easing curves mapping progress in [0, 1] to eased progress."""

    @staticmethod
    def linear(t: float) -> float:
        return t

    @staticmethod
    def bounce(t: float) -> float:
        if t < 1 / 2.75:
            return 7.5625 * t * t
        if t < 2 / 2.75:
            t2 = t - 1.5 / 2.75
            return 7.5625 * t2 * t2 + 0.75
        if t < 2.5 / 2.75:
            t2 = t - 2.25 / 2.75
            return 7.5625 * t2 * t2 + 0.9375
        t2 = t - 2.625 / 2.75
        return 7.5625 * t2 * t2 + 0.984375

    @staticmethod
    def bezier(x1: float, y1: float, x2: float, y2: float) -> EasingFn:
        """Build a CSS-style cubic-bezier curve through (0,0), (x1,y1), (x2,y2), (1,1).

        The curve parameter for a given x is found by bisection with a fixed
        iteration count so repeated evaluation is bit-for-bit stable.
        """
        if not (0 <= x1 <= 1 and 0 <= x2 <= 1):
            raise ValueError("bezier x control points must lie in [0, 1]")

        def coordinate(t: float, p1: float, p2: float) -> float:
            inv = 1 - t
            return 3 * inv * inv * t * p1 + 3 * inv * t * t * p2 + t * t * t

        def curve(x: float) -> float:
            if x <= 0:
                return 0.0
            if x >= 1:
                return 1.0
            low, high = 0.0, 1.0
            for _ in range(60):
                mid = (low + high) / 2
                if coordinate(mid, x1, x2) < x:
                    low = mid
                else:
                    high = mid
            return coordinate((low + high) / 2, y1, y2)

        return curve


# Ease-out curve shared by the zoom movements
EASE_OUT = Easing.bezier(0.25, 1, 0.5, 1)
