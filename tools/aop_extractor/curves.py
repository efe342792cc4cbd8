"""Piecewise-linear keyframe curves and Euler angle unwrapping."""
from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Tuple

# Consecutive unwrapped angles may differ by at most this many degrees.
UNWRAP_THRESHOLD = 270.0


class TangentMode(Enum):
    LINEAR = "linear"


@dataclass(frozen=True)
class Keyframe:
    time: float
    value: float
    in_tangent: float = 0.0
    out_tangent: float = 0.0
    in_mode: TangentMode = TangentMode.LINEAR
    out_mode: TangentMode = TangentMode.LINEAR
    # Left and right tangents are independent.
    broken: bool = True


@dataclass(frozen=True)
class Curve:
    """Curve that interpolates linearly between its keys."""
    keys: Tuple[Keyframe, ...] = ()

    def __len__(self) -> int:
        return len(self.keys)

    @property
    def times(self) -> List[float]:
        return [k.time for k in self.keys]

    @property
    def values(self) -> List[float]:
        return [k.value for k in self.keys]

    @property
    def duration(self) -> float:
        return self.keys[-1].time - self.keys[0].time if self.keys else 0.0

    def evaluate(self, time: float) -> float:
        """Sample the curve, holding the end values outside the key range."""
        if not self.keys:
            return 0.0
        if time <= self.keys[0].time:
            return self.keys[0].value
        if time >= self.keys[-1].time:
            return self.keys[-1].value
        index = bisect_right(self.times, time)
        left, right = self.keys[index - 1], self.keys[index]
        t = (time - left.time) / (right.time - left.time)
        return left.value + (right.value - left.value) * t


def linear_curve(times: Sequence[float], values: Sequence[float]) -> Curve:
    """Build a curve whose keys all use linear, broken tangents.

    Each key's in tangent is the slope from the previous key and its out
    tangent the slope to the next one; the outer ends are flat.

    Raises:
        ValueError: If lengths differ or times are not strictly increasing
    """
    if len(times) != len(values):
        raise ValueError(f"{len(times)} times for {len(values)} values")
    for earlier, later in zip(times, times[1:]):
        if later <= earlier:
            raise ValueError(f"Key times must increase: {earlier} then {later}")

    slopes = [
        (values[i + 1] - values[i]) / (times[i + 1] - times[i])
        for i in range(len(times) - 1)
    ]
    keys = []
    for i, (time, value) in enumerate(zip(times, values)):
        keys.append(Keyframe(
            time=time,
            value=value,
            in_tangent=slopes[i - 1] if i > 0 else 0.0,
            out_tangent=slopes[i] if i < len(slopes) else 0.0,
        ))
    return Curve(keys=tuple(keys))


def unwrap_step(raw: float, previous: float, offset: float) -> Tuple[float, float]:
    """Unwrap one angle against the previous unwrapped angle.

    Args:
        raw: Angle as produced by the Euler conversion, in degrees
        previous: Previous unwrapped angle on the same axis
        offset: Running offset carried along the axis

    Returns:
        (unwrapped angle, new running offset)
    """
    angle = raw + offset
    while abs(angle - previous) > UNWRAP_THRESHOLD:
        step = -360.0 if angle - offset > 180.0 else 360.0
        # Raw angles in [0, 360) always pick the right direction above.
        if abs(angle + step - previous) > abs(angle - previous):
            step = -step
        angle += step
        offset += step
    return angle, offset


def unwrap_angles(angles: Sequence[float]) -> List[float]:
    """Remove wrap-around jumps from a sequence of angles on one axis."""
    result: List[float] = []
    offset = 0.0
    for raw in angles:
        if not result:
            result.append(raw)
            continue
        angle, offset = unwrap_step(raw, result[-1], offset)
        result.append(angle)
    return result


def unwrap_euler(samples: Sequence[Tuple[float, float, float]]) -> List[Tuple[float, float, float]]:
    """Unwrap each axis of a sequence of (x, y, z) Euler angles independently."""
    if not samples:
        return []
    axes = [unwrap_angles([s[axis] for s in samples]) for axis in range(3)]
    return list(zip(*axes))
