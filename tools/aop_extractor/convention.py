"""Coordinate and handedness conversion between AoP files and the target.

Values are carried over component for component. Crossing from the
source handedness into the target's is a separate, explicit flip that
callers apply exactly once per value: positions negate X, rotations
negate X and W.
"""
import math
from typing import Tuple

from aop_types import Matrix4, Quaternion, Vector2, Vector3


def map_vector2(v: Vector2) -> Vector2:
    return (v[0], v[1])


def map_vector3(v: Vector3) -> Vector3:
    return (v[0], v[1], v[2])


def map_quaternion(q: Quaternion) -> Quaternion:
    """Reinterpret (x, y, z, w) without renormalizing."""
    return (q[0], q[1], q[2], q[3])


def map_matrix(m: Matrix4) -> Matrix4:
    return tuple(tuple(row) for row in m)


def flip_position(v: Vector3) -> Vector3:
    return (-v[0], v[1], v[2])


def flip_rotation(q: Quaternion) -> Quaternion:
    return (-q[0], q[1], q[2], -q[3])


def matrix_translation(m: Matrix4) -> Vector3:
    return (m[0][3], m[1][3], m[2][3])


def matrix_rotation(m: Matrix4) -> Quaternion:
    """Rotation of a matrix's upper 3x3 block, with scale removed."""
    columns = []
    for c in range(3):
        column = [m[r][c] for r in range(3)]
        length = math.sqrt(sum(x * x for x in column)) or 1.0
        columns.append([x / length for x in column])
    (m00, m10, m20), (m01, m11, m21), (m02, m12, m22) = columns

    trace = m00 + m11 + m22
    if trace > 0.0:
        s = math.sqrt(trace + 1.0) * 2.0
        w = 0.25 * s
        x = (m21 - m12) / s
        y = (m02 - m20) / s
        z = (m10 - m01) / s
    elif m00 > m11 and m00 > m22:
        s = math.sqrt(1.0 + m00 - m11 - m22) * 2.0
        w = (m21 - m12) / s
        x = 0.25 * s
        y = (m01 + m10) / s
        z = (m02 + m20) / s
    elif m11 > m22:
        s = math.sqrt(1.0 + m11 - m00 - m22) * 2.0
        w = (m02 - m20) / s
        x = (m01 + m10) / s
        y = 0.25 * s
        z = (m12 + m21) / s
    else:
        s = math.sqrt(1.0 + m22 - m00 - m11) * 2.0
        w = (m10 - m01) / s
        x = (m02 + m20) / s
        y = (m12 + m21) / s
        z = 0.25 * s
    return (x, y, z, w)


def quaternion_to_euler(q: Quaternion) -> Tuple[float, float, float]:
    """Euler angles in degrees, each in [0, 360).

    Angles follow the target convention where a rotation is applied as Z,
    then X, then Y (R = Ry * Rx * Rz).
    """
    x, y, z, w = q
    norm = x * x + y * y + z * z + w * w
    if norm == 0.0:
        return (0.0, 0.0, 0.0)
    scale = 2.0 / norm

    sin_x = scale * (w * x - y * z)
    sin_x = max(-1.0, min(1.0, sin_x))
    angle_x = math.asin(sin_x)

    if abs(sin_x) < 0.9999999:
        angle_y = math.atan2(scale * (w * y + x * z), 1.0 - scale * (x * x + y * y))
        angle_z = math.atan2(scale * (w * z + x * y), 1.0 - scale * (x * x + z * z))
    else:
        # Gimbal lock: fold the whole yaw into Y.
        angle_y = math.atan2(-scale * (x * z - w * y), 1.0 - scale * (y * y + z * z))
        angle_z = 0.0

    return tuple(normalize_degrees(math.degrees(a)) for a in (angle_x, angle_y, angle_z))


def normalize_degrees(angle: float) -> float:
    """Wrap an angle into [0, 360)."""
    result = angle % 360.0
    return 0.0 if result >= 360.0 else result
