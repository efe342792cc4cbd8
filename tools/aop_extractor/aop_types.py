"""Shared value types for AoP asset records."""
from typing import Tuple

Vector2 = Tuple[float, float]
Vector3 = Tuple[float, float, float]
# (x, y, z, w)
Quaternion = Tuple[float, float, float, float]
# Four rows of four floats.
Matrix4 = Tuple[Tuple[float, float, float, float], ...]
Color = Tuple[int, int, int, int]

IDENTITY_QUATERNION: Quaternion = (0.0, 0.0, 0.0, 1.0)
