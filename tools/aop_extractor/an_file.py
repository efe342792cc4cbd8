"""Skeletal animation (.an) decoding.

.an layout (little-endian):
- int32 frame count, int32 bone count, float32 frames per second
- int32[bone count] parent indices (out of range = root)
- float32x3[bone count] rest positions
- float32x3[frame count] root bone positions
- float32x4[bone count * frame count] rotations, bone-major
"""
import math
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, List, Optional, Tuple, Union

from aop_errors import DecodeError
from aop_types import Quaternion, Vector3
from byte_reader import ByteStreamReader, read_source


@dataclass(frozen=True)
class AnimationHeader:
    frame_count: int
    bone_count: int
    frames_per_second: float

    @property
    def frame_duration(self) -> float:
        return 1.0 / self.frames_per_second


@dataclass(frozen=True)
class Skeleton:
    """Bone hierarchy and rest positions."""
    parent_indices: Tuple[int, ...]
    rest_positions: Tuple[Vector3, ...]

    @property
    def bone_count(self) -> int:
        return len(self.parent_indices)

    def parent_of(self, index: int) -> Optional[int]:
        """Parent bone index, or None for a root bone."""
        parent = self.parent_indices[index]
        if 0 <= parent < self.bone_count:
            return parent
        return None

    def is_root(self, index: int) -> bool:
        return self.parent_of(index) is None

    @property
    def root_bones(self) -> List[int]:
        return [i for i in range(self.bone_count) if self.is_root(i)]

    def get_children(self, index: int) -> List[int]:
        """Get direct children of a bone."""
        return [i for i in range(self.bone_count) if self.parent_of(i) == index]

    def get_hierarchy_depth(self, index: int) -> int:
        """Get depth of bone in hierarchy (0 for root)."""
        depth = 0
        current = self.parent_of(index)
        seen = {index}
        while current is not None and current not in seen:
            seen.add(current)
            depth += 1
            current = self.parent_of(current)
        return depth


@dataclass(frozen=True)
class PoseFrames:
    """Per-frame root positions and per-bone rotations."""
    root_positions: Tuple[Vector3, ...]
    # Indexed [bone][frame].
    bone_rotations: Tuple[Tuple[Quaternion, ...], ...]

    @property
    def frame_count(self) -> int:
        return len(self.root_positions)

    def rotation(self, bone: int, frame: int) -> Quaternion:
        return self.bone_rotations[bone][frame]


@dataclass(frozen=True)
class AnimationFile:
    """A fully decoded .an file."""
    header: AnimationHeader
    skeleton: Skeleton
    frames: PoseFrames
    name: str = ""


def decode_header(reader: ByteStreamReader) -> AnimationHeader:
    frame_count = reader.read_int32()
    bone_count = reader.read_int32()
    fps = reader.read_float()
    if frame_count < 0 or bone_count < 0:
        raise DecodeError(f"Negative counts in .an header: frames={frame_count}, bones={bone_count}")
    if not math.isfinite(fps) or fps <= 0:
        raise DecodeError(f"Invalid frame rate in .an header: {fps}")
    return AnimationHeader(frame_count=frame_count, bone_count=bone_count, frames_per_second=fps)


def decode_skeleton(reader: ByteStreamReader, bone_count: int) -> Skeleton:
    parents = tuple(reader.read_int32() for _ in range(bone_count))
    positions = tuple(reader.read_vector3() for _ in range(bone_count))
    return Skeleton(parent_indices=parents, rest_positions=positions)


def decode_frames(reader: ByteStreamReader, frame_count: int, bone_count: int) -> PoseFrames:
    root_positions = tuple(reader.read_vector3() for _ in range(frame_count))
    rotations = tuple(
        tuple(reader.read_quaternion() for _ in range(frame_count))
        for _ in range(bone_count)
    )
    return PoseFrames(root_positions=root_positions, bone_rotations=rotations)


class AnDecoder:
    """Decodes .an skeletal animation files."""

    def decode_bytes(self, data: bytes, name: str = "") -> AnimationFile:
        """Decode a complete .an file from bytes.

        Args:
            data: File contents
            name: Name recorded on the result (usually the file stem)

        Returns:
            AnimationFile with header, skeleton and pose frames

        Raises:
            TruncatedStreamError: If the data ends before the declared counts
        """
        reader = ByteStreamReader(data)
        header = decode_header(reader)
        skeleton = decode_skeleton(reader, header.bone_count)
        frames = decode_frames(reader, header.frame_count, header.bone_count)
        return AnimationFile(header=header, skeleton=skeleton, frames=frames, name=name)

    def decode_file(self, source: Union[str, Path, BinaryIO]) -> AnimationFile:
        """Decode a .an file from a path or binary file object."""
        name = Path(source).stem if isinstance(source, (str, Path)) else ""
        return self.decode_bytes(read_source(source), name=name)


def load_an(source: Union[str, Path, BinaryIO, bytes]) -> AnimationFile:
    if isinstance(source, (bytes, bytearray)):
        return AnDecoder().decode_bytes(source)
    return AnDecoder().decode_file(source)
