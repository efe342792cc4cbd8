"""Bone naming and rest pose of a decoded .an skeleton."""
from dataclasses import dataclass
from typing import List, Optional

from an_file import AnimationFile, Skeleton
from aop_types import IDENTITY_QUATERNION, Quaternion, Vector3
from convention import flip_position, flip_rotation, map_quaternion, map_vector3


@dataclass(frozen=True)
class BoneRestPose:
    """Local transform of a bone before any frame is applied."""
    index: int
    name: str
    parent: Optional[int]
    local_position: Vector3
    local_rotation: Quaternion


def bone_name(index: int) -> str:
    return f"bone_{index:02d}"


def bone_path(skeleton: Skeleton, index: int) -> str:
    """Slash-separated bone names from the topmost ancestor down to the bone."""
    names = [bone_name(index)]
    seen = {index}
    parent = skeleton.parent_of(index)
    while parent is not None and parent not in seen:
        seen.add(parent)
        names.append(bone_name(parent))
        parent = skeleton.parent_of(parent)
    return "/".join(reversed(names))


def rest_pose(an_file: AnimationFile) -> List[BoneRestPose]:
    """Rest transforms in target handedness.

    The rest rotation is the first frame's rotation; bones of an animation
    without frames get the identity.
    """
    skeleton = an_file.skeleton
    poses = []
    for i in range(skeleton.bone_count):
        position = flip_position(map_vector3(skeleton.rest_positions[i]))
        if an_file.header.frame_count > 0:
            rotation = flip_rotation(map_quaternion(an_file.frames.rotation(i, 0)))
        else:
            rotation = IDENTITY_QUATERNION
        poses.append(BoneRestPose(
            index=i,
            name=bone_name(i),
            parent=skeleton.parent_of(i),
            local_position=position,
            local_rotation=rotation,
        ))
    return poses
