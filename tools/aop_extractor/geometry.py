"""Renderer-ready mesh and locator data from a decoded .gm scene."""
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from aop_types import Color, Quaternion, Vector2, Vector3
from convention import (
    flip_position,
    flip_rotation,
    map_matrix,
    map_vector2,
    map_vector3,
    matrix_rotation,
    matrix_translation,
)
from gm_file import Locator, MeshObject, SceneFile

# (bone1, bone2, weight1, weight2)
BoneWeight = Tuple[int, int, float, float]


@dataclass(frozen=True)
class MeshGeometry:
    name: str
    group_name: str
    material_index: int
    positions: Tuple[Vector3, ...]
    normals: Tuple[Vector3, ...]
    colors: Tuple[Color, ...]
    uvs: Tuple[Vector2, ...]
    # Flattened, three indices per triangle.
    indices: Tuple[int, ...]
    uv2: Optional[Tuple[Vector2, ...]] = None
    bone_weights: Optional[Tuple[BoneWeight, ...]] = None

    @property
    def is_skinned(self) -> bool:
        return self.bone_weights is not None

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @property
    def triangle_count(self) -> int:
        return len(self.indices) // 3


@dataclass(frozen=True)
class LocatorTransform:
    name: str
    group_name: str
    position: Vector3
    rotation: Quaternion
    # Bone the locator follows when the scene is skinned, else None.
    bone: Optional[int] = None


def _flip_v(uv: Vector2) -> Vector2:
    return (uv[0], -uv[1])


def build_mesh_geometry(
    scene: SceneFile,
    mesh: MeshObject,
    name: Optional[str] = None,
    flip_uv_vertical: bool = False,
) -> MeshGeometry:
    """Collect the vertices and triangles of one mesh object.

    Args:
        scene: Decoded scene
        mesh: One of scene.mesh_objects
        name: Name for the result, defaults to the mesh object name
        flip_uv_vertical: Negate the V coordinate of both UV sets

    Positions and normals of skinned meshes are flipped into target
    handedness; static meshes pass through unchanged.
    """
    buffer = scene.vertex_buffer_of(mesh)
    skinned = buffer.is_animated
    vertices = scene.mesh_vertices(mesh)

    positions, normals, uvs, uv2, weights = [], [], [], [], []
    for vertex in vertices:
        position = map_vector3(vertex.position)
        normal = map_vector3(vertex.normal)
        if skinned:
            position = flip_position(position)
            normal = flip_position(normal)
            skin = vertex.skin
            weights.append((skin.bone1, skin.bone2, skin.weight1, skin.weight2))
        positions.append(position)
        normals.append(normal)

        uv = map_vector2(vertex.uv)
        uvs.append(_flip_v(uv) if flip_uv_vertical else uv)
        if buffer.has_uv2:
            second = map_vector2(vertex.uv2)
            uv2.append(_flip_v(second) if flip_uv_vertical else second)

    indices = []
    for triangle in scene.mesh_triangles(mesh):
        indices.extend(triangle)

    return MeshGeometry(
        name=name if name is not None else mesh.name,
        group_name=mesh.group_name,
        material_index=mesh.material_index,
        positions=tuple(positions),
        normals=tuple(normals),
        colors=tuple(v.color for v in vertices),
        uvs=tuple(uvs),
        indices=tuple(indices),
        uv2=tuple(uv2) if buffer.has_uv2 else None,
        bone_weights=tuple(weights) if skinned else None,
    )


def unique_mesh_names(scene: SceneFile) -> List[str]:
    """Mesh object names with repeats suffixed _02, _03, ..."""
    counts: Dict[str, int] = {}
    names = []
    for mesh in scene.mesh_objects:
        counts[mesh.name] = counts.get(mesh.name, 0) + 1
        count = counts[mesh.name]
        names.append(mesh.name if count == 1 else f"{mesh.name}_{count:02d}")
    return names


def build_scene_geometry(scene: SceneFile, flip_uv_vertical: bool = False) -> List[MeshGeometry]:
    """Build geometry for every mesh object of the scene."""
    return [
        build_mesh_geometry(scene, mesh, name=name, flip_uv_vertical=flip_uv_vertical)
        for mesh, name in zip(scene.mesh_objects, unique_mesh_names(scene))
    ]


def locator_transform(locator: Locator, skinned: bool) -> LocatorTransform:
    """Position and rotation of a locator.

    Args:
        locator: Decoded locator
        skinned: Whether the scene has skinned meshes, in which case the
            transform is flipped into target handedness and the locator
            follows its first bone
    """
    matrix = map_matrix(locator.local_matrix)
    position = matrix_translation(matrix)
    rotation = matrix_rotation(matrix)
    bone = None
    if skinned:
        position = flip_position(position)
        rotation = flip_rotation(rotation)
        bone = locator.skin_bone_indices[0]
    return LocatorTransform(
        name=locator.name,
        group_name=locator.group_name,
        position=position,
        rotation=rotation,
        bone=bone,
    )


def scene_locators(scene: SceneFile) -> List[LocatorTransform]:
    skinned = scene.has_skinned_meshes
    return [locator_transform(locator, skinned) for locator in scene.locators]
