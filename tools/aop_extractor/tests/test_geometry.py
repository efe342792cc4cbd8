"""Tests for mesh and locator geometry."""
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from geometry import build_mesh_geometry, build_scene_geometry, locator_transform, scene_locators, unique_mesh_names
from gm_file import load_gm
from synthetic import create_test_gm

STRINGS = ["body", "wheel", "mount"]

# 90 degrees about Z, translated to (5, 6, 7), column-major.
LOCATOR_MATRIX = [0, 1, 0, 0, -1, 0, 0, 0, 0, 0, 1, 0, 5, 6, 7, 1]


def scene(buffer_flags=0, mesh_names=("wheel",)):
    vertices = [
        {"position": (1, 2, 3), "normal": (1, 0, 0), "uv": (0.25, 0.75), "uv2": (0.5, 0.5),
         "weight1": 0.75, "bones": 0x0201, "color": (1, 2, 3, 4)},
        {"position": (4, 5, 6), "normal": (0, 1, 0), "uv": (1, 1), "uv2": (0, 0.25)},
        {"position": (7, 8, 9), "normal": (0, 0, 1), "uv": (0, 0)},
    ]
    return load_gm(create_test_gm(
        strings=STRINGS,
        locators=[{"group": "body", "name": "mount", "matrix": LOCATOR_MATRIX, "bones": (4, 1, 0, 0)}],
        meshes=[
            {"group": "body", "name": name, "triangle_count": 1, "vertex_count": 3, "material": 2}
            for name in mesh_names
        ],
        triangles=[(0, 1, 2)],
        buffers=[{"flags": buffer_flags, "vertices": vertices}],
    ))


class TestMeshGeometry:
    """Tests for per-mesh vertex data."""

    def test_static_mesh(self):
        """Should pass static positions and normals through unchanged."""
        s = scene(buffer_flags=0)

        geometry = build_mesh_geometry(s, s.mesh_objects[0])

        assert geometry.name == "wheel"
        assert geometry.group_name == "body"
        assert geometry.material_index == 2
        assert geometry.positions == ((1, 2, 3), (4, 5, 6), (7, 8, 9))
        assert geometry.normals[0] == (1, 0, 0)
        assert geometry.colors[0] == (1, 2, 3, 4)
        assert geometry.uvs[0] == (0.25, 0.75)
        assert geometry.indices == (0, 1, 2)
        assert geometry.uv2 is None
        assert not geometry.is_skinned
        assert (geometry.vertex_count, geometry.triangle_count) == (3, 1)

    def test_skinned_mesh(self):
        """Should flip skinned positions and normals and carry bone weights."""
        s = scene(buffer_flags=5)

        geometry = build_mesh_geometry(s, s.mesh_objects[0])

        assert geometry.positions[0] == (-1, 2, 3)
        assert geometry.normals[0] == (-1, 0, 0)
        assert geometry.bone_weights[0] == (1, 2, 0.75, 0.25)
        assert geometry.uv2[1] == (0, 0.25)
        assert geometry.is_skinned

    def test_flip_uv(self):
        """Should negate V of both UV sets when asked."""
        s = scene(buffer_flags=1)

        geometry = build_mesh_geometry(s, s.mesh_objects[0], flip_uv_vertical=True)

        assert geometry.uvs[0] == (0.25, -0.75)
        assert geometry.uv2[0] == (0.5, -0.5)
        assert geometry.positions[0] == (1, 2, 3)

    def test_unique_names(self):
        """Should suffix repeated mesh names."""
        s = scene(mesh_names=("wheel", "wheel", "body", "wheel"))

        assert unique_mesh_names(s) == ["wheel", "wheel_02", "body", "wheel_03"]
        assert [g.name for g in build_scene_geometry(s)] == ["wheel", "wheel_02", "body", "wheel_03"]


class TestLocators:
    """Tests for locator transforms."""

    def test_static_locator(self):
        """Should decompose the matrix without flipping."""
        transform = locator_transform(scene(buffer_flags=0).locators[0], skinned=False)

        assert transform.name == "mount"
        assert transform.position == (5, 6, 7)
        assert transform.rotation == pytest.approx((0, 0, 0.70710678, 0.70710678))
        assert transform.bone is None

    def test_skinned_locator(self):
        """Should flip the transform and follow the first bone in skinned scenes."""
        (transform,) = scene_locators(scene(buffer_flags=4))

        assert transform.position == (-5, 6, 7)
        assert transform.rotation == pytest.approx((0, 0, 0.70710678, -0.70710678))
        assert transform.bone == 4
