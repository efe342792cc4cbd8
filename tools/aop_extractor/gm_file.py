"""Scene mesh (.gm) decoding.

.gm layout (little-endian), sections in this fixed order:
- Header: char[4] version, int32 flags, int32 strings byte length,
  int32 strings item count, int32 counts for textures, materials, lights,
  locators, mesh objects, triangles and vertex buffers, float32x3 bounds
  size, float32x3 bounds center, float32 radius, then 3 extra int32 in
  the "20.1" layout
- String table (see string_table.py)
- Textures: int32 name offset each
- Materials: 2x int32 offsets, 4 extra float32 ("20.1" only), diffuse,
  specular, gloss, self illumination, int32[4] texture types,
  int32[4] texture indices
- Locators: 2x int32 offsets, int32 flags, float32[16] column-major
  matrix, int32[4] bone indices, float32[4] bone weights
- Mesh objects: 2x int32 offsets, int32 flags, float32x3 center,
  float32 radius, int32 vertex buffer, triangle count/offset, vertex
  count/offset, material index, int32[12] reserved, int32 triangle count
  sum (absent in "20.1")
- Triangles: uint16x3 each
- Vertex buffers: int32 flags, int32 byte length
- Vertices: for each buffer, byte length / stride records

Lights are counted in the header but have no section of their own.
"""
import struct
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import BinaryIO, List, NamedTuple, Optional, Tuple, Union

from aop_errors import DecodeError, UnrecognizedFormatVersionError, UnsupportedFormatVersionError
from aop_types import Color, Matrix4, Vector2, Vector3
from byte_reader import ByteStreamReader, read_source
from string_table import StringTable, decode_string_table

VERSION_UNSUPPORTED = "10.1"
VERSION_CURRENT = "20.1"

TEXTURE_SLOT_COUNT = 4
LOCATOR_BONE_COUNT = 4
MESH_RESERVED_COUNT = 12

VERTEX_FLAG_UV2 = 0x1
VERTEX_FLAG_ANIMATED = 0x4
VERTEX_BASE_STRIDE = 36
VERTEX_SKIN_SIZE = 8
VERTEX_UV2_SIZE = 8


@dataclass(frozen=True)
class GmLayout:
    """Record shapes selected once from the header version."""
    name: str
    header_extra_ints: int
    material_extra_floats: int
    mesh_has_triangle_count_sum: bool


LEGACY_LAYOUT = GmLayout(
    name="legacy",
    header_extra_ints=0,
    material_extra_floats=0,
    mesh_has_triangle_count_sum=True,
)
CURRENT_LAYOUT = GmLayout(
    name="current",
    header_extra_ints=3,
    material_extra_floats=4,
    mesh_has_triangle_count_sum=False,
)


def resolve_layout(version: str, strict: bool = False) -> GmLayout:
    """Pick the record layout for a header version.

    Args:
        version: Four-character version string from the header
        strict: Refuse versions other than the current one instead of
            reading them with the legacy layout

    Raises:
        UnsupportedFormatVersionError: For "10.1", or any unknown version
            when strict
    """
    if version == VERSION_UNSUPPORTED:
        raise UnsupportedFormatVersionError(version)
    if version == VERSION_CURRENT:
        return CURRENT_LAYOUT
    if strict:
        raise UnsupportedFormatVersionError(version)
    return LEGACY_LAYOUT


class TextureType(IntEnum):
    NONE = 0
    MAIN = 1
    BUMP = 2


@dataclass(frozen=True)
class SceneHeader:
    version: str
    flags: int
    strings_byte_length: int
    strings_item_count: int
    texture_count: int
    material_count: int
    light_count: int
    locator_count: int
    mesh_object_count: int
    triangle_count: int
    vertex_buffer_count: int
    bounds_size: Vector3
    bounds_center: Vector3
    radius: float
    extra: Tuple[int, ...] = ()


@dataclass(frozen=True)
class TextureRef:
    offset: int
    name: str


class TextureSlot(NamedTuple):
    # TextureType, or the raw int for values the format does not define
    type: Union[TextureType, int]
    index: int


@dataclass(frozen=True)
class Material:
    group_offset: int
    name_offset: int
    group_name: str
    name: str
    diffuse: float
    specular: float
    gloss: float
    self_illum: float
    texture_slots: Tuple[TextureSlot, ...]
    # Four unknown floats, only present in the current layout.
    extra: Tuple[float, ...] = ()


@dataclass(frozen=True)
class Locator:
    """Attachment point, rigid or skinned to up to four bones."""
    group_offset: int
    name_offset: int
    group_name: str
    name: str
    flags: int
    local_matrix: Matrix4
    skin_bone_indices: Tuple[int, ...]
    skin_weights: Tuple[float, ...]


@dataclass(frozen=True)
class MeshObject:
    group_offset: int
    name_offset: int
    group_name: str
    name: str
    flags: int
    center: Vector3
    radius: float
    vertex_buffer_index: int
    triangle_count: int
    triangle_offset: int
    vertex_count: int
    vertex_offset: int
    material_index: int
    reserved: Tuple[int, ...]
    triangle_count_sum: Optional[int] = None


class Triangle(NamedTuple):
    v1: int
    v2: int
    v3: int


def vertex_stride(flags: int) -> int:
    """Bytes per vertex for a vertex buffer's flags."""
    stride = VERTEX_BASE_STRIDE
    if flags & VERTEX_FLAG_ANIMATED:
        stride += VERTEX_SKIN_SIZE
    if flags & VERTEX_FLAG_UV2:
        stride += VERTEX_UV2_SIZE
    return stride


@dataclass(frozen=True)
class VertexBuffer:
    flags: int
    byte_length: int

    @property
    def has_uv2(self) -> bool:
        return bool(self.flags & VERTEX_FLAG_UV2)

    @property
    def is_animated(self) -> bool:
        return bool(self.flags & VERTEX_FLAG_ANIMATED)

    @property
    def stride(self) -> int:
        return vertex_stride(self.flags)

    @property
    def vertex_count(self) -> int:
        return self.byte_length // self.stride


@dataclass(frozen=True)
class SkinInfluence:
    """Two-bone skinning data of an animated vertex."""
    weight1: float
    weight2: float
    bone1: int
    bone2: int
    packed_bones: int


@dataclass(frozen=True)
class Vertex:
    position: Vector3
    normal: Vector3
    color: Color
    uv: Vector2
    uv2: Optional[Vector2] = None
    skin: Optional[SkinInfluence] = None


@dataclass(frozen=True)
class SceneFile:
    """A fully decoded .gm file."""
    header: SceneHeader
    layout: GmLayout
    strings: StringTable
    textures: Tuple[TextureRef, ...]
    materials: Tuple[Material, ...]
    locators: Tuple[Locator, ...]
    mesh_objects: Tuple[MeshObject, ...]
    triangles: Tuple[Triangle, ...]
    vertex_buffers: Tuple[VertexBuffer, ...]
    # One tuple of vertices per vertex buffer.
    vertices: Tuple[Tuple[Vertex, ...], ...]
    name: str = ""
    # Non-fatal problems, such as a version read with the guessed layout.
    diagnostics: Tuple[DecodeError, ...] = ()

    def vertex_buffer_of(self, mesh: MeshObject) -> VertexBuffer:
        if not 0 <= mesh.vertex_buffer_index < len(self.vertex_buffers):
            raise DecodeError(
                f"Mesh '{mesh.name}' references vertex buffer {mesh.vertex_buffer_index} "
                f"of {len(self.vertex_buffers)}"
            )
        return self.vertex_buffers[mesh.vertex_buffer_index]

    def mesh_vertices(self, mesh: MeshObject) -> Tuple[Vertex, ...]:
        """Vertices of a mesh object, sliced from its own vertex buffer."""
        self.vertex_buffer_of(mesh)
        buffer_vertices = self.vertices[mesh.vertex_buffer_index]
        end = mesh.vertex_offset + mesh.vertex_count
        if mesh.vertex_offset < 0 or end > len(buffer_vertices):
            raise DecodeError(
                f"Mesh '{mesh.name}' vertex range {mesh.vertex_offset}..{end} "
                f"exceeds buffer {mesh.vertex_buffer_index} ({len(buffer_vertices)} vertices)"
            )
        return buffer_vertices[mesh.vertex_offset:end]

    def mesh_triangles(self, mesh: MeshObject) -> Tuple[Triangle, ...]:
        """Triangles of a mesh object, sliced from the file-wide list."""
        end = mesh.triangle_offset + mesh.triangle_count
        if mesh.triangle_offset < 0 or end > len(self.triangles):
            raise DecodeError(
                f"Mesh '{mesh.name}' triangle range {mesh.triangle_offset}..{end} "
                f"exceeds {len(self.triangles)} triangles"
            )
        return self.triangles[mesh.triangle_offset:end]

    @property
    def has_skinned_meshes(self) -> bool:
        return any(self.vertex_buffer_of(m).is_animated for m in self.mesh_objects)

    def texture_names(self) -> List[str]:
        return [t.name for t in self.textures]


def _texture_type(value: int) -> Union[TextureType, int]:
    return TextureType(value) if value in TextureType._value2member_map_ else value


def decode_header(reader: ByteStreamReader, strict_version: bool = False) -> Tuple[SceneHeader, GmLayout]:
    """Read the scene header and select the record layout.

    The version is checked before any further field is read.
    """
    version = reader.read_chars(4)
    layout = resolve_layout(version, strict=strict_version)
    flags = reader.read_int32()
    counts = [reader.read_int32() for _ in range(9)]
    if any(c < 0 for c in counts):
        raise DecodeError(f"Negative section count in .gm header: {counts}")
    bounds_size = reader.read_vector3()
    bounds_center = reader.read_vector3()
    radius = reader.read_float()
    extra = tuple(reader.read_int32() for _ in range(layout.header_extra_ints))

    header = SceneHeader(
        version=version,
        flags=flags,
        strings_byte_length=counts[0],
        strings_item_count=counts[1],
        texture_count=counts[2],
        material_count=counts[3],
        light_count=counts[4],
        locator_count=counts[5],
        mesh_object_count=counts[6],
        triangle_count=counts[7],
        vertex_buffer_count=counts[8],
        bounds_size=bounds_size,
        bounds_center=bounds_center,
        radius=radius,
        extra=extra,
    )
    return header, layout


def decode_texture(reader: ByteStreamReader, strings: StringTable) -> TextureRef:
    offset, name = strings.resolve(reader.read_int32())
    return TextureRef(offset=offset, name=name)


def decode_material(reader: ByteStreamReader, layout: GmLayout, strings: StringTable) -> Material:
    group_offset = reader.read_int32()
    name_offset = reader.read_int32()
    extra = reader.read_floats(layout.material_extra_floats) if layout.material_extra_floats else ()
    diffuse = reader.read_float()
    specular = reader.read_float()
    gloss = reader.read_float()
    self_illum = reader.read_float()
    types = [_texture_type(reader.read_int32()) for _ in range(TEXTURE_SLOT_COUNT)]
    indices = [reader.read_int32() for _ in range(TEXTURE_SLOT_COUNT)]

    return Material(
        group_offset=group_offset,
        name_offset=name_offset,
        group_name=strings.get(group_offset),
        name=strings.get(name_offset),
        diffuse=diffuse,
        specular=specular,
        gloss=gloss,
        self_illum=self_illum,
        texture_slots=tuple(TextureSlot(t, i) for t, i in zip(types, indices)),
        extra=tuple(extra),
    )


def decode_locator(reader: ByteStreamReader, strings: StringTable) -> Locator:
    group_offset = reader.read_int32()
    name_offset = reader.read_int32()
    flags = reader.read_int32()
    matrix = reader.read_matrix4()
    bone_indices = tuple(reader.read_int32() for _ in range(LOCATOR_BONE_COUNT))
    bone_weights = reader.read_floats(LOCATOR_BONE_COUNT)

    return Locator(
        group_offset=group_offset,
        name_offset=name_offset,
        group_name=strings.get(group_offset),
        name=strings.get(name_offset),
        flags=flags,
        local_matrix=matrix,
        skin_bone_indices=bone_indices,
        skin_weights=tuple(bone_weights),
    )


def decode_mesh_object(reader: ByteStreamReader, layout: GmLayout, strings: StringTable) -> MeshObject:
    group_offset = reader.read_int32()
    name_offset = reader.read_int32()
    flags = reader.read_int32()
    center = reader.read_vector3()
    radius = reader.read_float()
    vertex_buffer_index = reader.read_int32()
    triangle_count = reader.read_int32()
    triangle_offset = reader.read_int32()
    vertex_count = reader.read_int32()
    vertex_offset = reader.read_int32()
    material_index = reader.read_int32()
    reserved = tuple(reader.read_int32() for _ in range(MESH_RESERVED_COUNT))
    triangle_count_sum = reader.read_int32() if layout.mesh_has_triangle_count_sum else None

    return MeshObject(
        group_offset=group_offset,
        name_offset=name_offset,
        group_name=strings.get(group_offset),
        name=strings.get(name_offset),
        flags=flags,
        center=center,
        radius=radius,
        vertex_buffer_index=vertex_buffer_index,
        triangle_count=triangle_count,
        triangle_offset=triangle_offset,
        vertex_count=vertex_count,
        vertex_offset=vertex_offset,
        material_index=material_index,
        reserved=reserved,
        triangle_count_sum=triangle_count_sum,
    )


def decode_triangle(reader: ByteStreamReader) -> Triangle:
    return Triangle(reader.read_uint16(), reader.read_uint16(), reader.read_uint16())


def decode_vertex_buffer(reader: ByteStreamReader) -> VertexBuffer:
    return VertexBuffer(flags=reader.read_int32(), byte_length=reader.read_int32())


_FLOAT32 = struct.Struct("<f")


def _to_float32(value: float) -> float:
    return _FLOAT32.unpack(_FLOAT32.pack(value))[0]


def decode_skin(reader: ByteStreamReader) -> SkinInfluence:
    weight1 = reader.read_float()
    packed = reader.read_int32()
    return SkinInfluence(
        weight1=weight1,
        weight2=_to_float32(1.0 - weight1),
        bone1=packed & 0xFF,
        bone2=(packed >> 8) & 0xFF,
        packed_bones=packed,
    )


def decode_vertex(reader: ByteStreamReader, buffer: VertexBuffer) -> Vertex:
    """Read one vertex whose optional fields are fixed by the buffer flags."""
    position = reader.read_vector3()
    skin = decode_skin(reader) if buffer.is_animated else None
    normal = reader.read_vector3()
    color = (reader.read_uint8(), reader.read_uint8(), reader.read_uint8(), reader.read_uint8())
    uv = reader.read_vector2()
    uv2 = reader.read_vector2() if buffer.has_uv2 else None
    return Vertex(position=position, normal=normal, color=color, uv=uv, uv2=uv2, skin=skin)


class SceneDecoder:
    """Decodes .gm scene files."""

    def __init__(self, strict_version: bool = False):
        """Initialize decoder.

        Args:
            strict_version: Refuse header versions other than "20.1"
        """
        self.strict_version = strict_version

    def decode_bytes(self, data: bytes, name: str = "") -> SceneFile:
        """Decode a complete .gm file from bytes.

        Raises:
            UnsupportedFormatVersionError: If the header version is refused
            StringTableCountMismatchError: If the string blob is malformed
            UnknownStringOffsetError: If a record names a missing string
            TruncatedStreamError: If the data ends early
        """
        reader = ByteStreamReader(data)
        header, layout = decode_header(reader, strict_version=self.strict_version)
        diagnostics = ()
        if layout is LEGACY_LAYOUT:
            diagnostics = (UnrecognizedFormatVersionError(header.version),)
        strings = decode_string_table(reader, header.strings_byte_length, header.strings_item_count)

        textures = tuple(decode_texture(reader, strings) for _ in range(header.texture_count))
        materials = tuple(decode_material(reader, layout, strings) for _ in range(header.material_count))
        locators = tuple(decode_locator(reader, strings) for _ in range(header.locator_count))
        mesh_objects = tuple(
            decode_mesh_object(reader, layout, strings) for _ in range(header.mesh_object_count)
        )
        triangles = tuple(decode_triangle(reader) for _ in range(header.triangle_count))
        vertex_buffers = tuple(decode_vertex_buffer(reader) for _ in range(header.vertex_buffer_count))
        vertices = tuple(
            tuple(decode_vertex(reader, buffer) for _ in range(buffer.vertex_count))
            for buffer in vertex_buffers
        )

        return SceneFile(
            header=header,
            layout=layout,
            strings=strings,
            textures=textures,
            materials=materials,
            locators=locators,
            mesh_objects=mesh_objects,
            triangles=triangles,
            vertex_buffers=vertex_buffers,
            vertices=vertices,
            name=name,
            diagnostics=diagnostics,
        )

    def decode_file(self, source: Union[str, Path, BinaryIO]) -> SceneFile:
        """Decode a .gm file from a path or binary file object."""
        name = Path(source).stem if isinstance(source, (str, Path)) else ""
        return self.decode_bytes(read_source(source), name=name)


def load_gm(source: Union[str, Path, BinaryIO, bytes], strict_version: bool = False) -> SceneFile:
    decoder = SceneDecoder(strict_version=strict_version)
    if isinstance(source, (bytes, bytearray)):
        return decoder.decode_bytes(source)
    return decoder.decode_file(source)


def material_textures(scene: SceneFile, material: Material) -> List[Tuple[TextureType, str]]:
    """Resolve a material's texture slots to (type, texture name).

    Slots with type NONE, unknown types or out of range indices are left out.
    """
    names = scene.texture_names()
    result = []
    for slot in material.texture_slots:
        if not isinstance(slot.type, TextureType) or slot.type == TextureType.NONE:
            continue
        if 0 <= slot.index < len(names):
            result.append((slot.type, names[slot.index]))
    return result
