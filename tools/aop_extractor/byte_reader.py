"""Forward-only little-endian reader over an in-memory buffer."""
import struct
from pathlib import Path
from typing import BinaryIO, Tuple, Union

from aop_errors import TruncatedStreamError
from aop_types import Matrix4, Quaternion, Vector2, Vector3


class ByteStreamReader:
    """Reads fixed-width little-endian primitives from a byte buffer.

    Every read advances the cursor by exactly the width of its type.
    There is no seek: the decoders rely on reading each section in file
    order, so record sizes must be known before a record is read.
    """

    _INT8 = struct.Struct("<b")
    _UINT8 = struct.Struct("<B")
    _INT16 = struct.Struct("<h")
    _UINT16 = struct.Struct("<H")
    _INT32 = struct.Struct("<i")
    _UINT32 = struct.Struct("<I")
    _FLOAT = struct.Struct("<f")

    def __init__(self, data: bytes):
        self._data = memoryview(bytes(data))
        self._position = 0

    @property
    def position(self) -> int:
        return self._position

    @property
    def remaining(self) -> int:
        return len(self._data) - self._position

    def _take(self, size: int) -> memoryview:
        if size < 0 or size > self.remaining:
            raise TruncatedStreamError(self._position, size, self.remaining)
        chunk = self._data[self._position:self._position + size]
        self._position += size
        return chunk

    def _unpack(self, fmt: struct.Struct):
        return fmt.unpack(self._take(fmt.size))[0]

    def read_int8(self) -> int:
        return self._unpack(self._INT8)

    def read_uint8(self) -> int:
        return self._unpack(self._UINT8)

    def read_int16(self) -> int:
        return self._unpack(self._INT16)

    def read_uint16(self) -> int:
        return self._unpack(self._UINT16)

    def read_int32(self) -> int:
        return self._unpack(self._INT32)

    def read_uint32(self) -> int:
        return self._unpack(self._UINT32)

    def read_float(self) -> float:
        return self._unpack(self._FLOAT)

    def read_bytes(self, size: int) -> bytes:
        return bytes(self._take(size))

    def read_chars(self, count: int) -> str:
        """Read `count` single-byte ASCII characters."""
        return self.read_bytes(count).decode("ascii", errors="replace")

    def read_floats(self, count: int) -> Tuple[float, ...]:
        return struct.unpack(f"<{count}f", self._take(4 * count))

    def read_vector2(self) -> Vector2:
        return self.read_floats(2)

    def read_vector3(self) -> Vector3:
        return self.read_floats(3)

    def read_quaternion(self) -> Quaternion:
        """Read (x, y, z, w)."""
        return self.read_floats(4)

    def read_matrix4(self) -> Matrix4:
        """Read 16 floats stored column by column into a row-major 4x4."""
        values = self.read_floats(16)
        return tuple(
            tuple(values[4 * column + row] for column in range(4))
            for row in range(4)
        )


def read_source(source: Union[str, Path, BinaryIO, bytes]) -> bytes:
    """Return the full contents of a path, binary file object or buffer."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)
    if isinstance(source, (str, Path)):
        with open(source, "rb") as f:
            return f.read()
    source.seek(0)
    return source.read()
