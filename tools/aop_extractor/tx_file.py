"""Compressed texture container (.tga.tx) decoding.

.tga.tx layout (little-endian):
- int32 flags, int32 width, int32 height, int32 mip count
- char[4] fourCC (DXT1, DXT3, DXT5)
- int32 byte size of the largest mip level
- mip chain, largest first, each level a quarter of the previous size
"""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from aop_errors import DecodeError, InvalidFourCCError, UnknownFourCCError
from byte_reader import ByteStreamReader, read_source

MIP_SIZE_RATIO = 0.25

FOUR_CC_DXT1 = "DXT1"
FOUR_CC_DXT3 = "DXT3"
FOUR_CC_DXT5 = "DXT5"

# Bytes per 4x4 block.
BLOCK_SIZES = {
    FOUR_CC_DXT1: 8,
    FOUR_CC_DXT3: 16,
    FOUR_CC_DXT5: 16,
}


class PixelFormat(Enum):
    BC1_UNORM = "BC1_UNORM"
    BC1_SRGB = "BC1_SRGB"
    BC2_UNORM = "BC2_UNORM"
    BC2_SRGB = "BC2_SRGB"
    BC3_UNORM = "BC3_UNORM"
    BC3_SRGB = "BC3_SRGB"


_PIXEL_FORMATS = {
    FOUR_CC_DXT1: (PixelFormat.BC1_SRGB, PixelFormat.BC1_UNORM),
    FOUR_CC_DXT3: (PixelFormat.BC2_SRGB, PixelFormat.BC2_UNORM),
    FOUR_CC_DXT5: (PixelFormat.BC3_SRGB, PixelFormat.BC3_UNORM),
}


@dataclass(frozen=True)
class TextureHeader:
    flags: int
    width: int
    height: int
    mip_count: int
    four_cc: str
    base_mip_byte_size: int


@dataclass(frozen=True)
class MipLevel:
    level: int
    width: int
    height: int
    data: bytes


@dataclass(frozen=True)
class CompressedTexture:
    """A decoded .tga.tx file: header plus the raw mip chain."""
    header: TextureHeader
    mip_chain: bytes
    name: str = ""


def geometric_series_sum(first: float, ratio: float, count: int) -> float:
    """Sum of `count` terms of a geometric progression."""
    return first * (1.0 - ratio ** count) / (1.0 - ratio)


def mip_chain_size(base_size: int, mip_count: int) -> int:
    """Byte size of a mip chain whose levels shrink by MIP_SIZE_RATIO."""
    return int(round(geometric_series_sum(base_size, MIP_SIZE_RATIO, mip_count)))


def read_four_cc(reader: ByteStreamReader) -> str:
    raw = reader.read_bytes(4)
    if any(b < 0x20 or b > 0x7E for b in raw) or not raw.strip():
        raise InvalidFourCCError(raw)
    return raw.decode("ascii")


def decode_header(reader: ByteStreamReader) -> TextureHeader:
    flags = reader.read_int32()
    width = reader.read_int32()
    height = reader.read_int32()
    mip_count = reader.read_int32()
    four_cc = read_four_cc(reader)
    base_size = reader.read_int32()
    if width < 0 or height < 0 or mip_count < 0 or base_size < 0:
        raise DecodeError(
            f"Negative texture header field: {width}x{height}, "
            f"mips={mip_count}, base size={base_size}"
        )
    return TextureHeader(
        flags=flags,
        width=width,
        height=height,
        mip_count=mip_count,
        four_cc=four_cc,
        base_mip_byte_size=base_size,
    )


class TextureDecoder:
    """Decodes .tga.tx compressed texture containers."""

    def decode_bytes(self, data: bytes, name: str = "") -> CompressedTexture:
        """Decode header and mip chain.

        The fourCC is only checked to be a 4-character token; mapping it to
        a pixel format is left to pixel_format_for().
        """
        reader = ByteStreamReader(data)
        header = decode_header(reader)
        size = mip_chain_size(header.base_mip_byte_size, header.mip_count)
        return CompressedTexture(header=header, mip_chain=reader.read_bytes(size), name=name)

    def decode_file(self, source: Union[str, Path, BinaryIO]) -> CompressedTexture:
        name = Path(source).name.split(".")[0] if isinstance(source, (str, Path)) else ""
        return self.decode_bytes(read_source(source), name=name)


def load_tx(source: Union[str, Path, BinaryIO, bytes]) -> CompressedTexture:
    if isinstance(source, (bytes, bytearray)):
        return TextureDecoder().decode_bytes(source)
    return TextureDecoder().decode_file(source)


def pixel_format_for(four_cc: str, srgb: bool = True) -> PixelFormat:
    """Map a compression tag to a pixel format.

    Raises:
        UnknownFourCCError: For tags other than DXT1, DXT3 and DXT5
    """
    try:
        srgb_format, unorm_format = _PIXEL_FORMATS[four_cc]
    except KeyError:
        raise UnknownFourCCError(four_cc) from None
    return srgb_format if srgb else unorm_format


def expected_base_size(header: TextureHeader) -> Optional[int]:
    """Block-compressed size of the largest level, None for unknown tags."""
    block_size = BLOCK_SIZES.get(header.four_cc)
    if block_size is None:
        return None
    blocks_x = max(1, (header.width + 3) // 4)
    blocks_y = max(1, (header.height + 3) // 4)
    return blocks_x * blocks_y * block_size


def declared_size_matches_dimensions(header: TextureHeader) -> bool:
    """Whether the declared base size agrees with width, height and tag.

    Decoding never depends on this; it is a consistency check for callers.
    """
    return expected_base_size(header) == header.base_mip_byte_size


def mip_levels(texture: CompressedTexture) -> List[MipLevel]:
    """Split the mip chain into levels, largest first.

    Level boundaries are the rounded partial sums of the size series, so
    the levels always cover the whole chain.
    """
    header = texture.header
    levels = []
    width, height = header.width, header.height
    start = 0
    for level in range(header.mip_count):
        end = mip_chain_size(header.base_mip_byte_size, level + 1)
        levels.append(MipLevel(level, width, height, texture.mip_chain[start:end]))
        start = end
        width = max(1, width // 2)
        height = max(1, height // 2)
    return levels
