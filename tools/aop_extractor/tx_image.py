"""Pillow conversion of decoded .tga.tx textures."""
import io
import struct

from PIL import Image

from tx_file import CompressedTexture, pixel_format_for

DDS_MAGIC = b"DDS "

# DDS_HEADER flags
DDSD_CAPS = 0x1
DDSD_HEIGHT = 0x2
DDSD_WIDTH = 0x4
DDSD_PIXELFORMAT = 0x1000
DDSD_MIPMAPCOUNT = 0x20000
DDSD_LINEARSIZE = 0x80000

DDPF_FOURCC = 0x4

DDSCAPS_COMPLEX = 0x8
DDSCAPS_TEXTURE = 0x1000
DDSCAPS_MIPMAP = 0x400000


def build_dds_header(texture: CompressedTexture) -> bytes:
    """Build the 128-byte DDS preamble (magic + DDS_HEADER) for a texture."""
    header = texture.header
    flags = DDSD_CAPS | DDSD_HEIGHT | DDSD_WIDTH | DDSD_PIXELFORMAT | DDSD_LINEARSIZE
    caps = DDSCAPS_TEXTURE
    if header.mip_count > 1:
        flags |= DDSD_MIPMAPCOUNT
        caps |= DDSCAPS_COMPLEX | DDSCAPS_MIPMAP

    four_cc = struct.unpack("<I", header.four_cc.encode("ascii"))[0]
    pixel_format = struct.pack("<8I", 32, DDPF_FOURCC, four_cc, 0, 0, 0, 0, 0)

    data = struct.pack(
        "<7I",
        124, flags, header.height, header.width,
        header.base_mip_byte_size, 0, header.mip_count,
    )
    data += b"\x00" * 44  # dwReserved1
    data += pixel_format
    data += struct.pack("<5I", caps, 0, 0, 0, 0)
    return DDS_MAGIC + data


def to_dds_bytes(texture: CompressedTexture) -> bytes:
    """Wrap the mip chain in a DDS container."""
    # Raises UnknownFourCCError before anything is built for unmapped tags.
    pixel_format_for(texture.header.four_cc)
    return build_dds_header(texture) + texture.mip_chain


def to_image(texture: CompressedTexture) -> Image.Image:
    """Decode the largest mip level to a Pillow image.

    Args:
        texture: Decoded texture with a DXT1, DXT3 or DXT5 tag

    Returns:
        RGBA image of the base level

    Raises:
        UnknownFourCCError: If the tag has no pixel format mapping
    """
    image = Image.open(io.BytesIO(to_dds_bytes(texture)))
    image.load()
    return image.convert("RGBA")


def save_png(texture: CompressedTexture, output_path: str, flip_vertically: bool = False) -> None:
    image = to_image(texture)
    if flip_vertically:
        image = image.transpose(Image.Transpose.FLIP_TOP_BOTTOM)
    image.save(output_path, "PNG")
