"""Shared string table of .gm scene files.

The table is a blob of NUL-separated ASCII strings followed by one int32
start offset per string. Records elsewhere in the file name things by
that start offset.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from aop_errors import StringTableCountMismatchError, UnknownStringOffsetError
from byte_reader import ByteStreamReader

SEPARATOR = "\x00"


@dataclass(frozen=True)
class StringTable:
    """Decoded string table with offset lookup."""
    blob: str
    strings: Tuple[str, ...]
    offsets: Tuple[int, ...]
    lookup: Dict[int, str] = field(default_factory=dict, compare=False)

    def __len__(self) -> int:
        return len(self.strings)

    def get(self, offset: int) -> str:
        """Resolve a start offset to its string.

        Raises:
            UnknownStringOffsetError: If no string was registered at offset
        """
        try:
            return self.lookup[offset]
        except KeyError:
            raise UnknownStringOffsetError(offset) from None

    def resolve(self, offset: int) -> Tuple[int, str]:
        return offset, self.get(offset)


def split_strings(blob: str) -> List[str]:
    """Split a string blob on NUL, dropping empty entries."""
    return [s for s in blob.split(SEPARATOR) if s]


def decode_string_table(reader: ByteStreamReader, byte_length: int, item_count: int) -> StringTable:
    """Read the blob and offset index of a string table.

    Args:
        reader: Stream positioned at the start of the blob
        byte_length: Declared blob size in bytes
        item_count: Declared number of strings

    Returns:
        StringTable whose lookup maps each offset to the first string
        claiming it
    """
    blob = reader.read_chars(byte_length)
    strings = split_strings(blob)
    if len(strings) != item_count:
        raise StringTableCountMismatchError(len(strings), item_count)

    offsets = []
    lookup: Dict[int, str] = {}
    for text in strings:
        offset = reader.read_int32()
        offsets.append(offset)
        # Duplicate offsets keep the earlier string.
        lookup.setdefault(offset, text)

    return StringTable(
        blob=blob,
        strings=tuple(strings),
        offsets=tuple(offsets),
        lookup=lookup,
    )
