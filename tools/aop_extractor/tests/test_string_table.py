"""Tests for .gm string table decoding."""
import struct
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from aop_errors import StringTableCountMismatchError, UnknownStringOffsetError
from byte_reader import ByteStreamReader
from string_table import decode_string_table, split_strings


def pack_string_table(strings):
    """Pack strings into a blob plus offset index.

    Returns:
        (data, byte_length, offsets)
    """
    blob = b""
    offsets = []
    for text in strings:
        offsets.append(len(blob))
        blob += text.encode("ascii") + b"\x00"
    index = b"".join(struct.pack("<i", o) for o in offsets)
    return blob + index, len(blob), offsets


def test_recovers_strings_by_offset():
    """Each string should be found at the offset it was packed at."""
    strings = ["body", "head", "mat_skin", "tex_skin.tga"]
    data, length, offsets = pack_string_table(strings)

    table = decode_string_table(ByteStreamReader(data), length, len(strings))

    assert list(table.strings) == strings
    assert list(table.offsets) == offsets
    for offset, text in zip(offsets, strings):
        assert table.get(offset) == text


def test_consumes_blob_and_index_exactly():
    """Reader should stop right after the offset index."""
    data, length, _ = pack_string_table(["a", "bc"])
    reader = ByteStreamReader(data + b"\xff")

    decode_string_table(reader, length, 2)

    assert reader.remaining == 1


def test_empty_entries_are_dropped():
    """Consecutive separators should not produce empty strings."""
    assert split_strings("a\x00\x00b\x00") == ["a", "b"]


def test_count_mismatch_raises():
    """Should fail when the blob splits into a different count."""
    data, length, _ = pack_string_table(["one", "two"])
    with pytest.raises(StringTableCountMismatchError) as excinfo:
        decode_string_table(ByteStreamReader(data), length, 3)

    assert excinfo.value.found == 2
    assert excinfo.value.expected == 3


def test_duplicate_offset_first_wins():
    """The first string claiming an offset should keep it."""
    blob = b"first\x00second\x00"
    index = struct.pack("<ii", 0, 0)
    table = decode_string_table(ByteStreamReader(blob + index), len(blob), 2)

    assert table.get(0) == "first"
    assert list(table.strings) == ["first", "second"]


def test_unknown_offset_raises():
    """Looking up an unregistered offset should fail."""
    data, length, _ = pack_string_table(["name"])
    table = decode_string_table(ByteStreamReader(data), length, 1)

    with pytest.raises(UnknownStringOffsetError) as excinfo:
        table.get(2)
    assert excinfo.value.offset == 2
