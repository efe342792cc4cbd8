"""Clip description (.ani) parsing.

.ani files are UTF-8 text in an INI-like shape:

    ; comment
    [run]
    start_time = 0
    end_time = 24
    loop = true
    event = "footstep", 6
    event = "footstep", 18

Keys may repeat inside a section; every value is kept in file order.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Tuple, Union

from aop_errors import TextEncodingError
from byte_reader import read_source

COMMENT_CHAR = ";"
ESCAPE_CHAR = "\\"


@dataclass(frozen=True)
class ClipSection:
    """One named section and its ordered key values."""
    name: str
    entries: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    def has(self, key: str) -> bool:
        return key in self.entries

    def values(self, key: str) -> Tuple[str, ...]:
        return self.entries.get(key, ())

    def first(self, key: str) -> Optional[str]:
        values = self.values(key)
        return values[0] if values else None


@dataclass(frozen=True)
class ClipDescription:
    """Sections of a clip description file, in first-seen order."""
    sections: Tuple[ClipSection, ...] = ()

    def section_names(self) -> List[str]:
        return [s.name for s in self.sections]

    def get(self, name: str) -> Optional[ClipSection]:
        return next((s for s in self.sections if s.name == name), None)

    def to_text(self) -> str:
        """Render the sections back to text; the unnamed section has no header."""
        lines = []
        for section in self.sections:
            if section.name:
                lines.append(f"[{section.name}]")
            for key, values in section.entries.items():
                for value in values:
                    lines.append(f"{key} = {value}")
            lines.append("")
        return "\n".join(lines) + ("\n" if lines else "")


def strip_comment(line: str) -> str:
    """Trim a line and drop everything from the first unescaped ';'.

    An escaped semicolon (\\;) is kept as a literal ';'.
    """
    result = []
    chars = iter(line.strip())
    for char in chars:
        if char == ESCAPE_CHAR:
            following = next(chars, "")
            if following == COMMENT_CHAR:
                result.append(COMMENT_CHAR)
            else:
                result.append(char + following)
            continue
        if char == COMMENT_CHAR:
            break
        result.append(char)
    return "".join(result).strip()


def parse_section_name(line: str) -> Optional[str]:
    """Name between the first '[' and the next ']', or None."""
    open_index = line.find("[")
    if open_index < 0:
        return None
    close_index = line.find("]", open_index + 1)
    if close_index < 0:
        return None
    return line[open_index + 1:close_index].strip()


def parse_key_value(line: str) -> Optional[Tuple[str, str]]:
    """Split 'key = value' on the first '='; None if either side is empty."""
    key, sep, value = line.partition("=")
    if not sep:
        return None
    key, value = key.strip(), value.strip()
    if not key or not value:
        return None
    return key, value


def parse_clip_description(text: str) -> ClipDescription:
    """Parse clip description text into sections.

    Lines that are neither a section header nor a key/value pair are
    ignored. Keys before the first header go to a section named "".
    """
    order: List[str] = []
    sections: Dict[str, Dict[str, List[str]]] = {}
    current = ""

    for raw_line in text.splitlines():
        line = strip_comment(raw_line)
        if not line:
            continue

        name = parse_section_name(line)
        if name is not None:
            current = name
            if current not in sections:
                order.append(current)
                sections[current] = {}
            continue

        pair = parse_key_value(line)
        if pair is None:
            continue
        if current not in sections:
            order.append(current)
            sections[current] = {}
        key, value = pair
        sections[current].setdefault(key, []).append(value)

    return ClipDescription(sections=tuple(
        ClipSection(name=name, entries={k: tuple(v) for k, v in sections[name].items()})
        for name in order
    ))


def load_ani(source: Union[str, Path, BinaryIO, bytes]) -> ClipDescription:
    """Read and parse a .ani file.

    Raises:
        TextEncodingError: If the file is not UTF-8
    """
    try:
        text = read_source(source).decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise TextEncodingError(str(e)) from None
    return parse_clip_description(text)
