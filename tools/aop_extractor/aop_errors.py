"""Error types raised while decoding AoP asset files.

Binary decoders raise the fatal errors and abandon the file. The clip
reconstructor and the scene decoder never raise the non-fatal ones; they
collect them as diagnostics and carry on.
"""


class DecodeError(ValueError):
    """Base class for all asset decoding errors."""


class TruncatedStreamError(DecodeError):
    """A read would run past the end of the buffer."""

    def __init__(self, position: int, wanted: int, available: int):
        super().__init__(
            f"Unexpected end of data at byte {position}: "
            f"wanted {wanted} bytes, {available} left"
        )
        self.position = position
        self.wanted = wanted
        self.available = available


class UnsupportedFormatVersionError(DecodeError):
    """The .gm header declares a version this decoder refuses to read."""

    def __init__(self, version: str):
        super().__init__(f"Importing version '{version}' of the .gm file is not supported")
        self.version = version


class StringTableCountMismatchError(DecodeError):
    """The string blob does not split into the declared number of strings."""

    def __init__(self, found: int, expected: int):
        super().__init__(
            f"String table holds {found} strings, header declares {expected}"
        )
        self.found = found
        self.expected = expected


class UnknownStringOffsetError(DecodeError):
    """A record references a string offset missing from the table."""

    def __init__(self, offset: int):
        super().__init__(f"No string starts at offset {offset}")
        self.offset = offset


class InvalidFourCCError(DecodeError):
    """A texture compression tag is not a 4-character ASCII token."""

    def __init__(self, raw: bytes):
        super().__init__(f"Invalid compression tag: {raw!r}")
        self.raw = raw


class UnknownFourCCError(DecodeError):
    """A compression tag has no pixel format mapping."""

    def __init__(self, four_cc: str):
        super().__init__(f"Unknown fourCC: {four_cc}")
        self.four_cc = four_cc


class TextEncodingError(DecodeError):
    """A text file is not valid UTF-8."""

    def __init__(self, reason: str):
        super().__init__(f"Clip description is not valid UTF-8: {reason}")
        self.reason = reason


# Non-fatal: collected as diagnostics on the decoded result.

class UnresolvedSectionError(DecodeError):
    """A clip section lacks 'start_time' or 'end_time'."""

    def __init__(self, section: str, reason: str = None):
        super().__init__(
            reason or f"Section [{section}] does not contain 'start_time' or 'end_time'"
        )
        self.section = section


class FrameRangeError(UnresolvedSectionError):
    """A clip section's frame range falls outside the animation."""

    def __init__(self, section: str, start: int, end: int, frame_count: int):
        super().__init__(
            section,
            f"Section [{section}] frame range {start}..{end} "
            f"is outside 0..{frame_count - 1}",
        )
        self.start = start
        self.end = end
        self.frame_count = frame_count


class UnparsableEventFrameError(DecodeError):
    """An 'event' value whose frame number cannot be read."""

    def __init__(self, section: str, value: str):
        super().__init__(f"Failed to get event frame in [{section}]: {value}")
        self.section = section
        self.value = value


class UnrecognizedFormatVersionError(DecodeError):
    """A .gm version that is neither refused nor current; read with the legacy layout."""

    def __init__(self, version: str):
        super().__init__(
            f"Version '{version}' of the .gm file is not recognized; read with the legacy layout"
        )
        self.version = version
