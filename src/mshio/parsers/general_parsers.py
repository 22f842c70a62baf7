"""
Low-level parsing primitives shared by all MSH section parsers.

All parsers in this package take a :class:`Cursor` and return a tuple
``(value, remaining_cursor)``. A failing parser raises
:class:`~mshio.errors.MshParserError` with a ``TOKENIZER`` entry; the
caller's cursor is never modified.
"""

import re
from typing import Callable, Tuple, Union

from mshio.errors import MshParserError, MshParserErrorKind, fail

ByteSource = Union[bytes, bytearray, memoryview]

_LINE_BREAK = re.compile(rb"\r?\n")
_SPACE = re.compile(rb"[ \t\r\n]*")
_SECTION_NAME = re.compile(rb"\$([A-Za-z]+)")


class Cursor:
    """Immutable read position inside a byte buffer.

    Attributes:
        data: The complete input buffer
        pos: Offset of the next unread byte
        end: Offset one past the last byte that may be read
    """

    __slots__ = ("data", "pos", "end")

    def __init__(self, data: ByteSource, pos: int = 0, end: int = None):
        if isinstance(data, (bytearray, memoryview)):
            data = bytes(data)
        self.data = data
        self.pos = pos
        self.end = len(data) if end is None else end

    @property
    def remaining(self) -> int:
        """Number of bytes left to read."""
        return self.end - self.pos

    @property
    def at_end(self) -> bool:
        return self.pos >= self.end

    def advance(self, n: int) -> "Cursor":
        """Return a new cursor moved forward by ``n`` bytes."""
        return Cursor(self.data, self.pos + n, self.end)

    def moved_to(self, pos: int) -> "Cursor":
        return Cursor(self.data, pos, self.end)

    def take(self, n: int) -> Tuple[bytes, "Cursor"]:
        """Consume exactly ``n`` bytes."""
        if self.remaining < n:
            fail(self, MshParserErrorKind.TOKENIZER,
                 f"expected {n} bytes but only {self.remaining} are left")
        return self.data[self.pos:self.pos + n], self.advance(n)

    def rest(self) -> bytes:
        """Return all unread bytes."""
        return self.data[self.pos:self.end]

    def __eq__(self, other):
        if not isinstance(other, Cursor):
            return NotImplemented
        return (self.data is other.data or self.data == other.data) and \
            self.pos == other.pos and self.end == other.end

    def __hash__(self):
        return hash((self.pos, self.end))

    def __repr__(self):
        return f"Cursor(pos={self.pos}, end={self.end})"


def tag(expected: bytes) -> Callable[[Cursor], Tuple[bytes, Cursor]]:
    """Return a parser that consumes exactly the literal ``expected``."""
    def parse(cursor: Cursor) -> Tuple[bytes, Cursor]:
        if not cursor.data.startswith(expected, cursor.pos, cursor.end):
            fail(cursor, MshParserErrorKind.TOKENIZER,
                 f"expected '{expected.decode('ascii', 'replace')}'")
        return expected, cursor.advance(len(expected))
    return parse


def br(cursor: Cursor) -> Tuple[bytes, Cursor]:
    """Consume a single ``\\n`` or ``\\r\\n`` line break."""
    match = _LINE_BREAK.match(cursor.data, cursor.pos, cursor.end)
    if match is None:
        fail(cursor, MshParserErrorKind.TOKENIZER, "expected a line break")
    return match.group(0), cursor.moved_to(match.end())


def take_sp(cursor: Cursor) -> Tuple[bytes, Cursor]:
    """Consume any amount of whitespace, including none."""
    match = _SPACE.match(cursor.data, cursor.pos, cursor.end)
    return match.group(0), cursor.moved_to(match.end())


def tag_line(name: bytes) -> Callable[[Cursor], Tuple[bytes, Cursor]]:
    """Return a parser for a line consisting of exactly ``name``."""
    literal = tag(name)

    def parse(cursor: Cursor) -> Tuple[bytes, Cursor]:
        value, rest = literal(cursor)
        _, rest = br(rest)
        return value, rest
    return parse


def section_name(cursor: Cursor) -> Tuple[str, Cursor]:
    """Parse a ``$Name`` line and return ``Name``."""
    match = _SECTION_NAME.match(cursor.data, cursor.pos, cursor.end)
    if match is None:
        fail(cursor, MshParserErrorKind.TOKENIZER, "expected a section start tag")
    name = match.group(1).decode("ascii")
    _, rest = br(cursor.moved_to(match.end()))
    return name, rest


def has_sparse_tags(min_tag: int, max_tag: int, count: int) -> bool:
    """Check whether ``count`` tags spanning ``[min_tag, max_tag]`` leave gaps."""
    return max_tag - min_tag > count - 1


def parse_block_section_header(cursor: Cursor, parsers, noun: str) -> Tuple[Tuple[int, int, int, int], Cursor]:
    """Parse the ``numEntityBlocks numX minXTag maxXTag`` line of node and element sections.

    Args:
        cursor: Position of the section header
        parsers: NumParsers of the file
        noun: "Node" or "Element", used in error messages

    Returns:
        Tuple of block count, record count, minimum and maximum tag

    Raises:
        MshParserError: INVALID_TAG if the minimum tag is 0 or the maximum tag is smaller
    """
    num_blocks, rest = parsers.usize(cursor)
    count, rest = parsers.size_t(rest)
    tag_pos = rest
    min_tag, rest = parsers.size_t(rest)
    max_tag, rest = parsers.size_t(rest)

    if min_tag == 0:
        raise MshParserError.from_kind(tag_pos, MshParserErrorKind.INVALID_TAG).with_context(
            tag_pos, f"{noun} tag 0 is reserved for internal use")
    if max_tag < min_tag:
        raise MshParserError.from_kind(tag_pos, MshParserErrorKind.INVALID_TAG).with_context(
            tag_pos, f"The maximum {noun.lower()} tag has to be larger or equal to the minimum "
                     f"{noun.lower()} tag")
    return (num_blocks, count, min_tag, max_tag), rest
