"""
Parser for the ``$MeshFormat`` section of MSH files.
"""

import logging
import struct
from typing import Tuple

from mshio.errors import MshParserErrorKind, ValueType, error_kind, fail
from mshio.mshfile import Endianness, MshHeader
from mshio.parsers.general_parsers import Cursor, br, tag, tag_line, take_sp
from mshio.parsers.num_parsers import (
    NumParsers, make_float_reader, make_uint_reader, supports_width
)

logger = logging.getLogger(__name__)

SUPPORTED_VERSION = 4.1
INT_SIZE = 4
FLOAT_SIZE = 8

_start_tag = tag_line(b"$MeshFormat")
_end_tag = tag(b"$EndMeshFormat")

# The header line is ASCII even in binary files
_read_version = make_float_reader(8)
_read_flag = make_uint_reader(8)


def _parse_endianness(cursor: Cursor) -> Tuple[Endianness, Cursor]:
    with error_kind(cursor, MshParserErrorKind.INVALID_FILE_HEADER):
        raw, rest = cursor.take(INT_SIZE)
    if struct.unpack(">i", raw)[0] == 1:
        return Endianness.BIG, rest
    if struct.unpack("<i", raw)[0] == 1:
        return Endianness.LITTLE, rest
    fail(cursor, MshParserErrorKind.INVALID_FILE_HEADER)


def parse_header_content(cursor: Cursor) -> Tuple[MshHeader, Cursor]:
    """Parse the body of a ``$MeshFormat`` section.

    Args:
        cursor: Position right after the ``$MeshFormat`` line

    Returns:
        The header and the position after the header data

    Raises:
        MshParserError: If the version is not 4.1 or the header is malformed
    """
    _, cursor = take_sp(cursor)
    with error_kind(cursor, MshParserErrorKind.INVALID_FILE_HEADER):
        version, rest = _read_version(cursor)
    if version != SUPPORTED_VERSION:
        fail(cursor, MshParserErrorKind.UNSUPPORTED_MSH_VERSION)

    _, type_pos = take_sp(rest)
    with error_kind(type_pos, MshParserErrorKind.INVALID_FILE_HEADER):
        file_type, rest = _read_flag(type_pos)
    if file_type not in (0, 1):
        fail(type_pos, MshParserErrorKind.INVALID_FILE_HEADER)

    _, size_pos = take_sp(rest)
    with error_kind(size_pos, MshParserErrorKind.INVALID_FILE_HEADER):
        size_t_size, rest = _read_flag(size_pos)
        _, rest = br(rest)

    endianness = None
    if file_type == 1:
        endianness, rest = _parse_endianness(rest)
        if not supports_width(ValueType.UNSIGNED_INT, size_t_size):
            fail(size_pos, MshParserErrorKind.UNSUPPORTED_TYPE_SIZE,
                 (ValueType.UNSIGNED_INT, size_t_size))

    header = MshHeader(
        version=version,
        file_type=file_type,
        size_t_size=size_t_size,
        int_size=INT_SIZE,
        float_size=FLOAT_SIZE,
        endianness=endianness,
    )
    return header, rest


def parse_header_section(cursor: Cursor, config=None) -> Tuple[Tuple[MshHeader, NumParsers], Cursor]:
    """Parse the complete ``$MeshFormat`` ... ``$EndMeshFormat`` block.

    Returns:
        The header together with the numeric readers it declares
    """
    with error_kind(cursor, MshParserErrorKind.INVALID_FILE_HEADER):
        _, rest = _start_tag(cursor)

    header, rest = parse_header_content(rest)

    with error_kind(rest, MshParserErrorKind.INVALID_FILE_HEADER):
        _, rest = take_sp(rest)
        _, rest = _end_tag(rest)

    logger.debug(f"MSH header: version {header.version}, "
                 f"{'binary' if header.is_binary else 'ASCII'}, size_t {header.size_t_size} bytes")
    return (header, NumParsers.from_header(header, config)), rest
