"""
Numeric value readers for ASCII and binary MSH files.

The factories in this module build small closures for one value category
(unsigned integer, signed integer, floating point), one encoded width and one
byte order. ASCII readers ignore width and byte order and parse a decimal
token instead. Every reader checks that the decoded value fits into the
numpy target dtype it was built for.
"""

import logging
import math
import re
import struct
import sys
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, List, Optional, Tuple

import numpy as np

from mshio.errors import MshParserErrorKind, ValueType, always_error, error_context, fail
from mshio.mshfile import Endianness, MshHeader
from mshio.parsers.general_parsers import Cursor, take_sp

logger = logging.getLogger(__name__)

Reader = Callable[[Cursor], Tuple[Any, Cursor]]
ArrayReader = Callable[[Cursor, int], Tuple[List[Any], Cursor]]

SUPPORTED_WIDTHS = {
    ValueType.UNSIGNED_INT: (1, 2, 4, 8, 16),
    ValueType.INT: (1, 2, 4, 8, 16),
    ValueType.FLOAT: (4, 8),
}

_STRUCT_CODES = {
    ValueType.UNSIGNED_INT: {1: "B", 2: "H", 4: "I", 8: "Q"},
    ValueType.INT: {1: "b", 2: "h", 4: "i", 8: "q"},
    ValueType.FLOAT: {4: "f", 8: "d"},
}

_NUMPY_KINDS = {
    ValueType.UNSIGNED_INT: "u",
    ValueType.INT: "i",
    ValueType.FLOAT: "f",
}

_ASCII_TOKENS = {
    ValueType.UNSIGNED_INT: re.compile(rb"\d+"),
    ValueType.INT: re.compile(rb"[+-]?\d+"),
    ValueType.FLOAT: re.compile(
        rb"[+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)"),
}


def supports_width(value_type: ValueType, width: int) -> bool:
    """Check whether binary values of ``value_type`` may be ``width`` bytes wide."""
    return width in SUPPORTED_WIDTHS[value_type]


@lru_cache(maxsize=None)
def dtype_bounds(dtype) -> Tuple[Any, Any]:
    """Return the inclusive value range of a numpy dtype as Python numbers."""
    dtype = np.dtype(dtype)
    if dtype.kind == "f":
        info = np.finfo(dtype)
        return float(info.min), float(info.max)
    info = np.iinfo(dtype)
    return int(info.min), int(info.max)


def _encoded_bounds(value_type: ValueType, width: int) -> Tuple[Any, Any]:
    if value_type is ValueType.FLOAT:
        return dtype_bounds(np.float32 if width == 4 else np.float64)
    bits = 8 * width
    if value_type is ValueType.UNSIGNED_INT:
        return 0, 2 ** bits - 1
    return -2 ** (bits - 1), 2 ** (bits - 1) - 1


def _make_range_check(value_type: ValueType, dtype) -> Callable[[Any], bool]:
    low, high = dtype_bounds(dtype)
    if value_type is ValueType.FLOAT:
        # Non-finite values are representable in every float dtype
        return lambda value: not math.isfinite(value) or low <= value <= high
    return lambda value: low <= value <= high


def _make_float_narrowing(value_type: ValueType, dtype) -> Optional[Callable[[float], float]]:
    dtype = np.dtype(dtype)
    if value_type is ValueType.FLOAT and dtype.itemsize < 8:
        return lambda value: float(dtype.type(value))
    return None


def _check_target(value_type: ValueType, dtype) -> None:
    kind = np.dtype(dtype).kind
    if kind != _NUMPY_KINDS[value_type]:
        raise ValueError(f"Target dtype {np.dtype(dtype)} cannot hold {value_type.value} values")


def _make_reader(value_type: ValueType, width: int, endianness: Optional[Endianness], dtype) -> Reader:
    _check_target(value_type, dtype)
    in_range = _make_range_check(value_type, dtype)
    narrow = _make_float_narrowing(value_type, dtype)

    if endianness is None:
        pattern = _ASCII_TOKENS[value_type]
        convert = float if value_type is ValueType.FLOAT else int

        def parse_ascii(cursor: Cursor) -> Tuple[Any, Cursor]:
            _, cursor = take_sp(cursor)
            match = pattern.match(cursor.data, cursor.pos, cursor.end)
            if match is None:
                fail(cursor, MshParserErrorKind.TOKENIZER, f"expected {value_type.value} token")
            value = convert(match.group(0))
            if not in_range(value):
                fail(cursor, MshParserErrorKind.VALUE_OUT_OF_RANGE, value_type)
            if narrow is not None:
                value = narrow(value)
            return value, cursor.moved_to(match.end())

        return parse_ascii

    if not supports_width(value_type, width):
        return always_error(MshParserErrorKind.UNSUPPORTED_TYPE_SIZE, (value_type, width))

    if width == 16:
        byteorder = "big" if endianness is Endianness.BIG else "little"
        signed = value_type is ValueType.INT

        def decode(raw: bytes):
            return int.from_bytes(raw, byteorder, signed=signed)
    else:
        unpack = struct.Struct(endianness.struct_prefix + _STRUCT_CODES[value_type][width]).unpack

        def decode(raw: bytes):
            return unpack(raw)[0]

    low, high = dtype_bounds(dtype)
    enc_low, enc_high = _encoded_bounds(value_type, width)
    always_fits = low <= enc_low and enc_high <= high

    def parse_binary(cursor: Cursor) -> Tuple[Any, Cursor]:
        raw, rest = cursor.take(width)
        value = decode(raw)
        if not always_fits and not in_range(value):
            fail(cursor, MshParserErrorKind.VALUE_OUT_OF_RANGE, value_type)
        if narrow is not None:
            value = narrow(value)
        return value, rest

    return parse_binary


def _make_array_reader(value_type: ValueType, width: int, endianness: Optional[Endianness],
                       dtype) -> ArrayReader:
    scalar = _make_reader(value_type, width, endianness, dtype)

    def parse_scalars(cursor: Cursor, count: int) -> Tuple[List[Any], Cursor]:
        values = []
        for i in range(count):
            with error_context(cursor, lambda i=i: f"value {i + 1} of {count}"):
                value, cursor = scalar(cursor)
            values.append(value)
        return values, cursor

    if endianness is None or width == 16 or not supports_width(value_type, width):
        return parse_scalars

    buffer_dtype = np.dtype(f"{endianness.struct_prefix}{_NUMPY_KINDS[value_type]}{width}")
    in_range = _make_range_check(value_type, dtype)
    narrow_dtype = np.dtype(dtype) if _make_float_narrowing(value_type, dtype) else None
    low, high = dtype_bounds(dtype)
    enc_low, enc_high = _encoded_bounds(value_type, width)
    always_fits = low <= enc_low and enc_high <= high

    def parse_buffer(cursor: Cursor, count: int) -> Tuple[List[Any], Cursor]:
        _, rest = cursor.take(count * width)
        array = np.frombuffer(cursor.data, dtype=buffer_dtype, count=count, offset=cursor.pos)
        values = array.tolist()
        if not always_fits:
            for i, value in enumerate(values):
                if not in_range(value):
                    fail(cursor.advance(i * width), MshParserErrorKind.VALUE_OUT_OF_RANGE, value_type)
        if narrow_dtype is not None:
            values = array.astype(narrow_dtype).astype(np.float64).tolist()
        return values, rest

    return parse_buffer


def make_uint_reader(width: int, endianness: Optional[Endianness] = None, dtype=np.uint64) -> Reader:
    """Build a reader for unsigned integers.

    Args:
        width: Encoded width in bytes (binary mode only)
        endianness: Byte order, ``None`` for ASCII mode
        dtype: numpy dtype the values have to fit into

    Returns:
        Parser returning a Python ``int``
    """
    return _make_reader(ValueType.UNSIGNED_INT, width, endianness, dtype)


def make_int_reader(width: int, endianness: Optional[Endianness] = None, dtype=np.int32) -> Reader:
    """Build a reader for signed integers."""
    return _make_reader(ValueType.INT, width, endianness, dtype)


def make_float_reader(width: int, endianness: Optional[Endianness] = None, dtype=np.float64) -> Reader:
    """Build a reader for floating point values."""
    return _make_reader(ValueType.FLOAT, width, endianness, dtype)


def make_uint_array_reader(width: int, endianness: Optional[Endianness] = None,
                           dtype=np.uint64) -> ArrayReader:
    """Build a reader for ``count`` consecutive unsigned integers."""
    return _make_array_reader(ValueType.UNSIGNED_INT, width, endianness, dtype)


def make_int_array_reader(width: int, endianness: Optional[Endianness] = None,
                          dtype=np.int32) -> ArrayReader:
    return _make_array_reader(ValueType.INT, width, endianness, dtype)


def make_float_array_reader(width: int, endianness: Optional[Endianness] = None,
                            dtype=np.float64) -> ArrayReader:
    return _make_array_reader(ValueType.FLOAT, width, endianness, dtype)


@dataclass(frozen=True)
class NumParsers:
    """The numeric readers active for one MSH file.

    Built once from the file header and handed to every section parser.
    """
    size_t: Reader
    int: Reader
    float: Reader
    size_t_array: ArrayReader
    int_array: ArrayReader
    float_array: ArrayReader

    def usize(self, cursor: Cursor) -> Tuple[int, Cursor]:
        """Read a size_t count that has to be usable as an in-memory index."""
        value, rest = self.size_t(cursor)
        if value > sys.maxsize:
            fail(cursor, MshParserErrorKind.TOO_MANY_ENTITIES)
        return value, rest

    @classmethod
    def from_header(cls, header: MshHeader, config=None) -> "NumParsers":
        """Create the readers matching the encoding declared by ``header``.

        Args:
            header: Parsed file header
            config: Optional ParserConfig supplying the numpy target dtypes

        Returns:
            NumParsers instance
        """
        size_t_dtype = config.size_t_dtype if config is not None else np.uint64
        int_dtype = config.int_dtype if config is not None else np.int32
        float_dtype = config.float_dtype if config is not None else np.float64
        order = header.endianness

        logger.debug(f"Numeric readers: size_t={header.size_t_size}, int={header.int_size}, "
                     f"float={header.float_size}, endianness={order}")

        return cls(
            size_t=make_uint_reader(header.size_t_size, order, size_t_dtype),
            int=make_int_reader(header.int_size, order, int_dtype),
            float=make_float_reader(header.float_size, order, float_dtype),
            size_t_array=make_uint_array_reader(header.size_t_size, order, size_t_dtype),
            int_array=make_int_array_reader(header.int_size, order, int_dtype),
            float_array=make_float_array_reader(header.float_size, order, float_dtype),
        )
