"""
Structured parser errors for the MSH reader.

Every parser in this package fails by raising :class:`MshParserError`. The
error carries a backtrace: an ordered list of entries, deepest first, each
recording the input position and the kind of failure. Parsers that want to
add information catch the error, append one entry and re-raise it, so the
backtrace grows while the call stack unwinds.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator, List, Optional, Union

# Context labels may be given lazily so that formatting only happens on failure
Label = Union[str, Callable[[], str]]


class ValueType(Enum):
    """Numeric value categories of the MSH format."""
    UNSIGNED_INT = "unsigned integer"
    INT = "integer"
    FLOAT = "floating point"


class MshParserErrorKind(Enum):
    """Kinds of errors that can be reported by the MSH parser."""
    UNSUPPORTED_MSH_VERSION = (
        "MSH file of unsupported version loaded. Only the MSH file format "
        "specification of version 4.1 is supported."
    )
    INVALID_FILE_HEADER = "The file header of the MSH file is invalid."
    INVALID_SECTION_HEADER = (
        "Unexpected tokens found after file header. Expected a section "
        "according to the MSH file format specification."
    )
    UNKNOWN_ELEMENT = "An unknown element type was encountered in the MSH file."
    TOO_MANY_ENTITIES = (
        "There are too many entities to parse them into contiguous memory "
        "on the current system."
    )
    VALUE_OUT_OF_RANGE = (
        "A {0} value could not be parsed because it was out of range of "
        "the target data type."
    )
    UNSUPPORTED_TYPE_SIZE = (
        "A {0} value could not be parsed because its declared size of {1} "
        "bytes is not supported."
    )
    INVALID_TAG = "An invalid entity tag was detected."
    INVALID_PARAMETER = "An invalid parameter value was detected."
    INVALID_ELEMENT_DEFINITION = "An invalid element definition was detected."
    INVALID_NODE_DEFINITION = "An invalid node definition was detected."
    UNIMPLEMENTED = (
        "An unimplemented feature of the MSH format was encountered in the file."
    )
    CONTEXT = "{0}"
    TOKENIZER = "{0}"

    @property
    def is_tokenizer_error(self) -> bool:
        """Whether this kind is a low-level tokenizer failure."""
        return self is MshParserErrorKind.TOKENIZER

    @property
    def is_semantic(self) -> bool:
        """Whether this kind describes why parsing failed, not just where."""
        return self not in (MshParserErrorKind.TOKENIZER, MshParserErrorKind.CONTEXT)

    def describe(self, detail: Any = None) -> str:
        """Format the human readable message of this kind."""
        if detail is None:
            return self.value.format("")
        if isinstance(detail, tuple):
            args = tuple(d.value if isinstance(d, Enum) else d for d in detail)
        else:
            args = (detail.value if isinstance(detail, Enum) else detail,)
        return self.value.format(*args)


@dataclass(frozen=True)
class BacktraceEntry:
    """A single entry of a parser error backtrace.

    Attributes:
        cursor: Input position where the failure (or context) applies
        kind: Kind of the entry
        detail: Payload of the kind (value type, context text, ...)
    """
    cursor: Any
    kind: MshParserErrorKind
    detail: Any = None

    @property
    def position(self) -> int:
        """Byte offset of this entry in the parsed buffer."""
        return self.cursor.pos

    @property
    def message(self) -> str:
        return self.kind.describe(self.detail)

    def __repr__(self):
        return f"BacktraceEntry({self.position}, {self.kind.name}, {self.detail!r})"


class MshParserError(ValueError):
    """Error raised when an MSH file cannot be parsed.

    Attributes:
        backtrace: Entries from the deepest failure to the outermost context
    """

    def __init__(self, backtrace: Optional[List[BacktraceEntry]] = None):
        super().__init__()
        self.backtrace: List[BacktraceEntry] = list(backtrace or [])

    @classmethod
    def from_kind(cls, cursor, kind: MshParserErrorKind, detail: Any = None) -> "MshParserError":
        """Create a new error with a single backtrace entry."""
        return cls([BacktraceEntry(cursor, kind, detail)])

    def append(self, cursor, kind: MshParserErrorKind, detail: Any = None) -> "MshParserError":
        """Append an entry to the backtrace and return the error itself."""
        self.backtrace.append(BacktraceEntry(cursor, kind, detail))
        return self

    def with_context(self, cursor, label: Label) -> "MshParserError":
        """Append a context message to the backtrace."""
        return self.append(cursor, MshParserErrorKind.CONTEXT, _resolve_label(label))

    def begin_msh_errors(self) -> Iterator[BacktraceEntry]:
        """Iterate the backtrace without its leading tokenizer entries."""
        start = next((i for i, e in enumerate(self.backtrace)
                      if not e.kind.is_tokenizer_error), len(self.backtrace))
        return iter(self.backtrace[start:])

    def filtered_backtrace(self) -> List[BacktraceEntry]:
        """Return the backtrace without tokenizer entries, deepest first."""
        return [e for e in self.begin_msh_errors() if not e.kind.is_tokenizer_error]

    def first_msh_entry(self) -> Optional[BacktraceEntry]:
        """Return the deepest entry with a semantic error kind."""
        return next((e for e in self.backtrace if e.kind.is_semantic), None)

    def first_msh_error(self) -> Optional[MshParserErrorKind]:
        """Return the deepest semantic error kind of the backtrace."""
        entry = self.first_msh_entry()
        return entry.kind if entry is not None else None

    def contexts(self) -> List[str]:
        """Return all context messages of the backtrace, deepest first."""
        return [e.detail for e in self.backtrace if e.kind is MshParserErrorKind.CONTEXT]

    @property
    def position(self) -> Optional[int]:
        """Byte offset of the deepest entry of the backtrace."""
        if not self.backtrace:
            return None
        return self.backtrace[0].position

    def report(self, width: int = 16, max_bytes: int = 128) -> str:
        """Render a multi-line human readable report of this error.

        Args:
            width: Number of bytes per row of the hex dump
            max_bytes: Maximum number of bytes to include in the hex dump

        Returns:
            The report text
        """
        backtrace = self.filtered_backtrace()
        if not backtrace:
            if not self.backtrace:
                return "Unknown error occurred"
            backtrace = self.backtrace[:1]

        deepest = backtrace[0]
        lines = []
        if len(backtrace) > 1:
            lines.append("During parsing...")
            for entry in reversed(backtrace[1:]):
                lines.append(f"\tin {entry.message},")
            lines.append(f"an error occurred: {deepest.message}")
        else:
            lines.append(f"An error occurred during: {deepest.message}")

        if max_bytes > 0:
            lines.append(
                f"Hex dump of the file at the error location (offset 0x{deepest.position:x}):"
            )
            lines.append(hexdump(deepest.cursor.data, deepest.position,
                                 min(deepest.cursor.end, deepest.position + max_bytes), width))
        return "\n".join(lines)

    def __str__(self):
        return self.report()

    def __repr__(self):
        return f"MshParserError({self.backtrace!r})"


def hexdump(data: bytes, start: int, end: int, width: int = 16) -> str:
    """Format ``data[start:end]`` as rows of offset, hex bytes and ASCII."""
    rows = []
    for row_start in range(start, end, width):
        chunk = bytes(data[row_start:min(row_start + width, end)])
        hex_part = " ".join(f"{b:02x}" for b in chunk).ljust(3 * width - 1)
        text_part = "".join(chr(b) if 32 <= b < 127 else "." for b in chunk)
        rows.append(f"{row_start:08x}\t{hex_part}\t{text_part}")
    return "\n".join(rows)


def _resolve_label(label: Label) -> str:
    return label() if callable(label) else label


def fail(cursor, kind: MshParserErrorKind, detail: Any = None):
    """Raise a new error of the given kind at the cursor."""
    raise MshParserError.from_kind(cursor, kind, detail)


@contextmanager
def error_context(cursor, label: Label):
    """Append a context message to any parser error raised in the block."""
    try:
        yield
    except MshParserError as err:
        raise err.with_context(cursor, label)


@contextmanager
def error_kind(cursor, kind: MshParserErrorKind, detail: Any = None):
    """Append a semantic error kind to any parser error raised in the block."""
    try:
        yield
    except MshParserError as err:
        raise err.append(cursor, kind, detail)


def context(label: Label, parser: Callable) -> Callable:
    """Wrap a parser so that failures get the context label appended."""
    def parse(cursor, *args):
        with error_context(cursor, label):
            return parser(cursor, *args)
    return parse


def with_error(kind: MshParserErrorKind, parser: Callable, detail: Any = None) -> Callable:
    """Wrap a parser so that failures get a semantic error kind appended."""
    def parse(cursor, *args):
        with error_kind(cursor, kind, detail):
            return parser(cursor, *args)
    return parse


def always_error(kind: MshParserErrorKind, detail: Any = None) -> Callable:
    """Return a parser that always fails with the given kind."""
    def parse(cursor, *args):
        fail(cursor, kind, detail)
    return parse
