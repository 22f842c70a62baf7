"""
mshio - Parser for the Gmsh MSH 4.1 mesh file format.

Reads ASCII and binary MSH files into immutable Python structures and
reports malformed input with a backtrace pointing at the offending bytes.
"""

__author__ = "Emil Mammadli"

try:
    from ._version import version as __version__
except ImportError:
    __version__ = "0.1.0.dev0"

from mshio.core.config import DuplicateSectionPolicy, ParserConfig
from mshio.errors import MshParserError, MshParserErrorKind, ValueType
from mshio.io.reader import MshReader, read_msh_file
from mshio.mshfile import (
    Curve, Element, ElementBlock, Elements, ElementType, Endianness, Entities,
    MshData, MshFile, MshHeader, Node, NodeBlock, Nodes, Point, Surface, Volume
)
from mshio.parser import parse_bytes, parse_msh_bytes, parses

__all__ = [
    "parse_msh_bytes", "parse_bytes", "parses", "read_msh_file", "MshReader",
    "ParserConfig", "DuplicateSectionPolicy",
    "MshParserError", "MshParserErrorKind", "ValueType",
    "MshFile", "MshData", "MshHeader", "Endianness",
    "Entities", "Point", "Curve", "Surface", "Volume",
    "Nodes", "NodeBlock", "Node",
    "Elements", "ElementBlock", "Element", "ElementType",
]
