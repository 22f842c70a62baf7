"""Parsers for the sections of MSH files."""

from mshio.parsers.general_parsers import Cursor
from mshio.parsers.num_parsers import NumParsers

__all__ = ["Cursor", "NumParsers"]
