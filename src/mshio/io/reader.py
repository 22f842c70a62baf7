"""
File reading for MSH files.

The parser itself works on bytes in memory. This module reads files from
disk in binary mode and hands their content to the parser.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from mshio.core.config import ParserConfig
from mshio.mshfile import MshFile
from mshio.parser import parse_msh_bytes

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Bytes needed to see the format line of any MSH file
_HEADER_PROBE_SIZE = 64


class MshReader:
    """Reader for Gmsh MSH 4.1 files (ASCII and binary).

    Attributes:
        config: Parser configuration used for every file read
    """

    def __init__(self, config: Optional[ParserConfig] = None):
        self.config = config or ParserConfig()

    def read(self, file_path: PathLike) -> MshFile:
        """Read and parse an MSH file.

        Args:
            file_path: Path to the MSH file

        Returns:
            MshFile: The parsed file

        Raises:
            FileNotFoundError: If the file does not exist
            MshParserError: If the file is not a valid MSH 4.1 file
        """
        file_path = Path(file_path)
        if not file_path.is_file():
            raise FileNotFoundError(f"Mesh file not found: {file_path}")

        logger.info(f"Reading MSH mesh from {file_path}")
        with open(file_path, 'rb') as f:
            data = f.read()

        msh = parse_msh_bytes(data, self.config)
        logger.info(f"Read MSH mesh: {msh.total_node_count()} nodes, "
                    f"{msh.total_element_count()} elements")
        return msh

    def detect_format(self, file_path: PathLike) -> bool:
        """Detect if a file looks like an MSH 4.1 file.

        Only the format line is inspected, the rest of the file is not validated.
        """
        if not os.path.isfile(file_path):
            return False
        with open(file_path, 'rb') as f:
            header = f.read(_HEADER_PROBE_SIZE)
        lines = header.lstrip().splitlines()
        if len(lines) < 2 or lines[0].strip() != b"$MeshFormat":
            return False
        fields = lines[1].split()
        return len(fields) >= 1 and fields[0] == b"4.1"


def read_msh_file(file_path: PathLike, config: Optional[ParserConfig] = None) -> MshFile:
    """Read and parse an MSH file.

    Args:
        file_path: Path to the MSH file
        config: Parser configuration, defaults are used if omitted

    Returns:
        MshFile: The parsed file
    """
    return MshReader(config).read(file_path)
