"""Input and conversion functionality for mshio."""

from mshio.io.convert import node_coordinates, node_index_map, to_meshio
from mshio.io.reader import MshReader, read_msh_file

__all__ = [
    "MshReader",
    "read_msh_file",
    "node_coordinates",
    "node_index_map",
    "to_meshio",
]
