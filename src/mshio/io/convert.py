"""
Conversion of parsed MSH files to numpy arrays and meshio meshes.
"""

import logging
from typing import Dict, List, Tuple

import numpy as np

from mshio.mshfile import ElementType, MshFile, Nodes

logger = logging.getLogger(__name__)

# Check for meshio availability
try:
    import meshio
    MESHIO_AVAILABLE = True
except ImportError:
    MESHIO_AVAILABLE = False
    logger.debug("meshio not available. Install with 'pip install meshio' for meshio conversion.")

# Element types whose node ordering matches meshio's cell types
MESHIO_CELL_TYPES: Dict[ElementType, str] = {
    ElementType.PNT: "vertex",
    ElementType.LIN2: "line",
    ElementType.TRI3: "triangle",
    ElementType.QUA4: "quad",
    ElementType.TET4: "tetra",
    ElementType.HEX8: "hexahedron",
    ElementType.PRI6: "wedge",
    ElementType.PYR5: "pyramid",
    ElementType.LIN3: "line3",
    ElementType.TRI6: "triangle6",
    ElementType.QUA8: "quad8",
    ElementType.QUA9: "quad9",
}


def node_index_map(nodes: Nodes) -> Dict[int, int]:
    """Map every node tag to its row in the stacked coordinate array.

    Blocks without a tag map use consecutive tags starting at the minimum
    node tag of the section.

    Args:
        nodes: Parsed node section

    Returns:
        Dictionary from node tag to row index
    """
    index = {}
    offset = 0
    for block in nodes.node_blocks:
        if block.node_tags is not None:
            for node_tag, local in block.node_tags.items():
                index[node_tag] = offset + local
        else:
            for local in range(len(block)):
                index[nodes.min_node_tag + offset + local] = offset + local
        offset += len(block)
    return index


def node_coordinates(msh: MshFile) -> np.ndarray:
    """Return the coordinates of all nodes as an ``(N, 3)`` array."""
    if msh.nodes is None or not msh.nodes.node_blocks:
        return np.zeros((0, 3), dtype=np.float64)
    return np.vstack([block.coordinates() for block in msh.nodes.node_blocks])


def _physical_tag_lookup(msh: MshFile) -> Dict[Tuple[int, int], int]:
    lookup = {}
    if msh.entities is None:
        return lookup
    groups = (msh.entities.points, msh.entities.curves, msh.entities.surfaces, msh.entities.volumes)
    for dim, entities in enumerate(groups):
        for entity in entities:
            if entity.physical_tags:
                lookup[(dim, entity.tag)] = entity.physical_tags[0]
    return lookup


def to_meshio(msh: MshFile):
    """Convert a parsed MSH file to a ``meshio.Mesh``.

    Element blocks of the same type are kept as separate cell blocks so
    that the geometrical entity of each block is preserved in
    ``cell_data["gmsh:geometrical"]``. Element types without a meshio
    counterpart are skipped.

    Args:
        msh: Parsed MSH file

    Returns:
        meshio.Mesh: The converted mesh

    Raises:
        ImportError: If meshio is not available
        ValueError: If an element references a node that is not in the file
    """
    if not MESHIO_AVAILABLE:
        raise ImportError("meshio is required for mesh conversion. Install it with 'pip install meshio'")

    points = node_coordinates(msh)
    index = node_index_map(msh.nodes) if msh.nodes is not None else {}
    physical = _physical_tag_lookup(msh)

    cells: List = []
    geometrical: List[np.ndarray] = []
    physical_data: List[np.ndarray] = []
    skipped: Dict[ElementType, int] = {}

    blocks = msh.elements.element_blocks if msh.elements is not None else ()
    for block in blocks:
        cell_type = MESHIO_CELL_TYPES.get(block.element_type)
        if cell_type is None:
            skipped[block.element_type] = skipped.get(block.element_type, 0) + len(block)
            continue
        try:
            data = np.array([[index[t] for t in element.nodes] for element in block.elements],
                            dtype=np.int64).reshape(-1, block.element_type.num_nodes)
        except KeyError as e:
            raise ValueError(f"Element in entity {block.entity_tag} references unknown node tag {e.args[0]}")
        cells.append(meshio.CellBlock(cell_type, data))
        geometrical.append(np.full(len(block), block.entity_tag, dtype=np.int64))
        physical_data.append(np.full(len(block), physical.get((block.entity_dim, block.entity_tag), 0),
                                     dtype=np.int64))

    for element_type, count in skipped.items():
        logger.warning(f"Skipping {count} elements of type {element_type.name} without meshio equivalent")

    cell_data = {"gmsh:geometrical": geometrical}
    if physical:
        cell_data["gmsh:physical"] = physical_data

    logger.info(f"Converted MSH mesh to meshio: {len(points)} points, {len(cells)} cell blocks")
    return meshio.Mesh(points=points, cells=cells, cell_data=cell_data)
