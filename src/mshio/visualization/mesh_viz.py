"""
Mesh visualization utilities for mshio.

This module provides a quick matplotlib preview of parsed MSH files: nodes
colored by entity block and the edges of first-order elements.
"""

import logging
from typing import Dict, List, Optional, Tuple

import matplotlib.pyplot as plt
import numpy as np
from mpl_toolkits.mplot3d import Axes3D  # noqa: F401 (registers the 3d projection)
from mpl_toolkits.mplot3d.art3d import Line3DCollection

from mshio.io.convert import node_coordinates, node_index_map
from mshio.mshfile import ElementType, MshFile

# Configure logging
logger = logging.getLogger(__name__)

# Local node index pairs forming the edges of first-order elements
ELEMENT_EDGES: Dict[ElementType, List[Tuple[int, int]]] = {
    ElementType.LIN2: [(0, 1)],
    ElementType.TRI3: [(0, 1), (1, 2), (2, 0)],
    ElementType.QUA4: [(0, 1), (1, 2), (2, 3), (3, 0)],
    ElementType.TET4: [(0, 1), (1, 2), (2, 0), (0, 3), (1, 3), (2, 3)],
    ElementType.HEX8: [(0, 1), (1, 2), (2, 3), (3, 0), (4, 5), (5, 6), (6, 7), (7, 4),
                       (0, 4), (1, 5), (2, 6), (3, 7)],
    ElementType.PRI6: [(0, 1), (1, 2), (2, 0), (3, 4), (4, 5), (5, 3), (0, 3), (1, 4), (2, 5)],
    ElementType.PYR5: [(0, 1), (1, 2), (2, 3), (3, 0), (0, 4), (1, 4), (2, 4), (3, 4)],
}


def element_segments(msh: MshFile) -> np.ndarray:
    """Collect the edges of all supported elements as line segments.

    Args:
        msh: Parsed MSH file

    Returns:
        Array of shape ``(M, 2, 3)`` with the end points of each edge
    """
    if msh.nodes is None or msh.elements is None:
        return np.zeros((0, 2, 3))

    points = node_coordinates(msh)
    index = node_index_map(msh.nodes)
    segments = []
    for block in msh.elements.element_blocks:
        edges = ELEMENT_EDGES.get(block.element_type)
        if edges is None:
            logger.debug(f"No edge definition for {block.element_type.name}, skipping block")
            continue
        for element in block.elements:
            for a, b in edges:
                tag_a, tag_b = element.nodes[a], element.nodes[b]
                if tag_a in index and tag_b in index:
                    segments.append((points[index[tag_a]], points[index[tag_b]]))
    if not segments:
        return np.zeros((0, 2, 3))
    return np.array(segments)


def plot_msh(
    msh: MshFile,
    ax=None,
    save_path: Optional[str] = None,
    fig_size: Tuple[int, int] = (10, 8),
    dpi: int = 150,
    title: str = "MSH mesh",
    point_size: float = 4.0,
    show: bool = False,
):
    """Plot the nodes and element edges of a parsed MSH file.

    Args:
        msh: Parsed MSH file
        ax: Optional 3D matplotlib axes to draw into
        save_path: Optional path to save the figure
        fig_size: Size of the figure as (width, height) in inches
        dpi: Resolution of the saved figure in dots per inch
        title: Title for the plot
        point_size: Size of the node markers
        show: Whether to open an interactive window

    Returns:
        The matplotlib axes the mesh was drawn into
    """
    if ax is None:
        fig = plt.figure(figsize=fig_size)
        ax = fig.add_subplot(111, projection='3d')
    else:
        fig = ax.figure

    colors = plt.cm.tab20.colors
    if msh.nodes is not None:
        for i, block in enumerate(msh.nodes.node_blocks):
            if len(block) == 0:
                continue
            coords = block.coordinates()
            ax.scatter(coords[:, 0], coords[:, 1], coords[:, 2],
                       s=point_size, color=colors[i % len(colors)],
                       label=f"entity {block.entity_dim}/{block.entity_tag}")

    segments = element_segments(msh)
    if len(segments) > 0:
        ax.add_collection3d(Line3DCollection(segments, colors='k', linewidths=0.5))

    points = node_coordinates(msh)
    if len(points) > 0:
        mins, maxs = points.min(axis=0), points.max(axis=0)
        ax.set_xlim(mins[0], maxs[0] if maxs[0] > mins[0] else mins[0] + 1)
        ax.set_ylim(mins[1], maxs[1] if maxs[1] > mins[1] else mins[1] + 1)
        ax.set_zlim(mins[2], maxs[2] if maxs[2] > mins[2] else mins[2] + 1)

    ax.set_xlabel('X')
    ax.set_ylabel('Y')
    ax.set_zlabel('Z')
    ax.set_title(title)

    logger.info(f"Plotted {len(points)} nodes and {len(segments)} element edges")

    if save_path:
        fig.savefig(save_path, dpi=dpi, bbox_inches='tight')
        logger.info(f"Mesh plot saved to {save_path}")

    if show:
        plt.show()

    return ax
