"""
Parser for the ``$Nodes`` section of MSH files.

Nodes are grouped into blocks, one per geometric entity. Each block lists
all node tags first and the coordinates of the nodes afterwards. Node tags
are only stored when the tags of the section are sparse; otherwise the tag
of a node follows from its position.
"""

import logging
from typing import Dict, Optional, Tuple

from mshio.errors import MshParserErrorKind, error_context, error_kind, fail
from mshio.mshfile import Node, NodeBlock, Nodes
from mshio.parsers.general_parsers import (
    Cursor, has_sparse_tags, parse_block_section_header
)
from mshio.parsers.num_parsers import NumParsers

logger = logging.getLogger(__name__)


def _parse_parametric_flag(cursor: Cursor, parsers: NumParsers) -> Tuple[bool, Cursor]:
    value, rest = parsers.int(cursor)
    if value not in (0, 1):
        fail(cursor, MshParserErrorKind.INVALID_PARAMETER)
    if value == 1:
        with error_context(cursor, "parametric node coordinates"):
            fail(cursor, MshParserErrorKind.UNIMPLEMENTED)
    return bool(value), rest


def parse_node_block(cursor: Cursor, parsers: NumParsers,
                     sparse_tags: bool) -> Tuple[NodeBlock, Cursor]:
    """Parse one entity block of nodes.

    Args:
        cursor: Position of the block header
        parsers: Numeric readers of the file
        sparse_tags: Whether a tag to index map has to be built

    Returns:
        The node block and the position after its last coordinate
    """
    entity_dim, rest = parsers.int(cursor)
    entity_tag, rest = parsers.int(rest)
    parametric, rest = _parse_parametric_flag(rest, parsers)

    with error_context(rest, "number of nodes in block"):
        num_nodes, rest = parsers.usize(rest)

    with error_context(rest, "node tags"):
        with error_kind(rest, MshParserErrorKind.INVALID_NODE_DEFINITION):
            tags, rest = parsers.size_t_array(rest, num_nodes)

    node_tags: Optional[Dict[int, int]] = None
    if sparse_tags:
        node_tags = {node_tag: i for i, node_tag in enumerate(tags)}

    with error_context(rest, "node coordinates"):
        with error_kind(rest, MshParserErrorKind.INVALID_NODE_DEFINITION):
            coords, rest = parsers.float_array(rest, 3 * num_nodes)

    nodes = tuple(Node(*coords[i:i + 3]) for i in range(0, len(coords), 3))
    block = NodeBlock(
        entity_dim=entity_dim,
        entity_tag=entity_tag,
        parametric=parametric,
        node_tags=node_tags,
        nodes=nodes,
    )
    return block, rest


def parse_node_section(cursor: Cursor, parsers: NumParsers) -> Tuple[Nodes, Cursor]:
    """Parse the body of a ``$Nodes`` section.

    Args:
        cursor: Position right after the ``$Nodes`` line
        parsers: Numeric readers of the file

    Returns:
        The nodes and the position after the last node block

    Raises:
        MshParserError: If the section is malformed or uses parametric nodes
    """
    with error_context(cursor, "node section header"):
        (num_blocks, num_nodes, min_tag, max_tag), rest = \
            parse_block_section_header(cursor, parsers, "Node")

    sparse_tags = has_sparse_tags(min_tag, max_tag, num_nodes)

    blocks = []
    for i in range(num_blocks):
        with error_context(rest, lambda i=i: f"node entity block ({i + 1} of {num_blocks})"):
            block, rest = parse_node_block(rest, parsers, sparse_tags)
        blocks.append(block)

    parsed = sum(len(block) for block in blocks)
    if parsed != num_nodes:
        logger.warning(f"Node section declares {num_nodes} nodes but its blocks contain {parsed}")
    logger.debug(f"Parsed {parsed} nodes in {num_blocks} blocks (sparse tags: {sparse_tags})")

    nodes = Nodes(
        num_nodes=num_nodes,
        min_node_tag=min_tag,
        max_node_tag=max_tag,
        node_blocks=tuple(blocks),
    )
    return nodes, rest
