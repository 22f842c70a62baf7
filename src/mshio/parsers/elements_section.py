"""
Parser for the ``$Elements`` section of MSH files.
"""

import logging
from typing import Dict, Optional, Tuple

from mshio.errors import MshParserError, MshParserErrorKind, error_context, error_kind
from mshio.mshfile import Element, ElementBlock, Elements, ElementType
from mshio.parsers.general_parsers import (
    Cursor, has_sparse_tags, parse_block_section_header
)
from mshio.parsers.num_parsers import NumParsers

logger = logging.getLogger(__name__)


def parse_element_type(cursor: Cursor, parsers: NumParsers) -> Tuple[ElementType, Cursor]:
    """Parse an element type code and look it up.

    Raises:
        MshParserError: UNKNOWN_ELEMENT if the code is not a known element type
    """
    code, rest = parsers.int(cursor)
    element_type = ElementType.from_code(code)
    if element_type is None:
        raise MshParserError.from_kind(cursor, MshParserErrorKind.UNKNOWN_ELEMENT).with_context(
            cursor, f"value {code}")
    return element_type, rest


def parse_element(cursor: Cursor, parsers: NumParsers, num_nodes: int) -> Tuple[Element, Cursor]:
    """Parse one element: its tag followed by the tags of its nodes."""
    tag, rest = parsers.size_t(cursor)
    nodes, rest = parsers.size_t_array(rest, num_nodes)
    return Element(tag=tag, nodes=tuple(nodes)), rest


def parse_element_block(cursor: Cursor, parsers: NumParsers,
                        sparse_tags: bool) -> Tuple[ElementBlock, Cursor]:
    """Parse one entity block of elements.

    Args:
        cursor: Position of the block header
        parsers: Numeric readers of the file
        sparse_tags: Whether a tag to index map has to be built

    Returns:
        The element block and the position after its last element
    """
    entity_dim, rest = parsers.int(cursor)
    entity_tag, rest = parsers.int(rest)
    type_pos = rest
    element_type, rest = parse_element_type(rest, parsers)

    with error_context(rest, "number of elements in block"):
        num_elements, rest = parsers.usize(rest)

    num_nodes = element_type.num_nodes
    if num_nodes is None:
        raise MshParserError.from_kind(type_pos, MshParserErrorKind.UNIMPLEMENTED).with_context(
            type_pos, f"element type {element_type.name} without a fixed number of nodes")

    elements = []
    for i in range(num_elements):
        with error_context(rest, lambda i=i: f"element definition ({i + 1} of {num_elements})"):
            with error_kind(rest, MshParserErrorKind.INVALID_ELEMENT_DEFINITION):
                element, rest = parse_element(rest, parsers, num_nodes)
        elements.append(element)

    element_tags: Optional[Dict[int, int]] = None
    if sparse_tags:
        element_tags = {element.tag: i for i, element in enumerate(elements)}

    block = ElementBlock(
        entity_dim=entity_dim,
        entity_tag=entity_tag,
        element_type=element_type,
        element_tags=element_tags,
        elements=tuple(elements),
    )
    return block, rest


def parse_element_section(cursor: Cursor, parsers: NumParsers) -> Tuple[Elements, Cursor]:
    """Parse the body of an ``$Elements`` section.

    Args:
        cursor: Position right after the ``$Elements`` line
        parsers: Numeric readers of the file

    Returns:
        The elements and the position after the last element block
    """
    with error_context(cursor, "element section header"):
        (num_blocks, num_elements, min_tag, max_tag), rest = \
            parse_block_section_header(cursor, parsers, "Element")

    sparse_tags = has_sparse_tags(min_tag, max_tag, num_elements)

    blocks = []
    for i in range(num_blocks):
        with error_context(rest, lambda i=i: f"element entity block ({i + 1} of {num_blocks})"):
            block, rest = parse_element_block(rest, parsers, sparse_tags)
        blocks.append(block)

    parsed = sum(len(block) for block in blocks)
    if parsed != num_elements:
        logger.warning(f"Element section declares {num_elements} elements but its blocks contain {parsed}")
    logger.debug(f"Parsed {parsed} elements in {num_blocks} blocks (sparse tags: {sparse_tags})")

    elements = Elements(
        num_elements=num_elements,
        min_element_tag=min_tag,
        max_element_tag=max_tag,
        element_blocks=tuple(blocks),
    )
    return elements, rest
