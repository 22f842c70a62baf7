"""
Top-level parser for MSH 4.1 files.

The file consists of the ``$MeshFormat`` header followed by any number of
``$Name`` ... ``$EndName`` sections. ``$Entities``, ``$Nodes`` and
``$Elements`` are parsed; every other section is skipped.
"""

import logging
import re
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Tuple

from mshio.core.config import DuplicateSectionPolicy, ParserConfig
from mshio.errors import MshParserError, MshParserErrorKind, error_context, error_kind
from mshio.mshfile import Elements, Entities, MshData, MshFile, NodeBlock, Nodes
from mshio.parsers.elements_section import parse_element_section
from mshio.parsers.entities_section import parse_entity_section
from mshio.parsers.general_parsers import ByteSource, Cursor, section_name, tag, take_sp
from mshio.parsers.header_section import parse_header_section
from mshio.parsers.nodes_section import parse_node_section
from mshio.parsers.num_parsers import NumParsers

logger = logging.getLogger(__name__)

# Section name -> (context label, section parser)
KNOWN_SECTIONS: Dict[str, Tuple[str, Callable]] = {
    "Entities": ("entity section", parse_entity_section),
    "Nodes": ("node section", parse_node_section),
    "Elements": ("element section", parse_element_section),
}


def _skip_section(cursor: Cursor, body: Cursor, name: str) -> Cursor:
    # The end tag has to fill a whole line, "$EndFoo" must not match "$EndFooBar"
    end = re.compile(rb"^\$End" + re.escape(name.encode("ascii")) + rb"[ \t]*(?=\r?\n|\Z)",
                     re.MULTILINE)
    match = end.search(body.data, body.pos, body.end)
    if match is None:
        raise MshParserError.from_kind(cursor, MshParserErrorKind.INVALID_SECTION_HEADER).with_context(
            cursor, f"unterminated section '${name}'")
    logger.debug(f"Skipping unsupported section ${name} ({match.start() - body.pos} bytes)")
    return body.moved_to(match.end())


def _parse_section(cursor: Cursor, parsers: NumParsers,
                   sections: Dict[str, List[Tuple[Cursor, object]]]) -> Cursor:
    """Parse or skip the section starting at ``cursor`` and return the position after it."""
    with error_kind(cursor, MshParserErrorKind.INVALID_SECTION_HEADER):
        name, body = section_name(cursor)

    if name not in KNOWN_SECTIONS:
        return _skip_section(cursor, body, name)

    label, parse_section = KNOWN_SECTIONS[name]
    with error_context(cursor, label):
        value, rest = parse_section(body, parsers)
        _, rest = take_sp(rest)
        with error_kind(rest, MshParserErrorKind.INVALID_SECTION_HEADER):
            _, rest = tag(f"$End{name}".encode("ascii"))(rest)

    sections[name].append((cursor, value))
    return rest


def _merge_entities(parts: List[Entities]) -> Entities:
    return Entities(
        points=tuple(p for part in parts for p in part.points),
        curves=tuple(c for part in parts for c in part.curves),
        surfaces=tuple(s for part in parts for s in part.surfaces),
        volumes=tuple(v for part in parts for v in part.volumes),
    )


def _with_explicit_tags(nodes: Nodes) -> Tuple[NodeBlock, ...]:
    """Give dense blocks a tag map so their tags survive a change of the section minimum."""
    blocks = []
    first_tag = nodes.min_node_tag
    for block in nodes.node_blocks:
        if block.node_tags is None:
            block = replace(block, node_tags={first_tag + i: i for i in range(len(block))})
        first_tag += len(block)
        blocks.append(block)
    return tuple(blocks)


def _merge_nodes(parts: List[Nodes]) -> Nodes:
    return Nodes(
        num_nodes=sum(p.num_nodes for p in parts),
        min_node_tag=min(p.min_node_tag for p in parts),
        max_node_tag=max(p.max_node_tag for p in parts),
        node_blocks=tuple(b for part in parts for b in _with_explicit_tags(part)),
    )


def _merge_elements(parts: List[Elements]) -> Elements:
    return Elements(
        num_elements=sum(p.num_elements for p in parts),
        min_element_tag=min(p.min_element_tag for p in parts),
        max_element_tag=max(p.max_element_tag for p in parts),
        element_blocks=tuple(b for part in parts for b in part.element_blocks),
    )


_MERGERS = {
    "Entities": _merge_entities,
    "Nodes": _merge_nodes,
    "Elements": _merge_elements,
}


def _collect_section(name: str, found: List[Tuple[Cursor, object]],
                     policy: DuplicateSectionPolicy) -> Optional[object]:
    if not found:
        return None
    if len(found) == 1:
        return found[0][1]

    if policy is DuplicateSectionPolicy.MERGE:
        logger.info(f"Merging {len(found)} ${name} sections")
        return _MERGERS[name]([value for _, value in found])

    cursor = found[1][0]
    label = KNOWN_SECTIONS[name][0]
    raise MshParserError.from_kind(cursor, MshParserErrorKind.UNIMPLEMENTED).with_context(
        cursor, f"multiple {label}s ({len(found)} ${name} sections found)")


def parse_msh(cursor: Cursor, config: Optional[ParserConfig] = None) -> Tuple[MshFile, Cursor]:
    """Parse a complete MSH file starting at ``cursor``.

    Args:
        cursor: Position of the ``$MeshFormat`` section
        config: Parser configuration, defaults are used if omitted

    Returns:
        The parsed file and the position after the last section

    Raises:
        MshParserError: If the file cannot be parsed
    """
    config = config or ParserConfig()

    _, cursor = take_sp(cursor)
    with error_context(cursor, "MSH file header"):
        (header, parsers), rest = parse_header_section(cursor, config)

    sections: Dict[str, List[Tuple[Cursor, object]]] = {name: [] for name in KNOWN_SECTIONS}
    while True:
        _, rest = take_sp(rest)
        if rest.at_end:
            break
        rest = _parse_section(rest, parsers, sections)

    data = MshData(
        entities=_collect_section("Entities", sections["Entities"], config.duplicate_sections),
        nodes=_collect_section("Nodes", sections["Nodes"], config.duplicate_sections),
        elements=_collect_section("Elements", sections["Elements"], config.duplicate_sections),
    )
    msh = MshFile(header=header, data=data)

    logger.info(f"Parsed MSH {header.version} {'binary' if header.is_binary else 'ASCII'} file with "
                f"{msh.total_node_count()} nodes and {msh.total_element_count()} elements")
    return msh, rest


def parse_bytes(data: ByteSource, config: Optional[ParserConfig] = None) -> Tuple[bytes, MshFile]:
    """Parse an MSH file from memory.

    Args:
        data: Complete content of an MSH file
        config: Parser configuration, defaults are used if omitted

    Returns:
        Tuple of the unparsed remainder of the input and the parsed file
    """
    msh, rest = parse_msh(Cursor(data), config)
    return rest.rest(), msh


def parse_msh_bytes(data: ByteSource, config: Optional[ParserConfig] = None) -> MshFile:
    """Parse an MSH file from memory.

    Args:
        data: Complete content of an MSH file
        config: Parser configuration, defaults are used if omitted

    Returns:
        The parsed file

    Raises:
        MshParserError: If the file cannot be parsed
    """
    _, msh = parse_bytes(data, config)
    return msh


def parses(data: ByteSource, config: Optional[ParserConfig] = None) -> bool:
    """Check whether ``data`` is a valid MSH 4.1 file."""
    try:
        parse_msh_bytes(data, config)
    except MshParserError as e:
        logger.debug(f"Input is not a valid MSH file: {e.first_msh_error()}")
        return False
    return True
