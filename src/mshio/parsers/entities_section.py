"""
Parser for the ``$Entities`` section of MSH files.
"""

import logging
from typing import Callable, List, Tuple

from mshio.errors import error_context
from mshio.mshfile import Curve, Entities, Point, Surface, Volume
from mshio.parsers.general_parsers import Cursor
from mshio.parsers.num_parsers import NumParsers

logger = logging.getLogger(__name__)


def _parse_tag_list(cursor: Cursor, parsers: NumParsers) -> Tuple[Tuple[int, ...], Cursor]:
    count, rest = parsers.usize(cursor)
    tags, rest = parsers.int_array(rest, count)
    return tuple(tags), rest


def parse_point(cursor: Cursor, parsers: NumParsers) -> Tuple[Point, Cursor]:
    """Parse a single point entity record."""
    tag, rest = parsers.int(cursor)
    (x, y, z), rest = parsers.float_array(rest, 3)
    with error_context(rest, "physical tags"):
        physical_tags, rest = _parse_tag_list(rest, parsers)
    return Point(tag=tag, x=x, y=y, z=z, physical_tags=physical_tags), rest


def _bounded_entity_parser(entity_cls, bounding_label: str) -> Callable:
    def parse(cursor: Cursor, parsers: NumParsers):
        tag, rest = parsers.int(cursor)
        box, rest = parsers.float_array(rest, 6)
        with error_context(rest, "physical tags"):
            physical_tags, rest = _parse_tag_list(rest, parsers)
        with error_context(rest, bounding_label):
            bounding_tags, rest = _parse_tag_list(rest, parsers)
        return entity_cls(tag, *box, physical_tags, bounding_tags), rest
    return parse


parse_curve = _bounded_entity_parser(Curve, "bounding point tags")
parse_surface = _bounded_entity_parser(Surface, "bounding curve tags")
parse_volume = _bounded_entity_parser(Volume, "bounding surface tags")


def _parse_records(cursor: Cursor, parsers: NumParsers, parse_record: Callable,
                   count: int, name: str) -> Tuple[List, Cursor]:
    records = []
    for i in range(count):
        with error_context(cursor, lambda i=i: f"{name} entity ({i + 1} of {count})"):
            record, cursor = parse_record(cursor, parsers)
        records.append(record)
    return records, cursor


def parse_entity_section(cursor: Cursor, parsers: NumParsers) -> Tuple[Entities, Cursor]:
    """Parse the body of an ``$Entities`` section.

    Args:
        cursor: Position right after the ``$Entities`` line
        parsers: Numeric readers of the file

    Returns:
        The entities and the position after the last record
    """
    with error_context(cursor, "number of entities"):
        num_points, rest = parsers.usize(cursor)
        num_curves, rest = parsers.usize(rest)
        num_surfaces, rest = parsers.usize(rest)
        num_volumes, rest = parsers.usize(rest)

    points, rest = _parse_records(rest, parsers, parse_point, num_points, "point")
    curves, rest = _parse_records(rest, parsers, parse_curve, num_curves, "curve")
    surfaces, rest = _parse_records(rest, parsers, parse_surface, num_surfaces, "surface")
    volumes, rest = _parse_records(rest, parsers, parse_volume, num_volumes, "volume")

    logger.debug(f"Parsed {num_points} points, {num_curves} curves, "
                 f"{num_surfaces} surfaces and {num_volumes} volumes")

    entities = Entities(
        points=tuple(points),
        curves=tuple(curves),
        surfaces=tuple(surfaces),
        volumes=tuple(volumes),
    )
    return entities, rest
