"""Command-line interface for mshio.

This module provides the main entry point for the mshio command-line application.
"""

import argparse
import logging
import os
import sys
import traceback
from typing import List, Optional

from mshio.core.config import DuplicateSectionPolicy, ParserConfig
from mshio.errors import MshParserError
from mshio.io.reader import read_msh_file
from mshio.mshfile import MshFile
from mshio.visualization.mesh_viz import plot_msh


def setup_logging(debug_mode: bool = False) -> None:
    """Configure logging based on debug mode.

    Args:
        debug_mode: If True, set logging level to DEBUG, otherwise INFO
    """
    log_level = logging.DEBUG if debug_mode else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        argv: Argument list, defaults to ``sys.argv[1:]``

    Returns:
        Parsed command line arguments
    """
    parser = argparse.ArgumentParser(
        description='Parse a Gmsh MSH 4.1 mesh file (ASCII or binary) and print a summary'
    )
    parser.add_argument('mesh_file', help='Path to the .msh file')

    # Parser control group
    parser_group = parser.add_argument_group('parser', 'Control how the file is parsed')
    parser_group.add_argument('--merge-duplicate-sections', action='store_true',
                              help='Merge repeated $Entities/$Nodes/$Elements sections instead of failing')
    parser_group.add_argument('--hexdump-bytes', type=int, default=128,
                              help='Number of bytes shown in the hex dump of error reports')

    # Visualization control group
    viz_group = parser.add_argument_group('visualization', 'Control visualization options')
    viz_group.add_argument('--plot', action='store_true', help='Show the nodes and elements of the mesh')
    viz_group.add_argument('--save-plot', type=str, default=None, help='Save visualization to specified file path')

    # Advanced settings
    adv_group = parser.add_argument_group('advanced', 'Advanced settings')
    adv_group.add_argument('--debug', action='store_true', help='Enable debug output')

    return parser.parse_args(argv)


def format_summary(msh: MshFile) -> str:
    """Build a human readable summary of a parsed file."""
    header = msh.header
    lines = [
        f"MSH format version: {header.version}",
        f"Encoding: {'binary' if header.is_binary else 'ASCII'}"
        + (f" ({header.endianness.value} endian, size_t {header.size_t_size} bytes)"
           if header.is_binary else ""),
    ]
    if msh.entities is not None:
        e = msh.entities
        lines.append(f"Entities: {len(e.points)} points, {len(e.curves)} curves, "
                     f"{len(e.surfaces)} surfaces, {len(e.volumes)} volumes")
    if msh.nodes is not None:
        lines.append(f"Nodes: {msh.total_node_count()} in {len(msh.nodes.node_blocks)} blocks "
                     f"(tags {msh.nodes.min_node_tag}-{msh.nodes.max_node_tag})")
    if msh.elements is not None:
        lines.append(f"Elements: {msh.total_element_count()} in {len(msh.elements.element_blocks)} blocks")
        for element_type, count in sorted(msh.count_element_types().items()):
            lines.append(f"  {element_type.name}: {count}")
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    """Main function to run the MSH parser.

    Returns:
        Exit code: 0 for success, non-zero for error
    """
    # Parse command line arguments
    args = parse_arguments(argv)

    # Set up logging
    setup_logging(args.debug)
    logger = logging.getLogger(__name__)

    logger.info(f"Processing mesh file: {args.mesh_file}")

    # Validate input file exists
    if not os.path.exists(args.mesh_file):
        logger.error(f"Mesh file not found: {args.mesh_file}")
        return 1

    try:
        config = ParserConfig(
            duplicate_sections=(DuplicateSectionPolicy.MERGE if args.merge_duplicate_sections
                                else DuplicateSectionPolicy.REJECT),
            hexdump_max_bytes=args.hexdump_bytes,
            debug=args.debug,
        )
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    try:
        msh = read_msh_file(args.mesh_file, config)
    except MshParserError as e:
        logger.error(f"Failed to parse MSH file: {args.mesh_file}")
        print(e.report(width=config.hexdump_width, max_bytes=config.hexdump_max_bytes), file=sys.stderr)
        if args.debug:
            logger.debug(traceback.format_exc())
        return 1
    except OSError as e:
        logger.error(f"Failed to read mesh file: {e}")
        if args.debug:
            logger.debug(traceback.format_exc())
        return 1

    print(format_summary(msh))

    if args.plot or args.save_plot:
        try:
            plot_msh(msh, save_path=args.save_plot, show=args.plot)
        except Exception as e:
            logger.error(f"Visualization failed: {e}")
            if args.debug:
                logger.debug(traceback.format_exc())
            return 1

    return 0
