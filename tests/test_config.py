#!/usr/bin/env python
"""
Test suite for the parser configuration.
"""

import os
import sys
import unittest

import numpy as np

# Add source directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from msh_samples import build_msh, grid_mesh

from mshio import DuplicateSectionPolicy, MshParserErrorKind, MshParserError, ParserConfig, parse_msh_bytes


class TestParserConfig(unittest.TestCase):
    """Tests for ParserConfig validation."""

    def test_defaults(self):
        config = ParserConfig()
        self.assertIs(config.duplicate_sections, DuplicateSectionPolicy.REJECT)
        self.assertEqual(np.dtype(config.size_t_dtype), np.dtype(np.uint64))
        self.assertEqual(config.hexdump_width, 16)
        self.assertEqual(config.hexdump_max_bytes, 128)

    def test_policy_from_string(self):
        self.assertIs(ParserConfig(duplicate_sections="merge").duplicate_sections,
                      DuplicateSectionPolicy.MERGE)
        with self.assertRaises(ValueError):
            ParserConfig(duplicate_sections="ignore")

    def test_dtype_kinds(self):
        with self.assertRaises(ValueError):
            ParserConfig(size_t_dtype=np.int64)
        with self.assertRaises(ValueError):
            ParserConfig(int_dtype=np.float64)
        with self.assertRaises(ValueError):
            ParserConfig(float_dtype=np.int32)

    def test_hexdump_settings(self):
        with self.assertRaises(ValueError):
            ParserConfig(hexdump_width=0)
        with self.assertRaises(ValueError):
            ParserConfig(hexdump_max_bytes=-1)


class TestTargetTypes(unittest.TestCase):
    """The configured dtypes bound the values accepted by the parser."""

    def test_narrow_size_t(self):
        mesh = grid_mesh()
        dim, tag, element_type, records = mesh["elements"]["blocks"][0]
        records[0] = (70000, records[0][1])
        mesh["elements"]["blocks"][0] = (dim, tag, element_type, records)
        data = build_msh(mesh, binary=True)

        self.assertEqual(parse_msh_bytes(data).elements.max_element_tag, 70000)
        with self.assertRaises(MshParserError) as ctx:
            parse_msh_bytes(data, ParserConfig(size_t_dtype=np.uint16))
        self.assertEqual(ctx.exception.first_msh_error(), MshParserErrorKind.VALUE_OUT_OF_RANGE)

    def test_float32_coordinates(self):
        mesh = grid_mesh()
        dim, tag, parametric, tags, coords = mesh["nodes"]["blocks"][0]
        coords[1] = (0.1, 0.0, 0.0)
        mesh["nodes"]["blocks"][0] = (dim, tag, parametric, tags, coords)
        for binary in (False, True):
            with self.subTest(binary=binary):
                msh = parse_msh_bytes(build_msh(mesh, binary=binary), ParserConfig(float_dtype=np.float32))
                self.assertEqual(msh.nodes.node_blocks[0].nodes[1].x, float(np.float32(0.1)))


if __name__ == "__main__":
    unittest.main()
