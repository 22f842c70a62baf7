#!/usr/bin/env python
"""
Test suite for parsing complete MSH files.

Every test mesh is generated by msh_samples in ASCII and in binary form.
"""

import os
import struct
import sys
import unittest

import numpy as np

# Add source directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from msh_samples import ALL_ENCODINGS, TWO_TRIANGLES, build_msh, grid_mesh, higher_order_mesh

from mshio import (
    DuplicateSectionPolicy, ElementType, Endianness, MshParserError, MshParserErrorKind,
    Node, ParserConfig, parse_bytes, parse_msh_bytes, parses
)
from mshio.io.convert import node_index_map


def assert_parse_error(test, data, kind, config=None):
    """Parse ``data``, expect a failure of ``kind`` and return the error."""
    with test.assertRaises(MshParserError) as ctx:
        parse_msh_bytes(data, config)
    test.assertEqual(ctx.exception.first_msh_error(), kind, ctx.exception.report())
    return ctx.exception


class TestHeader(unittest.TestCase):
    """Tests for the $MeshFormat section."""

    def test_ascii_header(self):
        msh = parse_msh_bytes(b"$MeshFormat\n4.1 0 8\n$EndMeshFormat\n")
        self.assertEqual(msh.header.version, 4.1)
        self.assertFalse(msh.header.is_binary)
        self.assertIsNone(msh.header.endianness)
        self.assertEqual((msh.header.size_t_size, msh.header.int_size, msh.header.float_size), (8, 4, 8))
        self.assertIsNone(msh.nodes)

    def test_binary_endianness_detection(self):
        for prefix, expected in (("<", Endianness.LITTLE), (">", Endianness.BIG)):
            data = b"$MeshFormat\n4.1 1 8\n" + struct.pack(prefix + "i", 1) + b"\n$EndMeshFormat\n"
            msh = parse_msh_bytes(data)
            self.assertTrue(msh.header.is_binary)
            self.assertEqual(msh.header.endianness, expected)

    def test_crlf_line_endings(self):
        data = build_msh().replace(b"\n", b"\r\n")
        msh = parse_msh_bytes(data)
        self.assertEqual(msh.total_node_count(), 25)

    def test_unsupported_version(self):
        data = build_msh(version="27.1")
        assert_parse_error(self, data, MshParserErrorKind.UNSUPPORTED_MSH_VERSION)

    def test_invalid_file_type(self):
        assert_parse_error(self, b"$MeshFormat\n4.1 2 8\n$EndMeshFormat\n",
                           MshParserErrorKind.INVALID_FILE_HEADER)

    def test_invalid_endianness_marker(self):
        data = b"$MeshFormat\n4.1 1 8\n" + struct.pack("<i", 7) + b"\n$EndMeshFormat\n"
        assert_parse_error(self, data, MshParserErrorKind.INVALID_FILE_HEADER)

    def test_missing_header(self):
        assert_parse_error(self, b"$Nodes\n0 0 0 0\n$EndNodes\n", MshParserErrorKind.INVALID_FILE_HEADER)

    def test_unsupported_size_t_width(self):
        data = b"$MeshFormat\n4.1 1 3\n" + struct.pack("<i", 1) + b"\n$EndMeshFormat\n"
        err = assert_parse_error(self, data, MshParserErrorKind.UNSUPPORTED_TYPE_SIZE)
        self.assertEqual(err.first_msh_entry().detail[1], 3)


class TestGridMesh(unittest.TestCase):
    """Tests for the 25 node quad mesh in all encodings."""

    def test_counts(self):
        for encoding in ALL_ENCODINGS:
            with self.subTest(**encoding):
                msh = parse_msh_bytes(build_msh(**encoding))
                self.assertEqual(msh.total_node_count(), 25)
                self.assertEqual(msh.nodes.num_nodes, 25)
                self.assertEqual(msh.total_element_count(), 20)
                self.assertEqual(msh.count_element_types(), {ElementType.QUA4: 20})

    def test_ascii_and_binary_data_are_equal(self):
        reference = parse_msh_bytes(build_msh())
        for encoding in ALL_ENCODINGS[1:]:
            with self.subTest(**encoding):
                msh = parse_msh_bytes(build_msh(**encoding))
                self.assertEqual(msh.data, reference.data)
                self.assertNotEqual(msh.header, reference.header)

    def test_entities(self):
        msh = parse_msh_bytes(build_msh(binary=True, endianness=">"))
        entities = msh.entities
        self.assertEqual(len(entities.points), 4)
        self.assertEqual(entities.points[3].physical_tags, (7,))
        self.assertEqual(entities.curves[0].point_tags, (1, -2))
        self.assertEqual(entities.curves[2].physical_tags, (5,))
        self.assertEqual(entities.surfaces[0].curve_tags, (1, 2, 3, 4))
        self.assertEqual(entities.surfaces[0].bounding_box, ((0.0, 0.0, 0.0), (1.0, 1.0, 0.0)))
        self.assertEqual(entities.volumes, ())

    def test_nodes_and_elements(self):
        msh = parse_msh_bytes(build_msh())
        block = msh.nodes.node_blocks[0]
        self.assertEqual((block.entity_dim, block.entity_tag, block.parametric), (2, 1, False))
        self.assertEqual(block.nodes[6], Node(0.25, 0.25, 0.0))
        self.assertEqual(block.coordinates().shape, (25, 3))

        elements = msh.elements.element_blocks[0]
        self.assertEqual(elements.element_type, ElementType.QUA4)
        self.assertEqual(elements.elements[0].nodes, (1, 2, 7, 6))
        self.assertEqual(elements.elements[-1].nodes, (13, 15, 25, 23))
        np.testing.assert_array_equal(elements.connectivity()[0], [1, 2, 7, 6])

    def test_parse_bytes_returns_rest(self):
        rest, msh = parse_bytes(build_msh())
        self.assertEqual(rest, b"")
        self.assertEqual(msh.total_element_count(), 20)

    def test_parses(self):
        self.assertTrue(parses(build_msh()))
        self.assertFalse(parses(b"not a mesh"))


class TestSparsity(unittest.TestCase):
    """Tag maps are built exactly when tags leave gaps."""

    def test_contiguous_tags_have_no_map(self):
        msh = parse_msh_bytes(build_msh())
        self.assertIsNone(msh.nodes.node_blocks[0].node_tags)
        self.assertIsNone(msh.elements.element_blocks[0].element_tags)

    def test_sparse_tags_have_map(self):
        mesh = grid_mesh()
        dim, tag, parametric, tags, coords = mesh["nodes"]["blocks"][0]
        sparse_tags = [10 * t for t in tags]
        mesh["nodes"]["blocks"][0] = (dim, tag, parametric, sparse_tags, coords)
        dim, tag, element_type, records = mesh["elements"]["blocks"][0]
        records = [(100 + 2 * t, [10 * n for n in nodes]) for t, nodes in records]
        mesh["elements"]["blocks"][0] = (dim, tag, element_type, records)

        for encoding in ALL_ENCODINGS:
            with self.subTest(**encoding):
                msh = parse_msh_bytes(build_msh(mesh, **encoding))
                node_block = msh.nodes.node_blocks[0]
                self.assertEqual(node_block.node_tags[10], 0)
                self.assertEqual(node_block.node_tags[250], 24)
                self.assertEqual(len(node_block.node_tags), 25)
                element_block = msh.elements.element_blocks[0]
                self.assertEqual(element_block.element_tags[102], 0)
                self.assertEqual(element_block.element_tags[140], 19)

    def test_sparsity_law(self):
        msh = parse_msh_bytes(TWO_TRIANGLES)
        nodes = msh.nodes
        sparse = nodes.max_node_tag - nodes.min_node_tag > nodes.num_nodes - 1
        self.assertEqual(sparse, nodes.node_blocks[0].node_tags is not None)


class TestSections(unittest.TestCase):
    """Tests for the section dispatcher."""

    def test_unknown_sections_are_skipped(self):
        msh = parse_msh_bytes(TWO_TRIANGLES)
        self.assertEqual(msh.total_node_count(), 4)
        self.assertEqual(msh.count_element_types(), {ElementType.TRI3: 2})
        self.assertEqual(msh.entities.surfaces[0].physical_tags, (1,))

    def test_unknown_section_between_known_sections(self):
        data = build_msh(extra=b"$Foo\nbar baz\n$EndFoo\n")
        msh = parse_msh_bytes(data)
        self.assertEqual(msh.total_element_count(), 20)

    def test_unknown_section_ends_on_whole_end_tag_line(self):
        data = build_msh(extra=b"$Foo\n$EndFooBar\nbaz\n$EndFoo\n")
        msh = parse_msh_bytes(data)
        self.assertEqual(msh.total_node_count(), 25)
        self.assertEqual(msh.total_element_count(), 20)

        data = build_msh(extra=b"$Foo\r\nbar\r\n$EndFoo\r\n")
        self.assertEqual(parse_msh_bytes(data).total_element_count(), 20)

    def test_stray_line_is_invalid_section_header(self):
        data = build_msh() + b"Hello\n"
        assert_parse_error(self, data, MshParserErrorKind.INVALID_SECTION_HEADER)

    def test_unterminated_unknown_section(self):
        data = build_msh() + b"$Foo\nbar\n"
        assert_parse_error(self, data, MshParserErrorKind.INVALID_SECTION_HEADER)

    def test_duplicate_sections_rejected(self):
        mesh = grid_mesh()
        del mesh["entities"]
        del mesh["elements"]
        data = build_msh(mesh)
        data += data[data.index(b"$Nodes"):]
        err = assert_parse_error(self, data, MshParserErrorKind.UNIMPLEMENTED)
        self.assertTrue(any("node section" in c for c in err.contexts()))

    def test_duplicate_sections_merged(self):
        first = grid_mesh()
        second = grid_mesh()
        dim, tag, parametric, tags, coords = second["nodes"]["blocks"][0]
        second["nodes"]["blocks"][0] = (dim, 2, parametric, [t + 100 for t in tags], coords)
        for mesh in (first, second):
            del mesh["entities"]
            del mesh["elements"]

        config = ParserConfig(duplicate_sections=DuplicateSectionPolicy.MERGE)
        for encoding in ALL_ENCODINGS:
            with self.subTest(**encoding):
                data = build_msh(first, **encoding)
                second_data = build_msh(second, **encoding)
                data += second_data[second_data.index(b"$Nodes"):]

                msh = parse_msh_bytes(data, config)
                self.assertEqual(len(msh.nodes.node_blocks), 2)
                self.assertEqual(msh.nodes.num_nodes, 50)
                self.assertEqual((msh.nodes.min_node_tag, msh.nodes.max_node_tag), (1, 125))
                self.assertEqual(msh.total_node_count(), 50)

                # Both sections are dense on their own, their tags must survive the merge
                index = node_index_map(msh.nodes)
                self.assertEqual(len(index), 50)
                self.assertEqual(index[1], 0)
                self.assertEqual(index[25], 24)
                self.assertEqual(index[101], 25)
                self.assertEqual(index[125], 49)
                self.assertNotIn(26, index)
                self.assertEqual(msh.nodes.node_blocks[1].node_tags[101], 0)


class TestNodeSection(unittest.TestCase):
    """Tests for invalid node sections."""

    def test_min_tag_zero(self):
        mesh = grid_mesh()
        mesh["node_overrides"] = {"min_tag": 0}
        for encoding in ALL_ENCODINGS:
            with self.subTest(**encoding):
                err = assert_parse_error(self, build_msh(mesh, **encoding), MshParserErrorKind.INVALID_TAG)
                self.assertIn("Node tag 0 is reserved for internal use", err.contexts())

    def test_max_tag_below_min_tag(self):
        mesh = grid_mesh()
        mesh["node_overrides"] = {"min_tag": 10, "max_tag": 5}
        assert_parse_error(self, build_msh(mesh), MshParserErrorKind.INVALID_TAG)

    def test_parametric_nodes_unimplemented(self):
        mesh = grid_mesh()
        dim, tag, _, tags, coords = mesh["nodes"]["blocks"][0]
        mesh["nodes"]["blocks"][0] = (dim, tag, 1, tags, coords)
        assert_parse_error(self, build_msh(mesh, binary=True), MshParserErrorKind.UNIMPLEMENTED)

    def test_invalid_parametric_flag(self):
        mesh = grid_mesh()
        dim, tag, _, tags, coords = mesh["nodes"]["blocks"][0]
        mesh["nodes"]["blocks"][0] = (dim, tag, 2, tags, coords)
        assert_parse_error(self, build_msh(mesh), MshParserErrorKind.INVALID_PARAMETER)

    def test_invalid_parametric_flag_position(self):
        # 9 is a tab character in the first byte of a little endian int
        mesh = grid_mesh()
        del mesh["entities"]
        del mesh["elements"]
        dim, tag, _, tags, coords = mesh["nodes"]["blocks"][0]
        mesh["nodes"]["blocks"][0] = (dim, tag, 9, tags, coords)
        for encoding in ALL_ENCODINGS[1:]:
            with self.subTest(**encoding):
                data = build_msh(mesh, **encoding)
                size_t_size = encoding.get("size_t_size", 8)
                flag_pos = data.index(b"$Nodes\n") + len(b"$Nodes\n") + 4 * size_t_size + 8
                err = assert_parse_error(self, data, MshParserErrorKind.INVALID_PARAMETER)
                self.assertEqual(err.first_msh_entry().position, flag_pos)

    def test_truncated_coordinates(self):
        mesh = grid_mesh()
        del mesh["elements"]
        data = build_msh(mesh, binary=True)
        end = data.index(b"\n$EndNodes")
        data = data[:end - 12] + data[end:]
        err = assert_parse_error(self, data, MshParserErrorKind.INVALID_NODE_DEFINITION)
        self.assertIn("node section", err.contexts())

    def test_count_mismatch_is_logged(self):
        mesh = grid_mesh()
        mesh["node_overrides"] = {"num_nodes": 30}
        with self.assertLogs("mshio.parsers.nodes_section", level="WARNING"):
            msh = parse_msh_bytes(build_msh(mesh))
        self.assertEqual(msh.total_node_count(), 25)
        self.assertEqual(msh.nodes.num_nodes, 30)


class TestElementSection(unittest.TestCase):
    """Tests for invalid element sections."""

    def _with_element_type(self, element_type):
        mesh = grid_mesh()
        dim, tag, _, records = mesh["elements"]["blocks"][0]
        mesh["elements"]["blocks"][0] = (dim, tag, element_type, records)
        return mesh

    def test_unknown_element_type(self):
        mesh = self._with_element_type(141)
        for encoding in ALL_ENCODINGS:
            with self.subTest(**encoding):
                err = assert_parse_error(self, build_msh(mesh, **encoding), MshParserErrorKind.UNKNOWN_ELEMENT)
                self.assertIn("value 141", err.contexts())

    def test_element_type_without_node_count(self):
        mesh = self._with_element_type(int(ElementType.POLYG))
        assert_parse_error(self, build_msh(mesh), MshParserErrorKind.UNIMPLEMENTED)

    def test_min_tag_zero(self):
        mesh = grid_mesh()
        mesh["element_overrides"] = {"min_tag": 0}
        err = assert_parse_error(self, build_msh(mesh), MshParserErrorKind.INVALID_TAG)
        self.assertIn("Element tag 0 is reserved for internal use", err.contexts())

    def test_max_tag_below_min_tag(self):
        mesh = grid_mesh()
        mesh["element_overrides"] = {"min_tag": 3, "max_tag": 2}
        assert_parse_error(self, build_msh(mesh, binary=True), MshParserErrorKind.INVALID_TAG)

    def test_truncated_element(self):
        data = build_msh()
        end = data.index(b"\n$EndElements")
        # Drop the last node tag of the last element
        data = data[:data.rindex(b" ", 0, end)] + data[end:]
        err = assert_parse_error(self, data, MshParserErrorKind.INVALID_ELEMENT_DEFINITION)
        self.assertIn("element definition (20 of 20)", err.contexts())
        self.assertIn("element entity block (1 of 1)", err.contexts())

    def test_higher_order_element_types(self):
        # Little endian codes 9, 10, 13 and 32 start with whitespace bytes
        element_types = [(9, 6), (10, 9), (13, 18), (32, 22)]
        reference = parse_msh_bytes(build_msh(higher_order_mesh(element_types)))
        self.assertEqual(reference.count_element_types(), {
            ElementType.TRI6: 2, ElementType.QUA9: 2, ElementType.PRI18: 2, ElementType.TET22: 2,
        })
        blocks = reference.elements.element_blocks
        self.assertEqual(blocks[0].elements[0].nodes, (1, 2, 3, 4, 5, 6))
        self.assertEqual(blocks[3].connectivity().shape, (2, 22))

        for encoding in ALL_ENCODINGS[1:]:
            with self.subTest(**encoding):
                msh = parse_msh_bytes(build_msh(higher_order_mesh(element_types), **encoding))
                self.assertEqual(msh.data, reference.data)

    def test_little_endian_tri6_block(self):
        mesh = higher_order_mesh([(int(ElementType.TRI6), 6)])
        ascii_msh = parse_msh_bytes(build_msh(mesh))
        binary_msh = parse_msh_bytes(build_msh(mesh, binary=True, endianness="<"))
        self.assertEqual(binary_msh.count_element_types(), {ElementType.TRI6: 2})
        self.assertEqual(binary_msh.elements, ascii_msh.elements)

    def test_elements_may_reference_unknown_nodes(self):
        mesh = grid_mesh()
        dim, tag, element_type, records = mesh["elements"]["blocks"][0]
        records[0] = (records[0][0], [1, 2, 7, 999])
        msh = parse_msh_bytes(build_msh(mesh))
        self.assertEqual(msh.elements.element_blocks[0].elements[0].nodes[-1], 999)


if __name__ == "__main__":
    unittest.main()
