"""
Data structures for parsed MSH files.

All structures are immutable and produced by a single parsing pass over the
input. Sequences are stored as tuples.
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Dict, NamedTuple, Optional, Tuple

import numpy as np


class Endianness(Enum):
    """Byte order of a binary MSH file."""
    BIG = "big"
    LITTLE = "little"

    @property
    def struct_prefix(self) -> str:
        """Byte order character used by ``struct`` and numpy dtype strings."""
        return ">" if self is Endianness.BIG else "<"


class ElementType(IntEnum):
    """Gmsh element types with their number of nodes.

    The value of each member is the element type code used in MSH files.
    ``num_nodes`` is ``None`` for types without a fixed number of nodes.
    """

    def __new__(cls, code: int, num_nodes: Optional[int]):
        obj = int.__new__(cls, code)
        obj._value_ = code
        obj.num_nodes = num_nodes
        return obj

    LIN2 = (1, 2)
    TRI3 = (2, 3)
    QUA4 = (3, 4)
    TET4 = (4, 4)
    HEX8 = (5, 8)
    PRI6 = (6, 6)
    PYR5 = (7, 5)
    LIN3 = (8, 3)
    TRI6 = (9, 6)
    QUA9 = (10, 9)
    TET10 = (11, 10)
    HEX27 = (12, 27)
    PRI18 = (13, 18)
    PYR14 = (14, 14)
    PNT = (15, 1)
    QUA8 = (16, 8)
    HEX20 = (17, 20)
    PRI15 = (18, 15)
    PYR13 = (19, 13)
    TRI9 = (20, 9)
    TRI10 = (21, 10)
    TRI12 = (22, 12)
    TRI15 = (23, 15)
    TRI15I = (24, 15)
    TRI21 = (25, 21)
    LIN4 = (26, 4)
    LIN5 = (27, 5)
    LIN6 = (28, 6)
    TET20 = (29, 20)
    TET35 = (30, 35)
    TET56 = (31, 56)
    TET22 = (32, 22)
    TET28 = (33, 28)
    POLYG = (34, None)
    POLYH = (35, None)
    QUA16 = (36, 16)
    QUA25 = (37, 25)
    QUA36 = (38, 36)
    QUA12 = (39, 12)
    QUA16I = (40, 16)
    QUA20 = (41, 20)
    TRI28 = (42, 28)
    TRI36 = (43, 36)
    TRI45 = (44, 45)
    TRI55 = (45, 55)
    TRI66 = (46, 66)
    QUA49 = (47, 49)
    QUA64 = (48, 64)
    QUA81 = (49, 81)
    QUA100 = (50, 100)
    QUA121 = (51, 121)
    TRI18 = (52, 18)
    TRI21I = (53, 21)
    TRI24 = (54, 24)
    TRI27 = (55, 27)
    TRI30 = (56, 30)
    QUA24 = (57, 24)
    QUA28 = (58, 28)
    QUA32 = (59, 32)
    QUA36I = (60, 36)
    QUA40 = (61, 40)
    LIN7 = (62, 7)
    LIN8 = (63, 8)
    LIN9 = (64, 9)
    LIN10 = (65, 10)
    LIN11 = (66, 11)
    LINB = (67, None)
    TRIB = (68, None)
    POLYGB = (69, None)
    LINC = (70, None)
    TET84 = (71, 84)
    TET120 = (72, 120)
    TET165 = (73, 165)
    TET220 = (74, 220)
    TET286 = (75, 286)
    TET34 = (79, 34)
    TET40 = (80, 40)
    TET46 = (81, 46)
    TET52 = (82, 52)
    TET58 = (83, 58)
    LIN1 = (84, 1)
    TRI1 = (85, 1)
    QUA1 = (86, 1)
    TET1 = (87, 1)
    HEX1 = (88, 1)
    PRI1 = (89, 1)
    PRI40 = (90, 40)
    PRI75 = (91, 75)
    HEX64 = (92, 64)
    HEX125 = (93, 125)
    HEX216 = (94, 216)
    HEX343 = (95, 343)
    HEX512 = (96, 512)
    HEX729 = (97, 729)
    HEX1000 = (98, 1000)
    HEX32 = (99, 32)
    HEX44 = (100, 44)
    HEX56 = (101, 56)
    HEX68 = (102, 68)
    HEX80 = (103, 80)
    HEX92 = (104, 92)
    HEX104 = (105, 104)
    PRI126 = (106, 126)
    PRI196 = (107, 196)
    PRI288 = (108, 288)
    PRI405 = (109, 405)
    PRI550 = (110, 550)
    PRI24 = (111, 24)
    PRI33 = (112, 33)
    PRI42 = (113, 42)
    PRI51 = (114, 51)
    PRI60 = (115, 60)
    PRI69 = (116, 69)
    PRI78 = (117, 78)
    PYR30 = (118, 30)
    PYR55 = (119, 55)
    PYR91 = (120, 91)
    PYR140 = (121, 140)
    PYR204 = (122, 204)
    PYR285 = (123, 285)
    PYR385 = (124, 385)
    PYR21 = (125, 21)
    PYR29 = (126, 29)
    PYR37 = (127, 37)
    PYR45 = (128, 45)
    PYR53 = (129, 53)
    PYR61 = (130, 61)
    PYR69 = (131, 69)
    PYR1 = (132, 1)
    PNT_SUB = (133, None)
    LIN_SUB = (134, None)
    TRI_SUB = (135, None)
    TET_SUB = (136, None)
    TET16 = (137, 16)
    TRI_MINI = (138, None)
    TET_MINI = (139, None)
    TRIH4 = (140, None)

    @classmethod
    def from_code(cls, code: int) -> Optional["ElementType"]:
        """Look up an element type by its code, ``None`` if the code is unknown."""
        try:
            return cls(code)
        except ValueError:
            return None


class Node(NamedTuple):
    """Coordinates of a mesh node."""
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class MshHeader:
    """Contents of the ``$MeshFormat`` section.

    Attributes:
        version: Format version, always 4.1
        file_type: 0 for ASCII files, 1 for binary files
        size_t_size: Width of size_t values in bytes
        int_size: Width of int values in bytes
        float_size: Width of float values in bytes
        endianness: Byte order of binary files, None for ASCII files
    """
    version: float
    file_type: int
    size_t_size: int
    int_size: int = 4
    float_size: int = 8
    endianness: Optional[Endianness] = None

    @property
    def is_binary(self) -> bool:
        return self.file_type == 1


@dataclass(frozen=True)
class Point:
    """A point entity (dimension 0)."""
    tag: int
    x: float
    y: float
    z: float
    physical_tags: Tuple[int, ...] = ()


@dataclass(frozen=True)
class _BoundedEntity:
    tag: int
    min_x: float
    min_y: float
    min_z: float
    max_x: float
    max_y: float
    max_z: float
    physical_tags: Tuple[int, ...]

    @property
    def bounding_box(self) -> Tuple[Tuple[float, float, float], Tuple[float, float, float]]:
        return (self.min_x, self.min_y, self.min_z), (self.max_x, self.max_y, self.max_z)


@dataclass(frozen=True)
class Curve(_BoundedEntity):
    """A curve entity (dimension 1) bounded by points."""
    point_tags: Tuple[int, ...] = ()


@dataclass(frozen=True)
class Surface(_BoundedEntity):
    """A surface entity (dimension 2) bounded by curves."""
    curve_tags: Tuple[int, ...] = ()


@dataclass(frozen=True)
class Volume(_BoundedEntity):
    """A volume entity (dimension 3) bounded by surfaces."""
    surface_tags: Tuple[int, ...] = ()


@dataclass(frozen=True)
class Entities:
    """Contents of the ``$Entities`` section."""
    points: Tuple[Point, ...] = ()
    curves: Tuple[Curve, ...] = ()
    surfaces: Tuple[Surface, ...] = ()
    volumes: Tuple[Volume, ...] = ()

    def __len__(self):
        return len(self.points) + len(self.curves) + len(self.surfaces) + len(self.volumes)


@dataclass(frozen=True)
class NodeBlock:
    """A block of nodes belonging to one geometric entity.

    Attributes:
        entity_dim: Dimension of the entity the nodes belong to
        entity_tag: Tag of the entity the nodes belong to
        parametric: Whether the nodes carry parametric coordinates
        node_tags: Map from node tag to index in ``nodes``, present for sparse or merged sections
        nodes: Node coordinates
    """
    entity_dim: int
    entity_tag: int
    parametric: bool
    node_tags: Optional[Dict[int, int]]
    nodes: Tuple[Node, ...]

    def __len__(self):
        return len(self.nodes)

    def coordinates(self) -> np.ndarray:
        """Return the node coordinates as an ``(N, 3)`` array."""
        return np.array(self.nodes, dtype=np.float64).reshape(-1, 3)


@dataclass(frozen=True)
class Nodes:
    """Contents of the ``$Nodes`` section."""
    num_nodes: int
    min_node_tag: int
    max_node_tag: int
    node_blocks: Tuple[NodeBlock, ...] = ()


@dataclass(frozen=True)
class Element:
    """A mesh element given by its tag and the tags of its nodes."""
    tag: int
    nodes: Tuple[int, ...]


@dataclass(frozen=True)
class ElementBlock:
    """A block of elements of one type belonging to one geometric entity.

    Attributes:
        entity_dim: Dimension of the entity the elements belong to
        entity_tag: Tag of the entity the elements belong to
        element_type: Type of all elements of the block
        element_tags: Map from element tag to index in ``elements``, only present for sparse tags
        elements: The elements
    """
    entity_dim: int
    entity_tag: int
    element_type: ElementType
    element_tags: Optional[Dict[int, int]]
    elements: Tuple[Element, ...]

    def __len__(self):
        return len(self.elements)

    def connectivity(self) -> np.ndarray:
        """Return the node tags of all elements as an ``(N, num_nodes)`` array."""
        width = self.element_type.num_nodes or 0
        return np.array([e.nodes for e in self.elements], dtype=np.uint64).reshape(-1, width)


@dataclass(frozen=True)
class Elements:
    """Contents of the ``$Elements`` section."""
    num_elements: int
    min_element_tag: int
    max_element_tag: int
    element_blocks: Tuple[ElementBlock, ...] = ()


@dataclass(frozen=True)
class MshData:
    """The sections of an MSH file, each of them optional."""
    entities: Optional[Entities] = None
    nodes: Optional[Nodes] = None
    elements: Optional[Elements] = None


@dataclass(frozen=True)
class MshFile:
    """A parsed MSH file."""
    header: MshHeader
    data: MshData = field(default_factory=MshData)

    @property
    def entities(self) -> Optional[Entities]:
        return self.data.entities

    @property
    def nodes(self) -> Optional[Nodes]:
        return self.data.nodes

    @property
    def elements(self) -> Optional[Elements]:
        return self.data.elements

    def total_node_count(self) -> int:
        """Return the number of nodes summed over all node blocks."""
        if self.nodes is None:
            return 0
        return sum(len(block) for block in self.nodes.node_blocks)

    def total_element_count(self) -> int:
        """Return the number of elements summed over all element blocks."""
        if self.elements is None:
            return 0
        return sum(len(block) for block in self.elements.element_blocks)

    def count_element_types(self) -> Dict[ElementType, int]:
        """Count the elements of each element type in the file."""
        counts = Counter()
        if self.elements is not None:
            for block in self.elements.element_blocks:
                counts[block.element_type] += len(block)
        return dict(counts)
