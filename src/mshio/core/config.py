"""Configuration module for mshio.

This module provides the configuration class for the MSH parsing process.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

import numpy as np


class DuplicateSectionPolicy(Enum):
    """How repeated ``$Entities``, ``$Nodes`` or ``$Elements`` sections are handled."""
    REJECT = "reject"
    MERGE = "merge"


@dataclass
class ParserConfig:
    """Configuration for parsing MSH files.

    Attributes:
        duplicate_sections: Policy for repeated sections of the same kind
            Either a DuplicateSectionPolicy or its string value
        size_t_dtype: numpy dtype that size_t values have to fit into
        int_dtype: numpy dtype that int values have to fit into
        float_dtype: numpy dtype that float values are converted to
        hexdump_width: Number of bytes per row in error report hex dumps
        hexdump_max_bytes: Maximum number of bytes shown in error report hex dumps
        debug: Whether to enable debug output
    """

    duplicate_sections: Union[DuplicateSectionPolicy, str] = DuplicateSectionPolicy.REJECT
    size_t_dtype: Any = np.uint64
    int_dtype: Any = np.int32
    float_dtype: Any = np.float64
    hexdump_width: int = 16
    hexdump_max_bytes: int = 128
    debug: bool = False

    def __post_init__(self) -> None:
        """Validate the configuration after initialization."""
        if isinstance(self.duplicate_sections, str):
            try:
                self.duplicate_sections = DuplicateSectionPolicy(self.duplicate_sections.lower())
            except ValueError:
                raise ValueError(
                    f"Unknown duplicate section policy '{self.duplicate_sections}', "
                    f"expected one of {[p.value for p in DuplicateSectionPolicy]}"
                )

        for name, kind in (("size_t_dtype", "u"), ("int_dtype", "i"), ("float_dtype", "f")):
            try:
                dtype = np.dtype(getattr(self, name))
            except TypeError:
                raise ValueError(f"{name} must be a numpy dtype")
            if dtype.kind != kind:
                raise ValueError(f"{name} must be a numpy dtype of kind '{kind}', got {dtype}")

        if self.hexdump_width <= 0:
            raise ValueError("Hex dump width must be positive")

        if self.hexdump_max_bytes < 0:
            raise ValueError("Hex dump size must be non-negative")
