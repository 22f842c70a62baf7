"""Core configuration for mshio."""

from mshio.core.config import DuplicateSectionPolicy, ParserConfig

__all__ = ["DuplicateSectionPolicy", "ParserConfig"]
