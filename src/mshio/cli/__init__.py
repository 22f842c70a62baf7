"""Command-line interface for mshio."""
