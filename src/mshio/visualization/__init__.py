"""Visualization functionality for mshio."""

from mshio.visualization.mesh_viz import element_segments, plot_msh

__all__ = ["element_segments", "plot_msh"]
