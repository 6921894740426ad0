"""Visualization utilities."""

from .topview import render_top_view, show_top_view, world_to_topview

__all__ = ["render_top_view", "show_top_view", "world_to_topview"]
