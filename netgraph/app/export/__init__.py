"""Standalone HTML export of rendered graphs."""

from netgraph.app.export.viewer import render_graph_html

__all__ = ["render_graph_html"]
