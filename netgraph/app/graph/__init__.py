"""Graph construction from tabular host rows."""

from netgraph.app.graph.builder import (
    GraphBuilder,
    MalformedRowError,
    build_graph,
    detect_row_shape,
    size_for_code,
)

__all__ = [
    "GraphBuilder",
    "MalformedRowError",
    "build_graph",
    "detect_row_shape",
    "size_for_code",
]
