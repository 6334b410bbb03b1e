"""Conversion of tabular rows into a deduplicated node/edge snapshot."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np

from netgraph.app.config import RenderingConfig
from netgraph.app.contracts import GraphEdge, GraphNode, GraphSnapshot, RowShape

LOGGER = logging.getLogger(__name__)

SIZE_BY_CODE: Mapping[str, float] = {"P": 5.0, "M": 10.0, "G": 15.0, "MG": 20.0}
DEFAULT_NODE_SIZE = 10.0
DEFAULT_NODE_COLOR = "#1E88E5"
DEFAULT_SIZE_CODE = "M"
UNIFORM_FIELD_COUNT = 5


class MalformedRowError(ValueError):
    """Raised when a row lacks the fields needed to form an edge."""


def size_for_code(code: Optional[str]) -> float:
    """Return the radius category for a size code, falling back to ``M``.

    Args:
        code: Categorical code such as ``"P"`` or ``"MG"``.

    Returns:
        float: ``P→5``, ``M→10``, ``G→15``, ``MG→20``; anything else maps to ``10``.
    """

    if code is None:
        return DEFAULT_NODE_SIZE
    return SIZE_BY_CODE.get(code, DEFAULT_NODE_SIZE)


def detect_row_shape(rows: Iterable[Any]) -> RowShape:
    """Choose the row shape for an update from the widest row present."""

    for row in rows:
        if _is_row(row) and len(row) > UNIFORM_FIELD_COUNT:
            return RowShape.PER_ENDPOINT
    return RowShape.UNIFORM


def _is_row(value: Any) -> bool:
    if isinstance(value, np.ndarray):
        return value.ndim == 1
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _field(row: Sequence[Any], position: int) -> Any:
    return row[position] if position < len(row) else None


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def _required_id(row: Sequence[Any], position: int, name: str) -> str:
    text = _optional_text(_field(row, position))
    if text is None or not text.strip():
        raise MalformedRowError(f"missing {name} id")
    return text


@dataclass(frozen=True)
class _EndpointStyle:
    color: str
    size_code: str


@dataclass(frozen=True)
class _ParsedRow:
    source_id: str
    target_id: str
    label: str
    source_style: _EndpointStyle
    target_style: _EndpointStyle


def _style(row: Sequence[Any], color_at: int, size_at: int, default_color: str, default_code: str) -> _EndpointStyle:
    return _EndpointStyle(
        color=_optional_text(_field(row, color_at)) or default_color,
        size_code=_optional_text(_field(row, size_at)) or default_code,
    )


def _parse_uniform_row(row: Sequence[Any], default_color: str, default_code: str) -> _ParsedRow:
    style = _style(row, 3, 4, default_color, default_code)
    return _ParsedRow(
        source_id=_required_id(row, 0, "source"),
        target_id=_required_id(row, 1, "target"),
        label=_optional_text(_field(row, 2)) or "",
        source_style=style,
        target_style=style,
    )


def _parse_per_endpoint_row(row: Sequence[Any], default_color: str, default_code: str) -> _ParsedRow:
    return _ParsedRow(
        source_id=_required_id(row, 0, "source"),
        target_id=_required_id(row, 1, "target"),
        label=_optional_text(_field(row, 2)) or "",
        source_style=_style(row, 3, 4, default_color, default_code),
        target_style=_style(row, 5, 6, default_color, default_code),
    )


_ROW_PARSERS: Dict[RowShape, Callable[[Sequence[Any], str, str], _ParsedRow]] = {
    RowShape.UNIFORM: _parse_uniform_row,
    RowShape.PER_ENDPOINT: _parse_per_endpoint_row,
}


class GraphBuilder:
    """Build graph snapshots from host rows.

    Nodes are created the first time their id is seen, before any edge that
    references them, so a node's color and size always come from the first row
    mentioning it. Edges are never deduplicated.
    """

    def __init__(
        self,
        *,
        default_color: str = DEFAULT_NODE_COLOR,
        default_size_code: str = DEFAULT_SIZE_CODE,
    ) -> None:
        self._default_color = default_color
        self._default_size_code = default_size_code

    @classmethod
    def from_config(cls, config: RenderingConfig) -> "GraphBuilder":
        return cls(default_color=config.default_node_color, default_size_code=config.default_size_code)

    def parse_row(self, row: Any, shape: RowShape) -> _ParsedRow:
        """Parse a single row according to ``shape``.

        Raises:
            MalformedRowError: If the row is not a sequence or lacks endpoints.
        """

        if not _is_row(row):
            raise MalformedRowError(f"expected a sequence of fields, got {type(row).__name__}")
        if isinstance(row, np.ndarray):
            row = row.tolist()
        return _ROW_PARSERS[shape](row, self._default_color, self._default_size_code)

    def build(self, rows: Iterable[Any], shape: Optional[RowShape] = None) -> GraphSnapshot:
        """Convert ``rows`` into a snapshot.

        Args:
            rows: Ordered host rows.
            shape: Explicit row shape; detected from the rows when omitted.

        Returns:
            GraphSnapshot: Nodes in first-seen order and edges in row order.
        """

        materialised = list(rows)
        resolved_shape = shape or detect_row_shape(materialised)
        nodes: List[GraphNode] = []
        index_by_id: Dict[str, int] = {}
        edges: List[GraphEdge] = []
        warnings: List[str] = []

        def _resolve(node_id: str, style: _EndpointStyle) -> int:
            existing = index_by_id.get(node_id)
            if existing is not None:
                return existing
            index_by_id[node_id] = len(nodes)
            nodes.append(
                GraphNode(
                    id=node_id,
                    color=style.color,
                    size=size_for_code(style.size_code),
                    size_code=style.size_code,
                )
            )
            return index_by_id[node_id]

        for row_number, row in enumerate(materialised):
            try:
                parsed = self.parse_row(row, resolved_shape)
            except MalformedRowError as exc:
                message = f"row {row_number}: {exc}"
                warnings.append(message)
                LOGGER.warning("Skipping malformed row %d: %s", row_number, exc)
                continue
            source = _resolve(parsed.source_id, parsed.source_style)
            target = _resolve(parsed.target_id, parsed.target_style)
            edges.append(GraphEdge(source=source, target=target, label=parsed.label))

        if warnings:
            LOGGER.warning("Skipped %d of %d rows while building graph", len(warnings), len(materialised))
        return GraphSnapshot(
            nodes=tuple(nodes),
            edges=tuple(edges),
            shape=resolved_shape,
            skipped_rows=len(warnings),
            warnings=tuple(warnings),
        )


def build_graph(rows: Iterable[Any], shape: Optional[RowShape] = None) -> GraphSnapshot:
    """Build a snapshot with the default accent color and size code."""

    return GraphBuilder().build(rows, shape)


__all__ = [
    "DEFAULT_NODE_COLOR",
    "DEFAULT_NODE_SIZE",
    "GraphBuilder",
    "MalformedRowError",
    "SIZE_BY_CODE",
    "build_graph",
    "detect_row_shape",
    "size_for_code",
]
