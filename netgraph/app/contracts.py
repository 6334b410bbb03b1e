"""Immutable data contracts shared by the NetGraph engine."""
from __future__ import annotations

from enum import Enum
from typing import Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from netgraph.app.config import LayoutConfig


class _FrozenBaseModel(BaseModel):
    """Base model enforcing immutability after creation."""

    model_config = ConfigDict(frozen=True)


class RowShape(str, Enum):
    """Supported tabular row layouts."""

    UNIFORM = "uniform"
    PER_ENDPOINT = "per_endpoint"


class Viewport(_FrozenBaseModel):
    """Size of the drawing surface supplied by the host."""

    width: float = Field(..., ge=0.0)
    height: float = Field(..., ge=0.0)

    @property
    def center(self) -> Tuple[float, float]:
        return self.width / 2.0, self.height / 2.0


class LayoutSettings(_FrozenBaseModel):
    """Per-update layout parameters, accepted in host (camelCase) or Python form."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    link_distance: float = Field(100.0, gt=0.0, alias="linkDistance")
    charge_strength: float = Field(-200.0, alias="chargeStrength")

    @classmethod
    def from_config(cls, config: LayoutConfig) -> "LayoutSettings":
        """Build settings from the configured defaults."""

        return cls(link_distance=config.link_distance, charge_strength=config.charge_strength)


class GraphNode(_FrozenBaseModel):
    """Deduplicated node identified by its id string."""

    id: str = Field(..., min_length=1)
    color: str = Field(..., min_length=1)
    size: float = Field(..., gt=0.0)
    size_code: str = Field("M", description="Categorical code the size was derived from.")


class GraphEdge(_FrozenBaseModel):
    """Directed edge holding indices into the snapshot node list."""

    source: int = Field(..., ge=0)
    target: int = Field(..., ge=0)
    label: str = ""


class GraphSnapshot(_FrozenBaseModel):
    """Nodes and edges produced by one builder run."""

    nodes: Tuple[GraphNode, ...] = ()
    edges: Tuple[GraphEdge, ...] = ()
    shape: RowShape = RowShape.PER_ENDPOINT
    skipped_rows: int = Field(0, ge=0)
    warnings: Tuple[str, ...] = ()

    @model_validator(mode="after")
    def _validate_references(self) -> "GraphSnapshot":
        node_count = len(self.nodes)
        for position, edge in enumerate(self.edges):
            if edge.source >= node_count or edge.target >= node_count:
                msg = f"edge {position} references a node outside the snapshot"
                raise ValueError(msg)
        seen: set[str] = set()
        for node in self.nodes:
            if node.id in seen:
                raise ValueError(f"duplicate node id in snapshot: {node.id}")
            seen.add(node.id)
        return self

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.edges)

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def node_index(self) -> Dict[str, int]:
        """Return a mapping from node id to its position in ``nodes``."""

        return {node.id: index for index, node in enumerate(self.nodes)}


__all__ = [
    "GraphEdge",
    "GraphNode",
    "GraphSnapshot",
    "LayoutSettings",
    "RowShape",
    "Viewport",
]
