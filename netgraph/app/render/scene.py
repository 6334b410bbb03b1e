"""Persistent scene graph kept in step with the force simulation."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np

from netgraph.app.config import MarkerConfig, RenderingConfig
from netgraph.app.contracts import GraphSnapshot, Viewport
from netgraph.app.layout.simulation import SimulationFrame
from netgraph.app.render.geometry import (
    contrast_color,
    format_number,
    node_label_font_size,
    node_radius,
    place_label,
    trim_link,
)

LOGGER = logging.getLogger(__name__)


@dataclass
class TextElement:
    """Text primitive with SVG-style placement attributes."""

    text: str
    font_size: float
    x: float = 0.0
    y: float = 0.0
    dy: float = 0.0
    rotation: Optional[str] = None
    anchor: str = "middle"
    baseline: Optional[str] = None
    fill: Optional[str] = None


@dataclass
class CircleElement:
    radius: float
    fill: str


@dataclass
class LineElement:
    """Link line; ``marker_end`` names the shared arrowhead definition."""

    stroke: str
    stroke_opacity: float
    stroke_width: float
    marker_end: Optional[str] = None
    x1: float = 0.0
    y1: float = 0.0
    x2: float = 0.0
    y2: float = 0.0


@dataclass
class NodeElement:
    """Circle plus centred label, translated to the node position."""

    node_id: str
    index: int
    circle: CircleElement
    label: TextElement
    x: float = 0.0
    y: float = 0.0

    @property
    def radius(self) -> float:
        return self.circle.radius

    @property
    def fill(self) -> str:
        return self.circle.fill

    @property
    def transform(self) -> str:
        return f"translate({format_number(self.x)}, {format_number(self.y)})"

    def set_fill(self, color: str) -> None:
        """Recolor the node; the label contrast is recomputed every time."""

        self.circle.fill = color
        self.label.fill = contrast_color(color)

    def contains(self, x: float, y: float) -> bool:
        return (x - self.x) ** 2 + (y - self.y) ** 2 <= self.radius ** 2


@dataclass
class EdgeElement:
    source: int
    target: int
    line: LineElement
    label: TextElement


@dataclass
class Scene:
    """Everything drawn on one surface for one snapshot."""

    width: float
    height: float
    css_class: str
    marker: MarkerConfig
    nodes: List[NodeElement] = field(default_factory=list)
    edges: List[EdgeElement] = field(default_factory=list)
    synced_step: int = 0
    _by_id: Dict[str, NodeElement] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        self._by_id = {element.node_id: element for element in self.nodes}

    def node(self, node_id: str) -> Optional[NodeElement]:
        return self._by_id.get(node_id)

    @property
    def is_empty(self) -> bool:
        return not self.nodes


class SceneRenderer:
    """Owns the scene for the current snapshot and redraws it on every step.

    The scene is rebuilt from scratch for each snapshot; there is no diffing
    against the previous one.
    """

    def __init__(self, config: RenderingConfig) -> None:
        self._config = config
        self._scene = self._empty_scene(Viewport(width=0.0, height=0.0))

    @property
    def config(self) -> RenderingConfig:
        return self._config

    @property
    def scene(self) -> Scene:
        return self._scene

    def _empty_scene(self, viewport: Viewport) -> Scene:
        return Scene(
            width=viewport.width,
            height=viewport.height,
            css_class=self._config.css_class,
            marker=self._config.marker,
        )

    def clear(self, viewport: Viewport) -> Scene:
        """Drop every element, leaving an empty surface of the given size."""

        self._scene = self._empty_scene(viewport)
        return self._scene

    def mount(self, snapshot: GraphSnapshot, viewport: Viewport) -> Scene:
        """Build a fresh scene for ``snapshot``, replacing the previous one."""

        config = self._config
        marker_ref = f"url(#{config.marker.marker_id})"
        nodes: List[NodeElement] = []
        for index, node in enumerate(snapshot.nodes):
            radius = node_radius(node.size, config.scale_factor)
            element = NodeElement(
                node_id=node.id,
                index=index,
                circle=CircleElement(radius=radius, fill=node.color),
                label=TextElement(
                    text=node.id,
                    font_size=node_label_font_size(radius, config.node_label_max_font_size),
                    baseline="middle",
                ),
            )
            element.set_fill(node.color)
            nodes.append(element)
        edges = [
            EdgeElement(
                source=edge.source,
                target=edge.target,
                line=LineElement(
                    stroke=config.link_stroke,
                    stroke_opacity=config.link_stroke_opacity,
                    stroke_width=config.link_stroke_width,
                    marker_end=marker_ref,
                ),
                label=TextElement(text=edge.label, font_size=config.edge_label_font_size),
            )
            for edge in snapshot.edges
        ]
        scene = Scene(
            width=viewport.width,
            height=viewport.height,
            css_class=config.css_class,
            marker=config.marker,
            nodes=nodes,
            edges=edges,
        )
        self._scene = scene
        LOGGER.debug("Mounted scene with %d nodes and %d edges", len(nodes), len(edges))
        return scene

    def sync(self, frame: SimulationFrame) -> None:
        """Tick listener: redraw every element from the frame's positions."""

        if self.apply_positions(frame.positions):
            self._scene.synced_step = frame.step

    def apply_positions(self, positions: np.ndarray) -> bool:
        """Move nodes, re-trim links, and re-place link labels.

        Returns:
            bool: ``False`` when ``positions`` does not match the mounted scene.
        """

        scene = self._scene
        if positions.shape[0] != len(scene.nodes):
            LOGGER.warning(
                "Ignoring positions for %d nodes on a scene of %d nodes",
                positions.shape[0],
                len(scene.nodes),
            )
            return False
        for element in scene.nodes:
            element.x = float(positions[element.index, 0])
            element.y = float(positions[element.index, 1])
        offset = self._config.edge_label_offset
        for edge in scene.edges:
            source = scene.nodes[edge.source]
            target = scene.nodes[edge.target]
            start = (source.x, source.y)
            end = (target.x, target.y)
            segment = trim_link(start, source.radius, end, target.radius)
            edge.line.x1 = segment.x1
            edge.line.y1 = segment.y1
            edge.line.x2 = segment.x2
            edge.line.y2 = segment.y2
            placement = place_label(start, end, offset)
            edge.label.x = placement.x
            edge.label.y = placement.y
            edge.label.dy = placement.dy
            edge.label.rotation = placement.transform
        return True

    def node_at(self, x: float, y: float) -> Optional[str]:
        """Return the topmost node whose circle contains ``(x, y)``."""

        for element in reversed(self._scene.nodes):
            if element.contains(x, y):
                return element.node_id
        return None

    def node_positions(self) -> Dict[str, Sequence[float]]:
        return {element.node_id: (element.x, element.y) for element in self._scene.nodes}


__all__ = [
    "CircleElement",
    "EdgeElement",
    "LineElement",
    "NodeElement",
    "Scene",
    "SceneRenderer",
    "TextElement",
]
