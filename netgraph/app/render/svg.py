"""Serialise a scene to a standalone SVG document."""
from __future__ import annotations

from html import escape
from typing import List

from netgraph.app.render.geometry import format_number as _num
from netgraph.app.render.scene import EdgeElement, NodeElement, Scene

SVG_NAMESPACE = "http://www.w3.org/2000/svg"


def _attr(value: object) -> str:
    return escape(str(value), quote=True)


def _defs(scene: Scene) -> str:
    marker = scene.marker
    return (
        "<defs>"
        f'<marker id="{_attr(marker.marker_id)}" viewBox="{_attr(marker.view_box)}" '
        f'refX="{_num(marker.ref_x)}" refY="{_num(marker.ref_y)}" '
        f'markerWidth="{_num(marker.width)}" markerHeight="{_num(marker.height)}" orient="auto">'
        f'<polygon points="{_attr(marker.points)}" fill="{_attr(marker.fill)}"/>'
        "</marker>"
        "</defs>"
    )


def _line(edge: EdgeElement) -> str:
    line = edge.line
    marker = f' marker-end="{_attr(line.marker_end)}"' if line.marker_end else ""
    return (
        f'<line x1="{_num(line.x1)}" y1="{_num(line.y1)}" x2="{_num(line.x2)}" y2="{_num(line.y2)}" '
        f'stroke="{_attr(line.stroke)}" stroke-opacity="{_num(line.stroke_opacity)}" '
        f'stroke-width="{_num(line.stroke_width)}"{marker}/>'
    )


def _node(node: NodeElement) -> str:
    label = node.label
    return (
        f'<g class="node" data-id="{_attr(node.node_id)}" transform="{node.transform}">'
        f'<circle r="{_num(node.radius)}" fill="{_attr(node.fill)}"/>'
        f'<text text-anchor="{label.anchor}" dominant-baseline="{label.baseline or "middle"}" '
        f'font-size="{_num(label.font_size)}" fill="{_attr(label.fill or "")}">{escape(label.text)}</text>'
        "</g>"
    )


def _edge_label(edge: EdgeElement) -> str:
    label = edge.label
    rotation = f' transform="{label.rotation}"' if label.rotation else ""
    return (
        f'<text class="link-label" x="{_num(label.x)}" y="{_num(label.y)}" dy="{_num(label.dy)}" '
        f'text-anchor="{label.anchor}" font-size="{_num(label.font_size)}"{rotation}>'
        f"{escape(label.text)}</text>"
    )


def scene_to_svg(scene: Scene) -> str:
    """Return SVG markup for ``scene``.

    Links are drawn first, then nodes, then link labels, so labels stay
    readable on top of the circles. The arrowhead marker is defined once.
    """

    width = _num(scene.width)
    height = _num(scene.height)
    parts: List[str] = [
        f'<svg xmlns="{SVG_NAMESPACE}" class="{_attr(scene.css_class)}" '
        f'width="{width}" height="{height}" viewBox="0 0 {width} {height}">',
        _defs(scene),
        '<g class="links">',
    ]
    parts.extend(_line(edge) for edge in scene.edges)
    parts.append("</g>")
    parts.append('<g class="nodes">')
    parts.extend(_node(node) for node in scene.nodes)
    parts.append("</g>")
    parts.append('<g class="link-labels">')
    parts.extend(_edge_label(edge) for edge in scene.edges)
    parts.append("</g>")
    parts.append("</svg>")
    return "\n".join(parts)


__all__ = ["SVG_NAMESPACE", "scene_to_svg"]
