"""Geometric corrections applied when drawing nodes, links, and labels."""
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Tuple

LOGGER = logging.getLogger(__name__)

SCALE_FACTOR = 2.0
LABEL_OFFSET = -5.0
MAX_NODE_FONT_SIZE = 12.0
DISTANCE_EPSILON = 1e-6
LUMINANCE_THRESHOLD = 128.0
DARK_TEXT = "#000000"
LIGHT_TEXT = "#ffffff"

_HEX_PATTERN = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

Point = Tuple[float, float]


@dataclass(frozen=True)
class LineSegment:
    """Drawn link endpoints."""

    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def length(self) -> float:
        return math.hypot(self.x2 - self.x1, self.y2 - self.y1)


@dataclass(frozen=True)
class LabelPlacement:
    """Anchor, perpendicular offset, and rotation of an edge label."""

    x: float
    y: float
    dy: float
    angle: float

    @property
    def transform(self) -> str:
        return f"rotate({format_number(self.angle)}, {format_number(self.x)}, {format_number(self.y)})"


def format_number(value: float) -> str:
    """Format a coordinate compactly for SVG attributes."""

    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return "0" if text in {"-0", ""} else text


def node_radius(size: float, scale_factor: float = SCALE_FACTOR) -> float:
    """Return the rendered radius for a node size category."""

    return size * scale_factor


def node_label_font_size(radius: float, max_size: float = MAX_NODE_FONT_SIZE) -> float:
    return min(radius / 2.0, max_size)


def _separation(source: Point, target: Point) -> Tuple[float, float, float]:
    dx = target[0] - source[0]
    dy = target[1] - source[1]
    distance = math.hypot(dx, dy)
    if not math.isfinite(distance) or distance < DISTANCE_EPSILON:
        return 0.0, 0.0, DISTANCE_EPSILON
    return dx, dy, distance


def trim_link(source: Point, source_radius: float, target: Point, target_radius: float) -> LineSegment:
    """Clip a center-to-center link so it starts and ends on the node boundaries.

    Overlapping circles collapse the segment to the midpoint between the two
    boundary points so the line never runs backwards. Coincident
    centers produce a zero-length segment at the shared center instead of NaN
    coordinates.
    """

    dx, dy, distance = _separation(source, target)
    source_ratio = source_radius / distance
    target_ratio = (distance - target_radius) / distance
    if distance <= source_radius + target_radius:
        source_ratio = target_ratio = (source_ratio + target_ratio) / 2.0
    return LineSegment(
        x1=source[0] + dx * source_ratio,
        y1=source[1] + dy * source_ratio,
        x2=source[0] + dx * target_ratio,
        y2=source[1] + dy * target_ratio,
    )


def place_label(source: Point, target: Point, offset: float = LABEL_OFFSET) -> LabelPlacement:
    """Center a label on the link, rotated to read along it."""

    dx = target[0] - source[0]
    dy = target[1] - source[1]
    angle = math.degrees(math.atan2(dy, dx)) if (dx or dy) else 0.0
    return LabelPlacement(
        x=(source[0] + target[0]) / 2.0,
        y=(source[1] + target[1]) / 2.0,
        dy=offset,
        angle=angle,
    )


def parse_hex_color(value: str) -> Tuple[int, int, int]:
    """Parse ``#RRGGBB`` or ``#RGB`` into an RGB triple.

    Raises:
        ValueError: If ``value`` is not a hex color.
    """

    match = _HEX_PATTERN.match(value.strip())
    if match is None:
        raise ValueError(f"not a hex color: {value!r}")
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(channel * 2 for channel in digits)
    rgb = int(digits, 16)
    return (rgb >> 16) & 0xFF, (rgb >> 8) & 0xFF, rgb & 0xFF


def contrast_color(hex_color: str) -> str:
    """Pick black or white text for legibility on ``hex_color``.

    Uses the perceptual luminance ``0.299R + 0.587G + 0.114B``; anything
    brighter than 128 gets black text. Unparseable colors get white text.
    """

    try:
        red, green, blue = parse_hex_color(hex_color)
    except ValueError:
        LOGGER.debug("Falling back to light text for unparseable color %r", hex_color)
        return LIGHT_TEXT
    luminance = 0.299 * red + 0.587 * green + 0.114 * blue
    return DARK_TEXT if luminance > LUMINANCE_THRESHOLD else LIGHT_TEXT


__all__ = [
    "LabelPlacement",
    "LineSegment",
    "contrast_color",
    "format_number",
    "node_label_font_size",
    "node_radius",
    "parse_hex_color",
    "place_label",
    "trim_link",
]
