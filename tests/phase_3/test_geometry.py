"""Tests for link trimming, label placement, and label contrast."""
from __future__ import annotations

import math

import pytest

from netgraph.app.render.geometry import (
    contrast_color,
    format_number,
    node_label_font_size,
    node_radius,
    parse_hex_color,
    place_label,
    trim_link,
)


@pytest.mark.parametrize(
    ("color", "expected"),
    [
        ("#FFFFFF", "#000000"),
        ("#000000", "#ffffff"),
        ("#1E88E5", "#ffffff"),
        ("#FFEB3B", "#000000"),
        ("#fff", "#000000"),
        ("909090", "#000000"),
        ("#7f7f7f", "#ffffff"),
        ("not-a-color", "#ffffff"),
        ("", "#ffffff"),
    ],
)
def test_contrast_color(color: str, expected: str) -> None:
    assert contrast_color(color) == expected


def test_parse_hex_color_expands_short_form() -> None:
    assert parse_hex_color("#abc") == (0xAA, 0xBB, 0xCC)
    assert parse_hex_color("#1E88E5") == (0x1E, 0x88, 0xE5)
    with pytest.raises(ValueError):
        parse_hex_color("#12345")


def test_node_radius_scales_size() -> None:
    assert node_radius(10.0) == 20.0
    assert node_radius(5.0, 3.0) == 15.0


def test_node_label_font_size_is_capped() -> None:
    assert node_label_font_size(10.0) == 5.0
    assert node_label_font_size(40.0) == 12.0


def test_trimmed_link_ends_on_both_boundaries() -> None:
    source = (0.0, 0.0)
    target = (100.0, 0.0)
    segment = trim_link(source, 10.0, target, 20.0)
    assert (segment.x1, segment.y1) == (10.0, 0.0)
    assert (segment.x2, segment.y2) == (80.0, 0.0)
    assert segment.length == pytest.approx(70.0)


def test_trimmed_endpoints_sit_exactly_radius_from_centers() -> None:
    source = (12.0, -7.0)
    target = (-40.0, 33.0)
    segment = trim_link(source, 8.0, target, 14.0)
    assert math.hypot(segment.x1 - source[0], segment.y1 - source[1]) == pytest.approx(8.0)
    assert math.hypot(segment.x2 - target[0], segment.y2 - target[1]) == pytest.approx(14.0)


def test_coincident_centers_do_not_produce_nan() -> None:
    segment = trim_link((5.0, 5.0), 10.0, (5.0, 5.0), 10.0)
    values = (segment.x1, segment.y1, segment.x2, segment.y2)
    assert all(math.isfinite(value) for value in values)
    assert values == (5.0, 5.0, 5.0, 5.0)


def test_label_sits_at_midpoint_rotated_along_link() -> None:
    placement = place_label((0.0, 0.0), (10.0, 10.0))
    assert (placement.x, placement.y) == (5.0, 5.0)
    assert placement.dy == -5.0
    assert placement.angle == pytest.approx(45.0)
    assert placement.transform == "rotate(45, 5, 5)"


def test_label_angle_for_leftward_link() -> None:
    placement = place_label((10.0, 0.0), (0.0, 0.0), offset=-3.0)
    assert placement.angle == pytest.approx(180.0)
    assert placement.dy == -3.0


def test_format_number_is_compact() -> None:
    assert format_number(10.0) == "10"
    assert format_number(1.23456) == "1.235"
    assert format_number(-0.0001) == "0"


def test_overlapping_nodes_collapse_link_to_boundary_midpoint() -> None:
    segment = trim_link((0.0, 0.0), 20.0, (30.0, 0.0), 20.0)
    assert (segment.x1, segment.y1) == pytest.approx((15.0, 0.0))
    assert (segment.x2, segment.y2) == pytest.approx((15.0, 0.0))
    assert segment.length == pytest.approx(0.0)


def test_tangent_nodes_meet_at_shared_boundary_point() -> None:
    segment = trim_link((0.0, 0.0), 30.0, (0.0, 40.0), 10.0)
    assert (segment.x1, segment.y1) == pytest.approx((0.0, 30.0))
    assert (segment.x2, segment.y2) == pytest.approx((0.0, 30.0))


def test_separated_nodes_keep_ordered_segment() -> None:
    segment = trim_link((0.0, 0.0), 10.0, (50.0, 0.0), 20.0)
    assert segment.x1 <= segment.x2
    assert (segment.x1, segment.x2) == (10.0, 30.0)
