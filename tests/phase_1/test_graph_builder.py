"""Tests for converting host rows into graph snapshots."""
from __future__ import annotations

import logging

import numpy as np
import pytest

from netgraph.app.config import RenderingConfig
from netgraph.app.contracts import RowShape
from netgraph.app.graph import GraphBuilder, MalformedRowError, build_graph, detect_row_shape, size_for_code


@pytest.mark.parametrize(
    ("code", "expected"),
    [("P", 5.0), ("M", 10.0), ("G", 15.0), ("MG", 20.0), ("", 10.0), (None, 10.0), ("XL", 10.0), ("g", 10.0)],
)
def test_size_for_code(code, expected) -> None:
    assert size_for_code(code) == expected


def test_per_endpoint_row_builds_two_nodes_and_one_edge() -> None:
    snapshot = build_graph([("A", "B", "", "#1E88E5", "M", "#1E88E5", "M")])

    assert snapshot.shape is RowShape.PER_ENDPOINT
    assert [node.id for node in snapshot.nodes] == ["A", "B"]
    assert all(node.size == 10.0 and node.color == "#1E88E5" for node in snapshot.nodes)
    assert len(snapshot.edges) == 1
    edge = snapshot.edges[0]
    assert (edge.source, edge.target, edge.label) == (0, 1, "")


def test_uniform_rows_share_style_and_first_seen_wins() -> None:
    rows = [("A", "B", "x", "#000000", "G"), ("B", "C", "y", "#FFFFFF", "P")]
    snapshot = build_graph(rows)

    assert snapshot.shape is RowShape.UNIFORM
    assert [node.id for node in snapshot.nodes] == ["A", "B", "C"]
    nodes = {node.id: node for node in snapshot.nodes}
    assert nodes["A"].color == "#000000"
    assert nodes["B"].size == 15.0
    assert nodes["B"].color == "#000000"
    assert nodes["C"].size == 5.0
    assert nodes["C"].color == "#FFFFFF"
    assert [(edge.source, edge.target, edge.label) for edge in snapshot.edges] == [(0, 1, "x"), (1, 2, "y")]


def test_per_endpoint_styles_are_independent() -> None:
    snapshot = build_graph([("A", "B", "rel", "#ff0000", "MG", "#00ff00", "P")])
    source, target = snapshot.nodes
    assert (source.color, source.size) == ("#ff0000", 20.0)
    assert (target.color, target.size) == ("#00ff00", 5.0)


def test_later_rows_never_restyle_existing_nodes() -> None:
    rows = [
        ("A", "B", "", "#111111", "P", "#222222", "G"),
        ("B", "A", "", "#333333", "MG", "#444444", "MG"),
    ]
    snapshot = build_graph(rows)
    nodes = {node.id: node for node in snapshot.nodes}
    assert (nodes["A"].color, nodes["A"].size) == ("#111111", 5.0)
    assert (nodes["B"].color, nodes["B"].size) == ("#222222", 15.0)
    assert snapshot.edge_count == 2


def test_missing_optional_fields_use_defaults() -> None:
    snapshot = build_graph([("A", "B"), ("B", "C", None, "", None)])
    assert snapshot.shape is RowShape.UNIFORM
    assert all(node.color == "#1E88E5" and node.size == 10.0 for node in snapshot.nodes)
    assert all(edge.label == "" for edge in snapshot.edges)


def test_short_per_endpoint_rows_fall_back_for_target_style() -> None:
    rows = [("A", "B", "", "#000000", "G", "#ffffff", "P"), ("C", "D", "z", "#abcdef", "MG")]
    snapshot = build_graph(rows)
    nodes = {node.id: node for node in snapshot.nodes}
    assert snapshot.shape is RowShape.PER_ENDPOINT
    assert (nodes["C"].color, nodes["C"].size) == ("#abcdef", 20.0)
    assert (nodes["D"].color, nodes["D"].size) == ("#1E88E5", 10.0)


def test_ids_and_labels_are_coerced_to_strings() -> None:
    snapshot = build_graph([(1, 2, 3.5)])
    assert [node.id for node in snapshot.nodes] == ["1", "2"]
    assert snapshot.edges[0].label == "3.5"


def test_self_loops_and_parallel_edges_are_kept() -> None:
    snapshot = build_graph([("A", "A"), ("A", "B"), ("A", "B")])
    assert snapshot.node_count == 2
    assert [(edge.source, edge.target) for edge in snapshot.edges] == [(0, 0), (0, 1), (0, 1)]


def test_malformed_rows_are_skipped_and_counted(caplog) -> None:
    rows = [("A", "B"), ("", "C"), ("D", None), "not-a-row", None, ("E",), ("B", "F")]
    with caplog.at_level(logging.WARNING, logger="netgraph.app.graph.builder"):
        snapshot = build_graph(rows)

    assert [node.id for node in snapshot.nodes] == ["A", "B", "F"]
    assert snapshot.edge_count == 2
    assert snapshot.skipped_rows == 5
    assert len(snapshot.warnings) == 5
    assert snapshot.warnings[0].startswith("row 1:")
    assert "Skipping malformed row" in caplog.text


def test_whitespace_only_id_is_malformed() -> None:
    builder = GraphBuilder()
    with pytest.raises(MalformedRowError):
        builder.parse_row(("   ", "B"), RowShape.UNIFORM)


def test_build_is_deterministic() -> None:
    rows = [("A", "B", "x", "#000000", "G"), ("B", "C", "y", "#FFFFFF", "P"), ("C", "A", "", "", "")]
    assert build_graph(rows) == build_graph(rows)


def test_explicit_shape_overrides_detection() -> None:
    rows = [("A", "B", "", "#000000", "G", "#ffffff", "P")]
    snapshot = build_graph(rows, RowShape.UNIFORM)
    assert snapshot.shape is RowShape.UNIFORM
    assert snapshot.nodes[1].color == "#000000"


def test_detect_row_shape_uses_widest_row() -> None:
    assert detect_row_shape([("A", "B"), ("A", "B", "", "", "", "", "")]) is RowShape.PER_ENDPOINT
    assert detect_row_shape([("A", "B", "x", "#fff", "M")]) is RowShape.UNIFORM
    assert detect_row_shape([]) is RowShape.UNIFORM


def test_builder_defaults_come_from_rendering_config() -> None:
    builder = GraphBuilder.from_config(RenderingConfig(default_node_color="#333333", default_size_code="G"))
    snapshot = builder.build([("A", "B")])
    assert all(node.color == "#333333" and node.size == 15.0 for node in snapshot.nodes)


def test_empty_rows_produce_empty_snapshot() -> None:
    snapshot = build_graph([])
    assert snapshot.is_empty
    assert snapshot.edge_count == 0


def test_numpy_rows_are_parsed_like_lists() -> None:
    rows = np.array([["A", "B", "x", "#000000", "G", "#FFFFFF", "P"]])
    snapshot = build_graph(rows)
    assert snapshot.shape is RowShape.PER_ENDPOINT
    assert [(node.id, node.size) for node in snapshot.nodes] == [("A", 15.0), ("B", 5.0)]
    assert snapshot.edges[0].label == "x"
    assert snapshot.skipped_rows == 0


def test_nested_numpy_value_is_malformed() -> None:
    snapshot = build_graph([np.array([["A", "B"]]), ["C", "D"]])
    assert snapshot.skipped_rows == 1
    assert [node.id for node in snapshot.nodes] == ["C", "D"]
