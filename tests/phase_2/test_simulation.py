"""Tests for the force-directed layout simulation."""
from __future__ import annotations

import logging
import math

import numpy as np
import pytest

from netgraph.app.config import SimulationConfig
from netgraph.app.contracts import LayoutSettings, Viewport
from netgraph.app.graph import build_graph
from netgraph.app.layout import (
    ForceSimulation,
    PinNode,
    Reheat,
    SimulationFrame,
    SimulationStoppedError,
    UnpinNode,
)

VIEWPORT = Viewport(width=800, height=600)


def _simulation(rows, *, layout: LayoutSettings | None = None, **overrides) -> ForceSimulation:
    return ForceSimulation(
        build_graph(rows),
        VIEWPORT,
        layout or LayoutSettings(),
        SimulationConfig(**overrides),
    )


TRIANGLE = [("A", "B"), ("B", "C"), ("C", "A")]


def test_initial_positions_spiral_around_center() -> None:
    simulation = _simulation(TRIANGLE)
    positions = simulation.positions
    assert positions.shape == (3, 2)
    distances = np.hypot(positions[:, 0] - 400, positions[:, 1] - 300)
    assert np.allclose(distances, 10 * np.sqrt(0.5 + np.arange(3)))
    assert simulation.running
    assert simulation.alpha == 1.0


def test_simulation_settles_after_about_300_steps() -> None:
    simulation = _simulation(TRIANGLE)
    taken = simulation.run(1000)
    assert 295 <= taken <= 305
    assert not simulation.running
    assert simulation.alpha < simulation.alpha_min
    assert np.isfinite(simulation.positions).all()


def test_alpha_decays_geometrically_toward_target() -> None:
    simulation = _simulation(TRIANGLE)
    decay = SimulationConfig().resolved_alpha_decay
    frame = simulation.step()
    assert math.isclose(frame.alpha, 1.0 - decay)
    frame = simulation.step()
    assert math.isclose(frame.alpha, (1.0 - decay) ** 2)


def test_layout_mean_stays_on_viewport_center() -> None:
    simulation = _simulation(TRIANGLE)
    simulation.run(1000)
    mean = simulation.positions.mean(axis=0)
    assert mean[0] == pytest.approx(400, abs=1e-3)
    assert mean[1] == pytest.approx(300, abs=1e-3)


def test_single_link_relaxes_to_link_distance() -> None:
    simulation = _simulation([("A", "B")], layout=LayoutSettings(link_distance=100, charge_strength=0))
    simulation.run(1000)
    (ax, ay), (bx, by) = simulation.positions
    assert math.hypot(bx - ax, by - ay) == pytest.approx(100, abs=5)


def test_repulsion_spreads_unlinked_nodes() -> None:
    simulation = _simulation([("A", "B"), ("C", "D")], layout=LayoutSettings(link_distance=30))
    start = simulation.positions
    simulation.run(1000)
    end = simulation.positions
    spread = lambda points: np.ptp(points, axis=0).max()  # noqa: E731
    assert spread(end) > spread(start)


def test_same_seed_gives_identical_layouts() -> None:
    rows = [("A", "B"), ("B", "C"), ("C", "D"), ("D", "A"), ("A", "C")]
    first = _simulation(rows)
    second = _simulation(rows)
    first.run(200)
    second.run(200)
    assert np.array_equal(first.positions, second.positions)


def test_pin_holds_node_exactly_every_step() -> None:
    simulation = _simulation(TRIANGLE)
    simulation.submit(PinNode(node_id="A", x=123.5, y=-42.25))
    for _ in range(50):
        frame = simulation.step()
        assert frame.position(0) == (123.5, -42.25)
    assert simulation.pin_of("A") == (123.5, -42.25)
    assert simulation.pin_of("B") is None


def test_commands_apply_at_next_step_not_on_submit() -> None:
    simulation = _simulation(TRIANGLE)
    before = simulation.position_of("A")
    simulation.submit(PinNode(node_id="A", x=0.0, y=0.0))
    assert simulation.position_of("A") == before
    simulation.step()
    assert simulation.position_of("A") == (0.0, 0.0)


def test_unpinned_node_moves_again() -> None:
    simulation = _simulation(TRIANGLE)
    simulation.submit(PinNode(node_id="A", x=100.0, y=100.0))
    simulation.run(20)
    simulation.submit(UnpinNode(node_id="A"))
    simulation.step()
    simulation.step()
    assert simulation.pin_of("A") is None
    assert simulation.position_of("A") != (100.0, 100.0)


def test_reheat_restarts_settled_simulation() -> None:
    simulation = _simulation(TRIANGLE)
    simulation.run(1000)
    assert not simulation.running
    simulation.submit(Reheat(alpha_target=0.3))
    assert simulation.wants_step()
    assert simulation.alpha_target == 0.3
    for _ in range(100):
        simulation.step()
    assert simulation.running
    assert simulation.alpha > 0.25

    simulation.submit(Reheat(alpha_target=0.0))
    simulation.run(2000)
    assert not simulation.running


def test_unknown_node_command_is_ignored(caplog) -> None:
    simulation = _simulation(TRIANGLE)
    with caplog.at_level(logging.WARNING, logger="netgraph.app.layout.simulation"):
        simulation.submit(PinNode(node_id="missing", x=1.0, y=1.0))
        simulation.step()
    assert "unknown node 'missing'" in caplog.text


def test_tick_listener_receives_every_frame() -> None:
    frames: list[SimulationFrame] = []
    simulation = _simulation(TRIANGLE)
    simulation.set_tick_listener(frames.append)
    simulation.run(5)
    assert [frame.step for frame in frames] == [1, 2, 3, 4, 5]
    assert frames[-1].positions.shape == (3, 2)


def test_frames_hold_copies_of_positions() -> None:
    simulation = _simulation(TRIANGLE)
    frame = simulation.step()
    snapshot = frame.positions.copy()
    simulation.step()
    assert np.array_equal(frame.positions, snapshot)


def test_stopped_simulation_refuses_steps() -> None:
    frames: list[SimulationFrame] = []
    simulation = _simulation(TRIANGLE)
    simulation.set_tick_listener(frames.append)
    simulation.submit(PinNode(node_id="A", x=1.0, y=1.0))
    simulation.stop()
    assert simulation.stopped
    assert not simulation.running
    assert simulation.run(10) == 0
    with pytest.raises(SimulationStoppedError):
        simulation.step()
    assert frames == []


def test_empty_graph_is_not_running() -> None:
    simulation = _simulation([])
    assert simulation.node_count == 0
    assert not simulation.running
    assert simulation.run(10) == 0
    frame = simulation.step()
    assert frame.positions.shape == (0, 2)


def test_coincident_nodes_separate_without_nan() -> None:
    simulation = _simulation(TRIANGLE, initial_radius=1e-12)
    simulation.run(50)
    assert np.isfinite(simulation.positions).all()


def test_barnes_hut_path_keeps_positions_finite() -> None:
    rows = [(f"n{i}", f"n{(i * 7 + 3) % 40}") for i in range(40)]
    simulation = _simulation(rows, barnes_hut_threshold=10)
    simulation.run(60)
    assert np.isfinite(simulation.positions).all()
    assert simulation.step_count == 60
