from __future__ import annotations

import math
from pathlib import Path

import pytest
import yaml

from netgraph.app.config import AppConfig, ConfigError, SimulationConfig, load_config


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path: Path):
    for name in ("NETGRAPH_LINK_DISTANCE", "NETGRAPH_CHARGE_STRENGTH", "NETGRAPH_SIMULATION_SEED"):
        monkeypatch.delenv(name, raising=False)
    empty_env = tmp_path / "empty.env"
    empty_env.write_text("", encoding="utf-8")
    monkeypatch.setenv("NETGRAPH_ENV_FILE", str(empty_env))
    load_config.cache_clear()
    yield
    load_config.cache_clear()


def test_config_loads_expected_structure() -> None:
    config = load_config()
    assert isinstance(config, AppConfig)
    assert config.pipeline.version == "1.0.0"
    assert config.layout.link_distance == 100
    assert config.layout.charge_strength == -200
    assert config.simulation.alpha_min == 0.001
    assert config.simulation.velocity_decay == 0.4
    assert config.simulation.drag_alpha_target == 0.3
    assert config.simulation.barnes_hut_threshold == 200
    assert config.rendering.scale_factor == 2
    assert config.rendering.default_node_color == "#1E88E5"
    assert config.rendering.default_size_code == "M"
    assert config.rendering.link_stroke == "#999"
    assert config.rendering.link_stroke_opacity == 0.6
    assert config.rendering.marker.marker_id == "arrowhead"
    assert config.rendering.marker.points == "0 0, 10 5, 0 10"
    assert config.animation.max_steps == 1000
    assert config.observability.enabled is False
    assert config.observability.updates_filename == "updates.jsonl"
    assert config.api.max_rows == 5000
    assert config.logging.level == "INFO"


def test_config_strict_fields_match_yaml() -> None:
    with AppConfig.default_path().open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle)
    config = load_config()
    assert raw["pipeline"]["version"] == config.pipeline.version
    assert raw["simulation"]["theta"] == config.simulation.theta
    assert raw["simulation"]["seed"] == config.simulation.seed
    assert raw["rendering"]["edge_label_offset"] == config.rendering.edge_label_offset
    assert raw["rendering"]["marker"]["view_box"] == config.rendering.marker.view_box
    assert raw["animation"]["frame_interval_seconds"] == config.animation.frame_interval_seconds


def test_default_alpha_decay_settles_in_about_300_steps() -> None:
    config = SimulationConfig()
    decay = config.resolved_alpha_decay
    assert math.isclose((1.0 - decay) ** 300, config.alpha_min, rel_tol=1e-9)
    assert SimulationConfig(alpha_decay=0.05).resolved_alpha_decay == 0.05


def test_distance_max_must_exceed_distance_min() -> None:
    with pytest.raises(ValueError):
        SimulationConfig(distance_min=5.0, distance_max=2.0)


def test_layout_overrides_from_env(monkeypatch) -> None:
    monkeypatch.setenv("NETGRAPH_LINK_DISTANCE", "42")
    monkeypatch.setenv("NETGRAPH_CHARGE_STRENGTH", "-80")
    monkeypatch.setenv("NETGRAPH_SIMULATION_SEED", "7")
    config = load_config()
    assert config.layout.link_distance == 42
    assert config.layout.charge_strength == -80
    assert config.simulation.seed == 7


def test_env_file_values_apply_without_overriding_process_env(monkeypatch, tmp_path: Path) -> None:
    env_file = tmp_path / "custom.env"
    env_file.write_text(
        "# layout tweaks\nexport NETGRAPH_LINK_DISTANCE=55\nNETGRAPH_CHARGE_STRENGTH='-10'\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("NETGRAPH_ENV_FILE", str(env_file))
    monkeypatch.setenv("NETGRAPH_CHARGE_STRENGTH", "-300")
    config = load_config()
    assert config.layout.link_distance == 55
    assert config.layout.charge_strength == -300


def test_non_numeric_override_raises_config_error(monkeypatch) -> None:
    monkeypatch.setenv("NETGRAPH_LINK_DISTANCE", "far")
    with pytest.raises(ConfigError):
        load_config()


def test_missing_file_raises_config_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.yaml")


def test_invalid_values_raise_config_error(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        "pipeline:\n  version: '1.0.0'\nrendering:\n  default_size_code: 'XL'\n",
        encoding="utf-8",
    )
    with pytest.raises(ConfigError):
        load_config(path)


def test_minimal_file_uses_section_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("pipeline:\n  version: '2.0.0'\nlogging:\n  level: debug\n", encoding="utf-8")
    config = load_config(path)
    assert config.pipeline.version == "2.0.0"
    assert config.layout.link_distance == 100
    assert config.rendering.marker.ref_x == 10
    assert config.logging.level == "DEBUG"
