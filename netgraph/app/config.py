"""Configuration loader for the NetGraph visual engine."""
from __future__ import annotations

import logging
import math
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

LOGGER = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_ENV_FILE = REPO_ROOT / ".env"

SIZE_CODES = ("P", "M", "G", "MG")


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded."""


class _FrozenModel(BaseModel):
    """Base model enforcing immutability for config sections."""

    model_config = ConfigDict(frozen=True)


class PipelineConfig(_FrozenModel):
    """Engine-level configuration."""

    version: str = Field(..., min_length=1)


class LayoutConfig(_FrozenModel):
    """Default spring and repulsion parameters applied when the host sends none."""

    link_distance: float = Field(100.0, gt=0)
    charge_strength: float = Field(-200.0)


class SimulationConfig(_FrozenModel):
    """Numerical knobs of the force simulation."""

    alpha: float = Field(1.0, ge=0.0, le=1.0)
    alpha_min: float = Field(0.001, gt=0.0, lt=1.0)
    alpha_decay: Optional[float] = Field(default=None, gt=0.0, lt=1.0)
    alpha_target: float = Field(0.0, ge=0.0, le=1.0)
    velocity_decay: float = Field(0.4, ge=0.0, le=1.0)
    drag_alpha_target: float = Field(0.3, gt=0.0, le=1.0)
    initial_radius: float = Field(10.0, gt=0)
    center_strength: float = Field(1.0, ge=0.0, le=1.0)
    theta: float = Field(0.9, gt=0.0)
    distance_min: float = Field(1.0, gt=0.0)
    distance_max: Optional[float] = Field(default=None, gt=0.0)
    barnes_hut_threshold: int = Field(200, ge=2)
    seed: int = Field(42, ge=0)

    @model_validator(mode="after")
    def _validate_distances(self) -> "SimulationConfig":
        if self.distance_max is not None and self.distance_max <= self.distance_min:
            msg = "simulation.distance_max must exceed simulation.distance_min"
            raise ValueError(msg)
        return self

    @property
    def resolved_alpha_decay(self) -> float:
        """Return the per-step decay, defaulting to settling in about 300 steps."""

        if self.alpha_decay is not None:
            return self.alpha_decay
        return 1.0 - math.pow(self.alpha_min, 1.0 / 300.0)


class MarkerConfig(_FrozenModel):
    """Arrowhead marker shared by every edge line."""

    marker_id: str = Field("arrowhead", min_length=1)
    view_box: str = Field("0 0 10 10", min_length=1)
    ref_x: float = 10.0
    ref_y: float = 5.0
    width: float = Field(6.0, gt=0)
    height: float = Field(6.0, gt=0)
    points: str = Field("0 0, 10 5, 0 10", min_length=1)
    fill: str = Field("#999", min_length=1)


class RenderingConfig(_FrozenModel):
    """Visual constants used when turning a snapshot into scene primitives."""

    scale_factor: float = Field(2.0, gt=0)
    default_node_color: str = Field("#1E88E5", min_length=1)
    default_size_code: str = Field("M", min_length=1)
    node_label_max_font_size: float = Field(12.0, gt=0)
    edge_label_font_size: float = Field(10.0, gt=0)
    edge_label_offset: float = -5.0
    link_stroke: str = Field("#999", min_length=1)
    link_stroke_opacity: float = Field(0.6, ge=0.0, le=1.0)
    link_stroke_width: float = Field(2.0, gt=0)
    css_class: str = Field("network-graph", min_length=1)
    marker: MarkerConfig = Field(default_factory=MarkerConfig)

    @field_validator("default_size_code")
    @classmethod
    def _validate_size_code(cls, value: str) -> str:
        if value not in SIZE_CODES:
            msg = f"rendering.default_size_code must be one of {', '.join(SIZE_CODES)}"
            raise ValueError(msg)
        return value


class AnimationConfig(_FrozenModel):
    """Scheduling for the cooperative step loop."""

    frame_interval_seconds: float = Field(1.0 / 60.0, ge=0.0)
    max_steps: int = Field(1000, ge=1)


class ObservabilityConfig(_FrozenModel):
    """Where update-cycle manifests are written."""

    enabled: bool = False
    root_dir: str = Field("data/observability", min_length=1)
    updates_filename: str = Field("updates.jsonl", min_length=1)


class APIConfig(_FrozenModel):
    """HTTP surface settings."""

    allowed_origins: List[str] = Field(default_factory=list)
    max_rows: int = Field(5000, ge=1)
    max_viewport: float = Field(10000.0, gt=0)


class LoggingConfig(_FrozenModel):
    """Logging defaults applied by the command line scripts."""

    level: str = Field("INFO", min_length=1)
    format: str = Field("[%(levelname)s] %(name)s: %(message)s", min_length=1)

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Unsupported logging level: {value}"
            raise ValueError(msg)
        return normalized


class AppConfig(_FrozenModel):
    """Top-level application configuration composed from config.yaml."""

    pipeline: PipelineConfig
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    rendering: RenderingConfig = Field(default_factory=RenderingConfig)
    animation: AnimationConfig = Field(default_factory=AnimationConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @staticmethod
    def default_path() -> Path:
        """Return the default location of the configuration file.

        Returns:
            Path: Absolute path to config.yaml at the repository root.
        """
        return REPO_ROOT / "config.yaml"


def _determine_env_file_path() -> Optional[Path]:
    """Return the path to the environment file if one should be loaded."""

    override = os.getenv("NETGRAPH_ENV_FILE")
    if override:
        candidate = Path(override).expanduser()
        if candidate.exists():
            return candidate
        LOGGER.warning("Configured environment file override does not exist: %s", candidate)
        return None
    if DEFAULT_ENV_FILE.exists():
        return DEFAULT_ENV_FILE
    return None


def _load_env_file(path: Path) -> None:
    """Populate ``os.environ`` with values read from a ``.env`` file.

    Variables already set in the process environment take precedence.
    """

    try:
        with path.open("r", encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                if line.lower().startswith("export "):
                    line = line[7:].lstrip()
                key, raw_value = line.split("=", 1)
                key = key.strip()
                if not key or os.environ.get(key, "").strip():
                    continue
                value = raw_value.strip()
                if len(value) >= 2 and value[0] in {'"', "'"} and value[-1] == value[0]:
                    value = value[1:-1]
                elif "#" in value:
                    value = value[: value.index("#")].rstrip()
                os.environ[key] = value
    except OSError:
        LOGGER.warning("Unable to read environment file at %s", path)


def _float_from_env(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"Environment variable {name} must be numeric") from exc


def _apply_environment_overrides(raw_content: Dict[str, Any]) -> Dict[str, Any]:
    """Merge environment-based overrides into the raw configuration mapping.

    Args:
        raw_content: Parsed YAML configuration prior to Pydantic validation.

    Returns:
        Dict[str, Any]: Configuration mapping with environment overrides applied.

    Raises:
        ConfigError: If an override is present but not numeric.
    """

    env_file_path = _determine_env_file_path()
    if env_file_path is not None:
        _load_env_file(env_file_path)

    link_distance = _float_from_env("NETGRAPH_LINK_DISTANCE")
    charge_strength = _float_from_env("NETGRAPH_CHARGE_STRENGTH")
    seed = _float_from_env("NETGRAPH_SIMULATION_SEED")
    if link_distance is not None or charge_strength is not None:
        layout_section = raw_content.setdefault("layout", {}) or {}
        raw_content["layout"] = layout_section
        if link_distance is not None:
            layout_section["link_distance"] = link_distance
        if charge_strength is not None:
            layout_section["charge_strength"] = charge_strength
        LOGGER.info("Layout defaults overridden from environment")
    if seed is not None:
        simulation_section = raw_content.setdefault("simulation", {}) or {}
        raw_content["simulation"] = simulation_section
        simulation_section["seed"] = int(seed)
    return raw_content


def _read_yaml(path: Path) -> Dict[str, Any]:
    """Read YAML content from disk.

    Args:
        path: Location of the YAML file.

    Returns:
        Dict[str, Any]: Parsed YAML content.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except FileNotFoundError as exc:
        LOGGER.error("Configuration file missing at %s", path)
        raise ConfigError("Configuration file not found") from exc
    except yaml.YAMLError as exc:
        LOGGER.error("Invalid YAML syntax in %s", path)
        raise ConfigError("Invalid YAML syntax") from exc
    if not isinstance(data, dict):
        LOGGER.error("Configuration root must be a mapping: %s", path)
        raise ConfigError("Configuration root must be a mapping")
    return data


@lru_cache(maxsize=1)
def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load application configuration from YAML.

    Args:
        path: Optional override path to the YAML file.

    Returns:
        AppConfig: Parsed configuration object.

    Raises:
        ConfigError: If the configuration cannot be loaded or validated.
    """
    config_path = path or AppConfig.default_path()
    raw_content = _read_yaml(config_path)
    raw_content = _apply_environment_overrides(raw_content)
    try:
        return AppConfig(**raw_content)
    except ValidationError as exc:
        LOGGER.error("Invalid configuration values: %s", exc)
        raise ConfigError("Configuration validation failed") from exc
