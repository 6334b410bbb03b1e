"""Force-directed layout simulation over an index-keyed node arena."""
from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, List, Optional, Sequence, Tuple

import numpy as np

from netgraph.app.config import SimulationConfig
from netgraph.app.contracts import GraphSnapshot, LayoutSettings, Viewport
from netgraph.app.layout.commands import PinNode, Reheat, SimulationCommand, UnpinNode
from netgraph.app.layout.forces import (
    LinkTopology,
    apply_center_force,
    apply_charge_force,
    apply_charge_force_approximate,
    apply_link_force,
)

LOGGER = logging.getLogger(__name__)

INITIAL_ANGLE = math.pi * (3.0 - math.sqrt(5.0))
JIGGLE_SCALE = 1e-6


class SimulationStoppedError(RuntimeError):
    """Raised when stepping a simulation that has been torn down."""


@dataclass(frozen=True)
class SimulationFrame:
    """Positions after one step, indexed like the snapshot's node list."""

    step: int
    alpha: float
    positions: np.ndarray
    running: bool

    def position(self, index: int) -> Tuple[float, float]:
        x, y = self.positions[index]
        return float(x), float(y)


TickListener = Callable[[SimulationFrame], None]


class ForceSimulation:
    """Spring-electrical layout advanced one discrete step at a time.

    The simulation is the only writer of node positions. Outside code changes
    pins and alpha through :meth:`submit`; commands are applied at the start of
    the next step so every step sees a consistent arena.
    """

    def __init__(
        self,
        snapshot: GraphSnapshot,
        viewport: Viewport,
        layout: LayoutSettings,
        config: SimulationConfig,
        *,
        on_tick: Optional[TickListener] = None,
    ) -> None:
        self._config = config
        self._layout = layout
        self._center = viewport.center
        self._node_ids: List[str] = [node.id for node in snapshot.nodes]
        self._index: Dict[str, int] = snapshot.node_index()
        self._rng = np.random.default_rng(config.seed)
        self._links = LinkTopology.from_snapshot(snapshot)
        self._on_tick = on_tick

        count = len(self._node_ids)
        slots = np.arange(count, dtype=float)
        radius = config.initial_radius * np.sqrt(0.5 + slots)
        angle = slots * INITIAL_ANGLE
        self._x = self._center[0] + radius * np.cos(angle)
        self._y = self._center[1] + radius * np.sin(angle)
        self._vx = np.zeros(count)
        self._vy = np.zeros(count)
        self._fx = np.full(count, np.nan)
        self._fy = np.full(count, np.nan)
        self._strengths = np.full(count, float(layout.charge_strength))

        self._alpha = config.alpha
        self._alpha_min = config.alpha_min
        self._alpha_decay = config.resolved_alpha_decay
        self._alpha_target = config.alpha_target
        self._velocity_decay = config.velocity_decay
        self._pending: Deque[SimulationCommand] = deque()
        self._step_count = 0
        self._stopped = False
        self._running = count > 0 and self._alpha >= self._alpha_min

    @property
    def alpha(self) -> float:
        return self._alpha

    @property
    def alpha_target(self) -> float:
        return self._alpha_target

    @property
    def alpha_min(self) -> float:
        return self._alpha_min

    @property
    def running(self) -> bool:
        """Whether alpha is still above the settling threshold."""
        return self._running and not self._stopped

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def step_count(self) -> int:
        return self._step_count

    @property
    def node_ids(self) -> Sequence[str]:
        return tuple(self._node_ids)

    @property
    def node_count(self) -> int:
        return len(self._node_ids)

    @property
    def positions(self) -> np.ndarray:
        return np.column_stack((self._x, self._y))

    def index_of(self, node_id: str) -> Optional[int]:
        return self._index.get(node_id)

    def position_of(self, node_id: str) -> Optional[Tuple[float, float]]:
        index = self._index.get(node_id)
        if index is None:
            return None
        return float(self._x[index]), float(self._y[index])

    def pin_of(self, node_id: str) -> Optional[Tuple[float, float]]:
        """Return the pinned coordinates of ``node_id`` or ``None`` when free."""

        index = self._index.get(node_id)
        if index is None or (np.isnan(self._fx[index]) and np.isnan(self._fy[index])):
            return None
        return float(self._fx[index]), float(self._fy[index])

    def set_tick_listener(self, listener: Optional[TickListener]) -> None:
        self._on_tick = listener

    def submit(self, command: SimulationCommand) -> None:
        """Queue a command for the next step."""

        if self._stopped:
            LOGGER.debug("Ignoring %s for stopped simulation", type(command).__name__)
            return
        self._pending.append(command)

    def apply_pending(self) -> int:
        """Apply queued commands now; only call between steps.

        Returns:
            int: Number of commands applied.
        """

        applied = 0
        while self._pending:
            self._apply(self._pending.popleft())
            applied += 1
        return applied

    def _apply(self, command: SimulationCommand) -> None:
        if isinstance(command, Reheat):
            self._alpha_target = min(max(float(command.alpha_target), 0.0), 1.0)
            if self._alpha_target > 0.0:
                self.restart()
            return
        index = self._index.get(command.node_id)
        if index is None:
            LOGGER.warning("Ignoring %s for unknown node %r", type(command).__name__, command.node_id)
            return
        if isinstance(command, PinNode):
            self._fx[index] = float(command.x)
            self._fy[index] = float(command.y)
        elif isinstance(command, UnpinNode):
            self._fx[index] = np.nan
            self._fy[index] = np.nan

    def restart(self) -> None:
        """Resume stepping after the layout settled."""

        if self._stopped:
            return
        self._running = self.node_count > 0

    def stop(self) -> None:
        """Tear the simulation down; it cannot be stepped again."""

        self._stopped = True
        self._running = False
        self._pending.clear()
        self._on_tick = None

    def step(self) -> SimulationFrame:
        """Advance one tick and notify the tick listener.

        Raises:
            SimulationStoppedError: If :meth:`stop` was called.
        """

        if self._stopped:
            raise SimulationStoppedError("simulation has been stopped")
        self.apply_pending()
        self._alpha += (self._alpha_target - self._alpha) * self._alpha_decay
        if self.node_count:
            self._apply_forces()
            self._integrate()
        self._step_count += 1
        if self._alpha < self._alpha_min:
            self._running = False
        frame = SimulationFrame(
            step=self._step_count,
            alpha=self._alpha,
            positions=self.positions,
            running=self._running,
        )
        if self._on_tick is not None:
            self._on_tick(frame)
        return frame

    def run(self, max_steps: int) -> int:
        """Step until the layout settles or ``max_steps`` is reached.

        Returns:
            int: Number of steps taken.
        """

        taken = 0
        while taken < max_steps and self.wants_step():
            self.step()
            taken += 1
        return taken

    def wants_step(self) -> bool:
        """Flush queued commands and report whether another step is due.

        A reheat submitted to a settled simulation only takes effect once
        applied, so the flush happens before ``running`` is read.
        """

        if self._stopped:
            return False
        self.apply_pending()
        return self.running

    def _jiggle(self, count: int) -> np.ndarray:
        return (self._rng.random(count) - 0.5) * JIGGLE_SCALE

    def _apply_forces(self) -> None:
        config = self._config
        apply_link_force(
            self._x,
            self._y,
            self._vx,
            self._vy,
            self._links,
            self._layout.link_distance,
            self._alpha,
            self._jiggle,
        )
        if self.node_count >= config.barnes_hut_threshold:
            apply_charge_force_approximate(
                self._x,
                self._y,
                self._vx,
                self._vy,
                self._strengths,
                self._alpha,
                self._jiggle,
                theta=config.theta,
                distance_min=config.distance_min,
                distance_max=config.distance_max,
            )
        else:
            apply_charge_force(
                self._x,
                self._y,
                self._vx,
                self._vy,
                self._strengths,
                self._alpha,
                self._jiggle,
                distance_min=config.distance_min,
                distance_max=config.distance_max,
            )
        apply_center_force(self._x, self._y, self._center[0], self._center[1], config.center_strength)

    def _integrate(self) -> None:
        free_x = np.isnan(self._fx)
        free_y = np.isnan(self._fy)
        decay = 1.0 - self._velocity_decay
        self._vx[free_x] *= decay
        self._x[free_x] += self._vx[free_x]
        self._vy[free_y] *= decay
        self._y[free_y] += self._vy[free_y]
        self._x[~free_x] = self._fx[~free_x]
        self._vx[~free_x] = 0.0
        self._y[~free_y] = self._fy[~free_y]
        self._vy[~free_y] = 0.0


__all__ = [
    "ForceSimulation",
    "SimulationFrame",
    "SimulationStoppedError",
    "TickListener",
]
