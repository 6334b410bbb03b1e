"""End-to-end orchestration of the update, simulate, and render cycle."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from netgraph.app.config import AppConfig
from netgraph.app.contracts import GraphSnapshot, LayoutSettings, RowShape, Viewport
from netgraph.app.graph import GraphBuilder
from netgraph.app.layout import ForceSimulation
from netgraph.app.observability import ObservabilityService
from netgraph.app.render import DragController, Scene, SceneRenderer, scene_to_svg

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpdateResult:
    """Summary payload returned after an update cycle rebuilt the graph."""

    generation: int
    node_count: int
    edge_count: int
    shape: Optional[RowShape]
    skipped_rows: int
    warnings: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return self.node_count == 0


@dataclass(frozen=True)
class SettleResult:
    """Outcome of stepping the current simulation toward rest."""

    generation: int
    steps: int
    settled: bool
    alpha: float
    elapsed_seconds: float = 0.0


def _as_rows(rows: Any) -> Optional[List[Any]]:
    """Return ``rows`` as a list, or ``None`` when the input is not tabular."""

    if rows is None or isinstance(rows, (str, bytes, Mapping)):
        return None
    if isinstance(rows, np.ndarray):
        return rows.tolist() if rows.ndim else None
    if not isinstance(rows, Iterable):
        return None
    return list(rows)


class VisualOrchestrator:
    """Owns the current snapshot, simulation, and scene for one surface.

    Every :meth:`update` discards the previous simulation before building the
    next one and bumps a generation counter so stale animation loops exit.
    """

    def __init__(
        self,
        config: AppConfig,
        observability: Optional[ObservabilityService] = None,
        *,
        builder: Optional[GraphBuilder] = None,
    ) -> None:
        self._config = config
        self._observability = observability
        self._builder = builder or GraphBuilder.from_config(config.rendering)
        self._renderer = SceneRenderer(config.rendering)
        self._viewport = Viewport(width=0.0, height=0.0)
        self._snapshot = GraphSnapshot()
        self._simulation: Optional[ForceSimulation] = None
        self._drag: Optional[DragController] = None
        self._generation = 0
        self._active_animations = 0
        self._resume_task: Optional[asyncio.Task[SettleResult]] = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def snapshot(self) -> GraphSnapshot:
        return self._snapshot

    @property
    def simulation(self) -> Optional[ForceSimulation]:
        return self._simulation

    @property
    def scene(self) -> Scene:
        return self._renderer.scene

    @property
    def drag(self) -> Optional[DragController]:
        return self._drag

    @property
    def settled(self) -> bool:
        return self._simulation is None or not self._simulation.running

    @property
    def resume_task(self) -> Optional[asyncio.Task[SettleResult]]:
        """Animation restarted by the most recent drag, if one was scheduled."""
        return self._resume_task

    def update(
        self,
        viewport: Viewport,
        rows: Any,
        layout: Optional[LayoutSettings] = None,
        shape: Optional[RowShape] = None,
    ) -> UpdateResult:
        """Rebuild the graph, simulation, and scene from a fresh set of rows.

        Args:
            viewport: Size of the drawing surface.
            rows: Tabular rows; anything non-tabular yields an empty surface.
            layout: Spring and repulsion parameters; configured defaults otherwise.
            shape: Row shape to force; detected from the rows when omitted.

        Returns:
            UpdateResult: Counts and diagnostics for the new snapshot.
        """

        started = time.perf_counter()
        self.stop()
        self._generation += 1
        self._viewport = viewport
        settings = layout or LayoutSettings.from_config(self._config.layout)

        materialised = _as_rows(rows)
        if not materialised:
            if materialised is None and rows is not None:
                LOGGER.warning("Received non-tabular rows of type %s; rendering empty surface", type(rows).__name__)
            self._snapshot = GraphSnapshot()
            self._renderer.clear(viewport)
            result = UpdateResult(
                generation=self._generation,
                node_count=0,
                edge_count=0,
                shape=None,
                skipped_rows=0,
            )
            self._report_update(result, time.perf_counter() - started)
            return result

        snapshot = self._builder.build(materialised, shape)
        self._snapshot = snapshot
        self._renderer.mount(snapshot, viewport)
        simulation = ForceSimulation(
            snapshot,
            viewport,
            settings,
            self._config.simulation,
            on_tick=self._renderer.sync,
        )
        self._renderer.apply_positions(simulation.positions)
        self._simulation = simulation
        self._drag = DragController(
            simulation,
            self._renderer,
            alpha_target=self._config.simulation.drag_alpha_target,
        )
        result = UpdateResult(
            generation=self._generation,
            node_count=snapshot.node_count,
            edge_count=snapshot.edge_count,
            shape=snapshot.shape,
            skipped_rows=snapshot.skipped_rows,
            warnings=snapshot.warnings,
        )
        LOGGER.info(
            "Update %d built %d nodes and %d edges (%d rows skipped)",
            result.generation,
            result.node_count,
            result.edge_count,
            result.skipped_rows,
        )
        self._report_update(result, time.perf_counter() - started)
        return result

    def stop(self) -> None:
        """Tear down the current simulation and drag state, if any."""

        if self._drag is not None:
            self._drag.cancel_all()
            self._drag = None
        if self._simulation is not None:
            self._simulation.stop()
            self._simulation = None

    def advance(self, steps: int = 1) -> int:
        """Step the current simulation up to ``steps`` times.

        Returns:
            int: Steps actually taken; fewer when the layout settles.
        """

        if self._simulation is None:
            return 0
        return self._simulation.run(max(0, steps))

    def run_until_settled(self, max_steps: Optional[int] = None) -> SettleResult:
        """Step synchronously until alpha settles or the budget runs out."""

        budget = self._config.animation.max_steps if max_steps is None else max_steps
        started = time.perf_counter()
        steps = self.advance(budget)
        return self._finish_settle(self._generation, steps, time.perf_counter() - started)

    async def animate(
        self,
        frame_interval: Optional[float] = None,
        max_steps: Optional[int] = None,
    ) -> SettleResult:
        """Step once per frame, yielding to the event loop between steps.

        The loop ends when the layout settles, the budget is spent, or a newer
        update replaces the simulation it started with.
        """

        interval = self._config.animation.frame_interval_seconds if frame_interval is None else frame_interval
        budget = self._config.animation.max_steps if max_steps is None else max_steps
        generation = self._generation
        simulation = self._simulation
        started = time.perf_counter()
        steps = 0
        self._active_animations += 1
        try:
            while simulation is not None and steps < budget:
                if generation != self._generation or not simulation.wants_step():
                    break
                simulation.step()
                steps += 1
                await asyncio.sleep(interval)
        finally:
            self._active_animations -= 1
        if generation != self._generation:
            LOGGER.debug("Animation for update %d superseded after %d steps", generation, steps)
        return self._finish_settle(generation, steps, time.perf_counter() - started)

    def _finish_settle(self, generation: int, steps: int, elapsed: float) -> SettleResult:
        simulation = self._simulation if generation == self._generation else None
        settled = simulation is None or not simulation.running
        result = SettleResult(
            generation=generation,
            steps=steps,
            settled=settled,
            alpha=simulation.alpha if simulation is not None else 0.0,
            elapsed_seconds=elapsed,
        )
        if self._observability is not None and steps:
            self._observability.record_update(
                {
                    "event": "settle",
                    "generation": generation,
                    "steps": steps,
                    "settled": settled,
                    "alpha": result.alpha,
                    "elapsed_seconds": elapsed,
                }
            )
        return result

    def _report_update(self, result: UpdateResult, elapsed: float) -> None:
        if self._observability is None:
            return
        self._observability.record_update(
            {
                "event": "update",
                "generation": result.generation,
                "node_count": result.node_count,
                "edge_count": result.edge_count,
                "shape": result.shape,
                "skipped_rows": result.skipped_rows,
                "warnings": list(result.warnings),
                "viewport": {"width": self._viewport.width, "height": self._viewport.height},
                "elapsed_seconds": elapsed,
            }
        )

    def start_drag(self, node_id: str) -> bool:
        """Begin dragging ``node_id`` and make sure the layout keeps stepping.

        The drag reheats a settled simulation. Called from inside a running
        event loop with no :meth:`animate` loop active, it schedules a fresh
        one (see :attr:`resume_task`). Synchronous callers drive the steps
        themselves with :meth:`advance`.

        Returns:
            bool: Whether the drag was accepted.
        """

        if self._drag is None or not self._drag.start(node_id):
            return False
        self._resume_animation()
        return True

    def move_drag(self, node_id: str, x: float, y: float) -> bool:
        return self._drag.move(node_id, x, y) if self._drag is not None else False

    def end_drag(self, node_id: str) -> bool:
        return self._drag.end(node_id) if self._drag is not None else False

    def _resume_animation(self) -> None:
        if self._active_animations or (self._resume_task is not None and not self._resume_task.done()):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug("No running event loop; drag steps are driven by the caller")
            return
        self._resume_task = loop.create_task(self.animate())

    def render_svg(self) -> str:
        """Serialise the current scene as it was drawn at the last step."""

        return scene_to_svg(self._renderer.scene)

    def export_layout(self) -> Dict[str, Any]:
        """Return node positions and drawn edge geometry as plain data."""

        scene = self._renderer.scene
        simulation = self._simulation
        nodes = [
            {
                "id": element.node_id,
                "x": element.x,
                "y": element.y,
                "radius": element.radius,
                "color": element.fill,
                "label_color": element.label.fill,
                "pinned": simulation is not None and simulation.pin_of(element.node_id) is not None,
            }
            for element in scene.nodes
        ]
        edges = [
            {
                "source": scene.nodes[edge.source].node_id,
                "target": scene.nodes[edge.target].node_id,
                "label": edge.label.text,
                "x1": edge.line.x1,
                "y1": edge.line.y1,
                "x2": edge.line.x2,
                "y2": edge.line.y2,
                "label_transform": edge.label.rotation,
            }
            for edge in scene.edges
        ]
        return {
            "generation": self._generation,
            "viewport": {"width": scene.width, "height": scene.height},
            "step": simulation.step_count if simulation is not None else 0,
            "alpha": simulation.alpha if simulation is not None else 0.0,
            "settled": self.settled,
            "shape": self._snapshot.shape.value if not self._snapshot.is_empty else None,
            "skipped_rows": self._snapshot.skipped_rows,
            "nodes": nodes,
            "edges": edges,
        }


__all__ = ["SettleResult", "UpdateResult", "VisualOrchestrator"]
