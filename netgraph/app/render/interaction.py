"""Pointer-drag handling that pins nodes through simulation commands."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from netgraph.app.layout.commands import PinNode, Reheat, UnpinNode
from netgraph.app.layout.simulation import ForceSimulation
from netgraph.app.render.scene import SceneRenderer

LOGGER = logging.getLogger(__name__)

DEFAULT_DRAG_ALPHA_TARGET = 0.3


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


@dataclass
class _Grab:
    node_id: str
    offset_x: float
    offset_y: float


class DragController:
    """Translate drag gestures into pin, unpin, and reheat commands.

    Per node the state is ``IDLE -> DRAGGING -> IDLE``. Events that do not fit
    the current state (a move without a start, a second start) are ignored.
    The simulation is reheated when the first concurrent drag starts and
    cooled when the last one ends.
    """

    def __init__(
        self,
        simulation: ForceSimulation,
        renderer: SceneRenderer,
        *,
        alpha_target: float = DEFAULT_DRAG_ALPHA_TARGET,
    ) -> None:
        self._simulation = simulation
        self._renderer = renderer
        self._alpha_target = alpha_target
        self._dragging: Dict[str, Tuple[float, float]] = {}
        self._pointers: Dict[int, _Grab] = {}

    @property
    def active_count(self) -> int:
        return len(self._dragging)

    def state_of(self, node_id: str) -> DragState:
        return DragState.DRAGGING if node_id in self._dragging else DragState.IDLE

    def start(self, node_id: str) -> bool:
        """Begin dragging ``node_id`` from its rendered position.

        Returns:
            bool: ``True`` when the drag started.
        """

        if node_id in self._dragging:
            LOGGER.debug("Ignoring drag start for %r: already dragging", node_id)
            return False
        element = self._renderer.scene.node(node_id)
        if element is None or self._simulation.index_of(node_id) is None:
            LOGGER.debug("Ignoring drag start for unknown node %r", node_id)
            return False
        if not self._dragging:
            self._simulation.submit(Reheat(alpha_target=self._alpha_target))
        position = (element.x, element.y)
        self._dragging[node_id] = position
        self._simulation.submit(PinNode(node_id=node_id, x=position[0], y=position[1]))
        return True

    def move(self, node_id: str, x: float, y: float) -> bool:
        """Move the pin of a dragged node to ``(x, y)``."""

        if node_id not in self._dragging:
            LOGGER.debug("Ignoring drag move for %r: not dragging", node_id)
            return False
        self._dragging[node_id] = (x, y)
        self._simulation.submit(PinNode(node_id=node_id, x=x, y=y))
        return True

    def end(self, node_id: str) -> bool:
        """Release ``node_id`` so forces act on it again."""

        if node_id not in self._dragging:
            LOGGER.debug("Ignoring drag end for %r: not dragging", node_id)
            return False
        del self._dragging[node_id]
        self._simulation.submit(UnpinNode(node_id=node_id))
        if not self._dragging:
            self._simulation.submit(Reheat(alpha_target=0.0))
        return True

    def pointer_down(self, pointer_id: int, x: float, y: float) -> Optional[str]:
        """Start a drag on whatever node is under the pointer.

        The offset between the pointer and the node center is kept so the node
        does not jump under the cursor.
        """

        if pointer_id in self._pointers:
            LOGGER.debug("Ignoring pointer down for active pointer %d", pointer_id)
            return None
        node_id = self._renderer.node_at(x, y)
        if node_id is None or not self.start(node_id):
            return None
        node_x, node_y = self._dragging[node_id]
        self._pointers[pointer_id] = _Grab(node_id=node_id, offset_x=node_x - x, offset_y=node_y - y)
        return node_id

    def pointer_move(self, pointer_id: int, x: float, y: float) -> bool:
        grab = self._pointers.get(pointer_id)
        if grab is None:
            return False
        return self.move(grab.node_id, x + grab.offset_x, y + grab.offset_y)

    def pointer_up(self, pointer_id: int) -> bool:
        grab = self._pointers.pop(pointer_id, None)
        if grab is None:
            return False
        return self.end(grab.node_id)

    def cancel_all(self) -> None:
        """End every active drag, e.g. before the scene is rebuilt."""

        self._pointers.clear()
        for node_id in list(self._dragging):
            self.end(node_id)


__all__ = ["DEFAULT_DRAG_ALPHA_TARGET", "DragController", "DragState"]
