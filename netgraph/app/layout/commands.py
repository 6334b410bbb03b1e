"""Commands accepted by the force simulation between steps."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class PinNode:
    """Hold ``node_id`` at ``(x, y)`` until it is unpinned."""

    node_id: str
    x: float
    y: float


@dataclass(frozen=True)
class UnpinNode:
    """Release a pinned node back to the forces."""

    node_id: str


@dataclass(frozen=True)
class Reheat:
    """Move alpha toward ``alpha_target``; a positive target restarts a settled simulation."""

    alpha_target: float


SimulationCommand = Union[PinNode, UnpinNode, Reheat]

__all__ = ["PinNode", "Reheat", "SimulationCommand", "UnpinNode"]
