"""Force-directed layout simulation."""

from netgraph.app.layout.commands import PinNode, Reheat, SimulationCommand, UnpinNode
from netgraph.app.layout.simulation import ForceSimulation, SimulationFrame, SimulationStoppedError

__all__ = [
    "ForceSimulation",
    "PinNode",
    "Reheat",
    "SimulationCommand",
    "SimulationFrame",
    "SimulationStoppedError",
    "UnpinNode",
]
