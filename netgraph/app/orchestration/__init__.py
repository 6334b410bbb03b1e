"""Update-cycle orchestration for the network graph surface."""

from netgraph.app.orchestration.orchestrator import SettleResult, UpdateResult, VisualOrchestrator

__all__ = ["SettleResult", "UpdateResult", "VisualOrchestrator"]
