"""Observability helpers for capturing update-cycle metrics."""

from netgraph.app.observability.service import ObservabilityService

__all__ = ["ObservabilityService"]
