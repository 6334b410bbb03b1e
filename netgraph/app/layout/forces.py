"""Force kernels mutating the simulation arena in place.

Each kernel adds to the velocity arrays (link, charge) or shifts positions
(center). Kernels never read or write pins; the integrator applies them.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from netgraph.app.contracts import GraphSnapshot
from netgraph.app.layout.quadtree import QuadTree

Jiggle = Callable[[int], np.ndarray]

LENGTH_EPSILON = 1e-9


@dataclass(frozen=True)
class LinkTopology:
    """Edge endpoints with the per-link strength and bias derived from degrees."""

    sources: np.ndarray
    targets: np.ndarray
    strengths: np.ndarray
    biases: np.ndarray

    @classmethod
    def from_snapshot(cls, snapshot: GraphSnapshot) -> "LinkTopology":
        node_count = snapshot.node_count
        sources = np.fromiter((edge.source for edge in snapshot.edges), dtype=np.intp, count=snapshot.edge_count)
        targets = np.fromiter((edge.target for edge in snapshot.edges), dtype=np.intp, count=snapshot.edge_count)
        if not snapshot.edges:
            empty = np.zeros(0, dtype=float)
            return cls(sources=sources, targets=targets, strengths=empty, biases=empty)
        degree = np.bincount(np.concatenate((sources, targets)), minlength=node_count).astype(float)
        source_degree = degree[sources]
        target_degree = degree[targets]
        return cls(
            sources=sources,
            targets=targets,
            strengths=1.0 / np.minimum(source_degree, target_degree),
            biases=source_degree / (source_degree + target_degree),
        )

    @property
    def count(self) -> int:
        return int(self.sources.shape[0])


def apply_link_force(
    x: np.ndarray,
    y: np.ndarray,
    vx: np.ndarray,
    vy: np.ndarray,
    links: LinkTopology,
    distance: float,
    alpha: float,
    jiggle: Jiggle,
) -> None:
    """Pull each link's endpoints toward a separation of ``distance``.

    The displacement is measured on the positions the nodes are about to reach
    (position plus velocity) and split between the ends by degree, so
    well-connected nodes move less.
    """

    if not links.count:
        return
    s = links.sources
    t = links.targets
    dx = x[t] + vx[t] - x[s] - vx[s]
    dy = y[t] + vy[t] - y[s] - vy[s]
    zero_x = dx == 0
    if zero_x.any():
        dx[zero_x] = jiggle(int(zero_x.sum()))
    zero_y = dy == 0
    if zero_y.any():
        dy[zero_y] = jiggle(int(zero_y.sum()))
    length = np.sqrt(dx * dx + dy * dy)
    length = np.where(length < LENGTH_EPSILON, LENGTH_EPSILON, length)
    scale = (length - distance) / length * alpha * links.strengths
    dx *= scale
    dy *= scale
    np.add.at(vx, t, -dx * links.biases)
    np.add.at(vy, t, -dy * links.biases)
    np.add.at(vx, s, dx * (1.0 - links.biases))
    np.add.at(vy, s, dy * (1.0 - links.biases))


def apply_charge_force(
    x: np.ndarray,
    y: np.ndarray,
    vx: np.ndarray,
    vy: np.ndarray,
    strengths: np.ndarray,
    alpha: float,
    jiggle: Jiggle,
    *,
    distance_min: float,
    distance_max: Optional[float] = None,
) -> None:
    """Exact all-pairs many-body force; negative strengths repel."""

    count = x.shape[0]
    if count < 2:
        return
    dx = x[np.newaxis, :] - x[:, np.newaxis]
    dy = y[np.newaxis, :] - y[:, np.newaxis]
    off_diagonal = ~np.eye(count, dtype=bool)
    zero_x = (dx == 0) & off_diagonal
    if zero_x.any():
        dx[zero_x] = jiggle(int(zero_x.sum()))
    zero_y = (dy == 0) & off_diagonal
    if zero_y.any():
        dy[zero_y] = jiggle(int(zero_y.sum()))
    length2 = dx * dx + dy * dy
    np.fill_diagonal(length2, np.inf)
    distance_min2 = distance_min * distance_min
    close = length2 < distance_min2
    adjusted = np.where(close, np.sqrt(distance_min2 * length2), length2)
    weights = strengths[np.newaxis, :] * alpha / adjusted
    if distance_max is not None:
        weights[length2 >= distance_max * distance_max] = 0.0
    vx += (dx * weights).sum(axis=1)
    vy += (dy * weights).sum(axis=1)


def apply_charge_force_approximate(
    x: np.ndarray,
    y: np.ndarray,
    vx: np.ndarray,
    vy: np.ndarray,
    strengths: np.ndarray,
    alpha: float,
    jiggle: Jiggle,
    *,
    theta: float,
    distance_min: float,
    distance_max: Optional[float] = None,
) -> None:
    """Barnes-Hut many-body force, O(n log n) per step."""

    count = x.shape[0]
    if count < 2:
        return
    tree = QuadTree(x, y)
    strength_list = strengths.tolist()
    tree.accumulate(strength_list)
    distance_max2 = distance_max * distance_max if distance_max is not None else float("inf")

    def _scalar_jiggle() -> float:
        return float(jiggle(1)[0])

    for index in range(count):
        dvx, dvy = tree.force_on(
            index,
            strength_list,
            alpha,
            theta2=theta * theta,
            distance_min2=distance_min * distance_min,
            distance_max2=distance_max2,
            jiggle=_scalar_jiggle,
        )
        vx[index] += dvx
        vy[index] += dvy


def apply_center_force(x: np.ndarray, y: np.ndarray, cx: float, cy: float, strength: float) -> None:
    """Translate every node so the layout's mean moves toward ``(cx, cy)``."""

    if not x.shape[0]:
        return
    x -= (float(x.mean()) - cx) * strength
    y -= (float(y.mean()) - cy) * strength


__all__ = [
    "LinkTopology",
    "apply_center_force",
    "apply_charge_force",
    "apply_charge_force_approximate",
    "apply_link_force",
]
