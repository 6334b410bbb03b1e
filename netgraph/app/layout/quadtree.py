"""Barnes-Hut quadtree used to approximate many-body repulsion on large graphs."""
from __future__ import annotations

import math
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

MAX_DEPTH = 32


class _Quad:
    """Square cell holding either four optional children or a bucket of points."""

    __slots__ = ("x0", "y0", "x1", "y1", "children", "indices", "strength", "cx", "cy")

    def __init__(self, x0: float, y0: float, x1: float, y1: float) -> None:
        self.x0 = x0
        self.y0 = y0
        self.x1 = x1
        self.y1 = y1
        self.children: Optional[List[Optional[_Quad]]] = None
        self.indices: List[int] = []
        self.strength = 0.0
        self.cx = (x0 + x1) / 2.0
        self.cy = (y0 + y1) / 2.0

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    def child_for(self, x: float, y: float) -> "_Quad":
        if self.children is None:
            self.children = [None, None, None, None]
        mx = (self.x0 + self.x1) / 2.0
        my = (self.y0 + self.y1) / 2.0
        right = x >= mx
        bottom = y >= my
        slot = int(right) | (int(bottom) << 1)
        child = self.children[slot]
        if child is None:
            child = _Quad(
                mx if right else self.x0,
                my if bottom else self.y0,
                self.x1 if right else mx,
                self.y1 if bottom else my,
            )
            self.children[slot] = child
        return child


def _cover(xs: np.ndarray, ys: np.ndarray) -> Tuple[float, float, float, float]:
    x0 = float(xs.min())
    y0 = float(ys.min())
    side = max(float(xs.max()) - x0, float(ys.max()) - y0)
    if side <= 0.0:
        side = 1.0
    # Widen slightly so points on the max edge stay inside the half-open cells.
    side *= 1.0 + 1e-9
    return x0, y0, x0 + side, y0 + side


class QuadTree:
    """Quadtree over node positions, accumulating charge per cell.

    Leaves hold one point, or several when the points coincide (or when the
    maximum depth is reached).
    """

    def __init__(self, xs: np.ndarray, ys: np.ndarray) -> None:
        self._xs = xs
        self._ys = ys
        if len(xs):
            x0, y0, x1, y1 = _cover(xs, ys)
        else:
            x0, y0, x1, y1 = 0.0, 0.0, 1.0, 1.0
        self.root = _Quad(x0, y0, x1, y1)
        for index in range(len(xs)):
            self._insert(index)

    def _insert(self, index: int) -> None:
        x = float(self._xs[index])
        y = float(self._ys[index])
        quad = self.root
        depth = 0
        while True:
            if quad.children is not None:
                quad = quad.child_for(x, y)
                depth += 1
                continue
            if not quad.indices or depth >= MAX_DEPTH or self._coincides(quad.indices[0], x, y):
                quad.indices.append(index)
                return
            existing = quad.indices
            quad.indices = []
            anchor = existing[0]
            quad.child_for(float(self._xs[anchor]), float(self._ys[anchor])).indices = existing

    def _coincides(self, other: int, x: float, y: float) -> bool:
        return float(self._xs[other]) == x and float(self._ys[other]) == y

    def _walk(self) -> List[_Quad]:
        order: List[_Quad] = []
        stack = [self.root]
        while stack:
            quad = stack.pop()
            order.append(quad)
            if quad.children is not None:
                stack.extend(child for child in quad.children if child is not None)
        return order

    def accumulate(self, strengths: Sequence[float]) -> None:
        """Store total charge and the charge-weighted centroid on every cell."""

        for quad in reversed(self._walk()):
            if quad.children is None:
                if not quad.indices:
                    quad.strength = 0.0
                    continue
                weights = [abs(strengths[i]) for i in quad.indices]
                total_weight = sum(weights)
                quad.strength = float(sum(strengths[i] for i in quad.indices))
                if total_weight:
                    quad.cx = sum(w * float(self._xs[i]) for w, i in zip(weights, quad.indices)) / total_weight
                    quad.cy = sum(w * float(self._ys[i]) for w, i in zip(weights, quad.indices)) / total_weight
                else:
                    quad.cx = float(self._xs[quad.indices[0]])
                    quad.cy = float(self._ys[quad.indices[0]])
                continue
            strength = 0.0
            weight = 0.0
            cx = 0.0
            cy = 0.0
            for child in quad.children:
                if child is None or not child.strength:
                    continue
                magnitude = abs(child.strength)
                strength += child.strength
                weight += magnitude
                cx += magnitude * child.cx
                cy += magnitude * child.cy
            quad.strength = strength
            if weight:
                quad.cx = cx / weight
                quad.cy = cy / weight

    def force_on(
        self,
        index: int,
        strengths: Sequence[float],
        alpha: float,
        *,
        theta2: float,
        distance_min2: float,
        distance_max2: float,
        jiggle: Callable[[], float],
    ) -> Tuple[float, float]:
        """Return the velocity change on node ``index`` from every other charge.

        Call :meth:`accumulate` first.
        """

        node_x = float(self._xs[index])
        node_y = float(self._ys[index])
        dvx = 0.0
        dvy = 0.0
        stack = [self.root]
        while stack:
            quad = stack.pop()
            if not quad.strength:
                continue
            dx = quad.cx - node_x
            dy = quad.cy - node_y
            length2 = dx * dx + dy * dy
            width = quad.width
            if width * width / theta2 < length2:
                if length2 < distance_max2:
                    if dx == 0:
                        dx = jiggle()
                        length2 += dx * dx
                    if dy == 0:
                        dy = jiggle()
                        length2 += dy * dy
                    if length2 < distance_min2:
                        length2 = math.sqrt(distance_min2 * length2)
                    dvx += dx * quad.strength * alpha / length2
                    dvy += dy * quad.strength * alpha / length2
                continue
            if quad.children is not None:
                stack.extend(child for child in quad.children if child is not None)
                continue
            if length2 >= distance_max2:
                continue
            others = [other for other in quad.indices if other != index]
            if not others:
                continue
            if dx == 0:
                dx = jiggle()
                length2 += dx * dx
            if dy == 0:
                dy = jiggle()
                length2 += dy * dy
            if length2 < distance_min2:
                length2 = math.sqrt(distance_min2 * length2)
            for other in others:
                weight = strengths[other] * alpha / length2
                dvx += dx * weight
                dvy += dy * weight
        return dvx, dvy


__all__ = ["MAX_DEPTH", "QuadTree"]
