"""Force computations for the layout engine.

Repulsion is a pluggable strategy: exact pairwise for small graphs, a
Barnes-Hut tree (quadtree in 2D, octree in 3D) above a size threshold. Both
add into a caller-owned force buffer and never return non-finite values.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Protocol, Sequence

Buffer = list[list[float]]

MAX_TREE_DEPTH = 24


def _axis(i: int, j: int, dims: int) -> list[float]:
    """Deterministic unit direction used to separate coincident nodes."""
    out = [0.0] * dims
    out[(i + j) % dims] = 1.0 if i < j else -1.0
    return out


def _repel(force: list[float], delta: Sequence[float], dist: float, magnitude: float) -> None:
    for k in range(len(force)):
        force[k] += magnitude * delta[k] / dist


class RepulsionStrategy(Protocol):
    name: str

    def apply(self, positions: Buffer, forces: Buffer, strength: float, min_distance: float) -> None: ...


class PairwiseRepulsion:
    """Exact O(n^2) inverse-square repulsion over every unordered pair."""

    name = "pairwise"

    def apply(self, positions: Buffer, forces: Buffer, strength: float, min_distance: float) -> None:
        n = len(positions)
        if n < 2 or strength == 0:
            return
        dims = len(positions[0])
        floor2 = min_distance * min_distance

        for i in range(n):
            pi = positions[i]
            fi = forces[i]
            for j in range(i + 1, n):
                pj = positions[j]
                delta = [pi[k] - pj[k] for k in range(dims)]
                d2 = sum(c * c for c in delta)
                if d2 == 0.0:
                    delta = _axis(i, j, dims)
                    dist = 1.0
                    d2 = floor2
                else:
                    dist = math.sqrt(d2)
                    d2 = max(d2, floor2)
                magnitude = strength / d2
                fj = forces[j]
                for k in range(dims):
                    push = magnitude * delta[k] / dist
                    fi[k] += push
                    fj[k] -= push


@dataclass
class _Cell:
    center: list[float]
    half: float
    depth: int
    bodies: list[int]
    children: list["_Cell | None"] | None = None
    mass: int = 0
    com: list[float] | None = None

    def contains(self, p: Sequence[float]) -> bool:
        return all(abs(p[k] - self.center[k]) <= self.half for k in range(len(p)))

    def child_index(self, p: Sequence[float]) -> int:
        idx = 0
        for k in range(len(p)):
            if p[k] >= self.center[k]:
                idx |= 1 << k
        return idx


class BarnesHutRepulsion:
    """Approximate repulsion in O(n log n) with a 2^dims-ary space tree.

    A cell whose width / distance is below `theta` acts as a single body at its
    centre of mass; cells containing the body itself are always opened.
    """

    name = "barnes-hut"

    def __init__(self, theta: float = 0.9):
        self.theta = theta

    def _build(self, positions: Buffer) -> _Cell:
        dims = len(positions[0])
        lo = [min(p[k] for p in positions) for k in range(dims)]
        hi = [max(p[k] for p in positions) for k in range(dims)]
        center = [(lo[k] + hi[k]) / 2 for k in range(dims)]
        half = max(max(hi[k] - lo[k] for k in range(dims)) / 2, 1.0) * 1.01

        root = _Cell(center=center, half=half, depth=0, bodies=[])
        for i in range(len(positions)):
            self._insert(root, i, positions)
        self._summarize(root, positions)
        return root

    def _insert(self, cell: _Cell, i: int, positions: Buffer) -> None:
        while True:
            cell.mass += 1
            if cell.children is None:
                cell.bodies.append(i)
                if len(cell.bodies) == 1 or cell.depth >= MAX_TREE_DEPTH:
                    return
                # Split the leaf and push its bodies one level down.
                dims = len(cell.center)
                cell.children = [None] * (1 << dims)
                pending, cell.bodies = cell.bodies, []
                cell.mass -= len(pending)
                for b in pending:
                    self._insert(cell, b, positions)
                return
            idx = cell.child_index(positions[i])
            child = cell.children[idx]
            if child is None:
                half = cell.half / 2
                center = [
                    cell.center[k] + (half if idx & (1 << k) else -half) for k in range(len(cell.center))
                ]
                child = cell.children[idx] = _Cell(center=center, half=half, depth=cell.depth + 1, bodies=[])
            cell = child

    def _summarize(self, cell: _Cell, positions: Buffer) -> None:
        dims = len(cell.center)
        total = [0.0] * dims
        if cell.children is None:
            for b in cell.bodies:
                for k in range(dims):
                    total[k] += positions[b][k]
        else:
            for child in cell.children:
                if child is None:
                    continue
                self._summarize(child, positions)
                for k in range(dims):
                    total[k] += child.com[k] * child.mass
        cell.com = [t / cell.mass for t in total] if cell.mass else list(cell.center)

    def _accumulate(
        self,
        i: int,
        cell: _Cell,
        positions: Buffer,
        force: list[float],
        strength: float,
        floor2: float,
    ) -> None:
        p = positions[i]
        dims = len(p)
        stack = [cell]
        while stack:
            c = stack.pop()
            if c.mass == 0:
                continue
            if c.children is None:
                for j in c.bodies:
                    if j == i:
                        continue
                    delta = [p[k] - positions[j][k] for k in range(dims)]
                    d2 = sum(v * v for v in delta)
                    if d2 == 0.0:
                        _repel(force, _axis(i, j, dims), 1.0, strength / floor2)
                    else:
                        _repel(force, delta, math.sqrt(d2), strength / max(d2, floor2))
                continue

            delta = [p[k] - c.com[k] for k in range(dims)]
            d2 = sum(v * v for v in delta)
            if d2 > 0 and not c.contains(p) and (2 * c.half) / math.sqrt(d2) < self.theta:
                _repel(force, delta, math.sqrt(d2), strength * c.mass / max(d2, floor2))
                continue
            stack.extend(child for child in c.children if child is not None)

    def apply(self, positions: Buffer, forces: Buffer, strength: float, min_distance: float) -> None:
        n = len(positions)
        if n < 2 or strength == 0:
            return
        root = self._build(positions)
        floor2 = min_distance * min_distance
        for i in range(n):
            self._accumulate(i, root, positions, forces[i], strength, floor2)


def select_repulsion(node_count: int, *, threshold: int = 500, theta: float = 0.9) -> RepulsionStrategy:
    """Exact repulsion up to `threshold` nodes, Barnes-Hut beyond it."""
    if node_count > threshold:
        return BarnesHutRepulsion(theta=theta)
    return PairwiseRepulsion()


@dataclass(frozen=True)
class Spring:
    a: int
    b: int
    rest: float
    stiffness: float


def apply_springs(positions: Buffer, forces: Buffer, springs: Sequence[Spring], min_distance: float) -> None:
    """Hooke springs pulling each edge's endpoints toward its rest length."""
    for s in springs:
        pa = positions[s.a]
        pb = positions[s.b]
        delta = [pb[k] - pa[k] for k in range(len(pa))]
        dist = math.sqrt(sum(v * v for v in delta))
        if dist == 0.0:
            continue
        magnitude = s.stiffness * (max(dist, min_distance) - s.rest)
        fa = forces[s.a]
        fb = forces[s.b]
        for k in range(len(pa)):
            pull = magnitude * delta[k] / dist
            fa[k] += pull
            fb[k] -= pull


def apply_gravity(positions: Buffer, forces: Buffer, strength: float) -> None:
    """Weak pull toward the origin so disconnected components stay in view."""
    if strength == 0:
        return
    for p, f in zip(positions, forces):
        for k in range(len(p)):
            f[k] -= strength * p[k]
