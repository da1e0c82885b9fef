"""Simulation state: engine mode, per-node pin state and published snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Union

from ..models import GraphNode

Vector = tuple[float, ...]


class EngineMode(str, Enum):
    UNINITIALIZED = "uninitialized"
    RUNNING = "running"
    SETTLED = "settled"
    DISPOSED = "disposed"


@dataclass(frozen=True)
class Free:
    """Node moves under the simulated forces."""


@dataclass(frozen=True)
class Pinned:
    """Node is held at `position` with zero velocity."""

    position: Vector


PinState = Union[Free, Pinned]

FREE = Free()


@dataclass
class SimNode:
    """A graph node plus its kinematic state. Owned by one LayoutEngine."""

    node: GraphNode
    position: list[float]
    velocity: list[float]
    state: PinState = FREE
    placed: bool = False
    last_finite: Vector = ()

    @property
    def id(self) -> str:
        return self.node.id

    @property
    def pinned(self) -> bool:
        return isinstance(self.state, Pinned)


@dataclass(frozen=True)
class LayoutSnapshot:
    """Immutable view of the layout after a tick.

    Consumers (renderers, the interaction controller) only ever see
    snapshots; the engine keeps its mutable buffers private.
    """

    tick: int
    mode: EngineMode
    alpha: float
    dims: int
    positions: Mapping[str, Vector] = field(default_factory=lambda: MappingProxyType({}))
    pinned: frozenset[str] = frozenset()

    def position(self, node_id: str) -> Vector | None:
        return self.positions.get(node_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.positions

    def bounds(self) -> tuple[Vector, Vector] | None:
        """(min corner, max corner) over all positions, or None when empty."""
        if not self.positions:
            return None
        coords = list(self.positions.values())
        lo = tuple(min(p[i] for p in coords) for i in range(self.dims))
        hi = tuple(max(p[i] for p in coords) for i in range(self.dims))
        return lo, hi

    @property
    def settled(self) -> bool:
        return self.mode is EngineMode.SETTLED


def empty_snapshot(dims: int, mode: EngineMode = EngineMode.UNINITIALIZED) -> LayoutSnapshot:
    return LayoutSnapshot(tick=0, mode=mode, alpha=0.0, dims=dims)
