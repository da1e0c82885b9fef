"""Force-directed layout engine for 2D and 3D graphs.

The engine owns every node's kinematic state. Each `tick()` applies
repulsion, edge springs and a weak centring pull, integrates velocities with
damping, re-applies pins and publishes an immutable `LayoutSnapshot`.

A temperature `alpha` scales all forces and cools toward `alpha_target`.
Once it drops below `alpha_min` with no pin holding it up the engine is
SETTLED: ticks stop computing forces until `reheat()`, a pin, or a handoff.
"""

from __future__ import annotations

import logging
import math
import threading
from types import MappingProxyType
from typing import Callable, Mapping, Sequence

from ..config import LayoutConfig
from ..models import Graph
from .forces import RepulsionStrategy, Spring, apply_gravity, apply_springs, select_repulsion
from .state import FREE, EngineMode, LayoutSnapshot, Pinned, SimNode, Vector, empty_snapshot

logger = logging.getLogger(__name__)

Listener = Callable[[LayoutSnapshot], None]


def seed_position(index: int, count: int, dims: int, radius: float) -> list[float]:
    """Even placement on a circle (2D) or Fibonacci sphere (3D)."""
    count = max(count, 1)
    if dims == 2:
        angle = 2 * math.pi * index / count
        return [radius * math.cos(angle), radius * math.sin(angle)]
    if count == 1:
        return [0.0, 0.0, radius]
    phi = math.acos(-1 + (2 * index + 1) / count)
    theta = math.sqrt(count * math.pi) * phi
    return [
        radius * math.cos(theta) * math.sin(phi),
        radius * math.sin(theta) * math.sin(phi),
        radius * math.cos(phi),
    ]


def _finite(values: Sequence[float]) -> bool:
    return all(math.isfinite(v) for v in values)


class LayoutEngine:
    def __init__(
        self,
        graph: Graph,
        config: LayoutConfig | None = None,
        *,
        dims: int | None = None,
        repulsion: RepulsionStrategy | None = None,
        initial_positions: Mapping[str, Sequence[float]] | None = None,
        alpha: float = 1.0,
    ):
        self.config = config or LayoutConfig()
        self.dims = dims or self.config.dims
        if self.dims not in (2, 3):
            raise ValueError(f"dims must be 2 or 3, got {self.dims}")

        graph.check_integrity()
        self.graph = graph
        self.repulsion = repulsion or select_repulsion(
            len(graph.nodes),
            threshold=self.config.barnes_hut_threshold,
            theta=self.config.barnes_hut_theta,
        )

        self._lock = threading.RLock()
        self._listeners: list[Listener] = []
        self._nodes: list[SimNode] = []
        self._index: dict[str, int] = {}
        for i, node in enumerate(graph.nodes.values()):
            self._index[node.id] = i
            self._nodes.append(SimNode(node=node, position=[0.0] * self.dims, velocity=[0.0] * self.dims))

        self._springs = [
            Spring(
                a=self._index[e.source],
                b=self._index[e.target],
                rest=self.config.link_distance if e.type == "link" else self.config.tag_distance,
                stiffness=self.config.spring_strength * e.weight,
            )
            for e in graph.edges
        ]

        self._mode = EngineMode.UNINITIALIZED
        self._tick = 0
        self._alpha = alpha
        self._alpha_target = 0.0
        self._initial = dict(initial_positions or {})
        self._snapshot = empty_snapshot(self.dims)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def mode(self) -> EngineMode:
        return self._mode

    @property
    def alpha(self) -> float:
        return self._alpha

    @property
    def alpha_target(self) -> float:
        return self._alpha_target

    @property
    def snapshot(self) -> LayoutSnapshot:
        """Latest published snapshot; safe to hold across ticks."""
        return self._snapshot

    @property
    def disposed(self) -> bool:
        return self._mode is EngineMode.DISPOSED

    @property
    def active(self) -> bool:
        """True while ticks still compute forces."""
        return self._mode in (EngineMode.UNINITIALIZED, EngineMode.RUNNING)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._index

    def position(self, node_id: str) -> Vector | None:
        return self._snapshot.position(node_id)

    def is_pinned(self, node_id: str) -> bool:
        i = self._index.get(node_id)
        return i is not None and self._nodes[i].pinned

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` with every published snapshot. Returns an unsubscribe function."""
        with self._lock:
            if self.disposed:
                return lambda: None
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    def _set_mode(self, mode: EngineMode) -> None:
        if mode is not self._mode:
            logger.debug("layout %s -> %s at tick %d (alpha=%.4f)", self._mode.value, mode.value, self._tick, self._alpha)
            self._mode = mode

    def _place_unplaced(self) -> None:
        n = len(self._nodes)
        radius = self.config.seed_radius
        adj = self.graph.adjacency()

        for sim in self._nodes:
            prior = self._initial.get(sim.id)
            if prior is not None and len(prior) == self.dims and _finite(prior):
                sim.position = [float(v) for v in prior]
                sim.placed = True

        for i, sim in enumerate(self._nodes):
            if sim.placed:
                continue
            anchor = next(
                (self._nodes[self._index[nbr]] for nbr in sorted(adj.get(sim.id, ())) if self._nodes[self._index[nbr]].placed),
                None,
            )
            seed = seed_position(i, n, self.dims, radius)
            if anchor is not None and self._initial:
                # Offset from an already placed neighbour in the seed direction.
                norm = math.sqrt(sum(v * v for v in seed)) or 1.0
                offset = self.config.link_distance
                sim.position = [anchor.position[k] + seed[k] / norm * offset for k in range(self.dims)]
            else:
                sim.position = seed
            sim.placed = True

        for sim in self._nodes:
            if isinstance(sim.state, Pinned):
                sim.position = list(sim.state.position)
            sim.last_finite = tuple(sim.position)
        self._initial.clear()

    def _integrate(self) -> None:
        cfg = self.config
        positions = [sim.position for sim in self._nodes]
        forces = [[0.0] * self.dims for _ in self._nodes]

        self.repulsion.apply(positions, forces, cfg.repulsion, cfg.min_distance)
        apply_springs(positions, forces, self._springs, cfg.min_distance)
        apply_gravity(positions, forces, cfg.gravity)

        alpha = self._alpha
        for sim, force in zip(self._nodes, forces):
            if sim.pinned:
                continue
            v = [(sim.velocity[k] + force[k] * alpha) * cfg.damping for k in range(self.dims)]
            speed = math.sqrt(sum(c * c for c in v))
            if speed > cfg.max_speed:
                v = [c * cfg.max_speed / speed for c in v]
            sim.velocity = v
            sim.position = [sim.position[k] + v[k] for k in range(self.dims)]

    def _guard(self) -> None:
        for sim in self._nodes:
            if _finite(sim.position) and _finite(sim.velocity):
                sim.last_finite = tuple(sim.position)
                continue
            logger.warning("Non-finite position for node %s; restoring last finite position", sim.id)
            sim.position = list(sim.last_finite) if sim.last_finite else [0.0] * self.dims
            sim.velocity = [0.0] * self.dims

    def _apply_pins(self) -> None:
        for sim in self._nodes:
            if isinstance(sim.state, Pinned):
                sim.position = list(sim.state.position)
                sim.velocity = [0.0] * self.dims
                sim.last_finite = tuple(sim.position)

    def _publish(self) -> LayoutSnapshot:
        snap = LayoutSnapshot(
            tick=self._tick,
            mode=self._mode,
            alpha=self._alpha,
            dims=self.dims,
            positions=MappingProxyType({sim.id: tuple(sim.position) for sim in self._nodes}),
            pinned=frozenset(sim.id for sim in self._nodes if sim.pinned),
        )
        self._snapshot = snap
        for listener in list(self._listeners):
            listener(snap)
        return snap

    def tick(self) -> bool:
        """Advance one frame. Returns False when the engine is disposed.

        The first tick only places nodes (seed or preserved positions) and
        publishes them; force integration starts with the second.
        """
        with self._lock:
            if self.disposed:
                return False

            if self._mode is EngineMode.UNINITIALIZED:
                self._place_unplaced()
                self._set_mode(EngineMode.RUNNING)
            elif self._mode is EngineMode.RUNNING:
                self._alpha += (self._alpha_target - self._alpha) * self.config.decay
                self._integrate()
                self._guard()

            self._apply_pins()
            self._tick += 1

            if self._mode is EngineMode.RUNNING and self._alpha < self.config.alpha_min:
                self._set_mode(EngineMode.SETTLED)

            self._publish()
            return True

    def run(self, ticks: int) -> LayoutSnapshot:
        for _ in range(ticks):
            if not self.tick():
                break
        return self._snapshot

    def _wake(self) -> None:
        if self._mode is EngineMode.SETTLED:
            self._set_mode(EngineMode.RUNNING)

    def reheat(self, alpha: float = 1.0) -> bool:
        """Restart force integration from the current positions."""
        with self._lock:
            if self.disposed:
                return False
            self._alpha = max(self._alpha, alpha)
            self._wake()
            return True

    # ------------------------------------------------------------------
    # Pins
    # ------------------------------------------------------------------

    def _pin_target_changed(self) -> None:
        if any(sim.pinned for sim in self._nodes):
            self._alpha_target = self.config.drag_alpha_target
            if self._alpha < self._alpha_target:
                self._alpha = self._alpha_target
            self._wake()
        else:
            self._alpha_target = 0.0

    def _start_position(self, i: int) -> list[float]:
        """Where node `i` will be placed by the first tick, ignoring neighbour offsets."""
        sim = self._nodes[i]
        prior = self._initial.get(sim.id)
        if prior is not None and len(prior) == self.dims and _finite(prior):
            return [float(v) for v in prior]
        return seed_position(i, len(self._nodes), self.dims, self.config.seed_radius)

    def pin(self, node_id: str, position: Sequence[float] | None = None) -> bool:
        """Hold a node at `position` (default: where it is now)."""
        with self._lock:
            i = self._index.get(node_id)
            if self.disposed or i is None:
                return False
            sim = self._nodes[i]
            if position is not None:
                target = tuple(float(v) for v in position)
            elif self._mode is EngineMode.UNINITIALIZED:
                target = tuple(self._start_position(i))
            else:
                target = tuple(sim.position)
            if len(target) != self.dims or not _finite(target):
                return False
            sim.state = Pinned(target)
            if self._mode is not EngineMode.UNINITIALIZED:
                sim.position = list(target)
                sim.velocity = [0.0] * self.dims
            self._pin_target_changed()
            return True

    def move_pin(self, node_id: str, position: Sequence[float]) -> bool:
        """Move an existing pin; neighbours follow on the next ticks."""
        with self._lock:
            i = self._index.get(node_id)
            if self.disposed or i is None or not self._nodes[i].pinned:
                return False
            target = tuple(float(v) for v in position)
            if len(target) != self.dims or not _finite(target):
                return False
            self._nodes[i].state = Pinned(target)
            self._wake()
            return True

    def release(self, node_id: str) -> bool:
        """Return a pinned node to free simulation."""
        with self._lock:
            i = self._index.get(node_id)
            if self.disposed or i is None or not self._nodes[i].pinned:
                return False
            self._nodes[i].state = FREE
            self._pin_target_changed()
            return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        """Stop simulating and release node state. Later calls are no-ops."""
        with self._lock:
            if self.disposed:
                return
            self._set_mode(EngineMode.DISPOSED)
            self._nodes = []
            self._index = {}
            self._springs = []
            self._listeners = []
            self._initial = {}
            self._snapshot = LayoutSnapshot(
                tick=self._tick,
                mode=EngineMode.DISPOSED,
                alpha=0.0,
                dims=self.dims,
                positions=self._snapshot.positions,
                pinned=frozenset(),
            )

    def handoff(
        self,
        graph: Graph,
        config: LayoutConfig | None = None,
        *,
        dims: int | None = None,
    ) -> "LayoutEngine":
        """Dispose this engine and return one for `graph` that keeps surviving positions.

        A new `config` replaces this engine's settings; its `dims` applies unless
        `dims` is given. Positions only carry over when the dimensionality matches.
        """
        if config is None:
            config = self.config
            dims = dims or self.dims
        dims = dims or config.dims
        with self._lock:
            previous = dict(self._snapshot.positions)
            self.dispose()
        survivors = {
            node_id: pos for node_id, pos in previous.items() if node_id in graph.nodes and len(pos) == dims
        }
        logger.debug("handoff: %d of %d nodes keep their position", len(survivors), len(graph.nodes))
        return LayoutEngine(
            graph,
            config,
            dims=dims,
            initial_positions=survivors,
            alpha=config.handoff_alpha if survivors else 1.0,
        )
