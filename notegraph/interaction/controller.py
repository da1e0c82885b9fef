"""Pointer and camera interaction over a running layout.

The controller turns raw pointer input into graph operations: hit testing,
neighbourhood highlighting, drag-to-pin, click-to-select and camera
framing. It reads node positions from the engine's current snapshot and
writes back only pin commands.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Union

from ..layout.engine import LayoutEngine
from ..layout.loop import FrameLoop
from .camera import Camera2D, Camera3D, CameraAnimation, Point

logger = logging.getLogger(__name__)

Camera = Union[Camera2D, Camera3D]
EdgeKey = tuple[str, str, str]


@dataclass(frozen=True)
class HighlightState:
    """Nodes and edges to keep emphasised; everything else is dimmed."""

    focus: str
    nodes: frozenset[str]
    edges: frozenset[EdgeKey]

    def is_dimmed(self, node_id: str) -> bool:
        return node_id not in self.nodes


class InteractionController:
    def __init__(
        self,
        engine: LayoutEngine,
        camera: Camera | None = None,
        *,
        on_node_click: Callable[[str], None] | None = None,
        on_node_hover: Callable[[str | None], None] | None = None,
        on_highlight: Callable[[HighlightState | None], None] | None = None,
        center_node: str | None = None,
        clock: Callable[[], float] = time.monotonic,
        loop: FrameLoop | None = None,
    ):
        self.engine = engine
        self.camera = camera or (Camera3D() if engine.dims == 3 else Camera2D())
        if self.camera.dims != engine.dims:
            raise ValueError(f"{self.camera.dims}D camera cannot drive a {engine.dims}D layout")
        self.on_node_click = on_node_click
        self.on_node_hover = on_node_hover
        self.on_highlight = on_highlight
        self.center_node = center_node
        self.clock = clock
        self.loop = loop

        self.hovered: str | None = None
        self.highlight: HighlightState | None = None
        self.dragging: str | None = None
        self.animation: CameraAnimation | None = None

        self._created_at = clock()
        self._centered_initial = center_node is None
        self._press: tuple[Point, str | None] | None = None
        self._panning = False
        self._last_pointer: Point | None = None

        if loop is not None:
            loop.add_listener(lambda _now: self.update())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def view(self):
        return self.camera.view

    def _has_node(self, node_id: str | None) -> bool:
        return node_id is not None and node_id in self.engine and node_id in self.engine.snapshot

    def hit_test(self, pointer: Point) -> str | None:
        """Node under the pointer, if any. No side effects."""
        if self.engine.disposed:
            return None
        return self.camera.hit_test(pointer, self.engine.snapshot, self.engine.graph.nodes)

    def neighborhood(self, node_id: str) -> HighlightState:
        graph = self.engine.graph
        edges = graph.incident_edges(node_id)
        nodes = {node_id}
        for e in edges:
            nodes.add(e.source)
            nodes.add(e.target)
        return HighlightState(focus=node_id, nodes=frozenset(nodes), edges=frozenset(e.key for e in edges))

    # ------------------------------------------------------------------
    # Hover / select
    # ------------------------------------------------------------------

    def hover(self, node_id: str | None) -> bool:
        """Set the hovered node; signals fire only when it changes."""
        if node_id is not None and not self._has_node(node_id):
            node_id = None
        if node_id == self.hovered:
            return False
        self.hovered = node_id
        self.highlight = self.neighborhood(node_id) if node_id is not None else None
        if self.on_node_hover:
            self.on_node_hover(node_id)
        if self.on_highlight:
            self.on_highlight(self.highlight)
        return True

    def select(self, node_id: str) -> bool:
        """Emit a navigation event for `node_id`. The layout is untouched."""
        if not self._has_node(node_id):
            return False
        logger.debug("select %s", node_id)
        if self.on_node_click:
            self.on_node_click(node_id)
        return True

    # ------------------------------------------------------------------
    # Drag
    # ------------------------------------------------------------------

    def drag_start(self, node_id: str) -> bool:
        if self.dragging is not None:
            self.drag_end()
        if not self._has_node(node_id) or not self.engine.pin(node_id):
            return False
        self.dragging = node_id
        self._wake()
        return True

    def drag_move(self, position) -> bool:
        """Move the dragged node's pin to a world position."""
        if self.dragging is None:
            return False
        moved = self.engine.move_pin(self.dragging, position)
        if moved:
            self._wake()
        return moved

    def drag_end(self) -> bool:
        if self.dragging is None:
            return False
        node_id, self.dragging = self.dragging, None
        released = self.engine.release(node_id)
        self._wake()
        return released

    # ------------------------------------------------------------------
    # Camera
    # ------------------------------------------------------------------

    def _animate_to(self, target) -> None:
        now = self.clock()
        if self.animation is not None:
            # Start from wherever the running animation has got to.
            self.camera.view = self.animation.value(now)
        self.animation = CameraAnimation(
            start=self.camera.view,
            end=target,
            started_at=now,
            duration=self.camera.config.animation_duration,
        )
        if self.animation.done(now):
            self.camera.view = target
            self.animation = None
        self._wake()

    def center_on(self, node_id: str, scale: float | None = None) -> bool:
        """Animate the camera to frame `node_id`; unknown ids are ignored."""
        if not self._has_node(node_id):
            logger.debug("center_on: %s is not in the layout", node_id)
            return False
        position = self.engine.snapshot.position(node_id)
        self._animate_to(self.camera.focus_view(position, scale))
        return True

    def zoom(self, delta: float, anchor: Point | None = None):
        self.animation = None
        return self.camera.zoom(delta, anchor)

    def pan(self, dx: float, dy: float):
        self.animation = None
        return self.camera.pan(dx, dy)

    def reset(self, animate: bool = True):
        target = self.camera.home()
        if animate:
            self._animate_to(target)
        else:
            self.animation = None
            self.camera.view = target
        return target

    # ------------------------------------------------------------------
    # Raw pointer input
    # ------------------------------------------------------------------

    def pointer_down(self, pointer: Point) -> str | None:
        node_id = self.hit_test(pointer)
        self._press = (pointer, node_id)
        self._last_pointer = pointer
        self._panning = False
        return node_id

    def pointer_move(self, pointer: Point) -> None:
        if self._press is None:
            self.hover(self.hit_test(pointer))
            return

        origin, node_id = self._press
        if self.dragging is None and not self._panning:
            if math.hypot(pointer[0] - origin[0], pointer[1] - origin[1]) < self.camera.config.drag_threshold:
                return
            if node_id is not None:
                self.drag_start(node_id)
            else:
                self._panning = True

        if self.dragging is not None:
            reference = self.engine.snapshot.position(self.dragging)
            self.drag_move(self.camera.pointer_to_world(pointer, reference))
        elif self._panning and self._last_pointer is not None:
            self.pan(pointer[0] - self._last_pointer[0], pointer[1] - self._last_pointer[1])
        self._last_pointer = pointer

    def pointer_up(self, pointer: Point) -> None:
        press, self._press = self._press, None
        self._panning = False
        self._last_pointer = None
        if self.dragging is not None:
            self.drag_end()
            return
        if press is not None and press[1] is not None:
            self.select(press[1])

    def pointer_leave(self) -> None:
        if self.dragging is not None:
            self.drag_end()
        self._press = None
        self._panning = False
        self._last_pointer = None
        self.hover(None)

    # ------------------------------------------------------------------
    # Frame update
    # ------------------------------------------------------------------

    def update(self, now: float | None = None) -> bool:
        """Advance the camera animation. Returns True while still animating."""
        now = self.clock() if now is None else now

        if not self._centered_initial and not self.engine.disposed:
            waited = now - self._created_at
            if self.engine.snapshot.settled or waited >= self.camera.config.center_delay:
                self._centered_initial = True
                self.center_on(self.center_node)

        if self.animation is None:
            return False
        if self.animation.done(now):
            self.camera.view = self.animation.end
            self.animation = None
            return False
        self.camera.view = self.animation.value(now)
        return True

    def _wake(self) -> None:
        if self.loop is not None:
            self.loop.wake()
