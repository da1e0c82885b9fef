"""Camera models for the 2D and 3D graph views.

`Camera2D` is a pan/zoom transform over the layout plane. `Camera3D` is an
orbit camera with a perspective projection. Both expose the same small
surface to the interaction controller: hit testing, pointer-to-world
conversion, framing a point, and clamped zoom.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping, Sequence

from ..config import CameraConfig
from ..models import GraphNode
from ..layout.state import LayoutSnapshot, Vector

Point = tuple[float, float]


def ease_cubic_in_out(t: float) -> float:
    t = min(1.0, max(0.0, t))
    if t < 0.5:
        return 4 * t * t * t
    return 1 - ((-2 * t + 2) ** 3) / 2


def _lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def _clamp(value: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, value))


def node_radius_2d(node: GraphNode) -> float:
    """Rendered circle radius in world units."""
    return math.sqrt(max(node.size, 0.0)) * 2


# ----------------------------------------------------------------------
# 2D
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class ZoomTransform:
    """screen = world * k + (x, y)"""

    x: float = 0.0
    y: float = 0.0
    k: float = 1.0

    def apply(self, point: Sequence[float]) -> Point:
        return (point[0] * self.k + self.x, point[1] * self.k + self.y)

    def invert(self, point: Sequence[float]) -> Point:
        return ((point[0] - self.x) / self.k, (point[1] - self.y) / self.k)

    def lerp(self, other: "ZoomTransform", t: float) -> "ZoomTransform":
        return ZoomTransform(_lerp(self.x, other.x, t), _lerp(self.y, other.y, t), _lerp(self.k, other.k, t))


class Camera2D:
    dims = 2

    def __init__(self, config: CameraConfig | None = None):
        self.config = config or CameraConfig()
        self.view = self.home()

    @property
    def scale(self) -> float:
        return self.view.k

    def home(self) -> ZoomTransform:
        """Identity zoom with the layout origin at the viewport centre."""
        return ZoomTransform(self.config.width / 2, self.config.height / 2, 1.0)

    def clamp_scale(self, k: float) -> float:
        return _clamp(k, self.config.min_scale, self.config.max_scale)

    def focus_view(self, point: Sequence[float], scale: float | None = None) -> ZoomTransform:
        """Transform placing `point` at the viewport centre."""
        k = self.clamp_scale(scale if scale is not None else self.config.focus_scale)
        return ZoomTransform(self.config.width / 2 - point[0] * k, self.config.height / 2 - point[1] * k, k)

    def zoom(self, delta: float, anchor: Point | None = None) -> ZoomTransform:
        """Scale by zoom_step ** delta, keeping `anchor` (default: centre) fixed on screen."""
        if anchor is None:
            anchor = (self.config.width / 2, self.config.height / 2)
        k = self.clamp_scale(self.view.k * self.config.zoom_step**delta)
        wx, wy = self.view.invert(anchor)
        self.view = ZoomTransform(anchor[0] - wx * k, anchor[1] - wy * k, k)
        return self.view

    def pan(self, dx: float, dy: float) -> ZoomTransform:
        self.view = ZoomTransform(self.view.x + dx, self.view.y + dy, self.view.k)
        return self.view

    def to_screen(self, point: Sequence[float]) -> Point:
        return self.view.apply(point)

    def pointer_to_world(self, pointer: Point, reference: Vector | None = None) -> Vector:
        return self.view.invert(pointer)

    def hit_test(self, pointer: Point, snapshot: LayoutSnapshot, nodes: Mapping[str, GraphNode]) -> str | None:
        """Node whose circle contains the pointer; the closest centre wins."""
        wx, wy = self.view.invert(pointer)
        best: tuple[float, str] | None = None
        for node_id, pos in snapshot.positions.items():
            node = nodes.get(node_id)
            if node is None:
                continue
            d = math.hypot(pos[0] - wx, pos[1] - wy)
            if d <= node_radius_2d(node) and (best is None or (d, node_id) < best):
                best = (d, node_id)
        return best[1] if best else None


# ----------------------------------------------------------------------
# 3D
# ----------------------------------------------------------------------


def _sub(a: Sequence[float], b: Sequence[float]) -> Vector:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def _add(a: Sequence[float], b: Sequence[float]) -> Vector:
    return (a[0] + b[0], a[1] + b[1], a[2] + b[2])


def _mul(a: Sequence[float], s: float) -> Vector:
    return (a[0] * s, a[1] * s, a[2] * s)


def _dot(a: Sequence[float], b: Sequence[float]) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def _cross(a: Sequence[float], b: Sequence[float]) -> Vector:
    return (a[1] * b[2] - a[2] * b[1], a[2] * b[0] - a[0] * b[2], a[0] * b[1] - a[1] * b[0])


def _norm(a: Sequence[float]) -> float:
    return math.sqrt(_dot(a, a))


def _unit(a: Sequence[float], fallback: Vector = (0.0, 0.0, 1.0)) -> Vector:
    n = _norm(a)
    return _mul(a, 1 / n) if n > 0 else fallback


@dataclass(frozen=True)
class Ray:
    origin: Vector
    direction: Vector

    def intersect_sphere(self, center: Sequence[float], radius: float) -> float | None:
        """Distance along the ray to the first hit, or None."""
        oc = _sub(self.origin, center)
        b = _dot(oc, self.direction)
        c = _dot(oc, oc) - radius * radius
        disc = b * b - c
        if disc < 0:
            return None
        root = math.sqrt(disc)
        t = -b - root
        if t < 0:
            t = -b + root
        return t if t >= 0 else None

    def intersect_plane(self, point: Sequence[float], normal: Sequence[float]) -> Vector | None:
        denom = _dot(self.direction, normal)
        if abs(denom) < 1e-12:
            return None
        t = _dot(_sub(point, self.origin), normal) / denom
        return _add(self.origin, _mul(self.direction, t))


@dataclass(frozen=True)
class OrbitView:
    position: Vector
    target: Vector = (0.0, 0.0, 0.0)

    @property
    def distance(self) -> float:
        return _norm(_sub(self.position, self.target))

    def lerp(self, other: "OrbitView", t: float) -> "OrbitView":
        return OrbitView(
            position=tuple(_lerp(a, b, t) for a, b in zip(self.position, other.position)),
            target=tuple(_lerp(a, b, t) for a, b in zip(self.target, other.target)),
        )


class Camera3D:
    dims = 3
    UP: Vector = (0.0, 1.0, 0.0)

    def __init__(self, config: CameraConfig | None = None):
        self.config = config or CameraConfig()
        self.view = self.home()

    @property
    def aspect(self) -> float:
        return self.config.width / self.config.height

    @property
    def scale(self) -> float:
        """Zoom factor relative to the home distance."""
        return self.config.home_distance / max(self.view.distance, 1e-9)

    def home(self) -> OrbitView:
        return OrbitView(position=(0.0, 0.0, self.config.home_distance))

    def _basis(self) -> tuple[Vector, Vector, Vector]:
        forward = _unit(_sub(self.view.target, self.view.position), (0.0, 0.0, -1.0))
        right = _cross(forward, self.UP)
        if _norm(right) < 1e-9:
            right = (1.0, 0.0, 0.0)
        right = _unit(right)
        up = _cross(right, forward)
        return forward, right, up

    def _distance_for(self, scale: float) -> float:
        k = _clamp(scale, self.config.min_scale, self.config.max_scale)
        return self.config.home_distance / k

    def ray(self, pointer: Point) -> Ray:
        """Ray from the camera through a pointer position in viewport pixels."""
        ndc_x = 2 * pointer[0] / self.config.width - 1
        ndc_y = 1 - 2 * pointer[1] / self.config.height
        tan_half = math.tan(math.radians(self.config.fov) / 2)
        forward, right, up = self._basis()
        direction = _add(
            forward,
            _add(_mul(right, ndc_x * tan_half * self.aspect), _mul(up, ndc_y * tan_half)),
        )
        return Ray(origin=self.view.position, direction=_unit(direction))

    def to_screen(self, point: Sequence[float]) -> Point | None:
        """Project a world point to viewport pixels; None when behind the camera."""
        forward, right, up = self._basis()
        rel = _sub(point, self.view.position)
        depth = _dot(rel, forward)
        if depth <= 0:
            return None
        tan_half = math.tan(math.radians(self.config.fov) / 2)
        ndc_x = _dot(rel, right) / (depth * tan_half * self.aspect)
        ndc_y = _dot(rel, up) / (depth * tan_half)
        return ((ndc_x + 1) * self.config.width / 2, (1 - ndc_y) * self.config.height / 2)

    def focus_view(self, point: Sequence[float], scale: float | None = None) -> OrbitView:
        """View looking at `point` from the current direction."""
        k = scale if scale is not None else self.config.focus_scale
        back = _unit(_sub(self.view.position, self.view.target))
        target = tuple(float(v) for v in point)
        return OrbitView(position=_add(target, _mul(back, self._distance_for(k))), target=target)

    def zoom(self, delta: float, anchor: Point | None = None) -> OrbitView:
        """Move along the view axis; the scale range bounds the orbit distance."""
        k = self.scale * self.config.zoom_step**delta
        back = _unit(_sub(self.view.position, self.view.target))
        self.view = OrbitView(position=_add(self.view.target, _mul(back, self._distance_for(k))), target=self.view.target)
        return self.view

    def pan(self, dx: float, dy: float) -> OrbitView:
        _, right, up = self._basis()
        per_pixel = 2 * self.view.distance * math.tan(math.radians(self.config.fov) / 2) / self.config.height
        shift = _add(_mul(right, -dx * per_pixel), _mul(up, dy * per_pixel))
        self.view = OrbitView(position=_add(self.view.position, shift), target=_add(self.view.target, shift))
        return self.view

    def pointer_to_world(self, pointer: Point, reference: Vector | None = None) -> Vector:
        """Point under the pointer on the plane through `reference` facing the camera."""
        forward, _, _ = self._basis()
        plane_point = reference if reference is not None else self.view.target
        hit = self.ray(pointer).intersect_plane(plane_point, forward)
        return hit if hit is not None else tuple(plane_point)

    def hit_test(self, pointer: Point, snapshot: LayoutSnapshot, nodes: Mapping[str, GraphNode]) -> str | None:
        """Nearest node sphere (radius = node size) hit by the pointer ray."""
        ray = self.ray(pointer)
        best: tuple[float, str] | None = None
        for node_id, pos in snapshot.positions.items():
            node = nodes.get(node_id)
            if node is None or len(pos) != 3:
                continue
            t = ray.intersect_sphere(pos, node.size)
            if t is not None and (best is None or (t, node_id) < best):
                best = (t, node_id)
        return best[1] if best else None


# ----------------------------------------------------------------------
# Animation
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class CameraAnimation:
    """Time-bounded interpolation between two camera views."""

    start: ZoomTransform | OrbitView
    end: ZoomTransform | OrbitView
    started_at: float
    duration: float

    def progress(self, now: float) -> float:
        if self.duration <= 0:
            return 1.0
        return _clamp((now - self.started_at) / self.duration, 0.0, 1.0)

    def value(self, now: float) -> ZoomTransform | OrbitView:
        return self.start.lerp(self.end, ease_cubic_in_out(self.progress(now)))

    def done(self, now: float) -> bool:
        return self.progress(now) >= 1.0
