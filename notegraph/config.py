"""Configuration for graph building, layout simulation and camera behaviour.

Loaded from a YAML file with optional `graph:`, `layout:` and `camera:`
sections. Every key maps to a dataclass field; unknown keys are errors.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

CONFIG_FILENAME = "notegraph.yml"


class ConfigError(ValueError):
    """Invalid configuration file or value."""


@dataclass
class GraphConfig:
    include_orphans: bool = True
    max_nodes: int | None = None
    min_connections: int = 0
    max_distance: int = 3
    include_tags: bool = True
    snippet_radius: int = 50

    def validate(self) -> None:
        if self.max_nodes is not None and self.max_nodes < 1:
            raise ConfigError("graph.max_nodes must be at least 1")
        if self.min_connections < 0:
            raise ConfigError("graph.min_connections must be >= 0")
        if self.max_distance < 0:
            raise ConfigError("graph.max_distance must be >= 0")
        if self.snippet_radius < 0:
            raise ConfigError("graph.snippet_radius must be >= 0")


@dataclass
class LayoutConfig:
    dims: int = 2
    repulsion: float = 5000.0
    min_distance: float = 1.0
    link_distance: float = 60.0
    tag_distance: float = 120.0
    spring_strength: float = 0.03
    gravity: float = 0.002
    damping: float = 0.6
    max_speed: float = 100.0
    alpha_min: float = 0.001
    alpha_decay: float | None = None
    drag_alpha_target: float = 0.3
    handoff_alpha: float = 0.3
    seed_radius: float = 200.0
    barnes_hut_threshold: int = 500
    barnes_hut_theta: float = 0.9

    @property
    def decay(self) -> float:
        """Per-tick cooling rate; by default alpha reaches alpha_min in 300 ticks."""
        if self.alpha_decay is not None:
            return self.alpha_decay
        return 1 - self.alpha_min ** (1 / 300)

    def validate(self) -> None:
        if self.dims not in (2, 3):
            raise ConfigError("layout.dims must be 2 or 3")
        if not 0 < self.damping < 1:
            raise ConfigError("layout.damping must be between 0 and 1 (exclusive)")
        if self.min_distance <= 0:
            raise ConfigError("layout.min_distance must be > 0")
        if self.link_distance >= self.tag_distance:
            raise ConfigError("layout.link_distance must be shorter than layout.tag_distance")
        if not 0 < self.alpha_min < 1:
            raise ConfigError("layout.alpha_min must be between 0 and 1")
        if self.alpha_decay is not None and not 0 < self.alpha_decay < 1:
            raise ConfigError("layout.alpha_decay must be between 0 and 1")
        for name in ("repulsion", "spring_strength", "gravity", "max_speed", "seed_radius"):
            if getattr(self, name) < 0:
                raise ConfigError(f"layout.{name} must be >= 0")
        for name in ("drag_alpha_target", "handoff_alpha"):
            if not 0 <= getattr(self, name) <= 1:
                raise ConfigError(f"layout.{name} must be between 0 and 1")
        if self.barnes_hut_theta <= 0:
            raise ConfigError("layout.barnes_hut_theta must be > 0")


@dataclass
class CameraConfig:
    width: float = 800.0
    height: float = 600.0
    min_scale: float = 0.1
    max_scale: float = 4.0
    focus_scale: float = 1.2
    zoom_step: float = 1.2
    animation_duration: float = 0.75
    fov: float = 75.0
    home_distance: float = 500.0
    drag_threshold: float = 3.0
    center_delay: float = 1.0

    def validate(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ConfigError("camera.width and camera.height must be > 0")
        if not 0 < self.min_scale <= self.max_scale:
            raise ConfigError("camera.min_scale must be > 0 and <= camera.max_scale")
        if not self.min_scale <= self.focus_scale <= self.max_scale:
            raise ConfigError("camera.focus_scale must lie within [min_scale, max_scale]")
        if self.zoom_step <= 1:
            raise ConfigError("camera.zoom_step must be > 1")
        if self.animation_duration < 0 or self.center_delay < 0:
            raise ConfigError("camera durations must be >= 0")
        if not 0 < self.fov < 180:
            raise ConfigError("camera.fov must be between 0 and 180 degrees")
        if self.home_distance <= 0:
            raise ConfigError("camera.home_distance must be > 0")


@dataclass
class NotegraphConfig:
    graph: GraphConfig = field(default_factory=GraphConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    camera: CameraConfig = field(default_factory=CameraConfig)

    def validate(self) -> None:
        self.graph.validate()
        self.layout.validate()
        self.camera.validate()


def _coerce(section: str, name: str, annotation: str, value: Any) -> Any:
    """Coerce a YAML scalar to the type named by a dataclass annotation."""
    optional = annotation.endswith("| None")
    base = annotation.replace("| None", "").strip()

    if value is None:
        if optional:
            return None
        raise ConfigError(f"{section}.{name} may not be null")

    if base == "bool":
        if isinstance(value, bool):
            return value
        raise ConfigError(f"{section}.{name} must be true or false, got {value!r}")

    if isinstance(value, bool):
        raise ConfigError(f"{section}.{name} must be a number, got {value!r}")

    if base == "int":
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        raise ConfigError(f"{section}.{name} must be an integer, got {value!r}")

    if base == "float":
        try:
            out = float(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{section}.{name} must be a number, got {value!r}") from None
        if not math.isfinite(out):
            raise ConfigError(f"{section}.{name} must be finite")
        return out

    return value


def _section(cls: type, name: str, raw: Any) -> Any:
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ConfigError(f"{name}: expected a mapping")

    known = {f.name: f for f in fields(cls)}
    unknown = sorted(set(raw) - set(known))
    if unknown:
        raise ConfigError(f"{name}: unknown key(s): {', '.join(map(str, unknown))}")

    kwargs = {key: _coerce(name, key, str(known[key].type), value) for key, value in raw.items()}
    return cls(**kwargs)


def config_from_dict(data: dict[str, Any] | None) -> NotegraphConfig:
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError("configuration root must be a mapping")

    unknown = sorted(set(data) - {"graph", "layout", "camera"})
    if unknown:
        raise ConfigError(f"unknown section(s): {', '.join(map(str, unknown))}")

    config = NotegraphConfig(
        graph=_section(GraphConfig, "graph", data.get("graph")),
        layout=_section(LayoutConfig, "layout", data.get("layout")),
        camera=_section(CameraConfig, "camera", data.get("camera")),
    )
    config.validate()
    return config


def load_config(path: Path | None = None, vault_path: Path | None = None) -> NotegraphConfig:
    """Load configuration from `path`, else `<vault>/notegraph.yml`, else defaults."""
    import yaml

    if path is None and vault_path is not None:
        candidate = vault_path / CONFIG_FILENAME
        if candidate.exists():
            path = candidate
    if path is None:
        return NotegraphConfig()

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e

    return config_from_dict(data)
