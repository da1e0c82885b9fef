"""Batch simulation shared by the graph and watch commands."""

from __future__ import annotations

from dataclasses import dataclass

from ..config import NotegraphConfig
from ..interaction.camera import Camera2D, Camera3D, OrbitView, ZoomTransform
from ..interaction.controller import InteractionController
from ..layout.engine import LayoutEngine
from ..layout.loop import FrameLoop, ManualScheduler
from ..layout.state import LayoutSnapshot
from ..models import Graph


@dataclass
class LayoutRun:
    engine: LayoutEngine
    loop: FrameLoop
    controller: InteractionController
    frames: int

    @property
    def snapshot(self) -> LayoutSnapshot:
        return self.engine.snapshot

    @property
    def view(self) -> ZoomTransform | OrbitView:
        return self.controller.view

    def dispose(self) -> None:
        self.loop.dispose()


def simulate(
    graph: Graph,
    config: NotegraphConfig,
    *,
    max_frames: int = 1000,
    dims: int | None = None,
    center: str | None = None,
    previous: LayoutEngine | None = None,
) -> LayoutRun:
    """Run the frame loop headlessly until the layout settles or `max_frames` elapse.

    With `previous`, that engine is handed off under `config.layout`: surviving
    nodes keep their positions and the old engine is disposed.
    """
    if previous is not None and not previous.disposed:
        engine = previous.handoff(graph, config.layout, dims=dims)
    else:
        engine = LayoutEngine(graph, config.layout, dims=dims)

    scheduler = ManualScheduler()
    loop = FrameLoop(engine, scheduler)
    camera = Camera3D(config.camera) if engine.dims == 3 else Camera2D(config.camera)
    controller = InteractionController(engine, camera, center_node=center, clock=scheduler.now, loop=loop)

    loop.start()
    frames = scheduler.run(max_frames=max_frames)
    return LayoutRun(engine=engine, loop=loop, controller=controller, frames=frames)
