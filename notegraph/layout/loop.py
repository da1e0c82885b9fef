"""Cooperative frame loop driving a LayoutEngine.

The loop never owns a thread. It asks a `FrameScheduler` for the next frame,
runs exactly one tick inside that frame and yields back to the host.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Protocol

from .engine import LayoutEngine
from .state import LayoutSnapshot

logger = logging.getLogger(__name__)

FrameCallback = Callable[[float], None]
# Returns True while the listener still needs frames (e.g. a camera animation).
FrameListener = Callable[[float], bool]


class FrameScheduler(Protocol):
    def request(self, callback: FrameCallback) -> Any: ...

    def cancel(self, handle: Any) -> None: ...


class ManualScheduler:
    """Queue of frame callbacks run on demand. Used by the CLI and in tests."""

    def __init__(self, clock: Callable[[], float] | None = None, frame_interval: float = 1 / 60):
        self._clock = clock
        self._now = 0.0
        self.frame_interval = frame_interval
        self._queue: dict[int, FrameCallback] = {}
        self._next_handle = 0

    def now(self) -> float:
        return self._clock() if self._clock is not None else self._now

    def request(self, callback: FrameCallback) -> int:
        self._next_handle += 1
        self._queue[self._next_handle] = callback
        return self._next_handle

    def cancel(self, handle: int) -> None:
        self._queue.pop(handle, None)

    @property
    def pending(self) -> int:
        return len(self._queue)

    def step(self) -> int:
        """Run the callbacks queued so far; returns how many ran."""
        batch, self._queue = self._queue, {}
        self._now += self.frame_interval
        now = self.now()
        for callback in batch.values():
            callback(now)
        return len(batch)

    def run(self, max_frames: int = 10_000) -> int:
        """Step until nothing is queued or `max_frames` frames ran."""
        frames = 0
        while self._queue and frames < max_frames:
            self.step()
            frames += 1
        return frames


class FrameLoop:
    def __init__(self, engine: LayoutEngine, scheduler: FrameScheduler):
        self.engine = engine
        self.scheduler = scheduler
        self._listeners: list[FrameListener] = []
        self._handle: Any = None
        self._generation = 0
        self._disposed = False
        self.frames = 0

    @property
    def running(self) -> bool:
        return self._handle is not None

    @property
    def snapshot(self) -> LayoutSnapshot:
        return self.engine.snapshot

    def add_listener(self, listener: FrameListener) -> None:
        self._listeners.append(listener)

    def start(self) -> None:
        self.wake()

    def wake(self) -> None:
        """Request a frame if the loop is idle."""
        if self._disposed or self._handle is not None:
            return
        generation = self._generation
        self._handle = self.scheduler.request(lambda now: self._frame(now, generation))

    def _frame(self, now: float, generation: int) -> None:
        if self._disposed or generation != self._generation:
            # Stale callback from before dispose() or a restart.
            return
        self._handle = None
        self.frames += 1

        self.engine.tick()
        animating = False
        for listener in list(self._listeners):
            animating = listener(now) or animating

        if self.engine.active or animating:
            self.wake()

    def stop(self) -> None:
        if self._handle is not None:
            self.scheduler.cancel(self._handle)
            self._handle = None
        self._generation += 1

    def dispose(self) -> None:
        """Cancel the pending frame and dispose the engine; stale frames become no-ops."""
        if self._disposed:
            return
        self.stop()
        self._disposed = True
        self._listeners = []
        self.engine.dispose()
        logger.debug("frame loop disposed after %d frames", self.frames)


def run_until_settled(engine: LayoutEngine, max_ticks: int = 1000) -> LayoutSnapshot:
    """Tick until the engine settles (or `max_ticks`), as a batch job."""
    started = time.perf_counter()
    ticks = 0
    while ticks < max_ticks and engine.active:
        if not engine.tick():
            break
        ticks += 1
    logger.info(
        "layout ran %d ticks in %.2fs (%s)",
        ticks,
        time.perf_counter() - started,
        engine.mode.value,
    )
    return engine.snapshot
