from notegraph.layout.engine import LayoutEngine
from notegraph.layout.loop import FrameLoop, ManualScheduler, run_until_settled
from notegraph.layout.state import EngineMode
from notegraph.models import Graph


class RecordingScheduler:
    """Scheduler that keeps every callback and ignores cancellation, like a late timer."""

    def __init__(self) -> None:
        self.callbacks = []
        self.cancelled = []

    def request(self, callback):
        self.callbacks.append(callback)
        return len(self.callbacks)

    def cancel(self, handle) -> None:
        self.cancelled.append(handle)


def test_loop_runs_until_the_engine_settles(small_graph: Graph) -> None:
    engine = LayoutEngine(small_graph)
    scheduler = ManualScheduler()
    loop = FrameLoop(engine, scheduler)

    loop.start()
    frames = scheduler.run(max_frames=2000)

    assert engine.mode is EngineMode.SETTLED
    assert frames == loop.frames == engine.snapshot.tick
    assert not loop.running
    assert scheduler.pending == 0


def test_wake_restarts_an_idle_loop(small_graph: Graph) -> None:
    engine = LayoutEngine(small_graph)
    scheduler = ManualScheduler()
    loop = FrameLoop(engine, scheduler)
    loop.start()
    scheduler.run()
    ticks = engine.snapshot.tick

    engine.pin("alpha")
    loop.wake()
    loop.wake()
    assert scheduler.pending == 1
    scheduler.step()
    assert engine.snapshot.tick == ticks + 1


def test_listener_keeps_loop_alive_while_animating(small_graph: Graph) -> None:
    engine = LayoutEngine(small_graph)
    engine.run(1000)
    scheduler = ManualScheduler()
    loop = FrameLoop(engine, scheduler)
    remaining = [3]

    def animating(now: float) -> bool:
        remaining[0] -= 1
        return remaining[0] > 0

    loop.add_listener(animating)
    loop.start()
    assert scheduler.run() == 3


def test_stale_callback_after_dispose_is_a_noop(small_graph: Graph) -> None:
    engine = LayoutEngine(small_graph)
    scheduler = RecordingScheduler()
    loop = FrameLoop(engine, scheduler)
    loop.start()
    scheduler.callbacks[0](0.0)
    before = engine.snapshot

    loop.dispose()
    for callback in list(scheduler.callbacks):
        callback(1.0)

    assert scheduler.cancelled
    assert engine.mode is EngineMode.DISPOSED
    assert engine.snapshot.positions == before.positions
    assert engine.snapshot.tick == before.tick
    loop.wake()
    assert len(scheduler.callbacks) == 2
    loop.dispose()


def test_run_until_settled(small_graph: Graph) -> None:
    engine = LayoutEngine(small_graph)
    snapshot = run_until_settled(engine, max_ticks=1000)
    assert snapshot.settled
    assert snapshot.tick < 1000

    engine = LayoutEngine(small_graph)
    snapshot = run_until_settled(engine, max_ticks=10)
    assert snapshot.tick == 10
    assert snapshot.mode is EngineMode.RUNNING
