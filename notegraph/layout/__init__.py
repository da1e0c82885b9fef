"""Force-directed layout simulation."""

from .engine import LayoutEngine, seed_position
from .forces import BarnesHutRepulsion, PairwiseRepulsion, select_repulsion
from .loop import FrameLoop, ManualScheduler, run_until_settled
from .state import EngineMode, Free, LayoutSnapshot, Pinned

__all__ = [
    "LayoutEngine",
    "seed_position",
    "BarnesHutRepulsion",
    "PairwiseRepulsion",
    "select_repulsion",
    "FrameLoop",
    "ManualScheduler",
    "run_until_settled",
    "EngineMode",
    "Free",
    "LayoutSnapshot",
    "Pinned",
]
