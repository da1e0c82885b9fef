"""Knowledge graph construction and analysis."""

from .backlinks import backlink_map, find_backlinks
from .builder import GraphOptions, build_graph
from .resolver import NoteIndex

__all__ = [
    "backlink_map",
    "find_backlinks",
    "GraphOptions",
    "build_graph",
    "NoteIndex",
]
