"""Graph model builder: notes to a graph of link and tag edges."""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Iterable

from ..config import GraphConfig
from ..models import LINK_WEIGHT, TAG_WEIGHT, Graph, GraphEdge, GraphNode, Note
from ..vault.parser import word_count
from .resolver import NoteIndex, unique_notes

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "#6366f1"  # indigo

PALETTE = (
    "#ef4444",
    "#f97316",
    "#f59e0b",
    "#eab308",
    "#84cc16",
    "#22c55e",
    "#10b981",
    "#14b8a6",
    "#06b6d4",
    "#0ea5e9",
    "#3b82f6",
    "#6366f1",
    "#8b5cf6",
    "#a855f7",
    "#d946ef",
    "#ec4899",
    "#f43f5e",
)

MIN_NODE_SIZE = 5.0
MAX_NODE_SIZE = 50.0


@dataclass
class GraphOptions:
    """Filters applied after edges are constructed."""

    include_orphans: bool = True
    max_nodes: int | None = None
    center_node: str | None = None
    max_distance: int = 3
    min_connections: int = 0
    include_tags: bool = True

    @classmethod
    def from_config(cls, config: GraphConfig, *, center_node: str | None = None) -> "GraphOptions":
        return cls(
            include_orphans=config.include_orphans,
            max_nodes=config.max_nodes,
            center_node=center_node,
            max_distance=config.max_distance,
            min_connections=config.min_connections,
            include_tags=config.include_tags,
        )


def stable_hash(text: str) -> int:
    """31-multiplier string hash folded to a signed 32-bit int, returned as abs."""
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def node_color(note: Note) -> str:
    """Colour by folder, else by first tag, else the default."""
    if note.folder:
        return PALETTE[stable_hash(note.folder) % len(PALETTE)]
    if note.tags:
        return PALETTE[stable_hash(note.tags[0]) % len(PALETTE)]
    return DEFAULT_COLOR


def node_size(degree: int, words: int) -> float:
    return max(MIN_NODE_SIZE, min(MAX_NODE_SIZE, degree * 3 + words / 100))


def _link_edges(notes: list[Note], index: NoteIndex) -> list[GraphEdge]:
    edges: list[GraphEdge] = []
    seen: set[tuple[str, str]] = set()
    for note in notes:
        for ref, target in index.links_from(note):
            pair = (note.id, target.id)
            if pair in seen:
                continue
            seen.add(pair)
            edges.append(
                GraphEdge(
                    source=note.id,
                    target=target.id,
                    type="link",
                    weight=LINK_WEIGHT,
                    label=ref.display or ref.target,
                )
            )
    return edges


def _tag_edges(notes: list[Note]) -> list[GraphEdge]:
    members: dict[str, list[str]] = defaultdict(list)
    spelling: dict[str, str] = {}
    for note in notes:
        for tag in dict.fromkeys(t.lower() for t in note.tags):
            members[tag].append(note.id)
        for tag in note.tags:
            spelling.setdefault(tag.lower(), tag)

    shared: dict[tuple[str, str], set[str]] = defaultdict(set)
    for tag, ids in members.items():
        for i, a in enumerate(ids):
            for b in ids[i + 1 :]:
                pair = (a, b) if a < b else (b, a)
                shared[pair].add(spelling[tag])

    return [
        GraphEdge(
            source=a,
            target=b,
            type="tag",
            weight=TAG_WEIGHT,
            label=", ".join(sorted(tags)),
        )
        for (a, b), tags in sorted(shared.items())
    ]


def _within_distance(graph: Graph, center: str, max_distance: int) -> set[str]:
    """Node ids reachable from center within max_distance undirected hops."""
    adj = graph.adjacency()
    visited = {center}
    queue = deque([(center, 0)])
    while queue:
        node_id, dist = queue.popleft()
        if dist >= max_distance:
            continue
        for nbr in sorted(adj.get(node_id, ())):
            if nbr not in visited:
                visited.add(nbr)
                queue.append((nbr, dist + 1))
    return visited


def _apply_options(graph: Graph, options: GraphOptions) -> Graph:
    if options.center_node is not None:
        if options.center_node not in graph:
            logger.info("Center node %s not in graph; local graph is empty", options.center_node)
            return Graph()
        graph = graph.subgraph(_within_distance(graph, options.center_node, max(0, options.max_distance)))

    deg = graph.degrees()
    keep = set(graph.nodes)
    if options.min_connections > 0:
        keep = {n for n in keep if deg[n] >= options.min_connections}
    if not options.include_orphans:
        keep = {n for n in keep if deg[n] > 0}
    if options.max_nodes is not None and len(keep) > options.max_nodes:
        ranked = sorted(keep, key=lambda n: (-deg[n], n))
        keep = set(ranked[: max(0, options.max_nodes)])

    if keep != set(graph.nodes):
        graph = graph.subgraph(keep)
    return graph


def build_graph(notes: Iterable[Note], options: GraphOptions | None = None) -> Graph:
    """Build the knowledge graph for a note corpus.

    Pure and deterministic: the same notes always yield the same nodes and
    edges, in the same order.
    """
    options = options or GraphOptions()
    ordered = unique_notes(notes)
    index = NoteIndex(ordered)

    edges = _link_edges(ordered, index)
    if options.include_tags:
        edges.extend(_tag_edges(ordered))

    degree: dict[str, int] = defaultdict(int)
    for e in edges:
        degree[e.source] += 1
        degree[e.target] += 1

    graph = Graph()
    for note in ordered:
        graph.add_node(
            GraphNode(
                id=note.id,
                name=note.stem,
                size=node_size(degree[note.id], word_count(note.content)),
                color=node_color(note),
                group=note.folder or "root",
                tags=tuple(note.tags),
            )
        )
    for e in edges:
        graph.add_edge(e)

    graph = _apply_options(graph, options)
    graph.check_integrity()
    logger.debug("Built graph: %d nodes, %d edges", len(graph.nodes), len(graph.edges))
    return graph
