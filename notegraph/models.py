"""Data models for notes and the knowledge graph derived from them."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

EdgeType = Literal["link", "tag"]

LINK_WEIGHT = 3.0
TAG_WEIGHT = 2.0


class GraphIntegrityError(AssertionError):
    """A built graph violates its structural invariants (builder bug)."""


@dataclass
class Note:
    """A note as supplied by the vault (or any other note store)."""

    id: str
    name: str
    content: str
    folder: str = ""
    tags: list[str] = field(default_factory=list)
    path: Path | None = None
    frontmatter: dict = field(default_factory=dict)

    @property
    def stem(self) -> str:
        """Name without a trailing .md extension."""
        if self.name.lower().endswith(".md"):
            return self.name[:-3]
        return self.name

    @property
    def word_count(self) -> int:
        from .vault.parser import word_count

        return word_count(self.content)


@dataclass(frozen=True)
class GraphNode:
    id: str
    name: str
    size: float
    color: str
    group: str = "root"
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class GraphEdge:
    source: str
    target: str
    type: EdgeType
    weight: float
    label: str = ""

    @property
    def key(self) -> tuple[str, str, str]:
        """Unique identity of the edge within a graph."""
        return (self.source, self.target, self.type)

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id


@dataclass(frozen=True)
class GraphStats:
    node_count: int
    edge_count: int
    link_count: int
    tag_count: int
    avg_degree: float
    max_degree: int
    orphan_count: int

    def to_dict(self) -> dict:
        return {
            "node_count": self.node_count,
            "edge_count": self.edge_count,
            "link_count": self.link_count,
            "tag_count": self.tag_count,
            "avg_degree": self.avg_degree,
            "max_degree": self.max_degree,
            "orphan_count": self.orphan_count,
        }


@dataclass
class Graph:
    """Nodes keyed by id (insertion ordered) plus typed edges between them.

    A graph is a derived, disposable view of a note corpus; rebuild it whenever
    the notes change.
    """

    nodes: dict[str, GraphNode] = field(default_factory=dict)
    edges: list[GraphEdge] = field(default_factory=list)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def add_node(self, node: GraphNode) -> None:
        self.nodes[node.id] = node

    def add_edge(self, edge: GraphEdge) -> None:
        self.edges.append(edge)

    def incident_edges(self, node_id: str) -> list[GraphEdge]:
        return [e for e in self.edges if e.touches(node_id)]

    def neighbors(self, node_id: str) -> set[str]:
        """Undirected neighbourhood (the node itself excluded)."""
        out: set[str] = set()
        for e in self.edges:
            if e.source == node_id:
                out.add(e.target)
            elif e.target == node_id:
                out.add(e.source)
        return out

    def adjacency(self) -> dict[str, set[str]]:
        adj: dict[str, set[str]] = {n: set() for n in self.nodes}
        for e in self.edges:
            adj.setdefault(e.source, set()).add(e.target)
            adj.setdefault(e.target, set()).add(e.source)
        return adj

    def degrees(self) -> dict[str, int]:
        """Incident edge count per node; parallel edges count separately."""
        deg = {n: 0 for n in self.nodes}
        for e in self.edges:
            deg[e.source] = deg.get(e.source, 0) + 1
            deg[e.target] = deg.get(e.target, 0) + 1
        return deg

    def degree(self, node_id: str) -> int:
        return sum(1 for e in self.edges if e.touches(node_id))

    def orphans(self) -> list[str]:
        deg = self.degrees()
        return [n for n in self.nodes if deg.get(n, 0) == 0]

    def signature(self) -> tuple[frozenset[str], frozenset[tuple[str, str, str]]]:
        """Identity of the topology; differs whenever a node or edge changes."""
        return frozenset(self.nodes), frozenset(e.key for e in self.edges)

    def stats(self) -> GraphStats:
        deg = self.degrees()
        values = [deg[n] for n in self.nodes]
        avg = sum(values) / len(values) if values else 0.0
        return GraphStats(
            node_count=len(self.nodes),
            edge_count=len(self.edges),
            link_count=sum(1 for e in self.edges if e.type == "link"),
            tag_count=sum(1 for e in self.edges if e.type == "tag"),
            avg_degree=round(avg, 1),
            max_degree=max(values, default=0),
            orphan_count=sum(1 for v in values if v == 0),
        )

    def check_integrity(self) -> None:
        """Raise GraphIntegrityError if an edge is a self-loop or dangles."""
        for node_id, node in self.nodes.items():
            if node.id != node_id:
                raise GraphIntegrityError(f"node keyed {node_id!r} carries id {node.id!r}")
        seen: set[tuple[str, str, str]] = set()
        for e in self.edges:
            if e.source == e.target:
                raise GraphIntegrityError(f"self-loop edge on {e.source!r}")
            if e.source not in self.nodes:
                raise GraphIntegrityError(f"edge source {e.source!r} is not a node")
            if e.target not in self.nodes:
                raise GraphIntegrityError(f"edge target {e.target!r} is not a node")
            if e.key in seen:
                raise GraphIntegrityError(f"duplicate edge {e.key!r}")
            seen.add(e.key)

    def subgraph(self, keep: set[str]) -> "Graph":
        """Graph restricted to `keep`, preserving node order."""
        g = Graph()
        for node_id, node in self.nodes.items():
            if node_id in keep:
                g.add_node(node)
        for e in self.edges:
            if e.source in keep and e.target in keep:
                g.add_edge(e)
        return g


@dataclass
class Backlink:
    """A note referencing another note, with the text around each reference."""

    note: Note
    snippets: list[str] = field(default_factory=list)
