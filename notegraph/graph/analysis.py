"""Structural analysis over a built graph: paths, clusters, communities, health."""

from __future__ import annotations

from collections import Counter, defaultdict, deque
from dataclasses import dataclass, field

from ..models import Graph


@dataclass(frozen=True)
class Cluster:
    id: str
    label: str
    nodes: tuple[str, ...]
    density: float

    @property
    def size(self) -> int:
        return len(self.nodes)


@dataclass(frozen=True)
class CoverageGap:
    type: str  # isolated-tag | isolated-group
    identifier: str
    suggestions: tuple[str, ...] = ()


@dataclass(frozen=True)
class HealthMetrics:
    health_score: int
    connectivity: int
    avg_degree: float
    cluster_count: int
    gap_count: int
    orphan_count: int
    gaps: tuple[CoverageGap, ...] = field(default=(), compare=False)

    def to_dict(self) -> dict:
        return {
            "health_score": self.health_score,
            "connectivity": self.connectivity,
            "avg_degree": self.avg_degree,
            "cluster_count": self.cluster_count,
            "gap_count": self.gap_count,
            "orphan_count": self.orphan_count,
        }


def undirected_edge_view(graph: Graph) -> list[tuple[str, str]]:
    """Distinct unordered node pairs joined by at least one edge."""
    pairs: set[tuple[str, str]] = set()
    for e in graph.edges:
        a, b = (e.source, e.target) if e.source < e.target else (e.target, e.source)
        pairs.add((a, b))
    return sorted(pairs)


def shortest_path(graph: Graph, start: str, end: str) -> list[str] | None:
    """Shortest undirected path from start to end, or None."""
    if start not in graph or end not in graph:
        return None
    if start == end:
        return [start]

    adj = graph.adjacency()
    prev: dict[str, str] = {}
    visited = {start}
    queue = deque([start])
    while queue:
        current = queue.popleft()
        for nbr in sorted(adj.get(current, ())):
            if nbr in visited:
                continue
            visited.add(nbr)
            prev[nbr] = current
            if nbr == end:
                path = [end]
                while path[-1] != start:
                    path.append(prev[path[-1]])
                return list(reversed(path))
            queue.append(nbr)
    return None


def graph_density(graph: Graph) -> float:
    n = len(graph.nodes)
    if n <= 1:
        return 0.0
    return len(undirected_edge_view(graph)) / (n * (n - 1) / 2)


def connected_clusters(graph: Graph, *, min_size: int = 3) -> list[Cluster]:
    """Connected components with at least `min_size` nodes, largest first."""
    adj = graph.adjacency()
    pairs = undirected_edge_view(graph)
    seen: set[str] = set()
    components: list[list[str]] = []

    for start in graph.nodes:
        if start in seen:
            continue
        comp = []
        queue = deque([start])
        seen.add(start)
        while queue:
            current = queue.popleft()
            comp.append(current)
            for nbr in sorted(adj.get(current, ())):
                if nbr not in seen:
                    seen.add(nbr)
                    queue.append(nbr)
        if len(comp) >= min_size:
            components.append(sorted(comp))

    components.sort(key=lambda c: (-len(c), c[0]))
    clusters: list[Cluster] = []
    for idx, comp in enumerate(components):
        members = set(comp)
        internal = sum(1 for a, b in pairs if a in members and b in members)
        n = len(comp)
        density = (internal * 2) / (n * (n - 1)) if n > 1 else 0.0

        tag_counts: Counter[str] = Counter()
        for node_id in comp:
            tag_counts.update(graph.nodes[node_id].tags)
        if tag_counts:
            best = max(tag_counts.values())
            label = sorted(t for t, c in tag_counts.items() if c == best)[0]
        else:
            group = graph.nodes[comp[0]].group
            label = group if group != "root" else f"Cluster {idx + 1}"

        clusters.append(Cluster(id=f"cluster-{idx}", label=label, nodes=tuple(comp), density=round(density, 3)))
    return clusters


def label_propagation(graph: Graph, *, max_iter: int = 50) -> dict[str, str]:
    """Deterministic label propagation on an undirected view of the graph.

    Returns node -> community label (string).
    """
    nodes = sorted(graph.nodes)
    adj = graph.adjacency()
    labels: dict[str, str] = {n: n for n in nodes}

    for _ in range(max(1, max_iter)):
        changed = 0

        for n in nodes:
            nbrs = adj.get(n, set())
            if not nbrs:
                continue

            counts: Counter[str] = Counter(labels[x] for x in nbrs if x in labels)
            if not counts:
                continue

            best_count = max(counts.values())
            best = sorted([lab for lab, c in counts.items() if c == best_count])[0]
            if best != labels[n]:
                labels[n] = best
                changed += 1

        if changed == 0:
            break

    # Canonicalize labels to contiguous community ids for readability.
    groups: dict[str, list[str]] = defaultdict(list)
    for node, lab in labels.items():
        groups[lab].append(node)

    ordered_groups = sorted(groups.values(), key=lambda ns: (-len(ns), ns[0]))
    canon: dict[str, str] = {}
    for idx, members in enumerate(ordered_groups, start=1):
        for node in members:
            canon[node] = f"c{idx}"
    return canon


def pagerank(graph: Graph, *, damping: float = 0.85, iterations: int = 100) -> dict[str, float]:
    """PageRank over directed edges; tag edges count in their stored direction."""
    n = len(graph.nodes)
    if n == 0:
        return {}

    out_links: dict[str, list[str]] = {node_id: [] for node_id in graph.nodes}
    in_links: dict[str, list[str]] = {node_id: [] for node_id in graph.nodes}
    for e in graph.edges:
        out_links[e.source].append(e.target)
        in_links[e.target].append(e.source)

    dangling = [node_id for node_id, outs in out_links.items() if not outs]
    rank = {node_id: 1.0 / n for node_id in graph.nodes}
    for _ in range(iterations):
        # Notes without outgoing edges spread their rank evenly.
        leaked = damping * sum(rank[node_id] for node_id in dangling) / n
        rank = {
            node_id: (1 - damping) / n
            + leaked
            + damping * sum(rank[src] / len(out_links[src]) for src in in_links[node_id])
            for node_id in graph.nodes
        }
    return rank


def coverage_gaps(graph: Graph) -> list[CoverageGap]:
    """Tags used by a single note and groups with no edge leaving them."""
    gaps: list[CoverageGap] = []

    tag_counts: Counter[str] = Counter()
    for node in graph.nodes.values():
        tag_counts.update(set(node.tags))
    for tag in sorted(t for t, c in tag_counts.items() if c == 1):
        gaps.append(
            CoverageGap(
                type="isolated-tag",
                identifier=tag,
                suggestions=(f"Create more notes tagged with #{tag}", "Link the existing note to related topics"),
            )
        )

    groups = {node.group for node in graph.nodes.values() if node.group != "root"}
    connected_groups: set[str] = set()
    for e in graph.edges:
        a = graph.nodes[e.source].group
        b = graph.nodes[e.target].group
        if a != b:
            connected_groups.update((a, b))
    for group in sorted(groups - connected_groups):
        gaps.append(
            CoverageGap(
                type="isolated-group",
                identifier=group,
                suggestions=(f'Create links from "{group}" to other topic areas',),
            )
        )
    return gaps


def health_metrics(graph: Graph) -> HealthMetrics:
    """0-100 health score: connectivity 40, average degree 30, clusters 20, gaps 10."""
    stats = graph.stats()
    clusters = connected_clusters(graph)
    gaps = coverage_gaps(graph)

    connectivity = (stats.node_count - stats.orphan_count) / stats.node_count if stats.node_count else 0.0
    score = connectivity * 40
    score += min(stats.avg_degree / 5, 1) * 30
    score += min(len(clusters) / 10, 1) * 20
    score += max(0.0, 1 - len(gaps) / 20) * 10

    return HealthMetrics(
        health_score=round(score),
        connectivity=round(connectivity * 100),
        avg_degree=stats.avg_degree,
        cluster_count=len(clusters),
        gap_count=len(gaps),
        orphan_count=stats.orphan_count,
        gaps=tuple(gaps),
    )
