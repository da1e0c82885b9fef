"""Text exports: Graphviz DOT, CSV edge list and JSON layout payloads."""

from __future__ import annotations

import csv
import io

from ..interaction.camera import OrbitView, ZoomTransform
from ..layout.state import LayoutSnapshot
from ..models import Graph, GraphStats


def to_dot(graph: Graph, *, title: str) -> str:
    def esc(s: str) -> str:
        return s.replace("\\", "\\\\").replace('"', '\\"')

    lines = [
        "digraph notes {",
        f'  label="{esc(title)}";',
        "  labelloc=t;",
        "  bgcolor=\"#0f1115\";",
        "  graph [fontname=\"Helvetica\"];",
        "  node [fontname=\"Helvetica\", fontsize=10, style=filled, shape=circle, color=\"#3a4154\", fontcolor=\"#e6e6e6\"];",
        "  edge [color=\"#3a4154\", penwidth=0.8];",
    ]

    for node_id in sorted(graph.nodes):
        node = graph.nodes[node_id]
        width = max(0.2, node.size / 50)
        lines.append(
            f'  "{esc(node_id)}" [label="{esc(node.name)}"; fillcolor="{node.color}"; '
            f'width="{width:.2f}"; group="{esc(node.group)}"];'
        )

    for e in sorted(graph.edges, key=lambda e: e.key):
        if e.type == "tag":
            # Tag edges are undirected.
            attrs = f'style="dashed"; dir="none"; label="{esc(e.label)}"; penwidth="{e.weight / 3:.2f}"'
        else:
            attrs = f'penwidth="{e.weight / 3:.2f}"'
        lines.append(f'  "{esc(e.source)}" -> "{esc(e.target)}" [{attrs}];')

    lines.append("}")
    return "\n".join(lines) + "\n"


def to_csv(graph: Graph) -> str:
    """Edge list with one row per edge, followed by orphan nodes with empty targets."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(["source", "target", "type", "weight", "label"])
    for e in graph.edges:
        writer.writerow([e.source, e.target, e.type, f"{e.weight:g}", e.label])
    for node_id in graph.orphans():
        writer.writerow([node_id, "", "", "", ""])
    return buf.getvalue()


def _view_dict(view: ZoomTransform | OrbitView | None) -> dict | None:
    if isinstance(view, ZoomTransform):
        return {"x": view.x, "y": view.y, "k": view.k}
    if isinstance(view, OrbitView):
        return {"position": list(view.position), "target": list(view.target)}
    return None


def layout_payload(
    graph: Graph,
    snapshot: LayoutSnapshot,
    *,
    stats: GraphStats | None = None,
    view: ZoomTransform | OrbitView | None = None,
) -> dict:
    """JSON-ready dict of nodes with positions, edges, stats and camera view."""
    stats = stats or graph.stats()
    nodes = []
    for node_id, node in graph.nodes.items():
        pos = snapshot.position(node_id)
        nodes.append(
            {
                "id": node_id,
                "name": node.name,
                "size": node.size,
                "color": node.color,
                "group": node.group,
                "tags": list(node.tags),
                "position": [round(v, 3) for v in pos] if pos is not None else None,
                "pinned": node_id in snapshot.pinned,
            }
        )

    payload = {
        "dims": snapshot.dims,
        "tick": snapshot.tick,
        "mode": snapshot.mode.value,
        "alpha": round(snapshot.alpha, 6),
        "nodes": nodes,
        "edges": [
            {"source": e.source, "target": e.target, "type": e.type, "weight": e.weight, "label": e.label}
            for e in graph.edges
        ],
        "stats": stats.to_dict(),
    }
    view_data = _view_dict(view)
    if view_data is not None:
        payload["view"] = view_data
    return payload
