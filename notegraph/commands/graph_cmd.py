"""Graph commands - inspect, lay out and analyse the note link/tag graph."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..config import NotegraphConfig, load_config
from ..graph.analysis import (
    connected_clusters,
    graph_density,
    health_metrics,
    label_propagation,
    pagerank,
    shortest_path,
)
from ..graph.builder import GraphOptions, build_graph
from ..models import Graph
from ..render.export import layout_payload, to_csv, to_dot
from ..render.svg import render_html, render_svg
from ..vault.loader import Vault, load_vault
from .layout_run import simulate

LAYOUT_FORMATS = {"svg", "html", "layout"}


def _emit(text: str, out: Path | None, console: Console, what: str = "graph output") -> None:
    if out:
        out.write_text(text, encoding="utf-8")
        console.print(f"Wrote {what} to {out}", style="green")
    else:
        print(text, end="" if text.endswith("\n") else "\n")


def resolve_note_id(vault: Vault, ref: str, console: Console) -> str | None:
    note = vault.find(ref)
    if note is None:
        console.print(f"[red]Note not found:[/red] {ref}")
        return None
    return note.id


def run_graph(
    vault_path: Path,
    *,
    fmt: str = "md",
    out: Path | None = None,
    top: int = 25,
    config: NotegraphConfig | None = None,
    local: str | None = None,
    depth: int | None = None,
    center: str | None = None,
    dims: int | None = None,
    ticks: int = 1000,
) -> int:
    """Output a graph summary, an export, or a simulated layout.

    `local` restricts the graph to notes within `depth` hops of a note;
    `center` frames a note in the camera view of layout output.
    """
    console = Console(stderr=True)
    config = config or load_config(vault_path=vault_path)

    vault = load_vault(vault_path)

    options = GraphOptions.from_config(config.graph)
    title = "Note graph"
    if local:
        local_id = resolve_note_id(vault, local, console)
        if local_id is None:
            return 1
        options.center_node = local_id
        if depth is not None:
            options.max_distance = depth
        title = f"Local graph of {local_id} (depth {options.max_distance})"

    center_id = None
    if center:
        center_id = resolve_note_id(vault, center, console)
        if center_id is None:
            return 1

    graph = build_graph(vault.notes, options)
    payload = _summarize_graph(graph, title=title, top=top)

    if fmt == "rich":
        if out:
            rich_console = Console(record=True)
            _print_rich(payload, console=rich_console)
            out.write_text(rich_console.export_text(), encoding="utf-8")
            console.print(f"Wrote graph output to {out}", style="green")
        else:
            _print_rich(payload, console=Console())
        return 0

    text: str
    if fmt in LAYOUT_FORMATS:
        run = simulate(graph, config, max_frames=ticks, dims=dims, center=center_id)
        try:
            if fmt == "layout":
                data = layout_payload(graph, run.snapshot, view=run.view)
                text = json.dumps(data, indent=2) + "\n"
            else:
                text = render_svg(graph, run.snapshot, title=title)
                if fmt == "html":
                    text = render_html(text, title=title, camera=config.camera)
        finally:
            run.dispose()
    elif fmt == "json":
        text = json.dumps(payload, indent=2, sort_keys=True) + "\n"
    elif fmt == "dot":
        text = to_dot(graph, title=title)
    elif fmt == "csv":
        text = to_csv(graph)
    else:
        text = _to_markdown(payload)

    _emit(text, out, console)
    return 0


def run_path(vault_path: Path, source: str, target: str, *, fmt: str = "md", config: NotegraphConfig | None = None) -> int:
    """Shortest undirected path between two notes."""
    console = Console(stderr=True)
    config = config or load_config(vault_path=vault_path)
    vault = load_vault(vault_path)

    a = resolve_note_id(vault, source, console)
    b = resolve_note_id(vault, target, console)
    if a is None or b is None:
        return 1

    graph = build_graph(vault.notes, GraphOptions(include_tags=config.graph.include_tags))
    path = shortest_path(graph, a, b)

    if fmt == "json":
        print(json.dumps({"from": a, "to": b, "path": path, "hops": (len(path) - 1) if path else None}, indent=2))
        return 0 if path else 1

    if path is None:
        console.print(f"[yellow]No path between[/yellow] {a} and {b}")
        return 1
    print(" -> ".join(path))
    console.print(f"{len(path) - 1} hop(s)", style="dim")
    return 0


def run_clusters(
    vault_path: Path,
    *,
    fmt: str = "md",
    min_size: int = 3,
    algorithm: str = "components",
    out: Path | None = None,
    config: NotegraphConfig | None = None,
) -> int:
    """Connected clusters (or label-propagation communities) of the note graph."""
    console = Console(stderr=True)
    config = config or load_config(vault_path=vault_path)
    vault = load_vault(vault_path)
    graph = build_graph(vault.notes, GraphOptions.from_config(config.graph))

    if algorithm == "lpa":
        communities = label_propagation(graph)
        members: dict[str, list[str]] = {}
        for node_id, label in communities.items():
            members.setdefault(label, []).append(node_id)
        rows = [
            {"id": label, "label": label, "size": len(nodes), "nodes": sorted(nodes)}
            for label, nodes in sorted(members.items(), key=lambda kv: (-len(kv[1]), kv[0]))
            if len(nodes) >= min_size
        ]
    else:
        rows = [
            {"id": c.id, "label": c.label, "size": c.size, "density": c.density, "nodes": list(c.nodes)}
            for c in connected_clusters(graph, min_size=min_size)
        ]

    payload = {
        "algorithm": algorithm,
        "min_size": min_size,
        "node_count": len(graph.nodes),
        "density": round(graph_density(graph), 4),
        "clusters": rows,
    }

    if fmt == "json":
        _emit(json.dumps(payload, indent=2, sort_keys=True) + "\n", out, console, "clusters")
        return 0

    if fmt == "rich":
        t = Table(title=f"Clusters ({algorithm})", show_header=True, header_style="bold")
        t.add_column("Cluster", style="cyan", no_wrap=True)
        t.add_column("Label")
        t.add_column("Size", justify="right")
        t.add_column("Density", justify="right")
        for r in rows:
            t.add_row(r["id"], r["label"], str(r["size"]), f"{r.get('density', 0):.3f}" if "density" in r else "-")
        Console().print(t)
        return 0

    lines = [f"## Clusters ({algorithm})", "", f"- Nodes: {payload['node_count']}", f"- Graph density: {payload['density']}", ""]
    if not rows:
        lines.append(f"No clusters with at least {min_size} notes.")
    for r in rows:
        extra = f", density {r['density']}" if "density" in r else ""
        lines.append(f"### {r['label']} ({r['size']} notes{extra})")
        lines.append("")
        for node_id in r["nodes"]:
            lines.append(f"- `{node_id}`")
        lines.append("")
    _emit("\n".join(lines).rstrip() + "\n", out, console, "clusters")
    return 0


def run_health(
    vault_path: Path,
    *,
    fmt: str = "md",
    top: int = 10,
    config: NotegraphConfig | None = None,
) -> int:
    """Graph health score, coverage gaps and the most central notes."""
    console = Console(stderr=True)
    config = config or load_config(vault_path=vault_path)
    vault = load_vault(vault_path)
    graph = build_graph(vault.notes, GraphOptions(include_tags=config.graph.include_tags))

    metrics = health_metrics(graph)
    ranks = pagerank(graph)
    central = sorted(ranks.items(), key=lambda kv: (-kv[1], kv[0]))[: max(0, top)]

    if fmt == "json":
        data = metrics.to_dict()
        data["gaps"] = [{"type": g.type, "identifier": g.identifier, "suggestions": list(g.suggestions)} for g in metrics.gaps]
        data["central"] = [{"id": node_id, "pagerank": round(score, 6)} for node_id, score in central]
        print(json.dumps(data, indent=2, sort_keys=True))
        return 0

    if fmt == "rich":
        out = Console()
        t = Table(title="Graph health", show_header=False)
        t.add_column("Metric", style="bold")
        t.add_column("Value", justify="right")
        t.add_row("Health score", f"{metrics.health_score}/100")
        t.add_row("Connectivity", f"{metrics.connectivity}%")
        t.add_row("Average degree", str(metrics.avg_degree))
        t.add_row("Clusters", str(metrics.cluster_count))
        t.add_row("Orphans", str(metrics.orphan_count))
        t.add_row("Coverage gaps", str(metrics.gap_count))
        out.print(t)
        for g in metrics.gaps:
            out.print(f"[yellow]{g.type}[/yellow] {g.identifier}")
        return 0

    lines = [
        "## Graph health",
        "",
        f"- Health score: {metrics.health_score}/100",
        f"- Connectivity: {metrics.connectivity}%",
        f"- Average degree: {metrics.avg_degree}",
        f"- Clusters: {metrics.cluster_count}",
        f"- Orphans: {metrics.orphan_count}",
        f"- Coverage gaps: {metrics.gap_count}",
        "",
    ]
    if metrics.gaps:
        lines.append("### Coverage gaps")
        lines.append("")
        for g in metrics.gaps:
            lines.append(f"- {g.type}: `{g.identifier}`")
            for s in g.suggestions:
                lines.append(f"  - {s}")
        lines.append("")
    if central:
        lines.append("### Most central notes")
        lines.append("")
        lines.append("| Note | PageRank |")
        lines.append("|---|---:|")
        for node_id, score in central:
            lines.append(f"| `{node_id}` | {score:.4f} |")
    print("\n".join(lines).rstrip())
    return 0


def _summarize_graph(g: Graph, *, title: str, top: int) -> dict:
    in_deg = {n: 0 for n in g.nodes}
    out_deg = {n: 0 for n in g.nodes}
    tag_deg = {n: 0 for n in g.nodes}
    for e in g.edges:
        if e.type == "link":
            out_deg[e.source] += 1
            in_deg[e.target] += 1
        else:
            tag_deg[e.source] += 1
            tag_deg[e.target] += 1

    def top_list(key: str) -> list[dict]:
        rows = [
            {"name": n, "in_degree": in_deg[n], "out_degree": out_deg[n], "tag_degree": tag_deg[n]}
            for n in sorted(g.nodes)
        ]
        rows.sort(key=lambda r: (-r[key], r["name"]))
        return rows[: max(0, top)]

    stats = g.stats()
    return {
        "title": title,
        "node_count": stats.node_count,
        "edge_count": stats.edge_count,
        "stats": stats.to_dict(),
        "orphans": g.orphans(),
        "top_in_degree": top_list("in_degree"),
        "top_out_degree": top_list("out_degree"),
    }


def _to_markdown(payload: dict) -> str:
    stats = payload["stats"]
    lines: list[str] = []
    lines.append(f"## {payload['title']}")
    lines.append("")
    lines.append(f"- Nodes: {payload['node_count']}")
    lines.append(f"- Edges: {payload['edge_count']} ({stats['link_count']} link, {stats['tag_count']} tag)")
    lines.append(f"- Average degree: {stats['avg_degree']}")
    lines.append(f"- Max degree: {stats['max_degree']}")
    lines.append(f"- Orphans: {stats['orphan_count']}")
    lines.append("")

    def table(title: str, rows: list[dict]) -> None:
        lines.append(f"### {title}")
        lines.append("")
        lines.append("| Note | In-degree | Out-degree | Tag edges |")
        lines.append("|---|---:|---:|---:|")
        for r in rows:
            lines.append(f"| `{r['name']}` | {r['in_degree']} | {r['out_degree']} | {r['tag_degree']} |")
        lines.append("")

    table("Top in-degree", payload["top_in_degree"])
    table("Top out-degree", payload["top_out_degree"])

    return "\n".join(lines).rstrip() + "\n"


def _print_rich(payload: dict, *, console: Console) -> None:
    stats = payload["stats"]
    console.print(f"[bold]{payload['title']}[/bold]")
    console.print(
        f"Nodes: {payload['node_count']}  Edges: {payload['edge_count']}  "
        f"Avg degree: {stats['avg_degree']}  Orphans: {stats['orphan_count']}"
    )
    console.print()

    def render_table(title: str, rows: list[dict]) -> None:
        t = Table(title=title, show_header=True, header_style="bold")
        t.add_column("Note", style="cyan", no_wrap=True)
        t.add_column("In", justify="right")
        t.add_column("Out", justify="right")
        t.add_column("Tag", justify="right")
        for r in rows:
            t.add_row(str(r["name"]), str(r["in_degree"]), str(r["out_degree"]), str(r["tag_degree"]))
        console.print(t)
        console.print()

    render_table("Top in-degree", payload["top_in_degree"])
    render_table("Top out-degree", payload["top_out_degree"])
