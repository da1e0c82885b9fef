import json
from pathlib import Path

import pytest

from notegraph.commands.backlinks_cmd import run_backlinks
from notegraph.commands.graph_cmd import run_clusters, run_graph, run_health, run_path
from notegraph.config import NotegraphConfig, config_from_dict


def test_run_graph_markdown_to_file(vault_path: Path, tmp_path: Path) -> None:
    out = tmp_path / "graph.md"
    assert run_graph(vault_path, fmt="md", out=out) == 0
    text = out.read_text(encoding="utf-8")
    assert text.startswith("## Note graph")
    assert "- Nodes: 4" in text
    assert "- Edges: 6 (4 link, 2 tag)" in text
    assert "### Top in-degree" in text
    assert "| `Alpha` | 2 | 1 | 2 |" in text


def test_run_graph_json(vault_path: Path, tmp_path: Path) -> None:
    out = tmp_path / "graph.json"
    assert run_graph(vault_path, fmt="json", out=out, top=2) == 0
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["node_count"] == 4
    assert data["orphans"] == ["projects/Gamma"]
    assert len(data["top_in_degree"]) == 2
    assert data["top_in_degree"][0]["name"] == "Alpha"


def test_run_graph_without_orphans(vault_path: Path, tmp_path: Path) -> None:
    out = tmp_path / "graph.json"
    config = config_from_dict({"graph": {"include_orphans": False}})
    assert run_graph(vault_path, fmt="json", out=out, config=config) == 0
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["node_count"] == 3
    assert data["orphans"] == []


def test_run_graph_dot_and_csv(vault_path: Path, tmp_path: Path) -> None:
    dot = tmp_path / "graph.dot"
    csv_out = tmp_path / "graph.csv"
    assert run_graph(vault_path, fmt="dot", out=dot) == 0
    assert run_graph(vault_path, fmt="csv", out=csv_out) == 0

    assert '"Index" -> "projects/Beta"' in dot.read_text(encoding="utf-8")
    rows = csv_out.read_text(encoding="utf-8").splitlines()
    assert rows[0] == "source,target,type,weight,label"
    assert "projects/Beta,Alpha,link,3,Alpha" in rows
    assert rows[-1] == "projects/Gamma,,,,"


def test_run_graph_html_page(vault_path: Path, tmp_path: Path) -> None:
    out = tmp_path / "graph.html"
    assert run_graph(vault_path, fmt="html", out=out, ticks=200) == 0
    page = out.read_text(encoding="utf-8")
    assert "<svg" in page
    assert "Drag to pan" in page
    assert page.count('<g class="node"') == 4


def test_run_graph_svg(vault_path: Path, tmp_path: Path) -> None:
    out = tmp_path / "graph.svg"
    assert run_graph(vault_path, fmt="svg", out=out, ticks=50) == 0
    svg = out.read_text(encoding="utf-8")
    assert svg.startswith("<svg")
    assert 'data-id="projects/Beta"' in svg


def test_run_graph_layout_settles_and_centres(vault_path: Path, tmp_path: Path) -> None:
    out = tmp_path / "layout.json"
    config = config_from_dict({"camera": {"center_delay": 100}})
    assert run_graph(vault_path, fmt="layout", out=out, center="Alpha", config=config) == 0
    data = json.loads(out.read_text(encoding="utf-8"))

    assert data["dims"] == 2
    assert data["mode"] == "settled"
    assert {n["id"] for n in data["nodes"]} == {"Alpha", "Index", "projects/Beta", "projects/Gamma"}
    alpha = next(n for n in data["nodes"] if n["id"] == "Alpha")
    view = data["view"]
    # Framed once settled, so Alpha sits at the viewport centre.
    assert alpha["position"][0] * view["k"] + view["x"] == pytest.approx(400.0, abs=0.01)
    assert alpha["position"][1] * view["k"] + view["y"] == pytest.approx(300.0, abs=0.01)


def test_run_graph_layout_3d(vault_path: Path, tmp_path: Path) -> None:
    out = tmp_path / "layout.json"
    assert run_graph(vault_path, fmt="layout", out=out, dims=3, ticks=20) == 0
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["dims"] == 3
    assert all(len(n["position"]) == 3 for n in data["nodes"])
    assert set(data["view"]) == {"position", "target"}


def test_run_graph_local(vault_path: Path, tmp_path: Path) -> None:
    out = tmp_path / "local.json"
    assert run_graph(vault_path, fmt="json", out=out, local="Beta", depth=1) == 0
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["title"] == "Local graph of projects/Beta (depth 1)"
    assert data["node_count"] == 3


def test_unknown_note_is_an_error(vault_path: Path, tmp_path: Path) -> None:
    assert run_graph(vault_path, fmt="md", local="Nope") == 1
    assert run_graph(vault_path, fmt="layout", center="Nope") == 1
    assert run_backlinks(vault_path, "Nope", fmt="json") == 1


def test_run_path(vault_path: Path, capsys) -> None:
    assert run_path(vault_path, "Beta", "Index") == 0
    assert capsys.readouterr().out.strip() == "projects/Beta -> Index"

    assert run_path(vault_path, "Gamma", "Index") == 1

    assert run_path(vault_path, "Gamma", "Index", fmt="json") == 1
    data = json.loads(capsys.readouterr().out)
    assert data == {"from": "projects/Gamma", "to": "Index", "path": None, "hops": None}


def test_run_backlinks_json(vault_path: Path, capsys) -> None:
    assert run_backlinks(vault_path, "Alpha", fmt="json") == 0
    data = json.loads(capsys.readouterr().out)
    assert data["note"] == "Alpha"
    assert data["count"] == 2
    assert {b["id"] for b in data["backlinks"]} == {"Index", "projects/Beta"}
    assert all(b["snippets"] for b in data["backlinks"])


def test_run_backlinks_markdown(vault_path: Path, capsys) -> None:
    assert run_backlinks(vault_path, "Index", fmt="md") == 0
    out = capsys.readouterr().out
    assert out.startswith("## Backlinks to Index (1)")
    assert "### [[Alpha]]" in out


def test_run_clusters(vault_path: Path, tmp_path: Path) -> None:
    out = tmp_path / "clusters.json"
    assert run_clusters(vault_path, fmt="json", out=out) == 0
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["algorithm"] == "components"
    assert data["node_count"] == 4
    assert len(data["clusters"]) == 1
    assert set(data["clusters"][0]["nodes"]) == {"Alpha", "Index", "projects/Beta"}

    md = tmp_path / "clusters.md"
    assert run_clusters(vault_path, fmt="md", min_size=5, out=md) == 0
    assert "No clusters with at least 5 notes." in md.read_text(encoding="utf-8")


def test_run_clusters_label_propagation(vault_path: Path, tmp_path: Path) -> None:
    out = tmp_path / "lpa.json"
    assert run_clusters(vault_path, fmt="json", algorithm="lpa", min_size=1, out=out) == 0
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["algorithm"] == "lpa"
    assert sum(c["size"] for c in data["clusters"]) == 4


def test_run_health(vault_path: Path, capsys) -> None:
    assert run_health(vault_path, fmt="json", top=2) == 0
    data = json.loads(capsys.readouterr().out)
    assert 0 <= data["health_score"] <= 100
    assert data["orphan_count"] == 1
    assert len(data["central"]) == 2

    assert run_health(vault_path, fmt="md", config=NotegraphConfig()) == 0
    out = capsys.readouterr().out
    assert out.startswith("## Graph health")
    assert "- Health score: " in out
    assert "### Most central notes" in out
