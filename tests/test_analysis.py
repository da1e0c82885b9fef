import pytest

from notegraph.graph.analysis import (
    connected_clusters,
    coverage_gaps,
    graph_density,
    health_metrics,
    label_propagation,
    pagerank,
    shortest_path,
)
from notegraph.graph.builder import GraphOptions, build_graph
from notegraph.models import Graph

from conftest import make_note


def test_shortest_path_is_undirected(small_graph: Graph) -> None:
    assert shortest_path(small_graph, "delta", "beta") == ["delta", "gamma", "alpha", "beta"]
    assert shortest_path(small_graph, "alpha", "alpha") == ["alpha"]
    assert shortest_path(small_graph, "alpha", "epsilon") is None
    assert shortest_path(small_graph, "alpha", "missing") is None


def test_connected_clusters(small_graph: Graph) -> None:
    clusters = connected_clusters(small_graph, min_size=3)
    assert len(clusters) == 1
    cluster = clusters[0]
    assert cluster.nodes == ("alpha", "beta", "delta", "gamma")
    # alpha-beta, alpha-gamma, gamma-delta
    assert cluster.density == pytest.approx(0.5)
    assert cluster.label == "topic"

    assert connected_clusters(small_graph, min_size=5) == []


def test_cluster_label_falls_back_to_group_then_number() -> None:
    notes = [make_note(f"p/{n}", f"[[{m}]]", folder="p") for n, m in (("a", "b"), ("b", "c"), ("c", "a"))]
    (cluster,) = connected_clusters(build_graph(notes))
    assert cluster.label == "p"

    notes = [make_note(n, f"[[{m}]]") for n, m in (("a", "b"), ("b", "c"), ("c", "a"))]
    (cluster,) = connected_clusters(build_graph(notes))
    assert cluster.label == "Cluster 1"


def test_label_propagation_separates_two_cliques() -> None:
    left = [make_note(n, " ".join(f"[[{m}]]" for m in "abc" if m != n)) for n in "abc"]
    right = [make_note(n, " ".join(f"[[{m}]]" for m in "xyz" if m != n)) for n in "xyz"]
    communities = label_propagation(build_graph(left + right))

    assert communities["a"] == communities["b"] == communities["c"]
    assert communities["x"] == communities["y"] == communities["z"]
    assert communities["a"] != communities["x"]
    assert set(communities.values()) == {"c1", "c2"}


def test_pagerank_sums_to_one_and_favours_linked_notes() -> None:
    notes = [make_note("hub"), make_note("a", "[[hub]]"), make_note("b", "[[hub]]"), make_note("c", "[[hub]] [[a]]")]
    ranks = pagerank(build_graph(notes))
    assert sum(ranks.values()) == pytest.approx(1.0)
    assert max(ranks, key=ranks.get) == "hub"


def test_density() -> None:
    notes = [make_note("a", "[[b]]"), make_note("b", "[[a]]"), make_note("c")]
    assert graph_density(build_graph(notes)) == pytest.approx(1 / 3)
    assert graph_density(Graph()) == 0.0


def test_coverage_gaps_and_health(small_notes) -> None:
    graph = build_graph(small_notes)
    gaps = coverage_gaps(graph)
    assert [(g.type, g.identifier) for g in gaps] == [("isolated-tag", "leaf")]

    metrics = health_metrics(graph)
    assert metrics.orphan_count == 1
    assert metrics.connectivity == 80
    assert metrics.cluster_count == 1
    assert 0 <= metrics.health_score <= 100


def test_isolated_group_gap() -> None:
    notes = [
        make_note("inbox/a", "[[b]]", folder="inbox"),
        make_note("inbox/b", folder="inbox"),
        make_note("c"),
    ]
    gaps = coverage_gaps(build_graph(notes, GraphOptions(include_tags=False)))
    assert [(g.type, g.identifier) for g in gaps] == [("isolated-group", "inbox")]
