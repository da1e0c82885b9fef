import logging
import math

import pytest

from notegraph.config import LayoutConfig
from notegraph.graph.builder import build_graph
from notegraph.layout.engine import LayoutEngine, seed_position
from notegraph.layout.state import EngineMode
from notegraph.models import Graph, GraphNode

from conftest import make_note


def _dist(a, b) -> float:
    return math.sqrt(sum((x - y) ** 2 for x, y in zip(a, b)))


def test_first_tick_seeds_nodes_on_a_circle(small_graph: Graph) -> None:
    engine = LayoutEngine(small_graph)
    assert engine.mode is EngineMode.UNINITIALIZED
    assert engine.snapshot.positions == {}

    engine.tick()

    assert engine.mode is EngineMode.RUNNING
    n = len(small_graph.nodes)
    for i, node_id in enumerate(small_graph.nodes):
        assert engine.position(node_id) == pytest.approx(tuple(seed_position(i, n, 2, 200.0)))
        assert _dist(engine.position(node_id), (0, 0)) == pytest.approx(200.0)


def test_3d_seeds_on_a_sphere(small_graph: Graph) -> None:
    engine = LayoutEngine(small_graph, dims=3)
    engine.tick()
    positions = list(engine.snapshot.positions.values())
    assert all(len(p) == 3 for p in positions)
    assert all(_dist(p, (0, 0, 0)) == pytest.approx(200.0) for p in positions)
    assert len(set(positions)) == len(positions)


def test_all_pinned_ticks_leave_positions_unchanged(small_graph: Graph) -> None:
    engine = LayoutEngine(small_graph)
    engine.run(5)
    for node_id in small_graph.nodes:
        assert engine.pin(node_id)
    before = dict(engine.snapshot.positions)

    engine.run(20)

    assert dict(engine.snapshot.positions) == before


def test_small_graph_settles_within_1000_ticks(small_graph: Graph) -> None:
    engine = LayoutEngine(small_graph)
    history = []
    for _ in range(1000):
        engine.tick()
        history.append(dict(engine.snapshot.positions))

    last = history[-50:]
    max_move = max(_dist(last[0][n], snap[n]) for snap in last for n in small_graph.nodes)
    assert max_move < 0.01
    assert engine.mode is EngineMode.SETTLED
    for p in engine.snapshot.positions.values():
        assert all(math.isfinite(c) for c in p)


def test_link_edges_rest_shorter_than_tag_only_pairs() -> None:
    notes = [
        make_note("a", "[[b]]"),
        make_note("b"),
        make_note("c", tags=["t"]),
        make_note("d", tags=["t"]),
    ]
    engine = LayoutEngine(build_graph(notes), LayoutConfig(gravity=0.0))
    engine.run(1000)
    pos = engine.snapshot.positions
    assert _dist(pos["a"], pos["b"]) < _dist(pos["c"], pos["d"])


def test_pin_contract(small_graph: Graph) -> None:
    engine = LayoutEngine(small_graph)
    engine.run(10)

    assert engine.pin("alpha")
    assert engine.move_pin("alpha", (10.0, 20.0))
    engine.tick()
    assert engine.position("alpha") == (10.0, 20.0)
    assert "alpha" in engine.snapshot.pinned

    engine.run(5)
    assert engine.position("alpha") == (10.0, 20.0)

    assert engine.release("alpha")
    engine.tick()
    assert engine.position("alpha") != (10.0, 20.0)
    assert "alpha" not in engine.snapshot.pinned


def test_pin_before_first_tick_holds_the_seed_position(small_graph: Graph) -> None:
    engine = LayoutEngine(small_graph)
    seed = tuple(seed_position(0, len(small_graph.nodes), 2, 200.0))

    assert engine.pin("alpha")
    engine.tick()
    assert engine.position("alpha") == pytest.approx(seed)
    engine.run(20)
    assert engine.position("alpha") == pytest.approx(seed)


def test_pin_wakes_settled_engine_and_release_lets_it_cool(small_graph: Graph) -> None:
    engine = LayoutEngine(small_graph)
    engine.run(1000)
    assert engine.mode is EngineMode.SETTLED

    engine.pin("beta")
    assert engine.mode is EngineMode.RUNNING
    assert engine.alpha_target == pytest.approx(0.3)
    engine.run(50)
    assert engine.mode is EngineMode.RUNNING

    engine.release("beta")
    assert engine.alpha_target == 0.0
    engine.run(1000)
    assert engine.mode is EngineMode.SETTLED


def test_pin_operations_on_unknown_nodes_are_noops(small_graph: Graph) -> None:
    engine = LayoutEngine(small_graph)
    engine.tick()
    assert not engine.pin("nope")
    assert not engine.move_pin("nope", (0.0, 0.0))
    assert not engine.release("nope")
    assert not engine.move_pin("alpha", (0.0, 0.0))
    assert not engine.pin("alpha", (1.0, 2.0, 3.0))


def test_reheat_restarts_from_current_positions(small_graph: Graph) -> None:
    engine = LayoutEngine(small_graph)
    engine.run(1000)
    settled = dict(engine.snapshot.positions)

    assert engine.reheat()
    assert engine.mode is EngineMode.RUNNING
    assert engine.alpha == 1.0
    assert dict(engine.snapshot.positions) == settled


def test_settled_engine_stops_moving(small_graph: Graph) -> None:
    engine = LayoutEngine(small_graph)
    engine.run(1000)
    before = engine.snapshot
    engine.run(10)
    assert engine.snapshot.positions == before.positions
    assert engine.snapshot.tick == before.tick + 10


def test_dispose_stops_all_mutation(small_graph: Graph) -> None:
    engine = LayoutEngine(small_graph)
    engine.run(3)
    before = engine.snapshot

    engine.dispose()

    assert engine.mode is EngineMode.DISPOSED
    assert engine.tick() is False
    assert engine.pin("alpha") is False
    assert engine.reheat() is False
    assert engine.snapshot.positions == before.positions
    assert engine.snapshot.tick == before.tick
    engine.dispose()


def test_subscribers_receive_each_snapshot(small_graph: Graph) -> None:
    engine = LayoutEngine(small_graph)
    seen = []
    unsubscribe = engine.subscribe(seen.append)
    engine.run(3)
    unsubscribe()
    engine.run(2)

    assert [s.tick for s in seen] == [1, 2, 3]
    with pytest.raises(TypeError):
        seen[0].positions["alpha"] = (0.0, 0.0)


def test_snapshot_is_not_mutated_by_later_ticks(small_graph: Graph) -> None:
    engine = LayoutEngine(small_graph)
    engine.run(2)
    held = engine.snapshot
    held_alpha = held.positions["alpha"]
    engine.run(5)
    assert held.positions["alpha"] == held_alpha
    assert engine.snapshot is not held


class _ExplodingRepulsion:
    name = "exploding"

    def apply(self, positions, forces, strength, min_distance) -> None:
        forces[0][0] = float("nan")


def test_non_finite_position_is_restored_and_logged(small_graph: Graph, caplog) -> None:
    engine = LayoutEngine(small_graph, repulsion=_ExplodingRepulsion())
    engine.tick()
    first = next(iter(small_graph.nodes))
    seeded = engine.position(first)

    with caplog.at_level(logging.WARNING, logger="notegraph.layout.engine"):
        engine.tick()

    assert engine.position(first) == pytest.approx(seeded)
    for p in engine.snapshot.positions.values():
        assert all(math.isfinite(c) for c in p)
    assert any("Non-finite" in r.getMessage() for r in caplog.records)


def test_coincident_nodes_are_separated() -> None:
    g = Graph()
    for node_id in ("a", "b"):
        g.add_node(GraphNode(id=node_id, name=node_id, size=5, color="#fff"))
    engine = LayoutEngine(g, initial_positions={"a": (0.0, 0.0), "b": (0.0, 0.0)})
    engine.run(2)
    pa, pb = engine.position("a"), engine.position("b")
    assert all(math.isfinite(c) for c in pa + pb)
    assert pa != pb


def test_handoff_preserves_surviving_positions(small_notes) -> None:
    engine = LayoutEngine(build_graph(small_notes))
    engine.run(1000)
    old = dict(engine.snapshot.positions)

    grown = build_graph(small_notes + [make_note("zeta", "[[delta]]")])
    successor = engine.handoff(grown)

    assert engine.disposed
    assert successor.alpha == pytest.approx(0.3)
    successor.tick()
    for node_id, pos in old.items():
        assert successor.position(node_id) == pytest.approx(pos)
    assert _dist(successor.position("zeta"), old["delta"]) == pytest.approx(60.0)


def test_handoff_drops_removed_nodes(small_notes) -> None:
    engine = LayoutEngine(build_graph(small_notes))
    engine.run(5)
    successor = engine.handoff(build_graph(small_notes[1:]))
    successor.tick()
    assert "alpha" not in successor.snapshot.positions
    assert len(successor.snapshot.positions) == 4


def test_handoff_applies_new_settings(small_graph: Graph) -> None:
    engine = LayoutEngine(small_graph)
    engine.run(10)
    old = dict(engine.snapshot.positions)

    successor = engine.handoff(small_graph, LayoutConfig(link_distance=10.0))
    assert successor.config.link_distance == 10.0
    successor.tick()
    assert successor.position("alpha") == pytest.approx(old["alpha"])

    flat = successor.handoff(small_graph, LayoutConfig(dims=3))
    assert flat.dims == 3
    assert flat.alpha == 1.0
    flat.tick()
    assert all(len(pos) == 3 for pos in flat.snapshot.positions.values())


def test_pin_before_first_tick_of_a_handoff_keeps_the_carried_position(small_graph: Graph) -> None:
    engine = LayoutEngine(small_graph)
    engine.run(10)
    old = engine.position("beta")

    successor = engine.handoff(small_graph)
    assert successor.pin("beta")
    successor.run(5)
    assert successor.position("beta") == pytest.approx(old)


def test_empty_graph_settles() -> None:
    engine = LayoutEngine(Graph())
    engine.run(400)
    assert engine.mode is EngineMode.SETTLED
    assert engine.snapshot.positions == {}
