from notegraph.graph.backlinks import backlink_map, find_backlinks
from notegraph.graph.builder import GraphOptions, build_graph
from notegraph.vault.loader import Vault

from conftest import make_note


def test_backlinks_and_link_edges_are_mutually_derivable(small_notes) -> None:
    graph = build_graph(small_notes, GraphOptions(include_tags=False))
    edges = {(e.source, e.target) for e in graph.edges}

    backlinks = backlink_map(small_notes)
    derived = {(bl.note.id, target) for target, bls in backlinks.items() for bl in bls}

    assert derived == edges


def test_backlinks_on_disk_vault_match_edges(vault: Vault) -> None:
    graph = build_graph(vault.notes)
    link_edges = {(e.source, e.target) for e in graph.edges if e.type == "link"}
    for note in vault.notes:
        sources = {bl.note.id for bl in find_backlinks(note, vault.notes)}
        assert sources == {s for s, t in link_edges if t == note.id}


def test_backlinks_collect_every_snippet_in_id_order() -> None:
    notes = [
        make_note("target"),
        make_note("z-source", "first [[target]] and later [[target|again]]"),
        make_note("a-source", "one mention of [[target]]"),
    ]
    result = find_backlinks(notes[0], notes)

    assert [bl.note.id for bl in result] == ["a-source", "z-source"]
    assert len(result[1].snippets) == 2
    assert "[[target|again]]" in result[1].snippets[1]


def test_self_reference_is_not_a_backlink() -> None:
    note = make_note("solo", "I mention [[solo]] myself")
    assert find_backlinks(note, [note]) == []


def test_snippet_radius() -> None:
    long_text = "x" * 80 + "[[t]]" + "y" * 80
    notes = [make_note("t"), make_note("s", long_text)]
    (bl,) = find_backlinks(notes[0], notes, radius=5)
    assert bl.snippets == ["...xxxxx[[t]]yyyyy..."]


def test_repeated_note_id_keeps_the_first_note() -> None:
    notes = [
        make_note("a", "Links [[b]]."),
        make_note("b"),
        make_note("a", "A second copy links [[c]]."),
        make_note("c"),
    ]
    graph = build_graph(notes, GraphOptions(include_tags=False))
    backlinks = backlink_map(notes)

    derived = {(bl.note.id, target) for target, bls in backlinks.items() for bl in bls}
    assert derived == {(e.source, e.target) for e in graph.edges} == {("a", "b")}
    assert backlinks["c"] == []
