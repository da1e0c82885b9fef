"""Backlinks: which notes reference a given note, and where."""

from __future__ import annotations

from typing import Iterable

from ..models import Backlink, Note
from ..vault.parser import context_snippet
from .resolver import NoteIndex, unique_notes


def backlink_map(notes: Iterable[Note], *, radius: int = 50) -> dict[str, list[Backlink]]:
    """Backlinks for every note, keyed by note id.

    Uses the same NoteIndex resolution as the graph builder, so a link edge
    A -> B exists exactly when A appears in the backlinks of B.
    """
    ordered = unique_notes(notes)
    index = NoteIndex(ordered)
    result: dict[str, list[Backlink]] = {note.id: [] for note in ordered}

    for source in ordered:
        by_target: dict[str, Backlink] = {}
        for ref, target in index.links_from(source):
            bl = by_target.get(target.id)
            if bl is None:
                bl = by_target[target.id] = Backlink(note=source)
            bl.snippets.append(context_snippet(source.content, ref.start, ref.end, radius))
        for target_id, bl in by_target.items():
            result.setdefault(target_id, []).append(bl)

    return result


def find_backlinks(note: Note, notes: Iterable[Note], *, radius: int = 50) -> list[Backlink]:
    """Notes (other than `note`) whose content links to `note`, ordered by id."""
    return backlink_map(notes, radius=radius).get(note.id, [])
