"""Link resolution shared by edge construction and backlinks."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from ..models import Note
from ..vault.parser import LinkRef, iter_link_refs, strip_extension

logger = logging.getLogger(__name__)


def unique_notes(notes: Iterable[Note]) -> list[Note]:
    """Notes ordered by id; the first note seen wins a repeated id."""
    by_id: dict[str, Note] = {}
    for note in notes:
        if note.id in by_id:
            logger.warning("Duplicate note id %s ignored", note.id)
            continue
        by_id[note.id] = note
    return [by_id[k] for k in sorted(by_id)]


class NoteIndex:
    """Resolves wiki-link targets to notes.

    A target containing "/" is matched against note ids ("folder/Name");
    anything else against note stems. Matching is case-sensitive. When several
    notes share a stem the one with the smallest id wins.
    """

    def __init__(self, notes: Iterable[Note]):
        self._by_id: dict[str, Note] = {}
        self._by_stem: dict[str, Note] = {}
        for note in sorted(notes, key=lambda n: n.id):
            self._by_id.setdefault(note.id, note)
            self._by_stem.setdefault(note.stem, note)

    def resolve(self, target: str) -> Note | None:
        target = strip_extension(target.strip())
        if not target:
            return None
        if "/" in target:
            return self._by_id.get(target.strip("/"))
        return self._by_stem.get(target)

    def links_from(self, note: Note) -> Iterator[tuple[LinkRef, Note]]:
        """Resolved references in `note`, self references excluded."""
        for ref in iter_link_refs(note.content):
            target = self.resolve(ref.target)
            if target is None or target.id == note.id:
                continue
            yield ref, target
