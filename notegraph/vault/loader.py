"""Vault loading: markdown files on disk to Note objects."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import frontmatter

from ..models import Note
from .parser import extract_tags

logger = logging.getLogger(__name__)


@dataclass
class Vault:
    """Container for all loaded notes, sorted by id."""

    path: Path
    notes: list[Note] = field(default_factory=list)

    # Lookup table built after loading
    _by_id: dict[str, Note] = field(default_factory=dict)

    def __post_init__(self):
        self._build_lookups()

    def _build_lookups(self):
        self.notes.sort(key=lambda n: n.id)
        self._by_id = {}
        for note in self.notes:
            self._by_id.setdefault(note.id, note)

    def get(self, note_id: str) -> Note | None:
        return self._by_id.get(note_id)

    def find(self, ref: str) -> Note | None:
        """Resolve an id or a link target the way wiki-links are resolved."""
        from ..graph.resolver import NoteIndex

        if ref in self._by_id:
            return self._by_id[ref]
        return NoteIndex(self.notes).resolve(ref)


def _frontmatter_tags(fm: dict) -> list[str]:
    raw = fm.get("tags", [])
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = raw.replace(",", " ").split()
    if not isinstance(raw, (list, tuple)):
        return []
    tags = []
    for entry in raw:
        tag = str(entry).strip().lstrip("#")
        if tag:
            tags.append(tag)
    return tags


def _merge_tags(*groups: list[str]) -> list[str]:
    seen = set()
    result = []
    for group in groups:
        for tag in group:
            if tag not in seen:
                seen.add(tag)
                result.append(tag)
    return result


def note_id_for(path: Path, vault_path: Path) -> str:
    """Posix path relative to the vault, without the .md suffix."""
    rel = path.relative_to(vault_path)
    return rel.with_suffix("").as_posix()


def load_note(path: Path, vault_path: Path) -> Note:
    """Load a single markdown file and parse its frontmatter."""
    post = frontmatter.load(path)

    content = post.content
    fm = post.metadata

    rel_parent = path.parent.relative_to(vault_path).as_posix()
    folder = "" if rel_parent == "." else rel_parent

    tags = _merge_tags(_frontmatter_tags(fm), extract_tags(content))

    return Note(
        id=note_id_for(path, vault_path),
        name=path.name,
        content=content,
        folder=folder,
        tags=tags,
        path=path,
        frontmatter=dict(fm),
    )


def load_vault(vault_path: Path) -> Vault:
    """Load all markdown files from the vault.

    Args:
        vault_path: Path to the vault directory

    Returns:
        Vault with every parseable note, sorted by id
    """
    vault = Vault(path=vault_path)
    seen: set[str] = set()

    for md_file in sorted(vault_path.rglob("*.md")):
        # Skip hidden files and directories
        if any(part.startswith(".") for part in md_file.relative_to(vault_path).parts):
            continue

        try:
            note = load_note(md_file, vault_path)
        except Exception as e:
            # Log error but continue loading
            logger.warning("Failed to load %s: %s", md_file, e)
            continue

        if note.id in seen:
            logger.warning("Duplicate note id %s (%s); keeping the first", note.id, md_file)
            continue
        seen.add(note.id)
        vault.notes.append(note)

    # Build lookups after loading
    vault._build_lookups()

    return vault
