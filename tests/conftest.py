"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from notegraph.graph.builder import build_graph
from notegraph.models import Graph, Note
from notegraph.vault.loader import Vault, load_vault


def make_note(note_id: str, content: str = "", *, folder: str = "", tags: list[str] | None = None) -> Note:
    name = note_id.rsplit("/", 1)[-1]
    return Note(id=note_id, name=name, content=content, folder=folder, tags=list(tags or []))


@pytest.fixture
def small_notes() -> list[Note]:
    """Five notes: a link chain, a tag pair and an orphan."""
    return [
        make_note("alpha", "Start at [[beta]] and then [[gamma|the third]].", tags=["topic"]),
        make_note("beta", "Back to [[alpha]].", tags=["topic"]),
        make_note("gamma", "Leads to [[delta]]."),
        make_note("delta", "A leaf note.", tags=["leaf"]),
        make_note("epsilon", "Nobody links here."),
    ]


@pytest.fixture
def small_graph(small_notes: list[Note]) -> Graph:
    return build_graph(small_notes)


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


@pytest.fixture
def vault_path(tmp_path: Path) -> Path:
    """An on-disk vault with folders, frontmatter tags and a hidden directory."""
    vault = tmp_path / "notes"
    _write(
        vault / "Index.md",
        "\n".join(
            [
                "---",
                "tags: [hub]",
                "---",
                "",
                "# Index",
                "",
                "See [[Alpha]] and [[projects/Beta|the beta project]].",
                "Also [[Missing note]].",
                "",
            ]
        ),
    )
    _write(
        vault / "Alpha.md",
        "\n".join(
            [
                "---",
                "tags: research, hub",
                "---",
                "",
                "Alpha links back to [[Index]]. #idea",
                "",
            ]
        ),
    )
    _write(vault / "projects" / "Beta.md", "Beta builds on [[Alpha.md]].\n\n#idea #project\n")
    _write(vault / "projects" / "Gamma.md", "Gamma stands alone. #solo\n")
    _write(vault / ".trash" / "Old.md", "Deleted [[Index]].\n")
    return vault


@pytest.fixture
def vault(vault_path: Path) -> Vault:
    return load_vault(vault_path)
