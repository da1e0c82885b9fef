"""Backlinks command - list notes that reference a note, with context."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from ..config import NotegraphConfig, load_config
from ..graph.backlinks import find_backlinks
from ..vault.loader import load_vault


def run_backlinks(
    vault_path: Path,
    note_ref: str,
    *,
    fmt: str = "rich",
    config: NotegraphConfig | None = None,
) -> int:
    console = Console(stderr=True)
    config = config or load_config(vault_path=vault_path)
    vault = load_vault(vault_path)

    note = vault.find(note_ref)
    if note is None:
        console.print(f"[red]Note not found:[/red] {note_ref}")
        return 1

    backlinks = find_backlinks(note, vault.notes, radius=config.graph.snippet_radius)

    if fmt == "json":
        data = {
            "note": note.id,
            "count": len(backlinks),
            "backlinks": [{"id": bl.note.id, "name": bl.note.stem, "snippets": bl.snippets} for bl in backlinks],
        }
        print(json.dumps(data, indent=2))
        return 0

    if fmt == "md":
        lines = [f"## Backlinks to {note.stem} ({len(backlinks)})", ""]
        for bl in backlinks:
            lines.append(f"### [[{bl.note.stem}]]")
            lines.append("")
            for snippet in bl.snippets:
                lines.append(f"> {snippet}")
                lines.append("")
        print("\n".join(lines).rstrip())
        return 0

    out = Console()
    out.print(f"[bold]Backlinks to {escape(note.stem)}[/bold] ({len(backlinks)})")
    if not backlinks:
        out.print("[dim]No backlinks found.[/dim]")
        return 0
    for bl in backlinks:
        out.print()
        out.print(f"[cyan]{escape(bl.note.id)}[/cyan]")
        for snippet in bl.snippets:
            out.print(f"  [dim]{escape(snippet)}[/dim]")
    return 0
