"""Watch command - rebuild and re-lay out the graph as notes change."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from rich.console import Console

from ..config import ConfigError, NotegraphConfig, load_config
from ..graph.builder import GraphOptions, build_graph
from ..layout.engine import LayoutEngine
from ..models import Graph
from ..render.export import layout_payload
from ..render.svg import render_html, render_svg
from ..vault.loader import load_vault
from ..watcher import run_watch_loop
from .layout_run import LayoutRun, simulate


class GraphRefresher:
    """Rebuilds the graph on change and hands the layout off when its topology changes."""

    def __init__(
        self,
        vault_path: Path,
        out: Path,
        *,
        fmt: str = "html",
        config: NotegraphConfig | None = None,
        config_path: Path | None = None,
        ticks: int = 1000,
        console: Console | None = None,
    ):
        self.vault_path = vault_path
        self.out = out
        self.fmt = fmt
        self.config_path = config_path
        self.config = config or load_config(config_path, vault_path)
        self.ticks = ticks
        self.console = console or Console(stderr=True)

        self.graph: Graph | None = None
        self.engine: LayoutEngine | None = None
        self.run: LayoutRun | None = None
        self.rebuilds = 0

    def refresh(self, changed: list[Path] | None = None) -> bool:
        """Rebuild; returns True when the layout was recomputed and written.

        An unchanged topology under unchanged settings keeps the running layout;
        the output is still rewritten when node sizes, colours or groups moved.
        """
        config_changed = False
        if changed and any(p.name == "notegraph.yml" for p in changed):
            try:
                config = load_config(self.config_path, self.vault_path)
            except ConfigError as e:
                self.console.print(f"[red]Config error:[/red] {e}")
            else:
                config_changed = config != self.config
                self.config = config

        vault = load_vault(self.vault_path)
        graph = build_graph(vault.notes, GraphOptions.from_config(self.config.graph))

        if self.run is not None and not config_changed and graph.signature() == self.graph.signature():
            if graph.nodes != self.graph.nodes:
                self._write(graph, self.run)
            self.graph = graph
            return False

        run = simulate(graph, self.config, max_frames=self.ticks, previous=self.engine)
        self.graph = graph
        self.engine = run.engine
        self.run = run
        self.rebuilds += 1
        self._write(graph, run)

        stats = graph.stats()
        timestamp = datetime.now().strftime("%H:%M:%S")
        self.console.print(
            f"[dim]{timestamp}[/dim] {stats.node_count} notes, {stats.edge_count} edges "
            f"({run.frames} frames, {run.snapshot.mode.value}) -> {self.out}"
        )
        return True

    def _write(self, graph: Graph, run: LayoutRun) -> None:
        title = "Note graph"
        if self.fmt == "layout":
            text = json.dumps(layout_payload(graph, run.snapshot, view=run.view), indent=2) + "\n"
        else:
            text = render_svg(graph, run.snapshot, title=title)
            if self.fmt == "html":
                text = render_html(text, title=title, camera=self.config.camera)
        self.out.write_text(text, encoding="utf-8")

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
        self.run = None


def run_watch(
    vault_path: Path,
    *,
    out: Path,
    fmt: str = "html",
    config: NotegraphConfig | None = None,
    config_path: Path | None = None,
    ticks: int = 1000,
) -> int:
    """
    Watch the vault and keep `out` up to date.

    This is a blocking command that runs until interrupted (Ctrl+C).
    """
    console = Console(stderr=True)
    refresher = GraphRefresher(
        vault_path,
        out,
        fmt=fmt,
        config=config,
        config_path=config_path,
        ticks=ticks,
        console=console,
    )

    console.print(f"[bold]Watching[/bold] {vault_path}")
    console.print(f"  Output: {out} ({fmt})")
    console.print()
    console.print("[dim]Press Ctrl+C to stop watching[/dim]")
    console.print()

    refresher.refresh()
    try:
        run_watch_loop(vault_path, on_change=refresher.refresh)
    except KeyboardInterrupt:
        pass
    finally:
        refresher.close()

    console.print()
    console.print(f"[bold]Stopped.[/bold] Rebuilt the layout {refresher.rebuilds} time(s).")
    return 0
