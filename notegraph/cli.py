"""CLI entrypoint for notegraph."""

import logging
import sys
from pathlib import Path

import click

from . import __version__

VAULT_DIR_NAMES = ("notes", "content")


def _auto_detect_vault(start: Path) -> Path | None:
    """Find a ./notes or ./content vault folder by walking up from `start`."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        if p.is_dir() and p.name.lower() in VAULT_DIR_NAMES:
            return p
        for name in VAULT_DIR_NAMES:
            candidate = p / name
            if candidate.is_dir():
                return candidate
    return None


def _configure_logging(verbose: int) -> None:
    from rich.console import Console
    from rich.logging import RichHandler

    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose >= 2)],
        force=True,
    )


def _config(ctx: click.Context):
    """Load configuration once per invocation."""
    if "config" not in ctx.obj:
        from .config import ConfigError, load_config

        try:
            ctx.obj["config"] = load_config(ctx.obj.get("config_path"), ctx.obj["vault"])
        except ConfigError as e:
            raise click.ClickException(f"Invalid configuration: {e}") from e
    return ctx.obj["config"]


@click.group()
@click.version_option(__version__, prog_name="notegraph")
@click.option(
    "--vault",
    "-v",
    type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Path to the notes directory (defaults to auto-detected ./notes or ./content)",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML config file (defaults to <vault>/notegraph.yml when present)",
)
@click.option("--verbose", "-V", count=True, help="Log more (-V info, -VV debug)")
@click.pass_context
def cli(ctx: click.Context, vault: Path | None, config_path: Path | None, verbose: int) -> None:
    """notegraph - Knowledge graph for a folder of markdown notes.

    Build the link/tag graph, lay it out, and explore it.
    """
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    if vault is None:
        detected = _auto_detect_vault(Path.cwd())
        if detected is None:
            raise click.ClickException("Vault not found. Pass --vault /path/to/notes or run from inside it.")
        vault = detected

    if not vault.exists() or not vault.is_dir():
        raise click.BadParameter(f"Directory '{vault}' does not exist.", param_hint="--vault / -v")

    ctx.obj["vault"] = vault.resolve()
    ctx.obj["config_path"] = config_path


@cli.command()
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "md", "json", "dot", "csv", "svg", "html", "layout"]),
    default="md",
    show_default=True,
    help="Output format (svg/html/layout run the force layout first)",
)
@click.option("--out", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Write output to a file")
@click.option("--top", type=int, default=25, show_default=True, help="How many nodes to show in top lists")
@click.option("--local", "local", default=None, metavar="NOTE", help="Only notes near NOTE (local graph)")
@click.option("--depth", type=int, default=None, help="Hops from --local NOTE (default from config: 3)")
@click.option("--center", default=None, metavar="NOTE", help="Frame NOTE in the camera view of layout output")
@click.option("--3d", "three_d", is_flag=True, help="Lay out in three dimensions")
@click.option("--ticks", type=int, default=1000, show_default=True, help="Maximum simulation frames")
@click.pass_context
def graph(
    ctx: click.Context,
    fmt: str,
    out: Path | None,
    top: int,
    local: str | None,
    depth: int | None,
    center: str | None,
    three_d: bool,
    ticks: int,
) -> None:
    """Summarise, export or lay out the note graph."""
    from .commands.graph_cmd import run_graph

    exit_code = run_graph(
        ctx.obj["vault"],
        fmt=fmt,
        out=out,
        top=top,
        config=_config(ctx),
        local=local,
        depth=depth,
        center=center,
        dims=3 if three_d else None,
        ticks=ticks,
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("note")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "md", "json"]),
    default="rich",
    show_default=True,
    help="Output format",
)
@click.pass_context
def backlinks(ctx: click.Context, note: str, fmt: str) -> None:
    """List notes linking to NOTE, with context snippets."""
    from .commands.backlinks_cmd import run_backlinks

    exit_code = run_backlinks(ctx.obj["vault"], note, fmt=fmt, config=_config(ctx))
    sys.exit(exit_code)


@cli.command()
@click.argument("source")
@click.argument("target")
@click.option("--format", "fmt", type=click.Choice(["md", "json"]), default="md", show_default=True)
@click.pass_context
def path(ctx: click.Context, source: str, target: str, fmt: str) -> None:
    """Shortest connection between SOURCE and TARGET."""
    from .commands.graph_cmd import run_path

    exit_code = run_path(ctx.obj["vault"], source, target, fmt=fmt, config=_config(ctx))
    sys.exit(exit_code)


@cli.command()
@click.option("--format", "fmt", type=click.Choice(["rich", "md", "json"]), default="md", show_default=True)
@click.option("--min-size", type=int, default=3, show_default=True, help="Smallest cluster to report")
@click.option(
    "--algorithm",
    type=click.Choice(["components", "lpa"]),
    default="components",
    show_default=True,
    help="Connected components, or label-propagation communities",
)
@click.option("--out", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Write output to a file")
@click.pass_context
def clusters(ctx: click.Context, fmt: str, min_size: int, algorithm: str, out: Path | None) -> None:
    """Group notes into clusters."""
    from .commands.graph_cmd import run_clusters

    exit_code = run_clusters(
        ctx.obj["vault"],
        fmt=fmt,
        min_size=min_size,
        algorithm=algorithm,
        out=out,
        config=_config(ctx),
    )
    sys.exit(exit_code)


@cli.command()
@click.option("--format", "fmt", type=click.Choice(["rich", "md", "json"]), default="md", show_default=True)
@click.option("--top", type=int, default=10, show_default=True, help="How many central notes to list")
@click.pass_context
def health(ctx: click.Context, fmt: str, top: int) -> None:
    """Connectivity score, coverage gaps and central notes."""
    from .commands.graph_cmd import run_health

    exit_code = run_health(ctx.obj["vault"], fmt=fmt, top=top, config=_config(ctx))
    sys.exit(exit_code)


@cli.command()
@click.option(
    "--out",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help="File to keep up to date",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["html", "svg", "layout"]),
    default="html",
    show_default=True,
)
@click.option("--ticks", type=int, default=1000, show_default=True, help="Maximum simulation frames per rebuild")
@click.pass_context
def watch(ctx: click.Context, out: Path, fmt: str, ticks: int) -> None:
    """Rebuild the graph layout whenever notes change.

    Surviving notes keep their positions across rebuilds.
    """
    from .commands.watch_cmd import run_watch

    exit_code = run_watch(
        ctx.obj["vault"],
        out=out,
        fmt=fmt,
        config=_config(ctx),
        config_path=ctx.obj.get("config_path"),
        ticks=ticks,
    )
    sys.exit(exit_code)


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
