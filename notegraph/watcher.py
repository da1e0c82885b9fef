"""
File system watcher that triggers graph rebuilds.

This module provides:
- Watchdog-based vault monitoring
- Debounced change batches (editor save cycles collapse into one rebuild)
- Filtering to notes and the vault config file
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Callable

from watchdog.events import (
    FileSystemEvent,
    FileSystemEventHandler,
    FileMovedEvent,
)
from watchdog.observers import Observer

from .config import CONFIG_FILENAME

logger = logging.getLogger(__name__)


class VaultChangeHandler(FileSystemEventHandler):
    """
    Collects note changes and reports them in debounced batches.

    Key behaviors:
    - Each path is reported once per batch, after it has been quiet for
      DEBOUNCE_SECONDS
    - Hidden files and directories are ignored
    - Only .md files and notegraph.yml are relevant
    """

    RELEVANT_EXTENSIONS = {".md"}
    DEBOUNCE_SECONDS = 1.0

    def __init__(
        self,
        vault_path: Path,
        on_change: Callable[[list[Path]], None] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__()
        self.vault_path = vault_path
        self.on_change = on_change
        self.clock = clock

        # path -> time of the most recent event
        self.pending: dict[str, float] = {}
        self._lock = threading.Lock()

    def _is_relevant(self, path: str) -> bool:
        p = Path(path)
        try:
            rel = p.relative_to(self.vault_path)
        except ValueError:
            rel = p

        # Skip hidden files and directories
        if any(part.startswith(".") for part in rel.parts):
            return False

        return p.suffix.lower() in self.RELEVANT_EXTENSIONS or p.name == CONFIG_FILENAME

    def _touch(self, path: str) -> None:
        if self._is_relevant(path):
            with self._lock:
                self.pending[path] = self.clock()

    def flush_pending(self) -> list[Path]:
        """Report paths that have passed the debounce window."""
        now = self.clock()
        with self._lock:
            ready = sorted(p for p, ts in self.pending.items() if now - ts >= self.DEBOUNCE_SECONDS)
            for p in ready:
                del self.pending[p]

        paths = [Path(p) for p in ready]
        if paths:
            logger.debug("flushing %d changed path(s)", len(paths))
            if self.on_change:
                self.on_change(paths)
        return paths

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._touch(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._touch(event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._touch(event.src_path)

    def on_moved(self, event: FileMovedEvent) -> None:
        if event.is_directory:
            return
        self._touch(event.src_path)
        self._touch(event.dest_path)


def watch_vault(
    vault_path: Path,
    on_change: Callable[[list[Path]], None] | None = None,
    recursive: bool = True,
) -> tuple[Observer, VaultChangeHandler]:
    """
    Start watching a vault for note changes.

    Returns:
        Tuple of (observer, handler) - caller should call observer.stop() to stop watching
    """
    handler = VaultChangeHandler(vault_path=vault_path, on_change=on_change)

    observer = Observer()
    observer.schedule(handler, str(vault_path), recursive=recursive)
    observer.start()

    return observer, handler


def run_watch_loop(
    vault_path: Path,
    on_change: Callable[[list[Path]], None] | None = None,
) -> None:
    """
    Run the watch loop until interrupted.

    This is a blocking function that flushes pending changes periodically.
    """
    observer, handler = watch_vault(vault_path=vault_path, on_change=on_change)

    try:
        while True:
            time.sleep(0.5)
            handler.flush_pending()
    except KeyboardInterrupt:
        observer.stop()

    observer.join()
