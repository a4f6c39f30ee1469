"""
Event-driven vault monitoring for the stand-alone host.
Every saved Markdown note becomes the active file and emits an editor-change
event, which is what the note-taking app does while the user types.
"""

import logging
from pathlib import Path
from typing import Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from mdslides.core.host import DATA_DIR_NAME, FilesystemVault, VaultFile, Workspace

logger = logging.getLogger(__name__)

WATCHED_SUFFIX = ".md"


class VaultChangeHandler(FileSystemEventHandler):
    """Maps file system events on notes to editor-change notifications."""

    def __init__(self, vault: FilesystemVault, workspace: Workspace):
        super().__init__()
        self.vault = vault
        self.workspace = workspace

    def on_modified(self, event):
        if not event.is_directory:
            self._handle(event.src_path)

    def on_created(self, event):
        if not event.is_directory:
            self._handle(event.src_path)

    def on_moved(self, event):
        # Editors that save atomically rename a temp file over the note
        if not event.is_directory:
            self._handle(event.dest_path)

    def _handle(self, src_path) -> None:
        path = Path(src_path)
        if path.suffix.lower() != WATCHED_SUFFIX:
            return
        relative = self.vault.relative(path)
        if relative is None or relative.split('/')[0] == DATA_DIR_NAME:
            return
        logger.debug(f"Watcher: change in {relative}")
        self.workspace.notify_editor_change(VaultFile.from_path(relative))


class VaultWatcher:
    """Runs a watchdog observer over the whole vault."""

    def __init__(self, vault: FilesystemVault, workspace: Workspace):
        self.handler = VaultChangeHandler(vault, workspace)
        self.vault = vault
        self._observer: Optional[Observer] = None

    def start(self) -> None:
        if self._observer is not None:
            return
        observer = Observer()
        observer.schedule(self.handler, str(self.vault.base_path), recursive=True)
        observer.daemon = True
        observer.start()
        self._observer = observer
        logger.info(f"Watching vault for changes: {self.vault.base_path}")

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None
        logger.info("Vault watcher stopped.")
