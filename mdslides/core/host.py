"""
Narrow interfaces to the note-taking host (vault, workspace, notices and
settings storage) plus a filesystem-backed implementation used by the CLI.
"""

import json
import logging
import threading
import webbrowser
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

DATA_DIR_NAME = ".mdslides"
DATA_FILE_NAME = "data.json"
FRONTMATTER_DELIMITER = "---"


@dataclass(frozen=True)
class VaultFile:
    """A file addressed by its vault-relative POSIX path."""
    path: str
    basename: str
    extension: str

    @classmethod
    def from_path(cls, path: str) -> "VaultFile":
        pure = PurePosixPath(path)
        return cls(path=str(pure), basename=pure.stem, extension=pure.suffix.lstrip('.'))


@dataclass(frozen=True)
class FrontMatter:
    """Parsed front-matter and the 0-based line index of its closing delimiter."""
    data: Optional[Dict[str, Any]]
    end_line: Optional[int] = None


class Vault(ABC):
    """File access the host exposes to plugins. All paths are vault-relative."""

    @property
    @abstractmethod
    def base_path(self) -> Path:
        """Absolute on-disk location of the vault."""

    @abstractmethod
    def read(self, file: VaultFile) -> str:
        pass

    @abstractmethod
    def get_file(self, path: str) -> Optional[VaultFile]:
        """Return the file at `path`, or None when no such file exists."""

    @abstractmethod
    def get_frontmatter(self, file: VaultFile) -> Optional[FrontMatter]:
        pass

    @abstractmethod
    def create(self, path: str, text: str) -> VaultFile:
        pass

    @abstractmethod
    def modify(self, file: VaultFile, text: str) -> None:
        pass

    @abstractmethod
    def create_folder(self, path: str) -> None:
        """Create a folder. Raises FileExistsError when it is already there."""


class FilesystemVault(Vault):
    """A vault that is a plain directory on disk."""

    def __init__(self, root: Path):
        self._root = Path(root).resolve()

    @property
    def base_path(self) -> Path:
        return self._root

    def _abs(self, path: str) -> Path:
        return self._root / PurePosixPath(path)

    def relative(self, absolute: Path) -> Optional[str]:
        """Vault-relative POSIX path for an absolute path, None if outside the vault."""
        try:
            return Path(absolute).resolve().relative_to(self._root).as_posix()
        except ValueError:
            return None

    def read(self, file: VaultFile) -> str:
        return self._abs(file.path).read_text(encoding='utf-8')

    def get_file(self, path: str) -> Optional[VaultFile]:
        if self._abs(path).is_file():
            return VaultFile.from_path(path)
        return None

    def get_frontmatter(self, file: VaultFile) -> Optional[FrontMatter]:
        try:
            text = self.read(file)
        except (OSError, ValueError) as e:
            # ValueError covers notes that are not valid UTF-8
            logger.warning(f"Vault: cannot read {file.path} for front-matter: {e}")
            return None
        return parse_frontmatter(text)

    def create(self, path: str, text: str) -> VaultFile:
        target = self._abs(path)
        if target.exists():
            raise FileExistsError(f"File already exists: {path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding='utf-8')
        logger.debug(f"Vault: created {path} ({len(text)} chars)")
        return VaultFile.from_path(path)

    def modify(self, file: VaultFile, text: str) -> None:
        self._abs(file.path).write_text(text, encoding='utf-8')
        logger.debug(f"Vault: modified {file.path} ({len(text)} chars)")

    def create_folder(self, path: str) -> None:
        self._abs(path).mkdir(parents=True)
        logger.debug(f"Vault: created folder {path}")


def _is_delimiter(line: str) -> bool:
    # Only a fence at column 0 counts; an indented `---` belongs to a block scalar
    return line.rstrip() == FRONTMATTER_DELIMITER


def parse_frontmatter(text: str) -> Optional[FrontMatter]:
    """
    Parse a leading `---` delimited YAML block.
    Returns None when the document has no front-matter or it is not valid YAML.
    """
    lines = text.lstrip('﻿').splitlines()
    if not lines or not _is_delimiter(lines[0]):
        return None

    for index in range(1, len(lines)):
        if _is_delimiter(lines[index]):
            try:
                data = yaml.safe_load('\n'.join(lines[1:index]))
            except yaml.YAMLError as e:
                logger.warning(f"Invalid YAML front-matter: {e}")
                return None
            if data is not None and not isinstance(data, dict):
                # A scalar or list block is not key/value metadata
                data = None
            return FrontMatter(data=data, end_line=index)
    return None


class Workspace:
    """
    Active-file tracking, editor-change subscriptions and the two viewport
    capabilities (in-app pane and external browser).
    """

    def __init__(self, opener: Callable[..., Any] = webbrowser.open):
        self._active_file: Optional[VaultFile] = None
        self._listeners: List[Callable[[VaultFile], None]] = []
        self._lock = threading.Lock()
        self._opener = opener
        self.viewport_url: Optional[str] = None

    def get_active_file(self) -> Optional[VaultFile]:
        return self._active_file

    def set_active_file(self, file: Optional[VaultFile]) -> None:
        self._active_file = file

    def on_editor_change(self, callback: Callable[[VaultFile], None]) -> Callable[[], None]:
        """Subscribe to editor changes. Returns a function that unsubscribes."""
        with self._lock:
            self._listeners.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)
        return unsubscribe

    def notify_editor_change(self, file: VaultFile) -> None:
        self._active_file = file
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(file)
            except Exception as e:
                logger.error(f"Editor-change listener failed for {file.path}: {e}", exc_info=True)

    def close_viewports(self) -> None:
        self.viewport_url = None

    def open_viewport(self, url: str) -> None:
        """Show `url` in the host's preview pane (a browser tab for the local host)."""
        self.viewport_url = url
        self._opener(url, new=0)

    def open_external(self, url: str) -> None:
        self._opener(url, new=2)


class Host(ABC):
    """Everything a plugin may call on the host application."""

    @property
    @abstractmethod
    def vault(self) -> Vault:
        pass

    @property
    @abstractmethod
    def workspace(self) -> Workspace:
        pass

    @abstractmethod
    def notify(self, message: str) -> None:
        """Show a short user-visible notice."""

    @abstractmethod
    def load_data(self) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def save_data(self, data: Dict[str, Any]) -> None:
        pass


class LocalHost(Host):
    """
    Stand-alone host over a vault directory. Plugin data lives in
    `{vault}/.mdslides/data.json`; notices are printed to the console.
    """

    def __init__(self, vault_root: Path, workspace: Optional[Workspace] = None):
        self._vault = FilesystemVault(vault_root)
        self._workspace = workspace or Workspace()
        self.data_dir = self._vault.base_path / DATA_DIR_NAME
        self.notices: List[str] = []

    @property
    def vault(self) -> FilesystemVault:
        return self._vault

    @property
    def workspace(self) -> Workspace:
        return self._workspace

    @property
    def data_file(self) -> Path:
        return self.data_dir / DATA_FILE_NAME

    def notify(self, message: str) -> None:
        self.notices.append(message)
        logger.info(f"Notice: {message}")
        print(f"[mdslides] {message}")

    def load_data(self) -> Optional[Dict[str, Any]]:
        if not self.data_file.exists():
            return None
        try:
            with open(self.data_file, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load plugin data: {e}")
            return None

    def save_data(self, data: Dict[str, Any]) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with open(self.data_file, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        logger.info(f"Plugin data saved to {self.data_file}")
