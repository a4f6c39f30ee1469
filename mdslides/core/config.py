"""
Settings and server configuration for the Markdeep slides plugin.
"""

import logging
from dataclasses import dataclass, asdict, replace
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Constants
SERVER_HOST = "127.0.0.1"
DEFAULT_PORT = 8765
DEFAULT_SLIDES_PATH = "slides"
DEFAULT_DEBOUNCE_MS = 3000

# camelCase keys found in older data.json files
LEGACY_KEYS = {
    'slidesPath': 'slides_path',
    'debounceMs': 'debounce_ms',
    'debouncePerFile': 'debounce_per_file',
}


@dataclass(frozen=True)
class ServerConfig:
    """
    Snapshot of what the local server needs: the port to bind and the
    absolute directory it serves. Instances are immutable; the server swaps
    the whole object when settings change.
    """
    port: int
    base_directory: Path

    def with_base_directory(self, path) -> "ServerConfig":
        return replace(self, base_directory=Path(path))

    def with_port(self, port: int) -> "ServerConfig":
        return replace(self, port=int(port))


@dataclass
class SlidesSettings:
    """User-editable plugin settings, persisted by the host."""

    slides_path: str = DEFAULT_SLIDES_PATH
    port: int = DEFAULT_PORT
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    debounce_per_file: bool = False

    @classmethod
    def from_mapping(cls, mapping: Optional[Dict[str, Any]]) -> "SlidesSettings":
        """
        Merge saved values over the defaults.
        Unknown keys are ignored and invalid values keep their default.
        """
        settings = cls()
        if not mapping:
            return settings

        for key, value in mapping.items():
            name = LEGACY_KEYS.get(key, key)
            if not hasattr(settings, name):
                logger.debug(f"Settings: ignoring unknown key '{key}'")
                continue
            try:
                setattr(settings, name, _coerce(name, value))
            except (TypeError, ValueError) as e:
                logger.warning(f"Settings: invalid value for '{key}' ({value!r}): {e}. Using default.")
        return settings

    def to_mapping(self) -> Dict[str, Any]:
        return asdict(self)

    def absolute_slides_path(self, vault_base: Path) -> Path:
        return Path(vault_base) / self.slides_path

    def server_config(self, vault_base: Path) -> ServerConfig:
        return ServerConfig(port=self.port, base_directory=self.absolute_slides_path(vault_base))


def _coerce(name: str, value: Any) -> Any:
    if name == 'slides_path':
        text = str(value).strip().replace('\\', '/').strip('/')
        parts = PurePosixPath(text).parts if text else ()
        if not parts:
            raise ValueError("slides path must not be empty")
        # The folder is served and written to, so it must stay inside the vault
        if '..' in parts or ':' in parts[0]:
            raise ValueError("slides path must stay inside the vault")
        return text
    if name == 'port':
        if isinstance(value, bool):
            raise TypeError("port must be an integer")
        port = int(value)
        if not 0 <= port <= 65535:
            raise ValueError("port out of range")
        return port
    if name == 'debounce_ms':
        delay = int(value)
        if delay < 0:
            raise ValueError("delay must not be negative")
        return delay
    if name == 'debounce_per_file':
        if isinstance(value, str):
            return value.strip().lower() in ('1', 'true', 'yes', 'on')
        return bool(value)
    return value
