import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, List
from .plugin_interface import PluginInterface

logger = logging.getLogger(__name__)


@dataclass
class Command:
    id: str
    name: str
    callback: Callable[[], Any]


class PluginRegistry:
    """
    Registry for mdslides plugins and the commands they contribute.
    Handles registration, retrieval, and lifecycle events.
    """

    def __init__(self):
        self._plugins: Dict[str, PluginInterface] = {}
        self._commands: Dict[str, Command] = {}

    def register(self, plugin: PluginInterface) -> None:
        """
        Register a new plugin instance.
        Validates the interface and metadata.
        """
        if not isinstance(plugin, PluginInterface):
            raise TypeError("Plugin must inherit from PluginInterface")

        meta = plugin.get_meta()
        name = meta.get('name')

        if not name:
            raise ValueError("Plugin metadata must include 'name'")

        if name in self._plugins:
            logger.warning(f"Plugin '{name}' is already registered. Overwriting.")

        self._plugins[name] = plugin
        logger.info(f"Registered plugin: {name} v{meta.get('version', '0.0.0')}")

    def get_plugin(self, name: str) -> Optional[PluginInterface]:
        """Retrieve a specific plugin by name."""
        return self._plugins.get(name)

    def get_all_plugins(self) -> List[PluginInterface]:
        """Return a list of all registered plugins."""
        return list(self._plugins.values())

    def register_command(self, command_id: str, name: str, callback: Callable[[], Any]) -> None:
        if command_id in self._commands:
            logger.warning(f"Command '{command_id}' is already registered. Overwriting.")
        self._commands[command_id] = Command(command_id, name, callback)
        logger.debug(f"Registered command: {command_id}")

    def get_commands(self) -> List[Command]:
        return list(self._commands.values())

    def run_command(self, command_id: str) -> Any:
        """Run a registered command. Raises KeyError for unknown ids."""
        command = self._commands.get(command_id)
        if command is None:
            raise KeyError(f"Unknown command: {command_id}")
        logger.info(f"Running command: {command.name}")
        return command.callback()

    def initialize_all(self, host: Any) -> None:
        """
        Initialize all registered plugins.
        A failing plugin is logged and skipped; the others still load.
        """
        for name, plugin in self._plugins.items():
            try:
                plugin.initialize(host, self)
                logger.info(f"Initialized plugin: {name}")
            except Exception as e:
                logger.error(f"Failed to initialize plugin '{name}': {e}", exc_info=True)

    def shutdown_all(self) -> None:
        """
        Shutdown all plugins in reverse order of registration.
        """
        for name, plugin in reversed(list(self._plugins.items())):
            try:
                plugin.shutdown()
            except Exception as e:
                logger.error(f"Error shutting down plugin '{name}': {e}")
        self._commands.clear()
