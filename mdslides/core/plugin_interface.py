from abc import ABC, abstractmethod
from typing import Dict, Any

class PluginInterface(ABC):
    """
    Abstract Base Class for all mdslides plugins.
    The host calls initialize() when it loads the plugin and shutdown() when
    it unloads it; everything a plugin starts must be released in shutdown().
    """

    @abstractmethod
    def get_meta(self) -> Dict[str, Any]:
        """
        Return metadata about the plugin.
        Required keys: 'name', 'version', 'description', 'author'.
        """
        pass

    @abstractmethod
    def initialize(self, host: Any, registry: Any) -> None:
        """
        Initialize the plugin.
        :param host: The Host whose vault, workspace and settings store the plugin uses.
        :param registry: The PluginRegistry to register commands with.
        """
        pass

    @abstractmethod
    def shutdown(self) -> None:
        """
        Cleanup resources before shutdown.
        """
        pass
