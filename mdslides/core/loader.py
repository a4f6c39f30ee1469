import importlib.util
import logging
from pathlib import Path
from typing import List

from mdslides.core.plugin_interface import PluginInterface
from mdslides.core.registry import PluginRegistry

logger = logging.getLogger(__name__)

# Constants
PLUGIN_FILE_NAME = "plugin.py"
BUNDLED_PLUGIN_DIR = Path(__file__).resolve().parent.parent / "plugins"

def get_plugin_paths(extra: List[Path] = ()) -> List[Path]:
    """
    Return the directories to scan: the bundled plugins folder first, then
    any extra folders that exist.
    """
    paths = []
    for candidate in [BUNDLED_PLUGIN_DIR, *extra]:
        candidate = Path(candidate)
        if candidate.exists() and candidate.is_dir():
            paths.append(candidate)
    logger.debug(f"Plugin scan paths: {[str(p) for p in paths]}")
    return paths

def load_plugins_from_path(plugin_dir: Path, registry: PluginRegistry) -> int:
    """
    Scan a specific directory for plugins and load them.
    Expects structure: plugin_dir/my_plugin/plugin.py
    Returns the number of plugins registered.
    """
    if not plugin_dir.exists():
        logger.warning(f"Plugin directory not found: {plugin_dir}")
        return 0

    logger.info(f"Scanning for plugins in: {plugin_dir}")

    count = 0
    for item in sorted(plugin_dir.iterdir()):
        plugin_path = item / PLUGIN_FILE_NAME
        if item.is_dir() and plugin_path.exists():
            if load_single_plugin(item.name, plugin_path, registry):
                count += 1
    logger.info(f"Scanned {plugin_dir}, loaded {count} plugins.")
    return count

def load_single_plugin(name: str, path: Path, registry: PluginRegistry) -> bool:
    """
    Import one plugin module and register the instance returned by its
    get_plugin() function. Failures are logged, never raised.
    """
    try:
        logger.info(f"Loading plugin '{name}' from {path}")

        # Use a unique name for the module based on the folder to avoid conflicts
        module_name = f"mdslides_plugin_{name}"
        spec = importlib.util.spec_from_file_location(module_name, str(path))
        if not spec or not spec.loader:
            logger.error(f"Cannot build import spec for plugin '{name}'")
            return False

        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)

        if not hasattr(module, 'get_plugin'):
            logger.warning(f"Plugin {name} has no get_plugin() function, skipping.")
            return False

        plugin = module.get_plugin()
        if not isinstance(plugin, PluginInterface):
            logger.error(f"Plugin {name} returned {type(plugin).__name__}, not a PluginInterface")
            return False

        registry.register(plugin)
        return True
    except Exception as e:
        logger.error(f"Failed to load plugin '{name}': {e}", exc_info=True)
        return False

def load_plugins(registry: PluginRegistry, extra_paths: List[Path] = ()) -> int:
    """
    Main entry point to discover and load all available plugins.
    """
    total = 0
    for path in get_plugin_paths(extra_paths):
        total += load_plugins_from_path(path, registry)
    return total
