#!/usr/bin/env python
"""
Command-line interface for Markdeep slides
"""

import argparse
import logging
import sys
import threading
from pathlib import Path
from typing import Optional

from mdslides.version_info import __version__, __build_timestamp__, __build_type__

logger = logging.getLogger(__name__)


def print_version():
    """Print version information."""
    print(f"mdslides v{__version__}")
    print(f"Build: {__build_timestamp__}")
    print(f"Build Type: {__build_type__}")


def create_host(args):
    """Build the local host for --vault and configure logging inside it."""
    from mdslides.core.host import LocalHost
    from mdslides.core.logging_config import setup_logging, vault_log_dir

    host = LocalHost(Path(args.vault))
    setup_logging(vault_log_dir(host.vault.base_path), args.debug)
    return host


def resolve_note(host, note: str):
    """Accept a vault-relative or absolute note path."""
    path = Path(note)
    if path.is_absolute():
        relative = host.vault.relative(path)
    else:
        relative = path.as_posix()
    if relative is None:
        return None
    return host.vault.get_file(relative)


def wait_for_interrupt(stop_event: Optional[threading.Event] = None):
    """Block the main thread until Ctrl+C (or until stop_event is set)."""
    stop_event = stop_event or threading.Event()
    while not stop_event.wait(0.5):
        pass


def load_registry():
    from mdslides.core.loader import load_plugins
    from mdslides.core.registry import PluginRegistry

    registry = PluginRegistry()
    count = load_plugins(registry)
    logger.info(f"Loaded {count} plugin(s)")
    return registry


def start_server(args):
    """Load the plugins, start the slides server and regenerate on every save."""
    from mdslides.core.watcher import VaultWatcher

    host = create_host(args)
    registry = load_registry()
    registry.initialize_all(host)

    watcher = VaultWatcher(host.vault, host.workspace)
    watcher.start()

    print(f"Starting mdslides v{__version__}")
    print(f"Vault: {host.vault.base_path}")
    print("Press Ctrl+C to stop")
    print()
    try:
        wait_for_interrupt()
    finally:
        watcher.stop()
        registry.shutdown_all()
    return 0


def generate(args):
    """Generate slides for one note without starting the server."""
    from mdslides.plugins.markdeep_slides.plugin import MarkdeepSlidesPlugin

    host = create_host(args)
    note = resolve_note(host, args.note)
    if note is None:
        print(f"Note not found in vault: {args.note}", file=sys.stderr)
        return 1

    plugin = MarkdeepSlidesPlugin()
    plugin.attach(host)
    output_path = plugin.generate_slides(note, False)
    return 0 if output_path else 1


def open_preview(args):
    """Serve the slides of one note and open them in the browser."""
    host = create_host(args)
    note = resolve_note(host, args.note)
    if note is None:
        print(f"Note not found in vault: {args.note}", file=sys.stderr)
        return 1

    registry = load_registry()
    registry.initialize_all(host)
    try:
        host.workspace.set_active_file(note)
        command = 'open-slides-in-external-browser' if args.external else 'open-slides-in-browser'
        if registry.run_command(command) is None:
            return 1
        print("Press Ctrl+C to stop")
        wait_for_interrupt()
    finally:
        registry.shutdown_all()
    return 0


def configure(args):
    """Show or change the persisted plugin settings."""
    from mdslides.plugins.markdeep_slides.plugin import MarkdeepSlidesPlugin

    host = create_host(args)
    plugin = MarkdeepSlidesPlugin()
    plugin.attach(host)

    changes = {}
    if args.slides_path is not None:
        changes['slides_path'] = args.slides_path
    if args.port is not None:
        changes['port'] = args.port
    if args.debounce_ms is not None:
        changes['debounce_ms'] = args.debounce_ms
    if args.debounce_per_file is not None:
        changes['debounce_per_file'] = args.debounce_per_file

    if changes:
        plugin.update_settings(changes)
        print(f"Settings saved to {host.data_file}")

    for key, value in plugin.settings.to_mapping().items():
        print(f"{key}: {value}")
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        description=f'mdslides v{__version__}',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  mdslides --version                      Show version information
  mdslides --vault ~/notes                Serve ~/notes/slides on localhost:8765
  mdslides generate talk.md               Generate slides/talk.html
  mdslides open talk.md --external        Generate if needed and open in a browser
  mdslides config --port 9000             Change the server port
        """
    )

    parser.add_argument(
        '--version', '-v',
        action='store_true',
        help='Show version information'
    )
    parser.add_argument(
        '--vault',
        type=str,
        default='.',
        help='Vault directory (default: current directory)'
    )
    parser.add_argument(
        '--debug', '-d',
        action='store_true',
        help='Enable debug logging'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    subparsers.add_parser('serve', help='Serve slides and regenerate them on save (default)')

    generate_parser = subparsers.add_parser('generate', help='Generate slides for a note')
    generate_parser.add_argument('note', help='Note path, relative to the vault or absolute')

    open_parser = subparsers.add_parser('open', help='Open the slides of a note')
    open_parser.add_argument('note', help='Note path, relative to the vault or absolute')
    open_parser.add_argument('--external', action='store_true', help='Open in a new browser window')

    config_parser = subparsers.add_parser('config', help='Show or change settings')
    config_parser.add_argument('--slides-path', help='Vault folder for generated slides')
    config_parser.add_argument('--port', type=int, help='Port of the local slides server')
    config_parser.add_argument('--debounce-ms', type=int, help='Quiet period before regenerating')
    config_parser.add_argument(
        '--debounce-per-file',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Keep one regeneration timer per note'
    )
    return parser


COMMANDS = {
    None: start_server,
    'serve': start_server,
    'generate': generate,
    'open': open_preview,
    'config': configure,
}


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print_version()
        return 0

    try:
        return COMMANDS[args.command](args)
    except KeyboardInterrupt:
        print("\nServer stopped.")
        return 0
    except Exception as e:
        logger.error(f"Command failed: {e}", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
