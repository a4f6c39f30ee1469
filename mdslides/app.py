"""
Static file routes for the local slides server.
A Flask application that maps every GET path onto a file below one base directory.
"""

from flask import Flask, Response
from pathlib import Path
from typing import Callable
import logging

from mdslides.core.config import ServerConfig

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    '.html': 'text/html',
    '.css': 'text/css',
    '.js': 'application/javascript',
    '.json': 'application/json',
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.gif': 'image/gif',
    '.svg': 'image/svg+xml',
}
DEFAULT_CONTENT_TYPE = 'text/plain'


def content_type_for(path: Path) -> str:
    """Pick the Content-Type from the fixed extension table."""
    return CONTENT_TYPES.get(Path(path).suffix.lower(), DEFAULT_CONTENT_TYPE)


def is_within(candidate: Path, base: Path) -> bool:
    """
    Containment check on canonical paths.
    Both sides are resolved first so `..` segments and symlinks cannot escape
    and `/slides-other` is not mistaken for a child of `/slides`.
    """
    try:
        return candidate.resolve().is_relative_to(base.resolve())
    except (OSError, RuntimeError, ValueError) as e:
        # Symlink loops and embedded null bytes end up here
        logger.warning(f"Slides Server: cannot resolve {candidate}: {e}")
        return False


def _text_response(body: str, status: int) -> Response:
    return Response(body, status=status, content_type=DEFAULT_CONTENT_TYPE)


def create_app(get_config: Callable[[], ServerConfig]) -> Flask:
    """
    Build the Flask app. `get_config` returns the current configuration
    snapshot; it is called once per request and never cached.
    """
    app = Flask(__name__)

    @app.route('/')
    def no_url():
        return _text_response('Bad Request: No URL', 400)

    @app.route('/<path:filename>')
    def serve_file(filename):
        # PATH_INFO is already URL-decoded by the WSGI layer
        base_directory = get_config().base_directory
        logger.debug(f"Slides Server: request '{filename}' (base: {base_directory})")

        file_path = base_directory / filename
        if not is_within(file_path, base_directory):
            logger.warning(f"Slides Server: blocked traversal attempt: {filename}")
            return _text_response('Forbidden', 403)

        try:
            data = file_path.read_bytes()
        except FileNotFoundError:
            logger.info(f"Slides Server: not found: {file_path}")
            return _text_response('File not found.', 404)
        except OSError as e:
            logger.error(f"Slides Server: error reading {file_path}: {e}")
            return _text_response(f'Server error: {e}', 500)

        return Response(data, status=200, content_type=content_type_for(file_path))

    return app
