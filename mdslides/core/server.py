"""
Lifecycle of the local slides server: bind, serve on a background thread,
shut down, and accept configuration changes while running.
"""

import errno
import logging
import socket
import threading
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from werkzeug.serving import make_server

from mdslides.app import create_app
from mdslides.core.config import SERVER_HOST, ServerConfig
from mdslides.core.errors import PortInUseError, ServerStartError, ServerStopError

logger = logging.getLogger(__name__)

LISTEN_QUEUE = 128


def bind_socket(host: str, port: int) -> socket.socket:
    """
    Bind and listen on an IPv4 TCP socket. Errors surface as OSError,
    unlike make_server(), which exits the process when the bind fails.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(LISTEN_QUEUE)
    except OSError:
        sock.close()
        raise
    return sock


class SlidesServer:
    """
    Threaded werkzeug server around the static file app.

    The configuration handle is replaced only through `set_base_directory` /
    `set_port`; request handlers read it through `get_config`, one snapshot
    per request.
    """

    def __init__(self, config: ServerConfig, host: str = SERVER_HOST):
        self._config = config
        self._host = host
        self._server = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self.app = create_app(self.get_config)

    def get_config(self) -> ServerConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._server is not None

    @property
    def port(self) -> int:
        """The bound port while running, the configured one otherwise."""
        if self._server is not None:
            return self._server.server_address[1]
        return self._config.port

    def url_for(self, relative_path: str) -> str:
        return f"http://localhost:{self.port}/{quote(relative_path)}"

    def set_base_directory(self, path) -> None:
        """Serve from `path` starting with the next request."""
        self._config = self._config.with_base_directory(Path(path))
        logger.info(f"Slides Server: base directory set to {self._config.base_directory}")

    def set_port(self, port: int) -> None:
        """Store a new port. Takes effect on the next start()."""
        self._config = self._config.with_port(port)
        if self.is_running:
            logger.info(f"Slides Server: port {port} will be used after restart")

    def start(self) -> None:
        with self._lock:
            if self._server is not None:
                logger.warning("Slides Server: start() called while already running")
                return

            port = self._config.port
            try:
                sock = bind_socket(self._host, port)
            except OSError as e:
                if e.errno == errno.EADDRINUSE:
                    logger.error(f"Port {port} is already in use.")
                    raise PortInUseError(port) from e
                logger.error(f"Slides Server: failed to bind {self._host}:{port}: {e}")
                raise ServerStartError(f"Failed to bind {self._host}:{port}: {e}") from e

            try:
                server = make_server(self._host, port, self.app, threaded=True, fd=sock.fileno())
            except OSError as e:
                raise ServerStartError(f"Failed to start server: {e}") from e
            finally:
                # make_server() duplicated the descriptor
                sock.close()

            thread = threading.Thread(target=server.serve_forever, name="mdslides-server", daemon=True)
            thread.start()
            self._server = server
            self._thread = thread
            logger.info(f"Server running at http://localhost:{self.port}/ (serving {self._config.base_directory})")

    def stop(self) -> None:
        """
        Stop serving and release the socket. Returns once the socket is
        closed; calling it when nothing runs is a no-op.
        """
        with self._lock:
            server, thread = self._server, self._thread
            if server is None:
                return
            self._server = None
            self._thread = None

            # shutdown() blocks until serve_forever() has returned
            server.shutdown()
            try:
                server.server_close()
            except OSError as e:
                logger.error(f"Error stopping server: {e}")
                raise ServerStopError(f"Error stopping server: {e}") from e
            finally:
                if thread is not None:
                    thread.join()
            logger.info("Server stopped.")
