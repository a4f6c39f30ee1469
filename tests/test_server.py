import unittest
import sys
import shutil
import socket
import tempfile
import urllib.request
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from unittest.mock import patch

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from mdslides.app import content_type_for, create_app, is_within
from mdslides.core.config import ServerConfig
from mdslides.core.errors import PortInUseError
from mdslides.core.server import SlidesServer


class TestStaticRoutes(unittest.TestCase):
    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.base = self.test_dir / "slides"
        self.base.mkdir()
        (self.base / "deck.html").write_text("<html>deck</html>", encoding="utf-8")
        (self.test_dir / "secret.txt").write_text("top secret", encoding="utf-8")
        self.config = ServerConfig(port=0, base_directory=self.base)
        self.app = create_app(lambda: self.config)
        self.client = self.app.test_client()

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_serves_existing_file(self):
        response = self.client.get("/deck.html")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["Content-Type"], "text/html")
        self.assertEqual(response.data, b"<html>deck</html>")

    def test_content_types_follow_extension_table(self):
        cases = {
            "style.css": "text/css",
            "app.js": "application/javascript",
            "data.json": "application/json",
            "img.png": "image/png",
            "photo.jpg": "image/jpeg",
            "photo.jpeg": "image/jpeg",
            "anim.gif": "image/gif",
            "logo.svg": "image/svg+xml",
            "notes.txt": "text/plain",
            "talk.md": "text/plain",
            "UPPER.HTML": "text/html",
        }
        for name, expected in cases.items():
            (self.base / name).write_bytes(b"x")
            with self.subTest(name=name):
                response = self.client.get(f"/{name}")
                self.assertEqual(response.status_code, 200)
                self.assertEqual(response.headers["Content-Type"], expected)

    def test_nested_and_encoded_paths(self):
        assets = self.base / "markdeep-slides"
        assets.mkdir()
        (assets / "slides-init.js").write_text("init()", encoding="utf-8")
        (self.base / "my talk.html").write_text("spaced", encoding="utf-8")

        self.assertEqual(self.client.get("/markdeep-slides/slides-init.js").data, b"init()")
        self.assertEqual(self.client.get("/my%20talk.html").data, b"spaced")

    def test_root_without_path_is_bad_request(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 400)

    def test_missing_file_is_404(self):
        response = self.client.get("/nope.html")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.headers["Content-Type"], "text/plain")
        self.assertEqual(response.data, b"File not found.")

    def test_unreadable_file_is_500(self):
        with patch.object(Path, "read_bytes", side_effect=PermissionError("Permission denied")):
            response = self.client.get("/deck.html")
        self.assertEqual(response.status_code, 500)
        self.assertIn(b"Server error", response.data)

    def test_traversal_is_forbidden_and_never_read(self):
        with patch.object(Path, "read_bytes") as read_bytes:
            response = self.client.get("/../secret.txt")
            self.assertEqual(response.status_code, 403)
            read_bytes.assert_not_called()

    def test_null_byte_is_plain_text_forbidden(self):
        response = self.client.get("/a%00b.html")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.headers["Content-Type"], "text/plain")
        self.assertEqual(response.data, b"Forbidden")

    def test_sibling_prefix_directory_is_forbidden(self):
        sibling = self.test_dir / "slides-private"
        sibling.mkdir()
        (sibling / "x.html").write_text("private", encoding="utf-8")
        response = self.client.get("/../slides-private/x.html")
        self.assertEqual(response.status_code, 403)

    def test_symlink_escape_is_forbidden(self):
        link = self.base / "escape.txt"
        try:
            link.symlink_to(self.test_dir / "secret.txt")
        except (OSError, NotImplementedError):
            self.skipTest("symlinks not supported")
        response = self.client.get("/escape.txt")
        self.assertEqual(response.status_code, 403)

    def test_base_directory_change_applies_to_next_request(self):
        other = self.test_dir / "other"
        other.mkdir()
        (other / "deck.html").write_text("other deck", encoding="utf-8")

        self.config = self.config.with_base_directory(other)
        response = self.client.get("/deck.html")
        self.assertEqual(response.data, b"other deck")

    def test_helpers(self):
        self.assertEqual(content_type_for(Path("a.JPEG")), "image/jpeg")
        self.assertTrue(is_within(self.base / "a" / ".." / "deck.html", self.base))
        self.assertFalse(is_within(self.base / ".." / "secret.txt", self.base))


class TestSlidesServerLifecycle(unittest.TestCase):
    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        (self.test_dir / "deck.html").write_text("<html>live</html>", encoding="utf-8")
        self.server = SlidesServer(ServerConfig(port=0, base_directory=self.test_dir))

    def tearDown(self):
        self.server.stop()
        shutil.rmtree(self.test_dir)

    def fetch(self, name):
        url = f"http://127.0.0.1:{self.server.port}/{name}"
        with urllib.request.urlopen(url, timeout=5) as response:
            return response.status, response.headers["Content-Type"], response.read()

    def test_start_serve_stop(self):
        self.server.start()
        self.assertTrue(self.server.is_running)
        self.assertNotEqual(self.server.port, 0)

        status, content_type, body = self.fetch("deck.html")
        self.assertEqual(status, 200)
        self.assertEqual(content_type, "text/html")
        self.assertEqual(body, b"<html>live</html>")

        port = self.server.port
        self.server.stop()
        self.assertFalse(self.server.is_running)
        with self.assertRaises(OSError):
            socket.create_connection(("127.0.0.1", port), timeout=1).close()

    def test_stop_is_idempotent(self):
        self.server.stop()
        self.server.start()
        self.server.stop()
        self.server.stop()
        self.assertFalse(self.server.is_running)

    def test_port_is_free_after_stop(self):
        self.server.start()
        port = self.server.port
        self.server.stop()

        self.server.set_port(port)
        self.server.start()
        self.assertEqual(self.server.port, port)
        self.assertEqual(self.fetch("deck.html")[0], 200)

    def test_port_in_use_is_reported(self):
        blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]

            server = SlidesServer(ServerConfig(port=port, base_directory=self.test_dir))
            with self.assertRaises(PortInUseError) as ctx:
                server.start()
            self.assertEqual(ctx.exception.port, port)
            self.assertFalse(server.is_running)
        finally:
            blocker.close()

    def test_concurrent_requests(self):
        for i in range(8):
            (self.test_dir / f"asset{i}.css").write_text(f"css{i}", encoding="utf-8")
        self.server.start()

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda i: self.fetch(f"asset{i}.css"), range(8)))

        for i, (status, content_type, body) in enumerate(results):
            self.assertEqual(status, 200)
            self.assertEqual(content_type, "text/css")
            self.assertEqual(body, f"css{i}".encode())

    def test_set_base_directory_while_running(self):
        other = self.test_dir / "other"
        other.mkdir()
        (other / "deck.html").write_text("moved", encoding="utf-8")
        self.server.start()

        self.server.set_base_directory(other)
        self.assertEqual(self.fetch("deck.html")[2], b"moved")

    def test_url_for_quotes_names(self):
        self.assertEqual(self.server.url_for("my talk.html"), "http://localhost:0/my%20talk.html")


if __name__ == '__main__':
    unittest.main()
