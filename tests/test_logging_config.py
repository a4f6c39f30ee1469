import unittest
import sys
import logging
import shutil
import tempfile
from pathlib import Path

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from mdslides.core.logging_config import LOG_FILE_NAME, setup_logging, vault_log_dir


class TestSetupLogging(unittest.TestCase):
    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        root = logging.getLogger()
        self.saved = (root.level, list(root.handlers))

    def tearDown(self):
        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        level, handlers = self.saved
        root.setLevel(level)
        for handler in handlers:
            root.addHandler(handler)
        shutil.rmtree(self.test_dir)

    def test_file_and_console_handlers(self):
        log_file = setup_logging(self.test_dir / "logs", debug_mode=True)
        self.assertEqual(log_file, self.test_dir / "logs" / LOG_FILE_NAME)

        root = logging.getLogger()
        self.assertEqual(root.level, logging.DEBUG)
        self.assertEqual(len(root.handlers), 2)

        logging.getLogger("mdslides.test").debug("hello from test")
        for handler in root.handlers:
            handler.flush()
        self.assertIn("hello from test", log_file.read_text(encoding="utf-8"))
        self.assertEqual(logging.getLogger("werkzeug").level, logging.WARNING)

    def test_repeated_setup_does_not_duplicate_handlers(self):
        setup_logging(self.test_dir, debug_mode=False)
        setup_logging(self.test_dir, debug_mode=False)
        self.assertEqual(len(logging.getLogger().handlers), 2)
        self.assertEqual(logging.getLogger().level, logging.INFO)

    def test_quiet_loggers_and_file_name_are_configurable(self):
        logging.getLogger("mdslides.noisy").setLevel(logging.NOTSET)
        log_file = setup_logging(self.test_dir, quiet_loggers=["mdslides.noisy"], log_file_name="other.log")
        self.assertEqual(log_file.name, "other.log")
        self.assertEqual(logging.getLogger("mdslides.noisy").level, logging.WARNING)
        logging.getLogger("mdslides.noisy").setLevel(logging.NOTSET)

    def test_vault_log_dir(self):
        self.assertEqual(vault_log_dir(Path("/vault")), Path("/vault/.mdslides/logs"))


if __name__ == '__main__':
    unittest.main()
