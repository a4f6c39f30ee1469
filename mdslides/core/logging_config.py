import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Iterable

from mdslides.core.host import DATA_DIR_NAME

# Constants
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_DIR_NAME = "logs"
LOG_FILE_NAME = "mdslides.log"
LOG_FILE_SIZE = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT = 5

# Per-request lines from the server and per-event lines from the observer
QUIET_LOGGERS = ("werkzeug", "watchdog")


def vault_log_dir(vault_base: Path) -> Path:
    """Logs live next to the plugin data: `{vault}/.mdslides/logs`."""
    return Path(vault_base) / DATA_DIR_NAME / LOG_DIR_NAME


def _file_handler(log_file: Path, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=LOG_FILE_SIZE,
        backupCount=LOG_BACKUP_COUNT,
        encoding='utf-8'
    )
    handler.setFormatter(formatter)
    handler.setLevel(logging.DEBUG)  # the file always gets everything
    return handler


def _console_handler(level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.setLevel(level)
    return handler


def setup_logging(
    log_dir: Path,
    debug_mode: bool = False,
    quiet_loggers: Iterable[str] = QUIET_LOGGERS,
    log_file_name: str = LOG_FILE_NAME,
) -> Path:
    """
    Send all records to a rotating log file and to stdout, replacing any
    handlers configured earlier in the process. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / log_file_name
    level = logging.DEBUG if debug_mode else logging.INFO

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    root_logger.setLevel(level)
    root_logger.addHandler(_file_handler(log_file, formatter))
    root_logger.addHandler(_console_handler(level, formatter))

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"mdslides logging to {log_file} (debug={debug_mode})")
    return log_file
