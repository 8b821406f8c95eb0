import logging
import os
import sys
from logging.handlers import RotatingFileHandler

_LOG_DIR = os.path.abspath(os.environ.get("MATRICES_LOG_DIR", "logs"))
_LOG_FILE = os.path.join(_LOG_DIR, "matrices.log")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
MAX_BYTES = 5_000_000
BACKUPS = 3


def setup_logging(level=logging.INFO, *, to_file: bool = True) -> None:
    """
    Console at `level`; the rotating file under the log dir always gets DEBUG so a
    bad render can be reconstructed after the fact.
    """
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG if to_file else level)
    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler(stream=sys.stdout)
    console.setFormatter(formatter)
    console.setLevel(level)
    root.addHandler(console)

    if to_file:
        os.makedirs(_LOG_DIR, exist_ok=True)
        rotating = RotatingFileHandler(_LOG_FILE, maxBytes=MAX_BYTES, backupCount=BACKUPS, encoding="utf-8")
        rotating.setFormatter(formatter)
        rotating.setLevel(logging.DEBUG)
        root.addHandler(rotating)

    # PIL logs every plugin it probes at DEBUG
    logging.getLogger("PIL").setLevel(logging.WARNING)

def log_dir() -> str:
    return _LOG_DIR

def log_path() -> str:
    return _LOG_FILE
