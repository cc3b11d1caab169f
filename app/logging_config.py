"""
Logging setup: console plus a size-rotated file under the app home.
"""
import logging
from logging.handlers import RotatingFileHandler

from app import config

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
LOG_FILE_MAX_BYTES = 2 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def setup_logging(level=None):
    """Configure the root logger once. Safe to call repeatedly."""
    root = logging.getLogger()
    if getattr(root, '_facesync_configured', False):
        return root

    root.setLevel(level or config.LOG_LEVEL)
    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    config.LOG_DIR.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        config.LOG_DIR / 'main.log',
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding='utf-8',
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    root._facesync_configured = True
    return root
