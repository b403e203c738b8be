import os
import tempfile
from typing import Optional

from .logger import get_logger

logger = get_logger(__name__)


def read_file_if_exists(path: str) -> Optional[str]:
    """
    Returns the UTF-8 content of `path`, or None if the file does not exist.
    Any other I/O error propagates. Line endings are returned unchanged.
    """
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()
    except FileNotFoundError:
        # a missing file is OK
        logger.debug(f"File not found: {path}")
        return None


def write_file_atomic(path: str, content: str):
    """Writes `content` as UTF-8 via a temp file in the same directory, then renames it over `path`."""
    dir_name = os.path.dirname(os.path.abspath(path))
    os.makedirs(dir_name, exist_ok=True)
    tf = tempfile.NamedTemporaryFile(mode="w", dir=dir_name, delete=False, encoding="utf-8", newline="",
                                     prefix=f".{os.path.basename(path)}.", suffix=".tmp")
    try:
        with tf:
            tf.write(content)
        os.replace(tf.name, path)
    except Exception:
        os.remove(tf.name)
        raise
    logger.debug(f"Wrote {len(content)} characters to {path}")
