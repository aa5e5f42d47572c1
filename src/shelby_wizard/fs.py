"""Owner-only file helpers for secret material."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger("shelby_wizard.fs")

PRIVATE_DIR_MODE = 0o700
PRIVATE_FILE_MODE = 0o600


def ensure_private_dir(path: Path) -> Path:
    """Create *path* (and parents) and restrict it to the owner."""
    path.mkdir(parents=True, exist_ok=True, mode=PRIVATE_DIR_MODE)
    try:
        os.chmod(path, PRIVATE_DIR_MODE)
    except PermissionError:
        logger.warning("Could not restrict permissions on %s", path)
    return path


def write_private_text(path: Path, text: str) -> Path:
    """Atomically replace *path* with *text*, readable by the owner only.

    The content goes to a ``mkstemp`` file in the same directory first.
    ``mkstemp`` creates files with mode 0600, so the secret is never visible
    to other users, not even for the moment before the final ``chmod``.
    The temp file is then renamed over *path*.
    """
    ensure_private_dir(path.parent)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp_path, PRIVATE_FILE_MODE)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
    logger.debug("Wrote %s (%d bytes)", path, len(text))
    return path


def file_mode(path: Path) -> int:
    """Return the permission bits of *path*."""
    return path.stat().st_mode & 0o777
