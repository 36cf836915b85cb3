"""
Filesystem helpers for the output directory lifecycle.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import List

from ..errors import FileSystemError

logger = logging.getLogger(__name__)


def ensure_directory(path: Path | str) -> Path:
    """
    Ensure a directory exists, returning the resolved Path.
    """
    resolved = Path(path).expanduser().resolve()
    try:
        resolved.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FileSystemError(f"Unable to create directory {resolved}: {exc}") from exc
    return resolved


def clear_directory(path: Path | str) -> List[str]:
    """
    Remove every entry inside ``path`` while keeping the directory itself.

    Clearing is best-effort: the first failure stops the pass and is raised,
    possibly leaving some entries behind.

    Returns:
        Sorted names of the entries that were removed.
    """
    root = Path(path).expanduser().resolve()
    if not root.is_dir():
        raise FileSystemError(f"Output path exists but is not a directory: {root}")

    removed: List[str] = []
    for entry in sorted(root.iterdir()):
        try:
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
        except OSError as exc:
            raise FileSystemError(f"Unable to remove {entry} while clearing {root}: {exc}") from exc
        logger.debug("Removed stale entry %s", entry)
        removed.append(entry.name)
    return removed


def _ensure_parent(target: Path) -> None:
    """Ensure the parent directory for target exists."""
    if target.parent and not target.parent.exists():
        target.parent.mkdir(parents=True, exist_ok=True)


def _atomic_write_text(target: Path, content: str, encoding: str) -> None:
    """Write text atomically by staging a temp file and renaming."""
    _ensure_parent(target)
    fd, tmp_path = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, target)
    finally:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass


def write_text_file(path: Path | str, content: str, encoding: str = "utf-8") -> Path:
    """
    Write text to a file, creating parent directories as needed.

    Raises:
        FileSystemError: If the file cannot be written.
    """
    target = Path(path).expanduser().resolve()
    try:
        _atomic_write_text(target, content, encoding=encoding)
    except OSError as exc:
        raise FileSystemError(f"Unable to write {target}: {exc}") from exc
    return target
