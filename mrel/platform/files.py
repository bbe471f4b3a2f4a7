"""Filesystem helpers."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

__all__ = ["atomic_write_text", "write_if_changed"]


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write text to path atomically using temp file + replace."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
        os.replace(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)


def write_if_changed(path: Path, content: str, *, encoding: str = "utf-8") -> bool:
    """Write ``content`` unless the file already holds exactly that; return whether it wrote."""
    try:
        if path.read_text(encoding=encoding) == content:
            return False
    except FileNotFoundError:
        pass
    atomic_write_text(path, content, encoding=encoding)
    return True
