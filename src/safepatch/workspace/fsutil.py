"""Line-ending preserving reads and atomic writes."""

from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path
from typing import Union

PathLike = Union[str, Path]


class WorkspaceError(Exception):
    """Raised when a file cannot be read, written, or decoded."""


def read_text(path: PathLike) -> str:
    """Read *path* as UTF-8 without translating line endings."""
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()
    except UnicodeDecodeError as exc:
        raise WorkspaceError(f"{path} is not valid UTF-8 text") from exc
    except OSError as exc:
        raise WorkspaceError(f"Cannot read {path}: {exc.strerror or exc}") from exc


def atomic_write_text(path: PathLike, text: str) -> None:
    """Replace *path* with *text* so readers see either the old or new content.

    Writes a temp file in the same directory, fsyncs it, then renames it over
    the target. An existing file's permission bits are carried over.
    """
    target = Path(path)
    directory = target.parent if str(target.parent) else Path(".")
    try:
        fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=f".{target.name}.", suffix=".tmp")
    except OSError as exc:
        raise WorkspaceError(f"Cannot write {path}: {exc.strerror or exc}") from exc

    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        if target.exists():
            os.chmod(tmp_name, stat.S_IMODE(target.stat().st_mode))
        os.replace(tmp_name, target)
    except BaseException as exc:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        if isinstance(exc, OSError):
            raise WorkspaceError(f"Cannot write {path}: {exc.strerror or exc}") from exc
        raise
