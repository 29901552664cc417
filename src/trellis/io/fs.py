"""
Filesystem helpers for trellis.io (file protocol baseline).

Responsibilities
- Directory creation, fsync, and atomic renames.
- The atomic write path used by every writer: tmp write → fsync → os.replace(tmp, final).

Notes
- Atomicity via os.replace holds only when tmp and final live on the same filesystem;
  writers place the tmp file next to its final path.
- All helpers are synchronous and stdlib-only.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import BinaryIO

from .errors import IoWriteError

__all__ = [
    "makedirs",
    "fsync_file",
    "fsync_path",
    "rename_atomic",
    "remove_quietly",
    "write_atomic",
    "write_bytes_atomic",
]


def makedirs(path: str, exist_ok: bool = True) -> None:
    """Create directories recursively (thin wrapper around os.makedirs)."""
    os.makedirs(path, exist_ok=exist_ok)


def fsync_file(fh: BinaryIO) -> None:
    """Flush and fsync an open file handle."""
    fh.flush()
    os.fsync(fh.fileno())


def fsync_path(path: str) -> None:
    """
    Open a path read-only and fsync its file descriptor.

    Notes:
        Used after a library wrote to a path directly (e.g., pyarrow.parquet.write_table).
    """
    fd = os.open(path, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def rename_atomic(src: str, dst: str) -> None:
    """Atomically rename src -> dst on the same filesystem (os.replace)."""
    os.replace(src, dst)


def remove_quietly(path: str) -> None:
    """Remove a leftover tmp file if it exists."""
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


def write_atomic(final_path: str, write: Callable[[str], None]) -> str:
    """
    Run ``write(tmp_path)``, fsync the result, and move it to final_path.

    Args:
        final_path (str): Destination path; its directory is created if needed.
        write (Callable[[str], None]): Writes the complete file at the given tmp path.

    Returns:
        str: final_path.

    Raises:
        IoWriteError: If writing, fsync, or the rename fails; the tmp file is removed.
    """
    makedirs(os.path.dirname(final_path) or ".")
    tmp_path = final_path + ".tmp"
    try:
        write(tmp_path)
        fsync_path(tmp_path)
        rename_atomic(tmp_path, final_path)
    except Exception as exc:
        remove_quietly(tmp_path)
        raise IoWriteError(f"failed to write {final_path}: {exc}") from exc
    return final_path


def write_bytes_atomic(final_path: str, data: bytes) -> str:
    """Atomically write a bytes payload (e.g., a canonical JSON document)."""

    def _write(tmp_path: str) -> None:
        with open(tmp_path, "wb") as fh:
            fh.write(data)
            fsync_file(fh)

    return write_atomic(final_path, _write)
