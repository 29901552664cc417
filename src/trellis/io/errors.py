"""
Custom exceptions for the trellis.io module.

Purpose
- Provide IO-layer specific error types for persisting state documents and API snapshots.
- Keep trellis.core as the source of truth for validation and versioning errors (see
  trellis.core.errors).

Boundaries
- trellis.core.errors.VersionMismatch is raised by readers when a persisted document
  carries an incompatible version.
- trellis.io raises Io* errors for filesystem and format concerns:
  - IoConfigError: invalid or unsupported configuration.
  - IoWriteError: atomic write path failed (tmp write/fsync/rename).
  - IoReadError: a document is missing or malformed.

Notes
- These exceptions do not perform any IO and are stdlib-only.
"""

from __future__ import annotations

__all__ = ["IoError", "IoConfigError", "IoWriteError", "IoReadError"]


class IoError(Exception):
    """
    Base class for IO-related errors in trellis.io.

    Notes:
        Use this as a catch-all for IO-layer failures, distinct from trellis.core errors.
    """


class IoConfigError(IoError):
    """Raised when IO configuration is invalid or unsupported (e.g., unknown codec)."""


class IoWriteError(IoError):
    """
    Raised when a write operation fails to complete atomically.

    Notes:
        The write path is tmp file → fsync → os.replace(tmp, final). Failures at any step
        surface as IoWriteError (with best-effort cleanup of tmp files).
    """


class IoReadError(IoError):
    """Raised when a state document or API snapshot is missing, unreadable, or malformed."""
