"""
Path and layout helpers for trellis.io.

Layout (file protocol baseline)
- <root>/state/<name>.json      state documents (canonical JSON)
- <root>/api/<name>.parquet     API snapshots (one row per element)

Names are restricted to ``[A-Za-z0-9._-]+`` so they are safe as file names.
"""

from __future__ import annotations

import os
import re
from typing import Final

from .config import TrellisSettings
from .errors import IoConfigError

__all__ = ["validate_name", "state_dir", "state_path", "api_dir", "api_path"]

_NAME_ALLOWED_RE: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9._-]+$")


def validate_name(name: str) -> str:
    """
    Raises:
        IoConfigError: If name is empty or has characters outside ``[A-Za-z0-9._-]``.
    """
    if not name or not _NAME_ALLOWED_RE.match(name) or name in {".", ".."}:
        raise IoConfigError(f"illegal document name {name!r}; allowed pattern is [A-Za-z0-9._-]+")
    return name


def state_dir(settings: TrellisSettings) -> str:
    return os.path.join(settings.root_dir, "state")


def state_path(settings: TrellisSettings, name: str) -> str:
    return os.path.join(state_dir(settings), f"{validate_name(name)}.json")


def api_dir(settings: TrellisSettings) -> str:
    return os.path.join(settings.root_dir, "api")


def api_path(settings: TrellisSettings, name: str) -> str:
    return os.path.join(api_dir(settings), f"{validate_name(name)}.parquet")
