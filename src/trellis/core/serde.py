"""
Canonical JSON serialization and state fingerprints.

Provides a single canonical JSON policy, a thin `json_loads` wrapper, and SHA-256
helpers so that state documents and API snapshots serialize and hash identically
across runs. This module is zero-IO and uses only the Python standard library.

Notes:
    - Canonical JSON: sort_keys=True, separators=(",", ":"), ensure_ascii=False.
    - Hashing is performed over the UTF-8 encoded canonical JSON string.
    - State values are plain data by contract (IO Types convert instances first).
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import Any

__all__ = [
    "json_dumps_canonical",
    "json_loads",
    "hash_state",
    "hash_api",
]


def json_dumps_canonical(obj: Any) -> str:
    """
    Serialize an object to a canonical JSON string.

    Args:
        obj (Any): JSON-serializable object.

    Returns:
        str: Canonical JSON string with sorted keys and compact separators.

    Notes:
        No coercion of unsupported types is attempted; IO Types produce plain data.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def json_loads(s: str) -> Any:
    """Deserialize a JSON string with the stdlib json module (no custom hooks)."""
    return json.loads(s)


def _sha256_hexdigest(s: str) -> str:
    h = hashlib.sha256()
    h.update(s.encode("utf-8"))
    return h.hexdigest()


def hash_state(state: Mapping[str, Any]) -> str:
    """
    Fingerprint a flat state mapping (identifier -> state value).

    Examples:
        >>> from trellis.core.serde import hash_state
        >>> hash_state({"a.b": 1, "a.c": 2}) == hash_state({"a.c": 2, "a.b": 1})
        True
    """
    return _sha256_hexdigest(json_dumps_canonical(dict(state)))


def hash_api(elements: Mapping[str, Any]) -> str:
    """Fingerprint a flat API element mapping using the same canonical policy."""
    return _sha256_hexdigest(json_dumps_canonical(dict(elements)))
