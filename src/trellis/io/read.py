"""
Readers for state documents and API snapshots.

Overview
- read_state_document(): load ``<root>/state/<name>.json`` into a StateDocument and check
  its version.
- read_api_snapshot(): load ``<root>/api/<name>.parquet`` into an ApiSnapshot, checking the
  version embedded in the Parquet key-value metadata.

Errors
- IoReadError: the file is missing, unreadable, or malformed.
- VersionMismatch (trellis.core.errors): the file was produced by an incompatible API.
"""

from __future__ import annotations

import os
from typing import Any

import polars as pl
import pyarrow as pa
import pyarrow.parquet as pq
from pydantic import ValidationError

from trellis.api.snapshot import ApiSnapshot, ElementEntry, TypeEntry
from trellis.core.errors import VersionMismatch
from trellis.core.serde import json_loads
from trellis.core.versioning import API_V, format_version, is_compatible, parse_version
from trellis.state.document import StateDocument

from .config import TrellisSettings
from .errors import IoReadError
from .paths import api_path, state_path

__all__ = ["read_state_document", "read_api_snapshot"]


def read_state_document(settings: TrellisSettings, name: str) -> StateDocument:
    """
    Load and version-check a state document.

    Raises:
        IoReadError: If the document is missing or malformed.
        VersionMismatch: If its version is incompatible with API_V.
    """
    path = state_path(settings, name)
    if not os.path.exists(path):
        raise IoReadError(f"state document not found: {path}")
    try:
        with open(path, encoding="utf-8") as fh:
            document = StateDocument.model_validate_json(fh.read())
    except (OSError, ValidationError) as exc:
        raise IoReadError(f"malformed state document {path}: {exc}") from exc
    document.check_compatible()
    return document


def _metadata_text(meta: dict[bytes, bytes], key: bytes, path: str) -> str:
    value = meta.get(key)
    if value is None:
        raise IoReadError(f"{path}: missing metadata {key.decode()}")
    return value.decode("utf-8")


def read_api_snapshot(settings: TrellisSettings, name: str) -> ApiSnapshot:
    """
    Load and version-check an API snapshot.

    Raises:
        IoReadError: If the file is missing, unreadable, or lacks trellis metadata.
        VersionMismatch: If its version is incompatible with API_V.
    """
    path = api_path(settings, name)
    if not os.path.exists(path):
        raise IoReadError(f"API snapshot not found: {path}")
    try:
        table = pq.read_table(path)
    except (OSError, pa.ArrowInvalid) as exc:
        raise IoReadError(f"unreadable API snapshot {path}: {exc}") from exc

    meta = dict(table.schema.metadata or {})
    version = _metadata_text(meta, b"trellis_api_version", path)
    if not is_compatible(parse_version(version)):
        raise VersionMismatch(
            f"API snapshot version {version} is not compatible with {format_version(API_V)}"
        )

    try:
        types_raw: dict[str, Any] = json_loads(_metadata_text(meta, b"trellis_api_types", path))
        types = {t: TypeEntry.model_validate(entry) for t, entry in types_raw.items()}
        elements: dict[str, ElementEntry] = {}
        for row in pl.DataFrame(table).iter_rows(named=True):
            element_id = row.pop("element_id")
            row["extra"] = json_loads(row["extra"])
            elements[element_id] = ElementEntry.model_validate(row)
    except (ValueError, KeyError) as exc:
        raise IoReadError(f"malformed API snapshot {path}: {exc}") from exc
    return ApiSnapshot(version=version, elements=elements, types=types)
