"""
Writers for state documents and API snapshots.

Overview
- write_state_document(): canonical JSON of a StateDocument, written atomically.
- write_api_snapshot(): one Parquet row per element (polars frame converted to Arrow) with
  the API version, type descriptions, and fingerprint embedded as key-value metadata.

Notes
- Parquet files embed metadata:
    b"trellis_api_version"     = "major.minor@date" of the snapshot
    b"trellis_api_types"       = canonical JSON of {type_name: TypeEntry}
    b"trellis_api_fingerprint" = ApiSnapshot.fingerprint()
- Single-writer semantics; no inter-process locking.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any

import polars as pl
import pyarrow.parquet as pq

from trellis.core.serde import json_dumps_canonical

from .config import TrellisSettings
from .fs import write_atomic, write_bytes_atomic
from .paths import api_path, state_path

if TYPE_CHECKING:
    from trellis.api.snapshot import ApiSnapshot
    from trellis.state.document import StateDocument

__all__ = ["ELEMENT_COLUMNS", "write_state_document", "write_api_snapshot", "snapshot_frame"]

logger = logging.getLogger(__name__)

# Column layout of the Parquet element table; ``extra`` holds canonical JSON.
ELEMENT_COLUMNS: dict[str, Any] = {
    "element_id": pl.Utf8,
    "type_name": pl.Utf8,
    "documentation": pl.Utf8,
    "state": pl.Boolean,
    "read_only": pl.Boolean,
    "event_type": pl.Utf8,
    "high_frequency": pl.Boolean,
    "playback": pl.Boolean,
    "dynamic_element": pl.Boolean,
    "is_archetype": pl.Boolean,
    "featured": pl.Boolean,
    "designed": pl.Boolean,
    "archetype_id": pl.Utf8,
    "dynamic_element_name": pl.Utf8,
    "extra": pl.Utf8,
}


def write_state_document(
    settings: TrellisSettings, name: str, document: StateDocument
) -> dict[str, Any]:
    """
    Write a state document to ``<root>/state/<name>.json``.

    Returns:
        dict[str, Any]: Summary with keys path, entries, bytes, fingerprint.

    Raises:
        IoConfigError: If name is not a safe file name.
        IoWriteError: If the atomic write fails.
    """
    path = state_path(settings, name)
    data = document.to_json().encode("utf-8")
    write_bytes_atomic(path, data)
    logger.debug("wrote state document %s (%d entries)", path, len(document.state))
    return {
        "path": path,
        "entries": len(document.state),
        "bytes": len(data),
        "fingerprint": document.fingerprint(),
    }


def snapshot_frame(snapshot: ApiSnapshot) -> pl.DataFrame:
    """Element table of a snapshot, sorted by element_id."""
    rows = []
    for element_id, entry in sorted(snapshot.elements.items()):
        row = entry.model_dump(mode="json")
        row["element_id"] = element_id
        row["extra"] = json_dumps_canonical(row["extra"])
        rows.append(row)
    return pl.DataFrame(rows, schema=ELEMENT_COLUMNS)


def write_api_snapshot(
    settings: TrellisSettings, name: str, snapshot: ApiSnapshot
) -> dict[str, Any]:
    """
    Write an API snapshot to ``<root>/api/<name>.parquet``.

    Returns:
        dict[str, Any]: Summary with keys path, elements, types, bytes, fingerprint.

    Raises:
        IoConfigError: If name is not a safe file name.
        IoWriteError: If the Parquet write, fsync, or atomic rename fails.
    """
    path = api_path(settings, name)
    arrow_table = snapshot_frame(snapshot).to_arrow()
    types_json = json_dumps_canonical(
        {type_name: entry.model_dump(mode="json") for type_name, entry in snapshot.types.items()}
    )
    fingerprint = snapshot.fingerprint()
    meta = dict(arrow_table.schema.metadata or {})
    meta.update(
        {
            b"trellis_api_version": snapshot.version.encode("utf-8"),
            b"trellis_api_types": types_json.encode("utf-8"),
            b"trellis_api_fingerprint": fingerprint.encode("utf-8"),
        }
    )
    arrow_table = arrow_table.replace_schema_metadata(meta)

    def _write(tmp_path: str) -> None:
        pq.write_table(
            arrow_table,
            tmp_path,
            compression=settings.compression,
            row_group_size=settings.row_group_size,
        )

    write_atomic(path, _write)
    logger.debug("wrote API snapshot %s (%d elements)", path, arrow_table.num_rows)
    return {
        "path": path,
        "elements": arrow_table.num_rows,
        "types": len(snapshot.types),
        "bytes": os.path.getsize(path),
        "fingerprint": fingerprint,
    }
