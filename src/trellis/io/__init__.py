"""
trellis.io: persistence of state documents and API snapshots.

## Responsibilities
- Configuration for the whole package (TrellisSettings: env > TOML > defaults).
- Canonical JSON state documents and Parquet API snapshots, written atomically
  (tmp → fsync → os.replace) with the API version embedded.
- Readers that reject incompatible versions with trellis.core.errors.VersionMismatch.

## Public API
- TrellisSettings: runtime configuration.
- Store: facade bound to settings with save/load helpers.
- write_state_document / read_state_document, write_api_snapshot / read_api_snapshot.

## Examples
```python
from trellis.io import Store, TrellisSettings
from trellis.state import StateEngine

store = Store(TrellisSettings(root_dir="out"))  # doctest: +SKIP
store.save_registry_state(StateEngine(registry), "checkpoint")  # doctest: +SKIP
store.restore_registry_state(StateEngine(registry), "checkpoint")  # doctest: +SKIP
```
"""

from __future__ import annotations

from .config import TrellisSettings
from .errors import IoConfigError, IoError, IoReadError, IoWriteError
from .read import read_api_snapshot, read_state_document
from .store import Store
from .write import write_api_snapshot, write_state_document

__all__ = [
    "IoConfigError",
    "IoError",
    "IoReadError",
    "IoWriteError",
    "Store",
    "TrellisSettings",
    "read_api_snapshot",
    "read_state_document",
    "write_api_snapshot",
    "write_state_document",
]
