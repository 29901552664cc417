"""
Store facade for trellis.io.

Binds a TrellisSettings instance and offers save/load helpers for state documents and API
snapshots, plus ``save_registry_state`` / ``restore_registry_state`` that go through a
StateEngine. No IO happens at construction time.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

from .config import TrellisSettings
from .paths import api_dir, state_dir
from .read import read_api_snapshot, read_state_document
from .write import write_api_snapshot, write_state_document

if TYPE_CHECKING:
    from trellis.api.snapshot import ApiSnapshot
    from trellis.state.document import StateDocument
    from trellis.state.engine import RestoreReport, StateEngine

__all__ = ["Store"]


class Store:
    """
    Facade over the state and API directories under ``settings.root_dir``.

    Args:
        settings (TrellisSettings | None): Defaults to ``TrellisSettings.load()``.
    """

    def __init__(self, settings: TrellisSettings | None = None) -> None:
        self.settings = settings if settings is not None else TrellisSettings.load()

    # ---------------------------------------------------------------------
    # State documents
    # ---------------------------------------------------------------------
    def save_state(self, name: str, document: StateDocument) -> dict[str, Any]:
        return write_state_document(self.settings, name, document)

    def load_state(self, name: str) -> StateDocument:
        return read_state_document(self.settings, name)

    def state_names(self) -> list[str]:
        """Names of saved state documents, sorted."""
        return _names(state_dir(self.settings), ".json")

    def save_registry_state(self, engine: StateEngine, name: str) -> dict[str, Any]:
        """Capture ``engine.get_state()`` and save it under name."""
        from trellis.state.document import StateDocument

        return self.save_state(name, StateDocument.from_state(engine.get_state()))

    def restore_registry_state(self, engine: StateEngine, name: str) -> RestoreReport:
        """Load the named document and replay it with ``engine.set_state``."""
        document = self.load_state(name)
        return engine.set_state(document.state)

    # ---------------------------------------------------------------------
    # API snapshots
    # ---------------------------------------------------------------------
    def save_api(self, name: str, snapshot: ApiSnapshot) -> dict[str, Any]:
        return write_api_snapshot(self.settings, name, snapshot)

    def load_api(self, name: str) -> ApiSnapshot:
        return read_api_snapshot(self.settings, name)

    def api_names(self) -> list[str]:
        """Names of saved API snapshots, sorted."""
        return _names(api_dir(self.settings), ".parquet")


def _names(directory: str, suffix: str) -> list[str]:
    try:
        entries = os.listdir(directory)
    except FileNotFoundError:
        return []
    return sorted(e[: -len(suffix)] for e in entries if e.endswith(suffix))
