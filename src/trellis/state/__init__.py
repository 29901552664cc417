"""
State capture and restore.

Public surface:
    - restoring_state, is_setting_state, current_session, StateSession
    - StateEngine, Applied, Deferred, RestoreReport
    - StateDocument, DELETED, state_delta, apply_delta
"""

from __future__ import annotations

from .document import DELETED, StateDocument, apply_delta, state_delta
from .engine import Applied, ApplyResult, Deferred, RestoreReport, StateEngine
from .session import StateSession, current_session, is_setting_state, restoring_state

__all__ = [
    "DELETED",
    "Applied",
    "ApplyResult",
    "Deferred",
    "RestoreReport",
    "StateDocument",
    "StateEngine",
    "StateSession",
    "apply_delta",
    "current_session",
    "is_setting_state",
    "restoring_state",
    "state_delta",
]
