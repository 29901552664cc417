"""
Scoped "state restore in progress" context.

Any object can ask ``is_setting_state()`` to suppress side effects (notifications,
derived recomputation, undo history) while a saved state is being replayed. The flag is
held by a ``StateSession`` bound to a ContextVar for the duration of ``restoring_state()``,
so it cannot leak past the end of the restore, even when the restore raises.

Notes:
    - Sessions do not nest: entering ``restoring_state()`` while one is active raises
      StateRestoreError.
    - Containers refuse to create dynamic elements during a session unless the call comes
      from the state engine (``from_state_setting=True``).

Examples:
    >>> from trellis.state.session import is_setting_state, restoring_state
    >>> is_setting_state()
    False
    >>> with restoring_state() as session:
    ...     is_setting_state()
    True
    >>> is_setting_state()
    False
"""

from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from trellis.core.errors import StateRestoreError

__all__ = ["StateSession", "current_session", "is_setting_state", "restoring_state"]


@dataclass
class StateSession:
    """
    Book-keeping for one state restore.

    Attributes:
        created (list[str]): Identifiers of dynamic elements re-created so far.
        applied (list[str]): Identifiers whose state has been applied so far.
        passes (int): Number of completed passes.
    """

    created: list[str] = field(default_factory=list)
    applied: list[str] = field(default_factory=list)
    passes: int = 0


_ACTIVE_SESSION: contextvars.ContextVar[StateSession | None] = contextvars.ContextVar(
    "trellis_state_session", default=None
)


def current_session() -> StateSession | None:
    """The active restore session, or None."""
    return _ACTIVE_SESSION.get()


def is_setting_state() -> bool:
    """True while a state restore is in progress in this context."""
    return _ACTIVE_SESSION.get() is not None


@contextmanager
def restoring_state() -> Iterator[StateSession]:
    """
    Open a restore session for the enclosed block.

    Raises:
        StateRestoreError: If a session is already active.
    """
    if _ACTIVE_SESSION.get() is not None:
        raise StateRestoreError("a state restore is already in progress")
    session = StateSession()
    token = _ACTIVE_SESSION.set(session)
    try:
        yield session
    finally:
        _ACTIVE_SESSION.reset(token)
