"""
Core exception types raised by identifier parsing, IO Type construction, state
validation, dynamic element containers, and the state-restore protocol.

Provides typed exceptions for core-domain failures:
- ConfigurationError for malformed IO Types, state schemas, and container recipes.
- StateValidationError for instances or state values that do not match a declared schema.
- IdentifierError for identifiers with malformed segments.
- CouldNotYetDeserializeError for the one transient, retryable restore condition.
- DynamicElementError for misuse of dynamic element containers.
- StateRestoreError when a restore cannot make progress.
- VersionMismatch for API/state document version incompatibilities against API_V.
- ApiValidationError when a running registry departs from its reference API.

Notes:
    - This module uses only the Python standard library and has no side effects.
    - ConfigurationError signals a programming mistake and is never recovered inside trellis.
    - CouldNotYetDeserializeError is the only error the state engine requeues.

Examples:
    Distinguish the transient restore condition from a structural failure.

    >>> from trellis.core.errors import CouldNotYetDeserializeError, StateValidationError
    >>> issubclass(CouldNotYetDeserializeError, StateValidationError)
    False
"""

from __future__ import annotations

__all__ = [
    "ConfigurationError",
    "StateValidationError",
    "IdentifierError",
    "CouldNotYetDeserializeError",
    "DynamicElementError",
    "StateRestoreError",
    "VersionMismatch",
    "ApiValidationError",
]


class ConfigurationError(ValueError):
    """Malformed IO Type, state schema, or container recipe (fatal programming error)."""


class StateValidationError(ValueError):
    """Instance or state value failed validation against a validator or state schema."""


class IdentifierError(ValueError):
    """Identifier segment is malformed (e.g., contains the separator)."""


class CouldNotYetDeserializeError(Exception):
    """
    A state-application step depends on an element that does not exist yet.

    Raised when, for example, a reference points at a dynamic element that its container
    has not re-created yet. The state engine catches this per operation and retries the
    operation on a later pass.
    """

    def __init__(self, element_id: str | None = None) -> None:
        # Message is matched by callers; keep it stable.
        message = "CouldNotYetDeserializeError"
        if element_id is not None:
            message = f"{message}: {element_id}"
        super().__init__(message)
        self.element_id = element_id


class DynamicElementError(RuntimeError):
    """Dynamic element container used outside its contract."""


class StateRestoreError(RuntimeError):
    """
    A state restore stopped making progress with operations still pending.

    Attributes:
        pending (tuple[str, ...]): Identifiers whose state could not be applied.
    """

    def __init__(self, message: str, pending: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.pending = pending


class VersionMismatch(RuntimeError):
    """Incompatible or unexpected API/state document version encountered."""


class ApiValidationError(RuntimeError):
    """
    The running registry departs from its reference API.

    Attributes:
        mismatches (tuple[str, ...]): One description per violated rule.
    """

    def __init__(self, mismatches: tuple[str, ...]) -> None:
        super().__init__("API mismatches present:\n" + "\n".join(mismatches))
        self.mismatches = mismatches
