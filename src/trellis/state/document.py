"""
Serialized state documents and deltas.

A state document is a flat mapping from element identifier to state value, stamped with
the API version that produced it. A delta against a baseline carries changed or added
entries plus the DELETED marker for identifiers present in the baseline but gone from the
current state (typically disposed dynamic elements).

Examples:
    >>> from trellis.state.document import DELETED, apply_delta, state_delta
    >>> baseline = {"a.x": 1, "a.y": 2}
    >>> delta = state_delta(baseline, {"a.x": 1, "a.z": 3})
    >>> delta == {"a.y": DELETED, "a.z": 3}
    True
    >>> apply_delta(baseline, delta)
    {'a.x': 1, 'a.z': 3}
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trellis.core.errors import VersionMismatch
from trellis.core.ids import segments
from trellis.core.serde import hash_state, json_dumps_canonical
from trellis.core.versioning import API_V, format_version, is_compatible, parse_version

__all__ = ["DELETED", "StateDocument", "state_delta", "apply_delta"]

# Deletion marker used in deltas.
DELETED: str = "DELETED"


class StateDocument(BaseModel):
    """
    Versioned flat state mapping.

    Attributes:
        version (str): ``major.minor@date`` of the API that produced the document.
        state (dict[str, Any]): Identifier -> state value.
        is_delta (bool): True if ``state`` is a delta against some baseline and may hold
            DELETED markers.

    Examples:
        >>> doc = StateDocument.from_state({"sim.model.count": 3})
        >>> doc.check_compatible()
        >>> StateDocument.model_validate_json(doc.to_json()) == doc
        True
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    version: str = Field(default_factory=lambda: format_version(API_V))
    state: dict[str, Any] = Field(default_factory=dict)
    is_delta: bool = False

    @field_validator("version")
    @classmethod
    def _check_version_format(cls, v: str) -> str:
        try:
            parse_version(v)
        except VersionMismatch as exc:
            raise ValueError(str(exc)) from exc
        return v

    @field_validator("state")
    @classmethod
    def _check_identifiers(cls, v: dict[str, Any]) -> dict[str, Any]:
        for element_id in v:
            if not element_id or not all(segments(element_id)):
                raise ValueError(f"malformed element identifier: {element_id!r}")
        return v

    @classmethod
    def from_state(cls, state: Mapping[str, Any]) -> StateDocument:
        return cls(state=dict(state))

    def check_compatible(self) -> None:
        """
        Raises:
            VersionMismatch: If the document was produced by an incompatible API version.
        """
        found = parse_version(self.version)
        if not is_compatible(found):
            raise VersionMismatch(
                f"state document version {self.version} is not compatible with "
                f"{format_version(API_V)}"
            )

    def fingerprint(self) -> str:
        """SHA-256 of the canonical JSON of ``state``."""
        return hash_state(self.state)

    def to_json(self) -> str:
        """Canonical JSON of the whole document."""
        return json_dumps_canonical(self.model_dump(mode="json"))

    def delta_from(self, baseline: StateDocument) -> StateDocument:
        return StateDocument(
            version=self.version, state=state_delta(baseline.state, self.state), is_delta=True
        )


def state_delta(baseline: Mapping[str, Any], current: Mapping[str, Any]) -> dict[str, Any]:
    """
    Entries of current that differ from baseline, plus DELETED for removed identifiers.

    Returns:
        dict[str, Any]: Sorted by identifier.
    """
    delta: dict[str, Any] = {}
    for element_id in sorted(set(baseline) | set(current)):
        if element_id not in current:
            delta[element_id] = DELETED
        elif element_id not in baseline or baseline[element_id] != current[element_id]:
            delta[element_id] = current[element_id]
    return delta


def apply_delta(baseline: Mapping[str, Any], delta: Mapping[str, Any]) -> dict[str, Any]:
    """Apply a delta produced by state_delta to a baseline, returning a new mapping."""
    result = dict(baseline)
    for element_id, value in delta.items():
        if value == DELETED:
            result.pop(element_id, None)
        else:
            result[element_id] = value
    return result
