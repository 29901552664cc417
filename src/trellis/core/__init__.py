"""
Core package aggregator for trellis contracts (identifiers, IO Types, state schemas, caches).

## Contracts (single source of truth)
- IDs: dotted element identifiers, parent/component parsing, archetype mapping.
- IOType: named descriptors with validators, state functions, and API metadata.
- StateSchema: value or composite description of one level's state.
- IOTypeCache: identity-preserving memoization of parametric IO Types.
- Types: leaf (NumberIO, StringIO, ...) and parametric (NullableIO, OrIO, ...) descriptors.
- Errors/Versioning/Serde: exception taxonomy, API version, canonical JSON and hashing.

## Notes
- Zero-IO policy: stdlib + pydantic only; no file/network IO and no logging.
- Descriptors are built once at import time and never mutated afterwards.
- CouldNotYetDeserializeError is the single transient error; everything else is fatal for
  the operation that raised it.

## Downstream usage
- trellis.dynamic: containers validate members against IO Types and derive child ids.
- trellis.state: the state engine serializes/applies state through IO Types.
- trellis.api: snapshots describe elements by IO Type metadata and archetypal ids.
- trellis.io: persists state documents and API snapshots with the core version.

## Examples
```python
from trellis.core import IOType, StateSchema, archetypal_id
from trellis.core.types import NumberIO

archetypal_id("sim.model.ballGroup.ball_2.positionProperty")
# 'sim.model.ballGroup.archetype.positionProperty'

class Ball:
    def __init__(self, radius=1.0):
        self.radius = radius

BallIO = IOType("BallIO", value_type=Ball, state_schema={"radius": NumberIO})
BallIO.to_state_object(Ball(2.5))  # {'radius': 2.5}
```
"""

from __future__ import annotations

from .cache import IOTypeCache, clear_all_caches
from .errors import (
    ApiValidationError,
    ConfigurationError,
    CouldNotYetDeserializeError,
    DynamicElementError,
    IdentifierError,
    StateRestoreError,
    StateValidationError,
    VersionMismatch,
)
from .ids import (
    append,
    archetypal_id,
    component_name,
    group_element_index,
    is_ancestor,
    parent_id,
    screen_id,
)
from .io_type import IOType, IOTypeMethod, ObjectIO
from .state_schema import StateSchema
from .validation import Validator
from .versioning import API_V, ApiVersion

__all__ = [
    "IOType",
    "IOTypeMethod",
    "ObjectIO",
    "StateSchema",
    "Validator",
    "IOTypeCache",
    "clear_all_caches",
    "append",
    "archetypal_id",
    "component_name",
    "group_element_index",
    "is_ancestor",
    "parent_id",
    "screen_id",
    "API_V",
    "ApiVersion",
    "ApiValidationError",
    "ConfigurationError",
    "CouldNotYetDeserializeError",
    "DynamicElementError",
    "IdentifierError",
    "StateRestoreError",
    "StateValidationError",
    "VersionMismatch",
]
