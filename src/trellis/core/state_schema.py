"""
State schemas: the declared shape of one IO Type level's serialized state.

A StateSchema is either
- a value schema: an opaque state value checked by a Validator and shown in the API as a
  display string, or
- a composite schema: a record whose keys each map to a contained IO Type, optionally with
  a parallel private record stored under ``"_private"`` in the state value.

Responsibilities
- Check one level of a state value and report which keys that level describes, so the
  owning IOType can close the check at the root of its hierarchy.
- Provide default serialization/application for composite schemas by reading and writing
  attributes on the instance.
- Describe itself for the static API snapshot.

Notes:
    - Zero-IO; no logging.
    - Composite keys are checked for presence here; unknown keys are rejected by
      ``IOType.is_state_object_valid`` once every level has reported its keys.

Examples:
    >>> from trellis.core.state_schema import StateSchema
    >>> from trellis.core.types import NumberIO, StringIO
    >>> schema = StateSchema({"x": NumberIO, "label": StringIO})
    >>> schema.is_composite(), schema.api_description()
    (True, {'label': 'StringIO', 'x': 'NumberIO'})
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .constants import PRIVATE_STATE_KEY
from .errors import ConfigurationError, StateValidationError
from .validation import Validator

if TYPE_CHECKING:
    from .io_type import IOType

__all__ = ["StateSchema"]


class StateSchema:
    """
    Value or composite state schema for a single IO Type level.

    Args:
        composite_schema (Mapping[str, IOType] | None): Public keys and their IO Types. A
            nested mapping under ``"_private"`` is accepted as the private schema.
        private_schema (Mapping[str, IOType] | None): Private keys and their IO Types.
        display_string (str): API label for a value schema.
        validator (Validator | None): Validator for a value schema.

    Raises:
        ConfigurationError: If composite and value options are mixed, or neither is given.
    """

    def __init__(
        self,
        composite_schema: Mapping[str, Any] | None = None,
        *,
        private_schema: Mapping[str, IOType] | None = None,
        display_string: str = "",
        validator: Validator | None = None,
    ) -> None:
        composite_given = composite_schema is not None or private_schema is not None
        value_given = validator is not None or bool(display_string)
        if composite_given and value_given:
            raise ConfigurationError(
                "state schema is either composite or a value, not both"
            )
        if not composite_given and validator is None:
            raise ConfigurationError("value state schema requires a validator")

        self.display_string = display_string
        self.validator = validator
        self.composite_schema: dict[str, IOType] | None = None
        self.private_schema: dict[str, IOType] = {}

        if composite_given:
            public = dict(composite_schema or {})
            nested_private = public.pop(PRIVATE_STATE_KEY, None)
            if nested_private is not None and private_schema is not None:
                raise ConfigurationError("private schema given twice")
            self.composite_schema = public
            self.private_schema = dict(nested_private or private_schema or {})
            for key, io_type in [*public.items(), *self.private_schema.items()]:
                if not hasattr(io_type, "type_name"):
                    raise ConfigurationError(f"schema key {key!r} must map to an IOType")

    @classmethod
    def as_value(cls, display_string: str, validator: Validator) -> StateSchema:
        """Create a value schema validated by ``validator``."""
        if validator is None:
            raise ConfigurationError("validator required")
        return cls(display_string=display_string, validator=validator)

    def __repr__(self) -> str:
        if self.composite_schema is not None:
            return f"StateSchema({self.api_description()!r})"
        return f"StateSchema.as_value({self.display_string!r})"

    def is_composite(self) -> bool:
        """True for composite (record) schemas."""
        return self.composite_schema is not None

    def keys(self) -> list[str]:
        """Public keys described by this level (empty for value schemas)."""
        return list(self.composite_schema or {})

    def private_keys(self) -> list[str]:
        """Private keys described by this level."""
        return list(self.private_schema)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def check_state_object_valid(
        self,
        state: Any,
        to_assert: bool,
        public_keys: list[str],
        private_keys: list[str],
        type_name: str = "",
    ) -> bool | None:
        """
        Check a state value against this level only.

        Args:
            state (Any): Candidate state value.
            to_assert (bool): Raise StateValidationError on the first problem instead of
                returning False.
            public_keys (list[str]): Accumulator of public keys claimed so far (mutated).
            private_keys (list[str]): Accumulator of private keys claimed so far (mutated).
            type_name (str): Owning IO Type name, used in messages.

        Returns:
            bool | None: For value schemas, whether the value is valid. For composite
            schemas, False when a described key is missing or invalid, otherwise None
            to signal that the owning type must continue the walk up its hierarchy.

        Raises:
            StateValidationError: When to_assert is True and the value is invalid.
        """
        if self.composite_schema is None:
            assert self.validator is not None
            reason = self.validator.failure(state)
            if reason is not None and to_assert:
                raise StateValidationError(f"{type_name}: {reason}")
            return reason is None

        if not isinstance(state, Mapping):
            return _fail(
                to_assert,
                f"{type_name}: composite state must be a mapping, got {type(state).__name__}",
            )

        valid: bool | None = None
        for key, io_type in self.composite_schema.items():
            public_keys.append(key)
            if not _check_key(state, key, io_type, to_assert, type_name, "public"):
                valid = False

        if self.private_schema:
            private_state = state.get(PRIVATE_STATE_KEY)
            if not isinstance(private_state, Mapping):
                private_keys.extend(self.private_schema)
                return _fail(to_assert, f"{type_name}: missing private state record")
            for key, io_type in self.private_schema.items():
                private_keys.append(key)
                if not _check_key(private_state, key, io_type, to_assert, type_name, "private"):
                    valid = False
        return valid

    # ------------------------------------------------------------------
    # Default conversions for composite schemas
    # ------------------------------------------------------------------

    def default_to_state_object(self, instance: Any) -> dict[str, Any]:
        """
        Serialize an instance by reading one attribute per schema key.

        Each key is read from ``_<key>`` when the instance has it, otherwise from the key
        without any leading underscore; the value is converted with the key's IO Type.
        """
        if self.composite_schema is None:
            raise ConfigurationError("default_to_state_object only applies to composite schemas")
        state: dict[str, Any] = {
            key: io_type.to_state_object(getattr(instance, _accessor(key, instance)))
            for key, io_type in self.composite_schema.items()
        }
        if self.private_schema:
            state[PRIVATE_STATE_KEY] = {
                key: io_type.to_state_object(getattr(instance, _accessor(key, instance)))
                for key, io_type in self.private_schema.items()
            }
        return state

    def default_apply_state(self, instance: Any, state: Mapping[str, Any]) -> None:
        """
        Apply a composite state value attribute by attribute.

        Sub-types whose ``default_deserialization_method`` is ``"from_state_object"`` are
        rebuilt and assigned; ``"apply_state"`` sub-types are updated in place.

        Raises:
            StateValidationError: If a schema key is absent from the state value.
        """
        if self.composite_schema is None:
            raise ConfigurationError("default_apply_state only applies to composite schemas")
        _apply_record(instance, self.composite_schema, state)
        if self.private_schema:
            _apply_record(instance, self.private_schema, state.get(PRIVATE_STATE_KEY) or {})

    # ------------------------------------------------------------------
    # API description
    # ------------------------------------------------------------------

    def related_types(self) -> list[IOType]:
        """IO Types referenced by a composite schema (public then private)."""
        if self.composite_schema is None:
            return []
        return [*self.composite_schema.values(), *self.private_schema.values()]

    def api_description(self) -> str | dict[str, Any]:
        """Display string for value schemas, ``{key: typeName}`` for composite ones."""
        if self.composite_schema is None:
            return self.display_string
        description: dict[str, Any] = {
            key: io_type.type_name for key, io_type in sorted(self.composite_schema.items())
        }
        if self.private_schema:
            description[PRIVATE_STATE_KEY] = {
                key: io_type.type_name for key, io_type in sorted(self.private_schema.items())
            }
        return description


def _fail(to_assert: bool, message: str) -> bool:
    if to_assert:
        raise StateValidationError(message)
    return False


def _check_key(
    record: Mapping[str, Any],
    key: str,
    io_type: IOType,
    to_assert: bool,
    type_name: str,
    level: str,
) -> bool:
    if key not in record:
        return _fail(to_assert, f"{type_name}: {level} key {key!r} in schema but not in state")
    if not io_type.is_state_object_valid(record[key]):
        return _fail(
            to_assert,
            f"{type_name}: {level} key {key!r} is not valid for {io_type.type_name}: "
            f"{record[key]!r}",
        )
    return True


def _accessor(key: str, instance: Any) -> str:
    no_underscore = key[1:] if key.startswith("_") else key
    underscored = f"_{no_underscore}"
    return underscored if hasattr(instance, underscored) else no_underscore


def _apply_record(instance: Any, schema: Mapping[str, IOType], record: Mapping[str, Any]) -> None:
    for key, io_type in schema.items():
        if key not in record:
            raise StateValidationError(f"state value does not have expected schema key: {key}")
        name = _accessor(key, instance)
        if io_type.default_deserialization_method == "from_state_object":
            setattr(instance, name, io_type.from_state_object(record[key]))
        else:
            io_type.apply_state(getattr(instance, name), record[key])
