"""
IO Types: named descriptors of how a runtime type converts to and from plain-data state.

Each IOType carries
- a validator for instances (see trellis.core.validation.Validator),
- the four state functions (to_state_object, from_state_object,
  state_to_args_for_constructor, apply_state), inherited from the supertype unless given,
- an optional StateSchema describing this level's share of the state value,
- API metadata: documentation, remote methods, events, metadata and data defaults,
  parameter types for parametric descriptors.

Hierarchy
- Single inheritance through an owning ``supertype`` reference. ``ObjectIO`` is the unique
  root: it has no supertype and supplies all four state functions itself.
- Descriptors are immutable after construction; all configuration checks happen in
  ``__init__`` and raise ConfigurationError.

State validation walk
- ``is_state_object_valid`` checks this level's schema, then recurses into the supertype,
  accumulating the keys each level claims. At the root, any key present in a composite
  state value and not claimed by some level is rejected. This lets composite types extend
  each other across levels while stale or unknown fields are still caught.

Examples:
    >>> from trellis.core.io_type import IOType, ObjectIO
    >>> from trellis.core.types import NumberIO
    >>> class Point:
    ...     def __init__(self, x=0.0, y=0.0):
    ...         self.x, self.y = x, y
    >>> PointIO = IOType(
    ...     "PointIO",
    ...     value_type=Point,
    ...     state_schema={"x": NumberIO, "y": NumberIO},
    ...     from_state_object=lambda s: Point(s["x"], s["y"]),
    ... )
    >>> PointIO.to_state_object(Point(1, 2))
    {'x': 1, 'y': 2}
    >>> PointIO.supertype is ObjectIO
    True
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Final, Literal

from .constants import (
    ELEMENT_METADATA_DEFAULTS,
    IO_TYPE_SUFFIX,
    OBJECT_IO_TYPE_NAME,
    PRIVATE_STATE_KEY,
    SEPARATOR,
)
from .errors import ConfigurationError, StateValidationError
from .state_schema import StateSchema
from .validation import Validator

__all__ = [
    "DeserializationMethod",
    "IOTypeMethod",
    "IOType",
    "ObjectIO",
]

DeserializationMethod = Literal["from_state_object", "apply_state"]

_PARAMETER_SPLIT_RE: Final[re.Pattern[str]] = re.compile(r"[<(]")
_DESERIALIZATION_METHODS: Final[frozenset[str]] = frozenset({"from_state_object", "apply_state"})

# Options that from_core_type derives from the core class itself.
_CORE_TYPE_OWNED_OPTIONS: Final[tuple[str, ...]] = (
    "value_type",
    "to_state_object",
    "state_to_args_for_constructor",
    "apply_state",
    "state_schema",
)

# Marks "supertype not given" so that None can mean "this is the root".
_DEFAULT_SUPERTYPE: Final[Any] = object()


@dataclass(frozen=True)
class IOTypeMethod:
    """
    A remotely invocable method declared by an IO Type.

    Attributes:
        return_type (IOType): IO Type of the return value.
        parameter_types (tuple[IOType, ...]): IO Types of the positional parameters.
        implementation (Callable[..., Any]): Called as ``implementation(instance, *args)``.
        documentation (str): Non-empty description for the API.
        invocable_for_read_only_elements (bool): Whether the method may be invoked on an
            element flagged read-only.
    """

    return_type: IOType
    parameter_types: tuple[IOType, ...]
    implementation: Callable[..., Any]
    documentation: str
    invocable_for_read_only_elements: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.parameter_types, (list, tuple)):
            object.__setattr__(self, "parameter_types", tuple(self.parameter_types))
        else:
            raise ConfigurationError("method parameter_types must be a sequence of IO Types")
        if not callable(self.implementation):
            raise ConfigurationError("method implementation must be callable")
        if not isinstance(self.documentation, str) or not self.documentation:
            raise ConfigurationError("method documentation must be a non-empty string")
        if not isinstance(self.invocable_for_read_only_elements, bool):
            raise ConfigurationError(
                "invocable_for_read_only_elements must be a bool, "
                f"got {self.invocable_for_read_only_elements!r}"
            )

    def invoke(self, instance: Any, *args: Any) -> Any:
        """Validate arguments against the parameter types, then call the implementation."""
        if len(args) != len(self.parameter_types):
            raise StateValidationError(
                f"expected {len(self.parameter_types)} arguments, got {len(args)}"
            )
        for arg, parameter_type in zip(args, self.parameter_types):
            parameter_type.validate_value(arg)
        return self.implementation(instance, *args)


class IOType:
    """
    Descriptor of how instances of a runtime type serialize, deserialize, and appear in
    the public API.

    Args:
        type_name (str): Unique name ending in ``IO`` (before any ``<...>``/``(...)``
            parameter suffix); dots are not allowed.
        supertype (IOType | None): Parent descriptor. Defaults to ObjectIO; None is only
            valid for the root.
        validator (Validator | None): Instance validator. Alternatively pass value_type,
            valid_values, is_valid_value, or annotation and one is built.
        documentation (str | None): API documentation; defaults to "IO Type for <Name>".
        methods (Mapping[str, IOTypeMethod] | None): Remote methods by name.
        method_order (Sequence[str]): Display order; every entry must be in methods.
        events (Sequence[str]): Event names; must not repeat any ancestor's events.
        metadata_defaults (Mapping[str, Any] | None): Per-instance metadata defaults; keys
            must not collide with any ancestor's keys.
        data_defaults (Mapping[str, Any] | None): Per-instance data defaults.
        parameter_types (Sequence[IOType]): Parameters of a parametric descriptor.
        state_schema (StateSchema | Mapping | Callable[[IOType], StateSchema | Mapping] | None):
            This level's schema. A mapping is a composite schema; a callable receives the
            new IOType, which lets schemas refer to the type being defined.
        to_state_object, from_state_object, state_to_args_for_constructor, apply_state:
            State functions; each is inherited from the supertype when omitted.
        add_child_element (Callable | None): Container hook used by the state engine to
            re-create a dynamic member; inherited when omitted.
        default_deserialization_method (str): How a composite parent applies state to
            fields of this type: ``"from_state_object"`` or ``"apply_state"``.
        is_function_type (bool): True for descriptors of callables.

    Raises:
        ConfigurationError: On any malformed configuration.
    """

    def __init__(
        self,
        type_name: str,
        *,
        supertype: IOType | None = _DEFAULT_SUPERTYPE,
        validator: Validator | None = None,
        value_type: type | tuple[type, ...] | None = None,
        valid_values: Sequence[Any] | None = None,
        is_valid_value: Callable[[Any], bool] | None = None,
        annotation: Any = None,
        validation_message: str = "",
        documentation: str | None = None,
        methods: Mapping[str, IOTypeMethod] | None = None,
        method_order: Sequence[str] = (),
        events: Sequence[str] = (),
        metadata_defaults: Mapping[str, Any] | None = None,
        data_defaults: Mapping[str, Any] | None = None,
        parameter_types: Sequence[IOType] = (),
        state_schema: Any = None,
        to_state_object: Callable[[Any], Any] | None = None,
        from_state_object: Callable[[Any], Any] | None = None,
        state_to_args_for_constructor: Callable[[Any], list[Any]] | None = None,
        apply_state: Callable[[Any, Any], None] | None = None,
        add_child_element: Callable[..., Any] | None = None,
        default_deserialization_method: DeserializationMethod = "from_state_object",
        is_function_type: bool = False,
    ) -> None:
        if supertype is _DEFAULT_SUPERTYPE:
            supertype = ObjectIO
        core_name = _check_type_name(type_name)
        if supertype is None and type_name != OBJECT_IO_TYPE_NAME:
            raise ConfigurationError(f"{type_name}: supertype is required")
        if supertype is not None and not isinstance(supertype, IOType):
            raise ConfigurationError(f"{type_name}: supertype must be an IOType")

        self.type_name = type_name
        self.supertype = supertype
        self.validator = _build_validator(
            type_name,
            validator,
            value_type=value_type,
            valid_values=valid_values,
            is_valid_value=is_valid_value,
            annotation=annotation,
            validation_message=validation_message,
        )
        self.documentation = (
            documentation if documentation is not None else f"IO Type for {core_name}"
        )
        if not isinstance(self.documentation, str) or not self.documentation:
            raise ConfigurationError(f"{type_name}: documentation must be a non-empty string")

        self.methods = _check_methods(type_name, methods)
        self.method_order = tuple(method_order)
        for method_name in self.method_order:
            if method_name not in self.methods:
                raise ConfigurationError(
                    f"{type_name}: method_order names an unknown method: {method_name}"
                )

        self.events = tuple(events)
        self.metadata_defaults: Mapping[str, Any] = MappingProxyType(dict(metadata_defaults or {}))
        self.data_defaults: Mapping[str, Any] = MappingProxyType(dict(data_defaults or {}))
        if supertype is not None:
            inherited_events = {e for t in supertype.type_hierarchy() for e in t.events}
            for event in self.events:
                if event in inherited_events:
                    raise ConfigurationError(
                        f"{type_name}: event already declared by an ancestor: {event}"
                    )
            inherited_metadata = supertype.all_metadata_defaults()
            for key in self.metadata_defaults:
                if key in inherited_metadata:
                    raise ConfigurationError(
                        f"{type_name}: metadata default already declared by an ancestor: {key}"
                    )

        self.parameter_types = tuple(parameter_types)
        for parameter_type in self.parameter_types:
            if not isinstance(parameter_type, IOType):
                raise ConfigurationError(f"{type_name}: parameter types must be IO Types")

        if default_deserialization_method not in _DESERIALIZATION_METHODS:
            raise ConfigurationError(
                f"{type_name}: default_deserialization_method must be one of "
                f"{sorted(_DESERIALIZATION_METHODS)}, got {default_deserialization_method!r}"
            )
        self.default_deserialization_method: DeserializationMethod = default_deserialization_method
        self.is_function_type = bool(is_function_type)

        # State functions
        state_functions = {
            "to_state_object": to_state_object,
            "from_state_object": from_state_object,
            "state_to_args_for_constructor": state_to_args_for_constructor,
            "apply_state": apply_state,
            "add_child_element": add_child_element,
        }
        for name, fn in state_functions.items():
            if fn is not None and not callable(fn):
                raise ConfigurationError(f"{type_name}: {name} must be callable")
        if supertype is None:
            missing = [
                name
                for name, fn in state_functions.items()
                if fn is None and name != "add_child_element"
            ]
            if missing:
                raise ConfigurationError(
                    f"{type_name}: the root IO Type must supply {', '.join(missing)}"
                )
        self._to_state_object_supplied = to_state_object is not None
        self._apply_state_supplied = apply_state is not None
        self._state_schema_supplied = state_schema is not None
        # Applied state is validated when any non-root level adds application logic.
        self._validates_applied_state = supertype is not None and (
            self._apply_state_supplied
            or self._state_schema_supplied
            or supertype._validates_applied_state
        )
        self._to_state_object_fn = (
            to_state_object or supertype.to_state_object  # type: ignore[union-attr]
        )
        self._apply_state_fn = (
            apply_state or supertype._apply_unvalidated  # type: ignore[union-attr]
        )
        self._from_state_object_fn = (
            from_state_object or supertype._from_state_object_fn  # type: ignore[union-attr]
        )
        self._state_to_args_fn = (
            state_to_args_for_constructor or supertype._state_to_args_fn  # type: ignore[union-attr]
        )
        self.add_child_element = add_child_element or (
            supertype.add_child_element if supertype is not None else None
        )

        self.state_schema = _resolve_state_schema(type_name, state_schema, self)

    def __repr__(self) -> str:
        return f"IOType({self.type_name!r})"

    # ------------------------------------------------------------------
    # Hierarchy
    # ------------------------------------------------------------------

    def type_hierarchy(self) -> list[IOType]:
        """This type followed by each supertype up to the root."""
        chain: list[IOType] = []
        io_type: IOType | None = self
        while io_type is not None:
            chain.append(io_type)
            io_type = io_type.supertype
        return chain

    def extends(self, other: IOType) -> bool:
        """True if other is a strict ancestor of this type."""
        return other in self.type_hierarchy()[1:]

    def all_metadata_defaults(self) -> dict[str, Any]:
        """Metadata defaults merged from the root down to this level."""
        merged: dict[str, Any] = {}
        for io_type in reversed(self.type_hierarchy()):
            merged.update(io_type.metadata_defaults)
        return merged

    def all_data_defaults(self) -> dict[str, Any]:
        """Data defaults merged from the root down to this level."""
        merged: dict[str, Any] = {}
        for io_type in reversed(self.type_hierarchy()):
            merged.update(io_type.data_defaults)
        return merged

    def all_events(self) -> list[str]:
        """Events declared anywhere in the hierarchy, root first."""
        return [e for io_type in reversed(self.type_hierarchy()) for e in io_type.events]

    def all_methods(self) -> dict[str, IOTypeMethod]:
        """Methods declared anywhere in the hierarchy; subtypes win on name clashes."""
        merged: dict[str, IOTypeMethod] = {}
        for io_type in reversed(self.type_hierarchy()):
            merged.update(io_type.methods)
        return merged

    # ------------------------------------------------------------------
    # Instance validation
    # ------------------------------------------------------------------

    def is_valid_value(self, value: Any) -> bool:
        """True if value passes this type's validator."""
        return self.validator.is_valid(value)

    def validate_value(self, value: Any) -> None:
        """Raise StateValidationError if value fails this type's validator."""
        self.validator.validate(value, context=self.type_name)

    # ------------------------------------------------------------------
    # State functions
    # ------------------------------------------------------------------

    def to_state_object(self, instance: Any) -> Any:
        """
        Serialize an instance.

        The instance is validated first. A composite schema at this level with no
        to_state_object of its own serializes attribute by attribute, on top of whatever
        record the supertype produces. When this level adds conversion or schema logic, the
        result is validated against the whole hierarchy.

        Raises:
            StateValidationError: If the instance or the produced state is invalid.
        """
        self.validate_value(instance)
        if self._uses_default_conversion(self._to_state_object_supplied):
            state = self.state_schema.default_to_state_object(instance)  # type: ignore[union-attr]
            base = self.supertype.to_state_object(instance) if self.supertype else None
            if isinstance(base, Mapping):
                state = _merge_records(base, state)
        else:
            state = self._to_state_object_fn(instance)
        if self._to_state_object_supplied or self._state_schema_supplied:
            self.validate_state_object(state)
        return state

    def from_state_object(self, state: Any) -> Any:
        """Rebuild a value from its state (for types reconstructed by value)."""
        return self._from_state_object_fn(state)

    def state_to_args_for_constructor(self, state: Any) -> list[Any]:
        """Constructor arguments for re-creating a dynamic element from its state."""
        return list(self._state_to_args_fn(state))

    def apply_state(self, instance: Any, state: Any) -> None:
        """
        Apply a state value onto an existing instance.

        The instance is validated first. When some level below the root adds application
        or schema logic, the state is validated against the instance's own IO Type (which
        may be a subtype of this one).

        Raises:
            StateValidationError: If the instance or state value is invalid.
            CouldNotYetDeserializeError: Propagated from state functions that reference
                elements that do not exist yet.
        """
        self.validate_value(instance)
        if self._validates_applied_state:
            owner = getattr(instance, "io_type", None)
            (owner if isinstance(owner, IOType) else self).validate_state_object(state)
        self._apply_unvalidated(instance, state)

    def _apply_unvalidated(self, instance: Any, state: Any) -> None:
        if self._uses_default_conversion(self._apply_state_supplied):
            if self.supertype is not None:
                self.supertype._apply_unvalidated(instance, state)
            self.state_schema.default_apply_state(instance, state)  # type: ignore[union-attr]
        else:
            self._apply_state_fn(instance, state)

    def _uses_default_conversion(self, function_supplied: bool) -> bool:
        return (
            not function_supplied
            and self._state_schema_supplied
            and self.state_schema is not None
            and self.state_schema.is_composite()
        )

    # ------------------------------------------------------------------
    # State validation
    # ------------------------------------------------------------------

    def is_state_object_valid(
        self,
        state: Any,
        to_assert: bool = False,
        public_keys: list[str] | None = None,
        private_keys: list[str] | None = None,
    ) -> bool:
        """
        Check that a state value is exactly described by this type's schema chain.

        Args:
            state (Any): Candidate state value.
            to_assert (bool): Raise StateValidationError instead of returning False.
            public_keys (list[str] | None): Keys claimed by subtypes (internal).
            private_keys (list[str] | None): Private keys claimed by subtypes (internal).

        Returns:
            bool: Whether the state value is valid.
        """
        public_keys = [] if public_keys is None else public_keys
        private_keys = [] if private_keys is None else private_keys

        if self.state_schema is not None:
            valid_so_far = self.state_schema.check_state_object_valid(
                state, to_assert, public_keys, private_keys, self.type_name
            )
            # None: composite level passed, keep walking up.
            if valid_so_far is not None:
                return valid_so_far

        if self.supertype is not None:
            return self.supertype.is_state_object_valid(state, to_assert, public_keys, private_keys)

        if not isinstance(state, Mapping):
            return True

        valid = True
        for key in state:
            if key == PRIVATE_STATE_KEY or key in public_keys:
                continue
            valid = False
            if to_assert:
                raise StateValidationError(
                    f"state provided a public key that is not in the schema: {key}"
                )
        private_state = state.get(PRIVATE_STATE_KEY)
        if isinstance(private_state, Mapping):
            for key in private_state:
                if key in private_keys:
                    continue
                valid = False
                if to_assert:
                    raise StateValidationError(
                        f"state provided a private key that is not in the schema: {key}"
                    )
        return valid

    def validate_state_object(self, state: Any) -> None:
        """Raise StateValidationError unless is_state_object_valid(state) holds."""
        if not self.is_state_object_valid(state, True):
            raise StateValidationError(f"{self.type_name}: invalid state value {state!r}")

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_core_type(cls, type_name: str, core_type: type, **options: Any) -> IOType:
        """
        Build an IO Type whose state functions are forwarded to a core class.

        Read from ``core_type``:
        - ``STATE_SCHEMA`` (class attribute, required): StateSchema, mapping, or callable.
        - ``to_state_object(self)`` and ``apply_state(self, state)`` instance methods.
        - ``from_state_object(state)`` and ``state_to_args_for_constructor(state)`` static or
          class methods.

        Args:
            type_name (str): Name of the new IO Type.
            core_type (type): Class whose instances the IO Type describes.
            **options: Any other IOType options (not the ones derived here).

        Raises:
            ConfigurationError: If options override a derived option or STATE_SCHEMA is
                missing.
        """
        for name in _CORE_TYPE_OWNED_OPTIONS:
            if name in options:
                raise ConfigurationError(f"from_core_type sets its own {name}")
        if not hasattr(core_type, "STATE_SCHEMA"):
            raise ConfigurationError(f"{core_type.__name__} must define STATE_SCHEMA")

        derived: dict[str, Any] = {
            "value_type": core_type,
            "state_schema": core_type.STATE_SCHEMA,
        }
        if callable(getattr(core_type, "to_state_object", None)):
            derived["to_state_object"] = lambda instance: instance.to_state_object()
        if callable(getattr(core_type, "apply_state", None)):
            derived["apply_state"] = lambda instance, state: instance.apply_state(state)
        if callable(getattr(core_type, "from_state_object", None)):
            derived["from_state_object"] = core_type.from_state_object
        if callable(getattr(core_type, "state_to_args_for_constructor", None)):
            derived["state_to_args_for_constructor"] = core_type.state_to_args_for_constructor
        return cls(type_name, **derived, **options)


def _check_type_name(type_name: str) -> str:
    if not isinstance(type_name, str) or not type_name:
        raise ConfigurationError("IO Type name must be a non-empty string")
    if SEPARATOR in type_name:
        raise ConfigurationError(f"dots should not appear in IO Type names: {type_name}")
    head = _PARAMETER_SPLIT_RE.split(type_name, maxsplit=1)[0]
    if not head.endswith(IO_TYPE_SUFFIX) or head == IO_TYPE_SUFFIX:
        raise ConfigurationError(f"IO Type name must end with {IO_TYPE_SUFFIX}: {type_name}")
    return head[: -len(IO_TYPE_SUFFIX)]


def _build_validator(
    type_name: str,
    validator: Validator | None,
    **checks: Any,
) -> Validator:
    message = checks.pop("validation_message")
    given = {k: v for k, v in checks.items() if v is not None}
    if validator is not None:
        if given:
            raise ConfigurationError(f"{type_name}: pass either validator or its checks, not both")
        return validator
    if not given:
        raise ConfigurationError(f"{type_name}: a validator is required")
    return Validator(**given, validation_message=message)


def _check_methods(type_name: str, methods: Mapping[str, Any] | None) -> dict[str, IOTypeMethod]:
    checked: dict[str, IOTypeMethod] = {}
    for name, method in (methods or {}).items():
        if isinstance(method, Mapping):
            method = IOTypeMethod(**method)
        if not isinstance(method, IOTypeMethod):
            raise ConfigurationError(f"{type_name}: method {name!r} must be an IOTypeMethod")
        checked[name] = method
    return checked


def _resolve_state_schema(type_name: str, state_schema: Any, io_type: IOType) -> StateSchema | None:
    if state_schema is None:
        return None
    if callable(state_schema) and not isinstance(state_schema, StateSchema):
        state_schema = state_schema(io_type)
    if isinstance(state_schema, Mapping):
        state_schema = StateSchema(state_schema)
    if not isinstance(state_schema, StateSchema):
        raise ConfigurationError(f"{type_name}: state_schema must be a StateSchema or mapping")
    return state_schema


def _merge_records(base: Mapping[str, Any], own: dict[str, Any]) -> dict[str, Any]:
    merged = {**base, **own}
    if PRIVATE_STATE_KEY in base and PRIVATE_STATE_KEY in own:
        merged[PRIVATE_STATE_KEY] = {**base[PRIVATE_STATE_KEY], **own[PRIVATE_STATE_KEY]}
    return merged


def _root_to_state_object(instance: Any) -> None:
    return None


def _root_from_state_object(state: Any) -> None:
    return None


def _root_state_to_args(state: Any) -> list[Any]:
    return []


def _root_apply_state(instance: Any, state: Any) -> None:
    return None


ObjectIO: IOType = IOType(
    OBJECT_IO_TYPE_NAME,
    supertype=None,
    is_valid_value=lambda _value: True,
    documentation="The root of the IO Type hierarchy",
    to_state_object=_root_to_state_object,
    from_state_object=_root_from_state_object,
    state_to_args_for_constructor=_root_state_to_args,
    apply_state=_root_apply_state,
    metadata_defaults=dict(ELEMENT_METADATA_DEFAULTS),
    data_defaults={"initial_state": None},
)
