"""
Leaf and parametric IO Types built on the IOType contract.

Leaves
- ValueIO: identity serialization for plain values.
- BooleanIO, NumberIO, StringIO: primitive values. NumberIO encodes infinities as the
  strings "POSITIVE_INFINITY" / "NEGATIVE_INFINITY" and rejects NaN in state.
- VoidIO: marks methods without a return value.

Parametric factories (memoized through one IOTypeCache each)
- NullableIO(T), ArrayIO(T), ReferenceIO(T): keyed by the parameter IOType.
- OrIO([T1, T2, ...]): keyed by the ordered tuple of parameter IOTypes.
- MapIO(K, V): keyed by the (K, V) pair.
- EnumerationIO(EnumClass): keyed by the Enum class; state is the member name.

References
- ReferenceIO serializes an element to its identifier and resolves identifiers back
  through the element resolver active in the current context (see ``resolving_elements``).
  An identifier that does not resolve raises CouldNotYetDeserializeError so the state
  engine can retry once the element exists.

Examples:
    >>> from trellis.core.types import NullableIO, NumberIO, OrIO, StringIO
    >>> NullableIO(NumberIO) is NullableIO(NumberIO)
    True
    >>> NumberIO.to_state_object(float("inf"))
    'POSITIVE_INFINITY'
    >>> OrIO([NumberIO, StringIO]).to_state_object("a")
    {'index': 1, 'state': 'a'}
"""

from __future__ import annotations

import contextvars
import math
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from enum import Enum
from typing import Any, Final

from .cache import IOTypeCache
from .errors import ConfigurationError, CouldNotYetDeserializeError, StateValidationError
from .io_type import IOType, ObjectIO
from .state_schema import StateSchema
from .validation import Validator

__all__ = [
    "ValueIO",
    "BooleanIO",
    "NumberIO",
    "StringIO",
    "VoidIO",
    "NullableIO",
    "ArrayIO",
    "OrIO",
    "MapIO",
    "EnumerationIO",
    "ReferenceIO",
    "ElementResolver",
    "resolving_elements",
    "resolve_element",
    "POSITIVE_INFINITY",
    "NEGATIVE_INFINITY",
]

POSITIVE_INFINITY: Final[str] = "POSITIVE_INFINITY"
NEGATIVE_INFINITY: Final[str] = "NEGATIVE_INFINITY"

# Maps an identifier to a registered element, or None when it is not registered.
ElementResolver = Callable[[str], Any]

_ELEMENT_RESOLVER: contextvars.ContextVar[ElementResolver | None] = contextvars.ContextVar(
    "trellis_element_resolver", default=None
)


@contextmanager
def resolving_elements(resolver: ElementResolver) -> Iterator[None]:
    """Bind the element resolver used by ReferenceIO within the scope."""
    token = _ELEMENT_RESOLVER.set(resolver)
    try:
        yield
    finally:
        _ELEMENT_RESOLVER.reset(token)


def resolve_element(element_id: str) -> Any:
    """
    Look up an element through the active resolver.

    Raises:
        ConfigurationError: If no resolver is bound.
        CouldNotYetDeserializeError: If the identifier is not registered (yet).
    """
    resolver = _ELEMENT_RESOLVER.get()
    if resolver is None:
        raise ConfigurationError("no element resolver is bound; use resolving_elements()")
    element = resolver(element_id)
    if element is None:
        raise CouldNotYetDeserializeError(element_id)
    return element


def _identity(value: Any) -> Any:
    return value


# -----------------------------------------------------------------------------
# Leaves
# -----------------------------------------------------------------------------

ValueIO = IOType(
    "ValueIO",
    is_valid_value=lambda _value: True,
    documentation="IO Type for plain values serialized as themselves",
    to_state_object=_identity,
    from_state_object=_identity,
)

BooleanIO = IOType(
    "BooleanIO",
    supertype=ValueIO,
    value_type=bool,
    documentation="IO Type for Python's bool",
    state_schema=StateSchema.as_value("boolean", Validator(value_type=bool)),
    to_state_object=_identity,
)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _number_to_state(value: float) -> float | str:
    if value == math.inf:
        return POSITIVE_INFINITY
    if value == -math.inf:
        return NEGATIVE_INFINITY
    return value


def _number_from_state(state: float | str) -> float:
    if state == POSITIVE_INFINITY:
        return math.inf
    if state == NEGATIVE_INFINITY:
        return -math.inf
    return state  # type: ignore[return-value]


def _is_number_state(state: Any) -> bool:
    if state in (POSITIVE_INFINITY, NEGATIVE_INFINITY):
        return True
    return _is_number(state) and not math.isnan(state)


NumberIO = IOType(
    "NumberIO",
    is_valid_value=_is_number,
    documentation="IO Type for Python's int and float (bool excluded)",
    to_state_object=_number_to_state,
    from_state_object=_number_from_state,
    state_schema=StateSchema.as_value(
        "'POSITIVE_INFINITY'|'NEGATIVE_INFINITY'|number",
        Validator(is_valid_value=_is_number_state),
    ),
)

StringIO = IOType(
    "StringIO",
    supertype=ValueIO,
    value_type=str,
    documentation="IO Type for Python's str",
    state_schema=StateSchema.as_value("string", Validator(value_type=str)),
    to_state_object=_identity,
)

VoidIO = IOType(
    "VoidIO",
    is_valid_value=lambda _value: True,
    documentation=(
        "Type for which there is no instance, usually to mark methods without a return value"
    ),
    to_state_object=lambda _value: None,
)


# -----------------------------------------------------------------------------
# Parametric factories
# -----------------------------------------------------------------------------

_nullable_cache = IOTypeCache("NullableIO")
_array_cache = IOTypeCache("ArrayIO")
_or_cache = IOTypeCache("OrIO")
_map_cache = IOTypeCache("MapIO")
_enumeration_cache = IOTypeCache("EnumerationIO")
_reference_cache = IOTypeCache("ReferenceIO")


def _require_io_type(factory: str, parameter_type: Any) -> IOType:
    if not isinstance(parameter_type, IOType):
        raise ConfigurationError(f"{factory} needs an IOType parameter, got {parameter_type!r}")
    return parameter_type


def NullableIO(parameter_type: IOType) -> IOType:
    """IO Type accepting None in addition to the values of ``parameter_type``."""
    _require_io_type("NullableIO", parameter_type)

    def create() -> IOType:
        return IOType(
            f"NullableIO<{parameter_type.type_name}>",
            documentation=(
                "An IO Type adding support for None in addition to the behavior of its parameter."
            ),
            is_valid_value=lambda v: v is None or parameter_type.is_valid_value(v),
            parameter_types=[parameter_type],
            to_state_object=lambda v: None if v is None else parameter_type.to_state_object(v),
            from_state_object=lambda s: None if s is None else parameter_type.from_state_object(s),
            state_schema=StateSchema.as_value(
                f"null|<{parameter_type.type_name}>",
                Validator(
                    is_valid_value=lambda s: s is None or parameter_type.is_state_object_valid(s)
                ),
            ),
        )

    return _nullable_cache.get_or_create(parameter_type, create)


def ArrayIO(parameter_type: IOType) -> IOType:
    """IO Type for lists whose items are all described by ``parameter_type``."""
    _require_io_type("ArrayIO", parameter_type)

    def create() -> IOType:
        return IOType(
            f"ArrayIO<{parameter_type.type_name}>",
            documentation="IO Type for Python lists, with the element type specified.",
            value_type=list,
            is_valid_value=lambda items: all(parameter_type.is_valid_value(i) for i in items),
            parameter_types=[parameter_type],
            to_state_object=lambda items: [parameter_type.to_state_object(i) for i in items],
            from_state_object=lambda state: [parameter_type.from_state_object(s) for s in state],
            state_schema=StateSchema.as_value(
                f"Array<{parameter_type.type_name}>",
                Validator(
                    value_type=list,
                    is_valid_value=lambda state: all(
                        parameter_type.is_state_object_valid(s) for s in state
                    ),
                ),
            ),
        )

    return _array_cache.get_or_create(parameter_type, create)


def OrIO(parameter_types: Sequence[IOType]) -> IOType:
    """
    IO Type for values that may be any one of ``parameter_types``.

    The first parameter type whose validator accepts a value serializes it; the state
    records which one as ``{"index": i, "state": ...}``.
    """
    if isinstance(parameter_types, IOType) or len(parameter_types) < 2:
        raise ConfigurationError("OrIO needs a sequence of at least two IOTypes")
    types = tuple(_require_io_type("OrIO", t) for t in parameter_types)
    names = [t.type_name for t in types]

    def to_state(value: Any) -> dict[str, Any]:
        for index, parameter_type in enumerate(types):
            if parameter_type.is_valid_value(value):
                return {"index": index, "state": parameter_type.to_state_object(value)}
        raise StateValidationError(f"value matches none of {names}: {value!r}")

    def from_state(state: dict[str, Any]) -> Any:
        return types[state["index"]].from_state_object(state["state"])

    def is_valid_state(state: Any) -> bool:
        if not isinstance(state, dict) or set(state) != {"index", "state"}:
            return False
        index = state["index"]
        if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(types):
            return False
        return types[index].is_state_object_valid(state["state"])

    def create() -> IOType:
        return IOType(
            f"OrIO<{', '.join(names)}>",
            documentation="An IO Type for values that can be any of its parameters.",
            parameter_types=types,
            is_valid_value=lambda v: any(t.is_valid_value(v) for t in types),
            to_state_object=to_state,
            from_state_object=from_state,
            state_schema=StateSchema.as_value(
                "|".join(names), Validator(is_valid_value=is_valid_state)
            ),
        )

    return _or_cache.get_or_create(types, create)


def MapIO(key_type: IOType, value_type: IOType) -> IOType:
    """IO Type for dicts; state is a list of ``[key_state, value_state]`` pairs."""
    _require_io_type("MapIO", key_type)
    _require_io_type("MapIO", value_type)

    def is_valid_map(mapping: dict[Any, Any]) -> bool:
        return all(
            key_type.is_valid_value(k) and value_type.is_valid_value(v) for k, v in mapping.items()
        )

    def is_valid_state(state: Any) -> bool:
        if not isinstance(state, list):
            return False
        for pair in state:
            if not isinstance(pair, list) or len(pair) != 2:
                return False
            k, v = pair
            if not (key_type.is_state_object_valid(k) and value_type.is_state_object_valid(v)):
                return False
        return True

    def create() -> IOType:
        return IOType(
            f"MapIO<{key_type.type_name},{value_type.type_name}>",
            documentation="IO Type for Python dicts, with the key and value types specified.",
            value_type=dict,
            is_valid_value=is_valid_map,
            parameter_types=[key_type, value_type],
            to_state_object=lambda mapping: [
                [key_type.to_state_object(k), value_type.to_state_object(v)]
                for k, v in mapping.items()
            ],
            from_state_object=lambda state: {
                key_type.from_state_object(k): value_type.from_state_object(v) for k, v in state
            },
            state_schema=StateSchema.as_value(
                f"Map<{key_type.type_name},{value_type.type_name}>",
                Validator(is_valid_value=is_valid_state),
            ),
        )

    return _map_cache.get_or_create((key_type, value_type), create)


def EnumerationIO(enumeration: type[Enum]) -> IOType:
    """IO Type for members of an Enum class; state is the member name."""
    if not (isinstance(enumeration, type) and issubclass(enumeration, Enum)):
        raise ConfigurationError(f"EnumerationIO needs an Enum class, got {enumeration!r}")
    keys = [member.name for member in enumeration]

    def from_state(state: str) -> Enum:
        if state not in keys:
            raise StateValidationError(f"unrecognized {enumeration.__name__} key: {state!r}")
        return enumeration[state]

    def create() -> IOType:
        documentation = f"Possible values: {', '.join(keys)}."
        if enumeration.__doc__ and enumeration.__doc__ != Enum.__doc__:
            documentation = f"{documentation} {enumeration.__doc__.strip()}"
        return IOType(
            f"EnumerationIO({'|'.join(keys)})",
            valid_values=list(enumeration),
            documentation=documentation,
            to_state_object=lambda member: member.name,
            from_state_object=from_state,
            state_schema=StateSchema.as_value(
                "|".join(keys), Validator(is_valid_value=lambda s: s in keys)
            ),
        )

    return _enumeration_cache.get_or_create(enumeration, create)


def ReferenceIO(parameter_type: IOType) -> IOType:
    """
    IO Type serializing an element by reference (its identifier).

    Deserialization resolves the identifier through ``resolve_element`` and validates the
    element against ``parameter_type``.
    """
    _require_io_type("ReferenceIO", parameter_type)

    def from_state(element_id: str) -> Any:
        if not isinstance(element_id, str):
            raise StateValidationError(f"reference state must be an identifier, got {element_id!r}")
        element = resolve_element(element_id)
        parameter_type.validate_value(element)
        return element

    def create() -> IOType:
        return IOType(
            f"ReferenceIO<{parameter_type.type_name}>",
            supertype=ObjectIO,
            validator=parameter_type.validator,
            documentation=(
                "Uses reference identity for serializing and deserializing, "
                "and validates based on its parameter IO Type."
            ),
            parameter_types=[parameter_type],
            to_state_object=lambda element: element.element_id,
            from_state_object=from_state,
            state_schema=StateSchema.as_value("elementId", Validator(value_type=str)),
        )

    return _reference_cache.get_or_create(parameter_type, create)
