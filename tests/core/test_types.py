from __future__ import annotations

import math
from enum import Enum

import pytest

from trellis.core.errors import (
    ConfigurationError,
    CouldNotYetDeserializeError,
    StateValidationError,
)
from trellis.core.io_type import IOType
from trellis.core.types import (
    NEGATIVE_INFINITY,
    POSITIVE_INFINITY,
    ArrayIO,
    BooleanIO,
    EnumerationIO,
    MapIO,
    NullableIO,
    NumberIO,
    OrIO,
    ReferenceIO,
    StringIO,
    resolving_elements,
)


class Color(Enum):
    """Primary colors."""

    RED = 1
    GREEN = 2


class Thing:
    def __init__(self, element_id: str) -> None:
        self.element_id = element_id


ThingIO = IOType("ThingIO", value_type=Thing)


@pytest.mark.parametrize("value", [0, 1.5, -3])
def test_number_accepts_numbers(value: float) -> None:
    assert NumberIO.is_valid_value(value)
    assert NumberIO.to_state_object(value) == value


def test_number_excludes_bool() -> None:
    assert not NumberIO.is_valid_value(True)
    assert BooleanIO.is_valid_value(True)


def test_number_encodes_infinities() -> None:
    assert NumberIO.to_state_object(math.inf) == POSITIVE_INFINITY
    assert NumberIO.to_state_object(-math.inf) == NEGATIVE_INFINITY
    assert NumberIO.from_state_object(POSITIVE_INFINITY) == math.inf
    assert NumberIO.from_state_object(NEGATIVE_INFINITY) == -math.inf


def test_number_state_rejects_nan() -> None:
    assert not NumberIO.is_state_object_valid(math.nan)
    assert NumberIO.is_state_object_valid(POSITIVE_INFINITY)
    assert not NumberIO.is_state_object_valid("12")


def test_nullable() -> None:
    io_type = NullableIO(StringIO)
    assert io_type.type_name == "NullableIO<StringIO>"
    assert io_type.parameter_types == (StringIO,)
    assert io_type.to_state_object(None) is None
    assert io_type.to_state_object("a") == "a"
    assert io_type.from_state_object(None) is None
    assert not io_type.is_valid_value(3)


def test_array() -> None:
    io_type = ArrayIO(NumberIO)
    assert io_type.type_name == "ArrayIO<NumberIO>"
    assert io_type.to_state_object([1, math.inf]) == [1, POSITIVE_INFINITY]
    assert io_type.from_state_object([2, NEGATIVE_INFINITY]) == [2, -math.inf]
    assert not io_type.is_valid_value([1, "x"])
    assert not io_type.is_state_object_valid([1, "x"])


def test_or_records_which_alternative_matched() -> None:
    io_type = OrIO([NumberIO, StringIO])
    assert io_type.type_name == "OrIO<NumberIO, StringIO>"
    assert io_type.to_state_object(3) == {"index": 0, "state": 3}
    assert io_type.to_state_object("a") == {"index": 1, "state": "a"}
    assert io_type.from_state_object({"index": 1, "state": "a"}) == "a"
    assert not io_type.is_state_object_valid({"index": 2, "state": "a"})
    assert not io_type.is_state_object_valid({"index": True, "state": 3})
    with pytest.raises(StateValidationError):
        io_type.to_state_object(None)


def test_or_needs_two_types() -> None:
    with pytest.raises(ConfigurationError, match="at least two"):
        OrIO([NumberIO])
    with pytest.raises(ConfigurationError):
        OrIO(NumberIO)  # type: ignore[arg-type]


def test_map_state_is_a_list_of_pairs() -> None:
    io_type = MapIO(StringIO, NumberIO)
    assert io_type.type_name == "MapIO<StringIO,NumberIO>"
    state = io_type.to_state_object({"a": 1, "b": math.inf})
    assert state == [["a", 1], ["b", POSITIVE_INFINITY]]
    assert io_type.from_state_object(state) == {"a": 1, "b": math.inf}
    assert not io_type.is_state_object_valid([["a"]])
    assert not io_type.is_valid_value({1: 1})


def test_enumeration_uses_member_names() -> None:
    io_type = EnumerationIO(Color)
    assert io_type.type_name == "EnumerationIO(RED|GREEN)"
    assert io_type.documentation.startswith("Possible values: RED, GREEN.")
    assert "Primary colors." in io_type.documentation
    assert io_type.to_state_object(Color.GREEN) == "GREEN"
    assert io_type.from_state_object("RED") is Color.RED
    assert not io_type.is_state_object_valid("BLUE")
    with pytest.raises(StateValidationError, match="unrecognized Color key"):
        io_type.from_state_object("BLUE")


def test_enumeration_requires_an_enum() -> None:
    with pytest.raises(ConfigurationError):
        EnumerationIO(int)  # type: ignore[arg-type]


def test_reference_serializes_the_identifier() -> None:
    io_type = ReferenceIO(ThingIO)
    assert io_type.type_name == "ReferenceIO<ThingIO>"
    assert io_type.to_state_object(Thing("sim.model.thing")) == "sim.model.thing"


def test_reference_resolves_through_the_bound_resolver() -> None:
    thing = Thing("sim.model.thing")
    elements = {thing.element_id: thing}
    with resolving_elements(elements.get):
        assert ReferenceIO(ThingIO).from_state_object("sim.model.thing") is thing
        with pytest.raises(CouldNotYetDeserializeError, match="sim.model.other") as info:
            ReferenceIO(ThingIO).from_state_object("sim.model.other")
    assert info.value.element_id == "sim.model.other"


def test_reference_without_resolver_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="no element resolver is bound"):
        ReferenceIO(ThingIO).from_state_object("sim.model.thing")


def test_reference_validates_the_resolved_element() -> None:
    with resolving_elements(lambda element_id: "not a thing"):
        with pytest.raises(StateValidationError):
            ReferenceIO(ThingIO).from_state_object("sim.model.thing")


@pytest.mark.parametrize(
    "factory",
    [NullableIO, ArrayIO, ReferenceIO, lambda t: MapIO(t, t)],
)
def test_parametric_factories_reject_non_io_types(factory) -> None:
    with pytest.raises(ConfigurationError, match="needs an IOType"):
        factory(int)
