from __future__ import annotations

import pytest

from trellis.core.errors import ConfigurationError, StateValidationError
from trellis.core.io_type import IOType, IOTypeMethod, ObjectIO
from trellis.core.state_schema import StateSchema
from trellis.core.types import BooleanIO, NumberIO, StringIO, VoidIO
from trellis.core.validation import Validator


class Shape:
    def __init__(self, width: float = 1.0) -> None:
        self.width = width


class Square(Shape):
    def __init__(self, width: float = 1.0, filled: bool = False) -> None:
        super().__init__(width)
        self._filled = filled


ShapeIO = IOType("ShapeIO", value_type=Shape, state_schema={"width": NumberIO}, events=["resized"])
SquareIO = IOType(
    "SquareIO", supertype=ShapeIO, value_type=Square, state_schema={"filled": BooleanIO}
)


@pytest.mark.parametrize("name", ["Shape", "IO", "Shape.IO", "", "ShapeIo"])
def test_type_name_must_end_with_io(name: str) -> None:
    with pytest.raises(ConfigurationError):
        IOType(name, value_type=Shape)


def test_parametric_names_are_accepted() -> None:
    io_type = IOType("PairIO<NumberIO, StringIO>", value_type=tuple)
    assert io_type.documentation == "IO Type for Pair"


def test_validator_is_required() -> None:
    with pytest.raises(ConfigurationError, match="a validator is required"):
        IOType("ShapeIO")


def test_validator_and_checks_are_exclusive() -> None:
    with pytest.raises(ConfigurationError, match="either validator or its checks"):
        IOType("ShapeIO", validator=Validator(value_type=Shape), value_type=Shape)


def test_only_the_root_may_omit_its_supertype() -> None:
    with pytest.raises(ConfigurationError, match="supertype is required"):
        IOType("ShapeIO", supertype=None, value_type=Shape)
    assert ObjectIO.supertype is None
    assert ShapeIO.supertype is ObjectIO


def test_hierarchy() -> None:
    assert SquareIO.type_hierarchy() == [SquareIO, ShapeIO, ObjectIO]
    assert SquareIO.extends(ShapeIO)
    assert not ShapeIO.extends(SquareIO)
    assert not SquareIO.extends(SquareIO)


def test_method_order_must_name_known_methods() -> None:
    with pytest.raises(ConfigurationError, match="method_order names an unknown method"):
        IOType("ShapeIO", value_type=Shape, method_order=["grow"])


def test_methods_accept_mappings_and_invoke_with_validation() -> None:
    io_type = IOType(
        "ShapeIO",
        value_type=Shape,
        methods={
            "grow": {
                "return_type": VoidIO,
                "parameter_types": [NumberIO],
                "implementation": lambda shape, by: setattr(shape, "width", shape.width + by),
                "documentation": "Grow the shape.",
            }
        },
        method_order=["grow"],
    )
    shape = Shape(1.0)
    io_type.all_methods()["grow"].invoke(shape, 2.0)
    assert shape.width == 3.0
    with pytest.raises(StateValidationError):
        io_type.methods["grow"].invoke(shape, "big")
    with pytest.raises(StateValidationError, match="expected 1 arguments"):
        io_type.methods["grow"].invoke(shape)


def test_method_documentation_is_required() -> None:
    with pytest.raises(ConfigurationError, match="documentation"):
        IOTypeMethod(VoidIO, [], lambda shape: None, "")


def test_events_may_not_repeat_ancestor_events() -> None:
    with pytest.raises(ConfigurationError, match="event already declared by an ancestor"):
        IOType("SquareIO", supertype=ShapeIO, value_type=Square, events=["resized"])
    assert SquareIO.all_events() == ["resized"]


def test_metadata_defaults_may_not_collide() -> None:
    base = IOType("BaseIO", value_type=Shape, metadata_defaults={"unit": "cm"})
    with pytest.raises(ConfigurationError, match="metadata default already declared"):
        IOType("ChildIO", supertype=base, value_type=Shape, metadata_defaults={"unit": "mm"})
    child = IOType("ChildIO", supertype=base, value_type=Shape, metadata_defaults={"scale": 1})
    merged = child.all_metadata_defaults()
    assert merged["unit"] == "cm"
    assert merged["scale"] == 1
    assert merged["type_name"] == "ObjectIO"


def test_declared_defaults_are_read_only() -> None:
    declared = {"unit": "cm"}
    io_type = IOType("UnitIO", value_type=Shape, metadata_defaults=declared)
    declared["unit"] = "mm"
    assert io_type.metadata_defaults == {"unit": "cm"}
    with pytest.raises(TypeError):
        io_type.metadata_defaults["unit"] = "mm"  # type: ignore[index]
    with pytest.raises(TypeError):
        ObjectIO.data_defaults["initial_state"] = 1  # type: ignore[index]
    assert ObjectIO.all_data_defaults() == {"initial_state": None}


def test_root_must_supply_state_functions() -> None:
    with pytest.raises(ConfigurationError, match="root IO Type must supply"):
        IOType("ObjectIO", supertype=None, is_valid_value=lambda _v: True)


def test_default_deserialization_method_is_checked() -> None:
    with pytest.raises(ConfigurationError, match="default_deserialization_method"):
        IOType("ShapeIO", value_type=Shape, default_deserialization_method="rebuild")


def test_composite_state_merges_the_hierarchy() -> None:
    square = Square(2.0, filled=True)
    assert SquareIO.to_state_object(square) == {"width": 2.0, "filled": True}
    assert ShapeIO.to_state_object(square) == {"width": 2.0}


def test_composite_apply_state_walks_the_hierarchy() -> None:
    square = Square()
    SquareIO.apply_state(square, {"width": 5, "filled": True})
    assert square.width == 5
    assert square._filled is True


def test_unknown_public_key_is_rejected() -> None:
    assert not SquareIO.is_state_object_valid({"width": 1, "filled": False, "depth": 3})
    with pytest.raises(StateValidationError, match="public key that is not in the schema: depth"):
        SquareIO.validate_state_object({"width": 1, "filled": False, "depth": 3})


def test_supertype_validates_against_the_instance_type() -> None:
    # The square's own IO Type describes "filled", so applying through ShapeIO still
    # checks the complete record.
    class Tracked(Square):
        io_type = SquareIO

    with pytest.raises(StateValidationError):
        ShapeIO.apply_state(Tracked(), {"width": 5})


def test_value_schema_types_validate_produced_state() -> None:
    bad = IOType(
        "BadIO",
        value_type=int,
        to_state_object=str,
        state_schema=StateSchema.as_value("number", Validator(value_type=int)),
    )
    with pytest.raises(StateValidationError):
        bad.to_state_object(3)


def test_to_state_object_validates_the_instance() -> None:
    with pytest.raises(StateValidationError, match="ShapeIO"):
        ShapeIO.to_state_object("not a shape")


def test_object_io_serializes_to_none() -> None:
    assert ObjectIO.to_state_object(object()) is None


def test_state_to_args_is_inherited() -> None:
    base = IOType("BaseIO", value_type=Shape, state_to_args_for_constructor=lambda s: [s["width"]])
    child = IOType("ChildIO", supertype=base, value_type=Shape)
    assert child.state_to_args_for_constructor({"width": 3}) == [3]


def test_schema_callable_receives_the_new_type() -> None:
    class Node:
        def __init__(self) -> None:
            self.label = "n"

    seen: list[IOType] = []

    def schema(io_type: IOType) -> dict[str, IOType]:
        seen.append(io_type)
        return {"label": StringIO}

    node_io = IOType("NodeIO", value_type=Node, state_schema=schema)
    assert seen == [node_io]
    assert node_io.to_state_object(Node()) == {"label": "n"}


class Counter:
    STATE_SCHEMA = StateSchema.as_value("number", Validator(value_type=int))

    def __init__(self, count: int = 0) -> None:
        self.count = count

    def to_state_object(self) -> int:
        return self.count

    def apply_state(self, state: int) -> None:
        self.count = state

    @staticmethod
    def state_to_args_for_constructor(state: int) -> list[int]:
        return [state]


def test_from_core_type_forwards_state_functions() -> None:
    counter_io = IOType.from_core_type("CounterIO", Counter)
    counter = Counter(4)
    assert counter_io.to_state_object(counter) == 4
    counter_io.apply_state(counter, 7)
    assert counter.count == 7
    assert counter_io.state_to_args_for_constructor(2) == [2]
    with pytest.raises(StateValidationError):
        counter_io.apply_state(counter, "7")


def test_from_core_type_requires_state_schema() -> None:
    with pytest.raises(ConfigurationError, match="must define STATE_SCHEMA"):
        IOType.from_core_type("ShapeIO", Shape)


def test_from_core_type_rejects_derived_options() -> None:
    with pytest.raises(ConfigurationError, match="sets its own"):
        IOType.from_core_type("CounterIO", Counter, value_type=int)
