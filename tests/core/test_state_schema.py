from __future__ import annotations

import pytest

from trellis.core.errors import ConfigurationError, StateValidationError
from trellis.core.state_schema import StateSchema
from trellis.core.types import BooleanIO, NumberIO, StringIO
from trellis.core.validation import Validator


class Point:
    def __init__(self, x: float = 0, label: str = "") -> None:
        self.x = x
        self._label = label
        self.hidden = False


def test_composite_and_value_options_are_exclusive() -> None:
    with pytest.raises(ConfigurationError, match="either composite or a value"):
        StateSchema({"x": NumberIO}, validator=Validator(value_type=int))


def test_value_schema_requires_validator() -> None:
    with pytest.raises(ConfigurationError, match="requires a validator"):
        StateSchema(display_string="number")


def test_schema_entries_must_be_io_types() -> None:
    with pytest.raises(ConfigurationError, match="must map to an IOType"):
        StateSchema({"x": int})


def test_nested_private_schema_is_split_out() -> None:
    schema = StateSchema({"x": NumberIO, "_private": {"hidden": BooleanIO}})
    assert schema.is_composite()
    assert schema.keys() == ["x"]
    assert schema.private_keys() == ["hidden"]


def test_api_description() -> None:
    schema = StateSchema({"x": NumberIO, "label": StringIO}, private_schema={"hidden": BooleanIO})
    assert schema.api_description() == {
        "label": "StringIO",
        "x": "NumberIO",
        "_private": {"hidden": "BooleanIO"},
    }
    assert StateSchema.as_value("number", Validator(value_type=int)).api_description() == "number"


def test_default_to_state_object_prefers_underscored_attribute() -> None:
    schema = StateSchema({"x": NumberIO, "label": StringIO}, private_schema={"hidden": BooleanIO})
    state = schema.default_to_state_object(Point(2, "p"))
    assert state == {"x": 2, "label": "p", "_private": {"hidden": False}}


def test_default_apply_state_writes_attributes() -> None:
    schema = StateSchema({"x": NumberIO, "label": StringIO})
    point = Point()
    schema.default_apply_state(point, {"x": 4, "label": "q"})
    assert point.x == 4
    assert point._label == "q"


def test_default_apply_state_requires_every_key() -> None:
    schema = StateSchema({"x": NumberIO, "label": StringIO})
    with pytest.raises(StateValidationError, match="expected schema key: label"):
        schema.default_apply_state(Point(), {"x": 1})


def test_check_value_schema() -> None:
    schema = StateSchema.as_value("number", Validator(value_type=int))
    assert schema.check_state_object_valid(3, False, [], []) is True
    assert schema.check_state_object_valid("3", False, [], []) is False
    with pytest.raises(StateValidationError):
        schema.check_state_object_valid("3", True, [], [], "CountIO")


def test_check_composite_schema_collects_keys() -> None:
    schema = StateSchema({"x": NumberIO}, private_schema={"hidden": BooleanIO})
    public: list[str] = []
    private: list[str] = []
    result = schema.check_state_object_valid(
        {"x": 1, "_private": {"hidden": True}}, False, public, private
    )
    # A passing composite level defers the final decision to its supertype.
    assert result is None
    assert public == ["x"]
    assert private == ["hidden"]


def test_check_composite_schema_rejects_bad_values() -> None:
    schema = StateSchema({"x": NumberIO})
    assert schema.check_state_object_valid({"x": "one"}, False, [], []) is False
    assert schema.check_state_object_valid({}, False, [], []) is False
    assert schema.check_state_object_valid([1], False, [], []) is False
