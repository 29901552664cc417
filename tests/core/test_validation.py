from __future__ import annotations

import pytest

from trellis.core.errors import ConfigurationError, StateValidationError
from trellis.core.validation import ANY_VALUE, Validator


def test_validator_requires_a_check() -> None:
    with pytest.raises(ConfigurationError, match="validator requires one of"):
        Validator()


def test_valid_values_must_not_be_a_string() -> None:
    with pytest.raises(ConfigurationError):
        Validator(valid_values="abc")


def test_value_type_check() -> None:
    v = Validator(value_type=int)
    assert v.is_valid(3)
    assert not v.is_valid("3")
    assert "is not an instance of int" in (v.failure("3") or "")


def test_value_type_tuple_label() -> None:
    v = Validator(value_type=(int, str))
    assert "int | str" in (v.failure(1.5) or "")


def test_valid_values_check() -> None:
    v = Validator(valid_values=["red", "green"])
    assert v.is_valid("red")
    assert "is not one of" in (v.failure("blue") or "")


def test_predicate_check() -> None:
    v = Validator(is_valid_value=lambda x: x > 0)
    assert v.is_valid(1)
    assert not v.is_valid(-1)


def test_annotation_uses_strict_mode() -> None:
    v = Validator(annotation=list[int])
    assert v.is_valid([1, 2])
    assert not v.is_valid(["1"])


def test_all_checks_must_pass() -> None:
    v = Validator(value_type=int, valid_values=[1, 2, 3], is_valid_value=lambda x: x % 2 == 1)
    assert v.is_valid(3)
    assert not v.is_valid(2)
    assert not v.is_valid(5)


def test_validate_raises_with_context_and_message() -> None:
    v = Validator(value_type=str, validation_message="names are strings")
    with pytest.raises(StateValidationError, match="NameIO: .*names are strings"):
        v.validate(5, context="NameIO")
    v.validate("ok")


def test_any_value_accepts_everything() -> None:
    assert ANY_VALUE.is_valid(None)
    assert ANY_VALUE.is_valid(object())
