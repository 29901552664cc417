"""
Validator specs for IO Types and value state schemas.

A Validator describes which runtime values are acceptable, using any combination of:
- value_type: an isinstance check (a type or tuple of types),
- valid_values: an explicit membership check,
- is_valid_value: an arbitrary predicate,
- annotation: a type annotation checked strictly with a pydantic TypeAdapter.

All supplied checks must pass. At least one must be supplied.

Examples:
    >>> from trellis.core.validation import Validator
    >>> v = Validator(value_type=(int, float), is_valid_value=lambda x: x >= 0)
    >>> v.is_valid(3), v.is_valid(-1), v.is_valid("3")
    (True, False, False)
    >>> Validator(annotation=list[int]).is_valid([1, 2])
    True
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from pydantic import TypeAdapter, ValidationError

from .errors import ConfigurationError, StateValidationError

__all__ = ["Validator", "ANY_VALUE"]


@dataclass(frozen=True)
class Validator:
    """
    Frozen validator description.

    Attributes:
        value_type (type | tuple[type, ...] | None): Required runtime type(s).
        valid_values (Sequence[Any] | None): Allowed values (compared with ``==``).
        is_valid_value (Callable[[Any], bool] | None): Predicate that must return True.
        annotation (Any): Type annotation validated in pydantic strict mode.
        validation_message (str): Extra text appended to failure messages.

    Raises:
        ConfigurationError: If no check is supplied.
    """

    value_type: type | tuple[type, ...] | None = None
    valid_values: Sequence[Any] | None = None
    is_valid_value: Callable[[Any], bool] | None = None
    annotation: Any = None
    validation_message: str = ""
    _adapter: TypeAdapter[Any] | None = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if (
            self.value_type is None
            and self.valid_values is None
            and self.is_valid_value is None
            and self.annotation is None
        ):
            raise ConfigurationError(
                "validator requires one of value_type, valid_values, is_valid_value, annotation"
            )
        if self.valid_values is not None and isinstance(self.valid_values, (str, bytes)):
            raise ConfigurationError("valid_values must be a sequence of values, not a string")
        if self.annotation is not None:
            object.__setattr__(self, "_adapter", TypeAdapter(self.annotation))

    def failure(self, value: Any) -> str | None:
        """
        Describe why a value fails validation.

        Returns:
            str | None: None when the value is valid, otherwise a short reason.
        """
        if self.value_type is not None and not isinstance(value, self.value_type):
            return f"value {value!r} is not an instance of {_type_label(self.value_type)}"
        if self.valid_values is not None and value not in self.valid_values:
            return f"value {value!r} is not one of {list(self.valid_values)!r}"
        if self._adapter is not None:
            try:
                self._adapter.validate_python(value, strict=True)
            except ValidationError as exc:
                reason = exc.errors()[0]["msg"]
                return f"value {value!r} does not match {self.annotation!r}: {reason}"
        if self.is_valid_value is not None and not self.is_valid_value(value):
            return f"value {value!r} failed the validation predicate"
        return None

    def is_valid(self, value: Any) -> bool:
        """True if value passes every supplied check."""
        return self.failure(value) is None

    def validate(self, value: Any, context: str = "") -> None:
        """
        Raise if value fails validation.

        Args:
            value (Any): Candidate value.
            context (str): Prefix for the error message (e.g., the IO Type name).

        Raises:
            StateValidationError: If any check fails.
        """
        reason = self.failure(value)
        if reason is None:
            return
        parts = [p for p in (context, reason, self.validation_message) if p]
        raise StateValidationError(": ".join(parts))


def _type_label(value_type: type | tuple[type, ...]) -> str:
    if isinstance(value_type, tuple):
        return " | ".join(t.__name__ for t in value_type)
    return value_type.__name__


# Accepts everything; used by the root IO Type.
ANY_VALUE = Validator(is_valid_value=lambda _value: True)
