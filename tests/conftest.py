from __future__ import annotations

from collections.abc import Iterator

import pytest

from trellis.core.cache import clear_all_caches
from trellis.core.io_type import IOType
from trellis.core.state_schema import StateSchema
from trellis.core.types import NumberIO, ReferenceIO
from trellis.core.validation import Validator
from trellis.dynamic import ElementRegistry, Group, InstrumentedElement
from trellis.io.config import TrellisSettings


class Ball(InstrumentedElement):
    """Dynamic element with one numeric field."""

    def __init__(self, registry: ElementRegistry, element_id: str, x: float = 0) -> None:
        self.x = x
        super().__init__(registry, element_id, BallIO)


BallIO = IOType(
    "BallIO",
    value_type=Ball,
    state_schema={"x": NumberIO},
    state_to_args_for_constructor=lambda state: [],
)


class Selection(InstrumentedElement):
    """Static element pointing at a ball, or at nothing."""

    def __init__(self, registry: ElementRegistry, element_id: str) -> None:
        self.target: Ball | None = None
        super().__init__(registry, element_id, SelectionIO)


def _selection_to_state(selection: Selection) -> str | None:
    if selection.target is None:
        return None
    return ReferenceIO(BallIO).to_state_object(selection.target)


def _selection_apply_state(selection: Selection, state: str | None) -> None:
    selection.target = None if state is None else ReferenceIO(BallIO).from_state_object(state)


SelectionIO = IOType(
    "SelectionIO",
    value_type=Selection,
    to_state_object=_selection_to_state,
    apply_state=_selection_apply_state,
    state_schema=StateSchema.as_value(
        "null|elementId", Validator(is_valid_value=lambda s: s is None or isinstance(s, str))
    ),
)


@pytest.fixture(autouse=True)
def _fresh_io_type_caches() -> Iterator[None]:
    clear_all_caches()
    yield
    clear_all_caches()


@pytest.fixture
def registry() -> ElementRegistry:
    return ElementRegistry()


@pytest.fixture
def api_registry() -> ElementRegistry:
    """Registry that builds archetypes at startup."""
    return ElementRegistry(TrellisSettings(api_mode="print_api"))


@pytest.fixture
def ball_group(registry: ElementRegistry) -> Group:
    return Group(
        registry,
        "sim.model.ballGroup",
        lambda element_id: Ball(registry, element_id),
        [],
        parameter_type=BallIO,
    )


@pytest.fixture
def api_ball_group(api_registry: ElementRegistry) -> Group:
    return Group(
        api_registry,
        "sim.model.ballGroup",
        lambda element_id, x: Ball(api_registry, element_id, x),
        [1.5],
        parameter_type=BallIO,
    )


@pytest.fixture
def selection(registry: ElementRegistry) -> Selection:
    return Selection(registry, "sim.model.selection")
