from __future__ import annotations

import pytest

from trellis.api import ApiValidator, build_snapshot
from trellis.core.errors import ApiValidationError
from trellis.core.io_type import IOType, ObjectIO
from trellis.dynamic import ElementRegistry, Group, InstrumentedElement
from trellis.io.config import TrellisSettings


@pytest.fixture
def validating_registry() -> ElementRegistry:
    return ElementRegistry(TrellisSettings(api_mode="validate_api"))


def test_disabled_unless_validate_api(registry: ElementRegistry) -> None:
    validator = ApiValidator(registry)
    assert validator.enabled is False
    assert registry.element_added.listener_count == 0


def test_clean_startup(validating_registry: ElementRegistry) -> None:
    validator = ApiValidator(validating_registry)
    InstrumentedElement(validating_registry, "sim.model.thing")
    validating_registry.start()
    assert validator.mismatches == []


def test_static_registration_after_startup_raises(validating_registry: ElementRegistry) -> None:
    ApiValidator(validating_registry)
    validating_registry.start()
    with pytest.raises(ApiValidationError, match="only dynamic elements"):
        InstrumentedElement(validating_registry, "sim.model.late")


def test_dynamic_members_after_startup_are_allowed(
    validating_registry: ElementRegistry, thing_group_factory
) -> None:
    validator = ApiValidator(validating_registry)
    group = thing_group_factory(validating_registry)
    validating_registry.start()

    ball = group.create_next_element()
    group.dispose_element(ball)

    assert validator.mismatches == []


def test_static_unregistration_is_collected_until_startup(
    validating_registry: ElementRegistry,
) -> None:
    validator = ApiValidator(validating_registry)
    thing = InstrumentedElement(validating_registry, "sim.model.thing")
    thing.dispose()
    assert validator.mismatches == [
        "sim.model.thing: static elements can never be unregistered"
    ]
    with pytest.raises(ApiValidationError, match="API mismatches present"):
        validating_registry.start()


def test_io_type_names_are_unique(validating_registry: ElementRegistry) -> None:
    validator = ApiValidator(validating_registry)
    InstrumentedElement(
        validating_registry, "sim.model.a", IOType("ThingIO", value_type=InstrumentedElement)
    )
    InstrumentedElement(
        validating_registry, "sim.model.b", IOType("ThingIO", value_type=InstrumentedElement)
    )
    assert validator.mismatches == ["sim.model.b: another IO Type is already named ThingIO"]


def test_reference_snapshot_is_checked_at_startup(
    registry: ElementRegistry, validating_registry: ElementRegistry
) -> None:
    InstrumentedElement(registry, "sim.model.a")
    InstrumentedElement(registry, "sim.model.b", read_only=True)
    reference = build_snapshot(registry)

    ApiValidator(validating_registry, reference)
    InstrumentedElement(validating_registry, "sim.model.b")
    InstrumentedElement(validating_registry, "sim.model.c")

    with pytest.raises(ApiValidationError) as info:
        validating_registry.start()
    assert info.value.mismatches == (
        "sim.model.a: expected but not registered",
        "missing element: sim.model.a",
        "invalid metadata for sim.model.b, key=read_only, expected True but received False",
    )


def test_dispose_detaches_listeners(validating_registry: ElementRegistry) -> None:
    validator = ApiValidator(validating_registry)
    validator.dispose()
    validating_registry.start()
    InstrumentedElement(validating_registry, "sim.model.late")
    assert validator.mismatches == []


@pytest.fixture
def thing_group_factory():
    def make(registry: ElementRegistry) -> Group:
        return Group(
            registry,
            "sim.model.thingGroup",
            lambda element_id: InstrumentedElement(registry, element_id),
            parameter_type=ObjectIO,
        )

    return make
