from __future__ import annotations

import pytest

from trellis.core.errors import DynamicElementError, IdentifierError
from trellis.core.io_type import IOType
from trellis.dynamic import ElementRegistry, Emitter, InstrumentedElement


def test_register_and_lookup(registry: ElementRegistry) -> None:
    element = InstrumentedElement(registry, "sim.model.thing")
    assert registry.get("sim.model.thing") is element
    assert "sim.model.thing" in registry
    assert registry.ids() == ["sim.model.thing"]
    assert len(registry) == 1


def test_duplicate_identifier_is_rejected(registry: ElementRegistry) -> None:
    InstrumentedElement(registry, "sim.model.thing")
    with pytest.raises(IdentifierError, match="already registered"):
        InstrumentedElement(registry, "sim.model.thing")


def test_unknown_metadata_is_rejected(registry: ElementRegistry) -> None:
    with pytest.raises(TypeError, match="unknown element metadata"):
        InstrumentedElement(registry, "sim.model.thing", colour="red")


def test_metadata_overlays_io_type_defaults(registry: ElementRegistry) -> None:
    unit_io = IOType("UnitIO", value_type=InstrumentedElement, metadata_defaults={"unit": "cm"})
    element = InstrumentedElement(
        registry, "sim.model.length", unit_io, read_only=True, unit="mm", playback=True
    )
    meta = element.metadata()
    assert meta["type_name"] == "UnitIO"
    assert meta["unit"] == "mm"
    assert meta["read_only"] is True
    assert meta["playback"] is True
    assert meta["dynamic_element"] is False
    assert meta["archetype_id"] is None


def test_dispose_unregisters_descendants_first(registry: ElementRegistry) -> None:
    removed: list[str] = []
    registry.element_removed.add_listener(lambda e: removed.append(e.element_id))
    parent = InstrumentedElement(registry, "sim.model.ball")
    InstrumentedElement(registry, "sim.model.ball.position")
    InstrumentedElement(registry, "sim.model.ball.position.x")

    parent.dispose()

    assert removed == ["sim.model.ball.position.x", "sim.model.ball.position", "sim.model.ball"]
    assert len(registry) == 0
    assert parent.is_disposed
    with pytest.raises(DynamicElementError, match="already disposed"):
        parent.dispose()


def test_creation_scopes_flag_elements(registry: ElementRegistry) -> None:
    with registry.creating_dynamic("sim.model.ballGroup.ball_0"):
        ball = InstrumentedElement(registry, "sim.model.ballGroup.ball_0")
    child = InstrumentedElement(registry, "sim.model.ballGroup.ball_0.position")
    with registry.creating_archetype("sim.model.ballGroup.archetype"):
        archetype = InstrumentedElement(registry, "sim.model.ballGroup.archetype")

    assert ball.is_dynamic_element and not ball.is_archetype
    # Flags are inherited from registered ancestors.
    assert child.is_dynamic_element
    assert archetype.is_archetype and archetype.is_dynamic_element
    assert ball.metadata()["archetype_id"] == "sim.model.ballGroup.archetype"


def test_start_emits_startup_finished(registry: ElementRegistry) -> None:
    seen: list[ElementRegistry] = []
    registry.startup_finished.add_listener(seen.append)
    registry.start()
    assert registry.started
    assert seen == [registry]


def test_emitter_listener_management() -> None:
    emitter = Emitter()
    calls: list[tuple[int, int]] = []

    def listener(a: int, b: int) -> None:
        calls.append((a, b))

    emitter.add_listener(listener)
    with pytest.raises(ValueError, match="already registered"):
        emitter.add_listener(listener)
    emitter.emit(1, 2)
    assert emitter.has_listener(listener)
    assert emitter.listener_count == 1
    emitter.remove_listener(listener)
    emitter.emit(3, 4)
    assert calls == [(1, 2)]
    with pytest.raises(ValueError, match="not registered"):
        emitter.remove_listener(listener)
