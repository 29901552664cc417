from __future__ import annotations

import pytest

from trellis.core.errors import ConfigurationError, DynamicElementError
from trellis.core.io_type import IOType
from trellis.dynamic import (
    Capsule,
    CapsuleIO,
    ElementRegistry,
    InstrumentedElement,
    Singleton,
    SingletonIO,
)


class Dialog(InstrumentedElement):
    def __init__(self, registry: ElementRegistry, element_id: str, title: str) -> None:
        self.title = title
        super().__init__(registry, element_id, DialogIO)


DialogIO = IOType("DialogIO", value_type=Dialog)


def _capsule(registry: ElementRegistry) -> Capsule:
    return Capsule(
        registry,
        "sim.view.infoDialogCapsule",
        lambda element_id, title: Dialog(registry, element_id, title),
        ["archetype title"],
        parameter_type=DialogIO,
    )


def test_member_is_created_lazily(registry: ElementRegistry) -> None:
    capsule = _capsule(registry)
    assert not capsule.has_element()
    assert capsule.members() == []

    dialog = capsule.get_element("Hello")

    assert dialog.element_id == "sim.view.infoDialogCapsule.infoDialog"
    assert dialog.title == "Hello"
    assert dialog.is_dynamic_element
    assert capsule.get_element("ignored") is dialog
    assert capsule.element is dialog
    assert capsule.io_type is CapsuleIO(DialogIO)


def test_second_member_is_rejected(registry: ElementRegistry) -> None:
    capsule = _capsule(registry)
    capsule.create(["first"])
    with pytest.raises(DynamicElementError, match="dispose it first"):
        capsule.create(["second"])


def test_dispose_and_recreate(registry: ElementRegistry) -> None:
    capsule = _capsule(registry)
    first = capsule.get_element("first")
    capsule.dispose_element()

    assert first.is_disposed
    assert not capsule.has_element()
    with pytest.raises(DynamicElementError, match="holds no element to dispose"):
        capsule.dispose_element()

    second = capsule.get_element("second")
    assert second.element_id == first.element_id
    assert second is not first


def test_clear_is_a_no_op_when_empty(registry: ElementRegistry) -> None:
    capsule = _capsule(registry)
    capsule.clear()
    capsule.get_element("x")
    capsule.clear()
    assert capsule.members() == []


def test_create_checks_arity_and_leaves_capsule_usable(registry: ElementRegistry) -> None:
    capsule = _capsule(registry)
    with pytest.raises(ConfigurationError, match="plus 0 arguments"):
        capsule.get_element()
    assert not capsule.has_element()
    assert not registry.has("sim.view.infoDialogCapsule.infoDialog")

    assert capsule.get_element("Hello").title == "Hello"


def test_capsule_suffix_is_required(registry: ElementRegistry) -> None:
    with pytest.raises(ConfigurationError, match="must end with 'Capsule'"):
        Capsule(
            registry,
            "sim.view.infoDialog",
            lambda element_id, title: Dialog(registry, element_id, title),
            ["t"],
            parameter_type=DialogIO,
        )


def test_singleton_member_is_named_instance(registry: ElementRegistry) -> None:
    singleton = Singleton(
        registry,
        "sim.view.aboutSingleton",
        lambda element_id: Dialog(registry, element_id, "About"),
        parameter_type=DialogIO,
    )
    instance = singleton.get_instance()

    assert instance.element_id == "sim.view.aboutSingleton.instance"
    assert singleton.has_instance()
    assert singleton.get_instance() is instance
    assert singleton.io_type is SingletonIO(DialogIO)
    assert singleton.io_type.type_name == "SingletonIO<DialogIO>"
    assert instance.metadata()["archetype_id"] == "sim.view.aboutSingleton.archetype"

    singleton.dispose_instance()
    assert not singleton.has_instance()
