"""
Capsule and Singleton: containers holding at most one lazily created dynamic element.

A Capsule ``sim.view.infoDialogCapsule`` creates its member
``sim.view.infoDialogCapsule.infoDialog`` on first ``get_element()``. A Singleton always names
its member ``instance``. Creating a second member while one exists raises
DynamicElementError; dispose the current one first.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from trellis.core.cache import IOTypeCache
from trellis.core.constants import CAPSULE_SUFFIX, SINGLETON_INSTANCE_NAME, SINGLETON_SUFFIX
from trellis.core.errors import DynamicElementError
from trellis.core.io_type import IOType

from .container import (
    DefaultArgs,
    DynamicElementContainer,
    DynamicElementContainerIO,
    container_io_type_name,
    pick_container_io_type,
    require_parameter_type,
)
from .element import ElementRegistry, Instrumented

__all__ = ["Capsule", "CapsuleIO", "Singleton", "SingletonIO"]


class Capsule(DynamicElementContainer):
    """
    Container holding zero or one dynamic element.

    Args:
        registry (ElementRegistry): Shared registry.
        element_id (str): Identifier ending in ``Capsule``.
        create_element (Callable[..., Instrumented]): ``create_element(element_id, *args)``.
        default_args (Sequence | Callable[[], Sequence]): Archetype arguments.
        io_type (IOType | None): A ``CapsuleIO(T)`` descriptor.
        parameter_type (IOType | None): Shortcut for ``io_type=CapsuleIO(parameter_type)``.
        **options: Passed through to DynamicElementContainer.
    """

    kind = "capsule"
    container_suffix = CAPSULE_SUFFIX

    def __init__(
        self,
        registry: ElementRegistry,
        element_id: str,
        create_element: Callable[..., Instrumented],
        default_args: DefaultArgs = (),
        io_type: IOType | None = None,
        *,
        parameter_type: IOType | None = None,
        **options: Any,
    ) -> None:
        self._element: Instrumented | None = None
        super().__init__(
            registry,
            element_id,
            create_element,
            default_args,
            pick_container_io_type(self._io_type_factory(), io_type, parameter_type),
            **options,
        )

    @staticmethod
    def _io_type_factory() -> Callable[[IOType], IOType]:
        return CapsuleIO

    @property
    def element(self) -> Instrumented | None:
        return self._element

    def has_element(self) -> bool:
        return self._element is not None

    def members(self) -> list[Instrumented]:
        return [] if self._element is None else [self._element]

    def get_element(self, *args: Any) -> Instrumented:
        """Return the member, creating it with args on first use."""
        if self._element is None:
            return self.create(args)
        return self._element

    def create(self, args: Sequence[Any], from_state_setting: bool = False) -> Instrumented:
        """
        Create the member.

        Raises:
            DynamicElementError: If a member already exists, or if called during a restore
                by anything but the state engine.
        """
        self._check_creation_allowed(from_state_setting)
        if self._element is not None:
            raise DynamicElementError(
                f"{self.element_id} already holds {self._element.element_id}; dispose it first"
            )
        element = self.create_dynamic_element(self.member_name, args)
        self._element = element
        self.notify_element_created(element)
        return element

    def dispose_element(self) -> None:
        """
        Dispose the member.

        Raises:
            DynamicElementError: If there is no member.
        """
        if self._element is None:
            raise DynamicElementError(f"{self.element_id} holds no element to dispose")
        element, self._element = self._element, None
        self._dispose_member(element)

    def clear(self) -> None:
        if self._element is not None:
            self.dispose_element()


class Singleton(Capsule):
    """
    Capsule whose member is always named ``instance``.

    Args:
        element_id (str): Identifier ending in ``Singleton``.
        **kwargs: As for Capsule, with ``SingletonIO(T)`` in place of ``CapsuleIO(T)``.
    """

    kind = "singleton"
    container_suffix = SINGLETON_SUFFIX

    @staticmethod
    def _io_type_factory() -> Callable[[IOType], IOType]:
        return SingletonIO

    def _member_name(self, name: str) -> str:
        return SINGLETON_INSTANCE_NAME

    def get_instance(self, *args: Any) -> Instrumented:
        return self.get_element(*args)

    def has_instance(self) -> bool:
        return self.has_element()

    def dispose_instance(self) -> None:
        self.dispose_element()


_capsule_io_cache = IOTypeCache("CapsuleIO")
_singleton_io_cache = IOTypeCache("SingletonIO")


def _add_child_element(capsule: Capsule, member_component_name: str, state: Any) -> Instrumented:
    args = capsule.parameter_type.state_to_args_for_constructor(state)
    return capsule.create(args, from_state_setting=True)


def CapsuleIO(parameter_type: IOType) -> IOType:
    """Container IO Type for a Capsule whose member is described by ``parameter_type``."""
    require_parameter_type("CapsuleIO", parameter_type)

    def create() -> IOType:
        return IOType(
            container_io_type_name("CapsuleIO", parameter_type),
            supertype=DynamicElementContainerIO,
            value_type=Capsule,
            documentation="An instrumented container that holds at most one dynamic element.",
            parameter_types=[parameter_type],
            add_child_element=_add_child_element,
        )

    return _capsule_io_cache.get_or_create(parameter_type, create)


def SingletonIO(parameter_type: IOType) -> IOType:
    """Container IO Type for a Singleton whose instance is described by ``parameter_type``."""
    require_parameter_type("SingletonIO", parameter_type)

    def create() -> IOType:
        return IOType(
            container_io_type_name("SingletonIO", parameter_type),
            supertype=DynamicElementContainerIO,
            value_type=Singleton,
            documentation="An instrumented container that holds a single, lazily created instance.",
            parameter_types=[parameter_type],
            add_child_element=_add_child_element,
        )

    return _singleton_io_cache.get_or_create(parameter_type, create)
