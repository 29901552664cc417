"""
Group: an ordered pool of dynamic elements with monotonically increasing ordinals.

Members are named ``<member>_<ordinal>`` where ``<member>`` is the group's component
name without the ``Group`` suffix. The ordinal counter never goes backwards: disposing
``ball_1`` and creating another element yields ``ball_3``, not ``ball_1``, unless
``clear(reset_index=True)`` is requested explicitly.

Examples:
    >>> from trellis.dynamic.element import ElementRegistry, InstrumentedElement
    >>> from trellis.core.io_type import IOType
    >>> BallIO = IOType("BallIO", value_type=InstrumentedElement)
    >>> registry = ElementRegistry()
    >>> group = Group(
    ...     registry,
    ...     "sim.model.ballGroup",
    ...     lambda element_id: InstrumentedElement(registry, element_id, BallIO),
    ...     [],
    ...     parameter_type=BallIO,
    ... )
    >>> group.create_next_element().element_id
    'sim.model.ballGroup.ball_0'
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from typing import Any

from trellis.core.cache import IOTypeCache
from trellis.core.constants import GROUP_SUFFIX
from trellis.core.errors import DynamicElementError
from trellis.core.ids import component_name, group_element_index, group_element_name
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

__all__ = ["Group", "GroupIO"]


class Group(DynamicElementContainer):
    """
    Container holding any number of dynamic elements.

    Args:
        registry (ElementRegistry): Shared registry.
        element_id (str): Identifier ending in ``Group``.
        create_element (Callable[..., Instrumented]): ``create_element(element_id, *args)``.
        default_args (Sequence | Callable[[], Sequence]): Archetype arguments.
        io_type (IOType | None): A ``GroupIO(T)`` descriptor.
        parameter_type (IOType | None): Shortcut for ``io_type=GroupIO(parameter_type)``.
        **options: Passed through to DynamicElementContainer.

    Attributes:
        group_element_index (int): Ordinal of the next member created by
            ``create_next_element``.
    """

    kind = "group"
    container_suffix = GROUP_SUFFIX

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
        self._array: list[Instrumented] = []
        self.group_element_index = 0
        super().__init__(
            registry,
            element_id,
            create_element,
            default_args,
            pick_container_io_type(GroupIO, io_type, parameter_type),
            **options,
        )

    def __len__(self) -> int:
        return len(self._array)

    def __iter__(self) -> Iterator[Instrumented]:
        return iter(list(self._array))

    def __contains__(self, element: object) -> bool:
        return element in self._array

    @property
    def count(self) -> int:
        return len(self._array)

    def members(self) -> list[Instrumented]:
        return list(self._array)

    def get_array(self) -> list[Instrumented]:
        """Members in creation order (a copy)."""
        return list(self._array)

    def get_element(self, index: int) -> Instrumented:
        """
        Member at a position in creation order (not its ordinal).

        Raises:
            IndexError: If index is out of range.
        """
        if not 0 <= index < len(self._array):
            raise IndexError(f"{self.element_id}: no element at position {index}")
        return self._array[index]

    def get_last_element(self) -> Instrumented:
        return self.get_element(len(self._array) - 1)

    def index_of(self, element: Instrumented) -> int:
        """Position of element, or -1 if it is not a member."""
        try:
            return self._array.index(element)
        except ValueError:
            return -1

    def includes(self, element: Instrumented) -> bool:
        return element in self._array

    def filter(self, predicate: Callable[[Instrumented], bool]) -> list[Instrumented]:
        return [e for e in self._array if predicate(e)]

    def find(self, predicate: Callable[[Instrumented], bool]) -> Instrumented | None:
        return next((e for e in self._array if predicate(e)), None)

    def map(self, fn: Callable[[Instrumented], Any]) -> list[Any]:
        return [fn(e) for e in self._array]

    def create_next_element(self, *args: Any) -> Instrumented:
        """Create a member with the next ordinal; the ordinal is used up even on failure."""
        index = self.group_element_index
        self.group_element_index += 1
        return self.create_indexed_element(index, args)

    def create_indexed_element(
        self, index: int, args: Sequence[Any], from_state_setting: bool = False
    ) -> Instrumented:
        """
        Create the member ``<member>_<index>``.

        Args:
            index (int): Ordinal; the caller is responsible for the counter.
            args (Sequence[Any]): Recipe arguments after the identifier.
            from_state_setting (bool): True when called by the state engine.

        Raises:
            DynamicElementError: If called during a restore by anything but the engine.
        """
        self._check_creation_allowed(from_state_setting)
        element = self.create_dynamic_element(group_element_name(self.member_name, index), args)
        self._array.append(element)
        self.notify_element_created(element)
        return element

    def create_corresponding_group_element(self, name: str, *args: Any) -> Instrumented:
        """
        Create the member with the same ordinal as another group's member.

        Args:
            name (str): A member component name or identifier, e.g. ``"ball_4"``.
        """
        index = group_element_index(component_name(name))
        element = self.create_indexed_element(index, args)
        self.group_element_index = max(self.group_element_index, index + 1)
        return element

    def dispose_element(self, element: Instrumented) -> None:
        """
        Remove and dispose one member.

        Raises:
            DynamicElementError: If element is not a member of this group.
        """
        if element not in self._array:
            raise DynamicElementError(
                f"{self.element_id}: not a member of this group: {element.element_id}"
            )
        self._array.remove(element)
        self._dispose_member(element)

    def clear(self, *, reset_index: bool = False) -> None:
        """
        Dispose every member, most recent first.

        Args:
            reset_index (bool): Also restart ordinals at 0.
        """
        while self._array:
            self._dispose_member(self._array.pop())
        if reset_index:
            self.group_element_index = 0


_group_io_cache = IOTypeCache("GroupIO")


def _add_child_element(group: Group, member_component_name: str, state: Any) -> Instrumented:
    args = group.parameter_type.state_to_args_for_constructor(state)
    index = group_element_index(member_component_name)
    element = group.create_indexed_element(index, args, from_state_setting=True)
    group.group_element_index = max(group.group_element_index, index + 1)
    return element


def GroupIO(parameter_type: IOType) -> IOType:
    """Container IO Type for a Group whose members are described by ``parameter_type``."""
    require_parameter_type("GroupIO", parameter_type)

    def create() -> IOType:
        return IOType(
            container_io_type_name("GroupIO", parameter_type),
            supertype=DynamicElementContainerIO,
            value_type=Group,
            documentation="An array that sends notifications when its values have changed.",
            parameter_types=[parameter_type],
            add_child_element=_add_child_element,
        )

    return _group_io_cache.get_or_create(parameter_type, create)
