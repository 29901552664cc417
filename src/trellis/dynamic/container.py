"""
Dynamic element containers: shared creation, archetype, and notification logic.

A container wraps a creation recipe ``create_element(element_id, *args)`` and an IO Type
with exactly one parameter type describing its members. Concrete variants:

| kind      | class     | members   | member component name
|-----------|-----------|-----------|-------------------------------
| group     | Group     | 0..n      | ``<member>_<ordinal>``
| capsule   | Capsule   | 0..1      | ``<member>`` (container name minus "Capsule")
| singleton | Singleton | 0..1      | ``instance``

Responsibilities
- Check the recipe's arity against the default arguments (list or thunk).
- Build an archetype before the application starts, when API extraction or archetype
  creation is enabled, under ``<container>.archetype``.
- Create members inside a dynamic creation scope and check that each one validates
  against the parameter type, uses it as its IO Type, is registered, and is flagged
  dynamic.
- Publish ``created`` / ``disposed`` events (never for archetypes).

Notes:
    - Containers do not take part in saved state themselves (``state=False``); members
      do, and the state engine re-creates them through ``io_type.add_child_element``.
    - A container can only be disposed when it is itself part of a dynamic element.
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
import logging
from collections.abc import Callable, Sequence
from typing import Any, ClassVar, Literal

from trellis.core.constants import ARCHETYPE
from trellis.core.errors import ConfigurationError, DynamicElementError
from trellis.core.ids import append, component_name
from trellis.core.io_type import IOType

from ..state.session import is_setting_state
from .element import ElementRegistry, Instrumented, InstrumentedElement
from .emitter import Emitter

__all__ = [
    "ContainerKind",
    "DefaultArgs",
    "DynamicElementContainer",
    "DynamicElementContainerIO",
]

logger = logging.getLogger(__name__)

ContainerKind = Literal["group", "capsule", "singleton"]
DefaultArgs = Sequence[Any] | Callable[[], Sequence[Any]]


def _accepts_positional(fn: Callable[..., Any], count: int) -> bool:
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return True
    try:
        signature.bind(*([None] * count))
    except TypeError:
        return False
    return True


class DynamicElementContainer(InstrumentedElement, ABC):
    """
    Base class for Group, Capsule, and Singleton.

    Args:
        registry (ElementRegistry): Registry shared with the members.
        element_id (str): Container identifier; its component name must end with the
            variant's suffix.
        create_element (Callable[..., Instrumented]): Recipe called as
            ``create_element(element_id, *args)``.
        default_args (Sequence | Callable[[], Sequence]): Arguments for the archetype; a
            thunk is resolved when the archetype is built.
        io_type (IOType): Container IO Type with exactly one parameter type.
        supports_dynamic_state (bool): Whether members are cleared and re-created when
            state is restored.
        documentation (str): Per-instance documentation.
        **metadata: Other per-instance metadata overrides.

    Raises:
        ConfigurationError: On a bad suffix, IO Type, default arguments, or recipe arity.
    """

    kind: ClassVar[ContainerKind]
    container_suffix: ClassVar[str]

    def __init__(
        self,
        registry: ElementRegistry,
        element_id: str,
        create_element: Callable[..., Instrumented],
        default_args: DefaultArgs,
        io_type: IOType,
        *,
        supports_dynamic_state: bool = True,
        documentation: str = "",
        **metadata: Any,
    ) -> None:
        name = component_name(element_id)
        if not name.endswith(self.container_suffix):
            raise ConfigurationError(
                f"{type(self).__name__} identifiers must end with {self.container_suffix!r}: "
                f"{element_id}"
            )
        if len(io_type.parameter_types) != 1:
            raise ConfigurationError(
                f"{io_type.type_name}: container IO Types must have exactly one parameter type"
            )
        if not callable(create_element):
            raise ConfigurationError("create_element must be callable")
        if not (callable(default_args) or isinstance(default_args, (list, tuple))):
            raise ConfigurationError("default_args must be a list, a tuple, or a thunk")

        self.create_element = create_element
        self.default_args = default_args
        if not callable(default_args):
            self._check_arity(len(default_args))

        self.member_name = self._member_name(name)
        self.parameter_type: IOType = io_type.parameter_types[0]
        self.supports_dynamic_state = supports_dynamic_state
        super().__init__(
            registry,
            element_id,
            io_type,
            state=False,
            documentation=documentation,
            **{"dynamic_element_name": self.member_name, **metadata},
        )

        self.element_created = Emitter()
        self.element_disposed = Emitter()
        self.archetype: Instrumented | None = self._create_archetype()

    def _member_name(self, name: str) -> str:
        return name[: -len(self.container_suffix)]

    def _check_arity(self, arg_count: int) -> None:
        if not _accepts_positional(self.create_element, arg_count + 1):
            raise ConfigurationError(
                f"create_element does not accept an identifier plus {arg_count} arguments"
            )

    def _resolve_default_args(self) -> list[Any]:
        args = self.default_args() if callable(self.default_args) else self.default_args
        if not isinstance(args, (list, tuple)):
            raise ConfigurationError("default_args thunk must return a list or tuple")
        return list(args)

    # ------------------------------------------------------------------
    # Archetype
    # ------------------------------------------------------------------

    def _create_archetype(self) -> Instrumented | None:
        settings = self.registry.settings
        if self.registry.started:
            logger.debug("no archetype for %s: application already started", self.element_id)
            return None
        if not settings.archetypes_enabled:
            return None

        args = self._resolve_default_args()
        self._check_arity(len(args))
        archetype_id = append(self.element_id, ARCHETYPE)
        with self.registry.creating_archetype(archetype_id):
            archetype = self.create_element(archetype_id, *args)
        if not archetype.is_archetype:
            archetype.mark_archetype()  # type: ignore[attr-defined]
        logger.debug("created archetype %s", archetype_id)
        return archetype

    # ------------------------------------------------------------------
    # Member creation and disposal
    # ------------------------------------------------------------------

    def _check_creation_allowed(self, from_state_setting: bool) -> None:
        if self.supports_dynamic_state and is_setting_state() and not from_state_setting:
            raise DynamicElementError(
                f"{self.element_id}: dynamic elements are only created by the state engine "
                "while state is being set"
            )

    def create_dynamic_element(
        self, member_component_name: str, args: Sequence[Any]
    ) -> Instrumented:
        """
        Invoke the recipe for one member and check the result.

        Anything the recipe registered for a member that fails its checks is disposed
        before the error propagates, so the identifier stays free.

        Raises:
            ConfigurationError: If the recipe does not accept an identifier plus args.
            StateValidationError: If the member does not validate against the parameter type.
            DynamicElementError: If the member has another IO Type, is not registered under
                the expected identifier, or is not flagged dynamic.
        """
        self._check_arity(len(args))
        member_id = append(self.element_id, member_component_name)
        existing = self.registry.get(member_id)
        element: Any = None
        try:
            with self.registry.creating_dynamic(member_id):
                element = self.create_element(member_id, *args)
            self._check_member(member_id, element)
        except Exception:
            self._discard_failed_member(member_id, element, existing)
            raise
        return element

    def _check_member(self, member_id: str, element: Any) -> None:
        self.parameter_type.validate_value(element)
        if not isinstance(element, Instrumented):
            raise DynamicElementError(f"{member_id}: created object is not instrumented")
        if element.io_type is not self.parameter_type:
            raise DynamicElementError(
                f"{member_id}: expected IO Type {self.parameter_type.type_name}, "
                f"got {element.io_type.type_name}"
            )
        if element.element_id != member_id or self.registry.get(member_id) is not element:
            raise DynamicElementError(
                f"{member_id}: created element is not registered under its id"
            )
        if not element.is_dynamic_element:
            raise DynamicElementError(f"{member_id}: created element is not flagged dynamic")

    def _discard_failed_member(
        self, member_id: str, element: Any, existing: Instrumented | None
    ) -> None:
        candidates = [self.registry.get(member_id)]
        if isinstance(element, Instrumented):
            candidates.append(element)
        for candidate in candidates:
            if (
                candidate is None
                or candidate is existing
                or candidate.is_disposed
                or self.registry.get(candidate.element_id) is not candidate
            ):
                continue
            logger.debug("discarding rejected member %s", candidate.element_id)
            # Bypasses the container override, which refuses static containers.
            if isinstance(candidate, InstrumentedElement):
                InstrumentedElement.dispose(candidate)
            else:
                candidate.dispose()

    def notify_element_created(self, element: Instrumented) -> None:
        if element.is_archetype:
            return
        self.element_created.emit(element)
        payload: dict[str, Any] = {
            "container_id": self.element_id,
            "element_id": element.element_id,
        }
        if element.state:
            payload["state"] = self.parameter_type.to_state_object(element)
        self.registry.publish("created", payload)
        logger.debug("created %s", element.element_id)

    def notify_element_disposed(self, element: Instrumented) -> None:
        if element.is_archetype:
            return
        self.element_disposed.emit(element)
        self.registry.publish(
            "disposed", {"container_id": self.element_id, "element_id": element.element_id}
        )
        logger.debug("disposed %s", element.element_id)

    def _dispose_member(self, element: Instrumented) -> None:
        # Members may already be gone when an enclosing dynamic element was disposed.
        if not element.is_disposed:
            element.dispose()
        self.notify_element_disposed(element)

    @abstractmethod
    def members(self) -> list[Instrumented]:
        """Live members (never the archetype)."""

    @abstractmethod
    def clear(self) -> None:
        """Dispose every live member."""

    def clear_dynamic_elements(self) -> None:
        """Clear members ahead of a state restore (called by the state engine)."""
        self.clear()

    def dispose(self) -> None:
        """
        Dispose a container that is itself inside a dynamic element.

        Raises:
            DynamicElementError: For containers that are not part of a dynamic element.
        """
        if not self.is_dynamic_element:
            raise DynamicElementError(
                f"{self.element_id}: containers are not intended for disposal"
            )
        self.clear()
        super().dispose()


DynamicElementContainerIO = IOType(
    "DynamicElementContainerIO",
    value_type=DynamicElementContainer,
    documentation="Base IO Type for containers of dynamically created elements.",
    metadata_defaults={"dynamic_element_name": None},
)


def container_io_type_name(prefix: str, parameter_type: IOType) -> str:
    return f"{prefix}<{parameter_type.type_name}>"


def require_parameter_type(factory: str, parameter_type: Any) -> IOType:
    if not isinstance(parameter_type, IOType):
        raise ConfigurationError(f"{factory} needs an IOType parameter, got {parameter_type!r}")
    return parameter_type


def pick_container_io_type(
    factory: Callable[[IOType], IOType], io_type: IOType | None, parameter_type: IOType | None
) -> IOType:
    """Return io_type, or build one from parameter_type with factory."""
    if (io_type is None) == (parameter_type is None):
        raise ConfigurationError("pass exactly one of io_type or parameter_type")
    if io_type is not None:
        return io_type
    return factory(parameter_type)  # type: ignore[arg-type]
