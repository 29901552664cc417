"""
Instrumented elements and the registry that owns them.

Responsibilities
- Define the capability set every instrumented object exposes to containers and to the
  state engine (``Instrumented``): identifier, IO Type, dynamic/archetype flags, state and
  read-only flags, disposal.
- Provide ``InstrumentedElement``, a base class that registers itself on construction and
  unregisters (with its registered descendants) on disposal.
- Provide ``ElementRegistry``: identifier lookup, the "application started" flag, creation
  scopes that flag elements as dynamic members or archetypes, and the data stream of
  created/disposed events.

Flag inheritance
- An element registered while its identifier is inside a dynamic creation scope, or below
  a registered dynamic element, is a dynamic element.
- Likewise for archetypes. Archetypes are always dynamic elements too.

Examples:
    >>> from trellis.dynamic.element import ElementRegistry, InstrumentedElement
    >>> registry = ElementRegistry()
    >>> element = InstrumentedElement(registry, "sim.model.thing")
    >>> registry.get("sim.model.thing") is element
    True
    >>> element.dispose()
    >>> registry.get("sim.model.thing") is None
    True
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Any, Protocol, runtime_checkable

from trellis.core.constants import ELEMENT_METADATA_DEFAULTS
from trellis.core.errors import DynamicElementError, IdentifierError
from trellis.core.ids import archetypal_id, is_ancestor, parent_id
from trellis.core.io_type import IOType, ObjectIO
from trellis.core.types import resolving_elements
from trellis.io.config import TrellisSettings

from .emitter import Emitter

__all__ = ["Instrumented", "InstrumentedElement", "ElementRegistry"]

logger = logging.getLogger(__name__)


@runtime_checkable
class Instrumented(Protocol):
    """Capabilities the core relies on for any instrumented object."""

    element_id: str
    io_type: IOType

    @property
    def is_dynamic_element(self) -> bool: ...

    @property
    def is_archetype(self) -> bool: ...

    @property
    def state(self) -> bool: ...

    @property
    def read_only(self) -> bool: ...

    @property
    def is_disposed(self) -> bool: ...

    def dispose(self) -> None: ...


class InstrumentedElement:
    """
    Base class for objects exposed through the element registry.

    Args:
        registry (ElementRegistry): Registry to join; registration happens in __init__.
        element_id (str): Unique identifier.
        io_type (IOType): Descriptor for this element's state and API.
        state (bool): Whether the element participates in saved state.
        read_only (bool): Whether clients may change the element.
        featured (bool): Whether the element is highlighted in the API.
        documentation (str): Per-instance documentation.
        **metadata: Overrides for other per-instance metadata (e.g., ``event_type``,
            ``high_frequency``, ``playback``, ``designed``).

    Raises:
        StateValidationError: If the element does not validate against io_type.
        IdentifierError: If element_id is already registered.
    """

    def __init__(
        self,
        registry: ElementRegistry,
        element_id: str,
        io_type: IOType = ObjectIO,
        *,
        state: bool = True,
        read_only: bool = False,
        featured: bool = False,
        documentation: str = "",
        **metadata: Any,
    ) -> None:
        unknown = set(metadata) - set(io_type.all_metadata_defaults())
        if unknown:
            raise TypeError(f"unknown element metadata: {sorted(unknown)}")
        self.registry = registry
        self.element_id = element_id
        self.io_type = io_type
        self._state = state
        self._read_only = read_only
        self._featured = featured
        self._documentation = documentation
        self._metadata_overrides = dict(metadata)
        self._dynamic_element = False
        self._archetype = False
        self._disposed = False
        io_type.validate_value(self)
        registry.register(self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.element_id!r})"

    @property
    def is_dynamic_element(self) -> bool:
        return self._dynamic_element

    @property
    def is_archetype(self) -> bool:
        return self._archetype

    @property
    def state(self) -> bool:
        return self._state

    @property
    def read_only(self) -> bool:
        return self._read_only

    @property
    def featured(self) -> bool:
        return self._featured

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def mark_dynamic_element(self) -> None:
        self._dynamic_element = True

    def mark_archetype(self) -> None:
        """Flag this element as an archetype (implies dynamic)."""
        self._archetype = True
        self._dynamic_element = True

    def metadata(self) -> dict[str, Any]:
        """Per-instance metadata: IO Type defaults overlaid with this element's values."""
        meta = {**ELEMENT_METADATA_DEFAULTS, **self.io_type.all_metadata_defaults()}
        meta.update(self._metadata_overrides)
        meta.update(
            type_name=self.io_type.type_name,
            documentation=self._documentation,
            state=self._state,
            read_only=self._read_only,
            featured=self._featured,
            dynamic_element=self._dynamic_element,
            is_archetype=self._archetype,
            archetype_id=archetypal_id(self.element_id) if self._dynamic_element else None,
        )
        return meta

    def dispose(self) -> None:
        """Unregister this element and every registered descendant, deepest first."""
        if self._disposed:
            raise DynamicElementError(f"element already disposed: {self.element_id}")
        for descendant in sorted(
            self.registry.descendants(self.element_id),
            key=lambda e: e.element_id.count("."),
            reverse=True,
        ):
            if not descendant.is_disposed:
                descendant.dispose()
        self.registry.unregister(self)
        self._disposed = True


class ElementRegistry:
    """
    Identifier -> element table plus lifecycle notifications.

    Args:
        settings (TrellisSettings | None): Runtime settings; defaults to
            ``TrellisSettings()``.

    Attributes:
        started (bool): True once the application has finished startup; archetypes are
            only created before that.
        element_added (Emitter): Called with each newly registered element.
        element_removed (Emitter): Called with each unregistered element.
        data_stream (Emitter): Called with ``(event_name, payload)`` for dynamic element
            creation and disposal (never for archetypes).
        startup_finished (Emitter): Called with the registry when ``start()`` runs.
    """

    def __init__(self, settings: TrellisSettings | None = None) -> None:
        self.settings = settings if settings is not None else TrellisSettings()
        self.started = False
        self._elements: dict[str, Instrumented] = {}
        self._dynamic_scopes: list[str] = []
        self._archetype_scopes: list[str] = []
        self.element_added = Emitter()
        self.element_removed = Emitter()
        self.data_stream = Emitter()
        self.startup_finished = Emitter()

    def __contains__(self, element_id: object) -> bool:
        return element_id in self._elements

    def __len__(self) -> int:
        return len(self._elements)

    def __iter__(self) -> Iterator[Instrumented]:
        return iter(list(self._elements.values()))

    def start(self) -> None:
        """Mark the application as started (end of startup)."""
        self.started = True
        logger.debug("registry started with %d elements", len(self._elements))
        self.startup_finished.emit(self)

    def get(self, element_id: str) -> Instrumented | None:
        return self._elements.get(element_id)

    def has(self, element_id: str) -> bool:
        return element_id in self._elements

    def ids(self) -> list[str]:
        """Registered identifiers, sorted."""
        return sorted(self._elements)

    def descendants(self, element_id: str) -> list[Instrumented]:
        """Registered elements strictly below element_id."""
        return [e for i, e in self._elements.items() if is_ancestor(element_id, i)]

    def register(self, element: Instrumented) -> None:
        """
        Add an element, applying dynamic/archetype flags from active scopes and ancestors.

        Raises:
            IdentifierError: If the identifier is already registered.
        """
        element_id = element.element_id
        if element_id in self._elements:
            raise IdentifierError(f"element already registered: {element_id}")
        if self._in_scope(element_id, self._archetype_scopes) or self._ancestor_flag(
            element_id, "is_archetype"
        ):
            element.mark_archetype()  # type: ignore[attr-defined]
        elif self._in_scope(element_id, self._dynamic_scopes) or self._ancestor_flag(
            element_id, "is_dynamic_element"
        ):
            element.mark_dynamic_element()  # type: ignore[attr-defined]
        self._elements[element_id] = element
        logger.debug("registered %s (%s)", element_id, element.io_type.type_name)
        self.element_added.emit(element)

    def unregister(self, element: Instrumented) -> None:
        element_id = element.element_id
        if self._elements.get(element_id) is not element:
            raise IdentifierError(f"element is not registered: {element_id}")
        del self._elements[element_id]
        logger.debug("unregistered %s", element_id)
        self.element_removed.emit(element)

    @contextmanager
    def creating_dynamic(self, element_id: str) -> Iterator[None]:
        """Flag elements registered at or below element_id as dynamic elements."""
        self._dynamic_scopes.append(element_id)
        try:
            yield
        finally:
            self._dynamic_scopes.pop()

    @contextmanager
    def creating_archetype(self, element_id: str) -> Iterator[None]:
        """Flag elements registered at or below element_id as archetypes."""
        self._archetype_scopes.append(element_id)
        try:
            yield
        finally:
            self._archetype_scopes.pop()

    def resolving(self) -> AbstractContextManager[None]:
        """Bind this registry as the element resolver used by ReferenceIO."""
        return resolving_elements(self.get)

    def publish(self, event: str, payload: dict[str, Any]) -> None:
        """Send a data stream event to listeners."""
        self.data_stream.emit(event, payload)

    def _in_scope(self, element_id: str, scopes: list[str]) -> bool:
        return any(s == element_id or is_ancestor(s, element_id) for s in scopes)

    def _ancestor_flag(self, element_id: str, flag: str) -> bool:
        current = parent_id(element_id)
        while current is not None:
            ancestor = self._elements.get(current)
            if ancestor is not None and getattr(ancestor, flag, False):
                return True
            current = parent_id(current)
        return False
