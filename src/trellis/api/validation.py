"""
Runtime checks that a registry keeps to its reference API (``api_mode="validate_api"``).

Rules checked:
- After startup, only dynamic elements may be registered.
- Static elements are never unregistered.
- One type name, one IO Type: two distinct IOType objects may not share a name.
- At the end of startup, every static element of the reference snapshot is registered and
  the freshly built snapshot has no breaking differences from the reference.

Mismatches found during startup are collected and raised together when startup ends;
after startup each mismatch raises ApiValidationError immediately.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from trellis.core.errors import ApiValidationError
from trellis.core.ids import is_dynamic_element_id
from trellis.core.io_type import IOType

from .compare import compare_apis
from .snapshot import ApiSnapshot, build_snapshot

if TYPE_CHECKING:
    from trellis.dynamic.element import ElementRegistry, Instrumented

__all__ = ["ApiValidator"]

logger = logging.getLogger(__name__)


class ApiValidator:
    """
    Listens to a registry and records API rule violations.

    Args:
        registry (ElementRegistry): Registry to watch.
        reference (ApiSnapshot | None): Expected API; without one only the structural rules
            are checked.
        enabled (bool | None): Defaults to ``registry.settings.api_mode == "validate_api"``.

    Attributes:
        mismatches (list[str]): Violations recorded so far.
    """

    def __init__(
        self,
        registry: ElementRegistry,
        reference: ApiSnapshot | None = None,
        *,
        enabled: bool | None = None,
    ) -> None:
        self.registry = registry
        self.reference = reference
        self.enabled = registry.settings.api_mode == "validate_api" if enabled is None else enabled
        self.mismatches: list[str] = []
        self._types: dict[str, IOType] = {}
        if self.enabled:
            for element in registry:
                self._on_added(element)
            registry.element_added.add_listener(self._on_added)
            registry.element_removed.add_listener(self._on_removed)
            registry.startup_finished.add_listener(self._on_started)

    def dispose(self) -> None:
        for emitter, listener in (
            (self.registry.element_added, self._on_added),
            (self.registry.element_removed, self._on_removed),
            (self.registry.startup_finished, self._on_started),
        ):
            if emitter.has_listener(listener):
                emitter.remove_listener(listener)

    def raise_if_mismatches(self) -> None:
        """
        Raises:
            ApiValidationError: If any mismatch has been recorded.
        """
        if self.mismatches:
            raise ApiValidationError(tuple(self.mismatches))

    def _add(self, mismatch: str) -> None:
        logger.debug("API mismatch: %s", mismatch)
        self.mismatches.append(mismatch)
        if self.registry.started:
            self.raise_if_mismatches()

    def _on_added(self, element: Instrumented) -> None:
        element_id = element.element_id
        if self.registry.started and not (
            element.is_dynamic_element or is_dynamic_element_id(element_id)
        ):
            self._add(f"{element_id}: only dynamic elements can be registered after startup")
        io_type = element.io_type
        known = self._types.setdefault(io_type.type_name, io_type)
        if known is not io_type:
            self._add(f"{element_id}: another IO Type is already named {io_type.type_name}")

    def _on_removed(self, element: Instrumented) -> None:
        if not (element.is_dynamic_element or is_dynamic_element_id(element.element_id)):
            self._add(f"{element.element_id}: static elements can never be unregistered")

    def _on_started(self, registry: ElementRegistry) -> None:
        if self.reference is not None:
            for element_id, entry in sorted(self.reference.elements.items()):
                if not entry.dynamic_element and not registry.has(element_id):
                    self.mismatches.append(f"{element_id}: expected but not registered")
            snapshot = build_snapshot(registry)
            self.mismatches.extend(compare_apis(self.reference, snapshot))
        self.raise_if_mismatches()
