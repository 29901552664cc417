"""
State engine: capture and restore the full state of an element registry.

``get_state`` collects ``{element_id: state value}`` for every stateful, non-archetype
element. ``set_state`` replays such a mapping:

1. Open a restore session (``is_setting_state()`` is True) and bind the registry as the
   element resolver used by ReferenceIO.
2. With ``strict_state``, validate every entry whose element already exists before
   anything is cleared or applied.
3. Clear every container that supports dynamic state, outermost first.
4. Attempt each entry in document order. A missing element is re-created through its
   parent container's ``io_type.add_child_element``; then its state is applied. Each
   attempt yields ``Applied`` or ``Deferred`` (the operation raised
   CouldNotYetDeserializeError because something it needs does not exist yet).
5. Re-attempt the deferred entries in another pass, until none remain, a pass makes no
   progress, or ``max_restore_passes`` is reached. Leftovers raise StateRestoreError.

Notes:
    - Only CouldNotYetDeserializeError is treated as transient. Validation and
      configuration errors propagate from the pass in which they occur.
    - ``on_before_apply`` fires with each element right before its state is applied;
      ``undefer`` fires with the whole document once every entry has been applied.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NoReturn

from trellis.core.errors import CouldNotYetDeserializeError, StateRestoreError
from trellis.core.ids import component_name, parent_id
from trellis.dynamic.emitter import Emitter

from .session import StateSession, restoring_state

if TYPE_CHECKING:
    from trellis.dynamic.element import ElementRegistry, Instrumented

__all__ = ["Applied", "Deferred", "ApplyResult", "RestoreReport", "StateEngine"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Applied:
    """State for element_id was applied."""

    element_id: str


@dataclass(frozen=True)
class Deferred:
    """State for element_id must be retried: ``error.element_id`` does not exist yet."""

    element_id: str
    error: CouldNotYetDeserializeError


ApplyResult = Applied | Deferred


@dataclass(frozen=True)
class RestoreReport:
    """
    Outcome of a successful ``set_state``.

    Attributes:
        passes (int): Number of passes used (0 for an empty document).
        applied (tuple[str, ...]): Identifiers in the order their state was applied.
        created (tuple[str, ...]): Dynamic elements re-created, in creation order.
    """

    passes: int
    applied: tuple[str, ...]
    created: tuple[str, ...]


class StateEngine:
    """
    Captures and restores registry state with deferred retry passes.

    Args:
        registry (ElementRegistry): Elements to capture and restore.

    Attributes:
        on_before_apply (Emitter): Called with each element before its state is applied.
        undefer (Emitter): Called with the applied document after a successful restore.
    """

    def __init__(self, registry: ElementRegistry) -> None:
        self.registry = registry
        self.on_before_apply = Emitter()
        self.undefer = Emitter()

    def get_state(self) -> dict[str, Any]:
        """State values of every stateful, non-archetype element, sorted by identifier."""
        state: dict[str, Any] = {}
        for element_id in self.registry.ids():
            element = self.registry.get(element_id)
            if element is None or not element.state or element.is_archetype:
                continue
            state[element_id] = element.io_type.to_state_object(element)
        return state

    def set_state(self, state: Mapping[str, Any]) -> RestoreReport:
        """
        Restore a state mapping produced by ``get_state``.

        Returns:
            RestoreReport: Pass count and applied/created identifiers.

        Raises:
            StateRestoreError: If entries remain deferred when a pass makes no progress or
                the pass limit is reached, or if an element is missing and nothing can
                create it.
            StateValidationError: If an entry does not match its element's IO Type.
        """
        settings = self.registry.settings
        with restoring_state() as session, self.registry.resolving():
            if settings.strict_state:
                self._validate_existing(state)
            self._clear_dynamic_containers()

            pending = list(state)
            last_deferred: list[Deferred] = []
            while pending:
                if session.passes >= settings.max_restore_passes:
                    self._give_up(
                        last_deferred, f"pass limit {settings.max_restore_passes} reached"
                    )
                session.passes += 1
                results = [self._attempt(eid, state[eid], session) for eid in pending]
                last_deferred = [r for r in results if isinstance(r, Deferred)]
                logger.debug(
                    "restore pass %d: %d applied, %d deferred",
                    session.passes,
                    len(results) - len(last_deferred),
                    len(last_deferred),
                )
                if last_deferred and len(last_deferred) == len(pending):
                    self._give_up(last_deferred, "a pass made no progress")
                pending = [r.element_id for r in last_deferred]

            self.undefer.emit(dict(state))
        logger.debug("restored %d entries in %d passes", len(session.applied), session.passes)
        return RestoreReport(session.passes, tuple(session.applied), tuple(session.created))

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _clear_dynamic_containers(self) -> None:
        containers = [
            e
            for e in self.registry
            if getattr(e, "supports_dynamic_state", False) and not e.is_archetype
        ]
        for container in sorted(containers, key=lambda e: e.element_id.count(".")):
            # An outer container may already have disposed this one.
            if self.registry.get(container.element_id) is container:
                container.clear_dynamic_elements()  # type: ignore[attr-defined]

    def _validate_existing(self, state: Mapping[str, Any]) -> None:
        for element_id, value in state.items():
            element = self.registry.get(element_id)
            if element is not None:
                element.io_type.validate_state_object(value)

    def _attempt(self, element_id: str, value: Any, session: StateSession) -> ApplyResult:
        try:
            element = self.registry.get(element_id)
            if element is None:
                element = self._create_missing(element_id, value)
                session.created.append(element_id)
            self.on_before_apply.emit(element)
            element.io_type.apply_state(element, value)
        except CouldNotYetDeserializeError as error:
            return Deferred(element_id, error)
        session.applied.append(element_id)
        return Applied(element_id)

    def _create_missing(self, element_id: str, value: Any) -> Instrumented:
        container_id = parent_id(element_id)
        container = self.registry.get(container_id) if container_id is not None else None
        if container is None:
            # The parent may itself be a dynamic element that a later entry re-creates.
            raise CouldNotYetDeserializeError(container_id or element_id)
        add_child_element = container.io_type.add_child_element
        if add_child_element is None:
            raise StateRestoreError(
                f"no element {element_id} and {container_id} cannot create it",
                pending=(element_id,),
            )
        created = add_child_element(container, component_name(element_id), value)
        if created.element_id != element_id:
            raise StateRestoreError(
                f"{container_id} created {created.element_id} while restoring {element_id}",
                pending=(element_id,),
            )
        return created

    def _give_up(self, deferred: list[Deferred], reason: str) -> NoReturn:
        pending = tuple(d.element_id for d in deferred)
        missing = sorted({d.error.element_id for d in deferred if d.error.element_id})
        raise StateRestoreError(
            f"state restore stopped ({reason}); pending: {', '.join(pending)}; "
            f"missing: {', '.join(missing) or 'unknown'}",
            pending=pending,
        ) from (deferred[-1].error if deferred else None)
