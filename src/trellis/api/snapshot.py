"""
Static API snapshot: per-element metadata and IO Type descriptions.

An ApiSnapshot is a flat ``{element_id: ElementEntry}`` map plus ``{type_name: TypeEntry}``
for every IO Type reachable from a registered element (supertypes, parameter types, and
types named in state schemas). Dynamic members are left out; each pool is represented by
its archetype, whose identifier is what ``archetypal_id`` maps every live member to.

Responsibilities
- Build a snapshot from a registry (``build_snapshot``).
- Check a live dynamic element against its archetype entry (``validate_dynamic_element``).
- Fingerprint snapshots with the canonical JSON policy.

Notes:
    - Metadata keys beyond the standard set (declared by custom IO Types) are kept under
      ``ElementEntry.extra``.
    - Snapshots are plain data; persistence lives in trellis.io.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from trellis.core.constants import EVENT_TYPE_MODEL
from trellis.core.ids import archetypal_id
from trellis.core.io_type import IOType
from trellis.core.serde import hash_api
from trellis.core.versioning import API_V, format_version

if TYPE_CHECKING:
    from trellis.dynamic.element import ElementRegistry, Instrumented

__all__ = [
    "BREAKING_API_KEYS",
    "ElementEntry",
    "MethodEntry",
    "TypeEntry",
    "ApiSnapshot",
    "build_snapshot",
    "describe_type",
    "validate_dynamic_element",
]

# Metadata keys whose change breaks clients of a published API.
BREAKING_API_KEYS: tuple[str, ...] = (
    "dynamic_element",
    "event_type",
    "is_archetype",
    "playback",
    "read_only",
    "state",
    "type_name",
)


class ElementEntry(BaseModel):
    """
    Metadata of one instrumented element.

    Attributes:
        type_name (str): Name of the element's IO Type.
        documentation (str): Per-instance documentation.
        state (bool): Whether the element participates in saved state.
        read_only (bool): Whether clients may change it.
        event_type (str): Event category.
        high_frequency (bool): Whether its events are high frequency.
        playback (bool): Whether its events are replayed.
        dynamic_element (bool): Created at runtime by a container (or an archetype).
        is_archetype (bool): Representative of a dynamic element pool.
        featured (bool): Highlighted in the API.
        designed (bool): Marked as designed.
        archetype_id (str | None): archetypal_id of dynamic elements.
        dynamic_element_name (str | None): Member name, for containers only.
        extra (dict[str, Any]): Other metadata declared by custom IO Types.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    type_name: str
    documentation: str = ""
    state: bool = True
    read_only: bool = False
    event_type: str = EVENT_TYPE_MODEL
    high_frequency: bool = False
    playback: bool = False
    dynamic_element: bool = False
    is_archetype: bool = False
    featured: bool = False
    designed: bool = False
    archetype_id: str | None = None
    dynamic_element_name: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_metadata(cls, metadata: dict[str, Any]) -> ElementEntry:
        known = {k: v for k, v in metadata.items() if k in cls.model_fields and k != "extra"}
        extra = {k: v for k, v in metadata.items() if k not in cls.model_fields}
        return cls(**known, extra=extra)


class MethodEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    return_type: str
    parameter_types: list[str] = Field(default_factory=list)
    documentation: str
    invocable_for_read_only_elements: bool = True


class TypeEntry(BaseModel):
    """
    Description of one IO Type.

    Attributes:
        supertype (str | None): Name of the supertype (None for the root).
        documentation (str): Type documentation.
        events (list[str]): Events declared at this level.
        metadata_defaults (dict[str, Any]): Metadata defaults declared at this level.
        data_defaults (dict[str, Any]): Data defaults declared at this level.
        methods (dict[str, MethodEntry]): Methods declared at this level.
        method_order (list[str]): Display order of methods.
        parameter_types (list[str]): Names of parameter types.
        state_schema (str | dict | None): ``StateSchema.api_description()``.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    supertype: str | None = None
    documentation: str
    events: list[str] = Field(default_factory=list)
    metadata_defaults: dict[str, Any] = Field(default_factory=dict)
    data_defaults: dict[str, Any] = Field(default_factory=dict)
    methods: dict[str, MethodEntry] = Field(default_factory=dict)
    method_order: list[str] = Field(default_factory=list)
    parameter_types: list[str] = Field(default_factory=list)
    state_schema: str | dict[str, Any] | None = None


class ApiSnapshot(BaseModel):
    """
    Static API of a registry at the end of startup.

    Attributes:
        version (str): ``major.minor@date`` of the API code that built it.
        elements (dict[str, ElementEntry]): By identifier.
        types (dict[str, TypeEntry]): By IO Type name.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    version: str = Field(default_factory=lambda: format_version(API_V))
    elements: dict[str, ElementEntry] = Field(default_factory=dict)
    types: dict[str, TypeEntry] = Field(default_factory=dict)

    def fingerprint(self) -> str:
        """SHA-256 of the canonical JSON of elements and types."""
        return hash_api(self.model_dump(mode="json", include={"elements", "types"}))


def describe_type(io_type: IOType) -> TypeEntry:
    """Build the TypeEntry for one IO Type (this level only, not inherited entries)."""
    methods = {
        name: MethodEntry(
            return_type=m.return_type.type_name,
            parameter_types=[p.type_name for p in m.parameter_types],
            documentation=m.documentation,
            invocable_for_read_only_elements=m.invocable_for_read_only_elements,
        )
        for name, m in io_type.methods.items()
    }
    return TypeEntry(
        supertype=io_type.supertype.type_name if io_type.supertype is not None else None,
        documentation=io_type.documentation,
        events=list(io_type.events),
        metadata_defaults=dict(io_type.metadata_defaults),
        data_defaults=dict(io_type.data_defaults),
        methods=methods,
        method_order=list(io_type.method_order),
        parameter_types=[p.type_name for p in io_type.parameter_types],
        state_schema=io_type.state_schema.api_description() if io_type.state_schema else None,
    )


def _reachable_types(roots: Iterable[IOType]) -> dict[str, IOType]:
    found: dict[str, IOType] = {}
    stack = list(roots)
    while stack:
        io_type = stack.pop()
        if io_type.type_name in found:
            continue
        found[io_type.type_name] = io_type
        if io_type.supertype is not None:
            stack.append(io_type.supertype)
        stack.extend(io_type.parameter_types)
        if io_type.state_schema is not None:
            stack.extend(io_type.state_schema.related_types())
        for method in io_type.methods.values():
            stack.append(method.return_type)
            stack.extend(method.parameter_types)
    return found


def build_snapshot(registry: ElementRegistry) -> ApiSnapshot:
    """
    Snapshot every registered element except live dynamic members.

    Examples:
        >>> from trellis.dynamic.element import ElementRegistry, InstrumentedElement
        >>> registry = ElementRegistry()
        >>> _ = InstrumentedElement(registry, "sim.model.thing")
        >>> snapshot = build_snapshot(registry)
        >>> snapshot.elements["sim.model.thing"].type_name
        'ObjectIO'
        >>> sorted(snapshot.types)
        ['ObjectIO']
    """
    elements: dict[str, ElementEntry] = {}
    io_types: list[IOType] = []
    for element_id in registry.ids():
        element = registry.get(element_id)
        if element is None or (element.is_dynamic_element and not element.is_archetype):
            continue
        metadata = element.metadata()  # type: ignore[attr-defined]
        elements[element_id] = ElementEntry.from_metadata(metadata)
        io_types.append(element.io_type)
    types = {
        name: describe_type(io_type) for name, io_type in sorted(_reachable_types(io_types).items())
    }
    return ApiSnapshot(elements=elements, types=types)


def validate_dynamic_element(snapshot: ApiSnapshot, element: Instrumented) -> list[str]:
    """
    Compare a live dynamic element with its archetype entry.

    Returns:
        list[str]: Problems found; empty when the element matches its archetype.
    """
    archetype = archetypal_id(element.element_id)
    entry = snapshot.elements.get(archetype)
    if entry is None:
        return [f"no archetype {archetype} for dynamic element {element.element_id}"]
    live = ElementEntry.from_metadata(element.metadata())  # type: ignore[attr-defined]
    problems = []
    for key in BREAKING_API_KEYS:
        if key == "is_archetype":
            continue
        expected, received = getattr(entry, key), getattr(live, key)
        if expected != received:
            problems.append(
                f"invalid metadata for {element.element_id}, key={key}, "
                f"expected {expected} but received {received}"
            )
    return problems
