"""
Hierarchical element identifiers and helpers.

Builds, parses, and canonicalizes the dotted identifiers assigned to instrumented
elements. Every helper is pure and zero-IO.

Responsibilities
- Append component names to a base identifier, rejecting separators inside a name.
- Split identifiers into their component name and parent identifier.
- Test strict ancestry on whole segments.
- Map identifiers of dynamic members onto their archetypal form.

Identifier grammar
------------------
    identifier     = segment { "." segment } ;
    segment        = term { "-" term } ;             (inter-term: embedded identifiers)
    term           = name | name "_" ordinal ;       (ordinal: Nth member of a group)

A segment ending in a fixed-name container suffix (``Capsule``, ``Singleton``) holds a
single dynamic member whose name carries no ordinal, so the segment after it is the
dynamic one.

Archetype mapping
-----------------
All members of a pool share one static API entry. ``archetypal_id`` replaces every
ordinal-bearing term, and every segment that follows a fixed-name container segment,
with ``archetype``:

- sim.screen.model.circuit.group.battery_0.current
  -> sim.screen.model.circuit.group.archetype.current
- sim.model.dialogCapsule.dialog.titleProperty
  -> sim.model.dialogCapsule.archetype.titleProperty
- sim.view.links.sim-model-batteryGroup-battery_4-x
  -> sim.view.links.sim-model-batteryGroup-archetype-x

Examples
--------
>>> from trellis.core.ids import append, component_name, parent_id, archetypal_id
>>> append("sim.model", "ball", "positionProperty")
'sim.model.ball.positionProperty'
>>> component_name("sim.model.ball")
'ball'
>>> parent_id("sim") is None
True
>>> archetypal_id("sim.model.ballGroup.ball_3.positionProperty")
'sim.model.ballGroup.archetype.positionProperty'
"""

from __future__ import annotations

import re
from typing import Final

from .constants import (
    ARCHETYPE,
    CAPSULE_SUFFIX,
    GROUP_SEPARATOR,
    INTER_TERM_SEPARATOR,
    SCREEN_SUFFIX,
    SEPARATOR,
    SINGLETON_SUFFIX,
)
from .errors import IdentifierError

__all__ = [
    "append",
    "segments",
    "component_name",
    "parent_id",
    "screen_id",
    "is_ancestor",
    "archetypal_id",
    "is_dynamic_element_id",
    "group_element_name",
    "group_element_index",
    "is_valid_dynamic_term",
    "FIXED_MEMBER_CONTAINER_SUFFIXES",
]

# Segments ending in one of these hold exactly one, unnumbered, dynamic member.
FIXED_MEMBER_CONTAINER_SUFFIXES: Final[tuple[str, ...]] = (CAPSULE_SUFFIX, SINGLETON_SUFFIX)

_DYNAMIC_TERM_RE: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9_]+$")


def append(element_id: str, *component_names: str) -> str:
    """
    Append one or more component names to an identifier.

    Args:
        element_id (str): Base identifier; may be "" to start a new root.
        *component_names (str): Names to append, in order. Empty names are skipped.

    Returns:
        str: The extended identifier.

    Raises:
        IdentifierError: If a component name contains the separator.

    Examples:
        >>> append("sim.screen", "controlPanel", "", "comboBox")
        'sim.screen.controlPanel.comboBox'
        >>> append("", "sim")
        'sim'
    """
    for name in component_names:
        if SEPARATOR in name:
            raise IdentifierError(f"separator appears in component name: {name!r}")
        if name == "":
            continue
        element_id = name if element_id == "" else element_id + SEPARATOR + name
    return element_id


def segments(element_id: str) -> list[str]:
    """Split an identifier into its dot-separated segments."""
    return element_id.split(SEPARATOR)


def component_name(element_id: str) -> str:
    """
    Get the last segment of an identifier.

    Args:
        element_id (str): Non-empty identifier.

    Returns:
        str: The tail segment; the identifier itself when it has no separator.

    Raises:
        IdentifierError: If element_id is empty.
    """
    if not element_id:
        raise IdentifierError("cannot take the component name of an empty identifier")
    index = element_id.rfind(SEPARATOR)
    return element_id if index == -1 else element_id[index + 1 :]


def parent_id(element_id: str) -> str | None:
    """
    Get the identifier of the parent component.

    Returns:
        str | None: Everything before the last separator, or None at the root.

    Examples:
        >>> parent_id("sim.model.ball")
        'sim.model'
    """
    index = element_id.rfind(SEPARATOR)
    return None if index == -1 else element_id[:index]


def screen_id(element_id: str) -> str | None:
    """
    Get the identifier prefix that ends at the first screen segment.

    A screen segment ends with ``Screen`` and has at least one character before it.

    Examples:
        >>> screen_id("sim.introScreen.model.property")
        'sim.introScreen'
        >>> screen_id("sim.general.activeProperty") is None
        True
    """
    parts: list[str] = []
    for part in segments(element_id):
        parts.append(part)
        if len(part) > len(SCREEN_SUFFIX) and part.endswith(SCREEN_SUFFIX):
            return SEPARATOR.join(parts)
    return None


def is_ancestor(potential_ancestor: str, potential_descendant: str) -> bool:
    """
    Check strict ancestry by whole segments.

    Returns:
        bool: True when every segment of potential_ancestor matches the leading segments
        of potential_descendant and the identifiers differ.

    Examples:
        >>> is_ancestor("sim.model", "sim.model.ball")
        True
        >>> is_ancestor("sim.mod", "sim.model.ball")
        False
        >>> is_ancestor("sim.model", "sim.model")
        False
    """
    ancestor_parts = segments(potential_ancestor)
    descendant_parts = segments(potential_descendant)
    if len(ancestor_parts) > len(descendant_parts):
        return False
    for a, d in zip(ancestor_parts, descendant_parts):
        if a != d:
            return False
    return potential_ancestor != potential_descendant


def _is_fixed_member_container(segment: str) -> bool:
    return any(segment.endswith(suffix) for suffix in FIXED_MEMBER_CONTAINER_SUFFIXES)


def archetypal_id(element_id: str) -> str:
    """
    Map an identifier onto the canonical form shared by all members of its pool.

    Args:
        element_id (str): Any well-formed identifier.

    Returns:
        str: The identifier with every dynamic term replaced by ``archetype``.

    Notes:
        - Idempotent: archetypal_id(archetypal_id(x)) == archetypal_id(x).
        - Identifiers without dynamic terms are returned unchanged.
        - Inter-term parts (joined with "-") are mapped one by one.

    Examples:
        >>> archetypal_id("sim.model.group.battery_0.currentProperty")
        'sim.model.group.archetype.currentProperty'
        >>> archetypal_id("sim.model.group")
        'sim.model.group'
    """
    parts = segments(element_id)
    i = 0
    while i < len(parts):
        term = parts[i]
        if _is_fixed_member_container(term) and i < len(parts) - 1:
            parts[i + 1] = ARCHETYPE
            i += 2
            continue
        inner = [
            ARCHETYPE if GROUP_SEPARATOR in sub else sub
            for sub in term.split(INTER_TERM_SEPARATOR)
        ]
        parts[i] = INTER_TERM_SEPARATOR.join(inner)
        i += 1
    return SEPARATOR.join(parts)


def is_dynamic_element_id(element_id: str) -> bool:
    """True when the identifier names (or lives beneath) a dynamic member."""
    return archetypal_id(element_id) != element_id


def group_element_name(prefix: str, index: int) -> str:
    """
    Build the component name of the index-th member of a group.

    Raises:
        IdentifierError: If prefix contains the separator or index is negative.

    Examples:
        >>> group_element_name("battery", 2)
        'battery_2'
    """
    if SEPARATOR in prefix:
        raise IdentifierError(f"separator appears in group prefix: {prefix!r}")
    if index < 0:
        raise IdentifierError(f"group element index must be non-negative, got {index}")
    return f"{prefix}{GROUP_SEPARATOR}{index}"


def group_element_index(name: str) -> int:
    """
    Get the ordinal from a group member's component name.

    Args:
        name (str): Component name such as ``particle_7``.

    Returns:
        int: The ordinal after the last group separator.

    Raises:
        IdentifierError: If the name has no ordinal suffix.

    Examples:
        >>> group_element_index("particle_7")
        7
    """
    head, sep, tail = name.rpartition(GROUP_SEPARATOR)
    if not sep or not head or not tail.isdigit():
        raise IdentifierError(f"component name does not carry a group ordinal: {name!r}")
    return int(tail)


def is_valid_dynamic_term(term: str) -> bool:
    """True if a dynamic member's component name uses only alphanumerics and underscores."""
    return bool(_DYNAMIC_TERM_RE.match(term or ""))
