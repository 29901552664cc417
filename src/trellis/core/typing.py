"""
Lightweight typing aliases used across core contracts and containers.

Provides minimal NewTypes and aliases to improve readability and static checks.
This module contains no runtime logic and is zero-IO.

Examples:
    >>> from trellis.core.typing import ElementId, JsonDict
    >>> def describe(element_id: ElementId) -> str:
    ...     return f"element:{element_id}"
    >>> describe(ElementId("sim.model.ball"))
    'element:sim.model.ball'
"""

from __future__ import annotations

from typing import Any, NewType

__all__ = [
    "ElementId",
    "TypeName",
    "JsonDict",
    "StateObject",
    "FullState",
]

# Dotted hierarchical identifier of an instrumented element.
ElementId = NewType("ElementId", str)

# Public IO Type name (e.g., "NullableIO<NumberIO>").
TypeName = NewType("TypeName", str)

JsonDict = dict[str, Any]

# A plain-data state value; shape depends on the owning IO Type.
StateObject = Any

# Flat mapping from identifier to state value.
FullState = dict[str, Any]
