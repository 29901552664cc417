"""
Trellis core naming constants and metadata defaults.

Defines identifier separators, reserved component names, IO Type naming rules, and
the default per-element metadata consumed by IO Types and the API snapshot. This
module is zero-IO and uses only the Python standard library.

Notes:
    - Identifiers are dotted paths (SEPARATOR); dynamic members carry an ordinal after
      GROUP_SEPARATOR (e.g., ``battery_3``); identifiers embedded inside a segment are
      joined with INTER_TERM_SEPARATOR.
    - ARCHETYPE is the placeholder used by ``trellis.core.ids.archetypal_id``.
    - Changes to these constants change the public API and require a version bump.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Final

__all__ = [
    "SEPARATOR",
    "GROUP_SEPARATOR",
    "INTER_TERM_SEPARATOR",
    "ARCHETYPE",
    "CAPSULE_SUFFIX",
    "GROUP_SUFFIX",
    "SINGLETON_SUFFIX",
    "SCREEN_SUFFIX",
    "SINGLETON_INSTANCE_NAME",
    "GENERAL_COMPONENT_NAME",
    "GLOBAL_COMPONENT_NAME",
    "HOME_SCREEN_COMPONENT_NAME",
    "MODEL_COMPONENT_NAME",
    "VIEW_COMPONENT_NAME",
    "CONTROLLER_COMPONENT_NAME",
    "COLORS_COMPONENT_NAME",
    "STRINGS_COMPONENT_NAME",
    "IO_TYPE_SUFFIX",
    "OBJECT_IO_TYPE_NAME",
    "EVENT_TYPE_MODEL",
    "PRIVATE_STATE_KEY",
    "ELEMENT_METADATA_DEFAULTS",
]

# Identifier separators.
SEPARATOR: Final[str] = "."
GROUP_SEPARATOR: Final[str] = "_"
INTER_TERM_SEPARATOR: Final[str] = "-"

# Placeholder for every dynamic member of a pool.
ARCHETYPE: Final[str] = "archetype"

# Container name suffixes; the member name is the container name without its suffix.
CAPSULE_SUFFIX: Final[str] = "Capsule"
GROUP_SUFFIX: Final[str] = "Group"
SINGLETON_SUFFIX: Final[str] = "Singleton"
SCREEN_SUFFIX: Final[str] = "Screen"

SINGLETON_INSTANCE_NAME: Final[str] = "instance"

# Well-known component names.
GENERAL_COMPONENT_NAME: Final[str] = "general"
GLOBAL_COMPONENT_NAME: Final[str] = "global"
HOME_SCREEN_COMPONENT_NAME: Final[str] = "homeScreen"
MODEL_COMPONENT_NAME: Final[str] = "model"
VIEW_COMPONENT_NAME: Final[str] = "view"
CONTROLLER_COMPONENT_NAME: Final[str] = "controller"
COLORS_COMPONENT_NAME: Final[str] = "colors"
STRINGS_COMPONENT_NAME: Final[str] = "strings"

# IO Type naming.
IO_TYPE_SUFFIX: Final[str] = "IO"
OBJECT_IO_TYPE_NAME: Final[str] = "ObjectIO"

EVENT_TYPE_MODEL: Final[str] = "MODEL"

# Composite state values keep internal fields under this key.
PRIVATE_STATE_KEY: Final[str] = "_private"

# Default metadata for every instrumented element. Values matching these defaults are
# what an API snapshot compares against; read-only view.
ELEMENT_METADATA_DEFAULTS: Final[MappingProxyType[str, Any]] = MappingProxyType(
    {
        "type_name": OBJECT_IO_TYPE_NAME,
        "documentation": "",
        "state": True,
        "read_only": False,
        "event_type": EVENT_TYPE_MODEL,
        "high_frequency": False,
        "playback": False,
        "dynamic_element": False,
        "is_archetype": False,
        "featured": False,
        "designed": False,
        "archetype_id": None,
    }
)
