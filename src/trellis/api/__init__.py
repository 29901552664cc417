"""
Static API snapshots, comparison, and runtime API validation.

Public surface:
    - ApiSnapshot, ElementEntry, TypeEntry, MethodEntry, build_snapshot, describe_type,
      validate_dynamic_element, BREAKING_API_KEYS
    - compare_apis, api_differences, elements_frame
    - ApiValidator
"""

from __future__ import annotations

from .compare import api_differences, compare_apis, elements_frame
from .snapshot import (
    BREAKING_API_KEYS,
    ApiSnapshot,
    ElementEntry,
    MethodEntry,
    TypeEntry,
    build_snapshot,
    describe_type,
    validate_dynamic_element,
)
from .validation import ApiValidator

__all__ = [
    "BREAKING_API_KEYS",
    "ApiSnapshot",
    "ApiValidator",
    "ElementEntry",
    "MethodEntry",
    "TypeEntry",
    "api_differences",
    "build_snapshot",
    "compare_apis",
    "describe_type",
    "elements_frame",
    "validate_dynamic_element",
]
