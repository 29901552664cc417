"""
Instrumented elements, the element registry, and dynamic element containers.

Public surface:
    - ElementRegistry, InstrumentedElement, Instrumented
    - DynamicElementContainer, DynamicElementContainerIO
    - Group / GroupIO, Capsule / CapsuleIO, Singleton / SingletonIO
    - Emitter
"""

from __future__ import annotations

from .capsule import Capsule, CapsuleIO, Singleton, SingletonIO
from .container import DynamicElementContainer, DynamicElementContainerIO
from .element import ElementRegistry, Instrumented, InstrumentedElement
from .emitter import Emitter
from .group import Group, GroupIO

__all__ = [
    "Capsule",
    "CapsuleIO",
    "DynamicElementContainer",
    "DynamicElementContainerIO",
    "ElementRegistry",
    "Emitter",
    "Group",
    "GroupIO",
    "Instrumented",
    "InstrumentedElement",
    "Singleton",
    "SingletonIO",
]
