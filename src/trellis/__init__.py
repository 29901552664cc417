"""
trellis: versioned, introspectable state and API contracts for instrumented object graphs.

Subpackages:
    - trellis.core: identifiers, IO Types, state schemas, parametric type caches (zero-IO).
    - trellis.dynamic: element registry and dynamic element containers.
    - trellis.state: restore sessions, the state engine, state documents.
    - trellis.api: static API snapshots, comparison, runtime API validation.
    - trellis.io: configuration and persistence.
"""

__version__ = "0.1.0"
