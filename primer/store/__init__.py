"""
store/ - Cluster state access

StateStore interface, the three-way Lookup, and its implementations:
- InMemoryStateStore: dict-backed, for tests and dry runs
- KubernetesStateStore: kubernetes dynamic client (primer.store.kube)
"""

from .base import (
    ResourceRef,
    Lookup,
    StateStore,
)

from .memory import (
    InMemoryStateStore,
    StoreEvent,
)

__all__ = [
    "ResourceRef",
    "Lookup",
    "StateStore",
    "InMemoryStateStore",
    "StoreEvent",
]
