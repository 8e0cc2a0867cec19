"""
store/base.py - State store interface

The operator reads and writes cluster objects only through a StateStore.
Reads answer with a three-way Lookup (found, absent, error) so callers
branch on the outcome instead of inspecting exception types.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..core.enums import LookupState
from ..errors import PrimerError


@dataclass(frozen=True)
class ResourceRef:
    """Identity of a single cluster object."""

    api_version: str
    kind: str
    name: str
    namespace: Optional[str] = None  # None for cluster-scoped kinds

    @property
    def cluster_scoped(self) -> bool:
        return self.namespace is None

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind} {self.namespace}/{self.name}"
        return f"{self.kind} {self.name}"

    @classmethod
    def from_manifest(cls, manifest: Dict[str, Any]) -> "ResourceRef":
        metadata = manifest.get("metadata") or {}
        return cls(
            api_version=manifest["apiVersion"],
            kind=manifest["kind"],
            name=metadata["name"],
            namespace=metadata.get("namespace"),
        )


@dataclass
class Lookup:
    """Result of reading one object: Found(obj) | Absent | Error(cause)."""

    state: LookupState
    obj: Optional[Dict[str, Any]] = None
    error: Optional[PrimerError] = None

    @classmethod
    def found(cls, obj: Dict[str, Any]) -> "Lookup":
        return cls(state=LookupState.FOUND, obj=obj)

    @classmethod
    def absent(cls) -> "Lookup":
        return cls(state=LookupState.ABSENT)

    @classmethod
    def failed(cls, error: PrimerError) -> "Lookup":
        return cls(state=LookupState.ERROR, error=error)

    @property
    def is_found(self) -> bool:
        return self.state == LookupState.FOUND

    @property
    def is_absent(self) -> bool:
        return self.state == LookupState.ABSENT

    @property
    def is_error(self) -> bool:
        return self.state == LookupState.ERROR


class StateStore(ABC):
    """
    Access to the cluster's current state.

    Implementations turn "not found" into Lookup.absent() and every other
    failure into a StateStoreError (raised by writes, wrapped by reads).
    """

    @abstractmethod
    def get_export(self, namespace: str, name: str) -> Lookup:
        """Read an Export object."""

    @abstractmethod
    def list_exports(self, namespace: Optional[str] = None) -> List[Dict[str, Any]]:
        """List Export objects, optionally within one namespace."""

    @abstractmethod
    def get(self, ref: ResourceRef) -> Lookup:
        """Read a managed object."""

    @abstractmethod
    def create(self, manifest: Dict[str, Any]) -> Dict[str, Any]:
        """Create an object and return it as stored."""

    @abstractmethod
    def update_status(self, export: Dict[str, Any]) -> Dict[str, Any]:
        """Replace the status of an Export object."""

    @abstractmethod
    def delete(self, ref: ResourceRef, propagation_policy: Optional[str] = None) -> None:
        """Delete an object. Absent objects are reported as StateStoreError."""
