"""
resources/ownership.py - Ownership table

Maps an export identity to the identities of every child object it owns.
The table drives both halves of teardown:
- cascading children get an owner reference so the platform deletes them
  together with the export
- transient children are deleted explicitly once the export completes
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, TYPE_CHECKING

from ..core.enums import ResourceKind
from ..store.base import ResourceRef
from .naming import cluster_resource_name, resource_name

if TYPE_CHECKING:
    from ..core.export import ExportRequest

# Deleted on completion, in this order
TRANSIENT_KINDS = (
    ResourceKind.JOB,
    ResourceKind.CLUSTER_ROLE,
    ResourceKind.CLUSTER_ROLE_BINDING,
)


@dataclass(frozen=True)
class OwnedResource:
    """One child of an export."""
    kind: ResourceKind
    ref: ResourceRef
    cascade: bool     # carries an owner reference to the export
    transient: bool   # deleted by cleanup on completion


@dataclass
class OwnershipTable:
    """Children of a single export, keyed by kind."""

    owner_key: str
    owner_reference: Dict[str, Any]
    children: Dict[ResourceKind, OwnedResource] = field(default_factory=dict)

    @classmethod
    def for_export(cls, request: "ExportRequest") -> "OwnershipTable":
        table = cls(owner_key=request.key, owner_reference=request.owner_reference())
        for kind in ResourceKind:
            if kind.cluster_scoped:
                ref = ResourceRef(kind.api_version, kind.value, cluster_resource_name(request))
            else:
                ref = ResourceRef(kind.api_version, kind.value, resource_name(request), request.namespace)
            table.children[kind] = OwnedResource(
                kind=kind,
                ref=ref,
                cascade=not kind.cluster_scoped,
                transient=kind in TRANSIENT_KINDS,
            )
        return table

    def ref(self, kind: ResourceKind) -> ResourceRef:
        return self.children[kind].ref

    def transient(self) -> List[OwnedResource]:
        """Children removed on completion, in deletion order."""
        return [self.children[kind] for kind in TRANSIENT_KINDS]

    def cascading(self) -> List[OwnedResource]:
        """Children the platform removes when the export is deleted."""
        return [child for child in self.children.values() if child.cascade]

    def metadata_for(self, kind: ResourceKind) -> Dict[str, Any]:
        """Object metadata for a child: name, namespace and owner reference if cascading."""
        child = self.children[kind]
        metadata: Dict[str, Any] = {"name": child.ref.name}
        if child.ref.namespace:
            metadata["namespace"] = child.ref.namespace
        if child.cascade:
            metadata["ownerReferences"] = [dict(self.owner_reference)]
        return metadata
