"""
kernel/catalog.py - Ordered catalog of managed objects

The engine walks these entries in order, creating at most one missing object
per pass. Gates decide which entries apply to an export.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple

from ..core.enums import ExportMethod, ResourceKind

ALL_METHODS = (ExportMethod.GIT, ExportMethod.DOWNLOAD)


@dataclass(frozen=True)
class CatalogEntry:
    """One step of the walk."""
    kind: ResourceKind
    methods: Tuple[ExportMethod, ...] = ALL_METHODS
    requires_job_success: bool = False

    def applies(self, method: Optional[ExportMethod], job_succeeded: bool) -> bool:
        if method not in self.methods:
            return False
        return job_succeeded or not self.requires_job_success


CATALOG: Tuple[CatalogEntry, ...] = (
    CatalogEntry(ResourceKind.JOB),
    CatalogEntry(ResourceKind.SERVICE_ACCOUNT),
    CatalogEntry(ResourceKind.SECRET),
    CatalogEntry(ResourceKind.ROUTE),
    CatalogEntry(ResourceKind.CLUSTER_ROLE),
    CatalogEntry(ResourceKind.CLUSTER_ROLE_BINDING),
    CatalogEntry(ResourceKind.NETWORK_POLICY, methods=(ExportMethod.DOWNLOAD,)),
    CatalogEntry(ResourceKind.PERSISTENT_VOLUME_CLAIM),
    CatalogEntry(ResourceKind.SERVICE),
    CatalogEntry(ResourceKind.DEPLOYMENT, methods=(ExportMethod.DOWNLOAD,), requires_job_success=True),
)


def applicable_kinds(method: ExportMethod, job_succeeded: bool = True) -> Tuple[ResourceKind, ...]:
    """Kinds the walk visits for a method, in order."""
    return tuple(e.kind for e in CATALOG if e.applies(method, job_succeeded))
