"""
kernel/cleanup.py - Teardown of transient objects on completion

Completion is recorded before anything is deleted: if the status write fails
nothing is removed and the pass reports the failure, so a job is never gone
while the export still reads as incomplete.
"""

from __future__ import annotations
from typing import TYPE_CHECKING
import logging

from ..core.enums import ResourceKind
from ..errors import StateStoreError, StatusPersistError
from ..resources.ownership import OwnershipTable
from ..status.conditions import StatusConditionTracker
from ..store.base import StateStore

if TYPE_CHECKING:
    from ..core.export import ExportRequest

logger = logging.getLogger(__name__)

# Pods of the job go with it, in the background
JOB_PROPAGATION_POLICY = "Background"


class CleanupCoordinator:
    """Persists the final status of an export and removes its transient children."""

    def __init__(self, store: StateStore, tracker: StatusConditionTracker = None):
        self.store = store
        self.tracker = tracker or StatusConditionTracker()

    def finalize(self, request: "ExportRequest", table: OwnershipTable = None) -> None:
        """
        Mark the export complete and delete the job, cluster role and binding.

        Raises:
            StatusPersistError: If the completion status could not be written.
                Nothing is deleted in that case.
        """
        table = table or OwnershipTable.for_export(request)

        request.status.completed = True
        self.tracker.mark_complete(request)
        self.persist(request)
        logger.info(f"Export {request.key} complete")

        for child in table.transient():
            policy = JOB_PROPAGATION_POLICY if child.kind == ResourceKind.JOB else None
            try:
                self.store.delete(child.ref, propagation_policy=policy)
                logger.debug(f"Deleted {child.ref}")
            except StateStoreError as e:
                logger.warning(f"Cleanup of {child.ref} for {request.key} failed: {e}")

    def persist(self, request: "ExportRequest") -> None:
        """Write the request's status, refreshing its resource version."""
        try:
            stored = self.store.update_status(request.to_dict())
        except StateStoreError as e:
            raise StatusPersistError(request.key, e) from e
        version = (stored.get("metadata") or {}).get("resourceVersion")
        if version:
            request.resource_version = str(version)
