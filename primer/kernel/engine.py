"""
kernel/engine.py - Reconciliation engine

One pass drives an export one step closer to its desired state:
1. Read the export; a missing export is a no-op.
2. Walk the catalog. The first missing object is created and the pass asks
   to be requeued. Once the export is complete a missing object ends the
   pass quietly instead.
3. With every object in place, derive completion and the artifact address.
4. On completion hand over to cleanup, otherwise persist a changed status.

Every failure records a Reconciled/False/Error condition (best effort) and
is returned to the runner. Nothing is cached between passes: existence is
re-read from the store each time, so repeating a pass is always safe.
"""

from __future__ import annotations
from typing import Any, Dict, Optional, Tuple
import logging

from ..core.enums import ReconcileOutcome, ResourceKind
from ..core.export import ExportRequest, ExportStatus
from ..errors import InvalidExportError, PrimerError, StatusPersistError
from ..resources.generator import ResourceSpecGenerator
from ..resources.ownership import OwnershipTable
from ..status.conditions import StatusConditionTracker
from ..store.base import StateStore
from .catalog import CATALOG
from .cleanup import CleanupCoordinator
from .completion import CompletionDetector
from .result import ReconcileResult

logger = logging.getLogger(__name__)


def split_key(key: str) -> Tuple[str, str]:
    """Split a "namespace/name" key."""
    namespace, sep, name = key.partition("/")
    if not sep or not namespace or not name:
        raise ValueError(f"invalid export key {key!r}, expected NAMESPACE/NAME")
    return namespace, name


def artifact_url(host: str, request: ExportRequest) -> str:
    """Address the serving route exposes the export archive under."""
    return f"https://{host}/{request.namespace}-{request.created_at}.zip"


class ReconciliationEngine:
    """Runs reconciliation passes against a state store."""

    def __init__(
        self,
        store: StateStore,
        generator: ResourceSpecGenerator = None,
        tracker: StatusConditionTracker = None,
        detector: CompletionDetector = None,
        cleanup: CleanupCoordinator = None,
    ):
        self.store = store
        self.generator = generator or ResourceSpecGenerator()
        self.tracker = tracker or StatusConditionTracker()
        self.detector = detector or CompletionDetector()
        self.cleanup = cleanup or CleanupCoordinator(store, self.tracker)

    def reconcile(self, key: str) -> ReconcileResult:
        """
        Run one pass for the export identified by ``key``.

        Args:
            key: "namespace/name" of the export

        Returns:
            ReconcileResult with outcome noop, requeue or error
        """
        namespace, name = split_key(key)

        lookup = self.store.get_export(namespace, name)
        if lookup.is_absent:
            logger.debug(f"Export {key} not found, ignoring")
            return ReconcileResult(key, ReconcileOutcome.NOOP, missing=True)
        if lookup.is_error:
            logger.error(f"Reading export {key} failed: {lookup.error}")
            return ReconcileResult(key, ReconcileOutcome.ERROR, error=lookup.error)

        request = ExportRequest.from_dict(lookup.obj)
        if request.spec is None:
            return self._fail(request, InvalidExportError(key, request.spec_error or "missing spec"))

        table = OwnershipTable.for_export(request)
        observed: Dict[ResourceKind, Dict[str, Any]] = {}

        for entry in CATALOG:
            job_succeeded = self.detector.job_succeeded(observed.get(ResourceKind.JOB))
            if not entry.applies(request.method, job_succeeded):
                continue

            ref = table.ref(entry.kind)
            child = self.store.get(ref)
            if child.is_error:
                return self._fail(request, child.error)
            if child.is_found:
                observed[entry.kind] = child.obj
                continue

            if request.status.completed:
                logger.debug(f"{ref} absent after completion of {key}, nothing to do")
                return ReconcileResult(key, ReconcileOutcome.NOOP, completed=True)

            try:
                self.store.create(self.generator.generate(entry.kind, request, table))
            except PrimerError as e:
                return self._fail(request, e)
            logger.info(f"Created {ref} for export {key}")
            return ReconcileResult(key, ReconcileOutcome.REQUEUE, created=entry.kind)

        return self._observe(request, table, observed)

    def _observe(
        self,
        request: ExportRequest,
        table: OwnershipTable,
        observed: Dict[ResourceKind, Dict[str, Any]],
    ) -> ReconcileResult:
        before = request.status.to_dict()
        status = request.status

        status.completed = status.completed or self.detector.is_complete(
            request.method,
            observed.get(ResourceKind.JOB),
            observed.get(ResourceKind.DEPLOYMENT),
        )

        host = self._route_host(observed.get(ResourceKind.ROUTE))
        if host:
            status.route = artifact_url(host, request)

        if status.completed:
            try:
                self.cleanup.finalize(request, table)
            except StatusPersistError as e:
                # completion must only be stored together with its cleanup
                request.status = ExportStatus.from_dict(before)
                return self._fail(request, e)
            return ReconcileResult(request.key, ReconcileOutcome.NOOP, completed=True)

        if status.to_dict() != before:
            try:
                self.cleanup.persist(request)
            except StatusPersistError as e:
                return self._fail(request, e)
            logger.debug(f"Updated status of {request.key}")

        return ReconcileResult(request.key, ReconcileOutcome.NOOP)

    @staticmethod
    def _route_host(route: Optional[Dict[str, Any]]) -> str:
        if not route:
            return ""
        return (route.get("spec") or {}).get("host") or ""

    def _fail(self, request: ExportRequest, error: PrimerError) -> ReconcileResult:
        """Record the error condition, best effort, and report the failure."""
        error.export_key = error.export_key or request.key
        logger.error(f"Reconcile of {request.key} failed: {error}")

        self.tracker.mark_error(request, error)
        try:
            self.cleanup.persist(request)
        except StatusPersistError as e:
            logger.warning(f"Could not record error condition on {request.key}: {e}")

        return ReconcileResult(
            request.key,
            ReconcileOutcome.ERROR,
            error=error,
            completed=request.status.completed,
        )
